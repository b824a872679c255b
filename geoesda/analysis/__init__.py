"""High-level analysis functions."""

from geoesda.analysis.spatial_analysis import (
    AnalysisResults,
    SpatialAnalysisResult,
    add_spatial_lag,
    analyze,
    extract_values,
)

__all__ = [
    "analyze",
    "extract_values",
    "add_spatial_lag",
    "AnalysisResults",
    "SpatialAnalysisResult",
]
