"""
geoesda - exploratory spatial data analysis for GeoJSON-like features

This package computes global spatial autocorrelation statistics on a
k-nearest-neighbour weights matrix built from feature centroids, with
seeded Monte-Carlo permutation inference.

Key Features:
- KNN spatial weights with original, binary and row-standardized transforms
- Sparse spatial lag operator
- Moran's I, Geary's C, Getis-Ord G and binary Join Counts
- Reproducible permutation tests driven by a seeded LCG
- One-call analysis returning an augmented feature collection

Example:
    >>> from geoesda import analyze
    >>> collection, results = analyze(feature_collection, k=8, value_field="count")
    >>> results.moran["I"], results.moran["p_sim"]
"""

__version__ = "0.1.0"

# Analysis
from geoesda.analysis.spatial_analysis import (
    AnalysisResults,
    SpatialAnalysisResult,
    add_spatial_lag,
    analyze,
    extract_values,
)

# Configuration
from geoesda.config.dataclasses import AnalysisConfig, TransformMode

# Core
from geoesda.core.geometry import extract_centroids, simplified_centroid
from geoesda.core.spatial_lag import lag_spatial, lag_summary
from geoesda.core.weights import WeightsMatrix
from geoesda.diagnostics import DiagnosticRecord, Diagnostics

# Statistics
from geoesda.esda import Geary, GetisOrdG, JoinCounts, Moran
from geoesda.exceptions import ConfigurationError, SpatialAnalysisError
from geoesda.neighbors.knn import KNNWeights, min_threshold_distance
from geoesda.stats.permutation import LCGRandom, pseudo_p_value

__all__ = [
    # Version
    "__version__",
    # Analysis
    "analyze",
    "extract_values",
    "add_spatial_lag",
    "AnalysisResults",
    "SpatialAnalysisResult",
    # Configuration
    "AnalysisConfig",
    "TransformMode",
    # Core
    "simplified_centroid",
    "extract_centroids",
    "WeightsMatrix",
    "KNNWeights",
    "min_threshold_distance",
    "lag_spatial",
    "lag_summary",
    # Statistics
    "Moran",
    "Geary",
    "GetisOrdG",
    "JoinCounts",
    "LCGRandom",
    "pseudo_p_value",
    # Diagnostics and errors
    "Diagnostics",
    "DiagnosticRecord",
    "SpatialAnalysisError",
    "ConfigurationError",
]
