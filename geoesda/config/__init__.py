"""Configuration for spatial analysis."""

from geoesda.config.dataclasses import AnalysisConfig, TransformMode

__all__ = ["AnalysisConfig", "TransformMode"]
