"""Core spatial structures: geometry, weights and spatial lag."""

from geoesda.core.geometry import extract_centroids, feature_id, simplified_centroid
from geoesda.core.spatial_lag import lag_spatial, lag_summary
from geoesda.core.weights import WeightsMatrix

__all__ = [
    "feature_id",
    "simplified_centroid",
    "extract_centroids",
    "WeightsMatrix",
    "lag_spatial",
    "lag_summary",
]
