"""Neighbor search utilities."""

from geoesda.neighbors.knn import (
    KNNWeights,
    knn_neighbors,
    min_threshold_distance,
)

__all__ = ["KNNWeights", "knn_neighbors", "min_threshold_distance"]
