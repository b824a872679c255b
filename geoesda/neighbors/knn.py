"""
K-nearest-neighbour spatial weights.

Neighbours are found from the full planar Euclidean distance matrix in
the input coordinate units. Ties are broken by enumeration order, and the
relation is directed: A may list B without B listing A.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.spatial import distance

from geoesda.core.geometry import extract_centroids
from geoesda.core.weights import WeightsMatrix, check_unique_ids

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def knn_neighbors(coords, ids: Sequence[str], k: int) -> tuple[dict, dict]:
    """
    Find the k nearest neighbours of every point.

    Parameters
    ----------
    coords : array-like
        Point coordinates of shape (n, 2).
    ids : sequence of str
        Identifier of every point.
    k : int
        Number of neighbours. Points get min(k, n - 1) neighbours.

    Returns
    -------
    neighbors : dict
        id -> list of neighbour ids, nearest first.
    weights : dict
        id -> list of 1.0 weights parallel to ``neighbors``.

    Examples
    --------
    >>> coords = [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]
    >>> neighbors, _ = knn_neighbors(coords, ["0", "1", "2", "3"], k=1)
    >>> neighbors
    {'0': ['1'], '1': ['0'], '2': ['1'], '3': ['2']}
    """
    coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    n = coords.shape[0]
    if len(ids) != n:
        raise ValueError(f"Got {len(ids)} ids for {n} points")
    check_unique_ids(ids)

    neighbors = {}
    weights = {}
    if n == 0:
        return neighbors, weights

    dists = distance.cdist(coords, coords)
    np.fill_diagonal(dists, np.inf)
    k_eff = min(k, n - 1)
    for i in range(n):
        # stable sort keeps enumeration order among equal distances
        nearest = np.argsort(dists[i], kind="stable")[:k_eff]
        neighbors[ids[i]] = [ids[j] for j in nearest]
        weights[ids[i]] = [1.0] * len(nearest)

    return neighbors, weights


class KNNWeights(WeightsMatrix):
    """
    K-nearest-neighbour weights matrix.

    Parameters
    ----------
    points : array-like
        Point coordinates of shape (n, 2).
    k : int, default=2
        Number of nearest neighbours.
    ids : sequence, optional
        Identifier of every point. Default: positional index strings.

    Examples
    --------
    >>> w = KNNWeights([[0, 0], [1, 0], [5, 5]], k=1)
    >>> w.neighbors["2"]
    ('1',)
    """

    def __init__(self, points, k: int = 2, ids: Optional[Sequence] = None):
        self.points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if ids is None:
            ids = [str(i) for i in range(self.points.shape[0])]
        ids = [str(i) for i in ids]
        neighbors, weights = knn_neighbors(self.points, ids, k)
        super().__init__(neighbors, weights, ids)
        self.k = k

    @classmethod
    def from_features(cls, features, k: int = 2) -> "KNNWeights":
        """
        Build KNN weights from the centroids of a feature sequence.

        Features without a centroid are left out of the matrix.
        """
        features = list(features)
        ids, coords = extract_centroids(features)
        dropped = len(features) - len(ids)
        if dropped:
            logger.info(f"{dropped} feature(s) without a centroid excluded from the weights")
        logger.info(f"Building KNN weights: {len(ids)} points, k={k}")
        return cls(coords, k=k, ids=ids)


def _pairwise_haversine(coords: np.ndarray) -> np.ndarray:
    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    dlat = lat.reshape(-1, 1) - lat.reshape(1, -1)
    dlon = lon.reshape(-1, 1) - lon.reshape(1, -1)
    a = (
        np.sin(dlat / 2) ** 2
        + np.cos(lat).reshape(-1, 1) * np.cos(lat).reshape(1, -1) * np.sin(dlon / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def min_threshold_distance(points, metric: str = "haversine") -> float:
    """
    Smallest distance band that gives every point at least one neighbour.

    This is the largest nearest-neighbour distance.

    Parameters
    ----------
    points : array-like
        Coordinates of shape (n, 2); (lon, lat) for ``"haversine"``.
    metric : {"haversine", "euclidean"}, default="haversine"
        Great-circle distance in metres or planar distance in input units.

    Returns
    -------
    float
        Threshold distance; 0.0 for fewer than two points.
    """
    coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n = coords.shape[0]
    if n < 2:
        return 0.0

    if metric == "haversine":
        dists = _pairwise_haversine(coords)
    elif metric == "euclidean":
        dists = distance.cdist(coords, coords)
    else:
        raise ValueError(f"Unknown metric: {metric!r}. Use 'haversine' or 'euclidean'.")

    np.fill_diagonal(dists, np.inf)
    return float(dists.min(axis=1).max())
