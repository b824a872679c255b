"""Tests for KNN weights and distance thresholds."""

import numpy as np
import pytest

from geoesda.neighbors.knn import (
    EARTH_RADIUS_M,
    KNNWeights,
    knn_neighbors,
    min_threshold_distance,
)

LINE = [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]


class TestKNNNeighbors:
    """Tests for knn_neighbors."""

    def test_collinear_k1(self):
        """Test the directed neighbour map of four collinear points."""
        neighbors, weights = knn_neighbors(LINE, ["0", "1", "2", "3"], k=1)
        assert neighbors == {"0": ["1"], "1": ["0"], "2": ["1"], "3": ["2"]}
        assert weights == {"0": [1.0], "1": [1.0], "2": [1.0], "3": [1.0]}

    def test_ties_follow_enumeration_order(self):
        """Test equal distances keep the input order."""
        coords = [[0.0, 0.0], [-1.0, 0.0], [1.0, 0.0], [0.0, 1.0]]
        neighbors, _ = knn_neighbors(coords, ["c", "z", "a", "m"], k=2)
        assert neighbors["c"] == ["z", "a"]

    def test_k_larger_than_available(self):
        """Test every other point is a neighbour when k >= n."""
        neighbors, _ = knn_neighbors([[0, 0], [1, 0], [5, 0]], ["a", "b", "c"], k=10)
        assert neighbors["a"] == ["b", "c"]
        assert neighbors["c"] == ["b", "a"]

    def test_single_point_is_island(self):
        """Test a lone point has no neighbours."""
        neighbors, weights = knn_neighbors([[1.0, 1.0]], ["a"], k=3)
        assert neighbors == {"a": []}
        assert weights == {"a": []}

    def test_id_count_mismatch(self):
        """Test ids must match the number of points."""
        with pytest.raises(ValueError):
            knn_neighbors(LINE, ["0", "1"], k=1)

    def test_duplicate_ids(self):
        """Test repeated ids are rejected instead of merged."""
        with pytest.raises(ValueError, match="unique"):
            knn_neighbors(LINE, ["a", "a", "b", "c"], k=1)

    def test_empty(self):
        """Test no points give empty maps."""
        assert knn_neighbors(np.zeros((0, 2)), [], k=2) == ({}, {})

    def test_matches_brute_force(self):
        """Test neighbours agree with a per-point distance ranking."""
        rng = np.random.default_rng(7)
        coords = rng.uniform(0, 100, size=(25, 2))
        ids = [f"{i:02d}" for i in range(25)]
        neighbors, _ = knn_neighbors(coords, ids, k=4)

        for i in range(25):
            d = np.hypot(*(coords - coords[i]).T)
            d[i] = np.inf
            expected = [ids[j] for j in np.argsort(d, kind="stable")[:4]]
            assert neighbors[ids[i]] == expected


class TestKNNWeights:
    """Tests for KNNWeights."""

    def test_basic(self):
        """Test the matrix keeps k, points and original weights."""
        w = KNNWeights(LINE, k=2)
        assert w.k == 2
        assert w.n == 4
        assert w.transform == "O"
        assert w.points.shape == (4, 2)
        assert all(c == 2 for c in w.cardinalities.values())
        assert w.s0 == 8.0

    def test_asymmetric(self):
        """Test KNN relations are directed."""
        w = KNNWeights([[0, 0], [1, 0], [5, 0]], k=1)
        assert w.neighbors["2"] == ("1",)
        assert "2" not in w.neighbors["1"]

    def test_from_features(self):
        """Test features without a centroid are excluded."""
        features = [
            {"geometry": {"type": "Point", "coordinates": [0, 0]}, "properties": {"id": "x"}},
            {"geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}, "properties": {}},
            {"geometry": {"type": "Point", "coordinates": [1, 0]}, "properties": {"id": "y"}},
            {"geometry": {"type": "Point", "coordinates": [3, 0]}, "properties": {}},
        ]
        w = KNNWeights.from_features(features, k=1)

        assert w.id_order == ["3", "x", "y"]
        assert w.neighbors["x"] == ("y",)
        assert w.neighbors["3"] == ("y",)

    def test_from_features_duplicate_ids(self):
        """Test an explicit id equal to another feature's index is rejected."""
        features = [
            {"geometry": {"type": "Point", "coordinates": [0, 0]}, "properties": {"id": "1"}},
            {"geometry": {"type": "Point", "coordinates": [1, 0]}, "properties": {}},
            {"geometry": {"type": "Point", "coordinates": [2, 0]}, "properties": {}},
        ]
        with pytest.raises(ValueError, match="'1'"):
            KNNWeights.from_features(features, k=1)


class TestDistances:
    """Tests for min_threshold_distance."""

    def test_haversine_one_degree(self):
        """Test one degree of latitude is R * pi / 180 metres."""
        d = min_threshold_distance([[0.0, 0.0], [0.0, 1.0]])
        assert np.isclose(d, EARTH_RADIUS_M * np.pi / 180)

    def test_threshold_euclidean(self):
        """Test the threshold is the largest nearest-neighbour distance."""
        assert min_threshold_distance([[0, 0], [1, 0], [3, 0]], metric="euclidean") == 2.0

    def test_threshold_haversine(self):
        """Test the default metric is great-circle distance."""
        thr = min_threshold_distance([[0.0, 0.0], [0.0, 1.0], [0.0, 1.5]])
        assert np.isclose(thr, EARTH_RADIUS_M * np.pi / 180)

    def test_threshold_few_points(self):
        """Test fewer than two points give 0."""
        assert min_threshold_distance([[1.0, 2.0]]) == 0.0
        assert min_threshold_distance(np.zeros((0, 2))) == 0.0

    def test_unknown_metric(self):
        """Test unknown metrics are rejected."""
        with pytest.raises(ValueError):
            min_threshold_distance(LINE, metric="manhattan")
