"""Tests for centroid extraction."""

import numpy as np

from geoesda.core.geometry import extract_centroids, feature_id, simplified_centroid


def _feature(gtype, coordinates, **properties):
    return {
        "type": "Feature",
        "geometry": {"type": gtype, "coordinates": coordinates},
        "properties": properties,
    }


class TestSimplifiedCentroid:
    """Tests for simplified_centroid."""

    def test_point(self):
        """Test a point is its own centroid."""
        assert simplified_centroid(_feature("Point", [3.0, 4.0])) == (3.0, 4.0)

    def test_polygon_uses_exterior_ring(self):
        """Test polygon centroid is the mean of the exterior ring vertices."""
        square = [[[0, 0], [2, 0], [2, 2], [0, 2]], [[0.5, 0.5], [0.6, 0.5], [0.6, 0.6]]]
        assert simplified_centroid(_feature("Polygon", square)) == (1.0, 1.0)

    def test_closed_ring_counts_first_vertex_twice(self):
        """Test the vertex average is not area-weighted."""
        ring = [[[0, 0], [2, 0], [2, 2], [0, 2], [0, 0]]]
        x, y = simplified_centroid(_feature("Polygon", ring))
        assert np.isclose(x, 0.8)
        assert np.isclose(y, 0.8)

    def test_multipoint(self):
        """Test multipoint centroid is the mean of its points."""
        assert simplified_centroid(_feature("MultiPoint", [[0, 0], [4, 0]])) == (2.0, 0.0)

    def test_multipolygon_pools_exterior_rings(self):
        """Test multipolygon pools the exterior ring vertices of every polygon."""
        coords = [[[[0, 0], [2, 0], [2, 2]]], [[[10, 10]]]]
        assert simplified_centroid(_feature("MultiPolygon", coords)) == (3.5, 3.0)

    def test_unsupported_and_empty(self):
        """Test unsupported or empty geometries have no centroid."""
        assert simplified_centroid(_feature("LineString", [[0, 0], [1, 1]])) is None
        assert simplified_centroid(_feature("Point", [])) is None
        assert simplified_centroid(_feature("Polygon", [[]])) is None
        assert simplified_centroid({"geometry": None, "properties": {}}) is None
        assert simplified_centroid(None) is None


class TestExtractCentroids:
    """Tests for feature_id and extract_centroids."""

    def test_feature_id(self):
        """Test ids come from properties and fall back to the position."""
        assert feature_id(_feature("Point", [0, 0], id=7), 3) == "7"
        assert feature_id(_feature("Point", [0, 0]), 3) == "3"
        assert feature_id(_feature("Point", [0, 0], id=None), 5) == "5"

    def test_skips_features_without_centroid(self):
        """Test features without a centroid are left out, order preserved."""
        features = [
            _feature("Point", [0, 0], id="a"),
            _feature("LineString", [[0, 0], [1, 1]], id="b"),
            _feature("Point", [2, 1]),
        ]
        ids, coords = extract_centroids(features)

        assert ids == ["a", "2"]
        assert coords.shape == (2, 2)
        assert np.allclose(coords, [[0, 0], [2, 1]])

    def test_empty(self):
        """Test an empty sequence gives an empty (0, 2) array."""
        ids, coords = extract_centroids([])
        assert ids == []
        assert coords.shape == (0, 2)
