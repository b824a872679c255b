"""Tests for the end-to-end spatial analysis."""

import copy
import json

import numpy as np
import pytest

from geoesda.analysis.spatial_analysis import (
    AnalysisResults,
    add_spatial_lag,
    analyze,
    extract_values,
)
from geoesda.config import AnalysisConfig
from geoesda.diagnostics import ALL_ZERO_VALUES, INVALID_VALUE, MISSING_VALUE, Diagnostics
from geoesda.exceptions import ConfigurationError, SpatialAnalysisError


def _point(fid, x, **properties):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [x, 0.0]},
        "properties": {"id": fid, **properties},
    }


@pytest.fixture
def collection():
    counts = [1, 2, 3, 4, 10, 11, 12, 13]
    features = [_point(fid, float(x), count=c) for x, (fid, c) in enumerate(zip("abcdefgh", counts))]
    features.append(
        {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
            "properties": {"id": "z", "count": 5},
        }
    )
    return {"type": "FeatureCollection", "features": features}


def _lag_by_id(fc):
    return {f["properties"]["id"]: f["properties"]["spatial_lag"] for f in fc["features"]}


class TestAnalyze:
    """Tests for analyze."""

    def test_result_structure(self, collection):
        """Test the results record and augmented collection."""
        augmented, results = analyze(collection, k=2, permutations=99)

        assert isinstance(results, AnalysisResults)
        assert results.k == 2
        assert results.transform == "R"
        assert results.spatial_lag_field == "spatial_lag"
        assert results.id_order == list("abcdefgh")
        assert results.min_threshold_distance > 0
        assert len(augmented["features"]) == 9
        assert augmented["type"] == "FeatureCollection"
        assert results.join_counts is not None
        assert results.join_counts["threshold"] == 7.0

    def test_spatial_lag_values(self, collection):
        """Test lag values are written back by identifier."""
        augmented, results = analyze(collection, k=2, permutations=0)
        lag = _lag_by_id(augmented)

        assert lag["a"] == pytest.approx(2.5)
        assert lag["d"] == pytest.approx(6.5)
        assert lag["z"] == 0.0
        for i, fid in enumerate(results.id_order):
            assert lag[fid] == pytest.approx(results.spatial_lag[i])

    def test_input_not_mutated(self, collection):
        """Test the input collection is left untouched."""
        before = copy.deepcopy(collection)
        augmented, _ = analyze(collection, k=2, permutations=9)

        assert collection == before
        assert "spatial_lag" not in collection["features"][0]["properties"]
        assert augmented["features"][0] is not collection["features"][0]

    def test_deterministic(self, collection):
        """Test identical inputs and seed give identical inference."""
        _, a = analyze(collection, k=3, permutations=49, seed=99)
        _, b = analyze(collection, k=3, permutations=49, seed=99)

        assert a.moran["sim"] == b.moran["sim"]
        assert a.moran["p_sim"] == b.moran["p_sim"]
        assert a.geary["sim"] == b.geary["sim"]
        assert a.getis_ord["p_sim"] == b.getis_ord["p_sim"]
        assert a.join_counts["sim_bb"] == b.join_counts["sim_bb"]

    def test_p_values_in_support(self, collection):
        """Test every pseudo p-value is a multiple of 1 / (P + 1)."""
        _, results = analyze(collection, k=2, permutations=99)
        for p in [
            results.moran["p_sim"],
            results.geary["p_sim"],
            results.getis_ord["p_sim"],
            results.join_counts["p_sim_bb"],
            results.join_counts["p_sim_bw"],
        ]:
            assert np.isclose(p * 100, round(p * 100))
            assert 1 <= round(p * 100) <= 100

    def test_clustered_values(self, collection):
        """Test two clusters of values give positive autocorrelation."""
        _, results = analyze(collection, k=2, permutations=99)
        assert results.moran["I"] > 0
        assert results.geary["C"] < 1
        assert results.geary["EC"] == 1.0
        assert results.lag_stats["correlation"] > 0

    def test_moran_record_vectors(self, collection):
        """Test the Moran record carries the values and lags it used."""
        _, results = analyze(collection, k=2, permutations=0)
        moran = results.moran

        assert moran["original_values"] == [1.0, 2.0, 3.0, 4.0, 10.0, 11.0, 12.0, 13.0]
        assert moran["lag_values"] == pytest.approx(list(results.spatial_lag))
        assert np.isclose(sum(moran["standardized_values"]), 0.0)

    def test_config_and_overrides(self, collection):
        """Test keyword options override the config object."""
        _, results = analyze(collection, AnalysisConfig(k=3, seed=5), permutations=0)

        assert results.k == 3
        assert results.moran["p_sim"] is None
        assert results.join_counts["pattern"] == "no significant pattern"

    def test_camel_case_options(self, collection):
        """Test camelCase option names."""
        for f in collection["features"]:
            f["properties"]["pop"] = f["properties"]["count"] * 2
        _, results = analyze(collection, k=2, valueField="pop", binaryThreshold=3, permutations=0)

        assert results.moran["original_values"][0] == 2.0
        assert results.join_counts["threshold"] == 3.0

    def test_warnings_collected(self, collection):
        """Test missing and invalid values become warnings, not errors."""
        del collection["features"][1]["properties"]["count"]
        collection["features"][2]["properties"]["count"] = "n/a"
        _, results = analyze(collection, k=2, permutations=0)

        codes = [w.code for w in results.warnings]
        assert MISSING_VALUE in codes
        assert INVALID_VALUE in codes
        assert results.moran["original_values"][1:3] == [0.0, 0.0]

    @pytest.mark.parametrize("raw", ["inf", "-Infinity", float("inf"), float("-inf")])
    def test_infinite_values_are_invalid(self, collection, raw):
        """Test infinite values are replaced by 0 and keep the statistics finite."""
        collection["features"][2]["properties"]["count"] = raw
        _, results = analyze(collection, k=2, permutations=9)

        assert [w.code for w in results.warnings].count(INVALID_VALUE) == 1
        assert results.moran["original_values"][2] == 0.0
        assert np.isfinite(results.moran["I"])
        assert np.isfinite(results.geary["C"])
        assert np.isfinite(results.getis_ord["G"])

    def test_duplicate_ids(self, collection):
        """Test duplicate feature ids fail with a descriptive wrapped error."""
        collection["features"][1]["properties"]["id"] = "a"
        with pytest.raises(SpatialAnalysisError, match="unique") as excinfo:
            analyze(collection, k=2, permutations=9)
        assert isinstance(excinfo.value.cause, ValueError)

    @pytest.mark.parametrize("level", ["x", None, [0.05]])
    def test_bad_significance_level(self, collection, level):
        """Test a non-numeric significance level is a configuration error."""
        with pytest.raises(ConfigurationError):
            analyze(collection, k=2, permutations=0, significance_level=level)

    def test_all_zero_values(self, collection):
        """Test all-zero values warn and give zero statistics."""
        for f in collection["features"]:
            f["properties"]["count"] = 0
        _, results = analyze(collection, k=2, permutations=9)

        codes = [w.code for w in results.warnings]
        assert ALL_ZERO_VALUES in codes
        assert results.moran["I"] == 0.0
        assert results.getis_ord["G"] == 0.0

    def test_to_dict_is_json(self, collection):
        """Test the results serialize to JSON."""
        _, results = analyze(collection, k=2, permutations=9)
        data = results.to_dict()

        text = json.dumps(data)
        assert "lag_mean" in data
        assert data["spatial_lag_field"] == "spatial_lag"
        assert isinstance(text, str)

    def test_unsupported_transform(self, collection):
        """Test configuration errors are raised unwrapped."""
        with pytest.raises(ConfigurationError) as excinfo:
            analyze(collection, transformation="Q")
        assert type(excinfo.value) is ConfigurationError

    def test_unknown_option(self, collection):
        """Test unknown options are configuration errors."""
        with pytest.raises(ConfigurationError):
            analyze(collection, neighbours=3)

    def test_wrapped_failure(self):
        """Test unexpected failures are wrapped with their cause."""
        with pytest.raises(SpatialAnalysisError) as excinfo:
            analyze({"type": "FeatureCollection"})
        assert isinstance(excinfo.value.cause, KeyError)
        assert excinfo.value.__cause__ is excinfo.value.cause

    def test_wrapped_bad_geometry(self, collection):
        """Test malformed coordinates surface as a wrapped error."""
        collection["features"][0]["geometry"]["coordinates"] = ["west", "north"]
        with pytest.raises(SpatialAnalysisError) as excinfo:
            analyze(collection, k=2, permutations=0)
        assert isinstance(excinfo.value.cause, ValueError)
        assert not isinstance(excinfo.value, ConfigurationError)


class TestExtractValues:
    """Tests for extract_values."""

    def test_conversion(self):
        """Test numbers, numeric strings and booleans are accepted."""
        fc = {
            "features": [
                {"properties": {"id": "a", "v": 1}},
                {"properties": {"id": "b", "v": "2.5"}},
                {"properties": {"id": "c", "v": True}},
                {"properties": {"id": "d", "v": float("nan")}},
                {"properties": {"id": "e"}},
                {"properties": {"id": "f", "v": [1]}},
            ]
        }
        diagnostics = Diagnostics()
        y = extract_values(fc, ["a", "b", "c", "d", "e", "f"], "v", diagnostics)

        assert y.tolist() == [1.0, 2.5, 1.0, 0.0, 0.0, 0.0]
        assert diagnostics.codes() == [INVALID_VALUE, MISSING_VALUE, INVALID_VALUE]

    def test_non_finite_values(self):
        """Test infinite numbers and strings are invalid values."""
        fc = {
            "features": [
                {"properties": {"id": "a", "v": "inf"}},
                {"properties": {"id": "b", "v": float("-inf")}},
                {"properties": {"id": "c", "v": "4"}},
            ]
        }
        diagnostics = Diagnostics()
        y = extract_values(fc, ["a", "b", "c"], "v", diagnostics)

        assert y.tolist() == [0.0, 0.0, 4.0]
        assert diagnostics.codes() == [INVALID_VALUE, INVALID_VALUE]

    def test_follows_id_order(self):
        """Test values are returned in the given id order."""
        fc = {"features": [{"properties": {"id": 2, "v": 20}}, {"properties": {"id": 1, "v": 10}}]}
        assert extract_values(fc, ["1", "2"], "v").tolist() == [10.0, 20.0]


class TestAddSpatialLag:
    """Tests for add_spatial_lag."""

    def test_missing_ids_get_zero(self):
        """Test features outside the id order get 0."""
        fc = {"features": [{"properties": {"id": "a"}}, {"properties": {}}, {"properties": None}]}
        out = add_spatial_lag(fc, [4.0], ["a"])

        assert [f["properties"]["spatial_lag"] for f in out["features"]] == [4.0, 0.0, 0.0]
        assert "spatial_lag" not in fc["features"][0]["properties"]
