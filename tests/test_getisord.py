"""Tests for Getis-Ord G."""

import numpy as np
import pytest
from scipy import stats

from geoesda.diagnostics import ZERO_DENOMINATOR, Diagnostics
from geoesda.esda.getisord import GetisOrdG, interpret_getis
from geoesda.neighbors.knn import KNNWeights


@pytest.fixture
def line_w():
    coords = np.column_stack([np.arange(10.0), np.zeros(10)])
    return KNNWeights(coords, k=2)


class TestGetisOrdG:
    """Tests for the GetisOrdG class."""

    def test_forces_binary(self, line_w):
        """Test the weights are switched to binary."""
        line_w.transform = "R"
        GetisOrdG(np.arange(1.0, 11.0), line_w, permutations=0)
        assert line_w.transform == "B"

    def test_matches_dense_formula(self, line_w):
        """Test G = y'Wy / (sum(y)^2 - sum(y^2))."""
        y = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0, 5.0, 3.0])
        g = GetisOrdG(y, line_w, permutations=0)

        W = line_w.full()
        expected = (y @ W @ y) / (y.sum() ** 2 - (y**2).sum())
        assert np.isclose(g.G, expected)

    def test_expectation(self, line_w):
        """Test E[G] = s0 / (n (n - 1))."""
        g = GetisOrdG(np.arange(1.0, 11.0), line_w, permutations=0)
        assert g.EG == pytest.approx(20 / 90)

    def test_variance_from_permutations(self, line_w):
        """Test VG is the permutation variance and drives z_norm."""
        g = GetisOrdG(np.arange(1.0, 11.0), line_w, permutations=99, seed=1234)
        assert g.VG == g.VG_sim
        assert g.z_norm == pytest.approx((g.G - g.EG) / np.sqrt(g.VG))
        assert g.p_norm == pytest.approx(stats.norm.sf(abs(g.z_norm)))

    def test_no_permutations(self, line_w):
        """Test VG and z_norm are NaN without permutations."""
        g = GetisOrdG(np.arange(1.0, 11.0), line_w, permutations=0)
        assert np.isnan(g.VG)
        assert np.isnan(g.z_norm)
        assert g.p_sim is None

    def test_hot_spot(self):
        """Test clustered high values are a hot spot."""
        coords = np.column_stack([np.arange(20.0), np.zeros(20)])
        w = KNNWeights(coords, k=2, ids=[f"{i:02d}" for i in range(20)])
        y = np.ones(20)
        y[15:] = [50.0, 60.0, 70.0, 80.0, 90.0]
        g = GetisOrdG(y, w, permutations=99, seed=1234)
        assert g.z_sim > 0
        assert g.p_sim < 0.05
        assert g.interpretation == "hot spot"

    def test_zero_denominator(self, line_w):
        """Test all-zero values give G = 0 and a warning."""
        diagnostics = Diagnostics()
        g = GetisOrdG(np.zeros(10), line_w, permutations=0, diagnostics=diagnostics)
        assert g.G == 0.0
        assert ZERO_DENOMINATOR in diagnostics.codes()


class TestInterpretGetis:
    """Tests for interpret_getis."""

    def test_labels(self):
        """Test labels from z_sim and p_sim."""
        assert interpret_getis(2.0, 0.01) == "hot spot"
        assert interpret_getis(-2.0, 0.01) == "cold spot"
        assert interpret_getis(2.0, 0.3) == "random"
        assert interpret_getis(None, None) == "random"
