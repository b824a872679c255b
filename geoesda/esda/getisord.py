"""
Getis and Ord's global G.

    G = sum_i(y_i * lag(y)_i) / (sum_i(y_i) * sum_j(y_j) - sum_i(y_i^2))

Always computed on binary weights. The variance of G is taken from the
permutation distribution; no closed-form variance is computed.
"""

import logging
from typing import Optional

import numpy as np
from scipy import stats

from geoesda.core.spatial_lag import lag_spatial
from geoesda.core.weights import WeightsMatrix
from geoesda.diagnostics import ZERO_DENOMINATOR, Diagnostics, ensure_diagnostics
from geoesda.esda._base import SIGNIFICANCE_LEVEL, as_values, finite, ratio, safe_sqrt, to_native
from geoesda.stats.permutation import permutation_distribution, pseudo_p_value, simulation_summary

logger = logging.getLogger(__name__)

HOT_SPOT = "hot spot"
COLD_SPOT = "cold spot"
RANDOM = "random"

_DESCRIPTIONS = {
    HOT_SPOT: "High values cluster together in space.",
    COLD_SPOT: "Low values cluster together in space.",
    RANDOM: "No significant clustering of high or low values.",
}


def interpret_getis(
    z_sim: Optional[float], p_sim: Optional[float], significance_level: float = SIGNIFICANCE_LEVEL
) -> str:
    """
    Label a Getis-Ord G result.

    Significant results are a ``"hot spot"`` when z_sim > 0 and a
    ``"cold spot"`` otherwise; non-significant ones are ``"random"``.
    """
    if p_sim is None or p_sim >= significance_level:
        return RANDOM
    if z_sim is not None and z_sim > 0:
        return HOT_SPOT
    return COLD_SPOT


class GetisOrdG:
    """
    Global G autocorrelation statistic.

    Parameters
    ----------
    y : array-like
        Values aligned with ``w.id_order``.
    w : WeightsMatrix
        Spatial weights. Its transformation is forced to binary.
    permutations : int, default=999
        Number of permutations. 0 skips the permutation test.
    seed : int, optional
        Seed of the permutation generator.
    diagnostics : Diagnostics, optional
        Collector for degenerate-input warnings.

    Attributes
    ----------
    G : float
        Observed statistic (0 when the denominator is degenerate).
    EG : float
        Expected value, s0 / (n (n - 1)).
    VG : float
        Variance of G, equal to ``VG_sim`` (NaN without permutations).
    z_norm, p_norm : float
        Normal approximation using ``VG``.
    sim, p_sim, EG_sim, seG_sim, VG_sim, z_sim, p_z_sim
        Permutation inference (only with permutations).
    """

    def __init__(
        self,
        y,
        w: WeightsMatrix,
        permutations: int = 999,
        seed: Optional[int] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        w.transform = "B"
        self.w = w
        self.y = y = as_values(y, w)
        self.n = y.shape[0]
        self.permutations = permutations
        self.diagnostics = ensure_diagnostics(diagnostics)
        self.sim = None
        self.p_sim = None

        self.EG = finite(ratio(w.s0, self.n * (self.n - 1)))

        y_sum = float(y.sum())
        self.den_sum = y_sum * y_sum - float((y * y).sum())
        if self.den_sum == 0:
            self.diagnostics.warn(
                ZERO_DENOMINATOR,
                "Getis-Ord G: denominator is 0; G set to 0",
                log=logger,
                statistic="getis_ord",
            )

        self.G = self.__calc(y)

        self.VG = np.nan
        if permutations:
            sim = permutation_distribution(self.y, self.__calc, permutations, seed)
            self.sim = sim
            self.p_sim = pseudo_p_value(sim, self.G)
            summary = simulation_summary(sim, self.G)
            self.EG_sim = summary["mean"]
            self.seG_sim = summary["std"]
            self.VG_sim = summary["var"]
            self.z_sim = summary["z_sim"]
            self.p_z_sim = float(stats.norm.sf(abs(self.z_sim)))
            self.VG = self.VG_sim

        self.z_norm = ratio(self.G - self.EG, safe_sqrt(self.VG))
        self.p_norm = float(stats.norm.sf(abs(self.z_norm)))

    def __calc(self, y) -> float:
        if self.den_sum == 0:
            return 0.0
        yl = lag_spatial(self.w, y)
        return float((y * yl).sum()) / self.den_sum

    @property
    def interpretation(self) -> str:
        return interpret_getis(getattr(self, "z_sim", None), self.p_sim)

    def summary(self, significance_level: float = SIGNIFICANCE_LEVEL) -> dict:
        """Result record with the observed value, expectation and permutation inference."""
        z_sim = getattr(self, "z_sim", None)
        label = interpret_getis(z_sim, self.p_sim, significance_level)
        record = {
            "G": self.G,
            "EG": self.EG,
            "VG": self.VG,
            "z_norm": self.z_norm,
            "p_norm": self.p_norm,
            "permutations": self.permutations,
            "sim": self.sim,
            "p_sim": self.p_sim,
            "EG_sim": getattr(self, "EG_sim", None),
            "seG_sim": getattr(self, "seG_sim", None),
            "VG_sim": getattr(self, "VG_sim", None),
            "z_sim": z_sim,
            "p_z_sim": getattr(self, "p_z_sim", None),
            "significant": self.p_sim is not None and self.p_sim < significance_level,
            "interpretation": label,
            "description": _DESCRIPTIONS[label],
        }
        return {k: to_native(v) for k, v in record.items()}
