"""
Geary's C spatial autocorrelation.

    C = (n - 1) * sum_ij w_ij (y_i - y_j)^2 / (2 * s0 * sum_i (y_i - mean(y))^2)

Computed over the flattened edge list of the weights. E[C] = 1; C < 1
indicates positive autocorrelation, C > 1 negative.
"""

import logging
from typing import Optional

import numpy as np

from geoesda.core.weights import WeightsMatrix
from geoesda.diagnostics import ZERO_DENOMINATOR, Diagnostics, ensure_diagnostics
from geoesda.esda._base import SIGNIFICANCE_LEVEL, as_values, finite, ratio, safe_sqrt, to_native
from geoesda.stats.permutation import (
    norm_sf_tail,
    permutation_distribution,
    pseudo_p_value,
    simulation_summary,
)

logger = logging.getLogger(__name__)

CLUSTERED = "clustered"
DISPERSED = "dispersed"
RANDOM = "random"

_DESCRIPTIONS = {
    CLUSTERED: "Positive spatial autocorrelation: neighbouring values tend to be similar.",
    DISPERSED: "Negative spatial autocorrelation: neighbouring values tend to differ.",
    RANDOM: "No significant spatial association; values may be randomly distributed.",
}


def interpret_geary(C: float, p_sim: Optional[float], significance_level: float = SIGNIFICANCE_LEVEL) -> str:
    """
    Label a Geary's C result.

    ``"clustered"`` if C < 1 and significant, ``"dispersed"`` if C > 1 and
    significant, ``"random"`` otherwise.
    """
    significant = p_sim is not None and p_sim < significance_level
    if significant and C < 1:
        return CLUSTERED
    if significant and C > 1:
        return DISPERSED
    return RANDOM


class Geary:
    """
    Geary's C global autocorrelation statistic.

    Parameters
    ----------
    y : array-like
        Values aligned with ``w.id_order``.
    w : WeightsMatrix
        Spatial weights. Its transformation is set to ``transformation``.
    transformation : {"R", "B", "O"}, default="R"
        Weights transformation.
    permutations : int, default=999
        Number of permutations. 0 skips the permutation test.
    seed : int, optional
        Seed of the permutation generator.
    diagnostics : Diagnostics, optional
        Collector for degenerate-input warnings.

    Attributes
    ----------
    C : float
        Observed statistic (0 when the denominator is degenerate).
    EC : float
        Expected value, always 1.0.
    VC_norm, seC_norm, z_norm, p_norm : float
        Inference under normality (one-tailed).
    VC_rand, seC_rand, z_rand, p_rand : float
        Inference under randomization (one-tailed).
    sim, p_sim, EC_sim, seC_sim, VC_sim, z_sim, p_z_sim
        Permutation inference (only with permutations).
    """

    def __init__(
        self,
        y,
        w: WeightsMatrix,
        transformation: str = "R",
        permutations: int = 999,
        seed: Optional[int] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        w.transform = transformation
        self.w = w
        self.y = y = as_values(y, w)
        self.n = y.shape[0]
        self.permutations = permutations
        self.diagnostics = ensure_diagnostics(diagnostics)
        self.sim = None
        self.p_sim = None

        self._focal_ix, self._neighbor_ix, self._weights = w.sparse_ix

        self.__moments()

        yd = y - (y.mean() if self.n else 0.0)
        yss = float((yd * yd).sum())
        self.den = yss * w.s0 * 2.0
        if self.den == 0:
            self.diagnostics.warn(
                ZERO_DENOMINATOR,
                "Geary's C: zero variance or zero weight total; C set to 0",
                log=logger,
                statistic="geary",
            )

        self.C = self.__calc(y)
        self.EC = 1.0
        de = self.C - 1.0
        self.z_norm = ratio(de, self.seC_norm)
        self.z_rand = ratio(de, self.seC_rand)
        self.p_norm = norm_sf_tail(self.z_norm)
        self.p_rand = norm_sf_tail(self.z_rand)

        if permutations:
            sim = permutation_distribution(self.y, self.__calc, permutations, seed)
            self.sim = sim
            self.p_sim = pseudo_p_value(sim, self.C)
            summary = simulation_summary(sim, self.C)
            self.EC_sim = summary["mean"]
            self.seC_sim = summary["std"]
            self.VC_sim = summary["var"]
            self.z_sim = summary["z_sim"]
            self.p_z_sim = norm_sf_tail(abs(self.z_sim))

    def __moments(self):
        y = self.y
        n = np.float64(self.n)
        s0 = np.float64(self.w.s0)
        s1 = np.float64(self.w.s1)
        s2 = np.float64(self.w.s2)
        s02 = s0 * s0

        with np.errstate(divide="ignore", invalid="ignore"):
            yd = y - (y.mean() if self.n else 0.0)
            yd2 = yd**2
            yd4 = yd**4
            k = (yd4.sum() / n) / ((yd2.sum() / n) ** 2)

            A = (n - 1) * s1 * (n * n - 3 * n + 3 - (n - 1) * k)
            B = (1.0 / 4) * ((n - 1) * s2 * (n * n + 3 * n - 6 - (n * n - n + 2) * k))
            C = s02 * (n * n - 3 - (n - 1) ** 2 * k)
            vc_rand = (A - B + C) / (n * (n - 2) * (n - 3) * s02)
            vc_norm = (1 / (2 * (n + 1) * s02)) * ((2 * s1 + s2) * (n - 1) - 4 * s02)

        self.VC_rand = finite(vc_rand)
        self.VC_norm = finite(vc_norm)
        self.seC_rand = safe_sqrt(self.VC_rand)
        self.seC_norm = safe_sqrt(self.VC_norm)

    def __calc(self, y) -> float:
        if self.den == 0:
            return 0.0
        diff = y[self._focal_ix] - y[self._neighbor_ix]
        num = float((self._weights * diff**2).sum())
        return (self.n - 1) * num / self.den

    @property
    def interpretation(self) -> str:
        return interpret_geary(self.C, self.p_sim)

    def summary(self, significance_level: float = SIGNIFICANCE_LEVEL) -> dict:
        """Result record with the observed value, null moments and permutation inference."""
        label = interpret_geary(self.C, self.p_sim, significance_level)
        record = {
            "C": self.C,
            "EC": self.EC,
            "VC_norm": self.VC_norm,
            "seC_norm": self.seC_norm,
            "z_norm": self.z_norm,
            "p_norm": self.p_norm,
            "VC_rand": self.VC_rand,
            "seC_rand": self.seC_rand,
            "z_rand": self.z_rand,
            "p_rand": self.p_rand,
            "permutations": self.permutations,
            "sim": self.sim,
            "p_sim": self.p_sim,
            "EC_sim": getattr(self, "EC_sim", None),
            "seC_sim": getattr(self, "seC_sim", None),
            "VC_sim": getattr(self, "VC_sim", None),
            "z_sim": getattr(self, "z_sim", None),
            "p_z_sim": getattr(self, "p_z_sim", None),
            "significant": self.p_sim is not None and self.p_sim < significance_level,
            "interpretation": label,
            "description": _DESCRIPTIONS[label],
        }
        return {k: to_native(v) for k, v in record.items()}
