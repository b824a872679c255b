"""
Global Moran's I spatial autocorrelation.

    I = (n / s0) * sum_i(z_i * lag(z)_i) / sum_i(z_i^2),   z = y - mean(y)

Inference under three null hypotheses: normality and randomization
(analytic variances from s0, s1, s2 and the kurtosis of z), and a
permutation reference distribution.
"""

import logging
from typing import Optional

import numpy as np

from geoesda.core.spatial_lag import lag_spatial
from geoesda.core.weights import WeightsMatrix
from geoesda.diagnostics import (
    NO_OBSERVATIONS,
    ZERO_VARIANCE,
    ZERO_WEIGHTS,
    Diagnostics,
    ensure_diagnostics,
)
from geoesda.esda._base import SIGNIFICANCE_LEVEL, as_values, finite, ratio, safe_sqrt, to_native
from geoesda.stats.permutation import (
    norm_sf_tail,
    permutation_distribution,
    pseudo_p_value,
    simulation_summary,
)

logger = logging.getLogger(__name__)


class Moran:
    """
    Moran's I global autocorrelation statistic.

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
    two_tailed : bool, default=True
        Double the analytic p-values and ``p_z_sim``.
    seed : int, optional
        Seed of the permutation generator.
    diagnostics : Diagnostics, optional
        Collector for degenerate-input warnings.

    Attributes
    ----------
    I : float
        Observed statistic (0 when the denominator is degenerate).
    EI : float
        Expected value under the null, -1 / (n - 1).
    VI_norm, seI_norm, z_norm, p_norm : float
        Inference under normality.
    VI_rand, seI_rand, z_rand, p_rand : float
        Inference under randomization.
    sim : np.ndarray
        Permutation distribution (only with permutations).
    p_sim, EI_sim, seI_sim, VI_sim, z_sim, p_z_sim : float
        Permutation inference (only with permutations).

    Examples
    --------
    >>> from geoesda.neighbors import KNNWeights
    >>> w = KNNWeights([[0, 0], [1, 0], [2, 0], [3, 0], [4, 0]], k=2)
    >>> mi = Moran([1.0, 2.0, 3.0, 4.0, 5.0], w, permutations=99, seed=1)
    >>> mi.I > mi.EI
    True
    """

    def __init__(
        self,
        y,
        w: WeightsMatrix,
        transformation: str = "R",
        permutations: int = 999,
        two_tailed: bool = True,
        seed: Optional[int] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        w.transform = transformation
        self.w = w
        self.y = as_values(y, w)
        self.permutations = permutations
        self.two_tailed = two_tailed
        self.sim = None
        self.p_sim = None

        self.__moments()
        self.diagnostics = ensure_diagnostics(diagnostics)
        self.__check_degenerate(self.diagnostics)

        self.I = self.__calc(self.z)
        self.z_norm = ratio(self.I - self.EI, self.seI_norm)
        self.z_rand = ratio(self.I - self.EI, self.seI_rand)
        self.p_norm = norm_sf_tail(self.z_norm, two_tailed)
        self.p_rand = norm_sf_tail(self.z_rand, two_tailed)

        if permutations:
            sim = permutation_distribution(self.z, self.__calc, permutations, seed)
            self.sim = sim
            self.p_sim = pseudo_p_value(sim, self.I)
            summary = simulation_summary(sim, self.I)
            self.EI_sim = summary["mean"]
            self.seI_sim = summary["std"]
            self.VI_sim = summary["var"]
            self.z_sim = summary["z_sim"]
            self.p_z_sim = norm_sf_tail(self.z_sim, two_tailed)

    def __moments(self):
        self.n = n = self.y.shape[0]
        mean = self.y.mean() if n else 0.0
        z = self.y - mean
        self.z = z
        self.z2ss = float((z * z).sum())
        self.EI = ratio(-1.0, n - 1) if n > 1 else np.nan

        s0 = np.float64(self.w.s0)
        s1 = np.float64(self.w.s1)
        s2 = np.float64(self.w.s2)
        s02 = s0 * s0
        nf = np.float64(n)
        n2 = nf * nf

        with np.errstate(divide="ignore", invalid="ignore"):
            v_num = n2 * s1 - nf * s2 + 3 * s02
            v_den = (nf - 1) * (nf + 1) * s02
            self.VI_norm = finite(v_num / v_den - (1.0 / (nf - 1)) ** 2)

            # variance under randomization
            k = (np.sum(z**4) / nf) / ((self.z2ss / nf) ** 2)
            A = nf * ((n2 - 3 * nf + 3) * s1 - nf * s2 + 3 * s02)
            B = k * ((n2 - nf) * s1 - 2 * nf * s2 + 6 * s02)
            self.VI_rand = finite(
                (A - B) / ((nf - 1) * (nf - 2) * (nf - 3) * s02) - self.EI * self.EI
            )

        self.seI_norm = safe_sqrt(self.VI_norm)
        self.seI_rand = safe_sqrt(self.VI_rand)

    def __check_degenerate(self, diagnostics):
        if self.n == 0:
            diagnostics.warn(NO_OBSERVATIONS, "Moran's I: no observations", log=logger)
        elif self.z2ss == 0:
            diagnostics.warn(
                ZERO_VARIANCE,
                "Moran's I: sum of squared deviations is 0 (all values identical); I set to 0",
                log=logger,
                statistic="moran",
            )
        elif self.w.s0 == 0:
            diagnostics.warn(
                ZERO_WEIGHTS,
                "Moran's I: weights sum to 0; I set to 0",
                log=logger,
                statistic="moran",
            )

    def __calc(self, z) -> float:
        if self.n == 0 or self.z2ss == 0 or self.w.s0 == 0:
            return 0.0
        zl = lag_spatial(self.w, z)
        inum = float((z * zl).sum())
        return (self.n / self.w.s0) * (inum / self.z2ss)

    def summary(self, significance_level: float = SIGNIFICANCE_LEVEL) -> dict:
        """Result record with the observed value, null moments and permutation inference."""
        record = {
            "I": self.I,
            "EI": self.EI,
            "VI_norm": self.VI_norm,
            "seI_norm": self.seI_norm,
            "z_norm": self.z_norm,
            "p_norm": self.p_norm,
            "VI_rand": self.VI_rand,
            "seI_rand": self.seI_rand,
            "z_rand": self.z_rand,
            "p_rand": self.p_rand,
            "permutations": self.permutations,
            "sim": self.sim,
            "p_sim": self.p_sim,
            "EI_sim": getattr(self, "EI_sim", None),
            "seI_sim": getattr(self, "seI_sim", None),
            "VI_sim": getattr(self, "VI_sim", None),
            "z_sim": getattr(self, "z_sim", None),
            "p_z_sim": getattr(self, "p_z_sim", None),
            "significant": self.p_sim is not None and self.p_sim < significance_level,
        }
        return {k: to_native(v) for k, v in record.items()}
