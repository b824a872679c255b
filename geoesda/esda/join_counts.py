"""
Binary join counts.

For a 0/1 variable, count the joins between neighbours:
- BB: both endpoints 1
- WW: both endpoints 0
- BW: endpoints differ

Counts are taken over the directed adjacency list of the binary weights
and halved, on the assumption that every undirected join is listed from
both sides. KNN relations are directed, so one-sided joins contribute a
half and counts can be fractional.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from geoesda.core.weights import WeightsMatrix
from geoesda.diagnostics import NO_OBSERVATIONS, Diagnostics, ensure_diagnostics
from geoesda.esda._base import SIGNIFICANCE_LEVEL, as_values, to_native
from geoesda.stats.permutation import LCGRandom, pseudo_p_value, shuffle

logger = logging.getLogger(__name__)

CLUSTERED = "clustered"
DISPERSED = "dispersed"
NO_PATTERN = "no significant pattern"


def binary_threshold(y) -> Optional[float]:
    """Midpoint ``(min + max) / 2`` of the finite values, None if there are none."""
    y = np.asarray(y, dtype=np.float64)
    valid = y[np.isfinite(y)]
    if valid.size == 0:
        return None
    return (float(valid.min()) + float(valid.max())) / 2.0


def binarize(y, threshold: float) -> np.ndarray:
    """1 where ``y > threshold``, else 0."""
    y = np.asarray(y, dtype=np.float64)
    return (y > threshold).astype(np.int64)


class JoinCounts:
    """
    Binary join count statistics.

    Parameters
    ----------
    y : array-like
        Binary (0/1) values aligned with ``w.id_order``.
    w : WeightsMatrix
        Spatial weights. Its transformation is forced to binary.
    permutations : int, default=999
        Number of permutations. 0 skips the permutation test.
    seed : int, optional
        Seed of the permutation generator.

    Attributes
    ----------
    bb, ww, bw : float
        Observed join counts (halved directed tallies).
    J : float
        Total joins, bb + ww + bw.
    adj_list : pd.DataFrame
        Directed adjacency list the counts are taken over.
    sim_bb, sim_bw : np.ndarray
        Permutation distributions (only with permutations).
    mean_bb, mean_bw : float
        Means of the permutation distributions.
    p_sim_bb, p_sim_bw : float
        Upper-tail pseudo p-values.

    Examples
    --------
    >>> from geoesda.neighbors import KNNWeights
    >>> w = KNNWeights([[0, 0], [1, 0], [2, 0], [3, 0]], k=1)
    >>> jc = JoinCounts([1, 1, 0, 0], w, permutations=0)
    >>> (jc.bb, jc.bw, jc.ww)
    (1.0, 0.5, 0.5)
    """

    def __init__(
        self,
        y,
        w: WeightsMatrix,
        permutations: int = 999,
        seed: Optional[int] = None,
    ):
        w.transform = "B"
        self.w = w
        self.y = as_values(y, w)
        self.permutations = permutations
        self.adj_list = w.to_adjlist(remove_symmetric=False, drop_islands=True)

        index = pd.Index(w.id_order)
        focal_ix = index.get_indexer(self.adj_list["focal"])
        neighbor_ix = index.get_indexer(self.adj_list["neighbor"])
        keep = (focal_ix >= 0) & (neighbor_ix >= 0)
        self._focal_ix = focal_ix[keep]
        self._neighbor_ix = neighbor_ix[keep]

        self.bb, self.ww, self.bw = self.__calc(self.y)
        self.J = self.bb + self.ww + self.bw

        self.sim_bb = self.sim_bw = None
        self.mean_bb = self.mean_bw = None
        self.p_sim_bb = self.p_sim_bw = None

        if permutations > 0:
            rng = LCGRandom(seed)
            sim = np.array([self.__calc(shuffle(self.y, rng)) for _ in range(permutations)])
            self.sim_bb = sim[:, 0]
            self.sim_bw = sim[:, 2]
            self.mean_bb = float(self.sim_bb.mean())
            self.mean_bw = float(self.sim_bw.mean())
            self.p_sim_bb = pseudo_p_value(self.sim_bb, self.bb, two_sided=False)
            self.p_sim_bw = pseudo_p_value(self.sim_bw, self.bw, two_sided=False)

    def __calc(self, z) -> tuple[float, float, float]:
        focal = z[self._focal_ix]
        neighbor = z[self._neighbor_ix]
        same = focal == neighbor
        bb = float(np.sum(same & (focal == 1)))
        ww = float(np.sum(same & (focal == 0)))
        bw = float(np.sum(~same))
        return bb / 2, ww / 2, bw / 2

    @property
    def pattern(self) -> str:
        return join_counts_pattern(self.bb, self.mean_bb, self.p_sim_bb)

    def summary(self, significance_level: float = SIGNIFICANCE_LEVEL) -> dict:
        """Result record with the observed counts and permutation inference."""
        record = {
            "bb": self.bb,
            "ww": self.ww,
            "bw": self.bw,
            "total": self.J,
            "permutations": self.permutations,
            "sim_bb": self.sim_bb,
            "sim_bw": self.sim_bw,
            "mean_bb": self.mean_bb,
            "mean_bw": self.mean_bw,
            "p_sim_bb": self.p_sim_bb,
            "p_sim_bw": self.p_sim_bw,
            "significant_bb": self.p_sim_bb is not None and self.p_sim_bb < significance_level,
            "significant_bw": self.p_sim_bw is not None and self.p_sim_bw < significance_level,
            "pattern": join_counts_pattern(
                self.bb, self.mean_bb, self.p_sim_bb, significance_level
            ),
        }
        return {k: to_native(v) for k, v in record.items()}


def join_counts_pattern(
    bb: float,
    mean_bb: Optional[float],
    p_sim_bb: Optional[float],
    significance_level: float = SIGNIFICANCE_LEVEL,
) -> str:
    """
    Label a join count result from its BB inference.

    ``"clustered"`` when BB is significant and above its permutation mean,
    ``"dispersed"`` when significant and not above it, otherwise
    ``"no significant pattern"``.
    """
    if p_sim_bb is None or p_sim_bb >= significance_level:
        return NO_PATTERN
    if mean_bb is not None and bb > mean_bb:
        return CLUSTERED
    return DISPERSED


def join_counts_summary(
    y,
    w: WeightsMatrix,
    threshold: Optional[float] = None,
    permutations: int = 999,
    seed: Optional[int] = None,
    significance_level: float = SIGNIFICANCE_LEVEL,
    diagnostics: Optional[Diagnostics] = None,
) -> Optional[dict]:
    """
    Binarize continuous values and run join counts on them.

    Parameters
    ----------
    y : array-like
        Continuous values aligned with ``w.id_order``.
    w : WeightsMatrix
        Spatial weights (forced to binary).
    threshold : float, optional
        Values strictly above it are coded 1. Default: (min + max) / 2.
    permutations : int, default=999
        Number of permutations.
    seed : int, optional
        Seed of the permutation generator.
    significance_level : float, default=0.05
        Cut-off for the significance flags and pattern label.
    diagnostics : Diagnostics, optional
        Collector for warnings.

    Returns
    -------
    dict or None
        Join count record plus ``threshold``, ``total_ones``,
        ``total_zeros`` and ``min``/``max``/``mean``/``std`` of the raw
        values; None when there are no finite values.
    """
    diagnostics = ensure_diagnostics(diagnostics)
    y = as_values(y, w)
    valid = y[np.isfinite(y)]
    if valid.size == 0:
        diagnostics.warn(
            NO_OBSERVATIONS,
            "Join counts: no valid values to classify",
            log=logger,
            statistic="join_counts",
        )
        return None

    if threshold is None:
        threshold = binary_threshold(valid)
        logger.info(f"Join counts auto threshold: {threshold}")

    binary = binarize(y, threshold)
    jc = JoinCounts(binary, w, permutations=permutations, seed=seed)

    mean = float(valid.mean())
    record = jc.summary(significance_level)
    record.update(
        {
            "threshold": float(threshold),
            "total_ones": int((binary == 1).sum()),
            "total_zeros": int((binary == 0).sum()),
            "min": float(valid.min()),
            "max": float(valid.max()),
            "mean": mean,
            "std": float(np.sqrt(np.mean((valid - mean) ** 2))),
        }
    )
    return record
