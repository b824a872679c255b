"""
Permutation testing for spatial statistics.

A seeded linear congruential generator drives a Fisher-Yates shuffle of
the attribute vector. The statistic is recomputed on every shuffled copy
to build a reference distribution, from which a pseudo p-value is taken:

    larger = #(sim >= observed)
    larger = min(larger, P - larger)        (two-sided folding)
    p_sim  = (larger + 1) / (P + 1)

The same seed and inputs always give the same distribution.
"""

import logging
import time
from typing import Callable, Optional

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MODULUS = 2**31


class LCGRandom:
    """
    Linear congruential pseudo-random generator.

    state <- (a * state + c) mod m, with a = 1103515245, c = 12345,
    m = 2**31, advanced with exact integer arithmetic.

    Parameters
    ----------
    seed : int, optional
        Initial state. Default: current time in milliseconds.

    Examples
    --------
    >>> rng = LCGRandom(1234)
    >>> rng.state
    1234
    >>> rng.randint(10) == LCGRandom(1234).randint(10)
    True
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = int(time.time() * 1000)
        self.seed = int(seed)
        self.state = self.seed % LCG_MODULUS

    def next_state(self) -> int:
        self.state = (LCG_MULTIPLIER * self.state + LCG_INCREMENT) % LCG_MODULUS
        return self.state

    def random(self) -> float:
        """Next float in [0, 1)."""
        return self.next_state() / LCG_MODULUS

    def randint(self, upper: int) -> int:
        """Next integer in [0, upper)."""
        return int(self.random() * upper)


def shuffle(values, rng: Optional[LCGRandom] = None) -> np.ndarray:
    """
    Fisher-Yates shuffle of a copy of ``values``.

    Parameters
    ----------
    values : array-like
        Values to permute. Not modified.
    rng : LCGRandom, optional
        Generator to draw from. Default: a fresh time-seeded generator.

    Returns
    -------
    np.ndarray
        Permuted copy.
    """
    shuffled = np.array(values, copy=True)
    rng = rng or LCGRandom()
    for i in range(shuffled.shape[0] - 1, 0, -1):
        j = rng.randint(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def permutation_distribution(
    values,
    statistic: Callable[[np.ndarray], float],
    permutations: int = 999,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Reference distribution of a statistic under random relabelling.

    Parameters
    ----------
    values : array-like
        Observed values. Each trial shuffles this original vector.
    statistic : callable
        Maps a permuted vector to a float.
    permutations : int, default=999
        Number of trials.
    seed : int, optional
        Seed of the generator; one generator serves all trials.

    Returns
    -------
    np.ndarray
        Simulated statistics (length ``permutations``).
    """
    values = np.asarray(values)
    rng = LCGRandom(seed)
    sim = np.empty(permutations, dtype=np.float64)
    for i in range(permutations):
        sim[i] = statistic(shuffle(values, rng))
    return sim


def pseudo_p_value(sim, observed: float, two_sided: bool = True) -> float:
    """
    Pseudo p-value of an observed statistic.

    Parameters
    ----------
    sim : array-like
        Simulated statistics.
    observed : float
        Observed statistic.
    two_sided : bool, default=True
        Fold the count onto the more extreme tail.

    Returns
    -------
    float
        Value in {1/(P+1), ..., (P+1)/(P+1)}.
    """
    sim = np.asarray(sim, dtype=np.float64)
    permutations = sim.shape[0]
    larger = int(np.sum(sim >= observed))
    if two_sided and (permutations - larger) < larger:
        larger = permutations - larger
    return (larger + 1.0) / (permutations + 1.0)


def norm_sf_tail(z: float, two_tailed: bool = False) -> float:
    """
    Normal tail probability in the direction of ``z``.

    ``sf(z)`` for positive z, ``cdf(z)`` otherwise; doubled if two-tailed.
    NaN z gives NaN.
    """
    if z is None or np.isnan(z):
        return np.nan
    p = stats.norm.sf(z) if z > 0 else stats.norm.cdf(z)
    if two_tailed:
        p *= 2.0
    return float(p)


def simulation_summary(sim, observed: float) -> dict:
    """
    Moments of a simulated distribution and the observed z-score.

    Returns
    -------
    dict
        ``mean``, ``std`` (population), ``var``, ``z_sim``.
        ``z_sim`` is NaN when the distribution has zero spread.
    """
    sim = np.asarray(sim, dtype=np.float64)
    mean = float(sim.mean())
    std = float(np.sqrt(np.mean((sim - mean) ** 2)))
    if std > 0:
        z_sim = (observed - mean) / std
    else:
        z_sim = np.nan
    return {"mean": mean, "std": std, "var": std**2, "z_sim": float(z_sim)}


def permutation_test(
    values,
    statistic: Callable[[np.ndarray], float],
    observed: Optional[float] = None,
    n_permutations: int = 999,
    random_seed: Optional[int] = None,
    two_sided: bool = True,
) -> dict:
    """
    Full permutation test for a scalar statistic.

    Parameters
    ----------
    values : array-like
        Observed values.
    statistic : callable
        Maps a value vector to a float.
    observed : float, optional
        Observed statistic. Default: ``statistic(values)``.
    n_permutations : int, default=999
        Number of permutations. 0 skips the simulation.
    random_seed : int, optional
        Seed for reproducibility.
    two_sided : bool, default=True
        Fold the pseudo p-value onto the more extreme tail.

    Returns
    -------
    dict
        Dictionary with:
        - 'observed': Observed statistic
        - 'sim': Simulated statistics (None without permutations)
        - 'p_sim': Pseudo p-value
        - 'mean_sim', 'std_sim', 'var_sim': Moments of ``sim``
        - 'z_sim': Z-score of the observed value against ``sim``

    Examples
    --------
    >>> y = np.arange(10.0)
    >>> result = permutation_test(y, lambda v: v[:5].sum(), n_permutations=99,
    ...                           random_seed=42)
    >>> 0 < result['p_sim'] <= 1
    True
    """
    values = np.asarray(values)
    if observed is None:
        observed = statistic(values)

    if n_permutations <= 0:
        return {
            "observed": observed,
            "sim": None,
            "p_sim": None,
            "mean_sim": None,
            "std_sim": None,
            "var_sim": None,
            "z_sim": None,
        }

    sim = permutation_distribution(values, statistic, n_permutations, random_seed)
    summary = simulation_summary(sim, observed)
    logger.debug(f"Permutation test: {n_permutations} trials, seed={random_seed}")

    return {
        "observed": observed,
        "sim": sim,
        "p_sim": pseudo_p_value(sim, observed, two_sided=two_sided),
        "mean_sim": summary["mean"],
        "std_sim": summary["std"],
        "var_sim": summary["var"],
        "z_sim": summary["z_sim"],
    }
