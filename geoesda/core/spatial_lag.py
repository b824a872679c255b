"""
Spatial lag computation.

The spatial lag is the weighted sum of neighbouring values:
    lag_i = sum_j(w_ij * y_j)

With row-standardized weights this is the neighbourhood average.
"""

from typing import Optional

import numpy as np

from geoesda.core.weights import WeightsMatrix


def lag_spatial(w: WeightsMatrix, y) -> np.ndarray:
    """
    Compute the spatial lag of a vector.

    Formula: lag = W @ y

    Parameters
    ----------
    w : WeightsMatrix
        Spatial weights in its active transformation.
    y : array-like
        Values aligned with ``w.id_order`` (length n).

    Returns
    -------
    np.ndarray
        Spatial lag vector (length n). Islands get 0.

    Examples
    --------
    >>> w = WeightsMatrix({"A": ["B", "C"], "B": ["A"], "C": ["A"]})
    >>> w.transform = "R"
    >>> lag_spatial(w, [10.0, 20.0, 30.0])
    array([25., 10., 10.])

    Notes
    -----
    Missing (NaN) neighbour values contribute 0 to the sum instead of
    propagating NaN.
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    if y.shape[0] != w.n:
        raise ValueError(f"Expected {w.n} values aligned with the weights, got {y.shape[0]}")
    y = np.where(np.isnan(y), 0.0, y)
    return np.asarray(w.sparse @ y).ravel()


def lag_summary(y, lag) -> dict:
    """
    Descriptive statistics of a spatial lag against its original values.

    Parameters
    ----------
    y : array-like
        Original values.
    lag : array-like
        Spatial lag of ``y``.

    Returns
    -------
    dict
        ``lag_mean``, ``lag_std`` (population), ``original_mean`` and
        ``correlation`` (Pearson; None when undefined).
    """
    y = np.asarray(y, dtype=np.float64)
    lag = np.asarray(lag, dtype=np.float64)

    if lag.size == 0:
        return {"lag_mean": None, "lag_std": None, "original_mean": None, "correlation": None}

    lag_mean = float(lag.mean())
    lag_std = float(np.sqrt(np.mean((lag - lag_mean) ** 2)))
    original_mean = float(y.mean()) if y.size else None

    correlation: Optional[float] = None
    if lag.shape == y.shape and lag.size > 1:
        yd = y - original_mean
        ld = lag - lag_mean
        denominator = np.sqrt(np.sum(yd**2) * np.sum(ld**2))
        if denominator != 0:
            correlation = float(np.sum(yd * ld) / denominator)

    return {
        "lag_mean": lag_mean,
        "lag_std": lag_std,
        "original_mean": original_mean,
        "correlation": correlation,
    }
