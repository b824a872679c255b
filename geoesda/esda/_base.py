"""Shared helpers for the ESDA statistics."""

import numpy as np

from geoesda.core.weights import WeightsMatrix

SIGNIFICANCE_LEVEL = 0.05


def as_values(y, w: WeightsMatrix) -> np.ndarray:
    """Flatten ``y`` to float64 and check it is aligned with ``w``."""
    y = np.asarray(y, dtype=np.float64).ravel()
    if y.shape[0] != w.n:
        raise ValueError(
            f"Got {y.shape[0]} values for a weights matrix of {w.n} entities; "
            f"values must follow w.id_order"
        )
    return y


def safe_sqrt(x) -> float:
    """Square root that yields NaN for negative or undefined input."""
    x = float(x)
    if np.isnan(x) or x < 0:
        return np.nan
    return float(np.sqrt(x))


def ratio(num, den) -> float:
    """``num / den`` with NaN or +/-inf instead of ZeroDivisionError."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(num) / np.float64(den))


def to_native(value):
    """numpy scalars and arrays to plain Python values."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return value


def finite(x) -> float:
    """``x`` as float, or NaN when it is infinite or undefined."""
    x = float(x)
    return x if np.isfinite(x) else np.nan
