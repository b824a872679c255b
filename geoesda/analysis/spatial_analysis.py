"""
End-to-end spatial analysis of a GeoJSON-like feature collection.

Pipeline:
1. KNN weights from the simplified centroids (features without one are
   left out of the matrix)
2. Weights transformation
3. Attribute values in the matrix id order (missing or invalid -> 0)
4. Spatial lag and its descriptive statistics
5. Moran's I, Geary's C, Getis-Ord G and Join Counts
6. A new collection where every feature carries ``spatial_lag``

The input collection is never modified.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from geoesda.config.dataclasses import AnalysisConfig
from geoesda.core.geometry import feature_id
from geoesda.core.spatial_lag import lag_spatial, lag_summary
from geoesda.diagnostics import (
    ALL_ZERO_VALUES,
    INVALID_VALUE,
    MISSING_VALUE,
    Diagnostics,
    ensure_diagnostics,
)
from geoesda.esda import Geary, GetisOrdG, Moran, join_counts_summary
from geoesda.esda._base import to_native
from geoesda.exceptions import ConfigurationError, SpatialAnalysisError
from geoesda.neighbors.knn import KNNWeights, min_threshold_distance

logger = logging.getLogger(__name__)

SPATIAL_LAG_FIELD = "spatial_lag"


@dataclass
class AnalysisResults:
    """
    Results of one spatial analysis run.

    Attributes
    ----------
    k : int
        Number of nearest neighbours.
    transform : str
        Weights transformation used for the lag, Moran's I and Geary's C.
    min_threshold_distance : float
        Largest nearest-neighbour great-circle distance (metres).
    spatial_lag : np.ndarray
        Lag of the analysed values, in ``id_order``.
    lag_stats : dict
        ``lag_mean``, ``lag_std``, ``original_mean``, ``correlation``.
    moran, geary, getis_ord : dict
        Statistic records (see the ``summary()`` of each statistic).
    join_counts : dict or None
        Join count record; None when there were no valid values.
    id_order : list of str
        Entity order of the weights matrix.
    warnings : list of DiagnosticRecord
        Non-fatal conditions met during the run.
    """

    k: int
    transform: str
    min_threshold_distance: float
    spatial_lag: np.ndarray
    lag_stats: dict
    moran: dict
    geary: dict
    getis_ord: dict
    join_counts: Optional[dict]
    id_order: list
    warnings: list = field(default_factory=list)
    spatial_lag_field: str = SPATIAL_LAG_FIELD

    def to_dict(self) -> dict:
        """JSON-friendly view of the results."""
        return {
            "k": self.k,
            "transform": self.transform,
            "min_threshold_distance": self.min_threshold_distance,
            "spatial_lag_field": self.spatial_lag_field,
            "spatial_lag": to_native(np.asarray(self.spatial_lag)),
            **self.lag_stats,
            "moran": self.moran,
            "geary": self.geary,
            "getis_ord": self.getis_ord,
            "join_counts": self.join_counts,
            "id_order": list(self.id_order),
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class SpatialAnalysisResult:
    """Augmented feature collection plus the analysis results."""

    collection: dict
    results: AnalysisResults

    def __iter__(self):
        return iter((self.collection, self.results))


def _to_float(raw) -> float:
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, (int, float, np.integer, np.floating)):
        return float(raw)
    if isinstance(raw, str):
        return float(raw.strip())
    raise TypeError(f"not a number: {type(raw).__name__}")


def extract_values(
    collection,
    id_order,
    value_field: str,
    diagnostics: Optional[Diagnostics] = None,
) -> np.ndarray:
    """
    Values of ``value_field`` for every entity, in ``id_order``.

    Missing, non-numeric and non-finite values are replaced by 0 and recorded
    in ``diagnostics``.

    Parameters
    ----------
    collection : mapping
        GeoJSON-like feature collection.
    id_order : sequence of str
        Entity ids (``w.id_order``).
    value_field : str
        Property to read.
    diagnostics : Diagnostics, optional
        Collector for warnings.

    Returns
    -------
    np.ndarray
        float64 values aligned with ``id_order``.

    Examples
    --------
    >>> fc = {"features": [{"properties": {"id": 1, "pop": 10}},
    ...                    {"properties": {"id": 2, "pop": "20"}}]}
    >>> extract_values(fc, ["1", "2"], "pop")
    array([10., 20.])
    """
    diagnostics = ensure_diagnostics(diagnostics)
    features = collection["features"]
    by_id = {feature_id(f, idx): f for idx, f in enumerate(features)}

    y = np.zeros(len(id_order), dtype=np.float64)
    for i, id_ in enumerate(id_order):
        feature = by_id.get(str(id_))
        properties = ((feature or {}).get("properties")) or {}
        raw = properties.get(value_field)
        if raw is None:
            diagnostics.warn(
                MISSING_VALUE,
                f"Feature {id_!r} has no {value_field!r} value; using 0",
                log=logger,
                feature_id=str(id_),
                field=value_field,
            )
            continue
        try:
            value = _to_float(raw)
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value):
            diagnostics.warn(
                INVALID_VALUE,
                f"Feature {id_!r} has an invalid {value_field!r} value {raw!r}; using 0",
                log=logger,
                feature_id=str(id_),
                field=value_field,
            )
            continue
        y[i] = value
    return y


def add_spatial_lag(collection, lag, id_order, field_name: str = SPATIAL_LAG_FIELD) -> dict:
    """
    Copy of ``collection`` with a spatial lag property on every feature.

    Features outside ``id_order`` (no centroid) get 0.

    Parameters
    ----------
    collection : mapping
        GeoJSON-like feature collection. Not modified.
    lag : array-like
        Lag values aligned with ``id_order``.
    id_order : sequence of str
        Entity ids of the weights matrix.
    field_name : str, default="spatial_lag"
        Property name to write.

    Returns
    -------
    dict
        New collection; features and their properties are shallow copies.
    """
    features = collection["features"]
    position = {feature_id(f, idx): idx for idx, f in enumerate(features)}

    lag_full = [0.0] * len(features)
    for value, id_ in zip(np.asarray(lag, dtype=np.float64), id_order):
        idx = position.get(str(id_))
        if idx is not None:
            lag_full[idx] = float(value)

    new_features = []
    for idx, f in enumerate(features):
        properties = dict(f.get("properties") or {})
        properties[field_name] = lag_full[idx]
        new_features.append({**f, "properties": properties})
    return {**collection, "features": new_features}


def _resolve_config(config: Optional[AnalysisConfig], options: dict) -> AnalysisConfig:
    if config is None:
        return AnalysisConfig.from_dict(options)
    if options:
        return AnalysisConfig.from_dict({**config.to_dict(), **options})
    return AnalysisConfig.from_dict(config.to_dict())


def analyze(collection, config: Optional[AnalysisConfig] = None, **options: Any) -> SpatialAnalysisResult:
    """
    Run the full spatial analysis on a feature collection.

    Parameters
    ----------
    collection : mapping
        GeoJSON-like feature collection with a ``features`` list.
    config : AnalysisConfig, optional
        Analysis options. Default: ``AnalysisConfig()``.
    **options
        Overrides of individual options (``k``, ``value_field`` /
        ``valueField``, ``transformation``, ``binary_threshold`` /
        ``binaryThreshold``, ``permutations``, ``seed``, ...).

    Returns
    -------
    SpatialAnalysisResult
        ``collection``: a new collection whose features carry
        ``spatial_lag``; ``results``: :class:`AnalysisResults`.

    Raises
    ------
    ConfigurationError
        For invalid options (e.g. an unsupported transformation).
    SpatialAnalysisError
        For any other failure, with the original exception as ``cause``.

    Examples
    --------
    >>> fc = {"features": [
    ...     {"geometry": {"type": "Point", "coordinates": [x, 0]},
    ...      "properties": {"count": v}}
    ...     for x, v in enumerate([1, 2, 3, 10, 11, 12])]}
    >>> collection, results = analyze(fc, k=2, permutations=99)
    >>> results.moran["I"] > 0
    True
    """
    diagnostics = Diagnostics(log=logger)

    try:
        config = _resolve_config(config, options)
        logger.info(
            f"Spatial analysis: k={config.k}, field={config.value_field!r}, "
            f"transform={config.transformation}, permutations={config.permutations}"
        )
        features = list(collection["features"])

        w = KNNWeights.from_features(features, k=config.k)
        w.transform = config.transformation

        y = extract_values(collection, w.id_order, config.value_field, diagnostics)
        if not np.any(y != 0):
            diagnostics.warn(
                ALL_ZERO_VALUES,
                f"All values of {config.value_field!r} are 0; check the field name",
                log=logger,
                field=config.value_field,
            )

        lag = lag_spatial(w, y)
        lag_stats = lag_summary(y, lag)
        min_thr = min_threshold_distance(w.points)

        moran = Moran(
            y,
            w,
            transformation=config.transformation,
            permutations=config.permutations,
            two_tailed=config.two_tailed,
            seed=config.seed,
            diagnostics=diagnostics,
        )
        moran_record = moran.summary(config.significance_level)
        moran_record.update(
            {
                "original_values": to_native(y),
                "lag_values": to_native(lag),
                "standardized_values": to_native(moran.z),
                "standardized_lag_values": to_native(lag_spatial(w, moran.z)),
            }
        )

        geary = Geary(
            y,
            w,
            transformation=config.transformation,
            permutations=config.permutations,
            seed=config.seed,
            diagnostics=diagnostics,
        )
        getis = GetisOrdG(
            y, w, permutations=config.permutations, seed=config.seed, diagnostics=diagnostics
        )
        join_counts = join_counts_summary(
            y,
            w,
            threshold=config.binary_threshold,
            permutations=config.permutations,
            seed=config.seed,
            significance_level=config.significance_level,
            diagnostics=diagnostics,
        )

        geary_record = geary.summary(config.significance_level)
        getis_record = getis.summary(config.significance_level)
        augmented = add_spatial_lag(collection, lag, w.id_order)
    except ConfigurationError:
        raise
    except Exception as exc:
        logger.error(f"Spatial analysis failed: {exc}")
        raise SpatialAnalysisError(f"Spatial analysis failed: {exc}", cause=exc) from exc

    results = AnalysisResults(
        k=config.k,
        transform=config.transformation,
        min_threshold_distance=min_thr,
        spatial_lag=lag,
        lag_stats=lag_stats,
        moran=moran_record,
        geary=geary_record,
        getis_ord=getis_record,
        join_counts=join_counts,
        id_order=w.id_order,
        warnings=list(diagnostics.records),
    )
    logger.info(
        f"Spatial analysis complete: {w.n} entities, {len(results.warnings)} warning(s)"
    )
    return SpatialAnalysisResult(collection=augmented, results=results)
