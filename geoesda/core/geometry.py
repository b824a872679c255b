"""
Representative points for GeoJSON-like features.

Centroids are unweighted vertex averages:
- Point: the coordinate itself
- Polygon: mean of the exterior ring vertices
- MultiPoint: mean of all points
- MultiPolygon: mean of every exterior ring vertex, pooled

Any other or empty geometry has no centroid; such features are left out
of the weights matrix but kept in the output collection.
"""

from typing import Optional

import numpy as np


def feature_id(feature, index: int) -> str:
    """
    Identifier of a feature: ``properties["id"]`` or its position.

    Parameters
    ----------
    feature : mapping
        GeoJSON-like feature.
    index : int
        Position of the feature in its collection.

    Returns
    -------
    str
        Identifier as a string.
    """
    properties = (feature or {}).get("properties") or {}
    fid = properties.get("id")
    if fid is None:
        return str(index)
    return str(fid)


def _vertex_mean(points) -> Optional[tuple[float, float]]:
    if points is None or len(points) == 0:
        return None
    arr = np.asarray([p[:2] for p in points], dtype=np.float64)
    mean = arr.mean(axis=0)
    return float(mean[0]), float(mean[1])


def simplified_centroid(feature) -> Optional[tuple[float, float]]:
    """
    Compute the simplified centroid of a feature.

    Parameters
    ----------
    feature : mapping
        GeoJSON-like feature with a ``geometry`` member.

    Returns
    -------
    tuple of float or None
        ``(x, y)`` or None for unsupported or empty geometries.

    Examples
    --------
    >>> square = {"geometry": {"type": "Polygon",
    ...           "coordinates": [[[0, 0], [2, 0], [2, 2], [0, 2]]]}}
    >>> simplified_centroid(square)
    (1.0, 1.0)

    Notes
    -----
    Vertex averages are not area-weighted, and a closed ring counts its
    repeated first vertex twice.
    """
    if not feature:
        return None
    geom = feature.get("geometry")
    if not geom:
        return None

    gtype = geom.get("type")
    coords = geom.get("coordinates")
    if not coords:
        return None

    if gtype == "Point":
        if len(coords) < 2:
            return None
        return float(coords[0]), float(coords[1])

    if gtype == "Polygon":
        return _vertex_mean(coords[0])

    if gtype == "MultiPoint":
        return _vertex_mean(coords)

    if gtype == "MultiPolygon":
        pooled = []
        for polygon in coords:
            if polygon:
                pooled.extend(polygon[0] or [])
        return _vertex_mean(pooled)

    return None


def extract_centroids(features) -> tuple[list[str], np.ndarray]:
    """
    Identifiers and centroids of the features that have one.

    Parameters
    ----------
    features : sequence of mapping
        Features in collection order.

    Returns
    -------
    ids : list of str
        Identifiers of features with a centroid, in enumeration order.
    coords : np.ndarray
        Centroids of shape (len(ids), 2).
    """
    ids = []
    coords = []
    for idx, feature in enumerate(features):
        centroid = simplified_centroid(feature)
        if centroid is None:
            continue
        ids.append(feature_id(feature, idx))
        coords.append(centroid)

    if not coords:
        return ids, np.zeros((0, 2), dtype=np.float64)
    return ids, np.asarray(coords, dtype=np.float64)
