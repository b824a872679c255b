"""Exploratory spatial data analysis statistics."""

from geoesda.esda.geary import Geary, interpret_geary
from geoesda.esda.getisord import GetisOrdG, interpret_getis
from geoesda.esda.join_counts import (
    JoinCounts,
    binarize,
    binary_threshold,
    join_counts_summary,
    join_counts_pattern,
)
from geoesda.esda.moran import Moran

__all__ = [
    "Moran",
    "Geary",
    "GetisOrdG",
    "JoinCounts",
    "interpret_geary",
    "interpret_getis",
    "binarize",
    "binary_threshold",
    "join_counts_summary",
    "join_counts_pattern",
]
