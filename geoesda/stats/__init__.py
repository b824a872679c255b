"""Statistical testing modules."""

from geoesda.stats.permutation import (
    LCGRandom,
    permutation_distribution,
    permutation_test,
    pseudo_p_value,
    shuffle,
    simulation_summary,
)

__all__ = [
    "LCGRandom",
    "shuffle",
    "permutation_distribution",
    "pseudo_p_value",
    "simulation_summary",
    "permutation_test",
]
