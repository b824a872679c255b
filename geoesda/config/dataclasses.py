"""
Configuration dataclasses for spatial analysis.

These dataclasses provide type-safe configuration for the analysis
pipeline: neighbour count, attribute field, weights transformation and
the permutation test.
"""

import json
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Optional, Union

import numpy as np

from geoesda.exceptions import ConfigurationError


class TransformMode(Enum):
    """Weights transformation modes."""

    ORIGINAL = "O"
    BINARY = "B"
    ROW_STANDARDIZED = "R"

    @classmethod
    def parse(cls, value: Union[str, "TransformMode"]) -> "TransformMode":
        """
        Parse a transform name case-insensitively.

        Raises
        ------
        ConfigurationError
            If ``value`` is not one of ``"O"``, ``"B"``, ``"R"``.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ConfigurationError(
            f"Unsupported weights transformation: {value!r}. Use 'O', 'B' or 'R'."
        )


# Option names accepted from callers that use the camelCase form.
_ALIASES = {
    "valueField": "value_field",
    "binaryThreshold": "binary_threshold",
    "twoTailed": "two_tailed",
    "significanceLevel": "significance_level",
}


def _convert_to_native(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, dict):
        return {k: _convert_to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_to_native(v) for v in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, Enum):
        return obj.value
    else:
        return obj


@dataclass
class AnalysisConfig:
    """
    Spatial analysis configuration.

    Parameters
    ----------
    k : int
        Number of nearest neighbours per feature.
    value_field : str
        Attribute analysed in every feature's properties.
    transformation : str
        Weights transformation for the lag, Moran's I and Geary's C:
        ``"O"`` original, ``"B"`` binary, ``"R"`` row-standardized.
    binary_threshold : float, optional
        Cut point for Join Counts. ``None`` uses ``(min + max) / 2``.
    permutations : int
        Number of Monte-Carlo permutations. 0 disables significance tests.
    seed : int, optional
        Seed of the permutation generator.
    two_tailed : bool
        Whether Moran's analytic p-values are two-tailed.
    significance_level : float
        Cut-off applied to pseudo p-values for significance flags.

    Example
    -------
    >>> config = AnalysisConfig(k=6, value_field="population")
    >>> config.save("analysis.json")
    """

    k: int = 8
    value_field: str = "count"
    transformation: str = "R"
    binary_threshold: Optional[float] = None
    permutations: int = 999
    seed: Optional[int] = 1234
    two_tailed: bool = False
    significance_level: float = 0.05

    def validate(self) -> "AnalysisConfig":
        """Check every option, raising :class:`ConfigurationError` on the first bad one."""
        if isinstance(self.k, bool) or not isinstance(self.k, (int, np.integer)) or self.k < 1:
            raise ConfigurationError(f"k must be a positive integer, got {self.k!r}")
        if not isinstance(self.value_field, str) or not self.value_field:
            raise ConfigurationError(
                f"value_field must be a non-empty string, got {self.value_field!r}"
            )
        self.transformation = TransformMode.parse(self.transformation).value
        if (
            isinstance(self.permutations, bool)
            or not isinstance(self.permutations, (int, np.integer))
            or self.permutations < 0
        ):
            raise ConfigurationError(
                f"permutations must be a non-negative integer, got {self.permutations!r}"
            )
        if self.seed is not None and not isinstance(self.seed, (int, np.integer)):
            raise ConfigurationError(f"seed must be an integer or None, got {self.seed!r}")
        if self.binary_threshold is not None:
            try:
                self.binary_threshold = float(self.binary_threshold)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"binary_threshold must be a number or None, got {self.binary_threshold!r}"
                ) from exc
        if (
            isinstance(self.significance_level, bool)
            or not isinstance(self.significance_level, (int, float, np.integer, np.floating))
            or not 0.0 < self.significance_level < 1.0
        ):
            raise ConfigurationError(
                f"significance_level must be in (0, 1), got {self.significance_level!r}"
            )
        if not isinstance(self.two_tailed, (bool, np.bool_)):
            raise ConfigurationError(f"two_tailed must be a boolean, got {self.two_tailed!r}")
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return _convert_to_native(asdict(self))

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisConfig":
        """
        Build a config from a mapping of options.

        Accepts both ``value_field`` and ``valueField`` spellings. Unknown
        keys raise :class:`ConfigurationError`.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in d.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown analysis option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs).validate()

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "AnalysisConfig":
        """Load configuration from JSON file."""
        with open(path) as f:
            d = json.load(f)
        return cls.from_dict(d)
