"""
Structured diagnostics for non-fatal analysis conditions.

Missing attribute values, zero variance or an empty weights matrix do not
abort an analysis. They are recorded here and returned with the results,
and each record is also emitted on the caller's logger.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

MISSING_VALUE = "missing_value"
INVALID_VALUE = "invalid_value"
ALL_ZERO_VALUES = "all_zero_values"
ZERO_VARIANCE = "zero_variance"
ZERO_WEIGHTS = "zero_weights"
ZERO_DENOMINATOR = "zero_denominator"
NO_OBSERVATIONS = "no_observations"


@dataclass(frozen=True)
class DiagnosticRecord:
    """
    One non-fatal condition observed during an analysis.

    Parameters
    ----------
    code : str
        Machine-readable condition code, e.g. ``"zero_variance"``.
    message : str
        Human-readable description.
    context : dict
        Extra values describing the condition (feature id, statistic, ...).
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "context": dict(self.context)}


class Diagnostics:
    """
    Collector of :class:`DiagnosticRecord` objects.

    Examples
    --------
    >>> diag = Diagnostics()
    >>> _ = diag.warn("zero_variance", "all values identical", statistic="moran")
    >>> diag.codes()
    ['zero_variance']
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.records: list[DiagnosticRecord] = []
        self._logger = log or logger

    def warn(self, code: str, message: str, log: Optional[logging.Logger] = None, **context: Any):
        """Record a warning and emit it at WARNING level."""
        record = DiagnosticRecord(code=code, message=message, context=context)
        self.records.append(record)
        (log or self._logger).warning(f"{code}: {message}")
        return record

    def codes(self) -> list[str]:
        return [r.code for r in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


def ensure_diagnostics(diagnostics: Optional[Diagnostics]) -> Diagnostics:
    """Return ``diagnostics`` or a fresh collector when None."""
    if diagnostics is None:
        return Diagnostics()
    return diagnostics
