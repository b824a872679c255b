"""Exception types raised by geoesda."""


class SpatialAnalysisError(Exception):
    """
    Raised when a spatial analysis cannot be completed.

    The orchestrator wraps any unexpected failure in this error; the
    original exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(SpatialAnalysisError, ValueError):
    """Raised for structurally invalid configuration (e.g. unknown transform)."""
