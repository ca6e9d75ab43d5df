"""
Error taxonomy for the pixel filter engine.

Classes:
    FilterEngineError: Base class for every engine error
    InvalidParameterError: A filter parameter is missing, mistyped or out of range
    UnsupportedFilterKindError: The filter identifier is not recognized
    DegenerateTransformError: A target's display transform cannot be inverted
    NoTargetsError: An invocation resolved to an empty target list
    CacheCorruptionError: A cached result failed its consistency check
    FilterCancelledError: A task was cancelled or superseded before commit
"""


class FilterEngineError(Exception):
    """Base class for pixel filter engine errors."""


class InvalidParameterError(FilterEngineError, ValueError):
    """Raised when a parameter fails validation. No buffer is mutated."""


class UnsupportedFilterKindError(FilterEngineError, KeyError):
    """Raised for an unrecognized filter identifier. No buffer is mutated."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class DegenerateTransformError(FilterEngineError, ValueError):
    """Raised when a target has zero scale on an axis."""


class NoTargetsError(FilterEngineError):
    """Raised when a strict invocation resolves to no targets."""


class CacheCorruptionError(FilterEngineError):
    """Raised internally when a cache entry fails its consistency check."""


class FilterCancelledError(FilterEngineError):
    """Raised when a task is cancelled or superseded by a newer invocation."""
