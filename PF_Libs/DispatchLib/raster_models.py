"""
Data models shared by the dispatcher, the scheduler and the document.

Classes:
    RasterTarget: One editable bitmap plus its display placement
    FilterState: States a target passes through during one invocation
    TargetOutcome: Final result of one target in one invocation
    CancellationToken: Cooperative cancellation flag checked at row boundaries
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import numpy as np

from PF_Libs.errors import FilterCancelledError, InvalidParameterError
from PF_Libs.FilterLib.filter_base import check_buffer
from PF_Libs.SelectionLib.coordinate_mapper import DisplayTransform


@dataclass
class RasterTarget:
    """
    A single editable bitmap.

    Attributes:
        target_id: Stable identity token
        buffer: RGBA uint8 array (height, width, 4), replaced atomically
        transform: Placement on the canvas
        revision: Incremented on every buffer replacement
    """
    target_id: str
    buffer: np.ndarray
    transform: DisplayTransform = field(default_factory=DisplayTransform)
    revision: int = 0

    def __post_init__(self):
        check_buffer(self.buffer)
        if not str(self.target_id).strip():
            raise InvalidParameterError("target_id cannot be empty")

    @property
    def width(self) -> int:
        return int(self.buffer.shape[1])

    @property
    def height(self) -> int:
        return int(self.buffer.shape[0])


class FilterState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    FAST_PATH = "fast_path"
    MASKED_PATH = "masked_path"
    BLENDING = "blending"
    CACHING = "caching"
    COMMITTED = "committed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (FilterState.COMMITTED, FilterState.FAILED, FilterState.CANCELLED)


@dataclass
class TargetOutcome:
    """
    Result of applying one filter to one target.

    Attributes:
        target_id: The target
        state: Terminal state (COMMITTED, FAILED or CANCELLED)
        error: The exception that ended the run, if any
        cache_hit: True when the result was served from the cache
        path: "fast", "masked", "cache" or None when nothing ran
    """
    target_id: str
    state: FilterState
    error: Optional[BaseException] = None
    cache_hit: bool = False
    path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is FilterState.COMMITTED


# on_complete(outcome)
CompletionCallback = Callable[[TargetOutcome], None]

# progress(target_id, current_row, total_rows, message)
ProgressCallback = Callable[[str, int, int, str], None]


class CancellationToken:
    """
    Cooperative cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        PF_Libs.errors.FilterCancelledError: Filter task was cancelled
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FilterCancelledError("Filter task was cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
