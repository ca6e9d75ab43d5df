"""
In-memory collaborators for the filter engine.

The engine talks to its host through two narrow surfaces:

    Document model:
        get_pixel_buffer(target_id) -> RGBA uint8 array
        get_display_transform(target_id) -> DisplayTransform
        replace_pixel_buffer(target_id, buffer, source=None)

    Selection subsystem:
        get_active_mask() -> SelectionMask | None

InMemoryDocument and SelectionState implement both for hosts without their
own object model, and for tests. Stored buffers are frozen so a reader can
never see a half-written buffer; every replacement swaps in a new array.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
from PIL import Image

from PF_Libs.FilterLib.filter_base import check_buffer
from PF_Libs.DispatchLib.raster_models import RasterTarget
from PF_Libs.SelectionLib.coordinate_mapper import DisplayTransform
from PF_Libs.SelectionLib.selection_models import SelectionMask

logger = logging.getLogger(__name__)

# listener(target_id, source)
BufferListener = Callable[[str, Any], None]


def _frozen_copy(buffer: np.ndarray) -> np.ndarray:
    copy = np.array(buffer, dtype=np.uint8, copy=True)
    copy.setflags(write=False)
    return copy


class InMemoryDocument:
    """
    A flat collection of raster targets.

    Example:
        >>> document = InMemoryDocument()
        >>> document.add_target("layer-1", np.zeros((4, 4, 4), dtype=np.uint8))
        >>> document.get_pixel_buffer("layer-1").shape
        (4, 4, 4)
    """

    def __init__(self):
        self._targets: Dict[str, RasterTarget] = {}
        self._listeners: List[BufferListener] = []
        self._selected: List[str] = []
        self._lock = threading.RLock()
        self.object_selection_mode = False

    # ------------------------------------------------------------------
    # Target management
    # ------------------------------------------------------------------

    def add_target(
        self,
        target_id: str,
        buffer: np.ndarray,
        transform: Optional[DisplayTransform] = None,
    ) -> RasterTarget:
        """
        Add a raster target.

        Raises:
            ValueError: If target_id is already present
        """
        target_id = str(target_id)
        check_buffer(buffer)
        target = RasterTarget(
            target_id=target_id,
            buffer=_frozen_copy(buffer),
            transform=transform or DisplayTransform(),
        )
        with self._lock:
            if target_id in self._targets:
                raise ValueError(f"Target '{target_id}' already exists")
            self._targets[target_id] = target
        logger.debug(f"Added target {target_id} ({target.width}x{target.height})")
        return target

    def add_image(
        self,
        target_id: str,
        image: Image.Image,
        transform: Optional[DisplayTransform] = None,
    ) -> RasterTarget:
        """Add a target from a Pillow image (converted to RGBA)."""
        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return self.add_target(target_id, np.array(image), transform)

    def remove_target(self, target_id: str) -> bool:
        with self._lock:
            removed = self._targets.pop(str(target_id), None) is not None
            if removed and str(target_id) in self._selected:
                self._selected.remove(str(target_id))
        return removed

    def get_target(self, target_id: str) -> RasterTarget:
        """
        Raises:
            KeyError: If the target does not exist
        """
        with self._lock:
            try:
                return self._targets[str(target_id)]
            except KeyError:
                raise KeyError(f"Unknown target: {target_id}") from None

    def raster_ids(self) -> List[str]:
        with self._lock:
            return list(self._targets)

    def to_image(self, target_id: str) -> Image.Image:
        """Current buffer of a target as a Pillow RGBA image."""
        return Image.fromarray(np.array(self.get_pixel_buffer(target_id)))

    # ------------------------------------------------------------------
    # Engine-facing surface
    # ------------------------------------------------------------------

    def get_pixel_buffer(self, target_id: str) -> np.ndarray:
        return self.get_target(target_id).buffer

    def get_display_transform(self, target_id: str) -> DisplayTransform:
        return self.get_target(target_id).transform

    def set_display_transform(self, target_id: str, transform: DisplayTransform) -> None:
        with self._lock:
            self.get_target(target_id).transform = transform

    def get_revision(self, target_id: str) -> int:
        return self.get_target(target_id).revision

    def replace_pixel_buffer(self, target_id: str, buffer: np.ndarray, source: Any = None) -> None:
        """
        Atomically replace a target's buffer and notify listeners.

        Args:
            target_id: Target to update
            buffer: New RGBA uint8 buffer with the target's dimensions
            source: Who made the change; passed through to listeners

        Raises:
            KeyError: If the target does not exist
            ValueError: If the buffer dimensions differ from the target's
        """
        check_buffer(buffer)
        with self._lock:
            target = self.get_target(target_id)
            if buffer.shape != target.buffer.shape:
                raise ValueError(
                    f"Buffer shape {buffer.shape} does not match target "
                    f"{target_id} {target.buffer.shape}"
                )
            target.buffer = _frozen_copy(buffer)
            target.revision += 1
            listeners = list(self._listeners)

        for listener in listeners:
            listener(str(target_id), source)

    # ------------------------------------------------------------------
    # Listeners and object selection
    # ------------------------------------------------------------------

    def add_listener(self, listener: BufferListener) -> None:
        if not callable(listener):
            raise ValueError(f"listener must be callable, got {type(listener)}")
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: BufferListener) -> bool:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                return True
        return False

    def select(self, target_ids: Iterable[str]) -> None:
        """Mark objects as selected (used in object-selection mode)."""
        ids = [str(t) for t in target_ids]
        with self._lock:
            missing = [t for t in ids if t not in self._targets]
            if missing:
                raise KeyError(f"Unknown targets: {', '.join(missing)}")
            self._selected = ids

    def selected_ids(self) -> List[str]:
        with self._lock:
            return list(self._selected)


class SelectionState:
    """Holds the active selection mask; None means no selection."""

    def __init__(self, mask: Optional[SelectionMask] = None):
        self._lock = threading.Lock()
        self._mask: Optional[SelectionMask] = None
        self.set_mask(mask)

    def get_active_mask(self) -> Optional[SelectionMask]:
        with self._lock:
            return self._mask

    def set_mask(self, mask: Optional[SelectionMask]) -> None:
        if mask is not None and not isinstance(mask, SelectionMask):
            raise TypeError(f"Expected SelectionMask, got {type(mask)}")
        with self._lock:
            self._mask = mask

    def clear(self) -> None:
        self.set_mask(None)
