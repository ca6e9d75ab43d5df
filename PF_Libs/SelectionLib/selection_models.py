"""
Selection data models.

A selection mask is an alpha-only coverage field in display space: a
bounding rectangle plus a same-sized uint8 coverage array. Masks are
immutable snapshots; the engine never edits them.

Classes:
    Rect: Integer axis-aligned rectangle in display space
    SelectionMask: Bounding rectangle plus coverage array
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np
from PIL import Image

from PF_Libs.constants import DIGEST_SIZE, MAX_CHANNEL_VALUE, NO_MASK_DIGEST
from PF_Libs.errors import InvalidParameterError


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with integer origin and size."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidParameterError(f"Rect.{name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))
        if self.width < 0 or self.height < 0:
            raise InvalidParameterError(
                f"Rect size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersects(self, other: "Rect") -> bool:
        return (
            self.x < other.right and other.x < self.right
            and self.y < other.bottom and other.y < self.bottom
        )

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


class SelectionMask:
    """
    Read-only coverage field over display space.

    Args:
        bounds: Bounding rectangle in display space
        coverage: uint8 array shaped (bounds.height, bounds.width); values
                  0 (excluded) .. 255 (fully included)

    Raises:
        InvalidParameterError: If the coverage array does not match the bounds

    Example:
        >>> mask = SelectionMask.from_rect(Rect(0, 0, 2, 4))
        >>> mask.coverage[0, 0]
        255
    """

    def __init__(self, bounds: Rect, coverage: Any):
        if not isinstance(bounds, Rect):
            raise TypeError(f"bounds must be a Rect, got {type(bounds)}")

        array = np.asarray(coverage)
        if array.ndim != 2:
            raise InvalidParameterError(f"Coverage must be 2-D, got shape {array.shape}")
        if array.shape != (bounds.height, bounds.width):
            raise InvalidParameterError(
                f"Coverage shape {array.shape} does not match bounds "
                f"{bounds.width}x{bounds.height}"
            )
        if array.dtype != np.uint8:
            if array.size and (array.min() < 0 or array.max() > MAX_CHANNEL_VALUE):
                raise InvalidParameterError("Coverage values must be within 0..255")
            array = array.astype(np.uint8)

        self._bounds = bounds
        self._coverage = np.array(array, dtype=np.uint8, copy=True)
        self._coverage.setflags(write=False)
        self._digest: Optional[str] = None

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @property
    def coverage(self) -> np.ndarray:
        return self._coverage

    def is_empty(self) -> bool:
        return not self._coverage.any()

    def digest(self) -> str:
        """BLAKE2b digest over the bounding rectangle and coverage bytes."""
        if self._digest is None:
            hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
            hasher.update(np.asarray(self._bounds.as_tuple(), dtype=np.int64).tobytes())
            hasher.update(self._coverage.tobytes())
            self._digest = hasher.hexdigest()
        return self._digest

    def trimmed(self) -> "SelectionMask":
        """Return a mask whose bounds shrink to the non-zero cells."""
        rows = np.flatnonzero(self._coverage.any(axis=1))
        cols = np.flatnonzero(self._coverage.any(axis=0))
        if rows.size == 0:
            return SelectionMask(
                Rect(self._bounds.x, self._bounds.y, 0, 0),
                np.zeros((0, 0), dtype=np.uint8),
            )
        top, bottom = int(rows[0]), int(rows[-1]) + 1
        left, right = int(cols[0]), int(cols[-1]) + 1
        return SelectionMask(
            Rect(self._bounds.x + left, self._bounds.y + top, right - left, bottom - top),
            self._coverage[top:bottom, left:right],
        )

    @classmethod
    def from_rect(cls, rect: Rect, value: int = MAX_CHANNEL_VALUE) -> "SelectionMask":
        """Uniform coverage over a rectangle (a hard-edged marquee selection)."""
        if not 0 <= int(value) <= MAX_CHANNEL_VALUE:
            raise InvalidParameterError(f"Coverage value must be 0..255, got {value}")
        return cls(rect, np.full((rect.height, rect.width), int(value), dtype=np.uint8))

    @classmethod
    def from_image(cls, image: Image.Image, origin: Tuple[int, int] = (0, 0)) -> "SelectionMask":
        """
        Build a mask from a Pillow image.

        Grayscale ("L") images are used directly. Images with an alpha channel
        contribute their alpha; anything else is converted to grayscale.

        Args:
            image: Pillow image whose pixels hold coverage
            origin: Display-space position of the image's top-left corner
        """
        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        if image.mode == "L":
            coverage = np.array(image)
        elif image.mode in ("RGBA", "LA", "PA"):
            coverage = np.array(image.getchannel("A"))
        else:
            coverage = np.array(image.convert("L"))

        x, y = origin
        return cls(Rect(int(x), int(y), image.width, image.height), coverage)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self._coverage))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectionMask):
            return NotImplemented
        return self.digest() == other.digest()

    def __hash__(self) -> int:
        return hash(self.digest())

    def __repr__(self) -> str:
        return f"SelectionMask(bounds={self._bounds.as_tuple()}, digest={self.digest()[:8]})"


def mask_digest(mask: Optional[SelectionMask]) -> str:
    """Digest of a mask, or the fixed sentinel when no mask is active."""
    return NO_MASK_DIGEST if mask is None else mask.digest()
