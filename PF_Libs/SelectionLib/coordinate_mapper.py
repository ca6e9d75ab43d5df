"""
Mapping between canvas display space and a target's native pixel space.

A target is placed on the canvas by a DisplayTransform: its pixel-space origin
sits at (left, top) in display space, pixels are scaled independently along
X and Y, then rotated by `angle` degrees about the origin. With a y-down
display space, a positive angle turns the target clockwise on screen.

The mapper is built once per target per invocation and threaded through the
pipeline, so the affine matrix is composed and inverted exactly once.

Example:
    >>> mapper = CoordinateMapper(DisplayTransform(left=10, top=20, scale_x=2), 4, 4)
    >>> mapper.to_display_space(1.0, 1.0)
    (12.0, 21.0)
    >>> mapper.to_pixel_space(12.0, 21.0)
    (1.0, 1.0)
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from PF_Libs.errors import DegenerateTransformError
from PF_Libs.SelectionLib.selection_models import Rect


@dataclass(frozen=True)
class DisplayTransform:
    """Placement of a raster target on the canvas."""

    left: float = 0.0
    top: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayTransform":
        """Create from dictionary, ignoring unknown keys."""
        return cls(**{k: float(v) for k, v in data.items() if k in cls.__dataclass_fields__})


class CoordinateMapper:
    """
    Affine mapper for one target.

    Args:
        transform: The target's display transform
        width: Native pixel width of the target
        height: Native pixel height of the target

    Raises:
        DegenerateTransformError: If either scale is zero or any component is
                                  not finite
    """

    def __init__(self, transform: DisplayTransform, width: int, height: int):
        values = (transform.left, transform.top, transform.scale_x,
                  transform.scale_y, transform.angle)
        if not all(math.isfinite(float(v)) for v in values):
            raise DegenerateTransformError(f"Display transform is not finite: {transform}")
        if float(transform.scale_x) == 0.0 or float(transform.scale_y) == 0.0:
            raise DegenerateTransformError(
                f"Display transform has zero scale "
                f"(scale_x={transform.scale_x}, scale_y={transform.scale_y})"
            )

        self.transform = transform
        self.width = int(width)
        self.height = int(height)

        theta = math.radians(float(transform.angle))
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        rotation = np.array([[cos_t, -sin_t], [sin_t, cos_t]], dtype=np.float64)
        scale = np.diag([float(transform.scale_x), float(transform.scale_y)])

        self._forward = rotation @ scale
        self._inverse = np.linalg.inv(self._forward)
        self._offset = np.array([float(transform.left), float(transform.top)], dtype=np.float64)

    @property
    def is_axis_aligned(self) -> bool:
        return float(self.transform.angle) % 90.0 == 0.0

    def to_display_space(self, px: float, py: float) -> Tuple[float, float]:
        """Map a pixel-space point to display space."""
        x, y = self._forward @ np.array([px, py], dtype=np.float64) + self._offset
        return (float(x), float(y))

    def to_pixel_space(self, x: float, y: float) -> Tuple[float, float]:
        """Map a display-space point to pixel space."""
        px, py = self._inverse @ (np.array([x, y], dtype=np.float64) - self._offset)
        return (float(px), float(py))

    def pixel_centers_to_display(
        self, rows: Optional[Sequence[int]] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Display-space coordinates of pixel centres.

        Args:
            rows: Row indices to map (default: every row)

        Returns:
            (xs, ys) float arrays shaped (len(rows), width)
        """
        if rows is None:
            row_index = np.arange(self.height, dtype=np.float64)
        else:
            row_index = np.asarray(rows, dtype=np.float64).reshape(-1)

        px, py = np.meshgrid(np.arange(self.width, dtype=np.float64) + 0.5, row_index + 0.5)
        (a, b), (c, d) = self._forward
        xs = a * px + b * py + self._offset[0]
        ys = c * px + d * py + self._offset[1]
        return xs, ys

    def display_bounds(self) -> Rect:
        """Smallest integer rectangle containing the target in display space."""
        corners = [
            self.to_display_space(px, py)
            for px, py in ((0, 0), (self.width, 0), (0, self.height), (self.width, self.height))
        ]
        # Snap rotation float noise so exact edges stay exact
        xs = [round(c[0], 9) for c in corners]
        ys = [round(c[1], 9) for c in corners]
        left, top = math.floor(min(xs)), math.floor(min(ys))
        right, bottom = math.ceil(max(xs)), math.ceil(max(ys))
        return Rect(int(left), int(top), int(right - left), int(bottom - top))

    def __repr__(self) -> str:
        return f"CoordinateMapper({self.transform}, {self.width}x{self.height})"
