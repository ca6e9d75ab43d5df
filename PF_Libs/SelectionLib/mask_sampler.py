"""
Nearest-cell sampling of selection coverage.

The selection subsystem hands over masks that are already feathered, so
sampling is a plain nearest-cell lookup: a display-space point (x, y) reads
cell (floor(y - bounds.y), floor(x - bounds.x)). Points outside the bounding
rectangle read 0.
"""

import logging
import math
from typing import Any, Callable, Optional

import numpy as np

from PF_Libs.constants import DEFAULT_PROGRESS_INTERVAL_ROWS
from PF_Libs.SelectionLib.coordinate_mapper import CoordinateMapper
from PF_Libs.SelectionLib.selection_models import SelectionMask

logger = logging.getLogger(__name__)

# progress(current_row, total_rows)
RowProgress = Callable[[int, int], None]


def sample(mask: SelectionMask, x: float, y: float) -> int:
    """
    Coverage (0..255) of the mask at a display-space point.

    Returns 0 for points outside the mask's bounding rectangle.
    """
    bounds = mask.bounds
    if not (math.isfinite(x) and math.isfinite(y)) or not bounds.contains(x, y):
        return 0
    col = int(math.floor(x - bounds.x))
    row = int(math.floor(y - bounds.y))
    return int(mask.coverage[row, col])


def sample_grid(mask: SelectionMask, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """
    Vectorised `sample` over arrays of display-space coordinates.

    Args:
        mask: Selection mask
        xs: Display X coordinates
        ys: Display Y coordinates, same shape as xs

    Returns:
        uint8 array of coverage values, same shape as xs
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.shape != ys.shape:
        raise ValueError(f"Coordinate arrays differ in shape: {xs.shape} vs {ys.shape}")

    bounds = mask.bounds
    result = np.zeros(xs.shape, dtype=np.uint8)
    if bounds.width == 0 or bounds.height == 0:
        return result

    cols = np.floor(xs - bounds.x)
    rows = np.floor(ys - bounds.y)
    inside = (
        (cols >= 0) & (cols < bounds.width)
        & (rows >= 0) & (rows < bounds.height)
    )
    if inside.any():
        result[inside] = mask.coverage[rows[inside].astype(np.intp), cols[inside].astype(np.intp)]
    return result


def coverage_for_target(
    mask: SelectionMask,
    mapper: CoordinateMapper,
    token: Any = None,
    progress: Optional[RowProgress] = None,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL_ROWS,
) -> np.ndarray:
    """
    Coverage map of a target in its own pixel space.

    Each pixel centre is mapped to display space and sampled. Rows are
    processed one at a time so cancellation and progress have row
    granularity.

    Args:
        mask: Selection mask in display space
        mapper: Mapper for the target
        token: Optional cancellation token, checked before each row
        progress: Optional callback progress(current_row, total_rows)
        progress_interval: Report progress every this many rows

    Returns:
        uint8 array shaped (height, width)
    """
    height, width = mapper.height, mapper.width
    coverage = np.zeros((height, width), dtype=np.uint8)

    if height == 0 or width == 0 or mask.is_empty():
        return coverage

    if not mapper.display_bounds().intersects(mask.bounds):
        logger.debug("Mask does not overlap target; coverage is empty")
        return coverage

    interval = max(1, int(progress_interval))
    for row in range(height):
        if token is not None:
            token.raise_if_cancelled()
        xs, ys = mapper.pixel_centers_to_display(rows=[row])
        coverage[row] = sample_grid(mask, xs[0], ys[0])
        if progress is not None and (row % interval == 0 or row == height - 1):
            progress(row + 1, height)

    return coverage
