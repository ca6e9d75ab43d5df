"""
Neighborhood (convolution) filters: blur and sharpen.

Blur approximates a Gaussian with three successive separable box-blur passes
(horizontal then vertical). Samples beyond the buffer edge are clamped to the
nearest edge pixel. Sharpen is an unsharp mask built on the same blur.

Both filters are mask-aware: given an inclusion map, excluded pixels are
copied through unchanged on every pass and never contribute to an averaging
window. A pixel whose whole window is excluded keeps its value.

Performance:
    Each one-dimensional pass runs scipy.ndimage.uniform_filter1d over one
    line at a time, so the cost is O(width * height) per pass regardless of
    radius. The cancellation token is checked between lines.

Example:
    >>> blurred = BlurFilter().apply_whole(buffer, BlurParams(radius=30))
    >>> sharpened = SharpenFilter().apply_whole(buffer, SharpenParams(strength=50))
"""

import math
from typing import Any, Optional

import numpy as np
from scipy import ndimage

from PF_Libs.constants import (
    BLUR_PASSES,
    BLUR_PIXEL_SCALE,
    SHARPEN_BLUR_RADIUS,
    SHARPEN_GAIN,
)
from PF_Libs.FilterLib.filter_base import FilterAlgorithm, check_buffer, check_include, to_byte_array
from PF_Libs.FilterLib.filter_models import BlurParams, FilterKind, SharpenParams


def blur_half_width(radius: float) -> int:
    """
    Convert a blur radius percentage to a box half-width in pixels.

    Args:
        radius: Blur radius in percent (0-100)

    Returns:
        Half-width in pixels, ceil(radius / 100 * 10)
    """
    return int(math.ceil(max(0.0, float(radius)) / 100.0 * BLUR_PIXEL_SCALE))


def _check_token(token: Any) -> None:
    if token is not None:
        token.raise_if_cancelled()


def _box_pass(
    values: np.ndarray,
    weights: Optional[np.ndarray],
    half_width: int,
    axis: int,
    token: Any = None,
) -> np.ndarray:
    """
    One box-blur pass along `axis` (1 = horizontal, 0 = vertical).

    Each line (row for horizontal, column for vertical) is filtered
    independently. With weights, the window average only counts neighbours
    whose weight is non-zero, and zero-weight pixels are passed through.
    """
    size = 2 * half_width + 1
    result = values.copy()

    # Iterate over lines: rows of the array for a horizontal pass,
    # rows of the transposed array for a vertical pass
    source_lines = values if axis == 1 else np.swapaxes(values, 0, 1)
    result_lines = result if axis == 1 else np.swapaxes(result, 0, 1)
    weight_lines = None
    if weights is not None:
        weight_lines = weights if axis == 1 else weights.T

    for index in range(source_lines.shape[0]):
        _check_token(token)
        line = source_lines[index].astype(np.float64)

        if weight_lines is None:
            averaged = ndimage.uniform_filter1d(line, size=size, axis=0, mode="nearest")
            result_lines[index] = to_byte_array(averaged)
            continue

        line_weights = weight_lines[index]
        if not line_weights.any():
            continue

        numerator = ndimage.uniform_filter1d(
            line * line_weights[:, None], size=size, axis=0, mode="nearest"
        )
        denominator = ndimage.uniform_filter1d(
            line_weights, size=size, axis=0, mode="nearest"
        )
        update = (line_weights > 0) & (denominator > 0)
        averaged = numerator[update] / denominator[update][:, None]
        result_lines[index][update] = to_byte_array(averaged)

    return result


def box_blur(
    buffer: np.ndarray,
    half_width: int,
    include: Optional[np.ndarray] = None,
    token: Any = None,
    passes: int = BLUR_PASSES,
) -> np.ndarray:
    """
    Blur an RGBA buffer with repeated separable box passes.

    Args:
        buffer: RGBA uint8 array (height, width, 4)
        half_width: Box half-width in pixels (0 = no blur)
        include: Optional boolean map of pixels that may be sampled and changed
        token: Optional cancellation token checked at line boundaries
        passes: Number of horizontal+vertical pass pairs (default 3)

    Returns:
        Blurred RGBA uint8 array; all four channels are blurred
    """
    buffer = check_buffer(buffer)
    include = check_include(include, buffer)

    if half_width <= 0:
        return buffer.copy()

    weights = include.astype(np.float64) if include is not None else None
    current = buffer
    for _ in range(passes):
        current = _box_pass(current, weights, half_width, axis=1, token=token)
        current = _box_pass(current, weights, half_width, axis=0, token=token)
    return current if current is not buffer else buffer.copy()


class BlurFilter(FilterAlgorithm):
    kind = FilterKind.BLUR
    alpha_invariant = False
    neighborhood = True

    def _apply_whole(self, buffer, params: BlurParams, include, token):
        return box_blur(buffer, blur_half_width(params.radius), include, token)


class SharpenFilter(FilterAlgorithm):
    """
    Unsharp mask: v' = v + (v - blurred) * (1 + 2 * strength / 100).

    The blurred copy uses a fixed 2 px half-width and the same inclusion map,
    so detail is never computed from unselected pixels. Alpha is untouched.
    """

    kind = FilterKind.SHARPEN
    alpha_invariant = True
    neighborhood = True

    def _apply_whole(self, buffer, params: SharpenParams, include, token):
        blurred = box_blur(buffer, blur_half_width(SHARPEN_BLUR_RADIUS), include, token)
        gain = 1.0 + SHARPEN_GAIN * params.strength / 100.0

        original = buffer[..., :3].astype(np.float64)
        detail = original - blurred[..., :3].astype(np.float64)

        result = buffer.copy()
        result[..., :3] = to_byte_array(original + detail * gain)
        if include is not None:
            result[~include] = buffer[~include]
        return result
