"""
Partial-coverage blending of original and filtered pixels.

Per channel: result = round(original * (1 - a) + filtered * a), a = coverage / 255.
Coverage 0 yields the original exactly and coverage 255 the filtered value
exactly. Filters that never touch alpha pass the source alpha through.
"""

from typing import Sequence

import numpy as np

from PF_Libs.constants import ALPHA_CHANNEL, MAX_CHANNEL_VALUE
from PF_Libs.FilterLib.filter_base import check_buffer, clamp_byte, to_byte_array
from PF_Libs.FilterLib.filter_models import RgbaColor


def blend(
    original: Sequence[int],
    filtered: Sequence[int],
    coverage: int,
    alpha_invariant: bool = False,
) -> RgbaColor:
    """
    Blend one RGBA pixel.

    Args:
        original: Source (r, g, b, a)
        filtered: Filtered (r, g, b, a)
        coverage: Selection coverage 0..255
        alpha_invariant: Pass the source alpha through unchanged

    Returns:
        Blended (r, g, b, a)
    """
    coverage = int(coverage)
    if not 0 <= coverage <= MAX_CHANNEL_VALUE:
        raise ValueError(f"coverage must be 0..255, got {coverage}")
    if len(original) != 4 or len(filtered) != 4:
        raise ValueError("Pixels must have exactly 4 channels")

    if coverage == 0:
        return tuple(int(v) for v in original)

    a = coverage / MAX_CHANNEL_VALUE
    mixed = [
        int(f) if coverage == MAX_CHANNEL_VALUE else clamp_byte(o * (1.0 - a) + f * a)
        for o, f in zip(original, filtered)
    ]
    if alpha_invariant:
        mixed[ALPHA_CHANNEL] = int(original[ALPHA_CHANNEL])
    return tuple(mixed)


def blend_buffers(
    original: np.ndarray,
    filtered: np.ndarray,
    coverage: np.ndarray,
    alpha_invariant: bool = False,
) -> np.ndarray:
    """
    Vectorised `blend` over whole buffers.

    Args:
        original: RGBA uint8 array (height, width, 4)
        filtered: RGBA uint8 array of the same shape
        coverage: uint8 array (height, width)
        alpha_invariant: Pass the source alpha through unchanged

    Returns:
        New RGBA uint8 array
    """
    original = check_buffer(original)
    filtered = check_buffer(filtered)
    if original.shape != filtered.shape:
        raise ValueError(f"Buffer shapes differ: {original.shape} vs {filtered.shape}")
    coverage = np.asarray(coverage)
    if coverage.shape != original.shape[:2]:
        raise ValueError(
            f"Coverage shape {coverage.shape} does not match buffer {original.shape[:2]}"
        )

    a = (coverage.astype(np.float64) / MAX_CHANNEL_VALUE)[..., None]
    result = to_byte_array(original.astype(np.float64) * (1.0 - a) + filtered.astype(np.float64) * a)

    full = coverage == MAX_CHANNEL_VALUE
    result[full] = filtered[full]
    none = coverage == 0
    result[none] = original[none]

    if alpha_invariant:
        result[..., ALPHA_CHANNEL] = original[..., ALPHA_CHANNEL]
    return result
