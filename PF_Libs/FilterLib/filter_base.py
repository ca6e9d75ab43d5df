"""
Base classes and buffer helpers shared by every filter algorithm.

A buffer is a numpy array of shape (height, width, 4) and dtype uint8 (RGBA).
Algorithms are pure: they never mutate their input buffer and always return
a fresh array of the same shape.

Classes:
    FilterAlgorithm: Base class for all filter algorithms
    PixelFilterAlgorithm: Base class for filters with a per-pixel law

Functions:
    check_buffer: Validate an RGBA uint8 buffer
    check_include: Validate an inclusion map against a buffer
    to_byte_array: Round half up and clamp float values into uint8
    clamp_byte: Scalar version of to_byte_array
"""

import math
from typing import Any, Optional

import numpy as np

from PF_Libs.constants import CHANNELS, MAX_CHANNEL_VALUE
from PF_Libs.FilterLib.filter_models import FilterKind, FilterParams, RgbaColor


def check_buffer(buffer: Any) -> np.ndarray:
    """
    Validate a pixel buffer.

    Raises:
        TypeError: If buffer is not a numpy uint8 array
        ValueError: If buffer is not shaped (height, width, 4)
    """
    if not isinstance(buffer, np.ndarray):
        raise TypeError(f"Expected numpy array, got {type(buffer)}")
    if buffer.dtype != np.uint8:
        raise TypeError(f"Expected uint8 buffer, got {buffer.dtype}")
    if buffer.ndim != 3 or buffer.shape[2] != CHANNELS:
        raise ValueError(f"Expected buffer shaped (height, width, 4), got {buffer.shape}")
    return buffer


def check_include(include: Optional[np.ndarray], buffer: np.ndarray) -> Optional[np.ndarray]:
    if include is None:
        return None
    include = np.asarray(include, dtype=bool)
    if include.shape != buffer.shape[:2]:
        raise ValueError(
            f"Inclusion map shape {include.shape} does not match buffer {buffer.shape[:2]}"
        )
    return include


def to_byte_array(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, MAX_CHANNEL_VALUE).astype(np.uint8)


def clamp_byte(value: float) -> int:
    return int(max(0, min(MAX_CHANNEL_VALUE, math.floor(value + 0.5))))


class FilterAlgorithm:
    """
    Base class for filter algorithms.

    Subclasses set `kind`, declare whether they ever touch the alpha channel
    (`alpha_invariant`) and whether they sample a neighborhood
    (`neighborhood`), and implement `_apply_whole`.
    """

    kind: Optional[FilterKind] = None
    alpha_invariant: bool = True
    neighborhood: bool = False

    def apply_whole(
        self,
        buffer: np.ndarray,
        params: FilterParams,
        include: Optional[np.ndarray] = None,
        token: Any = None,
    ) -> np.ndarray:
        """
        Apply the filter to a whole buffer.

        Args:
            buffer: RGBA uint8 array (height, width, 4); never mutated
            params: Validated parameter record for this kind
            include: Optional boolean (height, width) map. Pixels outside it
                     are copied through unchanged and are never sampled by
                     neighborhood filters.
            token: Optional cancellation token, checked at line boundaries

        Returns:
            New RGBA uint8 array of the same shape
        """
        buffer = check_buffer(buffer)
        include = check_include(include, buffer)

        if params.is_identity():
            return buffer.copy()

        return self._apply_whole(buffer, params, include, token)

    def _apply_whole(
        self,
        buffer: np.ndarray,
        params: FilterParams,
        include: Optional[np.ndarray],
        token: Any,
    ) -> np.ndarray:
        raise NotImplementedError

    def apply_pixel(self, r: int, g: int, b: int, a: int, params: FilterParams) -> RgbaColor:
        raise TypeError(
            f"{type(self).__name__} needs a pixel neighborhood; use apply_whole()"
        )

    def __repr__(self) -> str:
        kind = self.kind.value if self.kind is not None else "?"
        return f"<{type(self).__name__} kind={kind}>"


class PixelFilterAlgorithm(FilterAlgorithm):
    """
    Filter whose output pixel depends only on the input pixel.

    Subclasses implement `transform` (vectorised over an (..., 4) uint8
    array) and `transform_pixel` (scalar).
    """

    def _apply_whole(self, buffer, params, include, token):
        result = buffer.copy()
        if include is None:
            result[...] = self.transform(buffer, params)
        elif include.any():
            result[include] = self.transform(buffer[include], params)
        return result

    def apply_pixel(self, r: int, g: int, b: int, a: int, params: FilterParams) -> RgbaColor:
        if params.is_identity():
            return (int(r), int(g), int(b), int(a))
        return self.transform_pixel(int(r), int(g), int(b), int(a), params)

    def transform(self, pixels: np.ndarray, params: FilterParams) -> np.ndarray:
        raise NotImplementedError

    def transform_pixel(self, r: int, g: int, b: int, a: int, params: FilterParams) -> RgbaColor:
        raise NotImplementedError
