"""
Per-pixel color filters.

Every filter in this module maps one RGBA pixel to one RGBA pixel and never
changes the alpha channel. Each provides a vectorised `transform` used on
whole buffers and a scalar `transform_pixel` used for single pixels.

Example:
    >>> import numpy as np
    >>> buffer = np.full((4, 4, 4), 128, dtype=np.uint8)
    >>> buffer[..., 3] = 255
    >>> result = BrightnessFilter().apply_whole(buffer, AdjustmentParams(50))
    >>> result[0, 0].tolist()
    [255, 255, 255, 255]
"""

from colorsys import hls_to_rgb, rgb_to_hls

import numpy as np

from PF_Libs.constants import (
    CONTRAST_FACTOR_BASE,
    CONTRAST_LIMIT,
    CONTRAST_PIVOT,
    LUMINANCE_WEIGHTS,
    MAX_CHANNEL_VALUE,
    SEPIA_MATRIX,
    TEMPERATURE_SCALE,
)
from PF_Libs.FilterLib.filter_base import PixelFilterAlgorithm, clamp_byte, to_byte_array
from PF_Libs.FilterLib.filter_models import (
    AdjustmentParams,
    ExposureParams,
    FilterKind,
    HueParams,
    NoParams,
    SepiaParams,
    TemperatureParams,
)

WR, WG, WB = LUMINANCE_WEIGHTS


def _split(pixels: np.ndarray):
    values = pixels.astype(np.float64)
    return values[..., 0], values[..., 1], values[..., 2]


def _merge(pixels: np.ndarray, r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    result = pixels.copy()
    result[..., 0] = to_byte_array(r)
    result[..., 1] = to_byte_array(g)
    result[..., 2] = to_byte_array(b)
    return result


def luminance(r, g, b):
    """Rec. 709 luminance; works on scalars and arrays alike."""
    return WR * r + WG * g + WB * b


def contrast_factor(adjustment: float) -> float:
    c = max(-CONTRAST_LIMIT, min(CONTRAST_LIMIT, adjustment / 100.0))
    return (CONTRAST_FACTOR_BASE * (c + 1.0)) / (CONTRAST_FACTOR_BASE - c)


# ============================================================================
# Tonal adjustments
# ============================================================================

class BrightnessFilter(PixelFilterAlgorithm):
    kind = FilterKind.BRIGHTNESS

    def offset(self, params: AdjustmentParams) -> float:
        return params.adjustment / 100.0 * MAX_CHANNEL_VALUE

    def transform(self, pixels, params):
        r, g, b = _split(pixels)
        delta = self.offset(params)
        return _merge(pixels, r + delta, g + delta, b + delta)

    def transform_pixel(self, r, g, b, a, params):
        delta = self.offset(params)
        return (clamp_byte(r + delta), clamp_byte(g + delta), clamp_byte(b + delta), a)


class ExposureFilter(BrightnessFilter):
    """Exposure is brightness with an asymmetric gain on the adjustment."""

    kind = FilterKind.EXPOSURE

    def offset(self, params: ExposureParams) -> float:
        return params.brightness_adjustment() / 100.0 * MAX_CHANNEL_VALUE


class ContrastFilter(PixelFilterAlgorithm):
    kind = FilterKind.CONTRAST

    def transform(self, pixels, params: AdjustmentParams):
        factor = contrast_factor(params.adjustment)
        r, g, b = _split(pixels)
        return _merge(
            pixels,
            factor * (r - CONTRAST_PIVOT) + CONTRAST_PIVOT,
            factor * (g - CONTRAST_PIVOT) + CONTRAST_PIVOT,
            factor * (b - CONTRAST_PIVOT) + CONTRAST_PIVOT,
        )

    def transform_pixel(self, r, g, b, a, params: AdjustmentParams):
        factor = contrast_factor(params.adjustment)
        return (
            clamp_byte(factor * (r - CONTRAST_PIVOT) + CONTRAST_PIVOT),
            clamp_byte(factor * (g - CONTRAST_PIVOT) + CONTRAST_PIVOT),
            clamp_byte(factor * (b - CONTRAST_PIVOT) + CONTRAST_PIVOT),
            a,
        )


class SaturationFilter(PixelFilterAlgorithm):
    kind = FilterKind.SATURATION

    def transform(self, pixels, params: AdjustmentParams):
        scale = 1.0 + params.adjustment / 100.0
        r, g, b = _split(pixels)
        gray = luminance(r, g, b)
        return _merge(
            pixels,
            gray + (r - gray) * scale,
            gray + (g - gray) * scale,
            gray + (b - gray) * scale,
        )

    def transform_pixel(self, r, g, b, a, params: AdjustmentParams):
        scale = 1.0 + params.adjustment / 100.0
        gray = luminance(float(r), float(g), float(b))
        return (
            clamp_byte(gray + (r - gray) * scale),
            clamp_byte(gray + (g - gray) * scale),
            clamp_byte(gray + (b - gray) * scale),
            a,
        )


# ============================================================================
# Hue rotation (HSL)
# ============================================================================

def _rgb_to_hsl(r: np.ndarray, g: np.ndarray, b: np.ndarray):
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    maxc = np.maximum(np.maximum(r, g), b)
    minc = np.minimum(np.minimum(r, g), b)
    light = (maxc + minc) / 2.0
    delta = maxc - minc
    chromatic = delta > 0

    safe_delta = np.where(chromatic, delta, 1.0)
    denom = np.where(light <= 0.5, maxc + minc, 2.0 - maxc - minc)
    sat = np.where(chromatic, delta / np.where(chromatic, denom, 1.0), 0.0)

    rc = (maxc - r) / safe_delta
    gc = (maxc - g) / safe_delta
    bc = (maxc - b) / safe_delta
    hue = np.where(
        r == maxc,
        bc - gc,
        np.where(g == maxc, 2.0 + rc - bc, 4.0 + gc - rc),
    )
    hue = np.where(chromatic, (hue / 6.0) % 1.0, 0.0)
    return hue, sat, light


def _hue_to_channel(m1: np.ndarray, m2: np.ndarray, hue: np.ndarray) -> np.ndarray:
    hue = hue % 1.0
    return np.where(
        hue < 1.0 / 6.0,
        m1 + (m2 - m1) * hue * 6.0,
        np.where(
            hue < 0.5,
            m2,
            np.where(hue < 2.0 / 3.0, m1 + (m2 - m1) * (2.0 / 3.0 - hue) * 6.0, m1),
        ),
    )


def _hsl_to_rgb(hue: np.ndarray, sat: np.ndarray, light: np.ndarray):
    m2 = np.where(light <= 0.5, light * (1.0 + sat), light + sat - light * sat)
    m1 = 2.0 * light - m2
    r = _hue_to_channel(m1, m2, hue + 1.0 / 3.0)
    g = _hue_to_channel(m1, m2, hue)
    b = _hue_to_channel(m1, m2, hue - 1.0 / 3.0)
    achromatic = sat == 0
    r = np.where(achromatic, light, r)
    g = np.where(achromatic, light, g)
    b = np.where(achromatic, light, b)
    return r * 255.0, g * 255.0, b * 255.0


class HueFilter(PixelFilterAlgorithm):
    kind = FilterKind.HUE

    def transform(self, pixels, params: HueParams):
        r, g, b = _split(pixels)
        hue, sat, light = _rgb_to_hsl(r, g, b)
        hue = (hue + params.rotation / 360.0) % 1.0
        return _merge(pixels, *_hsl_to_rgb(hue, sat, light))

    def transform_pixel(self, r, g, b, a, params: HueParams):
        hue, light, sat = rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
        hue = (hue + params.rotation / 360.0) % 1.0
        rr, gg, bb = hls_to_rgb(hue, light, sat)
        return (clamp_byte(rr * 255.0), clamp_byte(gg * 255.0), clamp_byte(bb * 255.0), a)


# ============================================================================
# Color conversions
# ============================================================================

class GrayscaleFilter(PixelFilterAlgorithm):
    kind = FilterKind.GRAYSCALE

    def transform(self, pixels, params: NoParams):
        gray = luminance(*_split(pixels))
        return _merge(pixels, gray, gray, gray)

    def transform_pixel(self, r, g, b, a, params: NoParams):
        gray = clamp_byte(luminance(float(r), float(g), float(b)))
        return (gray, gray, gray, a)


class InvertFilter(PixelFilterAlgorithm):
    kind = FilterKind.INVERT

    def transform(self, pixels, params: NoParams):
        result = pixels.copy()
        result[..., :3] = MAX_CHANNEL_VALUE - pixels[..., :3]
        return result

    def transform_pixel(self, r, g, b, a, params: NoParams):
        return (MAX_CHANNEL_VALUE - r, MAX_CHANNEL_VALUE - g, MAX_CHANNEL_VALUE - b, a)


class SepiaFilter(PixelFilterAlgorithm):
    kind = FilterKind.SEPIA

    @staticmethod
    def _toned(r, g, b):
        (rr, rg, rb), (gr, gg, gb), (br, bg, bb) = SEPIA_MATRIX
        return (
            rr * r + rg * g + rb * b,
            gr * r + gg * g + gb * b,
            br * r + bg * g + bb * b,
        )

    def transform(self, pixels, params: SepiaParams):
        amount = params.intensity / 100.0
        r, g, b = _split(pixels)
        tr, tg, tb = self._toned(r, g, b)
        return _merge(
            pixels,
            r + (tr - r) * amount,
            g + (tg - g) * amount,
            b + (tb - b) * amount,
        )

    def transform_pixel(self, r, g, b, a, params: SepiaParams):
        amount = params.intensity / 100.0
        tr, tg, tb = self._toned(float(r), float(g), float(b))
        return (
            clamp_byte(r + (tr - r) * amount),
            clamp_byte(g + (tg - g) * amount),
            clamp_byte(b + (tb - b) * amount),
            a,
        )


class ColorTemperatureFilter(PixelFilterAlgorithm):
    """Warmer (positive) scales red up and blue down; cooler does the reverse."""

    kind = FilterKind.COLOR_TEMPERATURE

    @staticmethod
    def _gains(params: TemperatureParams):
        t = params.temperature / 100.0
        return 1.0 + t * TEMPERATURE_SCALE, 1.0 - t * TEMPERATURE_SCALE

    def transform(self, pixels, params: TemperatureParams):
        red_gain, blue_gain = self._gains(params)
        r, g, b = _split(pixels)
        return _merge(pixels, r * red_gain, g, b * blue_gain)

    def transform_pixel(self, r, g, b, a, params: TemperatureParams):
        red_gain, blue_gain = self._gains(params)
        return (clamp_byte(r * red_gain), g, clamp_byte(b * blue_gain), a)
