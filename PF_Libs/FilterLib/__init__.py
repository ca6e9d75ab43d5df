"""
FilterLib - Filter algorithms and filter specifications

Contains the closed set of filter kinds, their parameter records, the
per-pixel and neighborhood algorithms, and the registry that maps one to the
other.
"""

from PF_Libs.FilterLib.filter_models import (
    FilterKind,
    FilterParams,
    AdjustmentParams,
    HueParams,
    SepiaParams,
    TemperatureParams,
    BlurParams,
    SharpenParams,
    ExposureParams,
    NoParams,
    FilterSpec,
    PARAMS_BY_KIND,
)
from PF_Libs.FilterLib.filter_base import FilterAlgorithm, PixelFilterAlgorithm
from PF_Libs.FilterLib.color_filters import (
    BrightnessFilter,
    ContrastFilter,
    SaturationFilter,
    HueFilter,
    GrayscaleFilter,
    InvertFilter,
    SepiaFilter,
    ColorTemperatureFilter,
    ExposureFilter,
)
from PF_Libs.FilterLib.neighborhood_filters import BlurFilter, SharpenFilter, box_blur
from PF_Libs.FilterLib.filter_registry import (
    FilterAlgorithmRegistry,
    get_default_registry,
    register_default_algorithms,
)

__all__ = [
    "FilterKind",
    "FilterParams",
    "AdjustmentParams",
    "HueParams",
    "SepiaParams",
    "TemperatureParams",
    "BlurParams",
    "SharpenParams",
    "ExposureParams",
    "NoParams",
    "FilterSpec",
    "PARAMS_BY_KIND",
    "FilterAlgorithm",
    "PixelFilterAlgorithm",
    "BrightnessFilter",
    "ContrastFilter",
    "SaturationFilter",
    "HueFilter",
    "GrayscaleFilter",
    "InvertFilter",
    "SepiaFilter",
    "ColorTemperatureFilter",
    "ExposureFilter",
    "BlurFilter",
    "SharpenFilter",
    "box_blur",
    "FilterAlgorithmRegistry",
    "get_default_registry",
    "register_default_algorithms",
]
