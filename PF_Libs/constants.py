"""
Constants and configuration values for the pixel filter engine.

This module centralizes all constant values, magic numbers, and
default settings used by the filter algorithms, the selection helpers
and the dispatcher.
"""

# Buffer layout
CHANNELS = 4
ALPHA_CHANNEL = 3
MAX_CHANNEL_VALUE = 255

# Parameter ranges (inclusive)
ADJUSTMENT_RANGE = (-100.0, 100.0)
HUE_ROTATION_RANGE = (-180.0, 180.0)
SEPIA_INTENSITY_RANGE = (0.0, 100.0)
TEMPERATURE_RANGE = (-100.0, 100.0)
BLUR_RADIUS_RANGE = (0.0, 100.0)
SHARPEN_STRENGTH_RANGE = (0.0, 100.0)
EXPOSURE_RANGE = (-100.0, 100.0)

# Parameter defaults
DEFAULT_SEPIA_INTENSITY = 100.0

# Rec. 709 luminance weights (R, G, B)
LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)

# Contrast factor is undefined at |c| = 1
CONTRAST_LIMIT = 0.99
CONTRAST_PIVOT = 128.0
CONTRAST_FACTOR_BASE = 259.0

SEPIA_MATRIX = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)

TEMPERATURE_SCALE = 0.2

# Exposure maps onto brightness with asymmetric gain
EXPOSURE_POSITIVE_GAIN = 1.5
EXPOSURE_NEGATIVE_GAIN = 1.0

# Blur: radius is a percentage scaled to a small pixel half-width
BLUR_PASSES = 3
BLUR_PIXEL_SCALE = 10

# Sharpen: fixed blur radius for the unsharp mask (20% -> 2 px)
SHARPEN_BLUR_RADIUS = 20.0
SHARPEN_GAIN = 2.0

# Cache
DEFAULT_CACHE_CAPACITY = 32
NO_MASK_DIGEST = "no-mask"
DIGEST_SIZE = 16

# Dispatch
DEFAULT_PROGRESS_INTERVAL_ROWS = 10
ENGINE_SOURCE = "pixelfilter-engine"

# Environment variable names read by FilterEngineConfig.from_env()
ENV_CACHE_CAPACITY = "PF_CACHE_CAPACITY"
ENV_ENABLE_CACHING = "PF_ENABLE_CACHING"
ENV_MAX_WORKERS = "PF_MAX_WORKERS"

# Filter identifier aliases accepted by FilterKind.parse()
FILTER_ALIASES = {
    "colormatrix": "color_temperature",
    "colortemperature": "color_temperature",
    "temperature": "color_temperature",
    "hue_rotation": "hue",
    "huerotation": "hue",
    "greyscale": "grayscale",
}
