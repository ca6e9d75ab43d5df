"""
Filter data models for the pixel filter engine.

This module defines the closed set of filter kinds, the parameter record
each kind carries, and the FilterSpec that pairs the two.

Classes:
    FilterKind: Closed enumeration of supported filter kinds
    FilterParams: Base class for per-kind parameter records
    AdjustmentParams: Brightness / contrast / saturation adjustment (-100..100)
    HueParams: Hue rotation in degrees (-180..180)
    SepiaParams: Sepia intensity in percent (0..100)
    TemperatureParams: Color temperature shift (-100..100)
    BlurParams: Blur radius in percent (0..100)
    SharpenParams: Sharpen strength in percent (0..100)
    ExposureParams: Exposure in percent (-100..100), mapped onto brightness
    NoParams: Parameterless kinds (grayscale, invert)
    FilterSpec: A validated (kind, params) pair

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

import json
import math
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union

from PF_Libs.constants import (
    ADJUSTMENT_RANGE,
    BLUR_RADIUS_RANGE,
    DEFAULT_SEPIA_INTENSITY,
    EXPOSURE_NEGATIVE_GAIN,
    EXPOSURE_POSITIVE_GAIN,
    EXPOSURE_RANGE,
    FILTER_ALIASES,
    HUE_ROTATION_RANGE,
    SEPIA_INTENSITY_RANGE,
    SHARPEN_STRENGTH_RANGE,
    TEMPERATURE_RANGE,
)
from PF_Libs.errors import InvalidParameterError, UnsupportedFilterKindError

RgbaColor = Tuple[int, int, int, int]


class FilterKind(Enum):
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    HUE = "hue"
    GRAYSCALE = "grayscale"
    INVERT = "invert"
    SEPIA = "sepia"
    COLOR_TEMPERATURE = "color_temperature"
    BLUR = "blur"
    SHARPEN = "sharpen"
    EXPOSURE = "exposure"

    @classmethod
    def parse(cls, identifier: Union["FilterKind", str]) -> "FilterKind":
        """
        Resolve a filter identifier to a FilterKind.

        Accepts an enum member, a value ("color_temperature"), a member name
        ("COLOR_TEMPERATURE") or a known alias ("colormatrix"). Matching is
        case and whitespace insensitive.

        Raises:
            UnsupportedFilterKindError: If the identifier is not recognized
        """
        if isinstance(identifier, cls):
            return identifier

        if not isinstance(identifier, str):
            raise UnsupportedFilterKindError(
                f"Filter identifier must be a string or FilterKind, got {type(identifier)}"
            )

        key = identifier.strip().lower().replace("-", "_").replace(" ", "_")
        key = FILTER_ALIASES.get(key, key)

        for kind in cls:
            if kind.value == key:
                return kind

        available = ", ".join(kind.value for kind in cls)
        raise UnsupportedFilterKindError(
            f"Unknown filter kind: {identifier!r}. Available kinds: {available}"
        )


def _validate_number(name: str, value: Any, bounds: Tuple[float, float]) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError(
            f"{name} must be a number, got {type(value).__name__}"
        )

    number = float(value)
    if not math.isfinite(number):
        raise InvalidParameterError(f"{name} must be finite, got {value}")

    low, high = bounds
    if not (low <= number <= high):
        raise InvalidParameterError(
            f"{name} must be {low:g}..{high:g}, got {value}"
        )
    return number


@dataclass(frozen=True)
class FilterParams:
    """Base class for parameter records.

    Subclasses declare their fields plus two class-level tables: the allowed
    range of each field and the value at which the filter is an identity.
    """

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {}
    IDENTITY: ClassVar[Dict[str, float]] = {}

    def validate(self) -> "FilterParams":
        for name, bounds in self.RANGES.items():
            _validate_number(name, getattr(self, name), bounds)
        return self

    def is_identity(self) -> bool:
        return all(
            float(getattr(self, name)) == value
            for name, value in self.IDENTITY.items()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FilterParams":
        """Create from dictionary, ignoring keys the record does not declare."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidParameterError(
                f"Filter parameters must be a mapping, got {type(data).__name__}"
            )
        known = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


@dataclass(frozen=True)
class AdjustmentParams(FilterParams):
    adjustment: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"adjustment": ADJUSTMENT_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"adjustment": 0.0}


@dataclass(frozen=True)
class HueParams(FilterParams):
    rotation: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"rotation": HUE_ROTATION_RANGE}

    def is_identity(self) -> bool:
        return float(self.rotation) % 360.0 == 0.0


@dataclass(frozen=True)
class SepiaParams(FilterParams):
    intensity: float = DEFAULT_SEPIA_INTENSITY

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"intensity": SEPIA_INTENSITY_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"intensity": 0.0}


@dataclass(frozen=True)
class TemperatureParams(FilterParams):
    temperature: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"temperature": TEMPERATURE_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"temperature": 0.0}


@dataclass(frozen=True)
class BlurParams(FilterParams):
    radius: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"radius": BLUR_RADIUS_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"radius": 0.0}


@dataclass(frozen=True)
class SharpenParams(FilterParams):
    strength: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"strength": SHARPEN_STRENGTH_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"strength": 0.0}


@dataclass(frozen=True)
class ExposureParams(FilterParams):
    exposure: float = 0.0

    RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {"exposure": EXPOSURE_RANGE}
    IDENTITY: ClassVar[Dict[str, float]] = {"exposure": 0.0}

    def brightness_adjustment(self) -> float:
        """Brightness adjustment (-100..100) equivalent to this exposure."""
        exposure = float(self.exposure)
        if exposure > 0:
            adjustment = exposure * EXPOSURE_POSITIVE_GAIN
        else:
            adjustment = exposure * EXPOSURE_NEGATIVE_GAIN
        low, high = ADJUSTMENT_RANGE
        return max(low, min(high, adjustment))


@dataclass(frozen=True)
class NoParams(FilterParams):
    """Grayscale and invert take no parameters and are never an identity."""

    def is_identity(self) -> bool:
        return False


PARAMS_BY_KIND: Dict[FilterKind, Type[FilterParams]] = {
    FilterKind.BRIGHTNESS: AdjustmentParams,
    FilterKind.CONTRAST: AdjustmentParams,
    FilterKind.SATURATION: AdjustmentParams,
    FilterKind.HUE: HueParams,
    FilterKind.GRAYSCALE: NoParams,
    FilterKind.INVERT: NoParams,
    FilterKind.SEPIA: SepiaParams,
    FilterKind.COLOR_TEMPERATURE: TemperatureParams,
    FilterKind.BLUR: BlurParams,
    FilterKind.SHARPEN: SharpenParams,
    FilterKind.EXPOSURE: ExposureParams,
}


@dataclass(frozen=True)
class FilterSpec:
    """A filter kind plus its validated parameter record.

    Attributes:
        kind: The filter kind
        params: Parameter record matching PARAMS_BY_KIND[kind]
        remove: Explicit removal request; the spec becomes a no-op
    """
    kind: FilterKind
    params: FilterParams
    remove: bool = False

    @classmethod
    def create(
        cls,
        kind: Union[FilterKind, str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> "FilterSpec":
        """
        Build and validate a FilterSpec from an identifier and a parameter dict.

        Args:
            kind: FilterKind or string identifier (aliases accepted)
            params: Parameter dictionary. Unknown keys are ignored, but a
                    non-empty dict naming none of the kind's parameters is
                    rejected. The key 'remove' marks the spec as an explicit
                    no-op.

        Returns:
            A validated FilterSpec

        Raises:
            UnsupportedFilterKindError: If kind is not recognized
            InvalidParameterError: If a parameter is out of range or mistyped
        """
        filter_kind = FilterKind.parse(kind)
        params_cls = PARAMS_BY_KIND[filter_kind]
        if params is not None and not isinstance(params, Mapping):
            raise InvalidParameterError(
                f"Filter parameters must be a mapping, got {type(params).__name__}"
            )
        raw = dict(params or {})
        remove = raw.pop("remove", False)
        if not isinstance(remove, bool):
            raise InvalidParameterError(f"remove must be a bool, got {type(remove).__name__}")
        declared = {f.name for f in fields(params_cls)}
        if raw and declared and declared.isdisjoint(raw):
            raise InvalidParameterError(
                f"{filter_kind.value} takes {sorted(declared)}, got {sorted(map(str, raw))}"
            )
        spec = cls(kind=filter_kind, params=params_cls.from_dict(raw), remove=remove)
        return spec.validate()

    def validate(self) -> "FilterSpec":
        if not isinstance(self.kind, FilterKind):
            raise UnsupportedFilterKindError(f"Unknown filter kind: {self.kind!r}")
        expected = PARAMS_BY_KIND[self.kind]
        if type(self.params) is not expected:
            raise InvalidParameterError(
                f"{self.kind.value} expects {expected.__name__}, "
                f"got {type(self.params).__name__}"
            )
        self.params.validate()
        return self

    def is_identity(self) -> bool:
        return self.remove or self.params.is_identity()

    def serialized_params(self) -> str:
        """Canonical JSON form of the parameters, used in cache keys."""
        payload = {k: float(v) for k, v in self.params.to_dict().items()}
        if self.remove:
            payload["remove"] = True
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))
