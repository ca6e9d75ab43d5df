"""
Filter Algorithm Registry.

This module provides a centralized registry mapping each FilterKind to the
algorithm object that implements it. The dispatcher looks algorithms up here
instead of importing them directly, so hosts can replace or extend them.

Classes:
    FilterAlgorithmRegistry: Registry for filter algorithms

Functions:
    get_default_registry: Get the global default registry (singleton)
    register_default_algorithms: Register all built-in filter algorithms
"""

from typing import Any, Dict, List, Optional, Union
import logging

from PF_Libs.errors import UnsupportedFilterKindError
from PF_Libs.FilterLib.filter_base import FilterAlgorithm
from PF_Libs.FilterLib.filter_models import FilterKind

logger = logging.getLogger(__name__)


class FilterAlgorithmRegistry:
    """
    Registry for filter algorithms.

    Example:
        >>> registry = FilterAlgorithmRegistry()
        >>> registry.register(BrightnessFilter(), tags=["color"])
        >>> algorithm = registry.get_algorithm("brightness")
        >>> result = algorithm.apply_whole(buffer, AdjustmentParams(20))
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._algorithms: Dict[FilterKind, FilterAlgorithm] = {}
        self._metadata: Dict[FilterKind, Dict[str, Any]] = {}

    def register(
        self,
        algorithm: FilterAlgorithm,
        description: str = "",
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Register a filter algorithm under its kind.

        Args:
            algorithm: FilterAlgorithm instance with a `kind` set
            description: Human-readable description of the filter
            tags: Optional list of tags for categorization (e.g., ["color"])

        Raises:
            TypeError: If algorithm is not a FilterAlgorithm
            ValueError: If the algorithm declares no kind
            RuntimeError: If the kind is already registered
        """
        if not isinstance(algorithm, FilterAlgorithm):
            raise TypeError(f"algorithm must be a FilterAlgorithm, got {type(algorithm)}")

        kind = algorithm.kind
        if not isinstance(kind, FilterKind):
            raise ValueError(f"{type(algorithm).__name__} does not declare a FilterKind")

        if kind in self._algorithms:
            raise RuntimeError(
                f"Filter kind '{kind.value}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._algorithms[kind] = algorithm
        self._metadata[kind] = {
            "description": str(description),
            "alpha_invariant": bool(algorithm.alpha_invariant),
            "neighborhood": bool(algorithm.neighborhood),
            "tags": list(tags) if tags else [],
        }

        logger.debug(f"Registered algorithm for filter kind: {kind.value}")

    def unregister(self, kind: Union[FilterKind, str]) -> bool:
        """
        Unregister a filter algorithm.

        Returns:
            True if unregistered, False if the kind was not registered
        """
        kind = FilterKind.parse(kind)

        if kind in self._algorithms:
            del self._algorithms[kind]
            del self._metadata[kind]
            logger.debug(f"Unregistered algorithm for filter kind: {kind.value}")
            return True

        return False

    def get_algorithm(self, kind: Union[FilterKind, str]) -> FilterAlgorithm:
        """
        Get the algorithm for a filter kind.

        Args:
            kind: FilterKind or string identifier

        Returns:
            The registered FilterAlgorithm

        Raises:
            UnsupportedFilterKindError: If the kind is unknown or not registered
        """
        kind = FilterKind.parse(kind)

        if kind not in self._algorithms:
            available = ", ".join(self.list_kinds())
            raise UnsupportedFilterKindError(
                f"No algorithm registered for filter kind '{kind.value}'. "
                f"Available kinds: {available}"
            )

        return self._algorithms[kind]

    def has_algorithm(self, kind: Union[FilterKind, str]) -> bool:
        try:
            return FilterKind.parse(kind) in self._algorithms
        except UnsupportedFilterKindError:
            return False

    def list_kinds(self) -> List[str]:
        """Sorted list of registered kind values."""
        return sorted(kind.value for kind in self._algorithms)

    def get_metadata(self, kind: Union[FilterKind, str]) -> Dict[str, Any]:
        """
        Get metadata for a filter kind.

        Returns:
            Dictionary with description, alpha_invariant, neighborhood, tags

        Raises:
            UnsupportedFilterKindError: If the kind is not registered
        """
        kind = FilterKind.parse(kind)

        if kind not in self._metadata:
            raise UnsupportedFilterKindError(f"No metadata for filter kind: {kind.value}")

        return dict(self._metadata[kind])

    def filter_by_tag(self, tag: str) -> List[str]:
        """
        Get all kinds with a specific tag.

        Returns:
            Sorted list of kind values with the tag
        """
        tag = str(tag).strip().lower()
        return sorted([
            kind.value
            for kind, meta in self._metadata.items()
            if tag in [t.lower() for t in meta.get("tags", [])]
        ])

    def clear(self) -> None:
        """Clear all registered algorithms. Use with caution."""
        self._algorithms.clear()
        self._metadata.clear()
        logger.warning("Filter algorithm registry cleared")

    def __len__(self) -> int:
        return len(self._algorithms)

    def __contains__(self, kind: Union[FilterKind, str]) -> bool:
        return self.has_algorithm(kind)


# Global singleton registry
_default_registry: Optional[FilterAlgorithmRegistry] = None


def get_default_registry() -> FilterAlgorithmRegistry:
    """
    Get the global default registry (singleton).

    Creates the registry on first call and registers the built-in algorithms.
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = FilterAlgorithmRegistry()
        register_default_algorithms(_default_registry)

    return _default_registry


def register_default_algorithms(registry: FilterAlgorithmRegistry) -> None:
    """
    Register every built-in filter algorithm.

    Args:
        registry: The registry to register algorithms with
    """
    from PF_Libs.FilterLib.color_filters import (
        BrightnessFilter,
        ColorTemperatureFilter,
        ContrastFilter,
        ExposureFilter,
        GrayscaleFilter,
        HueFilter,
        InvertFilter,
        SaturationFilter,
        SepiaFilter,
    )
    from PF_Libs.FilterLib.neighborhood_filters import BlurFilter, SharpenFilter

    registry.register(
        BrightnessFilter(),
        description="Shift RGB channels by a fraction of full scale",
        tags=["color", "tonal"],
    )
    registry.register(
        ContrastFilter(),
        description="Stretch or compress channels around mid-gray",
        tags=["color", "tonal"],
    )
    registry.register(
        SaturationFilter(),
        description="Move channels toward or away from luminance",
        tags=["color"],
    )
    registry.register(
        HueFilter(),
        description="Rotate hue in HSL space",
        tags=["color"],
    )
    registry.register(
        GrayscaleFilter(),
        description="Replace RGB with Rec. 709 luminance",
        tags=["color", "conversion"],
    )
    registry.register(
        InvertFilter(),
        description="Invert RGB channels",
        tags=["color", "conversion"],
    )
    registry.register(
        SepiaFilter(),
        description="Blend toward a sepia tone",
        tags=["color", "conversion"],
    )
    registry.register(
        ColorTemperatureFilter(),
        description="Warm (red) or cool (blue) the image",
        tags=["color"],
    )
    registry.register(
        ExposureFilter(),
        description="Exposure mapped onto a brightness adjustment",
        tags=["color", "tonal"],
    )
    registry.register(
        BlurFilter(),
        description="Three-pass separable box blur",
        tags=["neighborhood", "blur"],
    )
    registry.register(
        SharpenFilter(),
        description="Unsharp mask over a fixed-radius blur",
        tags=["neighborhood"],
    )

    logger.info("Registered default filter algorithms")
