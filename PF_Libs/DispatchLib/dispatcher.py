"""
Filter Dispatcher.

Runs one filter over a batch of targets. For each target it chooses between
the fast path (no mask: whole-buffer algorithm) and the masked path (coverage
map in pixel space, mask-aware algorithm, coverage blend), consults the
result cache, and commits the result with a single atomic buffer replacement.

Per-target state machine:
    IDLE -> VALIDATING -> FAST_PATH | MASKED_PATH -> BLENDING (masked only)
         -> CACHING -> COMMITTED
    Any error moves the target straight to FAILED (or CANCELLED) and leaves
    its buffer untouched. One target's failure never aborts the batch.

Example:
    >>> dispatcher = FilterDispatcher(document)
    >>> spec = FilterSpec.create("brightness", {"adjustment": 50})
    >>> outcomes = dispatcher.apply(["layer-1", "layer-2"], spec)
    >>> [o.ok for o in outcomes]
    [True, True]
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Union

import numpy as np

from PF_Libs.constants import ENGINE_SOURCE
from PF_Libs.errors import FilterCancelledError
from PF_Libs.FilterLib.filter_base import FilterAlgorithm, check_buffer
from PF_Libs.FilterLib.filter_models import FilterSpec
from PF_Libs.FilterLib.filter_registry import FilterAlgorithmRegistry, get_default_registry
from PF_Libs.DispatchLib.engine_config import FilterEngineConfig
from PF_Libs.DispatchLib.raster_models import (
    CancellationToken,
    CompletionCallback,
    FilterState,
    ProgressCallback,
    RasterTarget,
    TargetOutcome,
)
from PF_Libs.DispatchLib.result_cache import (
    CacheKey,
    FilteredResult,
    ResultCache,
    buffer_checksum,
)
from PF_Libs.SelectionLib.coordinate_mapper import CoordinateMapper
from PF_Libs.SelectionLib.mask_sampler import coverage_for_target
from PF_Libs.SelectionLib.selection_blender import blend_buffers
from PF_Libs.SelectionLib.selection_models import SelectionMask

logger = logging.getLogger(__name__)

TargetRef = Union[str, RasterTarget]
TokenFactory = Callable[[str], Optional[CancellationToken]]


def target_id_of(target: TargetRef) -> str:
    if isinstance(target, RasterTarget):
        return target.target_id
    return str(target)


class FilterDispatcher:
    """
    Synchronous filter pipeline over a document.

    Args:
        document: Object exposing get_pixel_buffer, get_display_transform and
                  replace_pixel_buffer
        cache: Result cache (a new one sized from config when omitted)
        registry: Algorithm registry (the default registry when omitted)
        config: Engine configuration
    """

    def __init__(
        self,
        document: Any,
        cache: Optional[ResultCache] = None,
        registry: Optional[FilterAlgorithmRegistry] = None,
        config: Optional[FilterEngineConfig] = None,
    ):
        self.document = document
        self.config = config or FilterEngineConfig()
        self.cache = cache if cache is not None else ResultCache(self.config.cache_capacity)
        self.registry = registry or get_default_registry()

    def prepare(self, spec: FilterSpec) -> FilterAlgorithm:
        """
        Validate a spec and resolve its algorithm.

        Raises:
            InvalidParameterError: If the parameters fail validation
            UnsupportedFilterKindError: If no algorithm handles the kind
        """
        if not isinstance(spec, FilterSpec):
            raise TypeError(f"Expected FilterSpec, got {type(spec)}")
        spec.validate()
        return self.registry.get_algorithm(spec.kind)

    def apply(
        self,
        targets: Sequence[TargetRef],
        spec: FilterSpec,
        mask: Optional[SelectionMask] = None,
        token_for: Optional[TokenFactory] = None,
        on_complete: Optional[CompletionCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> List[TargetOutcome]:
        """
        Apply a filter to every target.

        Args:
            targets: Target ids (or RasterTargets) to filter
            spec: Filter to apply
            mask: Selection snapshot; None filters whole targets
            token_for: Returns the cancellation token for a target id
            on_complete: Called once per target with its outcome
            progress: progress(target_id, current_row, total_rows, message)

        Returns:
            One TargetOutcome per target, in input order. Empty when there
            are no targets.

        Raises:
            InvalidParameterError: Before any target is touched
            UnsupportedFilterKindError: Before any target is touched
        """
        algorithm = self.prepare(spec)

        target_ids = [target_id_of(t) for t in targets]
        if not target_ids:
            logger.info(f"No targets for {spec.kind.value}; nothing to do")
            return []

        outcomes: List[TargetOutcome] = []
        for target_id in target_ids:
            token = token_for(target_id) if token_for is not None else None
            outcome = self._apply_one(target_id, spec, algorithm, mask, token, progress)
            outcomes.append(outcome)
            if on_complete is not None:
                try:
                    on_complete(outcome)
                except Exception:
                    logger.exception(f"Completion callback failed for target {target_id}")

        return outcomes

    def _transition(self, target_id: str, state: FilterState) -> FilterState:
        logger.debug(f"Target {target_id}: {state.value}")
        return state

    def _apply_one(
        self,
        target_id: str,
        spec: FilterSpec,
        algorithm: FilterAlgorithm,
        mask: Optional[SelectionMask],
        token: Optional[CancellationToken],
        progress: Optional[ProgressCallback],
    ) -> TargetOutcome:
        self._transition(target_id, FilterState.IDLE)
        caching = self.config.enable_caching
        cache_hit = False
        path: Optional[str] = None

        try:
            if token is not None:
                token.raise_if_cancelled()

            with self.cache.target_lock(target_id):
                if token is not None:
                    token.raise_if_cancelled()

                self._transition(target_id, FilterState.VALIDATING)
                buffer = check_buffer(self.document.get_pixel_buffer(target_id))
                height, width = buffer.shape[:2]
                mapper = CoordinateMapper(
                    self.document.get_display_transform(target_id), width, height
                )
                key = CacheKey.for_request(target_id, spec, mask)

                cached = self._lookup(key, buffer) if caching else None
                if cached is not None:
                    cache_hit = True
                    path = "cache"
                    result = cached.buffer
                    logger.debug(f"Target {target_id}: cache hit for {spec.kind.value}")
                elif spec.remove:
                    path = "fast"
                    self._transition(target_id, FilterState.FAST_PATH)
                    result = buffer.copy()
                elif mask is None:
                    path = "fast"
                    self._transition(target_id, FilterState.FAST_PATH)
                    result = algorithm.apply_whole(buffer, spec.params, token=token)
                else:
                    path = "masked"
                    self._transition(target_id, FilterState.MASKED_PATH)
                    result = self._apply_masked(
                        target_id, buffer, spec, algorithm, mask, mapper, token, progress
                    )

                if token is not None:
                    token.raise_if_cancelled()

                if caching and not cache_hit:
                    self._transition(target_id, FilterState.CACHING)
                    self.cache.put(key, result)

                self.document.replace_pixel_buffer(target_id, result, source=ENGINE_SOURCE)
                if caching:
                    self.cache.retain_only(key)

        except FilterCancelledError as exc:
            self._transition(target_id, FilterState.CANCELLED)
            return TargetOutcome(target_id, FilterState.CANCELLED, error=exc, path=path)
        except Exception as exc:
            logger.warning(f"Target {target_id}: {spec.kind.value} failed: {exc}")
            self._transition(target_id, FilterState.FAILED)
            return TargetOutcome(target_id, FilterState.FAILED, error=exc, path=path)

        # Committed; a failing progress callback does not change the outcome
        if progress is not None:
            try:
                progress(target_id, height, height, "committed")
            except Exception:
                logger.exception(f"Progress callback failed for target {target_id}")
        self._transition(target_id, FilterState.COMMITTED)
        return TargetOutcome(target_id, FilterState.COMMITTED, cache_hit=cache_hit, path=path)

    def _lookup(self, key: CacheKey, buffer: np.ndarray) -> Optional[FilteredResult]:
        """
        Return the cached result for `key` if the target still holds it.

        An entry only stays valid while the target's buffer is the one its
        commit produced. A mismatch means the buffer was edited elsewhere,
        so every entry for the target is dropped and the lookup misses.
        """
        cached = self.cache.get(key)
        if cached is None:
            return None
        if cached.checksum != buffer_checksum(buffer):
            logger.debug(f"Target {key.target_id}: buffer changed since last commit")
            self.cache.invalidate_target(key.target_id)
            return None
        return cached

    def _apply_masked(
        self,
        target_id: str,
        buffer: np.ndarray,
        spec: FilterSpec,
        algorithm: FilterAlgorithm,
        mask: SelectionMask,
        mapper: CoordinateMapper,
        token: Optional[CancellationToken],
        progress: Optional[ProgressCallback],
    ) -> np.ndarray:
        row_progress = None
        if progress is not None:
            def row_progress(current: int, total: int) -> None:
                progress(target_id, current, total, "sampling selection")

        coverage = coverage_for_target(
            mask, mapper, token, row_progress, self.config.progress_interval_rows
        )
        if not coverage.any():
            logger.debug(f"Target {target_id}: selection does not cover target")
            return buffer.copy()

        filtered = algorithm.apply_whole(buffer, spec.params, include=coverage > 0, token=token)

        self._transition(target_id, FilterState.BLENDING)
        return blend_buffers(buffer, filtered, coverage, algorithm.alpha_invariant)
