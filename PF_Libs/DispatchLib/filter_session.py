"""
Filter Session - the single invocation entry point.

One FilterSession per editing session. It owns the result cache, the
dispatcher and (lazily) the scheduler, hooks the cache to the document's
buffer listeners, resolves default targets and snapshots the active
selection mask at the start of every invocation.

Example:
    >>> document = InMemoryDocument()
    >>> document.add_image("photo", Image.open("photo.png"))
    >>> session = FilterSession(document, SelectionState())
    >>> outcomes = session.apply_filter("sepia", {"intensity": 80})
    >>> outcomes[0].ok
    True
"""

import concurrent.futures
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from PF_Libs.errors import NoTargetsError
from PF_Libs.FilterLib.filter_models import FilterKind, FilterSpec
from PF_Libs.FilterLib.filter_registry import FilterAlgorithmRegistry
from PF_Libs.DispatchLib.dispatcher import FilterDispatcher
from PF_Libs.DispatchLib.engine_config import FilterEngineConfig
from PF_Libs.DispatchLib.raster_models import (
    CompletionCallback,
    ProgressCallback,
    TargetOutcome,
)
from PF_Libs.DispatchLib.result_cache import ResultCache
from PF_Libs.DispatchLib.scheduler import FilterScheduler

logger = logging.getLogger(__name__)

FilterIdentifier = Union[FilterKind, FilterSpec, str]


class FilterSession:
    """
    Applies filters to a document's raster targets.

    Args:
        document: Document model (see document_model for the expected surface)
        selection: Object exposing get_active_mask(); None means never masked
        config: Engine configuration
        registry: Algorithm registry (the default registry when omitted)
    """

    def __init__(
        self,
        document: Any,
        selection: Any = None,
        config: Optional[FilterEngineConfig] = None,
        registry: Optional[FilterAlgorithmRegistry] = None,
    ):
        self.document = document
        self.selection = selection
        self.config = config or FilterEngineConfig()
        self.cache = ResultCache(self.config.cache_capacity)
        self.dispatcher = FilterDispatcher(document, self.cache, registry, self.config)
        self._scheduler: Optional[FilterScheduler] = None

        if hasattr(document, "add_listener"):
            document.add_listener(self.cache.on_buffer_replaced)

        logger.info(
            f"Filter session started (cache_capacity={self.config.cache_capacity}, "
            f"caching={'on' if self.config.enable_caching else 'off'})"
        )

    @property
    def scheduler(self) -> FilterScheduler:
        if self._scheduler is None:
            self._scheduler = FilterScheduler(self.dispatcher, self.config.max_workers)
        return self._scheduler

    @staticmethod
    def build_spec(
        kind: FilterIdentifier,
        params: Optional[Mapping[str, Any]] = None,
    ) -> FilterSpec:
        """
        Build a validated spec from an identifier and parameter dict.

        A FilterSpec passed as `kind` is validated and returned as is.
        """
        if isinstance(kind, FilterSpec):
            return kind.validate()
        return FilterSpec.create(kind, params)

    def resolve_targets(
        self,
        target_ids: Optional[Iterable[str]] = None,
        strict: bool = False,
    ) -> List[str]:
        """
        Resolve the targets of an invocation.

        An explicit list is used as given. Otherwise every raster target is
        used, or only the selected objects when the document is in
        object-selection mode.

        Raises:
            NoTargetsError: If strict and the result is empty
        """
        if target_ids is not None:
            targets = [str(t) for t in target_ids]
        elif getattr(self.document, "object_selection_mode", False):
            targets = list(self.document.selected_ids())
        else:
            targets = list(self.document.raster_ids())

        if strict and not targets:
            raise NoTargetsError("No targets to filter")
        return targets

    def active_mask(self):
        if self.selection is None:
            return None
        return self.selection.get_active_mask()

    def apply_filter(
        self,
        kind: FilterIdentifier,
        params: Optional[Mapping[str, Any]] = None,
        target_ids: Optional[Iterable[str]] = None,
        on_complete: Optional[CompletionCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> List[TargetOutcome]:
        """
        Apply a filter synchronously.

        Args:
            kind: Filter identifier ("brightness", FilterKind.BLUR, ...) or a FilterSpec
            params: Parameter dict for the kind
            target_ids: Explicit targets; defaults as in resolve_targets()
            on_complete: Called once per target with its outcome
            progress: progress(target_id, current_row, total_rows, message)

        Returns:
            One TargetOutcome per target

        Raises:
            InvalidParameterError: If the parameters fail validation
            UnsupportedFilterKindError: If the kind is not recognized
        """
        spec = self.build_spec(kind, params)
        mask = self.active_mask()
        targets = self.resolve_targets(target_ids)
        logger.debug(f"Applying {spec.kind.value} to {len(targets)} target(s)")
        return self.dispatcher.apply(
            targets, spec, mask, on_complete=on_complete, progress=progress
        )

    def submit_filter(
        self,
        kind: FilterIdentifier,
        params: Optional[Mapping[str, Any]] = None,
        target_ids: Optional[Iterable[str]] = None,
        on_complete: Optional[CompletionCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> List["concurrent.futures.Future[TargetOutcome]"]:
        """Like apply_filter, but runs off-thread; returns one Future per target."""
        spec = self.build_spec(kind, params)
        mask = self.active_mask()
        targets = self.resolve_targets(target_ids)
        return self.scheduler.submit(targets, spec, mask, on_complete, progress)

    def cancel(self, target_id: str) -> bool:
        if self._scheduler is None:
            return False
        return self._scheduler.cancel(target_id)

    def close(self, wait: bool = True) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait, cancel_pending=not wait)
            self._scheduler = None
        if hasattr(self.document, "remove_listener"):
            self.document.remove_listener(self.cache.on_buffer_replaced)
        self.cache.clear()
        logger.info("Filter session closed")

    def __enter__(self) -> "FilterSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
