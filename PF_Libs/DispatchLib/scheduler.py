"""
Off-thread filter scheduling.

Each submission becomes one task per target on a ThreadPoolExecutor. Tasks
for different targets run in parallel; tasks for one target are serialized
on that target's cache lock. Submitting again for a target cancels the token
of its previous task, so a slider dragged quickly commits only the newest
value (last write wins). A superseded task stops at its next row boundary,
or at the commit point at the latest, and reports CANCELLED without
touching the buffer.
"""

import concurrent.futures
import itertools
import logging
import threading
from typing import Dict, List, Optional, Sequence

from PF_Libs.FilterLib.filter_models import FilterSpec
from PF_Libs.DispatchLib.dispatcher import FilterDispatcher, TargetRef, target_id_of
from PF_Libs.DispatchLib.raster_models import (
    CancellationToken,
    CompletionCallback,
    ProgressCallback,
    TargetOutcome,
)
from PF_Libs.SelectionLib.selection_models import SelectionMask

logger = logging.getLogger(__name__)


class FilterScheduler:
    """
    Thread-pool front end for a FilterDispatcher.

    Example:
        >>> with FilterScheduler(dispatcher, max_workers=4) as scheduler:
        ...     futures = scheduler.submit(["layer-1"], spec)
        ...     outcome = futures[0].result()
    """

    def __init__(self, dispatcher: FilterDispatcher, max_workers: Optional[int] = None):
        self.dispatcher = dispatcher
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="pf-filter"
        )
        self._lock = threading.Lock()
        self._tokens: Dict[str, CancellationToken] = {}
        self._generations: Dict[str, int] = {}
        self._next_generation = itertools.count(1)
        self._closed = False

    def submit(
        self,
        targets: Sequence[TargetRef],
        spec: FilterSpec,
        mask: Optional[SelectionMask] = None,
        on_complete: Optional[CompletionCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> List["concurrent.futures.Future[TargetOutcome]"]:
        """
        Queue one task per target.

        The spec is validated before anything is queued, so parameter and
        kind errors raise here rather than inside a future.

        Returns:
            One Future per target, resolving to that target's TargetOutcome

        Raises:
            RuntimeError: If the scheduler has been shut down
        """
        self.dispatcher.prepare(spec)

        futures = []
        for target in targets:
            target_id = target_id_of(target)
            with self._lock:
                if self._closed:
                    raise RuntimeError("FilterScheduler has been shut down")
                previous = self._tokens.get(target_id)
                if previous is not None:
                    previous.cancel()
                    logger.debug(f"Superseded pending task for target {target_id}")
                token = CancellationToken()
                generation = next(self._next_generation)
                self._tokens[target_id] = token
                self._generations[target_id] = generation

                future = self._executor.submit(
                    self._run, target_id, spec, mask, token, generation, on_complete, progress
                )
            futures.append(future)

        return futures

    def _run(
        self,
        target_id: str,
        spec: FilterSpec,
        mask: Optional[SelectionMask],
        token: CancellationToken,
        generation: int,
        on_complete: Optional[CompletionCallback],
        progress: Optional[ProgressCallback],
    ) -> TargetOutcome:
        try:
            outcomes = self.dispatcher.apply(
                [target_id],
                spec,
                mask,
                token_for=lambda _target: token,
                on_complete=on_complete,
                progress=progress,
            )
            return outcomes[0]
        finally:
            with self._lock:
                if self._generations.get(target_id) == generation:
                    del self._generations[target_id]
                    self._tokens.pop(target_id, None)

    def cancel(self, target_id: str) -> bool:
        """
        Cancel the newest pending task for a target.

        Returns:
            True if a task was pending
        """
        with self._lock:
            token = self._tokens.pop(str(target_id), None)
            self._generations.pop(str(target_id), None)
        if token is None:
            return False
        token.cancel()
        return True

    def pending_targets(self) -> List[str]:
        """Target ids with a queued or running task."""
        with self._lock:
            return sorted(self._generations)

    def cancel_all(self) -> None:
        with self._lock:
            tokens = list(self._tokens.values())
            self._tokens.clear()
            self._generations.clear()
        for token in tokens:
            token.cancel()

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        with self._lock:
            self._closed = True
        if cancel_pending:
            self.cancel_all()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "FilterScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
