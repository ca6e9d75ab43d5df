"""
Result cache for filtered buffers.

Entries are keyed by (target id, filter kind, serialized params, mask digest)
and held in least-recently-used order. Every stored buffer is frozen and
carries a BLAKE2b checksum that is verified on read; an entry that fails the
check is evicted and reported as a miss.

Validity:
    An entry for a target is only valid while that target's buffer is the
    one the entry's own commit produced. After a commit the dispatcher calls
    `retain_only(key)`. Before serving a hit it compares the entry's checksum
    with the target's current buffer and invalidates the target on mismatch,
    so edits are caught even on documents without listeners. Where the
    document does notify, `on_buffer_replaced` drops entries early.
    Re-applying an identical request is therefore served from the cache and
    leaves the buffer unchanged.

Concurrency:
    A short structural lock guards the LRU table, so reads from many tasks
    proceed concurrently with only brief contention. Writes for one target
    (put, retain_only, invalidate_target) are additionally serialized on that
    target's lock from `target_lock()`.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import numpy as np

from PF_Libs.constants import DEFAULT_CACHE_CAPACITY, DIGEST_SIZE, ENGINE_SOURCE
from PF_Libs.errors import CacheCorruptionError
from PF_Libs.FilterLib.filter_base import check_buffer
from PF_Libs.FilterLib.filter_models import FilterSpec
from PF_Libs.SelectionLib.selection_models import SelectionMask, mask_digest

logger = logging.getLogger(__name__)


def buffer_checksum(buffer: np.ndarray) -> str:
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    hasher.update(np.asarray(buffer.shape, dtype=np.int64).tobytes())
    hasher.update(np.ascontiguousarray(buffer).tobytes())
    return hasher.hexdigest()


@dataclass(frozen=True)
class CacheKey:
    target_id: str
    kind: str
    params: str
    mask_digest: str

    @classmethod
    def for_request(
        cls,
        target_id: str,
        spec: FilterSpec,
        mask: Optional[SelectionMask] = None,
    ) -> "CacheKey":
        """Build the key for applying `spec` under `mask` to a target."""
        return cls(
            target_id=str(target_id),
            kind=spec.kind.value,
            params=spec.serialized_params(),
            mask_digest=mask_digest(mask),
        )


@dataclass(frozen=True)
class FilteredResult:
    """A cached, read-only filtered buffer."""

    buffer: np.ndarray
    key: CacheKey
    checksum: str

    def verify(self) -> None:
        """
        Raises:
            CacheCorruptionError: If the buffer no longer matches its checksum
        """
        actual = buffer_checksum(self.buffer)
        if actual != self.checksum:
            raise CacheCorruptionError(
                f"Cached result for {self.key.target_id}/{self.key.kind} failed its checksum"
            )


class _TargetLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class ResultCache:
    """
    LRU cache of filtered buffers, scoped to one editing session.

    Args:
        capacity: Maximum number of entries kept (>= 1)

    Example:
        >>> cache = ResultCache(capacity=8)
        >>> key = CacheKey.for_request("layer-1", spec)
        >>> cache.put(key, filtered)
        >>> cache.get(key).buffer is not None
        True
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")

        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, FilteredResult]" = OrderedDict()
        self._lock = threading.Lock()
        self._target_locks: Dict[str, _TargetLock] = {}
        self._locks_guard = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._corruptions = 0

    @contextmanager
    def target_lock(self, target_id: str) -> Iterator[None]:
        """
        Hold the per-target lock serializing writes (and filter tasks) for one target.

        Reentrant. The lock entry is dropped once no thread holds or waits on it.

        Example:
            >>> with cache.target_lock("layer-1"):
            ...     cache.invalidate_target("layer-1")
        """
        target_id = str(target_id)
        with self._locks_guard:
            entry = self._target_locks.get(target_id)
            if entry is None:
                entry = _TargetLock()
                self._target_locks[target_id] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._target_locks[target_id]

    def locked_targets(self) -> int:
        """Number of targets whose lock is currently held or awaited."""
        with self._locks_guard:
            return len(self._target_locks)

    def get(self, key: CacheKey) -> Optional[FilteredResult]:
        """
        Look up a filtered result.

        Returns:
            The FilteredResult, or None on a miss. An entry that fails its
            consistency check is evicted and treated as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            try:
                entry.verify()
            except CacheCorruptionError as exc:
                logger.warning(f"{exc}; evicting entry")
                del self._entries[key]
                self._corruptions += 1
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def put(self, key: CacheKey, buffer: np.ndarray) -> FilteredResult:
        """
        Store a filtered buffer, evicting least-recently-used entries past capacity.

        The buffer is copied and frozen; the returned result holds that copy.
        """
        check_buffer(buffer)
        frozen = np.array(buffer, copy=True)
        frozen.setflags(write=False)
        result = FilteredResult(buffer=frozen, key=key, checksum=buffer_checksum(frozen))

        with self.target_lock(key.target_id):
            with self._lock:
                self._entries[key] = result
                self._entries.move_to_end(key)
                while len(self._entries) > self.capacity:
                    evicted, _ = self._entries.popitem(last=False)
                    self._evictions += 1
                    logger.debug(f"Evicted cache entry for {evicted.target_id}/{evicted.kind}")

        return result

    def invalidate_target(self, target_id: str) -> int:
        """
        Drop every entry for a target.

        Returns:
            Number of entries removed
        """
        target_id = str(target_id)
        with self.target_lock(target_id):
            with self._lock:
                stale = [key for key in self._entries if key.target_id == target_id]
                for key in stale:
                    del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for target {target_id}")
        return len(stale)

    def retain_only(self, key: CacheKey) -> int:
        """
        Drop every entry of `key.target_id` except `key` itself.

        Called after `key`'s result is committed: the other entries were
        computed from a buffer that no longer exists.

        Returns:
            Number of entries removed
        """
        with self.target_lock(key.target_id):
            with self._lock:
                stale = [
                    other for other in self._entries
                    if other.target_id == key.target_id and other != key
                ]
                for other in stale:
                    del self._entries[other]
        return len(stale)

    def on_buffer_replaced(self, target_id: str, source: Any = None) -> None:
        """Document listener: edits from anywhere but this engine invalidate the target."""
        if source == ENGINE_SOURCE:
            return
        self.invalidate_target(target_id)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("Result cache cleared")

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "corruptions": self._corruptions,
                "size": len(self._entries),
                "capacity": self.capacity,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
