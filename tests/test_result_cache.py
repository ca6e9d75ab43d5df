"""
Tests for the result cache.

Tests cover:
- Keys built from requests
- Hits, misses and LRU eviction
- Per-target invalidation and retain_only
- Document listener behavior
- Checksum verification and self-healing on corruption
"""

import threading
import unittest

import numpy as np

from conftest import random_buffer
from PF_Libs.constants import ENGINE_SOURCE
from PF_Libs.DispatchLib.result_cache import CacheKey, ResultCache
from PF_Libs.FilterLib.filter_models import FilterSpec
from PF_Libs.SelectionLib.selection_models import Rect, SelectionMask


def make_key(target_id="layer-1", adjustment=10, mask=None):
    spec = FilterSpec.create("brightness", {"adjustment": adjustment})
    return CacheKey.for_request(target_id, spec, mask)


class TestCacheKey(unittest.TestCase):
    """Test CacheKey construction."""

    def test_same_request_same_key(self):
        self.assertEqual(make_key(), make_key())

    def test_params_change_key(self):
        self.assertNotEqual(make_key(adjustment=10), make_key(adjustment=11))

    def test_mask_changes_key(self):
        mask = SelectionMask.from_rect(Rect(0, 0, 2, 2))
        self.assertNotEqual(make_key(), make_key(mask=mask))
        self.assertEqual(make_key().mask_digest, "no-mask")

    def test_key_fields(self):
        key = make_key()
        self.assertEqual(key.target_id, "layer-1")
        self.assertEqual(key.kind, "brightness")


class TestResultCache(unittest.TestCase):
    """Test ResultCache operations."""

    def setUp(self):
        self.cache = ResultCache(capacity=3)
        self.buffer = random_buffer(4, 4, seed=1)

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            ResultCache(capacity=0)

    def test_miss_then_hit(self):
        key = make_key()
        self.assertIsNone(self.cache.get(key))
        self.cache.put(key, self.buffer)
        entry = self.cache.get(key)
        self.assertIsNotNone(entry)
        self.assertTrue(np.array_equal(entry.buffer, self.buffer))
        stats = self.cache.stats()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["size"], 1)

    def test_stored_buffer_is_frozen_copy(self):
        key = make_key()
        entry = self.cache.put(key, self.buffer)
        self.buffer[0, 0, 0] ^= 0xFF
        self.assertFalse(np.array_equal(entry.buffer, self.buffer))
        self.assertFalse(entry.buffer.flags.writeable)

    def test_lru_eviction(self):
        keys = [make_key(adjustment=a) for a in (1, 2, 3, 4)]
        for key in keys[:3]:
            self.cache.put(key, self.buffer)

        # Touch the oldest so the second becomes least recently used
        self.cache.get(keys[0])
        self.cache.put(keys[3], self.buffer)

        self.assertIn(keys[0], self.cache)
        self.assertNotIn(keys[1], self.cache)
        self.assertIn(keys[3], self.cache)
        self.assertEqual(len(self.cache), 3)
        self.assertEqual(self.cache.stats()["evictions"], 1)

    def test_invalidate_target(self):
        self.cache.put(make_key("a", 1), self.buffer)
        self.cache.put(make_key("a", 2), self.buffer)
        self.cache.put(make_key("b", 1), self.buffer)

        removed = self.cache.invalidate_target("a")

        self.assertEqual(removed, 2)
        self.assertEqual(len(self.cache), 1)
        self.assertIn(make_key("b", 1), self.cache)

    def test_retain_only(self):
        self.cache.put(make_key("a", 1), self.buffer)
        self.cache.put(make_key("a", 2), self.buffer)
        self.cache.put(make_key("b", 1), self.buffer)

        removed = self.cache.retain_only(make_key("a", 2))

        self.assertEqual(removed, 1)
        self.assertIn(make_key("a", 2), self.cache)
        self.assertIn(make_key("b", 1), self.cache)

    def test_listener_ignores_engine_writes(self):
        key = make_key()
        self.cache.put(key, self.buffer)
        self.cache.on_buffer_replaced("layer-1", ENGINE_SOURCE)
        self.assertIn(key, self.cache)

    def test_listener_invalidates_external_writes(self):
        key = make_key()
        self.cache.put(key, self.buffer)
        self.cache.on_buffer_replaced("layer-1", "brush-tool")
        self.assertNotIn(key, self.cache)

    def test_corrupted_entry_is_evicted(self):
        key = make_key()
        entry = self.cache.put(key, self.buffer)

        entry.buffer.setflags(write=True)
        entry.buffer[0, 0, 0] ^= 0xFF

        with self.assertLogs("PF_Libs.DispatchLib.result_cache", level="WARNING"):
            self.assertIsNone(self.cache.get(key))
        self.assertNotIn(key, self.cache)
        self.assertEqual(self.cache.stats()["corruptions"], 1)

    def test_clear(self):
        self.cache.put(make_key(), self.buffer)
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)

    def test_target_lock_is_reentrant(self):
        with self.cache.target_lock("a"):
            with self.cache.target_lock("a"):
                self.cache.invalidate_target("a")
            self.assertEqual(self.cache.locked_targets(), 1)
        self.assertEqual(self.cache.locked_targets(), 0)

    def test_target_lock_serializes_one_target(self):
        entered = threading.Event()

        def contend(target_id):
            with self.cache.target_lock(target_id):
                entered.set()

        with self.cache.target_lock("a"):
            same = threading.Thread(target=contend, args=("a",))
            same.start()
            self.assertFalse(entered.wait(timeout=0.2))
        same.join(timeout=10)
        self.assertTrue(entered.is_set())

        entered.clear()
        with self.cache.target_lock("a"):
            other = threading.Thread(target=contend, args=("b",))
            other.start()
            self.assertTrue(entered.wait(timeout=10))
        other.join(timeout=10)

    def test_target_locks_released_after_use(self):
        for index in range(50):
            target_id = f"layer-{index}"
            self.cache.put(make_key(target_id), self.buffer)
            self.cache.invalidate_target(target_id)
        self.assertEqual(self.cache.locked_targets(), 0)


if __name__ == "__main__":
    unittest.main()
