"""
Tests for off-thread scheduling.

Tests cover:
- Futures resolving to outcomes
- Parallel targets
- Last write wins for rapid submissions to one target
- Explicit cancellation
- Shutdown behavior
"""

import threading
import unittest

import numpy as np

from conftest import random_buffer, uniform_buffer
from PF_Libs.errors import InvalidParameterError
from PF_Libs.DispatchLib.dispatcher import FilterDispatcher
from PF_Libs.DispatchLib.document_model import InMemoryDocument
from PF_Libs.DispatchLib.raster_models import CancellationToken, FilterState
from PF_Libs.DispatchLib.scheduler import FilterScheduler
from PF_Libs.FilterLib.color_filters import BrightnessFilter, InvertFilter
from PF_Libs.FilterLib.filter_models import AdjustmentParams, FilterKind, FilterSpec
from PF_Libs.FilterLib.filter_registry import FilterAlgorithmRegistry


class GatedBrightness(BrightnessFilter):
    """Brightness whose first run blocks until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def transform(self, pixels, params):
        self.started.set()
        self.release.wait(timeout=10)
        return super().transform(pixels, params)


class TestFilterScheduler(unittest.TestCase):
    """Test FilterScheduler."""

    def setUp(self):
        self.document = InMemoryDocument()
        self.document.add_target("a", uniform_buffer(6, 6, (100, 100, 100, 255)))
        self.document.add_target("b", random_buffer(6, 6, seed=3))

        self.gate = GatedBrightness()
        self.registry = FilterAlgorithmRegistry()
        self.registry.register(self.gate)
        self.registry.register(InvertFilter())

        self.dispatcher = FilterDispatcher(self.document, registry=self.registry)
        self.scheduler = FilterScheduler(self.dispatcher, max_workers=3)

    def tearDown(self):
        self.gate.release.set()
        self.scheduler.shutdown(wait=True)

    def test_futures_resolve_to_outcomes(self):
        original = self.document.get_pixel_buffer("b").copy()
        futures = self.scheduler.submit(["a", "b"], FilterSpec.create("invert"))

        outcomes = [f.result(timeout=10) for f in futures]

        self.assertEqual([o.target_id for o in outcomes], ["a", "b"])
        self.assertTrue(all(o.ok for o in outcomes))
        self.assertTrue(np.array_equal(
            self.document.get_pixel_buffer("b")[..., :3], 255 - original[..., :3]
        ))

    def test_last_write_wins(self):
        first = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 10}))
        self.assertTrue(self.gate.started.wait(timeout=10))

        second = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 20}))
        third = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 30}))
        self.gate.release.set()

        outcomes = [f[0].result(timeout=10) for f in (first, second, third)]

        self.assertEqual(outcomes[0].state, FilterState.CANCELLED)
        self.assertEqual(outcomes[1].state, FilterState.CANCELLED)
        self.assertEqual(outcomes[2].state, FilterState.COMMITTED)
        # 100 + 0.3 * 255 = 176.5
        self.assertTrue((self.document.get_pixel_buffer("a")[..., :3] == 177).all())
        self.assertEqual(self.document.get_revision("a"), 1)

    def test_other_targets_not_blocked(self):
        blocked = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 10}))
        self.assertTrue(self.gate.started.wait(timeout=10))

        other = self.scheduler.submit(["b"], FilterSpec.create("invert"))
        self.assertTrue(other[0].result(timeout=10).ok)
        self.assertFalse(blocked[0].done())

        self.gate.release.set()
        self.assertTrue(blocked[0].result(timeout=10).ok)

    def test_cancel(self):
        futures = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 10}))
        self.assertTrue(self.gate.started.wait(timeout=10))

        self.assertTrue(self.scheduler.cancel("a"))
        self.gate.release.set()

        outcome = futures[0].result(timeout=10)
        self.assertEqual(outcome.state, FilterState.CANCELLED)
        self.assertEqual(self.document.get_revision("a"), 0)

    def test_finished_targets_are_forgotten(self):
        for index in range(20):
            target_id = f"extra-{index}"
            self.document.add_target(target_id, random_buffer(2, 2, seed=index))
            self.scheduler.submit([target_id], FilterSpec.create("invert"))[0].result(timeout=10)

        self.assertEqual(self.scheduler.pending_targets(), [])
        self.assertEqual(self.dispatcher.cache.locked_targets(), 0)

    def test_superseded_task_keeps_newest_pending(self):
        first = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 10}))
        self.assertTrue(self.gate.started.wait(timeout=10))
        second = self.scheduler.submit(["a"], FilterSpec.create("brightness", {"adjustment": 20}))

        self.assertEqual(self.scheduler.pending_targets(), ["a"])
        self.gate.release.set()
        first[0].result(timeout=10)
        second[0].result(timeout=10)
        self.assertEqual(self.scheduler.pending_targets(), [])

    def test_cancel_without_pending(self):
        self.assertFalse(self.scheduler.cancel("a"))

    def test_invalid_spec_raises_on_submit(self):
        spec = FilterSpec(FilterKind.BRIGHTNESS, AdjustmentParams(-101))
        with self.assertRaises(InvalidParameterError):
            self.scheduler.submit(["a"], spec)

    def test_submit_after_shutdown(self):
        self.scheduler.shutdown(wait=True)
        with self.assertRaises(RuntimeError):
            self.scheduler.submit(["a"], FilterSpec.create("invert"))

    def test_context_manager(self):
        with FilterScheduler(self.dispatcher, max_workers=1) as scheduler:
            futures = scheduler.submit(["b"], FilterSpec.create("invert"))
        self.assertTrue(futures[0].done())


class TestCancellationToken(unittest.TestCase):
    """Test CancellationToken."""

    def test_flag(self):
        token = CancellationToken()
        self.assertFalse(token.cancelled)
        token.raise_if_cancelled()
        token.cancel()
        self.assertTrue(token.cancelled)


if __name__ == "__main__":
    unittest.main()
