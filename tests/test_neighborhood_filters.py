"""
Tests for Blur and Sharpen.

Tests cover:
- Radius to pixel half-width conversion
- Identity at zero radius/strength
- Edge behavior of the separable box passes
- Mask-aware sampling (no leakage across the selection edge)
- Alpha handling
- Cancellation
"""

import unittest

import numpy as np

from conftest import random_buffer, uniform_buffer
from PF_Libs.errors import FilterCancelledError
from PF_Libs.DispatchLib.raster_models import CancellationToken
from PF_Libs.FilterLib.filter_models import BlurParams, SharpenParams
from PF_Libs.FilterLib.neighborhood_filters import (
    BlurFilter,
    SharpenFilter,
    blur_half_width,
    box_blur,
)


def split_buffer(width=20, height=10, left=(0, 0, 0, 255), right=(255, 255, 255, 255)):
    buffer = uniform_buffer(width, height, left)
    buffer[:, width // 2:] = right
    return buffer


class TestBlurHalfWidth(unittest.TestCase):
    """Test percent radius to pixel conversion."""

    def test_conversion(self):
        self.assertEqual(blur_half_width(0), 0)
        self.assertEqual(blur_half_width(1), 1)
        self.assertEqual(blur_half_width(10), 1)
        self.assertEqual(blur_half_width(11), 2)
        self.assertEqual(blur_half_width(20), 2)
        self.assertEqual(blur_half_width(100), 10)


class TestBlurFilter(unittest.TestCase):
    """Test the three-pass box blur."""

    def setUp(self):
        self.blur = BlurFilter()

    def test_zero_radius_identity(self):
        buffer = random_buffer(9, 7, seed=3)
        result = self.blur.apply_whole(buffer, BlurParams(0))
        self.assertTrue(np.array_equal(result, buffer))

    def test_uniform_buffer_unchanged(self):
        buffer = uniform_buffer(8, 8, (90, 140, 200, 255))
        result = self.blur.apply_whole(buffer, BlurParams(60))
        self.assertTrue(np.array_equal(result, buffer))

    def test_spreads_a_bright_pixel(self):
        buffer = uniform_buffer(9, 9, (0, 0, 0, 255))
        buffer[4, 4] = (255, 255, 255, 255)
        result = self.blur.apply_whole(buffer, BlurParams(10))
        self.assertLess(result[4, 4, 0], 255)
        self.assertGreater(result[4, 5, 0], 0)
        self.assertGreater(result[5, 4, 0], 0)
        self.assertEqual(result[0, 0, 0], 0)

    def test_blurs_alpha(self):
        buffer = uniform_buffer(8, 8, (10, 20, 30, 255))
        buffer[::2, ::2, 3] = 0
        result = self.blur.apply_whole(buffer, BlurParams(30))
        self.assertFalse(self.blur.alpha_invariant)
        self.assertFalse(np.array_equal(result[..., 3], buffer[..., 3]))

    def test_input_not_mutated(self):
        buffer = random_buffer(6, 6, seed=4)
        before = buffer.copy()
        self.blur.apply_whole(buffer, BlurParams(50))
        self.assertTrue(np.array_equal(buffer, before))

    def test_excluded_pixels_never_leak(self):
        buffer = split_buffer()
        include = np.zeros(buffer.shape[:2], dtype=bool)
        include[:, :10] = True

        result = self.blur.apply_whole(buffer, BlurParams(50), include=include)

        # Selected half only ever saw black pixels
        self.assertTrue(np.array_equal(result[:, :10], buffer[:, :10]))
        self.assertTrue(np.array_equal(result[:, 10:], buffer[:, 10:]))

    def test_without_mask_edge_blends(self):
        buffer = split_buffer()
        result = self.blur.apply_whole(buffer, BlurParams(50))
        self.assertGreater(result[0, 9, 0], 0)
        self.assertLess(result[0, 10, 0], 255)

    def test_nothing_included(self):
        buffer = random_buffer(6, 6, seed=5)
        include = np.zeros(buffer.shape[:2], dtype=bool)
        result = self.blur.apply_whole(buffer, BlurParams(50), include=include)
        self.assertTrue(np.array_equal(result, buffer))

    def test_cancelled_token(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(FilterCancelledError):
            box_blur(random_buffer(6, 6), 2, token=token)


class TestSharpenFilter(unittest.TestCase):
    """Test the unsharp mask."""

    def setUp(self):
        self.sharpen = SharpenFilter()

    def test_zero_strength_identity(self):
        buffer = random_buffer(9, 7, seed=6)
        result = self.sharpen.apply_whole(buffer, SharpenParams(0))
        self.assertTrue(np.array_equal(result, buffer))

    def test_increases_edge_contrast(self):
        buffer = split_buffer(left=(100, 100, 100, 255), right=(150, 150, 150, 255))
        result = self.sharpen.apply_whole(buffer, SharpenParams(50))
        self.assertLess(result[5, 9, 0], 100)
        self.assertGreater(result[5, 10, 0], 150)
        # Far from the edge nothing changes
        self.assertEqual(result[5, 0, 0], 100)
        self.assertEqual(result[5, 19, 0], 150)

    def test_alpha_untouched(self):
        buffer = random_buffer(8, 8, seed=8)
        result = self.sharpen.apply_whole(buffer, SharpenParams(80))
        self.assertTrue(self.sharpen.alpha_invariant)
        self.assertTrue(np.array_equal(result[..., 3], buffer[..., 3]))

    def test_excluded_pixels_never_leak(self):
        buffer = split_buffer(left=(100, 100, 100, 255), right=(150, 150, 150, 255))
        include = np.zeros(buffer.shape[:2], dtype=bool)
        include[:, :10] = True

        result = self.sharpen.apply_whole(buffer, SharpenParams(100), include=include)

        self.assertTrue(np.array_equal(result, buffer))


if __name__ == "__main__":
    unittest.main()
