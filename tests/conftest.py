"""
Pytest configuration and shared fixtures for pixel filter engine tests.

This module provides shared test fixtures and buffer helpers
used across multiple test modules.
"""

import numpy as np
import pytest

from PF_Libs.DispatchLib.document_model import InMemoryDocument, SelectionState
from PF_Libs.SelectionLib.selection_models import Rect, SelectionMask


def uniform_buffer(width, height, color):
    """Build an RGBA buffer filled with one color."""
    buffer = np.empty((height, width, 4), dtype=np.uint8)
    buffer[...] = color
    return buffer


def random_buffer(width, height, seed=0, opaque=False):
    """Build a reproducible random RGBA buffer."""
    rng = np.random.default_rng(seed)
    buffer = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    if opaque:
        buffer[..., 3] = 255
    return buffer


@pytest.fixture
def gray_buffer():
    """4x4 buffer of (128, 128, 128, 255)."""
    return uniform_buffer(4, 4, (128, 128, 128, 255))


@pytest.fixture
def noisy_buffer():
    """12x10 random RGBA buffer with varying alpha."""
    return random_buffer(12, 10, seed=7)


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
        (200, 120, 40, 128),   # Semi-transparent orange
    ]


@pytest.fixture
def document():
    """Document with two 8x6 random targets placed at the display origin."""
    doc = InMemoryDocument()
    doc.add_target("layer-1", random_buffer(8, 6, seed=1))
    doc.add_target("layer-2", random_buffer(8, 6, seed=2))
    return doc


@pytest.fixture
def selection():
    return SelectionState()


@pytest.fixture
def left_half_mask():
    """Full coverage for display x < 2 over a 4x4 area."""
    return SelectionMask.from_rect(Rect(0, 0, 2, 4))
