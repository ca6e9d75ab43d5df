"""
SelectionLib - Selection masks and display/pixel space helpers

Maps targets between canvas display space and their pixel space, samples
selection coverage, and blends filtered pixels by coverage.
"""

from PF_Libs.SelectionLib.selection_models import Rect, SelectionMask, mask_digest
from PF_Libs.SelectionLib.coordinate_mapper import CoordinateMapper, DisplayTransform
from PF_Libs.SelectionLib.mask_sampler import sample, sample_grid, coverage_for_target
from PF_Libs.SelectionLib.selection_blender import blend, blend_buffers

__all__ = [
    "Rect",
    "SelectionMask",
    "mask_digest",
    "CoordinateMapper",
    "DisplayTransform",
    "sample",
    "sample_grid",
    "coverage_for_target",
    "blend",
    "blend_buffers",
]
