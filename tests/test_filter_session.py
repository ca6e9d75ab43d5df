"""
Tests for FilterSession and the in-memory document and selection models.
"""

import numpy as np
import pytest
from PIL import Image

from conftest import random_buffer, uniform_buffer
from PF_Libs.errors import NoTargetsError, UnsupportedFilterKindError
from PF_Libs.DispatchLib.document_model import InMemoryDocument, SelectionState
from PF_Libs.DispatchLib.engine_config import FilterEngineConfig
from PF_Libs.DispatchLib.filter_session import FilterSession
from PF_Libs.FilterLib.filter_models import FilterSpec
from PF_Libs.SelectionLib.coordinate_mapper import DisplayTransform
from PF_Libs.SelectionLib.selection_models import Rect, SelectionMask


class TestInMemoryDocument:
    """Tests for InMemoryDocument."""

    def test_buffers_are_frozen(self, document):
        with pytest.raises(ValueError):
            document.get_pixel_buffer("layer-1")[0, 0, 0] = 1

    def test_replace_notifies_listeners(self, document):
        calls = []
        document.add_listener(lambda target_id, source: calls.append((target_id, source)))
        document.replace_pixel_buffer("layer-1", random_buffer(8, 6, seed=3), source="brush")
        assert calls == [("layer-1", "brush")]
        assert document.get_revision("layer-1") == 1

    def test_replace_rejects_size_change(self, document):
        with pytest.raises(ValueError):
            document.replace_pixel_buffer("layer-1", random_buffer(3, 3))

    def test_duplicate_target(self, document):
        with pytest.raises(ValueError):
            document.add_target("layer-1", random_buffer(2, 2))

    def test_unknown_target(self, document):
        with pytest.raises(KeyError):
            document.get_pixel_buffer("nope")

    def test_image_round_trip(self):
        document = InMemoryDocument()
        image = Image.new("RGB", (5, 3), (10, 20, 30))
        target = document.add_image("photo", image)
        assert (target.width, target.height) == (5, 3)
        out = document.to_image("photo")
        assert out.mode == "RGBA"
        assert out.getpixel((0, 0)) == (10, 20, 30, 255)

    def test_select_unknown(self, document):
        with pytest.raises(KeyError):
            document.select(["ghost"])

    def test_remove_target(self, document):
        document.select(["layer-2"])
        assert document.remove_target("layer-2")
        assert document.selected_ids() == []
        assert not document.remove_target("layer-2")


class TestSelectionState:
    """Tests for SelectionState."""

    def test_set_and_clear(self, left_half_mask):
        selection = SelectionState()
        assert selection.get_active_mask() is None
        selection.set_mask(left_half_mask)
        assert selection.get_active_mask() is left_half_mask
        selection.clear()
        assert selection.get_active_mask() is None

    def test_rejects_non_mask(self):
        with pytest.raises(TypeError):
            SelectionState().set_mask(np.zeros((2, 2)))


class TestFilterSession:
    """Tests for FilterSession."""

    def test_defaults_to_all_rasters(self, document, selection):
        session = FilterSession(document, selection)
        outcomes = session.apply_filter("invert")
        assert [o.target_id for o in outcomes] == ["layer-1", "layer-2"]

    def test_object_selection_mode(self, document, selection):
        document.select(["layer-2"])
        document.object_selection_mode = True
        session = FilterSession(document, selection)
        outcomes = session.apply_filter("invert")
        assert [o.target_id for o in outcomes] == ["layer-2"]
        assert document.get_revision("layer-1") == 0

    def test_explicit_targets(self, document, selection):
        session = FilterSession(document, selection)
        outcomes = session.apply_filter("greyscale", target_ids=["layer-1"])
        assert [o.target_id for o in outcomes] == ["layer-1"]
        buffer = document.get_pixel_buffer("layer-1")
        assert np.array_equal(buffer[..., 0], buffer[..., 1])

    def test_strict_resolution(self, selection):
        session = FilterSession(InMemoryDocument(), selection)
        assert session.resolve_targets() == []
        with pytest.raises(NoTargetsError):
            session.resolve_targets(strict=True)

    def test_empty_document_is_noop(self, selection):
        session = FilterSession(InMemoryDocument(), selection)
        assert session.apply_filter("invert") == []

    def test_unknown_kind(self, document, selection):
        session = FilterSession(document, selection)
        with pytest.raises(UnsupportedFilterKindError):
            session.apply_filter("posterize")
        assert document.get_revision("layer-1") == 0

    def test_accepts_spec(self, document, selection):
        session = FilterSession(document, selection)
        outcomes = session.apply_filter(FilterSpec.create("blur", {"radius": 20}))
        assert all(o.ok for o in outcomes)

    def test_uses_active_mask(self, document, selection):
        original = document.get_pixel_buffer("layer-1").copy()
        selection.set_mask(SelectionMask.from_rect(Rect(0, 0, 2, 6)))
        session = FilterSession(document, selection)

        outcomes = session.apply_filter("invert", target_ids=["layer-1"])

        assert outcomes[0].path == "masked"
        result = document.get_pixel_buffer("layer-1")
        assert np.array_equal(result[:, 2:], original[:, 2:])
        assert not np.array_equal(result[:, :2], original[:, :2])

    def test_mask_snapshot_taken_at_start(self, document, selection):
        mask = SelectionMask.from_rect(Rect(0, 0, 2, 6))
        selection.set_mask(mask)
        session = FilterSession(document, selection)

        def clear_selection(outcome):
            selection.clear()

        outcomes = session.apply_filter("invert", on_complete=clear_selection)

        # The second target still saw the mask captured at invocation start
        assert [o.path for o in outcomes] == ["masked", "masked"]

    def test_external_edit_invalidates_session_cache(self, document, selection):
        session = FilterSession(document, selection)
        session.apply_filter("invert", target_ids=["layer-1"])
        assert len(session.cache) == 1

        document.replace_pixel_buffer("layer-1", random_buffer(8, 6, seed=50), source="brush")
        assert len(session.cache) == 0

    def test_external_edit_on_listenerless_document(self):
        class BufferOnlyDocument:
            def __init__(self):
                self.buffer = uniform_buffer(3, 3, (10, 10, 10, 255))

            def get_pixel_buffer(self, target_id):
                return self.buffer

            def get_display_transform(self, target_id):
                return DisplayTransform()

            def replace_pixel_buffer(self, target_id, buffer, source=None):
                self.buffer = np.array(buffer, copy=True)

        document = BufferOnlyDocument()
        session = FilterSession(document)
        session.apply_filter("brightness", {"adjustment": 20}, target_ids=["canvas"])

        document.replace_pixel_buffer("canvas", uniform_buffer(3, 3, (200, 200, 200, 255)), source="brush")
        outcomes = session.apply_filter("brightness", {"adjustment": 20}, target_ids=["canvas"])

        assert not outcomes[0].cache_hit
        assert document.buffer[0, 0].tolist() == [251, 251, 251, 255]

    def test_repeat_is_cached(self, document, selection):
        session = FilterSession(document, selection)
        session.apply_filter("sepia", {"intensity": 40})
        outcomes = session.apply_filter("sepia", {"intensity": 40})
        assert all(o.cache_hit for o in outcomes)

    def test_submit_filter(self, document, selection):
        with FilterSession(document, selection, FilterEngineConfig(max_workers=2)) as session:
            futures = session.submit_filter("brightness", {"adjustment": 25})
            outcomes = [f.result(timeout=10) for f in futures]
        assert all(o.ok for o in outcomes)

    def test_close_detaches_listener(self, document, selection):
        session = FilterSession(document, selection)
        session.apply_filter("invert", target_ids=["layer-1"])
        session.close()
        assert not document.remove_listener(session.cache.on_buffer_replaced)
        assert len(session.cache) == 0

    def test_without_selection(self, document):
        session = FilterSession(document)
        outcomes = session.apply_filter("invert")
        assert all(o.path == "fast" for o in outcomes)
