"""Tests for the full mark-stripping sequence."""

import pytest

from trimming.marks.models import MarkConfig, TrimError
from trimming.marks.stripper import strip_marks

from .conftest import crop_mark_lines, page_of, seg


class TestStripMarks:
    def test_marked_page(self, marked_page):
        result = strip_marks(marked_page)

        assert result.success
        assert not result.estimated
        box = result.crop_box
        assert (box.x, box.y, box.width, box.height) == pytest.approx((10, 10, 480, 680))

        assert result.reconstructed_rectangles == 1
        assert result.consumed_edges == 4
        assert result.bleed.removed_rectangles == 3
        assert result.bleed.removed_lines == 1

        cleaned = result.elements
        assert cleaned.lines == []
        assert len(cleaned.rectangles) == 1
        frame = cleaned.rectangles[0]
        assert (frame.x, frame.y, frame.width, frame.height) == (100, 200, 300, 300)
        assert len(cleaned.texts) == 3
        assert len(cleaned.images) == 1

    def test_original_elements_untouched(self, marked_page):
        result = strip_marks(marked_page)
        assert result.original is marked_page
        assert len(marked_page.lines) == 13
        assert len(marked_page.rectangles) == 3

    def test_failure_keeps_cleaned_geometry(self):
        body = seg(100, 300, 400, 300)
        result = strip_marks(page_of(lines=[body]))

        assert not result.success
        assert result.error == TrimError.INSUFFICIENT_CROP_MARKS
        assert result.crop_box is None
        assert result.elements.lines == [body]
        assert "failed" in result.summary()

    def test_estimate_used_when_allowed(self):
        cfg = MarkConfig(proximity=5)
        page = page_of(lines=crop_mark_lines(arm=20))

        strict = strip_marks(page, cfg)
        assert not strict.success

        loose = strip_marks(page, cfg, allow_estimate=True)
        assert loose.success
        assert loose.estimated
        assert loose.error is None
        box = loose.crop_box
        assert (box.x, box.y, box.width, box.height) == pytest.approx((10, 10, 480, 680))

    def test_estimate_too_small_is_rejected(self):
        cfg = MarkConfig(proximity=5)
        page = page_of(lines=crop_mark_lines(right=60, top=60, arm=20))
        result = strip_marks(page, cfg, allow_estimate=True)
        assert not result.success
        assert not result.estimated
