"""Tests for bounds selection and the relative layout map."""

import pytest

from core.page.models import EmbeddedImage, Rect
from trimming.marks.models import CropBox, TrimError
from trimming.marks.stripper import strip_marks
from trimming.mapping.models import BoundsMode, ElementKind, RelativeElement
from trimming.mapping.relative_map import (
    create_relative_map,
    is_fill_in_blank,
    select_bounds,
    sort_reading_order,
    to_page_rect,
    to_relative,
)

from .conftest import page_of, rect, text


class TestSelectBounds:
    def test_crop_box_used_as_is(self):
        result = select_bounds(page_of(), BoundsMode.CROP_MARKS, CropBox(10, 20, 300, 400))
        assert result.success
        assert result.mode == BoundsMode.CROP_MARKS
        assert result.bounds == Rect(10, 20, 300, 400)

    def test_missing_crop_box_falls_back_to_content(self):
        page = page_of(texts=[text("a", 50, 60, 20, 10), text("b", 200, 300, 40, 10)])
        result = select_bounds(page, BoundsMode.CROP_MARKS, None)
        assert result.success
        assert result.mode == BoundsMode.CONTENT
        assert result.bounds == Rect(50, 60, 190, 250)

    def test_content_includes_images(self):
        img = EmbeddedImage(x=300, y=400, display_width=100, display_height=50)
        page = page_of(texts=[text("a", 50, 60, 20, 10)], images=[img])
        result = select_bounds(page, BoundsMode.CONTENT)
        assert result.bounds == Rect(50, 60, 350, 390)

    def test_content_ignores_lines_and_rectangles(self):
        page = page_of(rectangles=[rect(0, 0, 400, 400)], texts=[text("a", 50, 60, 20, 10)])
        result = select_bounds(page, BoundsMode.CONTENT)
        assert result.bounds == Rect(50, 60, 20, 10)

    def test_largest_rectangle(self):
        page = page_of(rectangles=[rect(0, 0, 50, 50), rect(100, 100, 200, 300)])
        result = select_bounds(page, BoundsMode.LARGEST_RECTANGLE)
        assert result.mode == BoundsMode.LARGEST_RECTANGLE
        assert result.bounds == Rect(100, 100, 200, 300)

    def test_largest_rectangle_falls_back_to_image(self):
        img = EmbeddedImage(x=10, y=20, display_width=30, display_height=40)
        result = select_bounds(page_of(images=[img]), BoundsMode.LARGEST_RECTANGLE)
        assert result.bounds == Rect(10, 20, 30, 40)

    def test_nothing_to_bound(self):
        for mode in (BoundsMode.LARGEST_RECTANGLE, BoundsMode.CONTENT):
            result = select_bounds(page_of(), mode)
            assert not result.success
            assert result.error == TrimError.NO_ELEMENTS_FOUND

    def test_zero_area_bounds(self):
        page = page_of(texts=[text("a", 50, 60, 0, 10)])
        result = select_bounds(page, BoundsMode.CONTENT)
        assert result.error == TrimError.INVALID_BOUNDS


class TestConversion:
    def test_top_strip(self):
        bounds = Rect(0, 0, 100, 200)
        elem = to_relative(Rect(0, 190, 100, 10), bounds, ElementKind.TEXT)
        assert elem.relative_x == pytest.approx(0.5)
        assert elem.relative_y == pytest.approx(0.025)
        assert elem.relative_width == pytest.approx(1.0)
        assert elem.relative_height == pytest.approx(0.05)

    def test_round_trip(self):
        bounds = Rect(12.5, 33.25, 410.75, 590.5)
        box = Rect(57.3, 101.9, 123.4, 17.7)
        back = to_page_rect(to_relative(box, bounds, ElementKind.IMAGE), bounds)
        assert back.x == pytest.approx(box.x, abs=1e-6)
        assert back.y == pytest.approx(box.y, abs=1e-6)
        assert back.width == pytest.approx(box.width, abs=1e-6)
        assert back.height == pytest.approx(box.height, abs=1e-6)

    def test_pixel_box(self):
        elem = RelativeElement(ElementKind.TEXT, 0.5, 0.5, 0.2, 0.1)
        box = elem.pixel_box(200, 100)
        assert (box.x, box.y, box.width, box.height) == pytest.approx((80, 45, 40, 10))

    def test_fill_in_blank(self):
        assert is_fill_in_blank("__________")
        assert is_fill_in_blank("____ab")
        assert not is_fill_in_blank("___abc")
        assert not is_fill_in_blank("")


class TestCreateRelativeMap:
    def test_marked_page(self, marked_page):
        stripped = strip_marks(marked_page)
        bounds = select_bounds(stripped.elements, BoundsMode.CROP_MARKS, stripped.crop_box)
        rel = create_relative_map(stripped.elements, bounds.bounds, bounds.mode)

        assert rel.success
        assert rel.dropped_texts == 1
        assert [e.kind for e in rel.elements] == [
            ElementKind.TEXT,
            ElementKind.TEXT,
            ElementKind.IMAGE,
        ]
        title = rel.elements[0]
        assert title.text.text == "Annual Report"
        assert title.text.font_name == "Helvetica"
        assert title.relative_x == pytest.approx((110 + 75) / 480)
        assert title.relative_y == pytest.approx((680 - 454 + 7) / 680)
        assert rel.aspect_ratio == pytest.approx(480 / 680)

    def test_elements_outside_bounds_are_kept(self):
        page = page_of(texts=[text("outside", 600, 10, 50, 10)])
        rel = create_relative_map(page, Rect(0, 0, 100, 100))
        assert len(rel.elements) == 1
        assert rel.elements[0].relative_x > 1.0

    def test_degenerate_bounds(self):
        rel = create_relative_map(page_of(), Rect(0, 0, 0, 100))
        assert not rel.success
        assert rel.error == TrimError.INVALID_BOUNDS


class TestReadingOrder:
    def test_rows_then_columns(self):
        def at(x, y):
            return RelativeElement(ElementKind.TEXT, x, y, 0.1, 0.01)

        a, b, c, d = at(0.8, 0.1), at(0.2, 0.102), at(0.5, 0.5), at(0.1, 0.5)
        assert sort_reading_order([c, a, d, b]) == [b, a, d, c]

    def test_custom_position(self):
        items = [("second", 5, 1), ("first", 1, 1), ("third", 0, 9)]
        ordered = sort_reading_order(items, tolerance=0.5, position=lambda it: (it[1], it[2]))
        assert [it[0] for it in ordered] == ["first", "second", "third"]
