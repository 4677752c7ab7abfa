"""Tests for the bleed-mark classifier."""

from trimming.marks.bleed import group_by_baseline, is_near_corner, strip_bleed_marks

from .conftest import PAGE_H, PAGE_W, page_of, rect, seg


class TestGrouping:
    def test_rows_grouped_by_first_member(self):
        rects = [rect(0, 100, 5, 5), rect(10, 101.5, 5, 5), rect(20, 300, 5, 5)]
        assert group_by_baseline(rects, 2) == [[0, 1]]

    def test_chain_is_not_transitive(self):
        # 103 is within 2 of 101.5 but not of the seed at 100
        rects = [rect(0, 100, 5, 5), rect(10, 101.5, 5, 5), rect(20, 103, 5, 5)]
        assert group_by_baseline(rects, 2) == [[0, 1]]

    def test_singletons_dropped(self):
        assert group_by_baseline([rect(0, 100, 5, 5)], 2) == []


class TestCornerProtection:
    def test_lower_left(self):
        assert is_near_corner(seg(20, 30, 40, 30), PAGE_W, PAGE_H, 100)

    def test_upper_right(self):
        assert is_near_corner(seg(450, 650, 490, 650), PAGE_W, PAGE_H, 100)

    def test_middle_of_left_edge_is_not_a_corner(self):
        assert not is_near_corner(seg(20, 300, 40, 300), PAGE_W, PAGE_H, 100)


class TestStripBleedMarks:
    def test_row_and_connecting_stroke_removed(self):
        bar = seg(100, 305, 250, 305)
        keep = seg(100, 500, 250, 500)
        page = page_of(
            lines=[bar, keep],
            rectangles=[rect(100, 300, 10, 10), rect(150, 300, 10, 10), rect(200, 301, 10, 10)],
        )
        result = strip_bleed_marks(page)

        assert result.removed_rectangles == 3
        assert result.removed_lines == 1
        assert result.rectangles == []
        assert result.lines == [keep]
        assert len(result.clusters) == 1
        box = result.clusters[0]
        assert (box.x, box.y, box.width, box.height) == (100, 300, 110, 11)

    def test_rows_at_page_edges_are_kept(self):
        bottom = [rect(100, 5, 10, 10), rect(150, 5, 10, 10), rect(200, 5, 10, 10)]
        top = [rect(100, 660, 10, 10), rect(150, 660, 10, 10)]
        page = page_of(rectangles=bottom + top)
        result = strip_bleed_marks(page)

        assert result.removed_rectangles == 0
        assert result.skipped_clusters == 2
        assert len(result.rectangles) == 5

    def test_corner_strokes_are_protected(self):
        corner = seg(20, 62, 40, 62)
        page = page_of(lines=[corner], rectangles=[rect(10, 60, 10, 10), rect(30, 60, 10, 10)])
        result = strip_bleed_marks(page)

        assert result.removed_rectangles == 2
        assert result.lines == [corner]

    def test_single_rectangle_is_not_a_row(self):
        frame = rect(50, 100, 400, 500)
        result = strip_bleed_marks(page_of(rectangles=[frame]))
        assert result.rectangles == [frame]
        assert result.clusters == []

    def test_marked_page_only_loses_the_bleed_row(self, marked_page):
        result = strip_bleed_marks(marked_page)
        assert result.removed_rectangles == 3
        assert result.removed_lines == 1
        # crop marks and frame strokes survive
        assert len(result.lines) == 12
