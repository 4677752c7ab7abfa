"""
Layout primitive extraction for PDF pages.

Wraps PyMuPDF's drawing, text and image listings and converts everything
to bottom-left-origin PDF points.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import fitz

from .models import (
    EmbeddedImage,
    LineSegment,
    PageElements,
    Rect,
    Rectangle,
    TextElement,
    TextOrientation,
)

logger = logging.getLogger(__name__)

# Corner points closer than this are treated as sharing an x or y value.
_RECT_CORNER_TOLERANCE = 0.5


def _is_axis_aligned_box(points: Sequence[Tuple[float, float]]) -> bool:
    """True when four corner points use exactly two x and two y values."""
    xs: List[float] = []
    ys: List[float] = []
    for x, y in points:
        if not any(abs(x - v) < _RECT_CORNER_TOLERANCE for v in xs):
            xs.append(x)
        if not any(abs(y - v) < _RECT_CORNER_TOLERANCE for v in ys):
            ys.append(y)
    return len(xs) == 2 and len(ys) == 2


class PagePrimitives:
    """
    Extracts line segments, rectangles, text runs and image placements
    from one PDF page.

    Only straight path items are considered; curves are ignored.  Lines
    come from stroked paths only, so a stroked rectangle contributes both
    a ``Rectangle`` and its four edge segments (the rectangle
    reconstructor later removes edges that belong to large boxes).
    """

    def __init__(
        self,
        page: fitz.Page,
        page_index: int = 0,
        min_rect_size: float = 5.0,
        min_line_length: float = 5.0,
    ):
        self.page = page
        self.page_index = page_index
        self.min_rect_size = min_rect_size
        self.min_line_length = min_line_length

        rect = page.rect
        self.page_width = rect.width
        self.page_height = rect.height

        self.lines: List[LineSegment] = []
        self.rectangles: List[Rectangle] = []
        self.texts: List[TextElement] = []
        self.images: List[EmbeddedImage] = []

        self._extract_drawings()
        self._extract_text()
        self._extract_images()

    # -- coordinate helpers ---------------------------------------------------

    def _flip_y(self, y: float) -> float:
        return self.page_height - y

    def _to_rect(self, r: fitz.Rect) -> Rect:
        """fitz top-left rect → bottom-left ``Rect``."""
        return Rect(
            x=r.x0,
            y=self._flip_y(r.y1),
            width=r.x1 - r.x0,
            height=r.y1 - r.y0,
        )

    # -- vector graphics --------------------------------------------------

    def _extract_drawings(self):
        try:
            drawings = self.page.get_drawings()
        except Exception as e:
            raise RuntimeError(
                f"Failed to read drawings on page {self.page_index}: {e}"
            ) from e

        for path in drawings:
            kind = path.get("type") or ""
            filled = "f" in kind
            stroked = "s" in kind
            width = path.get("width") or 1.0
            items = path.get("items", [])

            for item in items:
                op = item[0]
                if op == "re":
                    corners = self._rect_corners(item[1])
                    self._add_rectangle(corners, width, filled, stroked)
                    if stroked:
                        self._add_polygon_edges(corners, width)
                elif op == "qu":
                    quad = item[1]
                    corners = [
                        (quad.ul.x, quad.ul.y),
                        (quad.ur.x, quad.ur.y),
                        (quad.lr.x, quad.lr.y),
                        (quad.ll.x, quad.ll.y),
                    ]
                    self._add_rectangle(corners, width, filled, stroked)
                    if stroked:
                        self._add_polygon_edges(corners, width)
                elif op == "l" and stroked:
                    p1, p2 = item[1], item[2]
                    self._add_line(p1.x, p1.y, p2.x, p2.y, width)

            # A closed path made of exactly four straight segments is a box
            # drawn with line operators rather than ``re``.
            if path.get("closePath") and len(items) in (3, 4):
                if all(it[0] == "l" for it in items):
                    corners = [(it[1].x, it[1].y) for it in items]
                    if len(corners) == 3:
                        last = items[-1][2]
                        corners.append((last.x, last.y))
                    self._add_rectangle(corners, width, filled, stroked)
                    if stroked and len(items) == 3:
                        # closing segment is implicit in the path
                        first, last = items[0][1], items[-1][2]
                        self._add_line(last.x, last.y, first.x, first.y, width)

        logger.debug(
            "Page %d: %d lines, %d rectangles from drawings",
            self.page_index,
            len(self.lines),
            len(self.rectangles),
        )

    @staticmethod
    def _rect_corners(r: fitz.Rect) -> List[Tuple[float, float]]:
        return [(r.x0, r.y0), (r.x1, r.y0), (r.x1, r.y1), (r.x0, r.y1)]

    def _add_rectangle(
        self,
        corners: List[Tuple[float, float]],
        line_width: float,
        filled: bool,
        stroked: bool,
    ):
        if len(corners) != 4 or not _is_axis_aligned_box(corners):
            return
        xs = [c[0] for c in corners]
        ys = [c[1] for c in corners]
        width = max(xs) - min(xs)
        height = max(ys) - min(ys)
        if width < self.min_rect_size or height < self.min_rect_size:
            return
        self.rectangles.append(
            Rectangle(
                page=self.page_index,
                x=min(xs),
                y=self._flip_y(max(ys)),
                width=width,
                height=height,
                line_width=line_width,
                filled=filled,
                stroked=stroked,
            )
        )

    def _add_polygon_edges(
        self, corners: List[Tuple[float, float]], line_width: float
    ):
        for (x1, y1), (x2, y2) in zip(corners, corners[1:] + corners[:1]):
            self._add_line(x1, y1, x2, y2, line_width)

    def _add_line(self, x1: float, y1: float, x2: float, y2: float, width: float):
        if math.hypot(x2 - x1, y2 - y1) < self.min_line_length:
            return
        self.lines.append(
            LineSegment(
                page=self.page_index,
                x1=x1,
                y1=self._flip_y(y1),
                x2=x2,
                y2=self._flip_y(y2),
                line_width=width,
            )
        )

    # -- text -----------------------------------------------------------------

    def _extract_text(self):
        try:
            text_dict = self.page.get_text("dict")
        except Exception as e:
            raise RuntimeError(
                f"Failed to extract text on page {self.page_index}: {e}"
            ) from e

        for block in text_dict.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                orientation = self._orientation(line.get("dir", (1, 0)))
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    flags = span.get("flags", 0)
                    self.texts.append(
                        TextElement(
                            bbox=self._to_rect(fitz.Rect(span["bbox"])),
                            text=text.strip(),
                            font_name=span.get("font", ""),
                            font_size=span.get("size", 0.0),
                            is_bold=bool(flags & (1 << 4)),
                            is_italic=bool(flags & (1 << 1)),
                            orientation=orientation,
                        )
                    )

    @staticmethod
    def _orientation(direction: Tuple[float, float]) -> TextOrientation:
        dx, dy = direction
        if abs(dy) < 1e-3:
            return TextOrientation.HORIZONTAL
        if abs(dx) < 1e-3:
            return TextOrientation.VERTICAL
        return TextOrientation.UNKNOWN

    # -- images ---------------------------------------------------------------

    def _extract_images(self):
        try:
            infos = self.page.get_image_info()
        except Exception as e:
            logger.warning(
                "Image listing failed on page %d: %s", self.page_index, e
            )
            return

        for info in infos:
            bbox = self._to_rect(fitz.Rect(info["bbox"]))
            self.images.append(
                EmbeddedImage(
                    x=bbox.x,
                    y=bbox.y,
                    display_width=bbox.width,
                    display_height=bbox.height,
                    width=info.get("width", 0),
                    height=info.get("height", 0),
                )
            )

    # -- result ---------------------------------------------------------------

    def to_elements(self) -> PageElements:
        return PageElements(
            page_index=self.page_index,
            page_width=self.page_width,
            page_height=self.page_height,
            lines=list(self.lines),
            rectangles=list(self.rectangles),
            texts=list(self.texts),
            images=list(self.images),
        )

    def __len__(self) -> int:
        return (
            len(self.lines) + len(self.rectangles) + len(self.texts) + len(self.images)
        )


def extract_page_elements(
    page: fitz.Page,
    page_index: Optional[int] = None,
    min_rect_size: float = 5.0,
    min_line_length: float = 5.0,
) -> PageElements:
    """Convenience wrapper returning a ``PageElements`` for *page*."""
    index = page.number if page_index is None else page_index
    return PagePrimitives(
        page,
        page_index=index,
        min_rect_size=min_rect_size,
        min_line_length=min_line_length,
    ).to_elements()
