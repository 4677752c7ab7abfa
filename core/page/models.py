"""
Layout primitive data models for a single PDF page.

All coordinates are PDF points with a bottom-left origin.  The extractor
flips PyMuPDF's top-left coordinates before building these objects, so
nothing downstream needs to know which way the y axis ran in the source.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

# Segments within this many degrees of an axis count as axis-aligned.
AXIS_ANGLE_TOLERANCE = 5.0


def _require_finite(owner: str, **values: float) -> None:
    """Reject NaN / infinite coordinates coming from the extractor."""
    for name, value in values.items():
        if not math.isfinite(value):
            raise ValueError(f"{owner}.{name} must be finite, got {value!r}")


def _require_non_negative(owner: str, **values: float) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{owner}.{name} must be >= 0, got {value!r}")


class TextOrientation(Enum):
    """Writing direction of a text run."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box given by its origin corner and size."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        _require_finite(
            "Rect", x=self.x, y=self.y, width=self.width, height=self.height
        )
        _require_non_negative("Rect", width=self.width, height=self.height)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class LineSegment:
    """
    A stroked straight segment.

    Geometry is immutable once extracted; the mark-stripping stages only
    filter and re-index segments.
    """

    page: int
    x1: float
    y1: float
    x2: float
    y2: float
    line_width: float = 1.0

    def __post_init__(self):
        _require_finite(
            "LineSegment",
            x1=self.x1,
            y1=self.y1,
            x2=self.x2,
            y2=self.y2,
            line_width=self.line_width,
        )

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def _axis_angle(self) -> float:
        """Angle from the x axis folded into [0, 90] degrees."""
        return math.degrees(
            math.atan2(abs(self.y2 - self.y1), abs(self.x2 - self.x1))
        )

    @property
    def is_horizontal(self) -> bool:
        return self._axis_angle < AXIS_ANGLE_TOLERANCE

    @property
    def is_vertical(self) -> bool:
        return self._axis_angle > 90.0 - AXIS_ANGLE_TOLERANCE

    @property
    def midpoint(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the two endpoints."""
        return (
            min(self.x1, self.x2),
            min(self.y1, self.y2),
            max(self.x1, self.x2),
            max(self.y1, self.y2),
        )

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "line_width": self.line_width,
            "length": self.length,
            "is_horizontal": self.is_horizontal,
            "is_vertical": self.is_vertical,
        }


@dataclass(frozen=True)
class Rectangle:
    """A closed rectangular path, extracted directly or rebuilt from lines."""

    page: int
    x: float  # left edge
    y: float  # bottom edge
    width: float
    height: float
    line_width: float = 1.0
    filled: bool = False
    stroked: bool = True

    def __post_init__(self):
        _require_finite(
            "Rectangle",
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            line_width=self.line_width,
        )
        _require_non_negative("Rectangle", width=self.width, height=self.height)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "line_width": self.line_width,
            "filled": self.filled,
            "stroked": self.stroked,
        }


@dataclass
class TextElement:
    """A run of text with its typographic attributes."""

    bbox: Rect
    text: str
    font_name: str = ""
    font_size: float = 0.0
    is_bold: bool = False
    is_italic: bool = False
    orientation: TextOrientation = TextOrientation.HORIZONTAL

    def __repr__(self) -> str:
        preview = self.text[:40].replace("\n", " ")
        return (
            f"TextElement('{preview}', "
            f"bbox=[{self.bbox.x:.0f},{self.bbox.y:.0f},"
            f"{self.bbox.width:.0f}x{self.bbox.height:.0f}])"
        )


@dataclass
class EmbeddedImage:
    """
    Placement of an image on the page.

    Pixel data is not decoded here; only the placement and the source
    pixel size are kept.
    """

    x: float
    y: float
    display_width: float
    display_height: float
    width: int = 0  # source pixels
    height: int = 0

    def __post_init__(self):
        _require_finite(
            "EmbeddedImage",
            x=self.x,
            y=self.y,
            display_width=self.display_width,
            display_height=self.display_height,
        )
        _require_non_negative(
            "EmbeddedImage",
            display_width=self.display_width,
            display_height=self.display_height,
        )

    @property
    def bbox(self) -> Rect:
        return Rect(self.x, self.y, self.display_width, self.display_height)

    @property
    def area(self) -> float:
        return self.display_width * self.display_height


@dataclass
class PageElements:
    """Every primitive found on one page, plus the page geometry."""

    page_index: int = 0
    page_width: float = 0.0
    page_height: float = 0.0
    lines: List[LineSegment] = field(default_factory=list)
    rectangles: List[Rectangle] = field(default_factory=list)
    texts: List[TextElement] = field(default_factory=list)
    images: List[EmbeddedImage] = field(default_factory=list)

    def __post_init__(self):
        _require_finite(
            "PageElements",
            page_width=self.page_width,
            page_height=self.page_height,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.lines or self.rectangles or self.texts or self.images)

    def with_geometry(
        self,
        lines: List[LineSegment],
        rectangles: List[Rectangle],
    ) -> "PageElements":
        """Return a copy sharing text and images but with new vector sets."""
        return PageElements(
            page_index=self.page_index,
            page_width=self.page_width,
            page_height=self.page_height,
            lines=list(lines),
            rectangles=list(rectangles),
            texts=self.texts,
            images=self.images,
        )

    def __repr__(self) -> str:
        return (
            f"PageElements(page={self.page_index}, "
            f"size={self.page_width:.0f}x{self.page_height:.0f}, "
            f"lines={len(self.lines)}, rects={len(self.rectangles)}, "
            f"texts={len(self.texts)}, images={len(self.images)})"
        )
