"""
Data models for printer's-mark detection and removal.

MarkConfig holds every geometric tolerance used by the rectangle
reconstructor, the bleed-mark classifier and the crop-mark detector.
The result dataclasses carry ``success`` / ``error`` / ``message`` so
that none of the stages needs to raise for an expected geometric
failure.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from core.page.models import LineSegment, PageElements, Rect, Rectangle

# ---------------------------------------------------------------------------
# Failure kinds shared by every trimming stage
# ---------------------------------------------------------------------------


class TrimError(Enum):
    """Why a trimming stage could not produce a result."""

    INSUFFICIENT_CROP_MARKS = "insufficient_crop_marks"
    AMBIGUOUS_CROP_MARKS = "ambiguous_crop_marks"
    CROP_BOX_TOO_SMALL = "crop_box_too_small"
    SINGULAR_LINEAR_SYSTEM = "singular_linear_system"
    NO_ELEMENTS_FOUND = "no_elements_found"
    INVALID_BOUNDS = "invalid_bounds"

    # Alignment against a raster image
    NO_MATCHES = "no_matches"
    SOLVED_BOX_TOO_SMALL = "solved_box_too_small"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class MarkConfig:
    """
    Geometric tolerances for mark detection, in PDF points unless noted.

    Attributes:
        min_pair_gap:          Parallel lines closer than this never form
                               opposite sides of a rebuilt rectangle.
        span_tolerance:        How far a side may fall short of the box extent.
        duplicate_tolerance:   Rebuilt boxes within this of an existing
                               rectangle (per coordinate) are duplicates.
        edge_alignment:        Line-to-edge distance for edge consumption.
        mark_sized:            Rectangles with both sides at most this size
                               never consume lines.
        same_y_tolerance:      Rectangles whose bottoms differ by less than
                               this belong to the same bleed row.
        connection_tolerance:  Slack when testing line/cluster overlap.
        edge_margin:           Bleed rows this close to the top or bottom
                               page edge are left alone.
        corner_margin:         Lines this close to a page corner are
                               protected from bleed removal.
        perpendicular_degrees: Allowed deviation from 90° for an L pair.
        proximity:             Largest extent of a crop-mark L pair.
        min_crop_side:         Smallest acceptable crop-box side.
        short_line_min:        Lower length bound for interior-box lines.
        short_line_max:        Upper length bound for interior-box lines.
        corner_join:           How close two short lines must meet.
        corner_cluster:        Corners within this distance are merged.
        coordinate_group:      Grouping distance for frequent X/Y values.
    """

    min_pair_gap: float = 10.0
    span_tolerance: float = 10.0
    duplicate_tolerance: float = 5.0
    edge_alignment: float = 2.0
    mark_sized: float = 30.0

    same_y_tolerance: float = 2.0
    connection_tolerance: float = 2.0
    edge_margin: float = 50.0
    corner_margin: float = 100.0

    perpendicular_degrees: float = 5.0
    proximity: float = 50.0
    min_crop_side: float = 100.0

    short_line_min: float = 10.0
    short_line_max: float = 30.0
    corner_join: float = 5.0
    corner_cluster: float = 5.0
    coordinate_group: float = 10.0


# ---------------------------------------------------------------------------
# Crop marks
# ---------------------------------------------------------------------------


@dataclass
class CropMark:
    """
    One L-shaped crop mark: two perpendicular lines and the point where
    their extensions meet.  ``line1`` and ``line2`` index into the line
    list the detector was given.
    """

    line1: int
    line2: int
    crop_x: float
    crop_y: float

    def __repr__(self) -> str:
        return (
            f"CropMark(lines=({self.line1},{self.line2}), "
            f"at=({self.crop_x:.1f},{self.crop_y:.1f}))"
        )


@dataclass(frozen=True)
class CropBox:
    """The trim area bounded by four crop marks (bottom-left origin)."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"CropBox.{name} must be finite, got {value!r}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def to_dict(self) -> dict:
        return self.to_rect().to_dict()

    def __repr__(self) -> str:
        return (
            f"CropBox(x={self.x:.1f}, y={self.y:.1f}, "
            f"{self.width:.1f}x{self.height:.1f})"
        )


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------


@dataclass
class BleedStripResult:
    """Output of the bleed-mark classifier."""

    lines: List[LineSegment] = field(default_factory=list)
    rectangles: List[Rectangle] = field(default_factory=list)
    removed_lines: int = 0
    removed_rectangles: int = 0
    clusters: List[Rect] = field(default_factory=list)
    skipped_clusters: int = 0


@dataclass
class CropDetectionResult:
    """Output of the crop-mark detector."""

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    crop_box: Optional[CropBox] = None
    marks: List[CropMark] = field(default_factory=list)
    candidates_found: int = 0

    # Working line set with the mark lines removed (unchanged on failure)
    lines: List[LineSegment] = field(default_factory=list)


@dataclass
class MarkStripResult:
    """
    Combined result of reconstruction, bleed removal and crop detection.

    ``elements`` always holds the best geometry available: the filtered
    page when every stage succeeded, otherwise the bleed-filtered page
    (or the untouched input if bleed filtering itself found nothing).
    ``original`` is the page exactly as extracted.
    """

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    elements: Optional[PageElements] = None
    original: Optional[PageElements] = None
    crop_box: Optional[CropBox] = None
    estimated: bool = False

    reconstructed_rectangles: int = 0
    consumed_edges: int = 0
    bleed: Optional[BleedStripResult] = None
    crop: Optional[CropDetectionResult] = None

    def summary(self) -> str:
        """One-line description for log output."""
        if self.success:
            tag = " (estimated)" if self.estimated else ""
            return f"crop box {self.crop_box}{tag}"
        name = self.error.name if self.error else "UNKNOWN"
        return f"failed: {name} — {self.message}"
