"""
Crop-mark detection.

A crop mark is a pair of short perpendicular strokes near a page corner.
Extending both strokes gives the trim corner; four such corners give the
crop box.
"""

import logging
import math
from typing import Dict, List, Optional, Set

from core.page.models import LineSegment

from .models import CropBox, CropDetectionResult, CropMark, MarkConfig, TrimError

logger = logging.getLogger(__name__)

# Determinants below this are treated as parallel lines.
_PARALLEL_EPSILON = 1e-10


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def line_angle(line: LineSegment) -> float:
    """Direction of *line* in degrees, normalized to [0, 180)."""
    deg = math.degrees(math.atan2(line.y2 - line.y1, line.x2 - line.x1))
    angle = deg % 180.0
    # tiny negative angles round up to exactly 180
    return 0.0 if angle >= 180.0 else angle


def is_perpendicular(a: LineSegment, b: LineSegment, tolerance: float) -> bool:
    diff = abs(line_angle(a) - line_angle(b))
    if diff > 90.0:
        diff = 180.0 - diff
    return abs(diff - 90.0) < tolerance


def pair_extent(a: LineSegment, b: LineSegment) -> float:
    """Larger side of the box enclosing all four endpoints."""
    xs = (a.x1, a.x2, b.x1, b.x2)
    ys = (a.y1, a.y2, b.y1, b.y2)
    return max(max(xs) - min(xs), max(ys) - min(ys))


def extended_intersection(a: LineSegment, b: LineSegment):
    """
    Intersection of the infinite lines through *a* and *b*.

    Returns:
        ``(x, y)``, or ``None`` when the lines are parallel.
    """
    x1, y1, x2, y2 = a.x1, a.y1, a.x2, a.y2
    x3, y3, x4, y4 = b.x1, b.y1, b.x2, b.y2

    den = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(den) < _PARALLEL_EPSILON:
        return None

    d1 = x1 * y2 - y1 * x2
    d2 = x3 * y4 - y3 * x4
    ix = (d1 * (x3 - x4) - (x1 - x2) * d2) / den
    iy = (d1 * (y3 - y4) - (y1 - y2) * d2) / den
    return ix, iy


def find_candidates(
    lines: List[LineSegment],
    perpendicular_degrees: float,
    proximity: float,
) -> List[CropMark]:
    """Every perpendicular, close-together line pair and its corner."""
    marks: List[CropMark] = []
    for i, a in enumerate(lines):
        for j in range(i + 1, len(lines)):
            b = lines[j]
            if not is_perpendicular(a, b, perpendicular_degrees):
                continue
            if pair_extent(a, b) > proximity:
                continue
            point = extended_intersection(a, b)
            if point is None:
                continue
            marks.append(CropMark(line1=i, line2=j, crop_x=point[0], crop_y=point[1]))
    return marks


def reduce_to_corners(marks: List[CropMark]) -> List[CropMark]:
    """
    Keep the outermost mark in each quadrant.

    Quadrants are split at the centre of the marks' bounding box; the
    y axis points up.  Returns fewer than four marks when a quadrant is
    empty.
    """
    min_x = min(m.crop_x for m in marks)
    max_x = max(m.crop_x for m in marks)
    min_y = min(m.crop_y for m in marks)
    max_y = max(m.crop_y for m in marks)
    cx = (min_x + max_x) / 2.0
    cy = (min_y + max_y) / 2.0

    # quadrant -> (score, mark); higher score wins
    best: Dict[str, tuple] = {}
    for mark in marks:
        x, y = mark.crop_x, mark.crop_y
        left = x < cx
        lower = y < cy
        if left and lower:
            key, score = "lower_left", -(x + y)
        elif not left and lower:
            key, score = "lower_right", x - y
        elif left and not lower:
            key, score = "upper_left", y - x
        else:
            key, score = "upper_right", x + y

        if key not in best or score > best[key][0]:
            best[key] = (score, mark)

    order = ("lower_left", "lower_right", "upper_left", "upper_right")
    return [best[k][1] for k in order if k in best]


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_crop_marks(
    lines: List[LineSegment],
    config: Optional[MarkConfig] = None,
    proximity: Optional[float] = None,
) -> CropDetectionResult:
    """
    Locate the four crop marks and compute the crop box.

    Args:
        lines:     Working line set (bleed marks already removed).
        config:    Tolerances (defaults if ``None``).
        proximity: Override for ``config.proximity``; stricter passes use
                   a smaller value.

    Returns:
        :class:`CropDetectionResult`.  On success ``lines`` has the mark
        strokes removed; on failure it is the input unchanged.
    """
    cfg = config or MarkConfig()
    limit = cfg.proximity if proximity is None else proximity

    candidates = find_candidates(lines, cfg.perpendicular_degrees, limit)
    logger.debug("Crop detection: %d candidate L pairs", len(candidates))

    result = CropDetectionResult(candidates_found=len(candidates), lines=list(lines))

    if len(candidates) < 4:
        result.error = TrimError.INSUFFICIENT_CROP_MARKS
        result.message = f"Could not find 4 crop marks. Found: {len(candidates)}"
        return result

    marks = candidates
    if len(marks) > 4:
        marks = reduce_to_corners(marks)
        logger.debug("Reduced %d candidates to %d corners", len(candidates), len(marks))

    if len(marks) != 4:
        result.error = TrimError.AMBIGUOUS_CROP_MARKS
        result.message = "Could not identify exactly 4 crop marks"
        return result

    for mark in marks:
        logger.debug("Crop mark: %r", mark)

    min_x = min(m.crop_x for m in marks)
    max_x = max(m.crop_x for m in marks)
    min_y = min(m.crop_y for m in marks)
    max_y = max(m.crop_y for m in marks)
    width = max_x - min_x
    height = max_y - min_y

    if width < cfg.min_crop_side or height < cfg.min_crop_side:
        result.error = TrimError.CROP_BOX_TOO_SMALL
        result.message = (
            f"Detected crop box is too small ({width:.1f} x {height:.1f} points)"
        )
        return result

    used: Set[int] = set()
    for mark in marks:
        used.add(mark.line1)
        used.add(mark.line2)

    result.success = True
    result.crop_box = CropBox(x=min_x, y=min_y, width=width, height=height)
    result.marks = marks
    result.lines = [ln for i, ln in enumerate(lines) if i not in used]
    logger.debug(
        "Crop box %s, removed %d mark lines", result.crop_box, len(used)
    )
    return result
