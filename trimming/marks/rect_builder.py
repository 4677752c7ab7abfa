"""
Rebuilds rectangles that were drawn as four separate strokes.

Many print-production tools emit frames as individual line segments
rather than ``re`` operators.  This module pairs parallel horizontal and
vertical lines into boxes, removes the strokes that now belong to a box,
and offers a coarse interior-box estimate from short corner ticks.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from core.page.models import LineSegment, Rectangle

from .models import CropBox, MarkConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _spans(lo: float, hi: float, box_lo: float, box_hi: float, tol: float) -> bool:
    """True if the interval [lo, hi] covers [box_lo, box_hi] within *tol*."""
    return lo <= box_lo + tol and hi >= box_hi - tol


def _is_duplicate(
    candidate: Rectangle, existing: List[Rectangle], tol: float
) -> bool:
    for rect in existing:
        if (
            rect.page == candidate.page
            and abs(rect.x - candidate.x) < tol
            and abs(rect.y - candidate.y) < tol
            and abs(rect.width - candidate.width) < tol
            and abs(rect.height - candidate.height) < tol
        ):
            return True
    return False


# ---------------------------------------------------------------------------
# Reconstruction
# ---------------------------------------------------------------------------


def reconstruct_rectangles(
    lines: List[LineSegment],
    rectangles: List[Rectangle],
    config: Optional[MarkConfig] = None,
) -> List[Rectangle]:
    """
    Find boxes formed by two horizontal and two vertical lines.

    Args:
        lines:      Line segments for the page(s).
        rectangles: Rectangles already known; rebuilt boxes matching one of
                    these (or an earlier rebuilt box) are not emitted.
        config:     Tolerances (defaults if ``None``).

    Returns:
        ``rectangles`` followed by every newly rebuilt rectangle.
    """
    cfg = config or MarkConfig()
    horizontal = [ln for ln in lines if ln.is_horizontal]
    vertical = [ln for ln in lines if ln.is_vertical]

    result = list(rectangles)
    added = 0

    for i, h1 in enumerate(horizontal):
        for h2 in horizontal[i + 1:]:
            if h1.page != h2.page:
                continue
            y1 = h1.midpoint[1]
            y2 = h2.midpoint[1]
            if abs(y1 - y2) < cfg.min_pair_gap:
                continue

            for j, v1 in enumerate(vertical):
                if v1.page != h1.page:
                    continue
                for v2 in vertical[j + 1:]:
                    if v2.page != h1.page:
                        continue
                    x1 = v1.midpoint[0]
                    x2 = v2.midpoint[0]
                    if abs(x1 - x2) < cfg.min_pair_gap:
                        continue

                    min_x, max_x = min(x1, x2), max(x1, x2)
                    min_y, max_y = min(y1, y2), max(y1, y2)
                    tol = cfg.span_tolerance

                    if not (
                        _spans(h1.bounds[0], h1.bounds[2], min_x, max_x, tol)
                        and _spans(h2.bounds[0], h2.bounds[2], min_x, max_x, tol)
                        and _spans(v1.bounds[1], v1.bounds[3], min_y, max_y, tol)
                        and _spans(v2.bounds[1], v2.bounds[3], min_y, max_y, tol)
                    ):
                        continue

                    rect = Rectangle(
                        page=h1.page,
                        x=min_x,
                        y=min_y,
                        width=max_x - min_x,
                        height=max_y - min_y,
                        line_width=1.0,
                        filled=False,
                        stroked=True,
                    )
                    if _is_duplicate(rect, result, cfg.duplicate_tolerance):
                        continue

                    result.append(rect)
                    added += 1
                    logger.debug(
                        "Rebuilt rectangle at (%.1f, %.1f) size %.1fx%.1f",
                        rect.x,
                        rect.y,
                        rect.width,
                        rect.height,
                    )

    if added:
        logger.debug("Rebuilt %d rectangles from %d lines", added, len(lines))
    return result


def _is_rectangle_edge(
    line: LineSegment, rect: Rectangle, tol: float
) -> bool:
    min_x, min_y, max_x, max_y = line.bounds
    mid_x, mid_y = line.midpoint

    if line.is_horizontal:
        on_edge = abs(mid_y - rect.y) < tol or abs(mid_y - rect.top) < tol
        if on_edge and min_x >= rect.x - tol and max_x <= rect.right + tol:
            return True

    if line.is_vertical:
        on_edge = abs(mid_x - rect.x) < tol or abs(mid_x - rect.right) < tol
        if on_edge and min_y >= rect.y - tol and max_y <= rect.top + tol:
            return True

    return False


def remove_rectangle_edges(
    lines: List[LineSegment],
    rectangles: List[Rectangle],
    config: Optional[MarkConfig] = None,
) -> List[LineSegment]:
    """
    Drop lines that trace an edge of a rectangle on the same page.

    Rectangles no larger than ``config.mark_sized`` on both sides are
    ignored so that crop-mark strokes survive for the crop detector.
    """
    cfg = config or MarkConfig()
    frames = [
        r
        for r in rectangles
        if not (r.width <= cfg.mark_sized and r.height <= cfg.mark_sized)
    ]

    kept = [
        line
        for line in lines
        if not any(
            rect.page == line.page
            and _is_rectangle_edge(line, rect, cfg.edge_alignment)
            for rect in frames
        )
    ]

    logger.debug("Removed %d lines that are rectangle edges", len(lines) - len(kept))
    return kept


# ---------------------------------------------------------------------------
# Interior box estimate
# ---------------------------------------------------------------------------


def _cluster_corners(
    corners: List[Tuple[float, float]], tol: float
) -> List[Tuple[float, float]]:
    """Merge corners closer than *tol*, averaging each merge pairwise."""
    unique: List[List[float]] = []
    for cx, cy in corners:
        for u in unique:
            if math.hypot(cx - u[0], cy - u[1]) < tol:
                u[0] = (u[0] + cx) / 2.0
                u[1] = (u[1] + cy) / 2.0
                break
        else:
            unique.append([cx, cy])
    return [(u[0], u[1]) for u in unique]


def _most_frequent(values: List[float], tol: float) -> List[float]:
    """Group *values* within *tol* and return representatives by frequency."""
    counts: Dict[float, int] = {}
    for v in values:
        for key in counts:
            if abs(v - key) < tol:
                counts[key] += 1
                break
        else:
            counts[v] = 1
    ordered = sorted(counts.items(), key=lambda kv: kv[0])
    ordered.sort(key=lambda kv: kv[1], reverse=True)
    return [key for key, _ in ordered]


def estimate_interior_box(
    lines: List[LineSegment],
    config: Optional[MarkConfig] = None,
) -> Optional[CropBox]:
    """
    Estimate a trim box from short corner ticks.

    Short horizontal and vertical lines (``short_line_min`` to
    ``short_line_max`` long) that meet within ``corner_join`` give corner
    points; nearby corners are merged and the two most common X and Y
    values bound the box.  This is looser than :func:`detect_crop_marks`
    and is only used as a fallback.

    Returns:
        The estimated box, or ``None`` when fewer than four corners exist.
    """
    cfg = config or MarkConfig()

    short = [
        ln
        for ln in lines
        if cfg.short_line_min <= ln.length <= cfg.short_line_max
    ]
    horizontal = [ln for ln in short if ln.is_horizontal]
    vertical = [ln for ln in short if ln.is_vertical]
    logger.debug(
        "Interior estimate: %d short horizontal, %d short vertical lines",
        len(horizontal),
        len(vertical),
    )

    corners: List[Tuple[float, float]] = []
    tol = cfg.corner_join
    for h in horizontal:
        h_y = h.midpoint[1]
        h_min_x, _, h_max_x, _ = h.bounds
        for v in vertical:
            v_x = v.midpoint[0]
            _, v_min_y, _, v_max_y = v.bounds
            if (
                h_min_x - tol <= v_x <= h_max_x + tol
                and v_min_y - tol <= h_y <= v_max_y + tol
            ):
                corners.append((v_x, h_y))

    if len(corners) < 4:
        logger.debug("Interior estimate: only %d corners", len(corners))
        return None

    unique = _cluster_corners(corners, cfg.corner_cluster)
    xs = _most_frequent([c[0] for c in unique], cfg.coordinate_group)
    ys = _most_frequent([c[1] for c in unique], cfg.coordinate_group)
    logger.debug(
        "Interior estimate: %d corners -> %d unique, %d X / %d Y values",
        len(corners),
        len(unique),
        len(xs),
        len(ys),
    )

    if len(xs) < 2 or len(ys) < 2:
        return None

    left, right = sorted(xs[:2])
    bottom, top = sorted(ys[:2])
    box = CropBox(x=left, y=bottom, width=right - left, height=top - bottom)
    logger.debug("Interior estimate: %s", box)
    return box
