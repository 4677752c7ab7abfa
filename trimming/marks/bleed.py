"""
Bleed and registration mark classifier.

A bleed row is two or more rectangles sharing a baseline (colour bars,
registration patches).  The row and every stroke touching it are removed,
except rows hugging the top or bottom page edge and strokes sitting in a
page corner, where the crop marks live.
"""

import logging
from typing import List, Optional, Set

from core.page.models import LineSegment, PageElements, Rect, Rectangle

from .models import BleedStripResult, MarkConfig

logger = logging.getLogger(__name__)


def group_by_baseline(
    rectangles: List[Rectangle], tolerance: float
) -> List[List[int]]:
    """
    Group rectangle indices whose ``y`` is within *tolerance* of the
    group's first member.  Singleton groups are dropped.
    """
    processed = [False] * len(rectangles)
    groups: List[List[int]] = []

    for i, seed in enumerate(rectangles):
        if processed[i]:
            continue
        processed[i] = True
        group = [i]
        for j in range(i + 1, len(rectangles)):
            if processed[j]:
                continue
            if abs(seed.y - rectangles[j].y) < tolerance:
                group.append(j)
                processed[j] = True
        if len(group) >= 2:
            groups.append(group)

    return groups


def _cluster_bounds(rectangles: List[Rectangle], group: List[int]) -> Rect:
    members = [rectangles[i] for i in group]
    min_x = min(r.x for r in members)
    min_y = min(r.y for r in members)
    max_x = max(r.right for r in members)
    max_y = max(r.top for r in members)
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def is_near_corner(
    line: LineSegment, page_width: float, page_height: float, margin: float
) -> bool:
    """True if the line's bounding box sits inside a corner margin."""
    min_x, min_y, max_x, max_y = line.bounds
    left = min_x < margin
    right = max_x > page_width - margin
    bottom = min_y < margin
    top = max_y > page_height - margin
    return (left and bottom) or (right and bottom) or (left and top) or (right and top)


def _overlaps(line: LineSegment, box: Rect, tol: float) -> bool:
    min_x, min_y, max_x, max_y = line.bounds
    in_y = not (max_y < box.y - tol or min_y > box.top + tol)
    in_x = not (max_x < box.x - tol or min_x > box.right + tol)
    return in_y and in_x


def strip_bleed_marks(
    elements: PageElements,
    config: Optional[MarkConfig] = None,
) -> BleedStripResult:
    """
    Remove bleed-mark rows and the strokes attached to them.

    Args:
        elements: One page's primitives (rectangles should already include
                  rebuilt ones).
        config:   Tolerances (defaults if ``None``).

    Returns:
        :class:`BleedStripResult` with the surviving lines and rectangles.
    """
    cfg = config or MarkConfig()
    rectangles = elements.rectangles
    lines = elements.lines
    page_w = elements.page_width
    page_h = elements.page_height

    remove_rects: Set[int] = set()
    remove_lines: Set[int] = set()
    clusters: List[Rect] = []
    skipped = 0

    for group in group_by_baseline(rectangles, cfg.same_y_tolerance):
        group_y = rectangles[group[0]].y
        if group_y < cfg.edge_margin or group_y > page_h - cfg.edge_margin:
            logger.debug(
                "Keeping %d-rectangle row at y=%.1f (page edge)", len(group), group_y
            )
            skipped += 1
            continue

        remove_rects.update(group)
        box = _cluster_bounds(rectangles, group)
        clusters.append(box)

        for idx, line in enumerate(lines):
            if is_near_corner(line, page_w, page_h, cfg.corner_margin):
                continue
            if _overlaps(line, box, cfg.connection_tolerance):
                remove_lines.add(idx)

        logger.debug(
            "Bleed row of %d rectangles at y=%.1f, bounds %s",
            len(group),
            group_y,
            box,
        )

    result = BleedStripResult(
        lines=[ln for i, ln in enumerate(lines) if i not in remove_lines],
        rectangles=[r for i, r in enumerate(rectangles) if i not in remove_rects],
        removed_lines=len(remove_lines),
        removed_rectangles=len(remove_rects),
        clusters=clusters,
        skipped_clusters=skipped,
    )
    logger.debug(
        "Bleed strip: removed %d rectangles, %d lines (%d rows kept at edges)",
        result.removed_rectangles,
        result.removed_lines,
        skipped,
    )
    return result
