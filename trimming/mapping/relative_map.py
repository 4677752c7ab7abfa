"""
Relative layout map: element positions as fractions of a reference box.

The reference box is picked by :func:`select_bounds`; every text run and
image is then expressed by its centre and size relative to that box,
with Y measured downward from the box's top edge.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from core.page.models import PageElements, Rect, TextElement
from trimming.marks.models import CropBox, TrimError

from .models import (
    BoundsMode,
    BoundsResult,
    ElementKind,
    RelativeElement,
    RelativeMap,
    TextPayload,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Reference bounds
# ---------------------------------------------------------------------------


def _rect_from_extents(
    min_x: float, min_y: float, max_x: float, max_y: float
) -> Optional[Rect]:
    if max_x <= min_x or max_y <= min_y:
        return None
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def content_bounds(elements: PageElements) -> Optional[Tuple[float, float, float, float]]:
    """(min_x, min_y, max_x, max_y) over every text run and image, or ``None``."""
    boxes = [t.bbox for t in elements.texts] + [img.bbox for img in elements.images]
    if not boxes:
        return None
    return (
        min(b.x for b in boxes),
        min(b.y for b in boxes),
        max(b.right for b in boxes),
        max(b.top for b in boxes),
    )


def select_bounds(
    elements: PageElements,
    mode: BoundsMode = BoundsMode.CROP_MARKS,
    crop_box: Optional[CropBox] = None,
) -> BoundsResult:
    """
    Choose the reference box for the relative map.

    Args:
        elements: Page primitives (normally with marks stripped).
        mode:     Which box to use.  ``CROP_MARKS`` without a crop box
                  falls back to ``CONTENT``.
        crop_box: Crop box from mark detection, if any.

    Returns:
        :class:`BoundsResult` carrying the box and the mode actually used.
    """
    result = BoundsResult()

    if mode == BoundsMode.CROP_MARKS:
        if crop_box is not None:
            extents = (crop_box.x, crop_box.y, crop_box.right, crop_box.top)
        else:
            logger.debug("No crop box available, using content bounds")
            mode = BoundsMode.CONTENT

    if mode == BoundsMode.LARGEST_RECTANGLE:
        if elements.rectangles:
            rect = max(elements.rectangles, key=lambda r: r.area)
            extents = (rect.x, rect.y, rect.right, rect.top)
        elif elements.images:
            img = max(elements.images, key=lambda i: i.area)
            extents = (img.x, img.y, img.x + img.display_width, img.y + img.display_height)
        else:
            result.error = TrimError.NO_ELEMENTS_FOUND
            result.message = "No rectangles or images found for largest-rectangle bounds"
            return result

    if mode == BoundsMode.CONTENT:
        found = content_bounds(elements)
        if found is None:
            result.error = TrimError.NO_ELEMENTS_FOUND
            result.message = "No elements found to create relative map"
            return result
        extents = found

    rect = _rect_from_extents(*extents)
    if rect is None:
        result.error = TrimError.INVALID_BOUNDS
        result.message = "Reference bounds have no area (%.1f,%.1f)-(%.1f,%.1f)" % extents
        return result

    result.success = True
    result.bounds = rect
    result.mode = mode
    logger.debug(
        "Bounds (%s): (%.1f, %.1f) %.1fx%.1f pt",
        mode.name,
        rect.x,
        rect.y,
        rect.width,
        rect.height,
    )
    return result


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def is_fill_in_blank(text: str) -> bool:
    """True when more than half of *text* is underscores."""
    return bool(text) and text.count("_") > len(text) / 2


def to_relative(
    box: Rect,
    bounds: Rect,
    kind: ElementKind,
    payload: Optional[TextPayload] = None,
) -> RelativeElement:
    """Express *box* (bottom-left origin, points) relative to *bounds*."""
    top_down_y = bounds.height - (box.y - bounds.y + box.height)
    return RelativeElement(
        kind=kind,
        relative_x=(box.x - bounds.x + box.width / 2.0) / bounds.width,
        relative_y=(top_down_y + box.height / 2.0) / bounds.height,
        relative_width=box.width / bounds.width,
        relative_height=box.height / bounds.height,
        text=payload,
    )


def to_page_rect(element: RelativeElement, bounds: Rect) -> Rect:
    """Inverse of :func:`to_relative`: back to a bottom-left page box."""
    width = element.relative_width * bounds.width
    height = element.relative_height * bounds.height
    top_down_y = element.relative_y * bounds.height - height / 2.0
    return Rect(
        x=element.relative_x * bounds.width - width / 2.0 + bounds.x,
        y=bounds.height - top_down_y - height + bounds.y,
        width=width,
        height=height,
    )


def _text_payload(text: TextElement) -> TextPayload:
    return TextPayload(
        text=text.text,
        font_name=text.font_name,
        font_size=text.font_size,
        is_bold=text.is_bold,
        is_italic=text.is_italic,
    )


def create_relative_map(
    elements: PageElements,
    bounds: Rect,
    mode: Optional[BoundsMode] = None,
) -> RelativeMap:
    """
    Convert every text run and image on the page to a RelativeElement.

    Text runs that are mostly underscores (fill-in blanks) are dropped.
    Elements outside the bounds are kept; their coordinates simply fall
    outside [0, 1].

    Args:
        elements: Page primitives.
        bounds:   Reference box from :func:`select_bounds`.
        mode:     Recorded on the result for reporting.
    """
    result = RelativeMap(bounds=bounds, mode=mode)

    if bounds.width <= 0 or bounds.height <= 0:
        result.error = TrimError.INVALID_BOUNDS
        result.message = f"Bounds {bounds.width:.1f}x{bounds.height:.1f} have no area"
        return result

    for text in elements.texts:
        if is_fill_in_blank(text.text):
            result.dropped_texts += 1
            continue
        result.elements.append(
            to_relative(text.bbox, bounds, ElementKind.TEXT, _text_payload(text))
        )

    for img in elements.images:
        result.elements.append(to_relative(img.bbox, bounds, ElementKind.IMAGE))

    result.success = True
    logger.debug(
        "Relative map: %d elements (%d texts dropped as blanks)",
        len(result.elements),
        result.dropped_texts,
    )
    return result


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def _relative_position(element: RelativeElement) -> Tuple[float, float]:
    return element.relative_x, element.relative_y


def sort_reading_order(
    items: Sequence[T],
    tolerance: float = 0.005,
    position: Callable[[T], Tuple[float, float]] = _relative_position,
) -> List[T]:
    """
    Order items top-to-bottom, then left-to-right within a row.

    Items whose Y lies within *tolerance* of the first item of the
    current row share that row.

    Args:
        items:     Anything with a position (RelativeElements by default).
        tolerance: Row height tolerance in the units ``position`` returns.
        position:  Maps an item to ``(x, y)`` with Y growing downward.
    """
    by_y = sorted(items, key=lambda it: position(it)[1])
    ordered: List[T] = []
    row: List[T] = []
    row_y = 0.0

    for item in by_y:
        y = position(item)[1]
        if row and y - row_y > tolerance:
            ordered.extend(sorted(row, key=lambda it: position(it)[0]))
            row = []
        if not row:
            row_y = y
        row.append(item)

    ordered.extend(sorted(row, key=lambda it: position(it)[0]))
    return ordered
