"""
Runs the mark-removal stages in order for one page:

1. rebuild rectangles drawn as loose strokes, drop their edge strokes;
2. remove bleed rows and the strokes touching them;
3. find the four crop marks and remove their strokes.

When step 3 fails and ``allow_estimate`` is set, the looser interior-box
estimate is tried before giving up.
"""

import logging
from typing import Optional

from core.page.models import PageElements

from .bleed import strip_bleed_marks
from .crop_marks import detect_crop_marks
from .models import MarkConfig, MarkStripResult
from .rect_builder import (
    estimate_interior_box,
    reconstruct_rectangles,
    remove_rectangle_edges,
)

logger = logging.getLogger(__name__)


def strip_marks(
    elements: PageElements,
    config: Optional[MarkConfig] = None,
    allow_estimate: bool = False,
) -> MarkStripResult:
    """
    Strip printer's marks from *elements* and locate the crop box.

    Args:
        elements:       Primitives as extracted from the page.
        config:         Tolerances (defaults if ``None``).
        allow_estimate: Fall back to :func:`estimate_interior_box` when
                        strict crop-mark detection fails.

    Returns:
        :class:`MarkStripResult`.  ``elements`` is populated even on
        failure so the caller can continue with partially cleaned geometry.
    """
    cfg = config or MarkConfig()
    result = MarkStripResult(original=elements)

    # -- Step 1: rectangle reconstruction --------------------------------
    rectangles = reconstruct_rectangles(elements.lines, elements.rectangles, cfg)
    lines = remove_rectangle_edges(elements.lines, rectangles, cfg)
    result.reconstructed_rectangles = len(rectangles) - len(elements.rectangles)
    result.consumed_edges = len(elements.lines) - len(lines)
    rebuilt = elements.with_geometry(lines, rectangles)

    # -- Step 2: bleed marks -----------------------------------------------
    bleed = strip_bleed_marks(rebuilt, cfg)
    result.bleed = bleed
    cleaned = rebuilt.with_geometry(bleed.lines, bleed.rectangles)
    result.elements = cleaned

    # -- Step 3: crop marks ------------------------------------------------
    crop = detect_crop_marks(bleed.lines, cfg)
    result.crop = crop

    if crop.success:
        result.success = True
        result.crop_box = crop.crop_box
        result.elements = cleaned.with_geometry(crop.lines, bleed.rectangles)
        logger.info(
            "Page %d: %s", elements.page_index, result.summary()
        )
        return result

    result.error = crop.error
    result.message = crop.message

    if allow_estimate:
        box = estimate_interior_box(elements.lines, cfg)
        if box is not None and (
            box.width >= cfg.min_crop_side and box.height >= cfg.min_crop_side
        ):
            result.success = True
            result.error = None
            result.estimated = True
            result.crop_box = box
            result.message = f"Estimated from corner ticks ({crop.message})"
            logger.info("Page %d: %s", elements.page_index, result.summary())
            return result
        logger.debug("Page %d: interior estimate unavailable", elements.page_index)

    logger.info("Page %d: %s", elements.page_index, result.summary())
    return result
