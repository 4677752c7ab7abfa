"""
Aligns a relative layout map with a raster image of the same page.
"""

import logging
from typing import Optional

from PIL import Image

from trimming.marks.models import TrimError
from trimming.ocr.base_recognizer import BaseWordRecognizer

from .matcher import match_words
from .models import AlignmentResult, MappingConfig, RelativeMap
from .solver import clamp_to_image, solve_crop_rect, sweep_single_match

logger = logging.getLogger(__name__)


def align_to_image(
    relative_map: RelativeMap,
    image: Image.Image,
    recognizer: BaseWordRecognizer,
    config: Optional[MappingConfig] = None,
) -> AlignmentResult:
    """
    Find where the reference bounds sit on *image*.

    Runs the recognizer, matches its words to the map's text, then solves
    the crop (least squares with two or more matches, the width sweep with
    exactly one).  The solved crop is clipped to the image.

    Args:
        relative_map: Output of :func:`create_relative_map`.
        image:        Target raster image.
        recognizer:   Word recognizer to run on *image*.
        config:       Matching and solving parameters.

    Returns:
        :class:`AlignmentResult`.  With no matches ``success`` is False
        and the map remains usable against the full image.
    """
    cfg = config or MappingConfig()
    result = AlignmentResult()
    size = image.size

    words = recognizer.recognize(image)
    result.words_recognized = len(words)
    logger.info("%s detected %d words on %dx%d image", recognizer, len(words), *size)

    matches = match_words(relative_map.elements, words, cfg)
    result.matches = matches

    if not matches:
        result.error = TrimError.NO_MATCHES
        result.message = "Could not solve crop rect (no matches), using full image"
        logger.warning(result.message)
        return result

    if len(matches) == 1:
        solution = sweep_single_match(
            matches[0], size, relative_map.aspect_ratio, cfg
        )
    else:
        solution = solve_crop_rect(matches, cfg)
    result.solution = solution

    if not solution.success:
        result.error = solution.error
        result.message = solution.message
        logger.warning("Alignment failed: %s", solution.message)
        return result

    crop = clamp_to_image(solution, size, cfg.min_solved_side)
    if crop is None:
        result.error = TrimError.SOLVED_BOX_TOO_SMALL
        result.message = "Solved crop rect too small after clamping, using full image"
        logger.warning(result.message)
        return result

    result.success = True
    result.crop = crop
    logger.info(
        "Aligned with %d matches (%s): (%.0f, %.0f) %.0fx%.0f px, "
        "mean residual %.2f px",
        len(matches),
        solution.method.value,
        crop.x,
        crop.y,
        crop.width,
        crop.height,
        solution.mean_residual,
    )
    return result
