"""
Pairs PDF text runs with words recognized on a raster image.

Matching is deliberately loose (case, whitespace and underscores are
ignored; containment counts for longer strings) but takes only the first
hit per element, so a handful of good anchors is enough for the solver.
"""

import logging
import re
from typing import List, Optional

from .models import ElementKind, MappingConfig, MatchedPair, OcrWord, RelativeElement

logger = logging.getLogger(__name__)

_IGNORED = re.compile(r"[\s_]+")


def normalize_for_match(text: str) -> str:
    """Lowercase and strip whitespace and underscores."""
    return _IGNORED.sub("", text).lower()


def texts_match(pdf_text: str, ocr_text: str, substring_min_length: int = 4) -> bool:
    """
    Compare two already-normalized strings.

    Equal strings match.  Otherwise one must contain the other, and the
    contained string must have at least *substring_min_length* characters.
    """
    if not pdf_text or not ocr_text:
        return False
    if pdf_text == ocr_text:
        return True
    if len(pdf_text) >= substring_min_length and pdf_text in ocr_text:
        return True
    if len(ocr_text) >= substring_min_length and ocr_text in pdf_text:
        return True
    return False


def match_words(
    elements: List[RelativeElement],
    words: List[OcrWord],
    config: Optional[MappingConfig] = None,
) -> List[MatchedPair]:
    """
    Find one OCR word for each TEXT element where possible.

    Args:
        elements: Relative map elements; non-text elements are ignored.
        words:    Recognizer output in pixel space.
        config:   Matching thresholds (defaults if ``None``).

    Returns:
        One :class:`MatchedPair` per matched element, in element order.
    """
    cfg = config or MappingConfig()

    candidates = [
        (w, normalize_for_match(w.text))
        for w in words
        if w.confidence >= cfg.min_confidence
    ]
    logger.debug(
        "Matching against %d of %d OCR words (confidence >= %.0f)",
        len(candidates),
        len(words),
        cfg.min_confidence,
    )

    matches: List[MatchedPair] = []
    for elem in elements:
        if elem.kind != ElementKind.TEXT or elem.text is None:
            continue
        pdf_norm = normalize_for_match(elem.text.text)
        if len(pdf_norm) < cfg.min_text_length:
            continue

        for word, ocr_norm in candidates:
            if not texts_match(pdf_norm, ocr_norm, cfg.substring_min_length):
                continue
            cx, cy = word.center
            matches.append(
                MatchedPair(
                    relative_x=elem.relative_x,
                    relative_y=elem.relative_y,
                    pixel_x=cx,
                    pixel_y=cy,
                    pdf_text=elem.text.text,
                    ocr_text=word.text,
                )
            )
            logger.debug(
                "Matched '%s' <-> '%s' rel=(%.3f,%.3f) px=(%.1f,%.1f)",
                elem.text.text,
                word.text,
                elem.relative_x,
                elem.relative_y,
                cx,
                cy,
            )
            break

    logger.debug("Found %d text matches", len(matches))
    return matches
