"""
Core backend for printtrim.
Page geometry extraction only — no mark classification, no OCR.
"""

from .page import (
    EmbeddedImage,
    LineSegment,
    PageElements,
    PageModel,
    PagePrimitives,
    Rect,
    Rectangle,
    TextElement,
    TextOrientation,
    extract_page_elements,
)

__all__ = [
    "PageModel",
    "PagePrimitives",
    "extract_page_elements",
    "PageElements",
    "LineSegment",
    "Rectangle",
    "Rect",
    "TextElement",
    "TextOrientation",
    "EmbeddedImage",
]
