"""
Page primitive extraction for PDF documents.
Geometry models, the PyMuPDF extractor and the lazy page model.
"""

from .models import (
    EmbeddedImage,
    LineSegment,
    PageElements,
    Rect,
    Rectangle,
    TextElement,
    TextOrientation,
)
from .page_model import PageModel
from .primitives import PagePrimitives, extract_page_elements

__all__ = [
    "PagePrimitives",
    "extract_page_elements",
    "PageModel",
    "PageElements",
    "LineSegment",
    "Rectangle",
    "Rect",
    "TextElement",
    "TextOrientation",
    "EmbeddedImage",
]
