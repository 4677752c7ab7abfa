"""Printer's-mark detection: rebuilt frames, bleed rows and crop marks."""

from .bleed import strip_bleed_marks
from .crop_marks import detect_crop_marks
from .models import (
    BleedStripResult,
    CropBox,
    CropDetectionResult,
    CropMark,
    MarkConfig,
    MarkStripResult,
    TrimError,
)
from .rect_builder import (
    estimate_interior_box,
    reconstruct_rectangles,
    remove_rectangle_edges,
)
from .stripper import strip_marks

__all__ = [
    "MarkConfig",
    "TrimError",
    "CropMark",
    "CropBox",
    "BleedStripResult",
    "CropDetectionResult",
    "MarkStripResult",
    "reconstruct_rectangles",
    "remove_rectangle_edges",
    "estimate_interior_box",
    "strip_bleed_marks",
    "detect_crop_marks",
    "strip_marks",
]
