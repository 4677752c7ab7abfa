"""Relative layout mapping and raster alignment."""

from .models import (
    AlignmentResult,
    BoundsMode,
    BoundsResult,
    CropSolution,
    ElementKind,
    MappingConfig,
    MatchedPair,
    OcrWord,
    RelativeElement,
    RelativeMap,
    SolveMethod,
    TextPayload,
)
from .matcher import match_words, normalize_for_match
from .relative_map import (
    create_relative_map,
    select_bounds,
    sort_reading_order,
    to_page_rect,
)
from .solver import clamp_to_image, solve_crop_rect, sweep_single_match
from .aligner import align_to_image

__all__ = [
    "BoundsMode",
    "ElementKind",
    "SolveMethod",
    "MappingConfig",
    "TextPayload",
    "RelativeElement",
    "RelativeMap",
    "BoundsResult",
    "OcrWord",
    "MatchedPair",
    "CropSolution",
    "AlignmentResult",
    "select_bounds",
    "create_relative_map",
    "to_page_rect",
    "sort_reading_order",
    "match_words",
    "normalize_for_match",
    "solve_crop_rect",
    "sweep_single_match",
    "clamp_to_image",
    "align_to_image",
]
