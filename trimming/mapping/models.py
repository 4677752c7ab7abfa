"""
Data models for the relative layout map and raster alignment.

A RelativeElement places a text run or image as a fraction of a
reference box (crop box, largest rectangle or content bounds).  Relative
Y grows downward so the map can be laid directly over a raster image.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from core.page.models import Rect
from trimming.marks.models import TrimError
from trimming.ocr.models import OcrWord  # noqa: F401

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class BoundsMode(Enum):
    """Which box the relative map is normalized against."""

    CROP_MARKS = "crop"
    LARGEST_RECTANGLE = "largest"
    CONTENT = "content"


class ElementKind(Enum):
    TEXT = "text"
    IMAGE = "image"


class SolveMethod(Enum):
    LEAST_SQUARES = "least_squares"
    SINGLE_MATCH_SWEEP = "single_match_sweep"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class MappingConfig:
    """
    Parameters for word matching and crop solving.

    Attributes:
        min_confidence:       OCR words below this confidence are ignored.
        min_text_length:      Shortest normalized PDF text worth matching.
        substring_min_length: Shorter side of a containment match must
                              have at least this many characters.
        min_solved_side:      Smallest solved crop side, in pixels.
        sweep_start:          First width fraction tried by the sweep.
        sweep_stop:           Last width fraction tried by the sweep.
        sweep_step:           Width fraction increment.
        out_of_bounds:        How far (as a fraction of the candidate size)
                              a swept box may leave the image.
        edge_penalty:         Score multiplier per image edge crossed.
        row_tolerance:        Relative-Y distance treated as the same row
                              when sorting into reading order.
        overlay_margin:       Elements further than this outside [0, 1]
                              are not drawn on debug overlays.
    """

    min_confidence: float = 30.0
    min_text_length: int = 2
    substring_min_length: int = 4
    min_solved_side: float = 10.0

    sweep_start: float = 0.30
    sweep_stop: float = 1.00
    sweep_step: float = 0.01
    out_of_bounds: float = 0.10
    edge_penalty: float = 0.8

    row_tolerance: float = 0.005
    overlay_margin: float = 0.1


# ---------------------------------------------------------------------------
# Relative map
# ---------------------------------------------------------------------------


@dataclass
class TextPayload:
    """Typographic details carried by TEXT elements."""

    text: str
    font_name: str = ""
    font_size: float = 0.0
    is_bold: bool = False
    is_italic: bool = False


@dataclass
class RelativeElement:
    """
    One element positioned relative to the reference bounds.

    ``relative_x`` / ``relative_y`` are the element centre; (0, 0) is the
    top-left corner of the bounds and (1, 1) the bottom-right.
    """

    kind: ElementKind
    relative_x: float
    relative_y: float
    relative_width: float
    relative_height: float
    text: Optional[TextPayload] = None

    def pixel_box(self, width: float, height: float) -> Rect:
        """Top-left pixel box of this element on a ``width`` x ``height`` canvas."""
        return Rect(
            x=(self.relative_x - self.relative_width / 2) * width,
            y=(self.relative_y - self.relative_height / 2) * height,
            width=self.relative_width * width,
            height=self.relative_height * height,
        )

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind.value,
            "relative_x": self.relative_x,
            "relative_y": self.relative_y,
            "relative_width": self.relative_width,
            "relative_height": self.relative_height,
        }
        if self.text is not None:
            d["text"] = self.text.text
            d["font_name"] = self.text.font_name
            d["font_size"] = self.text.font_size
            d["is_bold"] = self.text.is_bold
            d["is_italic"] = self.text.is_italic
        return d

    def __repr__(self) -> str:
        label = f" '{self.text.text[:30]}'" if self.text else ""
        return (
            f"RelativeElement({self.kind.name}{label}, "
            f"centre=({self.relative_x:.3f},{self.relative_y:.3f}), "
            f"size={self.relative_width:.3f}x{self.relative_height:.3f})"
        )


@dataclass
class RelativeMap:
    """Result of :func:`create_relative_map`."""

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    bounds: Optional[Rect] = None
    mode: Optional[BoundsMode] = None
    elements: List[RelativeElement] = field(default_factory=list)
    dropped_texts: int = 0

    @property
    def aspect_ratio(self) -> float:
        if self.bounds is None or self.bounds.height <= 0:
            return 0.0
        return self.bounds.width / self.bounds.height


@dataclass
class BoundsResult:
    """Result of :func:`select_bounds`."""

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    bounds: Optional[Rect] = None
    mode: Optional[BoundsMode] = None


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


@dataclass
class MatchedPair:
    """A PDF text element paired with the OCR word that shows it."""

    relative_x: float
    relative_y: float
    pixel_x: float
    pixel_y: float
    pdf_text: str = ""
    ocr_text: str = ""


@dataclass
class CropSolution:
    """
    Pixel-space crop rectangle solved from matched words.

    ``residuals`` holds the Euclidean distance in pixels between each
    match's observed centre and the centre predicted by the solution.
    """

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    residuals: List[float] = field(default_factory=list)
    method: Optional[SolveMethod] = None

    @property
    def mean_residual(self) -> float:
        if not self.residuals:
            return 0.0
        return sum(self.residuals) / len(self.residuals)

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error": self.error.name if self.error else None,
            "message": self.message,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "mean_residual": self.mean_residual,
            "method": self.method.value if self.method else None,
        }


@dataclass
class AlignmentResult:
    """Outcome of aligning a relative map to a raster image."""

    success: bool = False
    error: Optional[TrimError] = None
    message: str = ""
    solution: Optional[CropSolution] = None
    crop: Optional[Rect] = None  # clamped to the image
    matches: List[MatchedPair] = field(default_factory=list)
    words_recognized: int = 0
