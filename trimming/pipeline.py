"""
Trimming pipeline orchestrator: PDF → primitives → marks → relative map.

Coordinates the per-page workflow:

1. **Extraction** — read line segments, rectangles, text runs and image
   placements from each page with PyMuPDF.
2. **Mark stripping** — rebuild stroked frames, remove bleed rows and
   locate the four crop marks (optionally estimating the box from corner
   ticks when strict detection fails).
3. **Relative map** — pick the reference bounds and express every text
   run and image relative to them.
4. **Alignment** (optional) — recognize words on a scan of the page,
   match them to the map and solve the pixel crop rectangle.

Usage::

    from trimming.pipeline import TrimConfig, TrimPipeline

    pipeline = TrimPipeline(TrimConfig(page_range=(0, 0)))
    result = pipeline.run("input.pdf")
    print(result.summary())
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image
from tqdm import tqdm

from core.page.models import PageElements, Rect
from trimming.mapping.aligner import align_to_image
from trimming.mapping.models import (
    AlignmentResult,
    BoundsMode,
    BoundsResult,
    MappingConfig,
    RelativeMap,
)
from trimming.mapping.relative_map import (
    create_relative_map,
    select_bounds,
    sort_reading_order,
)
from trimming.marks.models import CropBox, MarkConfig, MarkStripResult
from trimming.marks.stripper import strip_marks
from trimming.ocr.base_recognizer import BaseWordRecognizer
from trimming.render.overlay import save_debug_images
from trimming.utils.pdf_adapter import PDFAdapter

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class TrimConfig:
    """
    All tuneable parameters for the trimming pipeline.

    Attributes:
        page_range:      ``(start, end)`` 0-based inclusive, or ``None`` for all.
        bounds_mode:     Reference box for the relative map.
        align_image:     Scan/raster to align the map against (``None`` to skip).
        dpi:             Resolution used when rasterizing pages.
        min_rect_size:   Smallest extracted rectangle side, in points.
        min_line_length: Shortest extracted line segment, in points.
        debug_dir:       Save relative-map overlays here (``None`` to skip).
        allow_estimate:  Estimate the crop box from corner ticks when
                         strict crop-mark detection fails.
        disable_tqdm:    Suppress progress bars.
        marks:           Mark detection tolerances.
        mapping:         Matching and solving parameters.
    """

    page_range: Optional[Tuple[int, int]] = None
    bounds_mode: BoundsMode = BoundsMode.CROP_MARKS
    align_image: Optional[str] = None
    dpi: int = 150

    min_rect_size: float = 5.0
    min_line_length: float = 5.0

    debug_dir: Optional[str] = None
    allow_estimate: bool = False
    disable_tqdm: bool = False

    marks: MarkConfig = field(default_factory=MarkConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


@dataclass
class PageTrimResult:
    """Everything the pipeline learned about one page."""

    page_index: int
    page_width: float = 0.0
    page_height: float = 0.0

    marks: Optional[MarkStripResult] = None
    elements: Optional[PageElements] = None  # geometry used for mapping
    fell_back: bool = False  # mark stripping failed, unfiltered page used

    bounds: Optional[BoundsResult] = None
    relative_map: Optional[RelativeMap] = None
    alignment: Optional[AlignmentResult] = None
    error: str = ""

    @property
    def crop_box(self) -> Optional[CropBox]:
        return self.marks.crop_box if self.marks and self.marks.success else None

    @property
    def succeeded(self) -> bool:
        return bool(self.relative_map and self.relative_map.success)

    def to_dict(self) -> dict:
        d = {
            "page": self.page_index,
            "page_width": self.page_width,
            "page_height": self.page_height,
            "error": self.error or None,
            "fell_back": self.fell_back,
        }
        if self.marks is not None:
            d["marks"] = {
                "success": self.marks.success,
                "error": self.marks.error.name if self.marks.error else None,
                "message": self.marks.message,
                "estimated": self.marks.estimated,
                "crop_box": self.crop_box.to_dict() if self.crop_box else None,
            }
        if self.elements is not None:
            d["lines"] = [ln.to_dict() for ln in self.elements.lines]
            d["rectangles"] = [r.to_dict() for r in self.elements.rectangles]
        if self.relative_map is not None:
            rm = self.relative_map
            d["relative_map"] = {
                "success": rm.success,
                "error": rm.error.name if rm.error else None,
                "message": rm.message,
                "mode": rm.mode.value if rm.mode else None,
                "bounds": rm.bounds.to_dict() if rm.bounds else None,
                "elements": [e.to_dict() for e in rm.elements],
            }
        if self.alignment is not None:
            al = self.alignment
            d["alignment"] = {
                "success": al.success,
                "error": al.error.name if al.error else None,
                "message": al.message,
                "matches": len(al.matches),
                "words": al.words_recognized,
                "crop": al.crop.to_dict() if al.crop else None,
                "solution": al.solution.to_dict() if al.solution else None,
            }
        return d


@dataclass
class TrimResult:
    """
    Summary returned after a trimming run.

    Captures per-phase timing and per-page outcomes so the caller can
    report or serialize the results.
    """

    pdf_path: str = ""
    total_pages: int = 0
    pages: List[PageTrimResult] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    time_extract: float = 0.0
    time_marks: float = 0.0
    time_mapping: float = 0.0
    time_align: float = 0.0

    @property
    def pages_processed(self) -> int:
        return len(self.pages)

    @property
    def crop_boxes_found(self) -> int:
        return sum(1 for p in self.pages if p.crop_box is not None)

    @property
    def pages_aligned(self) -> int:
        return sum(1 for p in self.pages if p.alignment and p.alignment.success)

    def summary(self) -> str:
        """Format a human-readable summary of the trimming run."""
        lines = [
            "=" * 60,
            "TRIM COMPLETE",
            "=" * 60,
            f"  Input:      {self.pdf_path}",
            f"  Pages:      {self.pages_processed} / {self.total_pages}",
            f"  Crop boxes: {self.crop_boxes_found}",
        ]
        if any(p.alignment is not None for p in self.pages):
            lines.append(f"  Aligned:    {self.pages_aligned}")
        lines.append("")
        for p in self.pages:
            lines.append(f"  Page {p.page_index + 1}: {_page_line(p)}")
        lines += [
            "",
            f"  Extraction:      {self.time_extract:.2f}s",
            f"  Mark stripping:  {self.time_marks:.2f}s",
            f"  Relative map:    {self.time_mapping:.2f}s",
            f"  Alignment:       {self.time_align:.2f}s",
            f"  Total wall time: {self.elapsed_seconds:.2f}s",
            "=" * 60,
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "pdf": self.pdf_path,
            "total_pages": self.total_pages,
            "pages": [p.to_dict() for p in self.pages],
        }


def _page_line(page: PageTrimResult) -> str:
    if page.error:
        return f"error — {page.error}"
    parts = []
    if page.crop_box is not None:
        box = page.crop_box
        tag = " (estimated)" if page.marks.estimated else ""
        parts.append(
            f"crop {box.width:.1f}x{box.height:.1f}pt at "
            f"({box.x:.1f}, {box.y:.1f}){tag}"
        )
    elif page.marks is not None and page.marks.error is not None:
        parts.append(f"no crop box ({page.marks.error.name})")
    if page.relative_map is not None:
        if page.relative_map.success:
            parts.append(f"{len(page.relative_map.elements)} mapped elements")
        elif page.relative_map.error is not None:
            parts.append(f"no map ({page.relative_map.error.name})")
    if page.alignment is not None:
        if page.alignment.crop is not None:
            c = page.alignment.crop
            parts.append(f"scan crop {c.width:.0f}x{c.height:.0f}px")
        elif page.alignment.error is not None:
            parts.append(f"not aligned ({page.alignment.error.name})")
    return ", ".join(parts) if parts else "nothing found"


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class TrimPipeline:
    """
    End-to-end crop detection and layout mapping.

    The word recognizer is created lazily on first use, so runs without
    an alignment image never touch Tesseract.
    """

    def __init__(
        self,
        config: Optional[TrimConfig] = None,
        recognizer: Optional[BaseWordRecognizer] = None,
    ):
        self.config = config or TrimConfig()
        self._recognizer = recognizer

    def _ensure_recognizer(self) -> BaseWordRecognizer:
        if self._recognizer is None:
            from trimming.ocr.tesseract_recognizer import TesseractRecognizer

            self._recognizer = TesseractRecognizer()
            logger.info("Recognizer ready: %s", self._recognizer)
        return self._recognizer

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, pdf_path: str) -> TrimResult:
        """
        Process every page in the configured range.

        Args:
            pdf_path: Path to the input PDF.

        Returns:
            :class:`TrimResult` with one :class:`PageTrimResult` per page.
        """
        with PDFAdapter(
            pdf_path,
            min_rect_size=self.config.min_rect_size,
            min_line_length=self.config.min_line_length,
        ) as pdf:
            return self.run_adapter(pdf)

    def run_adapter(self, pdf: PDFAdapter) -> TrimResult:
        """Like :meth:`run` but on an already-open :class:`PDFAdapter`."""
        t_total = time.perf_counter()
        cfg = self.config
        result = TrimResult(pdf_path=pdf.pdf_path, total_pages=pdf.page_count)

        target = self._load_align_image()

        start = cfg.page_range[0] if cfg.page_range else 0
        end = cfg.page_range[1] if cfg.page_range else pdf.page_count - 1
        end = min(end, pdf.page_count - 1)

        pbar = tqdm(
            range(start, end + 1),
            desc="Trimming",
            unit="page",
            disable=cfg.disable_tqdm,
        )
        for idx in pbar:
            pbar.set_postfix(page=f"{idx + 1}/{pdf.page_count}")

            t0 = time.perf_counter()
            try:
                elements = pdf.elements(idx)
            except RuntimeError as e:
                logger.warning("Extraction failed on page %d: %s", idx, e)
                result.pages.append(PageTrimResult(page_index=idx, error=str(e)))
                continue
            result.time_extract += time.perf_counter() - t0

            page = self.process_page(elements, target, result)

            if cfg.debug_dir:
                self._save_debug(pdf, page, target)

            result.pages.append(page)
            pdf.release(idx)

        result.elapsed_seconds = time.perf_counter() - t_total
        logger.info("\n%s", result.summary())
        return result

    def process_page(
        self,
        elements: PageElements,
        target: Optional[Image.Image] = None,
        timing: Optional[TrimResult] = None,
    ) -> PageTrimResult:
        """
        Run mark stripping, mapping and (when *target* is given) alignment
        on already-extracted primitives.

        Geometric failures never abort the page: mark stripping falls back
        to the unfiltered primitives and alignment failures leave the
        relative map in place.
        """
        cfg = self.config
        page = PageTrimResult(
            page_index=elements.page_index,
            page_width=elements.page_width,
            page_height=elements.page_height,
        )

        # -- Phase 1: Marks ------------------------------------------------
        t0 = time.perf_counter()
        page.marks = strip_marks(elements, cfg.marks, cfg.allow_estimate)
        if page.marks.success:
            page.elements = page.marks.elements
        else:
            logger.warning(
                "Page %d: mark stripping failed (%s), using unfiltered page",
                elements.page_index,
                page.marks.message,
            )
            page.elements = elements
            page.fell_back = True
        if timing is not None:
            timing.time_marks += time.perf_counter() - t0

        # -- Phase 2: Relative map -----------------------------------------
        t0 = time.perf_counter()
        page.bounds = select_bounds(page.elements, cfg.bounds_mode, page.crop_box)
        if page.bounds.success:
            rm = create_relative_map(page.elements, page.bounds.bounds, page.bounds.mode)
            rm.elements = sort_reading_order(rm.elements, cfg.mapping.row_tolerance)
        else:
            logger.warning(
                "Page %d: %s", elements.page_index, page.bounds.message
            )
            rm = RelativeMap(error=page.bounds.error, message=page.bounds.message)
        page.relative_map = rm
        if timing is not None:
            timing.time_mapping += time.perf_counter() - t0

        # -- Phase 3: Alignment --------------------------------------------
        if target is not None and rm.success:
            t0 = time.perf_counter()
            page.alignment = align_to_image(
                rm, target, self._ensure_recognizer(), cfg.mapping
            )
            if timing is not None:
                timing.time_align += time.perf_counter() - t0

        return page

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_align_image(self) -> Optional[Image.Image]:
        path = self.config.align_image
        if not path:
            return None
        try:
            with Image.open(path) as img:
                target = img.convert("RGB")
        except OSError as e:
            raise RuntimeError(f"Failed to open alignment image '{path}': {e}") from e
        logger.info("Loaded alignment image %s (%dx%d)", path, *target.size)
        return target

    def _save_debug(
        self,
        pdf: PDFAdapter,
        page: PageTrimResult,
        target: Optional[Image.Image],
    ) -> None:
        """
        Save overlays for *page*.  Against the alignment image when one is
        configured, otherwise against the page's own rendering cropped to
        the reference bounds.
        """
        rm = page.relative_map
        if rm is None or not rm.success:
            return
        stem = f"page_{page.page_index + 1:03d}"

        if target is not None:
            crop = page.alignment.crop if page.alignment else None
            save_debug_images(target, rm, self.config.debug_dir, stem, crop, self.config.mapping)
            return

        try:
            image = pdf.render(page.page_index, dpi=self.config.dpi)
        except RuntimeError as e:
            logger.warning("Could not render page %d for debug: %s", page.page_index, e)
            return
        crop = _bounds_to_pixels(rm.bounds, page.page_height, self.config.dpi)
        save_debug_images(image, rm, self.config.debug_dir, stem, crop, self.config.mapping)


def _bounds_to_pixels(bounds: Rect, page_height: float, dpi: int) -> Rect:
    """Bottom-left point box → top-left pixel box at *dpi*."""
    scale = dpi / 72.0
    return Rect(
        x=max(0.0, bounds.x * scale),
        y=max(0.0, (page_height - bounds.top) * scale),
        width=bounds.width * scale,
        height=bounds.height * scale,
    )
