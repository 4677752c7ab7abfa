"""
PDF adapter for the trimming pipeline.

Provides functions to extract layout primitives and render page images
using fitz (PyMuPDF) directly.
"""

from typing import Dict, Optional, Tuple

import fitz
from PIL import Image

from core.page.models import PageElements
from core.page.page_model import PageModel
from core.page.primitives import extract_page_elements


def open_pdf(pdf_path: str) -> fitz.Document:
    """
    Open a PDF document.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        A fitz.Document instance.

    Raises:
        RuntimeError: If fitz cannot open the file.
    """
    try:
        doc = fitz.open(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Failed to open PDF '{pdf_path}': {e}") from e
    return doc


def _check_index(doc: fitz.Document, page_index: int) -> None:
    if page_index < 0 or page_index >= doc.page_count:
        raise IndexError(
            f"Page index {page_index} out of range "
            f"(document has {doc.page_count} pages)"
        )


def _pixmap_to_pil(page: fitz.Page, dpi: int) -> Image.Image:
    scale = dpi / 72.0
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)


def extract_elements(pdf_path: str, page_index: int) -> PageElements:
    """
    Extract layout primitives for a single page.

    Args:
        pdf_path:   Path to the PDF file.
        page_index: 0-based page number.

    Returns:
        PageElements in bottom-left-origin points.
    """
    doc = open_pdf(pdf_path)
    try:
        _check_index(doc, page_index)
        return extract_page_elements(doc.load_page(page_index), page_index)
    finally:
        doc.close()


def render_page_to_pil(pdf_path: str, page_index: int, dpi: int = 150) -> Image.Image:
    """
    Render a single PDF page to a PIL Image (RGB).

    Args:
        pdf_path:   Path to the PDF file.
        page_index: 0-based page number.
        dpi:        Output resolution; points are scaled by ``dpi / 72``.
    """
    doc = open_pdf(pdf_path)
    try:
        _check_index(doc, page_index)
        return _pixmap_to_pil(doc.load_page(page_index), dpi)
    finally:
        doc.close()


def get_page_count(pdf_path: str) -> int:
    """Return the total number of pages in the PDF."""
    doc = open_pdf(pdf_path)
    try:
        return doc.page_count
    finally:
        doc.close()


# ---------------------------------------------------------------------------
# Stateful adapter for the pipeline (keeps one document open so we don't
# re-open the file for every page).
# ---------------------------------------------------------------------------


class PDFAdapter:
    """
    Stateful adapter that keeps the document open across multiple
    page operations.  Preferred over the standalone functions when
    processing an entire document sequentially.
    """

    def __init__(
        self,
        pdf_path: Optional[str] = None,
        doc: Optional[fitz.Document] = None,
        min_rect_size: float = 5.0,
        min_line_length: float = 5.0,
    ):
        if doc is None and pdf_path is None:
            raise ValueError("PDFAdapter needs a path or an open document")
        self.pdf_path = pdf_path or "<memory>"
        self.doc = doc if doc is not None else open_pdf(pdf_path)
        self.page_count = self.doc.page_count
        self.min_rect_size = min_rect_size
        self.min_line_length = min_line_length
        self._models: Dict[int, PageModel] = {}

    # -- pages --------------------------------------------------------------

    def page(self, page_index: int) -> PageModel:
        """Return the (cached) PageModel for *page_index*."""
        _check_index(self.doc, page_index)
        if page_index not in self._models:
            self._models[page_index] = PageModel(
                self.doc,
                page_index,
                min_rect_size=self.min_rect_size,
                min_line_length=self.min_line_length,
            )
        return self._models[page_index]

    def elements(self, page_index: int) -> PageElements:
        """Return the layout primitives for *page_index*."""
        return self.page(page_index).elements()

    def release(self, page_index: int) -> None:
        """Drop cached extraction for *page_index*."""
        model = self._models.pop(page_index, None)
        if model is not None:
            model.unload()

    # -- rendering ----------------------------------------------------------

    def render(self, page_index: int, dpi: int = 150) -> Image.Image:
        """Render *page_index* to a PIL RGB image."""
        return self.page(page_index).render_to_image(dpi=dpi)

    # -- geometry -----------------------------------------------------------

    def dimensions(self, page_index: int) -> Tuple[float, float]:
        """Return (width, height) in PDF points."""
        model = self.page(page_index)
        return model.width, model.height

    # -- lifecycle ----------------------------------------------------------

    def close(self):
        self._models.clear()
        if self.doc is not None:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"PDFAdapter('{self.pdf_path}', pages={self.page_count})"
