"""
Page model for the trimming pipeline.
Provides lazy primitive extraction and rasterization for one page.
"""

import logging
from typing import Optional

import fitz
from PIL import Image

from .models import PageElements
from .primitives import PagePrimitives

logger = logging.getLogger(__name__)


class PageModel:
    """
    Lightweight page model giving access to layout primitives.

    Primitives are extracted lazily so that a large document can be
    walked page by page without holding every page's geometry in memory.
    """

    def __init__(
        self,
        doc: fitz.Document,
        page_index: int,
        min_rect_size: float = 5.0,
        min_line_length: float = 5.0,
    ):
        self._doc = doc
        self.page_index = page_index
        self.min_rect_size = min_rect_size
        self.min_line_length = min_line_length
        self._page: Optional[fitz.Page] = None

        # Lazy-loaded primitives
        self._primitives: Optional[PagePrimitives] = None

        self._rect: Optional[fitz.Rect] = None

    @property
    def page(self) -> fitz.Page:
        """Get the underlying fitz page, loading if necessary."""
        if self._page is None:
            self._page = self._doc.load_page(self.page_index)
            self._rect = self._page.rect
        return self._page

    @property
    def rect(self) -> fitz.Rect:
        if self._rect is None:
            _ = self.page
        return self._rect

    @property
    def width(self) -> float:
        """Page width in points."""
        return self.rect.width

    @property
    def height(self) -> float:
        """Page height in points."""
        return self.rect.height

    @property
    def primitives(self) -> PagePrimitives:
        """Extract primitives on first access."""
        if self._primitives is None:
            self._primitives = PagePrimitives(
                self.page,
                page_index=self.page_index,
                min_rect_size=self.min_rect_size,
                min_line_length=self.min_line_length,
            )
        return self._primitives

    def elements(self) -> PageElements:
        return self.primitives.to_elements()

    def render_to_image(self, dpi: int = 150) -> Image.Image:
        """
        Render the page to a PIL Image.

        Args:
            dpi: Target resolution; points are scaled by ``dpi / 72``.

        Returns:
            PIL.Image.Image in RGB mode.
        """
        scale = dpi / 72.0
        mat = fitz.Matrix(scale, scale)
        try:
            pix = self.page.get_pixmap(matrix=mat, alpha=False)
        except Exception as e:
            raise RuntimeError(
                f"Error rendering page {self.page_index}: {e}"
            ) from e
        logger.debug(
            "Rendered page %d at %d dpi (%dx%d px)",
            self.page_index,
            dpi,
            pix.width,
            pix.height,
        )
        return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

    def unload(self):
        """Unload page data to free memory."""
        self._primitives = None
        self._page = None

    def __repr__(self) -> str:
        return (
            f"PageModel(page={self.page_index}, "
            f"size={self.width:.0f}x{self.height:.0f})"
        )
