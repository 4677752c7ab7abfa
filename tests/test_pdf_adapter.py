"""
Extraction and rendering against a small PDF built in memory.

The page mirrors the ``marked_page`` fixture: crop marks around a
480x680 trim box, a stroked frame, two text runs and one image.
"""

import io
import json

import fitz
import pytest
from PIL import Image

from core.page.primitives import extract_page_elements
from trimming.pipeline import TrimConfig, TrimPipeline
from trimming.utils.pdf_adapter import (
    PDFAdapter,
    extract_elements,
    get_page_count,
    render_page_to_pil,
)

from .conftest import PAGE_H, PAGE_W, crop_mark_lines


def _pt(x, y):
    """Bottom-left point -> fitz (top-left) point."""
    return fitz.Point(x, PAGE_H - y)


def _png_bytes(size=(40, 30)):
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


def build_document() -> fitz.Document:
    doc = fitz.open()
    page = doc.new_page(width=PAGE_W, height=PAGE_H)

    for line in crop_mark_lines():
        page.draw_line(_pt(line.x1, line.y1), _pt(line.x2, line.y2), color=(0, 0, 0), width=0.5)

    # frame at (100, 200) 300x300 in bottom-left coordinates
    page.draw_rect(fitz.Rect(100, 200, 400, 500), color=(0, 0, 0), width=1)
    page.insert_text(fitz.Point(120, 240), "Annual Report", fontsize=14)
    page.insert_text(fitz.Point(120, 400), "Page one body", fontsize=10)
    page.insert_image(fitz.Rect(300, 390, 380, 450), stream=_png_bytes())
    return doc


@pytest.fixture
def pdf_doc():
    doc = build_document()
    yield doc
    if not doc.is_closed:
        doc.close()


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "proof.pdf"
    doc = build_document()
    doc.save(str(path))
    doc.close()
    return path


class TestExtraction:
    def test_page_size(self, pdf_doc):
        elements = extract_page_elements(pdf_doc[0])
        assert elements.page_index == 0
        assert (elements.page_width, elements.page_height) == (PAGE_W, PAGE_H)

    def test_crop_mark_lines_flipped(self, pdf_doc):
        elements = extract_page_elements(pdf_doc[0])
        short = [ln for ln in elements.lines if ln.length < 20]
        assert len(short) == 8
        ys = sorted({round(ln.midpoint[1]) for ln in short if ln.is_horizontal})
        assert ys == [10, 690]

    def test_frame_rectangle(self, pdf_doc):
        elements = extract_page_elements(pdf_doc[0])
        frames = [r for r in elements.rectangles if r.width > 100]
        assert len(frames) == 1
        frame = frames[0]
        assert (frame.x, frame.y, frame.width, frame.height) == pytest.approx((100, 200, 300, 300))
        assert frame.stroked

    def test_text_runs(self, pdf_doc):
        elements = extract_page_elements(pdf_doc[0])
        texts = {t.text: t for t in elements.texts}
        assert "Annual Report" in texts
        assert "Page one body" in texts
        title = texts["Annual Report"]
        assert title.font_size == pytest.approx(14)
        # baseline at fitz y=240 -> roughly 460 from the bottom
        assert 440 < title.bbox.y < 470

    def test_image_placement(self, pdf_doc):
        elements = extract_page_elements(pdf_doc[0])
        assert len(elements.images) == 1
        img = elements.images[0]
        assert (img.x, img.y) == pytest.approx((300, 250), abs=0.5)
        assert (img.display_width, img.display_height) == pytest.approx((80, 60), abs=0.5)
        assert (img.width, img.height) == (40, 30)


class TestAdapter:
    def test_standalone_functions(self, pdf_file):
        assert get_page_count(str(pdf_file)) == 1
        elements = extract_elements(str(pdf_file), 0)
        assert len(elements.texts) == 2
        with pytest.raises(IndexError):
            extract_elements(str(pdf_file), 3)

    def test_render_size(self, pdf_file):
        image = render_page_to_pil(str(pdf_file), 0, dpi=72)
        assert image.mode == "RGB"
        assert image.size == (500, 700)

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuntimeError):
            PDFAdapter(str(tmp_path / "missing.pdf"))

    def test_stateful_adapter(self, pdf_doc):
        with PDFAdapter(doc=pdf_doc) as pdf:
            assert pdf.page_count == 1
            assert pdf.dimensions(0) == (PAGE_W, PAGE_H)
            model = pdf.page(0)
            assert pdf.page(0) is model
            assert len(pdf.elements(0).texts) == 2
            pdf.release(0)
            assert pdf.page(0) is not model
            assert pdf.render(0, dpi=144).size == (1000, 1400)
        assert pdf.doc is None

    def test_needs_source(self):
        with pytest.raises(ValueError):
            PDFAdapter()


class TestEndToEnd:
    def test_crop_box_from_pdf(self, pdf_file):
        cfg = TrimConfig(disable_tqdm=True)
        result = TrimPipeline(cfg).run(str(pdf_file))

        assert result.pages_processed == 1
        assert result.crop_boxes_found == 1
        page = result.pages[0]
        box = page.crop_box
        assert (box.x, box.y, box.width, box.height) == pytest.approx((10, 10, 480, 680), abs=0.01)
        assert not page.fell_back
        assert page.elements.lines == []

        kinds = sorted(e.kind.value for e in page.relative_map.elements)
        assert kinds == ["image", "text", "text"]
        json.dumps(result.to_dict())
        assert "TRIM COMPLETE" in result.summary()

    def test_debug_images(self, pdf_file, tmp_path):
        out = tmp_path / "debug"
        cfg = TrimConfig(disable_tqdm=True, debug_dir=str(out), dpi=72)
        TrimPipeline(cfg).run(str(pdf_file))

        relmap = out / "page_001_relmap.png"
        cropped = out / "page_001_cropped.png"
        assert relmap.exists()
        assert cropped.exists()
        with Image.open(cropped) as img:
            assert img.size == (480, 680)

    def test_page_range_clipped(self, pdf_file):
        cfg = TrimConfig(disable_tqdm=True, page_range=(0, 5))
        result = TrimPipeline(cfg).run(str(pdf_file))
        assert result.pages_processed == 1
