"""Shared fixtures and primitive factories for the trimming tests."""

from typing import List

import pytest

from core.page.models import (
    EmbeddedImage,
    LineSegment,
    PageElements,
    Rect,
    Rectangle,
    TextElement,
)
from trimming.ocr.base_recognizer import BaseWordRecognizer
from trimming.ocr.models import OcrWord

PAGE_W = 500.0
PAGE_H = 700.0


def seg(x1, y1, x2, y2, page=0, width=1.0) -> LineSegment:
    return LineSegment(page=page, x1=x1, y1=y1, x2=x2, y2=y2, line_width=width)


def rect(x, y, w, h, page=0, filled=False) -> Rectangle:
    return Rectangle(page=page, x=x, y=y, width=w, height=h, filled=filled)


def text(s, x, y, w, h, size=10.0) -> TextElement:
    return TextElement(bbox=Rect(x, y, w, h), text=s, font_name="Helvetica", font_size=size)


def crop_mark_lines(
    left=10.0, bottom=10.0, right=490.0, top=690.0, arm=8.0, gap=0.0
) -> List[LineSegment]:
    """
    Four L-shaped crop marks pointing outward from the trim corners.

    Each arm runs from the page edge toward the corner and stops *gap*
    points short of it, so only the extended lines meet at the corner.
    """
    return [
        # lower-left
        seg(left - gap - arm, bottom, left - gap, bottom),
        seg(left, bottom - gap - arm, left, bottom - gap),
        # lower-right
        seg(right + gap, bottom, right + gap + arm, bottom),
        seg(right, bottom - gap - arm, right, bottom - gap),
        # upper-left
        seg(left - gap - arm, top, left - gap, top),
        seg(left, top + gap, left, top + gap + arm),
        # upper-right
        seg(right + gap, top, right + gap + arm, top),
        seg(right, top + gap, right, top + gap + arm),
    ]


def page_of(lines=(), rectangles=(), texts=(), images=(), w=PAGE_W, h=PAGE_H):
    return PageElements(
        page_index=0,
        page_width=w,
        page_height=h,
        lines=list(lines),
        rectangles=list(rectangles),
        texts=list(texts),
        images=list(images),
    )


class FakeRecognizer(BaseWordRecognizer):
    """Returns a fixed word list and records how often it ran."""

    def __init__(self, words=()):
        self.words = list(words)
        self.calls = 0

    def recognize(self, image):
        self.calls += 1
        return list(self.words)

    @property
    def engine_name(self) -> str:
        return "fake"


def word_at(s, cx, cy, w=40.0, h=12.0, conf=90.0) -> OcrWord:
    """An OCR word centred on (cx, cy)."""
    return OcrWord(text=s, x=cx - w / 2, y=cy - h / 2, width=w, height=h, confidence=conf)


@pytest.fixture
def marked_page() -> PageElements:
    """A 500x700 page with crop marks, a bleed row, a frame and some text."""
    lines = crop_mark_lines()
    # frame drawn as four loose strokes
    lines += [
        seg(100, 200, 400, 200),
        seg(100, 500, 400, 500),
        seg(100, 200, 100, 500),
        seg(400, 200, 400, 500),
    ]
    # stroke joining the bleed patches
    lines.append(seg(150, 355, 300, 355))

    bleed = [rect(150, 350, 10, 10), rect(200, 350.5, 10, 10), rect(250, 351, 10, 10)]
    texts = [
        text("Annual Report", 120, 450, 150, 14),
        text("Page one body", 120, 300, 120, 10),
        text("__________", 120, 250, 100, 10),
    ]
    images = [EmbeddedImage(x=300, y=250, display_width=80, display_height=60, width=800, height=600)]
    return page_of(lines=lines, rectangles=bleed, texts=texts, images=images)
