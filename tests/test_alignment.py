"""Tests for word matching, crop solving and image alignment."""

import math

import pytest
from PIL import Image

from core.page.models import Rect
from trimming.marks.models import TrimError
from trimming.mapping.aligner import align_to_image
from trimming.mapping.matcher import match_words, normalize_for_match, texts_match
from trimming.mapping.models import (
    CropSolution,
    ElementKind,
    MappingConfig,
    MatchedPair,
    RelativeElement,
    RelativeMap,
    SolveMethod,
    TextPayload,
)
from trimming.mapping.solver import clamp_to_image, solve_crop_rect, sweep_single_match

from .conftest import FakeRecognizer, word_at

# Ground truth used throughout: the reference box sits at (50, 20) and
# spans 800x600 pixels.
CROP_X, CROP_Y, CROP_W, CROP_H = 50.0, 20.0, 800.0, 600.0


def to_pixels(rx, ry):
    return rx * CROP_W + CROP_X, ry * CROP_H + CROP_Y


def text_elem(s, rx, ry):
    return RelativeElement(ElementKind.TEXT, rx, ry, 0.1, 0.03, TextPayload(text=s))


@pytest.fixture
def relative_map():
    return RelativeMap(
        success=True,
        bounds=Rect(0, 0, 400, 300),
        elements=[
            text_elem("Annual", 0.1, 0.2),
            text_elem("Report", 0.5, 0.7),
            text_elem("Summary", 0.9, 0.4),
            RelativeElement(ElementKind.IMAGE, 0.5, 0.5, 0.2, 0.2),
        ],
    )


@pytest.fixture
def page_image():
    return Image.new("RGB", (1000, 700), "white")


class TestMatching:
    def test_normalize(self):
        assert normalize_for_match(" Hello_ World\n") == "helloworld"

    def test_texts_match(self):
        assert texts_match("ab", "ab")
        assert texts_match("report", "annualreport")
        assert texts_match("annualreport", "report")
        assert not texts_match("abc", "abcd")
        assert not texts_match("", "")

    def test_one_match_per_element(self):
        elements = [text_elem("Annual Report", 0.2, 0.3)]
        words = [word_at("annual", 100, 100), word_at("Report", 200, 100)]
        matches = match_words(elements, words)

        assert len(matches) == 1
        assert matches[0].ocr_text == "annual"
        assert (matches[0].pixel_x, matches[0].pixel_y) == (100, 100)
        assert (matches[0].relative_x, matches[0].relative_y) == (0.2, 0.3)

    def test_confidence_threshold_is_inclusive(self):
        elements = [text_elem("Total", 0.5, 0.5)]
        assert match_words(elements, [word_at("Total", 10, 10, conf=29.9)]) == []
        assert len(match_words(elements, [word_at("Total", 10, 10, conf=30.0)])) == 1

    def test_short_and_non_text_elements_skipped(self):
        elements = [
            text_elem("a", 0.1, 0.1),
            RelativeElement(ElementKind.IMAGE, 0.5, 0.5, 0.2, 0.2),
        ]
        assert match_words(elements, [word_at("a", 10, 10)]) == []

    def test_configurable_threshold(self):
        elements = [text_elem("Total", 0.5, 0.5)]
        cfg = MappingConfig(min_confidence=95)
        assert match_words(elements, [word_at("Total", 10, 10, conf=90)], cfg) == []


class TestSolver:
    def _matches(self, points):
        return [MatchedPair(rx, ry, *to_pixels(rx, ry)) for rx, ry in points]

    def test_recovers_exact_crop(self):
        solution = solve_crop_rect(self._matches([(0.1, 0.2), (0.5, 0.7), (0.9, 0.4)]))

        assert solution.success
        assert solution.method == SolveMethod.LEAST_SQUARES
        assert solution.x == pytest.approx(CROP_X, abs=1e-3)
        assert solution.y == pytest.approx(CROP_Y, abs=1e-3)
        assert solution.width == pytest.approx(CROP_W, abs=1e-3)
        assert solution.height == pytest.approx(CROP_H, abs=1e-3)
        assert len(solution.residuals) == 3
        assert solution.mean_residual == pytest.approx(0, abs=1e-6)

    def test_residuals_report_noise(self):
        matches = self._matches([(0.1, 0.2), (0.5, 0.7), (0.9, 0.4)])
        matches[1].pixel_x += 6
        solution = solve_crop_rect(matches)
        assert solution.success
        assert solution.mean_residual > 0

    def test_same_relative_x_is_singular(self):
        solution = solve_crop_rect(self._matches([(0.5, 0.2), (0.5, 0.7)]))
        assert not solution.success
        assert solution.error == TrimError.SINGULAR_LINEAR_SYSTEM

    def test_single_match_is_singular(self):
        solution = solve_crop_rect(self._matches([(0.5, 0.2)]))
        assert solution.error == TrimError.SINGULAR_LINEAR_SYSTEM

    def test_tiny_solution_rejected(self):
        matches = [MatchedPair(0.1, 0.1, 100, 100), MatchedPair(0.9, 0.9, 104, 104)]
        solution = solve_crop_rect(matches)
        assert solution.error == TrimError.SOLVED_BOX_TOO_SMALL

    def test_sweep_prefers_full_image(self):
        match = MatchedPair(0.5, 0.5, 500, 400)
        solution = sweep_single_match(match, (1000, 800), 1.25)

        assert solution.success
        assert solution.method == SolveMethod.SINGLE_MATCH_SWEEP
        assert (solution.x, solution.y) == pytest.approx((0, 0), abs=1e-6)
        assert (solution.width, solution.height) == pytest.approx((1000, 800), abs=1e-6)

    def test_sweep_with_no_candidate(self):
        match = MatchedPair(0.5, 0.5, -5000, -5000)
        solution = sweep_single_match(match, (1000, 800), 1.25)
        assert not solution.success
        assert solution.error == TrimError.NO_MATCHES

    def test_clamp(self):
        solution = CropSolution(success=True, x=-10, y=-5, width=200, height=100)
        assert clamp_to_image(solution, (150, 90)) == Rect(0, 0, 150, 90)

    def test_clamp_rejects_slivers(self):
        solution = CropSolution(success=True, x=145, y=0, width=200, height=100)
        assert clamp_to_image(solution, (150, 90)) is None

    def test_clamp_rejects_non_finite(self):
        solution = CropSolution(success=True, x=math.nan, y=0, width=200, height=100)
        assert clamp_to_image(solution, (150, 90)) is None


class TestAlignToImage:
    def test_least_squares_alignment(self, relative_map, page_image):
        words = [
            word_at("Annual", *to_pixels(0.1, 0.2)),
            word_at("REPORT", *to_pixels(0.5, 0.7)),
            word_at("summary", *to_pixels(0.9, 0.4)),
        ]
        recognizer = FakeRecognizer(words)
        result = align_to_image(relative_map, page_image, recognizer)

        assert recognizer.calls == 1
        assert result.success
        assert result.words_recognized == 3
        assert len(result.matches) == 3
        assert result.solution.method == SolveMethod.LEAST_SQUARES
        assert result.crop == Rect(50, 20, 800, 600)

    def test_single_match_uses_sweep(self, relative_map, page_image):
        recognizer = FakeRecognizer([word_at("Annual", *to_pixels(0.1, 0.2))])
        result = align_to_image(relative_map, page_image, recognizer)

        assert result.success
        assert result.solution.method == SolveMethod.SINGLE_MATCH_SWEEP
        crop = result.crop
        assert crop.x >= 0 and crop.y >= 0
        assert crop.right <= 1000 and crop.top <= 700

    def test_no_matches(self, relative_map, page_image):
        recognizer = FakeRecognizer([word_at("zzzz", 10, 10)])
        result = align_to_image(relative_map, page_image, recognizer)

        assert not result.success
        assert result.error == TrimError.NO_MATCHES
        assert result.crop is None
        assert result.words_recognized == 1

    def test_singular_matches_reported(self, relative_map, page_image):
        relative_map.elements[1] = text_elem("Report", 0.1, 0.7)
        words = [
            word_at("Annual", *to_pixels(0.1, 0.2)),
            word_at("Report", *to_pixels(0.1, 0.7)),
        ]
        result = align_to_image(relative_map, page_image, FakeRecognizer(words))

        assert not result.success
        assert result.error == TrimError.SINGULAR_LINEAR_SYSTEM
        assert result.solution.method == SolveMethod.LEAST_SQUARES
