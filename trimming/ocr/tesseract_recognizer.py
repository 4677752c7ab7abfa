"""
Tesseract word recognizer via pytesseract.

Runs a single-block page segmentation pass and returns word boxes.  The
``tesseract`` binary must be installed; set ``TESSERACT_CMD`` to point
at it when it is not on ``PATH``.
"""

import logging
import os
from typing import List, Optional

import pytesseract
from PIL import Image

from .base_recognizer import BaseWordRecognizer
from .models import OcrWord

logger = logging.getLogger(__name__)


class TesseractRecognizer(BaseWordRecognizer):
    """
    Word recognizer backed by the Tesseract CLI.

    Args:
        lang:          Tesseract language code(s), e.g. ``"eng"``.
        psm:           Page segmentation mode (6 = single uniform block).
        tesseract_cmd: Explicit path to the binary; falls back to the
                       ``TESSERACT_CMD`` environment variable.
    """

    def __init__(
        self,
        lang: str = "eng",
        psm: int = 6,
        tesseract_cmd: Optional[str] = None,
    ):
        self.lang = lang
        self.psm = psm

        cmd = tesseract_cmd or os.environ.get("TESSERACT_CMD")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    @property
    def engine_name(self) -> str:
        return f"tesseract[{self.lang}, psm={self.psm}]"

    def recognize(self, image: Image.Image) -> List[OcrWord]:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=f"--psm {self.psm}",
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RuntimeError(
                "Tesseract is not installed or not on PATH "
                "(set TESSERACT_CMD to its location)"
            ) from e

        words: List[OcrWord] = []
        for i, raw in enumerate(data["text"]):
            text = (raw or "").strip()
            if not text:
                continue
            try:
                conf = float(data["conf"][i])
            except (ValueError, TypeError):
                conf = -1.0
            words.append(
                OcrWord(
                    text=text,
                    x=float(data["left"][i]),
                    y=float(data["top"][i]),
                    width=float(data["width"][i]),
                    height=float(data["height"][i]),
                    confidence=conf,
                )
            )

        logger.debug("Tesseract detected %d words", len(words))
        return words
