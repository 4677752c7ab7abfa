"""Word recognition backends for raster alignment."""

from .base_recognizer import BaseWordRecognizer
from .models import OcrWord
from .tesseract_recognizer import TesseractRecognizer

__all__ = ["BaseWordRecognizer", "OcrWord", "TesseractRecognizer"]
