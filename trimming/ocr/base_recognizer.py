"""
Abstract base class for word recognizers.

The alignment step only needs words with pixel boxes and a confidence,
so any OCR backend (or a test double) can stand behind this interface.
"""

from abc import ABC, abstractmethod
from typing import List

from PIL import Image

from .models import OcrWord


class BaseWordRecognizer(ABC):
    """
    Common interface for word recognizers used by the alignment step.

    Subclasses must implement :meth:`recognize` and ``engine_name``.
    """

    @abstractmethod
    def recognize(self, image: Image.Image) -> List[OcrWord]:
        """
        Detect words on *image*.

        Args:
            image: RGB or greyscale page image.

        Returns:
            Every non-empty word with its pixel box (top-left origin) and
            confidence on a 0-100 scale.  Filtering by confidence is left
            to the caller.
        """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine identifier."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.engine_name})"
