"""Recognizer output model."""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class OcrWord:
    """A recognized word in pixel space (top-left origin)."""

    text: str
    x: float
    y: float
    width: float
    height: float
    confidence: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)
