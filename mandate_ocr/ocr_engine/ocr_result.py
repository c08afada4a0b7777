"""
OCR Result Data Classes.

Tesseract reports words with their block/paragraph/line position; the
backend groups them into lines, and the text of a page is the lines
joined in reading order.

Author: Document Automation Team
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class OCRWord:
    """
    One recognized word.

    Attributes:
        text: Recognized characters
        left: Left pixel coordinate, used to order words within a line
        confidence: Tesseract confidence (0-100)
    """
    text: str
    left: int = 0
    confidence: float = 0.0


@dataclass
class OCRLine:
    words: List[OCRWord] = field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(word.text for word in self.words)


@dataclass
class OCRResult:
    """
    OCR output of a single page image.

    Example:
        >>> result = backend.extract(image)
        >>> print(result.text)
        "IBAN CH93 0076 2011 6238 5295 7"
    """
    lines: List[OCRLine] = field(default_factory=list)
    processing_time: float = 0.0

    @property
    def text(self) -> str:
        return '\n'.join(line.text for line in self.lines)

    @property
    def word_count(self) -> int:
        return sum(len(line.words) for line in self.lines)

    @property
    def average_confidence(self) -> float:
        words = [word for line in self.lines for word in line.words]
        if not words:
            return 0.0
        return sum(word.confidence for word in words) / len(words)

    def __repr__(self) -> str:
        return (
            f"OCRResult(lines={len(self.lines)}, words={self.word_count}, "
            f"confidence={self.average_confidence:.1f}%)"
        )
