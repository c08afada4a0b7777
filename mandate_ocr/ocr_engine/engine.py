"""
Main OCR Engine Module.

This module provides the OCREngine class, the unified interface to the
OCR capability. The engine is treated as an opaque service: it accepts
a raster image and returns text, or fails, within a time budget.

Usage:
    from mandate_ocr.ocr_engine import OCREngine

    engine = OCREngine()
    text = engine.extract_text(page.image, timeout=60)

Author: Document Automation Team
"""

from typing import Optional

from PIL import Image

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import OCREngineNotAvailableError, OCRProcessingError
from .ocr_result import OCRResult
from .tesseract_backend import TesseractBackend

# Initialize module logger
logger = get_logger(__name__)


class OCREngine:
    """
    OCR engine providing a unified interface for text recognition.

    Supported Backends:
        - tesseract: Tesseract OCR (default)

    Attributes:
        backend_name: Name of the active OCR backend
        backend: The active OCR backend instance

    Example:
        >>> engine = OCREngine()
        >>> result = engine.extract(image)
        >>> print(result.text)
    """

    SUPPORTED_BACKENDS = ['tesseract']

    def __init__(self, backend: Optional[str] = None) -> None:
        """
        Initialize the OCR engine.

        Args:
            backend: OCR backend to use. If None, uses configuration.

        Raises:
            OCREngineNotAvailableError: If the backend cannot be used.
        """
        self.backend_name = backend or get_config("ocr.engine", "tesseract")

        if self.backend_name == "pytesseract":
            self.backend_name = "tesseract"

        if self.backend_name not in self.SUPPORTED_BACKENDS:
            raise OCREngineNotAvailableError(self.backend_name)

        self.backend = TesseractBackend()

        logger.info(f"OCR Engine initialized with backend: {self.backend_name}")

    def extract(self, image: Image.Image, timeout: Optional[float] = None) -> OCRResult:
        """
        Recognize text in an image.

        Args:
            image: PIL Image of one page.
            timeout: Time budget in seconds, None for no limit.

        Returns:
            OCRResult with the recognized lines.

        Raises:
            OCRProcessingError: If the input is not an image or OCR fails.
            ExtractionTimeoutError: If OCR exceeds the time budget.
        """
        if not isinstance(image, Image.Image):
            raise OCRProcessingError("unknown", "Invalid image input")

        logger.debug(f"Extracting text using {self.backend_name} backend")
        return self.backend.extract(image, timeout=timeout)

    def extract_text(self, image: Image.Image, timeout: Optional[float] = None) -> str:
        """
        Recognize text in an image and return it as a plain string.

        Args:
            image: PIL Image of one page.
            timeout: Time budget in seconds, None for no limit.

        Returns:
            Recognized text, lines separated by newlines.
        """
        return self.extract(image, timeout=timeout).text

