"""
Tesseract OCR Backend.

This module provides OCR functionality using Tesseract (pytesseract).
It recognizes words and groups them into lines in reading order.

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package

Author: Document Automation Team
"""

import time
from typing import Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import (
    ExtractionTimeoutError,
    OCREngineNotAvailableError,
    OCRProcessingError,
)
from .ocr_result import OCRLine, OCRResult, OCRWord

# Initialize module logger
logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract OCR backend implementation.

    Attributes:
        language: Tesseract language code (e.g., "deu+eng")
        psm: Page Segmentation Mode (1-13)
        oem: OCR Engine Mode (0-3)
        extra_config: Additional Tesseract configuration

    Example:
        >>> backend = TesseractBackend()
        >>> result = backend.extract(image, timeout=30)
        >>> print(f"Found {result.word_count} words")
    """

    def __init__(self) -> None:
        self.language = get_config("ocr.tesseract.lang", "eng")
        self.psm = get_config("ocr.tesseract.psm", 3)
        self.oem = get_config("ocr.tesseract.oem", 3)
        self.extra_config = get_config("ocr.tesseract.config", "")

        self.version = self._check_engine()

        logger.debug(
            f"TesseractBackend initialized (lang={self.language}, "
            f"psm={self.psm}, oem={self.oem})"
        )

    def _check_engine(self) -> str:
        """
        Check that the Tesseract binary is reachable.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        try:
            version = str(pytesseract.get_tesseract_version())
        except Exception as e:
            raise OCREngineNotAvailableError(
                f"Tesseract OCR (not installed or not in PATH): {e}"
            )

        logger.info(f"Tesseract version: {version}")
        return version

    def _build_config(self) -> str:
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}"
        ]

        if self.extra_config:
            config_parts.append(self.extra_config)

        return ' '.join(config_parts)

    def extract(self, image: Image.Image, timeout: Optional[float] = None) -> OCRResult:
        """
        Recognize the lines of an image.

        Args:
            image: PIL Image to process.
            timeout: Seconds after which the Tesseract process is killed.

        Returns:
            OCRResult with lines in reading order.

        Raises:
            ExtractionTimeoutError: If Tesseract exceeds the timeout.
            OCRProcessingError: If OCR processing fails.
        """
        start_time = time.time()

        if image.mode != 'RGB':
            image = image.convert('RGB')

        config = self._build_config()
        logger.debug(f"Running Tesseract OCR (config: {config})")

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=config,
                output_type=pytesseract.Output.DICT,
                timeout=timeout or 0
            )
        except RuntimeError as e:
            # pytesseract signals a killed process with a RuntimeError
            if 'timeout' in str(e).lower():
                raise ExtractionTimeoutError("tesseract", timeout or 0)
            raise OCRProcessingError("image", str(e))
        except Exception as e:
            logger.error(f"OCR processing failed: {e}")
            raise OCRProcessingError("image", str(e))

        result = OCRResult(
            lines=parse_tesseract_data(data),
            processing_time=time.time() - start_time
        )

        logger.debug(f"OCR completed: {result!r} ({result.processing_time:.2f}s)")
        return result


def parse_tesseract_data(data: Dict[str, List]) -> List[OCRLine]:
    """
    Turn pytesseract's image_to_data dictionary into lines.

    Empty and zero-sized boxes are skipped. Words are grouped by their
    (block, paragraph, line) numbers and ordered left to right.

    Args:
        data: Output of image_to_data with Output.DICT.

    Returns:
        Lines in reading order.
    """
    groups: Dict[Tuple[int, int, int], List[OCRWord]] = {}

    for i, text in enumerate(data['text']):
        if not text or not text.strip():
            continue
        if data['width'][i] <= 0 or data['height'][i] <= 0:
            continue

        key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        groups.setdefault(key, []).append(OCRWord(
            text=text.strip(),
            left=data['left'][i],
            # Tesseract returns -1 for non-word elements
            confidence=max(float(data['conf'][i]), 0.0)
        ))

    return [
        OCRLine(words=sorted(groups[key], key=lambda word: word.left))
        for key in sorted(groups)
    ]
