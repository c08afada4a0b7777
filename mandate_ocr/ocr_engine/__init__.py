"""
OCR Engine Module for the Mandate OCR Service.

This module provides the OCR capability used when a page carries no
usable text layer:
    - Word and line recognition from page images
    - Bounded processing time per page
    - Structured OCR output format

Author: Document Automation Team
"""

from .engine import OCREngine
from .tesseract_backend import TesseractBackend, parse_tesseract_data
from .ocr_result import OCRLine, OCRResult, OCRWord

__all__ = [
    'OCREngine', 'TesseractBackend', 'parse_tesseract_data',
    'OCRResult', 'OCRWord', 'OCRLine',
]
