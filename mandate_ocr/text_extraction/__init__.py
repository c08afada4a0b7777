"""
Text Extraction Module for the Mandate OCR Service.

This module provides functionality for:
    - Native PDF text extraction per page
    - Text quality gating
    - OCR fallback with time budgets
    - Ordered reassembly of document text

Author: Document Automation Team
"""

from .extractor import TextExtractor, printable_ratio
from .page_text import DocumentText, ExtractionMethod, PageText

__all__ = ['TextExtractor', 'printable_ratio', 'DocumentText', 'ExtractionMethod', 'PageText']
