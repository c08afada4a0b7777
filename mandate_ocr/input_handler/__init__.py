"""
Input Handler Module for the Mandate OCR Service.

This module provides functionality for:
    - Discovering batch files in a mandate's input directory
    - Claiming files so they are read exactly once
    - Rendering PDF pages to images
    - Native text extraction of single pages

Author: Document Automation Team
"""

from .batch import Batch, Page
from .handler import BatchLoader
from .pdf_processor import PDFProcessor

__all__ = ['Batch', 'Page', 'BatchLoader', 'PDFProcessor']
