"""
Segmentation Module for the Mandate OCR Service.

This module provides functionality for:
    - Decoding QR separator markers on page images
    - Parsing marker routing metadata
    - Splitting batches into contiguous documents

Author: Document Automation Team
"""

from .document import SegmentedDocument
from .marker import Marker, MarkerDecoder, MarkerDetector, MarkerPolicy, parse_marker_payload
from .segmenter import DocumentSegmenter, Segmentation

__all__ = [
    'SegmentedDocument',
    'Marker',
    'MarkerDecoder',
    'MarkerDetector',
    'MarkerPolicy',
    'parse_marker_payload',
    'DocumentSegmenter',
    'Segmentation',
]
