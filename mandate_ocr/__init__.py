"""
Mandate OCR Service - Source Package.

This package contains the core modules of the unattended batch OCR
service. Every mandate (tenant) is polled by its own worker, which
drives each discovered batch through the pipeline below.

Modules:
    - input_handler: Batch discovery, claiming and PDF rasterisation
    - segmentation: QR marker detection and document splitting
    - ocr_engine: OCR capability (Tesseract backend)
    - text_extraction: Native text first, OCR fallback, per page
    - matching: Vendor recognition against known expressions
    - validation: IBAN checksum and bank table lookup
    - repository: Database access, retry and per-mandate caching
    - pipeline: Batch processor, mandate worker and supervisor

Architecture:
    Input → Segmentation → Text Extraction → Matching → Validation → Repository
"""

__version__ = "1.0.0"
__author__ = "Document Automation Team"

__all__ = [
    'input_handler',
    'segmentation',
    'ocr_engine',
    'text_extraction',
    'matching',
    'validation',
    'repository',
    'pipeline',
    'utils'
]
