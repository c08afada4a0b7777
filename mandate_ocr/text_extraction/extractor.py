"""
Text Extractor Module.

This module provides the TextExtractor class that obtains the text of
pages and documents. Native PDF text is tried first; when it is missing
or looks like garbage the page raster goes through OCR.

Policy:
    1. Native extraction (pdfplumber) within the time budget
    2. Quality gate: minimum length and printable-character ratio
    3. OCR fallback (OCREngine) within the time budget
    4. A page whose OCR fails (error or timeout) is flagged as failed.
       It keeps any native text it had as fallback, otherwise the
       document carries on without it

Nothing is cached between runs: every run extracts again.

Author: Document Automation Team
"""

import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from config import get_config
from mandate_ocr.input_handler.batch import Page
from mandate_ocr.input_handler.pdf_processor import PDFProcessor
from mandate_ocr.ocr_engine import OCREngine
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.helpers import call_with_timeout
from .page_text import DocumentText, ExtractionMethod, PageText

# Initialize module logger
logger = get_logger(__name__)

WHITESPACE_CONTROL = frozenset("\n\r\t\f")


def printable_ratio(text: str) -> float:
    """
    Share of characters that are printable (line breaks and tabs count).

    Returns:
        Ratio between 0.0 and 1.0; 0.0 for empty text.
    """
    if not text:
        return 0.0
    printable = sum(1 for ch in text if ch.isprintable() or ch in WHITESPACE_CONTROL)
    return printable / len(text)


class TextExtractor:
    """
    Per-page text extraction with OCR fallback.

    Attributes:
        timeout: Time budget in seconds for each capability call
        max_workers: Pages of one document extracted concurrently
        min_chars: Minimum stripped length of usable native text
        min_printable_ratio: Minimum printable share of usable native text
        native_enabled: Whether native extraction is attempted at all

    Example:
        >>> extractor = TextExtractor()
        >>> document_text = extractor.extract_document(document)
        >>> print(document_text.failed_pages)
    """

    def __init__(
        self,
        ocr_engine: Optional[OCREngine] = None,
        native_extractor: Optional[Callable[[Page], str]] = None,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
        min_chars: Optional[int] = None,
        min_printable_ratio: Optional[float] = None
    ) -> None:
        self.timeout = timeout or get_config("extraction.timeout_seconds", 60)
        self.max_workers = max_workers or get_config("extraction.max_workers", 2)
        self.min_chars = min_chars if min_chars is not None else \
            get_config("extraction.native.min_chars", 25)
        self.min_printable_ratio = min_printable_ratio if min_printable_ratio is not None else \
            get_config("extraction.native.min_printable_ratio", 0.9)
        self.native_enabled = get_config("extraction.native.enabled", True)

        self._ocr_engine = ocr_engine
        self._native_extractor = native_extractor

        logger.debug(
            f"TextExtractor initialized (timeout={self.timeout}s, workers={self.max_workers}, "
            f"min_chars={self.min_chars}, min_ratio={self.min_printable_ratio})"
        )

    @property
    def ocr_engine(self) -> OCREngine:
        """Get or create the OCR engine."""
        if self._ocr_engine is None:
            self._ocr_engine = OCREngine()
        return self._ocr_engine

    @property
    def native_extractor(self) -> Callable[[Page], str]:
        """Get or create the native text extractor."""
        if self._native_extractor is None:
            processor = PDFProcessor()
            self._native_extractor = lambda page: processor.extract_page_text(
                page.source_path, page.index
            )
        return self._native_extractor

    def is_usable(self, text: str) -> bool:
        """Check native text against the length and printable-ratio thresholds."""
        stripped = text.strip()
        return (
            len(stripped) >= self.min_chars
            and printable_ratio(stripped) >= self.min_printable_ratio
        )

    def _native_text(self, page: Page) -> str:
        if not self.native_enabled:
            return ""

        try:
            return call_with_timeout(
                self.native_extractor, self.timeout, page, capability="native-extraction"
            ) or ""
        except Exception as e:
            logger.warning(f"Native extraction failed on page {page.number}: {e}")
        return ""

    def extract_page(self, page: Page) -> PageText:
        """
        Extract the text of one page.

        Args:
            page: Rendered page.

        Returns:
            PageText; never raises for capability failures.
        """
        native = self._native_text(page)

        if self.is_usable(native):
            logger.debug(f"Page {page.number}: native text ({len(native)} chars)")
            return PageText(page.index, native.strip(), ExtractionMethod.NATIVE)

        logger.debug(f"Page {page.number}: native text unusable, falling back to OCR")

        try:
            ocr = functools.partial(self.ocr_engine.extract_text, timeout=self.timeout)
            text = call_with_timeout(ocr, self.timeout, page.image, capability="ocr")
        except Exception as e:
            if native.strip():
                logger.warning(
                    f"Extraction failed on page {page.number}, keeping low-quality native text: {e}"
                )
                return PageText(page.index, native.strip(), ExtractionMethod.NATIVE, error=str(e))

            logger.error(f"Extraction failed on page {page.number}: {e}")
            return PageText(page.index, "", ExtractionMethod.FAILED, error=str(e))

        logger.debug(f"Page {page.number}: OCR text ({len(text)} chars)")
        return PageText(page.index, (text or "").strip(), ExtractionMethod.OCR)

    def extract_pages(self, pages: Sequence[Page]) -> DocumentText:
        """
        Extract a run of pages, reassembled by page index.

        Args:
            pages: Pages of one document.

        Returns:
            DocumentText with one PageText per page in index order.
        """
        if not pages:
            return DocumentText(pages=())

        if self.max_workers <= 1 or len(pages) == 1:
            results = [self.extract_page(page) for page in pages]
        else:
            workers = min(self.max_workers, len(pages))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
                results = list(pool.map(self.extract_page, pages))

        return DocumentText(pages=tuple(sorted(results, key=lambda r: r.index)))

    def extract_document(self, document) -> DocumentText:
        """
        Extract the text of a segmented document.

        Args:
            document: SegmentedDocument.

        Returns:
            DocumentText for the document's pages.
        """
        document_text = self.extract_pages(document.pages)

        failed = document_text.failed_pages
        if failed:
            logger.warning(
                f"{document!r}: {len(failed)} of {document.page_count} page(s) failed "
                f"({', '.join(str(i + 1) for i in failed)})"
            )

        return document_text
