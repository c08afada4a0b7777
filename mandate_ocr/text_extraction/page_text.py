"""
Extracted Text Data Classes.

Classes:
    ExtractionMethod: How the text of a page was obtained
    PageText: Extracted text of one page
    DocumentText: Extracted text of a segmented document

Author: Document Automation Team
"""

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


class ExtractionMethod(str, enum.Enum):
    NATIVE = "native"
    OCR = "ocr"
    FAILED = "failed"


@dataclass(frozen=True)
class PageText:
    """
    Extracted text of one page.

    A page is failed whenever extraction reported an error. A failed page
    may still carry fallback text, e.g. native text that did not pass the
    quality gate when OCR then timed out.

    Attributes:
        index: 0-based page index within the batch
        text: Extracted text, empty when nothing was recovered
        method: Extraction method that produced the text
        error: Failure description, None for clean pages
    """
    index: int
    text: str
    method: ExtractionMethod
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.method is ExtractionMethod.FAILED or self.error is not None

    @property
    def has_text(self) -> bool:
        return self.method is not ExtractionMethod.FAILED


@dataclass(frozen=True)
class DocumentText:
    """
    Extracted text of a document, pages in index order.

    The document text is assembled from every page that produced text,
    fallback text of failed pages included. Failed pages are listed in
    failed_pages either way.
    """
    pages: Tuple[PageText, ...]

    PAGE_SEPARATOR = "\n\f\n"

    @property
    def text(self) -> str:
        return self.PAGE_SEPARATOR.join(page.text for page in self.pages if page.has_text)

    @property
    def failed_pages(self) -> List[int]:
        return [page.index for page in self.pages if page.failed]

    @property
    def succeeded_pages(self) -> List[int]:
        return [page.index for page in self.pages if not page.failed]

    @property
    def methods(self) -> Dict[int, str]:
        """Page index to extraction method name."""
        return {page.index: page.method.value for page in self.pages}

    @property
    def all_failed(self) -> bool:
        """True when every page failed and none left fallback text."""
        return bool(self.pages) and not any(page.has_text for page in self.pages)
