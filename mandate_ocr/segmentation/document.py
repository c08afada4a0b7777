"""
Segmented Document Data Class.

Author: Document Automation Team
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from mandate_ocr.input_handler.batch import Page
from .marker import Marker


@dataclass(frozen=True)
class SegmentedDocument:
    """
    A contiguous run of pages of one batch.

    Attributes:
        batch_key: Identity of the batch the pages belong to
        sequence: 0-based position of the document within the batch
        pages: Pages in order, never empty
        marker: Marker that opened this document, if any
    """
    batch_key: str
    sequence: int
    pages: Tuple[Page, ...]
    marker: Optional[Marker] = None

    def __post_init__(self):
        if not self.pages:
            raise ValueError("A segmented document needs at least one page")

        indices = [page.index for page in self.pages]
        if indices != list(range(indices[0], indices[0] + len(indices))):
            raise ValueError(f"Document pages are not contiguous: {indices}")

    @property
    def first_page(self) -> int:
        return self.pages[0].index

    @property
    def last_page(self) -> int:
        return self.pages[-1].index

    @property
    def page_range(self) -> Tuple[int, int]:
        return self.first_page, self.last_page

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def routing(self) -> Dict[str, str]:
        """Routing metadata of the opening marker."""
        return dict(self.marker.metadata) if self.marker else {}

    def __repr__(self) -> str:
        return (
            f"SegmentedDocument(seq={self.sequence}, "
            f"pages={self.first_page + 1}-{self.last_page + 1})"
        )
