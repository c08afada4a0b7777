"""
Document Segmenter Module.

This module splits the ordered pages of a batch into documents at
marker pages. Segmentation is lazy: documents are produced while the
pages are scanned, and the result can be iterated again from the start.

Usage:
    from mandate_ocr.segmentation import DocumentSegmenter, MarkerPolicy

    segmenter = DocumentSegmenter()
    for document in segmenter.segment(batch.batch_key, batch.pages, MarkerPolicy.DROP):
        ...

Author: Document Automation Team
"""

from typing import Dict, Iterator, List, Optional, Sequence

from config import get_config
from mandate_ocr.input_handler.batch import Page
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import MarkerDecodeError
from .document import SegmentedDocument
from .marker import Marker, MarkerDetector, MarkerPolicy

# Initialize module logger
logger = get_logger(__name__)

_NOT_SCANNED = object()


class Segmentation:
    """
    Restartable, lazy sequence of the documents of one batch.

    Each call to iter() walks the pages again. Decoded markers are
    remembered per page, so a second pass yields the same documents
    without decoding the images again.
    """

    def __init__(
        self,
        batch_key: str,
        pages: Sequence[Page],
        policy: MarkerPolicy,
        prefix: str,
        detector: MarkerDetector
    ) -> None:
        self.batch_key = batch_key
        self.pages = tuple(pages)
        self.policy = MarkerPolicy(policy)
        self.prefix = prefix
        self.detector = detector
        self._markers: Dict[int, object] = {}

    def marker_for(self, page: Page) -> Optional[Marker]:
        """Decode (once) and return the marker on a page, if any."""
        cached = self._markers.get(page.index, _NOT_SCANNED)
        if cached is not _NOT_SCANNED:
            return cached

        try:
            marker = self.detector.detect(page, self.prefix)
        except MarkerDecodeError as e:
            logger.warning(f"Page {page.number} treated as content: {e}")
            marker = None
        except Exception as e:
            logger.warning(f"Page {page.number} treated as content, unexpected decoder error: {e}")
            marker = None

        if marker is not None:
            logger.debug(f"Marker on page {page.number}: {marker.payload!r}")

        self._markers[page.index] = marker
        return marker

    def __iter__(self) -> Iterator[SegmentedDocument]:
        current: List[Page] = []
        opening_marker: Optional[Marker] = None
        sequence = 0

        for page in self.pages:
            marker = self.marker_for(page)

            if marker is None:
                current.append(page)
                continue

            if current:
                yield SegmentedDocument(self.batch_key, sequence, tuple(current), opening_marker)
                sequence += 1

            opening_marker = marker
            current = [page] if self.policy is MarkerPolicy.KEEP else []

        if current:
            yield SegmentedDocument(self.batch_key, sequence, tuple(current), opening_marker)

    def documents(self) -> List[SegmentedDocument]:
        """Materialise all documents."""
        return list(self)

    @property
    def markers(self) -> List[Marker]:
        """Markers found so far, in page order."""
        return [m for _, m in sorted(self._markers.items()) if m is not None]


class DocumentSegmenter:
    """
    Splits batches into documents using separator markers.

    Attributes:
        detector: MarkerDetector used to scan page images
        default_prefix: Marker prefix used when a mandate sets none

    Example:
        >>> segmenter = DocumentSegmenter()
        >>> documents = segmenter.segment("key", pages, MarkerPolicy.KEEP).documents()
    """

    def __init__(
        self,
        detector: Optional[MarkerDetector] = None,
        default_prefix: Optional[str] = None
    ) -> None:
        self.detector = detector or MarkerDetector()
        self.default_prefix = default_prefix or get_config("segmentation.marker_prefix", "DOCSEP")

    def segment(
        self,
        batch_key: str,
        pages: Sequence[Page],
        policy: MarkerPolicy,
        prefix: Optional[str] = None
    ) -> Segmentation:
        """
        Segment the pages of a batch.

        A batch without markers yields one document spanning all pages.
        A batch without pages yields no documents; the caller decides how
        to report that.

        Args:
            batch_key: Identity of the batch.
            pages: Pages in batch order.
            policy: What to do with marker pages.
            prefix: Marker prefix of the mandate.

        Returns:
            Segmentation over the batch.
        """
        if not pages:
            logger.warning(f"Batch {batch_key[:12]} has no pages, nothing to segment")

        return Segmentation(
            batch_key=batch_key,
            pages=pages,
            policy=policy,
            prefix=prefix or self.default_prefix,
            detector=self.detector
        )
