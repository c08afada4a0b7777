"""
Batch Processor Module.

Drives one claimed batch file through the processing chain:

    load -> segment -> extract -> match -> validate -> persist

Documents are processed one after another as the segmentation yields
them, so only one document's extracted text is held at a time.

Author: Document Automation Team
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from mandate_ocr.utils.logger import get_mandate_logger
from mandate_ocr.utils.exceptions import EmptyBatchError
from mandate_ocr.input_handler import Batch, BatchLoader
from mandate_ocr.segmentation import DocumentSegmenter, SegmentedDocument
from mandate_ocr.text_extraction import DocumentText, TextExtractor
from mandate_ocr.matching import VendorMatcher
from mandate_ocr.validation import BankValidator
from mandate_ocr.repository import (
    MandateContext,
    MandateRepository,
    OcrResult,
    ProcessingStatus,
)


@dataclass
class BatchReport:
    """
    Summary of one processed batch.

    Attributes:
        batch_key: Content hash of the batch
        source_file: Batch file name
        page_count: Rendered pages
        results: One OcrResult per document
        persisted: Newly inserted results
        duplicates: Results that already existed
    """
    batch_key: str
    source_file: str
    page_count: int
    results: List[OcrResult] = field(default_factory=list)
    persisted: int = 0
    duplicates: int = 0

    @property
    def document_count(self) -> int:
        return len(self.results)

    def __str__(self) -> str:
        return (
            f"{self.source_file}: {self.page_count} page(s), "
            f"{self.document_count} document(s), {self.persisted} persisted, "
            f"{self.duplicates} duplicate(s)"
        )


def document_status(document_text: DocumentText) -> ProcessingStatus:
    """Status from page outcomes: all failed, some failed, none failed."""
    if document_text.all_failed:
        return ProcessingStatus.FAILED
    if document_text.failed_pages:
        return ProcessingStatus.PARTIAL
    return ProcessingStatus.COMPLETED


class BatchProcessor:
    """
    Processes claimed batches for one mandate at a time.

    Components are created with configuration defaults unless passed in.

    Example:
        >>> processor = BatchProcessor()
        >>> report = processor.process(claimed_path, context, repository)
        >>> print(report)
        scan_0001.pdf: 5 page(s), 2 document(s), 2 persisted, 0 duplicate(s)
    """

    def __init__(
        self,
        loader: Optional[BatchLoader] = None,
        segmenter: Optional[DocumentSegmenter] = None,
        extractor: Optional[TextExtractor] = None,
        matcher: Optional[VendorMatcher] = None,
        bank_validator: Optional[BankValidator] = None
    ) -> None:
        self.loader = loader or BatchLoader()
        self.segmenter = segmenter or DocumentSegmenter()
        self.extractor = extractor or TextExtractor()
        self.matcher = matcher or VendorMatcher()
        self.bank_validator = bank_validator or BankValidator()

    def process(
        self,
        filepath: Union[str, Path],
        context: MandateContext,
        repository: MandateRepository
    ) -> BatchReport:
        """
        Process a claimed batch file.

        Args:
            filepath: Claimed batch file.
            context: Mandate snapshot for this cycle.
            repository: Repository results are persisted to.

        Returns:
            BatchReport.

        Raises:
            EmptyBatchError: If the batch yields no documents.
            CorruptedFileError: If the file cannot be rendered.
            StoreUnavailableError: If results cannot be persisted.
        """
        log = get_mandate_logger(__name__, context.mandate_id)
        mandate = context.mandate

        batch = self.loader.load(filepath, mandate.mandate_id)
        if batch.page_count == 0:
            raise EmptyBatchError(str(filepath))

        report = BatchReport(batch.batch_key, batch.filename, batch.page_count)

        segmentation = self.segmenter.segment(
            batch.batch_key, batch.pages, mandate.marker_policy, mandate.marker_prefix
        )

        for document in segmentation:
            result = self.process_document(batch, document, context)
            report.results.append(result)

            if repository.persist(result):
                report.persisted += 1
            else:
                report.duplicates += 1

        if not report.results:
            # Only marker pages, all dropped
            raise EmptyBatchError(str(filepath))

        log.info(f"Batch processed: {report}")
        return report

    def process_document(
        self,
        batch: Batch,
        document: SegmentedDocument,
        context: MandateContext
    ) -> OcrResult:
        """
        Build the OcrResult of one segmented document.

        Matching and bank validation run on whatever text was recovered,
        including the text of a partially extracted document.
        """
        document_text = self.extractor.extract_document(document)
        text = document_text.text

        match = self.matcher.match(text, context.patterns)
        bank_records = self.bank_validator.scan(text, context.banks)
        status = document_status(document_text)

        error = None
        if document_text.failed_pages:
            error = "; ".join(
                f"page {page.index + 1}: {page.error}"
                for page in document_text.pages if page.failed
            )

        return OcrResult(
            mandate_id=context.mandate_id,
            batch_key=batch.batch_key,
            source_file=batch.filename,
            first_page=document.first_page,
            last_page=document.last_page,
            status=status,
            document_sequence=document.sequence,
            vendor_id=match.vendor_id,
            expression_id=match.expression_id,
            text=text,
            bank_records=tuple(bank_records),
            extraction_methods=document_text.methods,
            failed_pages=tuple(document_text.failed_pages),
            routing=document.routing,
            error=error
        )
