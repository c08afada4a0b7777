"""
OCR Result Record.

This module defines the record persisted once per segmented document,
plus the batch-level failure record written when a batch cannot be
processed at all.

Author: Document Automation Team
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from mandate_ocr.validation.bank_validator import BankRecord

# Page range used by records that describe a whole failed batch
BATCH_LEVEL_RANGE: Tuple[int, int] = (-1, -1)


class ProcessingStatus(str, enum.Enum):
    COMPLETED = "completed"  # every page produced text
    PARTIAL = "partial"      # some pages failed extraction
    FAILED = "failed"        # no usable text or the batch failed


@dataclass(frozen=True)
class OcrResult:
    """
    Final per-document record.

    Records are insert-only. Reprocessing a batch adds new records;
    a record with the same (mandate, batch, page range) is never
    stored twice.

    Attributes:
        mandate_id: Owning mandate
        batch_key: Content hash of the source batch
        source_file: Batch file name
        first_page: First page index (inclusive), -1 for batch-level records
        last_page: Last page index (inclusive), -1 for batch-level records
        status: Processing status
        document_sequence: Position of the document in the batch
        vendor_id: Matched vendor, None when unmatched
        expression_id: Matching known expression
        text: Extracted document text
        bank_records: Validated or rejected IBANs found in the text
        extraction_methods: Page index to method name
        failed_pages: Pages whose extraction failed
        routing: Marker routing metadata
        error: Failure description
        created_at: Record creation time
    """
    mandate_id: str
    batch_key: str
    source_file: str
    first_page: int
    last_page: int
    status: ProcessingStatus
    document_sequence: int = 0
    vendor_id: Optional[str] = None
    expression_id: Optional[int] = None
    text: str = ""
    bank_records: Tuple[BankRecord, ...] = ()
    extraction_methods: Dict[int, str] = field(default_factory=dict)
    failed_pages: Tuple[int, ...] = ()
    routing: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def batch_failure(
        cls,
        mandate_id: str,
        batch_key: str,
        source_file: str,
        error: str
    ) -> 'OcrResult':
        """Record for a batch that failed before producing documents."""
        first, last = BATCH_LEVEL_RANGE
        return cls(
            mandate_id=mandate_id,
            batch_key=batch_key,
            source_file=source_file,
            first_page=first,
            last_page=last,
            status=ProcessingStatus.FAILED,
            error=error
        )

    @property
    def page_range(self) -> Tuple[int, int]:
        return self.first_page, self.last_page

    def to_row(self) -> Dict[str, Any]:
        """Column values for the ocr_results table."""
        return {
            'mandate_id': self.mandate_id,
            'batch_key': self.batch_key,
            'source_file': self.source_file,
            'first_page': self.first_page,
            'last_page': self.last_page,
            'document_sequence': self.document_sequence,
            'status': self.status.value,
            'vendor_id': self.vendor_id,
            'expression_id': self.expression_id,
            'text': self.text,
            'bank_records': [record.to_dict() for record in self.bank_records],
            'extraction_methods': {str(k): v for k, v in self.extraction_methods.items()},
            'failed_pages': list(self.failed_pages),
            'routing': dict(self.routing),
            'error': self.error,
            'created_at': self.created_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for diagnostics output."""
        row = self.to_row()
        row['created_at'] = self.created_at.isoformat()
        row['text_length'] = len(row.pop('text'))
        return row

    def summary(self) -> List[str]:
        return [
            f"pages {self.first_page + 1}-{self.last_page + 1}",
            f"status={self.status.value}",
            f"vendor={self.vendor_id or 'unmatched'}",
            f"ibans={len(self.bank_records)}",
        ]
