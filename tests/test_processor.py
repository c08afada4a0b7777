"""
Tests for the batch processing chain with fake capabilities.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from mandate_ocr.input_handler import Batch
from mandate_ocr.pipeline import BatchProcessor
from mandate_ocr.repository import ProcessingStatus
from mandate_ocr.segmentation import DocumentSegmenter, MarkerPolicy
from mandate_ocr.text_extraction import TextExtractor
from mandate_ocr.utils.exceptions import EmptyBatchError
from mandate_ocr.validation import BankValidationStatus

from conftest import FakeDetector, FakeOCREngine, make_pages, no_native_text


PAGE_TEXTS = {
    0: "Globex Corporation\nRechnung 2024-0815",
    1: "IBAN DE89 3704 0044 0532 0130 00",
    2: "",  # separator page
    3: "Initech GmbH Gutschrift",
    4: "Konto CH93 0076 2011 6238 5295 7",
}


class FakeLoader:
    """Loader returning a prepared batch instead of rendering a PDF."""

    def __init__(self, page_count: int, batch_key: str = "f" * 64) -> None:
        self.page_count = page_count
        self.batch_key = batch_key

    def load(self, filepath, mandate_id):
        path = Path(filepath)
        return Batch(
            mandate_id=mandate_id,
            source_path=path,
            batch_key=self.batch_key,
            discovered_at=datetime.now(),
            pages=tuple(make_pages(self.page_count, path)),
        )


def make_processor(page_count=5, markers=None, ocr=None) -> BatchProcessor:
    return BatchProcessor(
        loader=FakeLoader(page_count),
        segmenter=DocumentSegmenter(detector=FakeDetector(markers={2: {"doctype": "credit"}}
                                                          if markers is None else markers)),
        extractor=TextExtractor(
            ocr_engine=ocr or FakeOCREngine(PAGE_TEXTS),
            native_extractor=no_native_text,
            timeout=5,
            max_workers=1
        ),
    )


class TestBatchProcessor:
    """Tests for the end-to-end processing of one batch."""

    def test_two_documents(self, repository):
        context = repository.snapshot()
        report = make_processor().process(Path("scan_0001.pdf"), context, repository)

        assert report.document_count == 2
        assert report.persisted == 2
        first, second = report.results

        assert (first.first_page, first.last_page) == (0, 1)
        assert first.vendor_id == "globex"
        assert first.status is ProcessingStatus.COMPLETED
        assert first.bank_records[0].status is BankValidationStatus.VALID_WITH_BANK

        assert (second.first_page, second.last_page) == (3, 4)
        assert second.vendor_id == "initech"
        assert second.routing == {"doctype": "credit"}
        assert second.bank_records[0].status is BankValidationStatus.VALID_UNKNOWN_BANK

    def test_reprocessing_is_idempotent(self, repository):
        context = repository.snapshot()
        processor = make_processor()

        processor.process(Path("scan_0001.pdf"), context, repository)
        report = processor.process(Path("scan_0001.pdf"), context, repository)

        assert report.persisted == 0
        assert report.duplicates == 2
        assert len(repository.results_for_batch("f" * 64)) == 2

    def test_partial_document_is_still_matched(self, repository):
        context = repository.snapshot()
        ocr = FakeOCREngine(PAGE_TEXTS, failing={1})
        report = make_processor(ocr=ocr).process(Path("scan.pdf"), context, repository)

        first = report.results[0]
        assert first.status is ProcessingStatus.PARTIAL
        assert first.failed_pages == (1,)
        assert first.vendor_id == "globex"
        assert "page 2" in first.error

    def test_unmatched_document(self, repository):
        context = repository.snapshot()
        ocr = FakeOCREngine({0: "Unknown Vendor AG"})
        report = make_processor(page_count=1, markers={}, ocr=ocr).process(
            Path("scan.pdf"), context, repository
        )
        assert report.results[0].vendor_id is None
        assert report.results[0].bank_records == ()

    def test_keep_policy_keeps_marker_page(self, repository):
        context = repository.snapshot()
        context = replace(context, mandate=replace(context.mandate, marker_policy=MarkerPolicy.KEEP))

        report = make_processor().process(Path("scan.pdf"), context, repository)

        assert [(r.first_page, r.last_page) for r in report.results] == [(0, 1), (2, 4)]

    def test_empty_batch(self, repository):
        context = repository.snapshot()
        with pytest.raises(EmptyBatchError):
            make_processor(page_count=0).process(Path("empty.pdf"), context, repository)

    def test_batch_of_only_markers(self, repository):
        context = repository.snapshot()
        processor = make_processor(page_count=2, markers={0: {}, 1: {}})
        with pytest.raises(EmptyBatchError):
            processor.process(Path("separators.pdf"), context, repository)

    def test_ocr_timeout_on_weak_native_page_is_reported(self, repository):
        context = repository.snapshot()
        processor = BatchProcessor(
            loader=FakeLoader(2),
            segmenter=DocumentSegmenter(detector=FakeDetector()),
            extractor=TextExtractor(
                ocr_engine=FakeOCREngine(PAGE_TEXTS, slow={1}, delay=1.0),
                native_extractor=lambda page: "x\x00" if page.index == 1 else "",
                timeout=0.2,
                max_workers=1
            ),
        )

        result = processor.process(Path("scan.pdf"), context, repository).results[0]

        assert result.status is ProcessingStatus.PARTIAL
        assert result.failed_pages == (1,)
        assert "page 2" in result.error
        assert "timeout" in result.error
        assert result.vendor_id == "globex"
