"""
Tests for marker-based document segmentation.
"""

from pathlib import Path

import cv2
import pytest
from PIL import Image

from mandate_ocr.input_handler.batch import Page
from mandate_ocr.segmentation import (
    DocumentSegmenter,
    MarkerDecoder,
    MarkerDetector,
    MarkerPolicy,
    SegmentedDocument,
    parse_marker_payload,
)
from mandate_ocr.utils.exceptions import MarkerDecodeError

from conftest import FakeDetector, make_page, make_pages


def ranges(documents):
    return [(d.first_page, d.last_page) for d in documents]


def segment(pages, detector, policy=MarkerPolicy.DROP):
    return DocumentSegmenter(detector=detector).segment("batch-key", pages, policy, "DOCSEP")


class TestSegmentation:
    """Tests for document boundaries."""

    def test_no_markers_one_document(self):
        documents = segment(make_pages(4), FakeDetector()).documents()
        assert ranges(documents) == [(0, 3)]
        assert documents[0].marker is None

    def test_zero_pages_zero_documents(self):
        assert segment([], FakeDetector()).documents() == []

    def test_marker_in_the_middle_dropped(self):
        detector = FakeDetector(markers={1: {"doctype": "invoice"}})
        documents = segment(make_pages(3), detector, MarkerPolicy.DROP).documents()

        assert ranges(documents) == [(0, 0), (2, 2)]
        assert documents[0].routing == {}
        assert documents[1].routing == {"doctype": "invoice"}

    def test_marker_in_the_middle_kept(self):
        detector = FakeDetector(markers={1: {}})
        documents = segment(make_pages(3), detector, MarkerPolicy.KEEP).documents()
        assert ranges(documents) == [(0, 0), (1, 2)]

    @pytest.mark.parametrize("policy,expected", [
        (MarkerPolicy.KEEP, [(0, 1), (2, 4), (5, 6)]),
        (MarkerPolicy.DROP, [(0, 1), (3, 4), (6, 6)]),
    ])
    def test_markers_partition_the_batch(self, policy, expected):
        detector = FakeDetector(markers={2: {}, 5: {}})
        documents = segment(make_pages(7), detector, policy).documents()

        assert ranges(documents) == expected
        assert [d.sequence for d in documents] == list(range(len(expected)))

        covered = [p.index for d in documents for p in d.pages]
        assert covered == sorted(set(covered))
        if policy is MarkerPolicy.KEEP:
            assert covered == list(range(7))

    def test_leading_and_trailing_markers(self):
        detector = FakeDetector(markers={0: {"box": "1"}, 3: {"box": "2"}})
        documents = segment(make_pages(4), detector, MarkerPolicy.DROP).documents()

        assert ranges(documents) == [(1, 2)]
        assert documents[0].routing == {"box": "1"}

    def test_consecutive_markers_produce_no_empty_document(self):
        detector = FakeDetector(markers={1: {}, 2: {}})
        documents = segment(make_pages(4), detector, MarkerPolicy.DROP).documents()
        assert ranges(documents) == [(0, 0), (3, 3)]

    def test_only_marker_pages_dropped(self):
        detector = FakeDetector(markers={0: {}, 1: {}})
        assert segment(make_pages(2), detector, MarkerPolicy.DROP).documents() == []

    def test_decode_failure_page_is_content(self):
        detector = FakeDetector(markers={3: {}}, failing={1})
        documents = segment(make_pages(5), detector).documents()
        assert ranges(documents) == [(0, 2), (4, 4)]

    def test_restartable_without_decoding_again(self):
        detector = FakeDetector(markers={2: {}})
        segmentation = segment(make_pages(5), detector)

        first = ranges(segmentation)
        second = ranges(segmentation)

        assert first == second
        assert detector.calls == [0, 1, 2, 3, 4]

    def test_lazy(self):
        detector = FakeDetector(markers={1: {}})
        segmentation = segment(make_pages(6), detector)

        first = next(iter(segmentation))

        assert (first.first_page, first.last_page) == (0, 0)
        assert detector.calls == [0, 1]

    def test_markers_property(self):
        detector = FakeDetector(markers={1: {"a": "b"}})
        segmentation = segment(make_pages(3), detector)
        segmentation.documents()
        assert [m.page_index for m in segmentation.markers] == [1]


class TestSegmentedDocument:
    """Tests for document invariants."""

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            SegmentedDocument("key", 0, ())

    def test_rejects_gaps(self):
        with pytest.raises(ValueError):
            SegmentedDocument("key", 0, (make_page(0), make_page(2)))


class TestMarkerPayload:
    """Tests for separator payload parsing."""

    def test_plain_prefix(self):
        assert parse_marker_payload("DOCSEP", "DOCSEP") == {}

    def test_routing_metadata(self):
        payload = "docsep|DocType=invoice|cost_center = 4711|junk"
        assert parse_marker_payload(payload, "DOCSEP") == {
            "doctype": "invoice",
            "cost_center": "4711",
        }

    def test_other_qr_code(self):
        assert parse_marker_payload("SPC\n0200\n1\nCH9300762011623852957", "DOCSEP") is None
        assert parse_marker_payload("DOCSEPARATOR", "DOCSEP") is None


class FakeDecoder:
    def __init__(self, payloads):
        self.payloads = payloads

    def decode(self, image, page_index=-1):
        return self.payloads


class TestMarkerDetector:
    """Tests for turning QR payloads into markers."""

    def test_first_marker_payload_wins(self):
        detector = MarkerDetector(FakeDecoder(("SPC\n0200", "DOCSEP|doctype=contract")))
        marker = detector.detect(make_page(4), "DOCSEP")
        assert marker.page_index == 4
        assert marker.metadata == {"doctype": "contract"}

    def test_payment_slip_is_not_a_marker(self):
        detector = MarkerDetector(FakeDecoder(("SPC\n0200",)))
        assert detector.detect(make_page(0), "DOCSEP") is None

    def test_blank_page_has_no_qr_code(self):
        decoder = MarkerDecoder(downscale_width=800)
        assert decoder.decode(Image.new("RGB", (200, 200), "white"), 0) == ()

    def test_unreadable_image_raises_decode_error(self):
        with pytest.raises(MarkerDecodeError):
            MarkerDecoder().decode(object(), 3)


def qr_page(index: int, payload: str) -> Page:
    """White A4-ish page carrying one printed QR code."""
    code = cv2.QRCodeEncoder.create().encode(payload)
    code = cv2.resize(code, None, fx=8, fy=8, interpolation=cv2.INTER_NEAREST)
    code = cv2.copyMakeBorder(code, 40, 40, 40, 40, cv2.BORDER_CONSTANT, value=255)

    image = Image.new("RGB", (850, 1100), "white")
    image.paste(Image.fromarray(code).convert("RGB"), (100, 100))
    return Page(index=index, image=image, source_path=Path("batch.pdf"))


class TestPrintedSeparatorSheet:
    """Decoding of real QR codes rendered with OpenCV."""

    def test_decoder_reads_marker_payload(self):
        page = qr_page(0, "DOCSEP|doctype=invoice")
        assert MarkerDecoder().decode(page.image, 0) == ("DOCSEP|doctype=invoice",)

    def test_detector_returns_routing(self):
        marker = MarkerDetector().detect(qr_page(2, "DOCSEP|doctype=invoice"), "DOCSEP")
        assert marker.page_index == 2
        assert marker.metadata == {"doctype": "invoice"}

    def test_foreign_qr_code_is_content(self):
        assert MarkerDetector().detect(qr_page(0, "https://example.org/pay"), "DOCSEP") is None

    def test_batch_split_at_printed_sheet(self):
        pages = [make_page(0), qr_page(1, "DOCSEP|doctype=credit"), make_page(2), make_page(3)]

        documents = segment(pages, MarkerDetector(), MarkerPolicy.DROP).documents()

        assert ranges(documents) == [(0, 0), (2, 3)]
        assert documents[1].routing == {"doctype": "credit"}
