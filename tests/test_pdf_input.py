"""
Tests for PDF rendering, native text and batch loading on real PDF files.
"""

import fitz
import pytest

from mandate_ocr.input_handler import BatchLoader, PDFProcessor
from mandate_ocr.ocr_engine import parse_tesseract_data
from mandate_ocr.text_extraction import ExtractionMethod, TextExtractor
from mandate_ocr.utils.exceptions import CorruptedFileError
from mandate_ocr.utils.helpers import file_sha256

from conftest import FakeOCREngine


PAGE_TEXTS = [
    "Globex Corporation Rechnung 2024-0815 zahlbar innert 30 Tagen",
    "IBAN DE89 3704 0044 0532 0130 00 Commerzbank Koeln",
]


@pytest.fixture
def batch_pdf(tmp_path):
    path = tmp_path / "scan_0001.pdf"
    doc = fitz.open()
    for text in PAGE_TEXTS:
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 72), text, fontsize=11)
    doc.save(str(path))
    doc.close()
    return path


class TestPDFProcessor:
    """Tests for rendering and native text extraction."""

    def test_render_pages(self, batch_pdf):
        images = PDFProcessor(dpi=50).render(batch_pdf)

        assert len(images) == 2
        assert all(image.mode == "RGB" for image in images)
        assert images[0].width == pytest.approx(595 * 50 / 72, abs=2)

    def test_page_count(self, batch_pdf):
        assert PDFProcessor().get_page_count(batch_pdf) == 2

    def test_page_limit_checked_before_rendering(self, batch_pdf, monkeypatch):
        processor = PDFProcessor(dpi=50, max_pages=1)

        def must_not_render(filepath):
            raise AssertionError("rendered an oversized batch")

        monkeypatch.setattr(processor, "_render_with_pymupdf", must_not_render)

        with pytest.raises(CorruptedFileError, match="exceeds the limit"):
            processor.render(batch_pdf)

    def test_native_page_text(self, batch_pdf):
        text = PDFProcessor().extract_page_text(batch_pdf, 1)
        assert "IBAN" in text
        assert "Commerzbank" in text

    def test_not_a_pdf(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        with pytest.raises(CorruptedFileError):
            PDFProcessor().render(path)


class TestBatchLoader:
    """Tests for loading claimed batch files."""

    def test_load(self, batch_pdf):
        batch = BatchLoader(pdf_processor=PDFProcessor(dpi=50)).load(batch_pdf, "acme")

        assert batch.mandate_id == "acme"
        assert batch.page_count == 2
        assert batch.batch_key == file_sha256(batch_pdf)
        assert [page.index for page in batch.pages] == [0, 1]
        assert all(page.source_path == batch_pdf for page in batch.pages)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        with pytest.raises(CorruptedFileError):
            BatchLoader().load(path, "acme")

    def test_digital_batch_needs_no_ocr(self, batch_pdf):
        batch = BatchLoader(pdf_processor=PDFProcessor(dpi=50)).load(batch_pdf, "acme")
        ocr = FakeOCREngine({})
        extractor = TextExtractor(ocr_engine=ocr, timeout=10, max_workers=1)

        document_text = extractor.extract_pages(batch.pages)

        assert document_text.methods == {0: "native", 1: "native"}
        assert all(page.method is ExtractionMethod.NATIVE for page in document_text.pages)
        assert "Globex" in document_text.text
        assert ocr.calls == []


def test_parse_tesseract_data():
    data = {
        'text': ["", "Corporation", "Globex", "IBAN", "   ", "noise"],
        'left': [0, 120, 10, 10, 50, 5],
        'width': [0, 80, 90, 40, 10, 0],
        'height': [0, 12, 12, 12, 12, 12],
        'conf': [-1, 91, 95, 88, 10, 50],
        'block_num': [1, 1, 1, 1, 1, 1],
        'par_num': [1, 1, 1, 1, 1, 1],
        'line_num': [0, 1, 1, 2, 2, 2],
    }

    lines = parse_tesseract_data(data)

    assert [line.text for line in lines] == ["Globex Corporation", "IBAN"]
    assert lines[0].words[0].confidence == 95.0
