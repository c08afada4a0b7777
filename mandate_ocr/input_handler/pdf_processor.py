"""
PDF Processor Module.

This module handles PDF batch files:
    - Page count check against the batch page limit
    - Rendering every page to an image (marker detection and OCR)
    - Native text extraction of a single page

Uses PyMuPDF for rendering with pdf2image as a fallback renderer, and
pdfplumber for native (embedded) text extraction.

Author: Document Automation Team
"""

import io
from pathlib import Path
from typing import List, Union

import fitz  # PyMuPDF
import pdf2image
import pdfplumber
from PIL import Image

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import CorruptedFileError, NativeExtractionError

# Initialize module logger
logger = get_logger(__name__)


class PDFProcessor:
    """
    Processor for PDF batch files.

    Scanned batches carry no text layer, digital ones do; both are
    rendered so that markers can be decoded and OCR can run when needed.

    Attributes:
        dpi: Resolution for PDF to image conversion
        max_pages: Maximum number of pages rendered per batch

    Example:
        >>> processor = PDFProcessor()
        >>> images = processor.render("batch.pdf")
        >>> text = processor.extract_page_text("batch.pdf", 0)
    """

    def __init__(self, dpi: int = None, max_pages: int = None) -> None:
        self.dpi = dpi or get_config("input.pdf.dpi", 200)
        self.max_pages = max_pages or get_config("input.pdf.max_pages", 500)

        logger.debug(f"PDFProcessor initialized (DPI={self.dpi}, max_pages={self.max_pages})")

    def get_page_count(self, filepath: Union[str, Path]) -> int:
        """
        Count the pages of a PDF without rendering them.

        Raises:
            CorruptedFileError: If neither PyMuPDF nor Poppler can read the file.
        """
        try:
            with fitz.open(filepath) as doc:
                return len(doc)
        except Exception as e:
            logger.debug(f"PyMuPDF could not open {Path(filepath).name}: {e}")

        try:
            return int(pdf2image.pdfinfo_from_path(str(filepath))['Pages'])
        except Exception as e:
            raise CorruptedFileError(str(filepath), str(e))

    def render(self, filepath: Union[str, Path]) -> List[Image.Image]:
        """
        Render every page of a PDF to an RGB image.

        The page limit is checked before anything is rendered.

        Args:
            filepath: Path to the PDF file.

        Returns:
            List of PIL Images in page order.

        Raises:
            CorruptedFileError: If the PDF cannot be read by any renderer
                or has more pages than allowed.
        """
        filepath = Path(filepath)

        page_count = self.get_page_count(filepath)
        if page_count > self.max_pages:
            raise CorruptedFileError(
                str(filepath),
                f"{page_count} pages exceeds the limit of {self.max_pages}"
            )

        logger.info(f"Rendering PDF: {filepath.name} ({page_count} page(s))")

        try:
            images = self._render_with_pymupdf(filepath)
        except CorruptedFileError as primary_error:
            logger.warning(f"PyMuPDF could not render {filepath.name}, trying pdf2image")
            try:
                images = self._render_with_pdf2image(filepath)
            except CorruptedFileError:
                raise primary_error

        logger.info(f"Rendered {len(images)} page(s) from {filepath.name}")
        return images

    def _render_with_pymupdf(self, filepath: Path) -> List[Image.Image]:
        """Render pages with PyMuPDF (faster method)."""
        logger.debug("Using PyMuPDF for PDF rendering")
        images = []

        try:
            with fitz.open(filepath) as doc:
                # Default PDF resolution is 72 DPI
                zoom = self.dpi / 72.0
                matrix = fitz.Matrix(zoom, zoom)

                for page in doc:
                    pix = page.get_pixmap(matrix=matrix)
                    image = Image.open(io.BytesIO(pix.tobytes("png")))
                    images.append(image.convert('RGB') if image.mode != 'RGB' else image)

        except Exception as e:
            logger.error(f"PyMuPDF rendering failed: {e}")
            raise CorruptedFileError(str(filepath), str(e))

        return images

    def _render_with_pdf2image(self, filepath: Path) -> List[Image.Image]:
        """Render pages with pdf2image (Poppler-based)."""
        logger.debug("Using pdf2image for PDF rendering")

        try:
            images = pdf2image.convert_from_path(filepath, dpi=self.dpi, fmt='png')
        except Exception as e:
            logger.error(f"pdf2image rendering failed: {e}")
            raise CorruptedFileError(str(filepath), str(e))

        return [img.convert('RGB') if img.mode != 'RGB' else img for img in images]

    def extract_page_text(self, filepath: Union[str, Path], page_index: int) -> str:
        """
        Extract the embedded text layer of a single page.

        Args:
            filepath: Path to PDF file.
            page_index: 0-based page index.

        Returns:
            Extracted text, empty when the page has no text layer.

        Raises:
            NativeExtractionError: If the page cannot be read.
        """
        try:
            with pdfplumber.open(filepath) as pdf:
                return pdf.pages[page_index].extract_text() or ""
        except Exception as e:
            raise NativeExtractionError(str(filepath), page_index, str(e))
