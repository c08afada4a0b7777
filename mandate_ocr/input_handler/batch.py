"""
Batch and Page Data Classes.

A Batch is one multi-page PDF discovered in a mandate's input directory.
Its pages are rendered once and never modified afterwards; everything
computed from a page (markers, text) lives in separate records.

Author: Document Automation Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Tuple

from PIL import Image


@dataclass(frozen=True)
class Page:
    """
    One rendered page of a batch.

    Attributes:
        index: 0-based position of the page in the batch
        image: Raster image used for marker detection and OCR
        source_path: PDF the page was rendered from
    """
    index: int
    image: Image.Image = field(repr=False, compare=False)
    source_path: Path = field(compare=False)

    @property
    def number(self) -> int:
        """1-based page number for log messages."""
        return self.index + 1


@dataclass(frozen=True)
class Batch:
    """
    One discovered input file for a mandate.

    Attributes:
        mandate_id: Owning mandate
        source_path: Path of the claimed file
        batch_key: SHA-256 of the file content, stable across renames
        discovered_at: When the worker discovered the file
        pages: Rendered pages in document order
    """
    mandate_id: str
    source_path: Path
    batch_key: str
    discovered_at: datetime
    pages: Tuple[Page, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def filename(self) -> str:
        return self.source_path.name

    def __repr__(self) -> str:
        return (
            f"Batch(mandate='{self.mandate_id}', file='{self.filename}', "
            f"pages={self.page_count}, key={self.batch_key[:12]})"
        )
