"""
Shared fixtures for the mandate OCR test suite.

OCR and QR decoding are replaced by small fakes; the store is a SQLite
file in the test's temporary directory.
"""

import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
from PIL import Image

from mandate_ocr.input_handler.batch import Page
from mandate_ocr.repository import (
    ConnectionRetry,
    Database,
    Mandate,
    MandateRepository,
)
from mandate_ocr.segmentation.marker import Marker, MarkerPolicy
from mandate_ocr.utils.exceptions import MarkerDecodeError, OCRProcessingError
from mandate_ocr.validation import BankInstitution


# ============================================================================
# Fakes
# ============================================================================

def make_page(index: int, source: Path = Path("batch.pdf")) -> Page:
    """Blank page whose image remembers its index."""
    image = Image.new("L", (32, 32), 255)
    image.info["page"] = index
    return Page(index=index, image=image, source_path=source)


def make_pages(count: int, source: Path = Path("batch.pdf")) -> List[Page]:
    return [make_page(index, source) for index in range(count)]


class FakeDetector:
    """Marker detector answering from a page index table."""

    def __init__(
        self,
        markers: Optional[Dict[int, Dict[str, str]]] = None,
        failing: Iterable[int] = ()
    ) -> None:
        self.markers = markers or {}
        self.failing = set(failing)
        self.calls: List[int] = []

    def detect(self, page, prefix):
        self.calls.append(page.index)
        if page.index in self.failing:
            raise MarkerDecodeError(page.index, "damaged QR code")
        if page.index in self.markers:
            metadata = self.markers[page.index]
            payload = "|".join([prefix] + [f"{k}={v}" for k, v in metadata.items()])
            return Marker(page_index=page.index, payload=payload, metadata=dict(metadata))
        return None


class FakeOCREngine:
    """OCR engine returning canned text per page index."""

    def __init__(
        self,
        texts: Dict[int, str],
        slow: Iterable[int] = (),
        failing: Iterable[int] = (),
        delay: float = 0.5
    ) -> None:
        self.texts = texts
        self.slow = set(slow)
        self.failing = set(failing)
        self.delay = delay
        self.calls: List[int] = []

    def extract_text(self, image, timeout=None):
        index = image.info["page"]
        self.calls.append(index)
        if index in self.failing:
            raise OCRProcessingError(f"page {index}", "engine crashed")
        if index in self.slow:
            time.sleep(self.delay)
        return self.texts.get(index, "")


def no_native_text(page) -> str:
    return ""


def no_sleep(seconds: float) -> None:
    pass


# ============================================================================
# Store fixtures
# ============================================================================

@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(f"sqlite:///{tmp_path / 'store' / 'test.db'}")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def mandate(tmp_path) -> Mandate:
    root = tmp_path / "acme"
    return Mandate(
        mandate_id="acme",
        name="ACME Holding",
        input_dir=root / "input",
        archive_dir=root / "archive",
        diagnostics_dir=root / "diagnostics",
        marker_policy=MarkerPolicy.DROP,
        poll_interval=60,
        retention_days=0,
        pattern_set_version="v1",
    )


@pytest.fixture
def seeded_database(database, mandate) -> Database:
    """Store with one mandate, two vendor expressions and one bank."""
    database.upsert_mandate(mandate)
    database.add_expression("acme", "globex", r"Globex\s+Corporation", priority=10)
    database.add_expression("acme", "initech", r"Initech")
    database.add_bank(BankInstitution("DE", "37040044", "Commerzbank", "COBADEFFXXX"))
    mandate.input_dir.mkdir(parents=True)
    return database


@pytest.fixture
def repository(seeded_database) -> MandateRepository:
    retry = ConnectionRetry(max_attempts=3, delay=0, sleep=no_sleep)
    return MandateRepository(seeded_database, "acme", retry=retry)
