"""
Tests for the mandate repository against a SQLite store.
"""

from dataclasses import replace
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from mandate_ocr.repository import (
    ConnectionRetry,
    MandateRepository,
    OcrResult,
    ProcessingStatus,
)
from mandate_ocr.segmentation import MarkerPolicy
from mandate_ocr.utils.exceptions import ConfigurationError, StoreUnavailableError
from mandate_ocr.validation import BankValidator

from conftest import no_sleep


def make_result(first: int, last: int, batch_key: str = "a" * 64, **kwargs) -> OcrResult:
    return OcrResult(
        mandate_id="acme",
        batch_key=batch_key,
        source_file="scan_0001.pdf",
        first_page=first,
        last_page=last,
        status=kwargs.pop("status", ProcessingStatus.COMPLETED),
        **kwargs
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestConfiguration:
    """Tests for mandate, pattern and bank loading."""

    def test_load_mandate(self, repository, mandate):
        loaded = repository.load_mandate()
        assert loaded == mandate
        assert loaded.marker_policy is MarkerPolicy.DROP

    def test_unknown_mandate(self, seeded_database):
        repository = MandateRepository(seeded_database, "nobody")
        with pytest.raises(ConfigurationError):
            repository.load_mandate()

    def test_inactive_mandate(self, seeded_database, mandate):
        seeded_database.upsert_mandate(
            replace(mandate, active=False)
        )
        with pytest.raises(ConfigurationError):
            MandateRepository(seeded_database, "acme").load_mandate()

    def test_list_active_mandates(self, seeded_database, mandate):
        other = replace(mandate, mandate_id="globex", active=False)
        seeded_database.upsert_mandate(other)
        assert seeded_database.list_active_mandates() == ["acme"]

    def test_snapshot(self, repository):
        context = repository.snapshot()

        assert context.mandate_id == "acme"
        assert [c.expression.vendor_id for c in context.patterns] == ["globex", "initech"]
        assert context.patterns.version == "v1"
        assert len(context.banks) == 1

    def test_lookup_bank(self, repository):
        assert repository.lookup_bank("DE", "37040044").bic == "COBADEFFXXX"
        assert repository.lookup_bank("CH", "00762") is None

    def test_cached_until_invalidated(self, repository, seeded_database):
        assert len(repository.load_pattern_set()) == 2

        seeded_database.add_expression("acme", "hooli", "Hooli")
        assert len(repository.load_pattern_set()) == 2

        repository.invalidate()
        assert len(repository.load_pattern_set()) == 3

    def test_pattern_set_version_change_reloads(self, seeded_database):
        clock = FakeClock()
        retry = ConnectionRetry(max_attempts=1, delay=0, sleep=no_sleep)
        repository = MandateRepository(
            seeded_database, "acme", retry=retry, cache_ttl=300, clock=clock
        )

        repository.load_mandate()
        clock.now = 200
        assert len(repository.load_pattern_set()) == 2

        seeded_database.add_expression("acme", "hooli", "Hooli")
        seeded_database.set_pattern_set_version("acme", "v2")

        # Mandate entry expired, pattern entry still fresh
        clock.now = 350
        patterns = repository.load_pattern_set()

        assert patterns.version == "v2"
        assert len(patterns) == 3

    def test_snapshot_is_not_changed_by_refresh(self, repository, seeded_database):
        context = repository.snapshot()
        seeded_database.add_expression("acme", "hooli", "Hooli")
        repository.invalidate()
        repository.snapshot()
        assert len(context.patterns) == 2


class TestPersistence:
    """Tests for insert-only, idempotent result storage."""

    def test_persist_is_idempotent(self, repository):
        result = make_result(0, 2, vendor_id="globex", text="Globex Corporation")

        assert repository.persist(result) is True
        assert repository.persist(result) is False

        rows = repository.results_for_batch("a" * 64)
        assert len(rows) == 1
        assert rows[0]["vendor_id"] == "globex"
        assert rows[0]["status"] == "completed"

    def test_distinct_ranges_are_separate_results(self, repository):
        assert repository.persist(make_result(0, 1))
        assert repository.persist(make_result(2, 4))

        rows = repository.results_for_batch("a" * 64)
        assert [(r["first_page"], r["last_page"]) for r in rows] == [(0, 1), (2, 4)]

    def test_bank_records_stored_as_json(self, repository):
        records = tuple(BankValidator().scan("DE89 3704 0044 0532 0130 00"))
        repository.persist(make_result(0, 0, bank_records=records, failed_pages=(0,)))

        row = repository.results_for_batch("a" * 64)[0]
        assert row["bank_records"][0]["iban"] == "DE89370400440532013000"
        assert row["failed_pages"] == [0]

    def test_batch_failure_record(self, repository):
        failure = OcrResult.batch_failure("acme", "b" * 64, "broken.pdf", "CorruptedFileError")
        assert repository.persist(failure)
        assert not repository.persist(failure)

        row = repository.results_for_batch("b" * 64)[0]
        assert (row["first_page"], row["last_page"]) == (-1, -1)
        assert row["status"] == "failed"

    def test_result_of_other_mandate_rejected(self, repository):
        result = make_result(0, 0)
        other = replace(result, mandate_id="globex")
        with pytest.raises(ValueError):
            repository.persist(other)


class DownEngine:
    def __init__(self) -> None:
        self.attempts = 0

    def begin(self):
        self.attempts += 1
        raise OperationalError("connect", {}, Exception("connection refused"))


def test_store_outage_raises_after_bound():
    engine = DownEngine()
    database = SimpleNamespace(engine=engine)
    retry = ConnectionRetry(max_attempts=3, delay=0, sleep=no_sleep)
    repository = MandateRepository(database, "acme", retry=retry)

    with pytest.raises(StoreUnavailableError) as excinfo:
        repository.snapshot()

    assert excinfo.value.attempts == 3
    assert engine.attempts == 3
