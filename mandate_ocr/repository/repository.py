"""
Mandate Repository Module.

Per-mandate access to the relational store. Reads are served from
TTL caches; every store round-trip goes through the mandate's
ConnectionRetry, so a store outage surfaces as StoreUnavailableError
once the retry bound is exhausted.

Features:
    - Mandate configuration, known expressions and bank table loading
    - Immutable per-cycle snapshots (MandateContext)
    - Insert-only, idempotent result persistence

Author: Document Automation Team
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from config import get_config
from mandate_ocr.utils.logger import get_mandate_logger
from mandate_ocr.utils.exceptions import ConfigurationError, StoreUnavailableError
from mandate_ocr.matching.expressions import KnownExpression, PatternSet
from mandate_ocr.validation.bank_validator import BankInstitution, BankTable
from .cache import CachedValue
from .database import (
    Database,
    banks_table,
    known_expressions_table,
    mandates_table,
    ocr_results_table,
)
from .mandate import Mandate, MandateContext
from .records import OcrResult
from .retry import ConnectionRetry

T = TypeVar('T')


class MandateRepository:
    """
    Store access for one mandate.

    Attributes:
        database: Shared Database
        mandate_id: Owning mandate
        retry: ConnectionRetry holding this mandate's connection state

    Example:
        >>> repo = MandateRepository(db, "acme")
        >>> context = repo.snapshot()
        >>> repo.persist(result)
        True
        >>> repo.persist(result)   # same page range again
        False
    """

    def __init__(
        self,
        database: Database,
        mandate_id: str,
        retry: Optional[ConnectionRetry] = None,
        cache_ttl: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.database = database
        self.mandate_id = mandate_id
        self.retry = retry or ConnectionRetry(stop_event=stop_event)
        ttl = cache_ttl if cache_ttl is not None else get_config("repository.cache_ttl_seconds", 300)

        self._mandate = CachedValue(self._fetch_mandate, ttl, clock)
        self._patterns = CachedValue(self._fetch_pattern_set, ttl, clock)
        self._banks = CachedValue(self._fetch_bank_table, ttl, clock)

        self.logger = get_mandate_logger(__name__, mandate_id)

    # -------------------------------------------------------------------------
    # Store access
    # -------------------------------------------------------------------------

    def _execute(self, name: str, work: Callable[[Connection], T]) -> T:
        """
        Run work inside a transaction with bounded retries.

        Raises:
            StoreUnavailableError: If the retry bound is exhausted.
        """
        def attempt() -> T:
            with self.database.engine.begin() as conn:
                return work(conn)

        outcome = self.retry.run(attempt, f"{self.mandate_id}:{name}")
        if not outcome.success:
            raise StoreUnavailableError(
                name, outcome.attempts, str(outcome.error) if outcome.error else None
            )
        return outcome.value

    def _fetch_mandate(self) -> Mandate:
        def work(conn: Connection) -> Optional[Dict[str, Any]]:
            row = conn.execute(
                select(mandates_table)
                .where(mandates_table.c.mandate_id == self.mandate_id)
            ).mappings().first()
            return dict(row) if row else None

        row = self._execute("load mandate", work)
        if row is None:
            raise ConfigurationError(self.mandate_id, "unknown mandate")
        if not row['active']:
            raise ConfigurationError(self.mandate_id, "mandate is inactive")
        return Mandate.from_row(row)

    def _fetch_pattern_set(self) -> PatternSet:
        version = self.load_mandate().pattern_set_version
        table = known_expressions_table

        def work(conn: Connection) -> List[KnownExpression]:
            rows = conn.execute(
                select(table)
                .where(table.c.mandate_id == self.mandate_id)
                .where(table.c.active.is_(True))
                .order_by(table.c.position, table.c.expression_id)
            ).mappings()
            return [
                KnownExpression(
                    expression_id=row['expression_id'],
                    vendor_id=row['vendor_id'],
                    pattern=row['pattern'],
                    priority=row['priority'],
                    case_sensitive=bool(row['case_sensitive']),
                    order=row['position']
                )
                for row in rows
            ]

        expressions = self._execute("load expressions", work)
        patterns = PatternSet.build(self.mandate_id, expressions, version)
        if patterns.rejected:
            self.logger.warning(
                f"{len(patterns.rejected)} expression(s) rejected: {list(patterns.rejected)}"
            )
        return patterns

    def _fetch_bank_table(self) -> BankTable:
        def work(conn: Connection) -> List[BankInstitution]:
            rows = conn.execute(select(banks_table)).mappings()
            return [
                BankInstitution(
                    country_code=row['country_code'],
                    bank_code=row['bank_code'],
                    name=row['name'],
                    bic=row['bic']
                )
                for row in rows
            ]

        table = BankTable.build(self._execute("load bank table", work))
        self.logger.debug(f"Bank table loaded with {len(table)} entries")
        return table

    # -------------------------------------------------------------------------
    # Public interface
    # -------------------------------------------------------------------------

    def load_mandate(self) -> Mandate:
        """
        Get the mandate configuration.

        Raises:
            ConfigurationError: If the mandate is unknown or inactive.
            StoreUnavailableError: If the store cannot be reached.
        """
        return self._mandate.get()

    def load_pattern_set(self) -> PatternSet:
        """
        Get the compiled known expressions.

        The cached set is replaced when the mandate's pattern_set_version
        no longer matches it, even before the TTL expires.
        """
        patterns = self._patterns.get()
        version = self.load_mandate().pattern_set_version
        if patterns.version != version:
            self.logger.info(
                f"Pattern set version changed ({patterns.version} -> {version}), reloading"
            )
            self._patterns.invalidate()
            patterns = self._patterns.get()
        return patterns

    def load_bank_table(self) -> BankTable:
        return self._banks.get()

    def lookup_bank(self, country_code: str, bank_code: str) -> Optional[BankInstitution]:
        return self.load_bank_table().lookup(country_code, bank_code)

    def snapshot(self) -> MandateContext:
        """Immutable view of configuration, patterns and bank table for one run."""
        mandate = self.load_mandate()
        return MandateContext(
            mandate=mandate,
            patterns=self.load_pattern_set(),
            banks=self.load_bank_table()
        )

    def invalidate(self) -> None:
        """Drop all cached values; the next read goes to the store."""
        self._mandate.invalidate()
        self._patterns.invalidate()
        self._banks.invalidate()
        self.logger.debug("Caches invalidated")

    def persist(self, result: OcrResult) -> bool:
        """
        Insert a result.

        Args:
            result: OcrResult of this mandate.

        Returns:
            True if inserted, False if a result with the same page range
            of the same batch already exists.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        if result.mandate_id != self.mandate_id:
            raise ValueError(
                f"Result of mandate {result.mandate_id} passed to repository of {self.mandate_id}"
            )

        row = result.to_row()

        def work(conn: Connection) -> None:
            conn.execute(insert(ocr_results_table).values(**row))

        try:
            self._execute("persist result", work)
        except IntegrityError:
            self.logger.debug(
                f"Duplicate result skipped: {result.batch_key[:12]} "
                f"pages {result.first_page}-{result.last_page}"
            )
            return False

        self.logger.debug(
            f"Result persisted: {result.source_file} " + ", ".join(result.summary())
        )
        return True

    def results_for_batch(self, batch_key: str) -> List[Dict[str, Any]]:
        """Persisted result rows of one batch, ordered by page range."""
        table = ocr_results_table

        def work(conn: Connection) -> List[Dict[str, Any]]:
            rows = conn.execute(
                select(table)
                .where(table.c.mandate_id == self.mandate_id)
                .where(table.c.batch_key == batch_key)
                .order_by(table.c.first_page, table.c.last_page)
            ).mappings()
            return [dict(row) for row in rows]

        return self._execute("load results", work)
