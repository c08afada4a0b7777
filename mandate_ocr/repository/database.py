"""
Database Module.

This module owns the SQLAlchemy engine and the relational schema of the
service. Mandate configuration, known expressions and the bank reference
table are maintained externally; OCR results are written by the pipeline.

Tables:
    - mandates: one row per tenant
    - known_expressions: vendor-identifying regular expressions per mandate
    - banks: bank reference table keyed by country and national bank code
    - ocr_results: insert-only per-document results

Author: Document Automation Team
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine, make_url

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.helpers import ensure_directory
from mandate_ocr.validation.bank_validator import BankInstitution
from .mandate import Mandate

# Initialize module logger
logger = get_logger(__name__)

metadata = MetaData()

mandates_table = Table(
    "mandates",
    metadata,
    Column("mandate_id", String(64), primary_key=True),
    Column("name", String(255)),
    Column("input_dir", String(1024), nullable=False),
    Column("archive_dir", String(1024), nullable=False),
    Column("diagnostics_dir", String(1024), nullable=False),
    Column("poll_interval_seconds", Float, nullable=False, default=60.0),
    Column("retention_days", Integer, nullable=False, default=30),
    Column("pattern_set_version", String(64)),
    Column("marker_policy", String(8), nullable=False),
    Column("marker_prefix", String(32), nullable=False, default="DOCSEP"),
    Column("active", Boolean, nullable=False, default=True),
    Column("updated_at", DateTime, default=datetime.now, onupdate=datetime.now),
)

known_expressions_table = Table(
    "known_expressions",
    metadata,
    Column("expression_id", Integer, primary_key=True, autoincrement=True),
    Column("mandate_id", String(64), ForeignKey("mandates.mandate_id"), nullable=False),
    Column("vendor_id", String(64), nullable=False),
    Column("pattern", Text, nullable=False),
    Column("priority", Integer, nullable=False, default=0),
    Column("case_sensitive", Boolean, nullable=False, default=False),
    Column("position", Integer, nullable=False, default=0),
    Column("active", Boolean, nullable=False, default=True),
    Index("idx_known_expressions_mandate", "mandate_id"),
)

banks_table = Table(
    "banks",
    metadata,
    Column("country_code", String(2), primary_key=True),
    Column("bank_code", String(16), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("bic", String(11)),
)

ocr_results_table = Table(
    "ocr_results",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("mandate_id", String(64), ForeignKey("mandates.mandate_id"), nullable=False),
    Column("batch_key", String(64), nullable=False),
    Column("source_file", String(1024), nullable=False),
    Column("first_page", Integer, nullable=False),
    Column("last_page", Integer, nullable=False),
    Column("document_sequence", Integer, nullable=False, default=0),
    Column("status", String(16), nullable=False),
    Column("vendor_id", String(64)),
    Column("expression_id", Integer),
    Column("text", Text),
    Column("bank_records", JSON),
    Column("extraction_methods", JSON),
    Column("failed_pages", JSON),
    Column("routing", JSON),
    Column("error", Text),
    Column("created_at", DateTime, nullable=False, default=datetime.now),
    UniqueConstraint(
        "mandate_id", "batch_key", "first_page", "last_page",
        name="uq_ocr_results_document"
    ),
    Index("idx_ocr_results_batch", "mandate_id", "batch_key"),
)


class Database:
    """
    Engine and schema holder shared by all mandate repositories.

    The engine's connection pool is thread-safe; each repository opens
    short-lived connections from it.

    Attributes:
        url: Database URL
        engine: SQLAlchemy engine

    Example:
        >>> db = Database("sqlite:///data/mandate_ocr.db")
        >>> db.create_schema()
        >>> db.list_active_mandates()
        ['acme']
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None) -> None:
        """
        Initialize the database.

        Args:
            url: SQLAlchemy URL. If None, uses configuration.
            engine: Pre-built engine, mainly for tests.
        """
        if engine is not None:
            self.engine = engine
            self.url = str(engine.url)
        else:
            self.url = url or get_config("database.url", "sqlite:///data/mandate_ocr.db")
            self.engine = self._create_engine(self.url)

        logger.info(f"Database initialized ({self.engine.url.render_as_string(hide_password=True)})")

    @staticmethod
    def _create_engine(url: str) -> Engine:
        parsed = make_url(url)
        timeout = get_config("database.connect_timeout_seconds", 10)
        echo = get_config("database.echo", False)

        if parsed.get_backend_name() == "sqlite":
            if parsed.database and parsed.database != ":memory:":
                ensure_directory(Path(parsed.database).parent)
            connect_args = {"timeout": timeout, "check_same_thread": False}
        else:
            connect_args = {"connect_timeout": timeout}

        return create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)

    def create_schema(self) -> None:
        """Create missing tables. Existing tables are left untouched."""
        metadata.create_all(self.engine)
        logger.debug("Database tables created/verified")

    def dispose(self) -> None:
        self.engine.dispose()

    def list_active_mandates(self) -> List[str]:
        """Identifiers of all active mandates, sorted."""
        query = (
            select(mandates_table.c.mandate_id)
            .where(mandates_table.c.active.is_(True))
            .order_by(mandates_table.c.mandate_id)
        )
        with self.engine.connect() as conn:
            return [row.mandate_id for row in conn.execute(query)]

    # -------------------------------------------------------------------------
    # Seeding helpers for administration and tests
    # -------------------------------------------------------------------------

    def upsert_mandate(self, mandate: Mandate) -> None:
        """Insert or replace a mandate's configuration row."""
        values = mandate.to_row()
        with self.engine.begin() as conn:
            exists = conn.execute(
                select(mandates_table.c.mandate_id)
                .where(mandates_table.c.mandate_id == mandate.mandate_id)
            ).first()

            if exists:
                values.pop('mandate_id')
                conn.execute(
                    update(mandates_table)
                    .where(mandates_table.c.mandate_id == mandate.mandate_id)
                    .values(**values)
                )
            else:
                conn.execute(insert(mandates_table).values(**values))

        logger.info(f"Mandate {mandate.mandate_id} saved")

    def set_pattern_set_version(self, mandate_id: str, version: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(mandates_table)
                .where(mandates_table.c.mandate_id == mandate_id)
                .values(pattern_set_version=version)
            )

    def add_expression(
        self,
        mandate_id: str,
        vendor_id: str,
        pattern: str,
        priority: int = 0,
        case_sensitive: bool = False,
        position: Optional[int] = None
    ) -> int:
        """
        Add a known expression to a mandate.

        Args:
            mandate_id: Owning mandate.
            vendor_id: Vendor identified by the expression.
            pattern: Regular expression source.
            priority: Higher wins when several expressions match.
            case_sensitive: Match case-sensitively.
            position: Insertion order; appended at the end if None.

        Returns:
            The new expression_id.
        """
        with self.engine.begin() as conn:
            if position is None:
                current = conn.execute(
                    select(func.max(known_expressions_table.c.position))
                    .where(known_expressions_table.c.mandate_id == mandate_id)
                ).scalar()
                position = 0 if current is None else current + 1

            result = conn.execute(
                insert(known_expressions_table).values(
                    mandate_id=mandate_id,
                    vendor_id=vendor_id,
                    pattern=pattern,
                    priority=priority,
                    case_sensitive=case_sensitive,
                    position=position,
                    active=True
                )
            )
            return result.inserted_primary_key[0]

    def add_bank(self, institution: BankInstitution) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                insert(banks_table).values(
                    country_code=institution.country_code.upper(),
                    bank_code=institution.bank_code,
                    name=institution.name,
                    bic=institution.bic
                )
            )
