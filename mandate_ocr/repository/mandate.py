"""
Mandate Configuration Data Classes.

Author: Document Automation Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

from mandate_ocr.matching.expressions import PatternSet
from mandate_ocr.segmentation.marker import MarkerPolicy
from mandate_ocr.utils.exceptions import ConfigurationError
from mandate_ocr.validation.bank_validator import BankTable


@dataclass(frozen=True)
class Mandate:
    """
    Configuration of one tenant.

    Attributes:
        mandate_id: Tenant identifier
        name: Display name
        input_dir: Directory polled for new batches
        archive_dir: Destination of successfully processed batches
        diagnostics_dir: Destination of quarantined batches and error records
        poll_interval: Seconds between polling cycles
        retention_days: Age after which diagnostics artifacts are purged, 0 keeps them
        pattern_set_version: Version of the known-expression set
        marker_policy: What happens to marker pages
        marker_prefix: Payload prefix that identifies a separator QR code
        active: Whether the mandate is processed at all
    """
    mandate_id: str
    input_dir: Path
    archive_dir: Path
    diagnostics_dir: Path
    marker_policy: MarkerPolicy
    name: str = ""
    poll_interval: float = 60.0
    retention_days: int = 30
    pattern_set_version: Optional[str] = None
    marker_prefix: str = "DOCSEP"
    active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Mandate':
        """
        Build a mandate from a mandates table row.

        Raises:
            ConfigurationError: If the marker policy is not a known value.
        """
        try:
            policy = MarkerPolicy(row['marker_policy'])
        except ValueError:
            raise ConfigurationError(
                row['mandate_id'], f"unknown marker policy {row['marker_policy']!r}"
            )

        return cls(
            mandate_id=row['mandate_id'],
            name=row['name'] or row['mandate_id'],
            input_dir=Path(row['input_dir']),
            archive_dir=Path(row['archive_dir']),
            diagnostics_dir=Path(row['diagnostics_dir']),
            poll_interval=float(row['poll_interval_seconds']),
            retention_days=int(row['retention_days'] or 0),
            pattern_set_version=row['pattern_set_version'],
            marker_policy=policy,
            marker_prefix=row['marker_prefix'] or "DOCSEP",
            active=bool(row['active'])
        )

    def to_row(self) -> dict:
        return {
            'mandate_id': self.mandate_id,
            'name': self.name,
            'input_dir': str(self.input_dir),
            'archive_dir': str(self.archive_dir),
            'diagnostics_dir': str(self.diagnostics_dir),
            'poll_interval_seconds': self.poll_interval,
            'retention_days': self.retention_days,
            'pattern_set_version': self.pattern_set_version,
            'marker_policy': self.marker_policy.value,
            'marker_prefix': self.marker_prefix,
            'active': self.active,
        }


@dataclass(frozen=True)
class MandateContext:
    """
    Immutable snapshot a pipeline run works with.

    Taken once per polling cycle; a refresh produces a new context
    instead of changing this one.
    """
    mandate: Mandate
    patterns: PatternSet
    banks: BankTable
    loaded_at: datetime = field(default_factory=datetime.now)

    @property
    def mandate_id(self) -> str:
        return self.mandate.mandate_id
