"""
Bank Validator Module.

Combines structural IBAN validation with a lookup in the bank reference
table loaded by the repository. Outcomes are tri-state:

    VALID_WITH_BANK     checksum ok, bank found in the reference table
    VALID_UNKNOWN_BANK  checksum ok, bank code not in the table
    INVALID             structurally invalid

Author: Document Automation Team
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from mandate_ocr.utils.logger import get_logger
from .iban import IbanValidator

# Initialize module logger
logger = get_logger(__name__)


class BankValidationStatus(str, enum.Enum):
    VALID_WITH_BANK = "valid_with_bank"
    VALID_UNKNOWN_BANK = "valid_unknown_bank"
    INVALID = "invalid"


@dataclass(frozen=True)
class BankInstitution:
    """Row of the bank reference table."""
    country_code: str
    bank_code: str
    name: str
    bic: Optional[str] = None


@dataclass(frozen=True)
class BankTable:
    """
    Immutable bank reference table keyed by (country_code, bank_code).

    A refresh builds a new table; readers never see a partial one.
    """
    entries: Mapping[Tuple[str, str], BankInstitution] = field(default_factory=dict)

    @classmethod
    def build(cls, institutions: Iterable[BankInstitution]) -> 'BankTable':
        entries = {}
        for institution in institutions:
            key = (institution.country_code.upper(), normalize_bank_code(institution.bank_code))
            entries[key] = institution
        return cls(entries=entries)

    def lookup(self, country_code: str, bank_code: str) -> Optional[BankInstitution]:
        if not country_code or not bank_code:
            return None
        return self.entries.get((country_code.upper(), normalize_bank_code(bank_code)))

    def __len__(self) -> int:
        return len(self.entries)


def normalize_bank_code(bank_code: str) -> str:
    """Uppercase, whitespace removed."""
    return "".join(str(bank_code).split()).upper()


@dataclass(frozen=True)
class BankRecord:
    """
    Validated or rejected bank data found in a document.

    Attributes:
        candidate: String as found in the text
        iban: Compact IBAN
        status: Tri-state outcome
        country_code: IBAN country, when recognizable
        bank_code: National bank identifier, for valid IBANs
        bank: Matching reference table entry
        reason: Why the candidate was rejected
    """
    candidate: str
    iban: str
    status: BankValidationStatus
    country_code: Optional[str] = None
    bank_code: Optional[str] = None
    bank: Optional[BankInstitution] = None
    reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is not BankValidationStatus.INVALID

    def to_dict(self) -> Dict[str, Any]:
        return {
            'iban': self.iban,
            'status': self.status.value,
            'country_code': self.country_code,
            'bank_code': self.bank_code,
            'bank_name': self.bank.name if self.bank else None,
            'bic': self.bank.bic if self.bank else None,
            'reason': self.reason,
        }


class BankValidator:
    """
    Validates IBAN candidates and resolves their bank.

    Example:
        >>> validator = BankValidator()
        >>> records = validator.scan(document_text.text, context.banks)
        >>> [r.status.value for r in records]
        ['valid_with_bank']
    """

    def __init__(self, iban_validator: Optional[IbanValidator] = None) -> None:
        self.iban_validator = iban_validator or IbanValidator()

    def validate(self, candidate: str, bank_table: Optional[BankTable] = None) -> BankRecord:
        """
        Validate one candidate. Malformed input yields INVALID, never an error.

        Args:
            candidate: IBAN candidate.
            bank_table: Reference table; None behaves like an empty table.

        Returns:
            BankRecord.
        """
        check = self.iban_validator.validate(candidate)

        if not check.valid:
            return BankRecord(
                candidate=check.candidate,
                iban=check.iban,
                status=BankValidationStatus.INVALID,
                country_code=check.country_code,
                reason=check.reason
            )

        bank_code = self.iban_validator.bank_code(check.iban)
        bank = bank_table.lookup(check.country_code, bank_code) if bank_table else None
        status = BankValidationStatus.VALID_WITH_BANK if bank else BankValidationStatus.VALID_UNKNOWN_BANK

        return BankRecord(
            candidate=check.candidate,
            iban=check.iban,
            status=status,
            country_code=check.country_code,
            bank_code=bank_code,
            bank=bank
        )

    def scan(self, text: str, bank_table: Optional[BankTable] = None) -> List[BankRecord]:
        """
        Find and validate every IBAN candidate in a text.

        Args:
            text: Document text.
            bank_table: Reference table.

        Returns:
            One BankRecord per distinct candidate, in order of appearance.
        """
        records = [
            self.validate(candidate, bank_table)
            for candidate in self.iban_validator.find_candidates(text)
        ]

        if records:
            valid = sum(1 for r in records if r.is_valid)
            logger.debug(f"Bank scan: {len(records)} candidate(s), {valid} valid")

        return records
