"""
Validation Module for the Mandate OCR Service.

This module provides bank data validation:
    - IBAN structure, length and checksum validation
    - IBAN candidate search in free text
    - Bank reference table lookup

Author: Document Automation Team
"""

from .iban import IbanCheck, IbanValidator, format_iban, mod97
from .bank_validator import (
    BankInstitution,
    BankRecord,
    BankTable,
    BankValidationStatus,
    BankValidator,
)

__all__ = [
    'IbanCheck',
    'IbanValidator',
    'format_iban',
    'mod97',
    'BankInstitution',
    'BankRecord',
    'BankTable',
    'BankValidationStatus',
    'BankValidator',
]
