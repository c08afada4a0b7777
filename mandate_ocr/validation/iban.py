"""
IBAN Validation Module.

Pure structural validation of International Bank Account Numbers
(ISO 13616): character set, country code, country-specific length and
the mod-97 check digits. No I/O.

Author: Document Automation Team
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from mandate_ocr.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

# Total IBAN length per country (IBAN registry)
IBAN_LENGTHS: Dict[str, int] = {
    "AD": 24, "AE": 23, "AL": 28, "AT": 20, "AZ": 28, "BA": 20, "BE": 16,
    "BG": 22, "BH": 22, "BR": 29, "BY": 28, "CH": 21, "CR": 22, "CY": 28,
    "CZ": 24, "DE": 22, "DK": 18, "DO": 28, "EE": 20, "EG": 29, "ES": 24,
    "FI": 18, "FO": 18, "FR": 27, "GB": 22, "GE": 22, "GI": 23, "GL": 18,
    "GR": 27, "GT": 28, "HR": 21, "HU": 28, "IE": 22, "IL": 23, "IQ": 23,
    "IS": 26, "IT": 27, "JO": 30, "KW": 30, "KZ": 20, "LB": 28, "LC": 32,
    "LI": 21, "LT": 20, "LU": 20, "LV": 21, "LY": 25, "MC": 27, "MD": 24,
    "ME": 22, "MK": 19, "MR": 27, "MT": 31, "MU": 30, "NL": 18, "NO": 15,
    "PK": 24, "PL": 28, "PS": 29, "PT": 25, "QA": 29, "RO": 24, "RS": 22,
    "SA": 24, "SC": 31, "SE": 24, "SI": 19, "SK": 24, "SM": 27, "ST": 25,
    "SV": 28, "TL": 23, "TN": 24, "TR": 26, "UA": 29, "VA": 22, "VG": 24,
    "XK": 20,
}

# Slice of the IBAN holding the national bank identifier
BANK_CODE_SLICES: Dict[str, Tuple[int, int]] = {
    "AT": (4, 9), "BE": (4, 7), "CH": (4, 9), "CZ": (4, 8), "DE": (4, 12),
    "DK": (4, 8), "ES": (4, 8), "FI": (4, 7), "FR": (4, 9), "GB": (4, 8),
    "HU": (4, 7), "IE": (4, 8), "IT": (5, 10), "LI": (4, 9), "LU": (4, 7),
    "MC": (4, 9), "NL": (4, 8), "NO": (4, 8), "PL": (4, 12), "PT": (4, 8),
    "SE": (4, 7), "SK": (4, 8), "SM": (5, 10),
}

_IBAN_CHARSET = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]+$")

# Country code, check digits, then groups that may be separated by single spaces
_CANDIDATE = re.compile(r"\b[A-Z]{2}[0-9]{2}(?: ?[A-Z0-9]){10,30}")


@dataclass(frozen=True)
class IbanCheck:
    """
    Structural validation outcome.

    Attributes:
        candidate: Input as given
        iban: Compact uppercase form (no spaces)
        valid: Whether all structural checks passed
        country_code: Two-letter country code, when recognizable
        reason: Why the candidate is invalid
    """
    candidate: str
    iban: str
    valid: bool
    country_code: Optional[str] = None
    reason: Optional[str] = None


def compact(candidate: str) -> str:
    """Remove whitespace and uppercase."""
    return "".join((candidate or "").split()).upper()


def mod97(iban: str) -> int:
    """
    ISO 7064 mod-97 of an IBAN after moving the first four characters
    to the end and replacing letters by 10..35.

    The remainder is folded digit by digit so arbitrarily long inputs
    never build a big integer.
    """
    rearranged = iban[4:] + iban[:4]
    remainder = 0
    for ch in rearranged:
        value = int(ch, 36)
        remainder = (remainder * (100 if value > 9 else 10) + value) % 97
    return remainder


def format_iban(iban: str) -> str:
    """
    Print format in groups of four.

    Example:
        >>> format_iban("CH9300762011623852957")
        'CH93 0076 2011 6238 5295 7'
    """
    value = compact(iban)
    return " ".join(value[i:i + 4] for i in range(0, len(value), 4))


class IbanValidator:
    """
    Structural IBAN validator.

    Example:
        >>> IbanValidator().validate("CH93 0076 2011 6238 5295 7").valid
        True
        >>> IbanValidator().validate("CH93 0076 2011 6238 5295 8").reason
        'checksum mismatch'
    """

    def __init__(self, lengths: Optional[Dict[str, int]] = None) -> None:
        self.lengths = dict(lengths or IBAN_LENGTHS)

    def validate(self, candidate: str) -> IbanCheck:
        """
        Validate a candidate string. Never raises.

        Args:
            candidate: IBAN as found in text, spaces allowed.

        Returns:
            IbanCheck describing the outcome.
        """
        if not isinstance(candidate, str):
            return IbanCheck(str(candidate), "", False, reason="not a string")

        iban = compact(candidate)

        if not iban:
            return IbanCheck(candidate, iban, False, reason="empty")

        if not _IBAN_CHARSET.match(iban):
            return IbanCheck(candidate, iban, False, reason="invalid characters or structure")

        country = iban[:2]
        expected = self.lengths.get(country)

        if expected is None:
            return IbanCheck(candidate, iban, False, country, reason=f"unsupported country {country}")

        if len(iban) != expected:
            return IbanCheck(
                candidate, iban, False, country,
                reason=f"length {len(iban)}, expected {expected}"
            )

        if mod97(iban) != 1:
            return IbanCheck(candidate, iban, False, country, reason="checksum mismatch")

        return IbanCheck(candidate, iban, True, country)

    def is_valid(self, candidate: str) -> bool:
        return self.validate(candidate).valid

    @staticmethod
    def bank_code(iban: str) -> Optional[str]:
        """
        National bank identifier embedded in a (valid) IBAN.

        Returns:
            Bank code, or None when the country's layout is not known.
        """
        value = compact(iban)
        positions = BANK_CODE_SLICES.get(value[:2])
        if positions is None:
            return None
        start, end = positions
        code = value[start:end]
        return code or None

    def find_candidates(self, text: str) -> List[str]:
        """
        Find IBAN-like strings in free text.

        Grouping spaces are tolerated. Each hit is cut to the registered
        length of its country, so a word following the IBAN is not glued
        onto it. Duplicates are removed, first occurrence wins.

        Args:
            text: Document text.

        Returns:
            Compact candidate strings in order of appearance.
        """
        candidates = []
        seen = set()

        for found in _CANDIDATE.finditer((text or "").upper()):
            value = compact(found.group(0))
            expected = self.lengths.get(value[:2])

            if expected is not None and len(value) > expected:
                value = value[:expected]

            if value not in seen:
                seen.add(value)
                candidates.append(value)

        return candidates
