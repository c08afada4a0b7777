"""
Vendor Matcher Module.

This module recognizes the vendor of a document by evaluating the
mandate's known expressions against the extracted text.

Selection among matching expressions is a total order:
    1. highest priority
    2. longest matched span
    3. lowest insertion order

Author: Document Automation Team
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional, Tuple

from config import get_config
from mandate_ocr.utils.logger import get_logger
from .expressions import CompiledExpression, PatternSet

# Initialize module logger
logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Normalize extracted text for matching.

    Applies Unicode NFKC (ligatures, full-width digits, non-breaking
    spaces) and collapses whitespace runs, which OCR and PDF layout
    produce in arbitrary amounts, to a single space.

    Example:
        >>> normalize_text("ACME\\u00a0 AG\\n\\nZürich")
        'ACME AG Zürich'
    """
    if not text:
        return ""
    return _WHITESPACE.sub(" ", unicodedata.normalize("NFKC", text)).strip()


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of vendor matching for one document.

    Attributes:
        matched: Whether any expression matched
        vendor_id: Vendor of the winning expression
        expression_id: Winning expression
        priority: Priority of the winning expression
        span: (start, end) of the match in the normalized text
        matched_text: Text covered by the span
        candidates: Number of expressions that matched
    """
    matched: bool
    vendor_id: Optional[str] = None
    expression_id: Optional[int] = None
    priority: Optional[int] = None
    span: Optional[Tuple[int, int]] = None
    matched_text: Optional[str] = None
    candidates: int = 0

    @classmethod
    def unmatched(cls) -> 'MatchResult':
        return cls(matched=False)


class VendorMatcher:
    """
    Matches document text against a mandate's pattern set.

    Example:
        >>> matcher = VendorMatcher()
        >>> result = matcher.match(document_text.text, context.patterns)
        >>> result.vendor_id if result.matched else "unmatched"
    """

    def __init__(self, normalize: Optional[bool] = None) -> None:
        self.normalize = normalize if normalize is not None else \
            get_config("matching.normalize_text", True)

    @staticmethod
    def _rank(compiled: CompiledExpression, span: Tuple[int, int]):
        expression = compiled.expression
        # Sort key: larger is better
        return (expression.priority, span[1] - span[0], -expression.order, -expression.expression_id)

    def match(self, text: str, patterns: PatternSet) -> MatchResult:
        """
        Find the best matching known expression.

        Args:
            text: Extracted document text.
            patterns: Pattern set of the mandate.

        Returns:
            MatchResult; unmatched when text is empty or nothing matches.
        """
        subject = normalize_text(text) if self.normalize else (text or "")
        if not subject or not len(patterns):
            return MatchResult.unmatched()

        best = None
        best_rank = None
        candidates = 0

        for compiled in patterns:
            found = compiled.regex.search(subject)
            if found is None:
                continue

            candidates += 1
            rank = self._rank(compiled, found.span())
            if best_rank is None or rank > best_rank:
                best, best_rank = (compiled, found), rank

        if best is None:
            logger.debug(f"No vendor expression matched ({len(patterns)} evaluated)")
            return MatchResult.unmatched()

        compiled, found = best
        expression = compiled.expression

        logger.debug(
            f"Vendor {expression.vendor_id} matched by expression {expression.expression_id} "
            f"({candidates} candidate(s))"
        )

        return MatchResult(
            matched=True,
            vendor_id=expression.vendor_id,
            expression_id=expression.expression_id,
            priority=expression.priority,
            span=found.span(),
            matched_text=found.group(0),
            candidates=candidates
        )
