"""
Matching Module for the Mandate OCR Service.

This module provides vendor recognition:
    - Known expressions and immutable pattern sets
    - Text normalization for OCR output
    - Deterministic best-match selection

Author: Document Automation Team
"""

from .expressions import KnownExpression, PatternSet
from .vendor_matcher import MatchResult, VendorMatcher, normalize_text

__all__ = ['KnownExpression', 'PatternSet', 'MatchResult', 'VendorMatcher', 'normalize_text']
