"""
Repository Module for the Mandate OCR Service.

This module provides access to the relational store:
    - Mandate configuration and per-cycle snapshots
    - Known expressions and bank reference data with TTL caching
    - Bounded connection retries
    - Insert-only OCR result persistence

Author: Document Automation Team
"""

from .records import OcrResult, ProcessingStatus
from .mandate import Mandate, MandateContext
from .retry import ConnectionRetry, ConnectionState, RetryOutcome
from .cache import CachedValue
from .database import Database
from .repository import MandateRepository

__all__ = [
    'OcrResult',
    'ProcessingStatus',
    'Mandate',
    'MandateContext',
    'ConnectionRetry',
    'ConnectionState',
    'RetryOutcome',
    'CachedValue',
    'Database',
    'MandateRepository',
]
