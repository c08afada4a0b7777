"""
Pipeline Module for the Mandate OCR Service.

This module drives the per-mandate processing loop:
    - BatchProcessor: load, segment, extract, match, validate, persist
    - MandateWorker: polling state machine with cooperative cancellation
    - Supervisor: one worker thread per mandate
    - purge_expired: diagnostics retention

Author: Document Automation Team
"""

from .processor import BatchProcessor, BatchReport, document_status
from .worker import BatchOutcome, MandateWorker, WorkerState
from .supervisor import Supervisor
from .housekeeping import purge_expired

__all__ = [
    'BatchProcessor',
    'BatchReport',
    'document_status',
    'BatchOutcome',
    'MandateWorker',
    'WorkerState',
    'Supervisor',
    'purge_expired',
]
