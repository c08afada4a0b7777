"""
Custom Exceptions Module.

This module defines the closed error taxonomy of the mandate OCR service.
Each category maps to one handling policy in the pipeline:

Exception Hierarchy:
    MandateOcrError (base)
    ├── StoreError                  store problems
    │   ├── TransientStoreError     retried up to the bound
    │   ├── StoreUnavailableError   retries exhausted, run deferred
    │   └── ConfigurationError      unknown or inactive mandate
    ├── ExtractionError             page degraded, processing continues
    │   ├── NativeExtractionError
    │   ├── OCREngineNotAvailableError
    │   ├── OCRProcessingError
    │   └── ExtractionTimeoutError
    ├── MarkerDecodeError           page treated as content
    └── InputError                  batch quarantined
        ├── CorruptedFileError
        ├── EmptyBatchError
        └── BatchClaimError

Malformed IBANs are not exceptions; they are reported as an INVALID
validation outcome. Duplicate results are not exceptions either; the
repository reports them as already persisted.
"""


class MandateOcrError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STORE ERRORS
# =============================================================================

class StoreError(MandateOcrError):
    """Base exception for relational store errors."""
    pass


class TransientStoreError(StoreError):
    """Raised for network or connection failures that are worth retrying."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Transient store failure during: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class StoreUnavailableError(StoreError):
    """
    Raised when the store could not be reached within the retry bound.

    The calling pipeline run is deferred to the next poll cycle.
    """

    def __init__(self, operation: str, attempts: int, reason: str = None):
        message = f"Store unavailable for '{operation}' after {attempts} attempt(s)"
        details = {"operation": operation, "attempts": attempts, "reason": reason}
        self.attempts = attempts
        super().__init__(message, details)


class ConfigurationError(StoreError):
    """Raised when a mandate's configuration is missing or unusable."""

    def __init__(self, mandate_id: str, reason: str = None):
        message = f"Invalid configuration for mandate: {mandate_id}"
        details = {"mandate_id": mandate_id, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(MandateOcrError):
    """Base exception for text extraction errors."""
    pass


class NativeExtractionError(ExtractionError):
    """Raised when native PDF text extraction fails for a page."""

    def __init__(self, filepath: str, page_index: int, reason: str = None):
        message = f"Native text extraction failed for page {page_index} of {filepath}"
        details = {"filepath": filepath, "page_index": page_index, "reason": reason}
        super().__init__(message, details)


class OCREngineNotAvailableError(ExtractionError):
    """Raised when the configured OCR engine is not available."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


class OCRProcessingError(ExtractionError):
    """Raised when OCR processing fails."""

    def __init__(self, source: str, reason: str = None):
        message = f"OCR processing failed for: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class ExtractionTimeoutError(ExtractionError):
    """Raised when an extraction capability exceeds its time budget."""

    def __init__(self, capability: str, timeout: float):
        message = f"{capability} exceeded timeout of {timeout:.1f}s"
        details = {"capability": capability, "timeout": timeout}
        super().__init__(message, details)


# =============================================================================
# MARKER ERRORS
# =============================================================================

class MarkerDecodeError(MandateOcrError):
    """Raised when a page image cannot be scanned for a marker."""

    def __init__(self, page_index: int, reason: str = None):
        message = f"Marker decoding failed on page {page_index}"
        details = {"page_index": page_index, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(MandateOcrError):
    """Base exception for batch input errors."""
    pass


class CorruptedFileError(InputError):
    """Raised when a batch file appears to be corrupted or unreadable."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class EmptyBatchError(InputError):
    """Raised when a batch has no pages and therefore yields no documents."""

    def __init__(self, filepath: str):
        message = f"Batch contains no pages: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class BatchClaimError(InputError):
    """Raised when a discovered batch cannot be claimed by the worker."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Could not claim batch: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'MandateOcrError',
    'StoreError',
    'TransientStoreError',
    'StoreUnavailableError',
    'ConfigurationError',
    'ExtractionError',
    'NativeExtractionError',
    'OCREngineNotAvailableError',
    'OCRProcessingError',
    'ExtractionTimeoutError',
    'MarkerDecodeError',
    'InputError',
    'CorruptedFileError',
    'EmptyBatchError',
    'BatchClaimError',
]
