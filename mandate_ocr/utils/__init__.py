"""
Utility Module for the Mandate OCR Service.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Error taxonomy
    - File operations and timeouts
"""

from .logger import setup_logger, get_logger, get_mandate_logger
from .helpers import (
    ensure_directory,
    get_file_extension,
    generate_timestamp,
    move_file,
    file_sha256,
    call_with_timeout,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'get_mandate_logger',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
    'move_file',
    'file_sha256',
    'call_with_timeout',
]
