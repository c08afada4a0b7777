"""
Helper Utilities Module.

This module provides common utility functions used throughout the
service. Functions here are generic and reusable across modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - generate_timestamp: Generate formatted timestamps
    - safe_filename: Sanitize filenames for filesystem
    - move_file: Move a file without overwriting an existing target
    - file_sha256: Content hash used as stable batch identity
    - call_with_timeout: Run a blocking call with a time budget
"""

import hashlib
import re
import shutil
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Union

from .exceptions import ExtractionTimeoutError


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("diagnostics/acme")
        PosixPath('diagnostics/acme')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the lowercase file extension, including the dot.

    Example:
        >>> get_file_extension("batch.PDF")
        ".pdf"
    """
    return Path(filepath).suffix.lower()


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Example:
        >>> generate_timestamp()
        "20260121_143022"
    """
    return datetime.now().strftime(format_str)


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename by removing or replacing invalid characters.

    Example:
        >>> safe_filename("batch:123/scan.pdf")
        "batch_123_scan.pdf"
    """
    # Characters not allowed in Windows filenames
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, replacement, filename)
    sanitized = sanitized.strip('. ')

    if not sanitized:
        sanitized = "unnamed"

    return sanitized


def move_file(source: Union[str, Path], target_dir: Union[str, Path]) -> Path:
    """
    Move a file into a directory without overwriting an existing file.

    When the target name is taken, a timestamp and counter are appended
    to the stem so earlier archives are never clobbered.

    Args:
        source: File to move.
        target_dir: Destination directory (created if missing).

    Returns:
        Final path of the moved file.
    """
    source = Path(source)
    target_dir = ensure_directory(target_dir)
    name = Path(safe_filename(source.name))
    target = target_dir / name

    counter = 0
    while target.exists():
        counter += 1
        target = target_dir / f"{name.stem}_{generate_timestamp()}_{counter}{name.suffix}"

    return Path(shutil.move(str(source), str(target)))


def file_sha256(filepath: Union[str, Path], chunk_size: int = 65536) -> str:
    """
    Compute the SHA-256 hex digest of a file's content.

    Args:
        filepath: File to hash.
        chunk_size: Read block size in bytes.

    Returns:
        Hex digest string.
    """
    digest = hashlib.sha256()
    with open(filepath, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def call_with_timeout(
    func: Callable[..., Any],
    timeout: float,
    *args: Any,
    capability: str = "call",
    **kwargs: Any
) -> Any:
    """
    Run a blocking call on a helper thread and wait at most `timeout`.

    The helper thread is not killed on timeout; it is left to finish in
    the background while the caller continues.

    Args:
        func: Callable to run.
        timeout: Time budget in seconds.
        capability: Name used in the timeout error.

    Returns:
        Whatever `func` returns.

    Raises:
        ExtractionTimeoutError: If the budget is exceeded.
        Exception: Any exception raised by `func` is re-raised.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=capability)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        raise ExtractionTimeoutError(capability, timeout)
    finally:
        executor.shutdown(wait=False)
