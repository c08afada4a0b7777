"""
Diagnostics housekeeping: age-based purge of quarantined batches and
error records.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

from mandate_ocr.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def purge_expired(
    directory: Union[str, Path],
    retention_days: int,
    now: Optional[datetime] = None
) -> List[Path]:
    """
    Delete files older than the retention period.

    Only regular files directly inside the directory are considered.
    A retention of 0 or less keeps everything.

    Args:
        directory: Diagnostics directory.
        retention_days: Maximum age in days.
        now: Reference time, defaults to the current time.

    Returns:
        Paths of the deleted files.
    """
    path = Path(directory)
    if retention_days <= 0 or not path.is_dir():
        return []

    cutoff = (now or datetime.now()) - timedelta(days=retention_days)
    purged = []

    for item in sorted(path.iterdir()):
        if not item.is_file():
            continue
        try:
            modified = datetime.fromtimestamp(item.stat().st_mtime)
            if modified < cutoff:
                item.unlink()
                purged.append(item)
        except OSError as e:
            logger.warning(f"Could not purge {item}: {e}")

    if purged:
        logger.info(f"Purged {len(purged)} expired file(s) from {path}")

    return purged
