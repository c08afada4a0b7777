"""
Batch Input Handler Module.

This module provides the BatchLoader class that finds new batch files
in a mandate's input directory, claims them so that no other run reads
them again, and renders claimed files into Batch objects.

Usage:
    from mandate_ocr.input_handler import BatchLoader

    loader = BatchLoader()
    for path in loader.discover(mandate.input_dir):
        claimed = loader.claim(path)
        batch = loader.load(claimed, mandate.mandate_id)

Classes:
    BatchLoader: Discovery, claiming and loading of batch files
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.helpers import file_sha256, get_file_extension, move_file
from mandate_ocr.utils.exceptions import BatchClaimError, CorruptedFileError

from .batch import Batch, Page
from .pdf_processor import PDFProcessor

# Initialize module logger
logger = get_logger(__name__)


class BatchLoader:
    """
    Discovers, claims and loads batch files.

    A file is claimed by an atomic rename into the claim directory
    inside the input directory. Discovery only lists regular files
    directly in the input directory, so a claimed file is never
    discovered a second time.

    Attributes:
        supported_extensions: Set of accepted file extensions
        claim_dir_name: Name of the claim subdirectory
        pdf_processor: PDFProcessor used to render pages

    Example:
        >>> loader = BatchLoader()
        >>> paths = loader.discover("/data/acme/in")
        >>> batch = loader.load(loader.claim(paths[0]), "acme")
        >>> print(batch.page_count)
    """

    PDF_EXTENSIONS = {'.pdf'}

    def __init__(
        self,
        pdf_processor: Optional[PDFProcessor] = None,
        claim_dir_name: Optional[str] = None
    ) -> None:
        self.supported_extensions = {
            ext.lower() for ext in get_config("input.supported_extensions", list(self.PDF_EXTENSIONS))
        }
        self.claim_dir_name = claim_dir_name or get_config("input.claim_dir_name", ".claimed")
        self.pdf_processor = pdf_processor or PDFProcessor()

        logger.debug(f"BatchLoader initialized with extensions: {self.supported_extensions}")

    def claim_dir(self, input_dir: Union[str, Path]) -> Path:
        """Directory that holds files claimed from `input_dir`."""
        return Path(input_dir) / self.claim_dir_name

    def discover(self, input_dir: Union[str, Path]) -> List[Path]:
        """
        List unclaimed batch files in an input directory.

        Args:
            input_dir: Mandate input directory.

        Returns:
            Sorted list of batch file paths. Empty if the directory is missing.
        """
        directory = Path(input_dir)

        if not directory.is_dir():
            logger.warning(f"Input directory does not exist: {directory}")
            return []

        files = sorted(
            path for path in directory.iterdir()
            if path.is_file() and get_file_extension(path) in self.supported_extensions
        )

        if files:
            logger.info(f"Found {len(files)} batch file(s) in {directory}")
        else:
            logger.debug(f"No batch files in {directory}")

        return files

    def claim(self, filepath: Union[str, Path]) -> Path:
        """
        Claim a discovered file by moving it into the claim directory.

        Args:
            filepath: Discovered batch file.

        Returns:
            New path of the claimed file.

        Raises:
            BatchClaimError: If the file vanished or cannot be moved.
        """
        filepath = Path(filepath)
        try:
            claimed = move_file(filepath, self.claim_dir(filepath.parent))
        except OSError as e:
            raise BatchClaimError(str(filepath), str(e))

        logger.debug(f"Claimed {filepath.name} -> {claimed}")
        return claimed

    def release(self, claimed_path: Union[str, Path]) -> Path:
        """
        Return a claimed file to its input directory for a later cycle.

        Args:
            claimed_path: Path returned by claim().

        Returns:
            Path of the file back in the input directory.
        """
        claimed_path = Path(claimed_path)
        released = move_file(claimed_path, claimed_path.parent.parent)
        logger.info(f"Released {claimed_path.name} back to {released.parent}")
        return released

    def leftover_claims(self, input_dir: Union[str, Path]) -> List[Path]:
        """Files still sitting in the claim directory, e.g. after a crash."""
        claim_dir = self.claim_dir(input_dir)
        if not claim_dir.is_dir():
            return []
        return sorted(path for path in claim_dir.iterdir() if path.is_file())

    def load(self, filepath: Union[str, Path], mandate_id: str) -> Batch:
        """
        Render a claimed batch file.

        Args:
            filepath: Claimed batch file.
            mandate_id: Owning mandate.

        Returns:
            Batch with immutable rendered pages.

        Raises:
            CorruptedFileError: If the file is empty or unreadable.
        """
        path = Path(filepath)
        logger.info(f"Loading batch: {path.name}")

        if not path.is_file():
            raise CorruptedFileError(str(path), "File does not exist")

        if path.stat().st_size == 0:
            raise CorruptedFileError(str(path), "File is empty")

        batch_key = file_sha256(path)
        images = self.pdf_processor.render(path)

        pages = tuple(
            Page(index=index, image=image, source_path=path)
            for index, image in enumerate(images)
        )

        batch = Batch(
            mandate_id=mandate_id,
            source_path=path,
            batch_key=batch_key,
            discovered_at=datetime.now(),
            pages=pages
        )

        logger.info(f"Loaded {batch!r}")
        return batch
