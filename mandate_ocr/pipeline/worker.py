"""
Mandate Worker Module.

One worker polls one mandate's input directory and drives every new
batch through the BatchProcessor.

States:
    IDLE -> POLLING -> PROCESSING -> IDLE
    STOPPING -> STOPPED, reachable from any state

Batch outcomes:
    - processed: file moved to the archive directory
    - store unavailable: file released back to the input directory and
      the cycle ends; the batch is retried next cycle
    - any other error: file quarantined into the diagnostics directory
      together with an error record, and a failure result is recorded
    - a file that cannot be moved out of the claim directory stays
      there and is recovered on the next cycle

Author: Document Automation Team
"""

import enum
import json
import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import get_config
from mandate_ocr.utils.logger import get_mandate_logger
from mandate_ocr.utils.helpers import ensure_directory, file_sha256, move_file
from mandate_ocr.utils.exceptions import (
    BatchClaimError,
    ConfigurationError,
    MandateOcrError,
    StoreUnavailableError,
)
from mandate_ocr.input_handler import BatchLoader
from mandate_ocr.repository import (
    Database,
    MandateContext,
    MandateRepository,
    OcrResult,
)
from .housekeeping import purge_expired
from .processor import BatchProcessor


class WorkerState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    PROCESSING = "processing"
    STOPPING = "stopping"
    STOPPED = "stopped"


class BatchOutcome(str, enum.Enum):
    ARCHIVED = "archived"
    QUARANTINED = "quarantined"
    DEFERRED = "deferred"
    SKIPPED = "skipped"


class MandateWorker:
    """
    Polling loop of one mandate.

    Cancellation is cooperative: the stop event is checked between
    batches and ends the inter-cycle wait immediately. A batch in flight
    is finished first.

    Attributes:
        mandate_id: Mandate handled by this worker
        repository: MandateRepository of the mandate
        processor: BatchProcessor
        stop_event: Event that requests shutdown

    Example:
        >>> worker = MandateWorker("acme", database)
        >>> thread = threading.Thread(target=worker.run)
        >>> thread.start()
        >>> worker.stop()
    """

    def __init__(
        self,
        mandate_id: str,
        database: Optional[Database] = None,
        repository: Optional[MandateRepository] = None,
        processor: Optional[BatchProcessor] = None,
        stop_event: Optional[threading.Event] = None,
        idle_interval: Optional[float] = None
    ) -> None:
        if repository is None and database is None:
            raise ValueError("Either a database or a repository is required")

        self.mandate_id = mandate_id
        self.stop_event = stop_event or threading.Event()
        self.repository = repository or MandateRepository(
            database, mandate_id, stop_event=self.stop_event
        )
        self.processor = processor or BatchProcessor()
        self.idle_interval = idle_interval or get_config("pipeline.idle_interval_seconds", 60)
        self.failure_suffix = get_config("pipeline.failure_record_suffix", ".error.json")

        self.logger = get_mandate_logger(__name__, mandate_id)
        self._state = WorkerState.IDLE
        self._claims_recovered = False
        self._last_interval = self.idle_interval

    @property
    def loader(self) -> BatchLoader:
        return self.processor.loader

    @property
    def state(self) -> WorkerState:
        return self._state

    def _set_state(self, state: WorkerState) -> None:
        if state != self._state:
            self.logger.debug(f"State {self._state.value} -> {state.value}")
            self._state = state

    @property
    def stop_requested(self) -> bool:
        return self.stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown. Returns immediately."""
        if not self.stop_event.is_set():
            self.logger.info("Stop requested")
        # run() sets STOPPED once it observes the event
        if self._state != WorkerState.STOPPED:
            self._set_state(WorkerState.STOPPING)
        self.stop_event.set()

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def run(self) -> None:
        """Poll until stopped. Never raises."""
        self.logger.info("Worker started")

        while not self.stop_requested:
            try:
                interval = self.run_once()
            except Exception:
                self.logger.exception("Polling cycle failed")
                interval = self._last_interval

            if self.stop_event.wait(interval):
                break

        self._set_state(WorkerState.STOPPED)
        self.logger.info("Worker stopped")

    def run_once(self) -> float:
        """
        Run one polling cycle.

        Returns:
            Seconds to wait before the next cycle.
        """
        if self.stop_requested:
            return 0

        self._set_state(WorkerState.POLLING)

        try:
            context = self.repository.snapshot()
        except StoreUnavailableError as e:
            self.logger.warning(f"Store unavailable, cycle deferred: {e}")
            self._set_state(WorkerState.IDLE)
            return self._last_interval
        except ConfigurationError as e:
            self.logger.error(f"Mandate not runnable: {e}")
            self._set_state(WorkerState.IDLE)
            return self.idle_interval

        mandate = context.mandate
        self._last_interval = mandate.poll_interval

        if not self._claims_recovered:
            self._claims_recovered = self.recover_claims(context)

        if mandate.retention_days > 0:
            purge_expired(mandate.diagnostics_dir, mandate.retention_days)

        files = self.loader.discover(mandate.input_dir)
        if files:
            self.logger.info(f"Found {len(files)} new batch(es)")
            self._set_state(WorkerState.PROCESSING)

        for filepath in files:
            if self.stop_requested:
                self.logger.info("Stop requested, leaving remaining batches for later")
                break
            if self.process_file(filepath, context) is BatchOutcome.DEFERRED:
                break

        if self.stop_requested:
            self._set_state(WorkerState.STOPPING)
        else:
            self._set_state(WorkerState.IDLE)

        return mandate.poll_interval

    # -------------------------------------------------------------------------
    # Batch handling
    # -------------------------------------------------------------------------

    def process_file(self, filepath: Path, context: MandateContext) -> BatchOutcome:
        """
        Claim, process and file away one batch.

        Args:
            filepath: Batch file in the input directory.
            context: Mandate snapshot of the current cycle.

        Returns:
            BatchOutcome.
        """
        try:
            claimed = self.loader.claim(filepath)
        except BatchClaimError as e:
            self.logger.warning(f"Skipping {Path(filepath).name}: {e}")
            return BatchOutcome.SKIPPED

        try:
            self.processor.process(claimed, context, self.repository)
        except StoreUnavailableError as e:
            self.logger.warning(f"Store unavailable, {claimed.name} released for next cycle: {e}")
            self.loader.release(claimed)
            return BatchOutcome.DEFERRED
        except Exception as e:
            self.logger.error(f"Batch {claimed.name} failed: {e}")
            return self._quarantine_claimed(claimed, context, e)

        try:
            archived = move_file(claimed, context.mandate.archive_dir)
        except OSError as e:
            self.logger.error(f"Could not archive {claimed.name}: {e}")
            return self._quarantine_claimed(claimed, context, e)

        self.logger.info(f"Archived {archived.name}")
        return BatchOutcome.ARCHIVED

    def _quarantine_claimed(
        self,
        claimed: Path,
        context: MandateContext,
        error: BaseException
    ) -> BatchOutcome:
        """
        Quarantine a claimed batch. If even that move fails the file stays
        in the claim directory, claim recovery runs again next cycle and
        the current cycle ends.
        """
        try:
            self.quarantine(claimed, context, error)
        except OSError as e:
            self.logger.error(f"Could not quarantine {claimed.name}, left in claim directory: {e}")
            self._claims_recovered = False
            return BatchOutcome.DEFERRED
        return BatchOutcome.QUARANTINED

    def recover_claims(self, context: MandateContext) -> bool:
        """
        Quarantine files left in the claim directory by an interrupted run.

        Returns:
            True if the claim directory was emptied.
        """
        recovered = True
        for leftover in self.loader.leftover_claims(context.mandate.input_dir):
            self.logger.warning(f"Found leftover claim {leftover.name}, quarantining")
            error = BatchClaimError(str(leftover), "left in claim directory by an interrupted run")
            try:
                self.quarantine(leftover, context, error)
            except OSError as e:
                self.logger.error(f"Could not quarantine leftover claim {leftover.name}: {e}")
                recovered = False
        return recovered

    def quarantine(self, claimed: Path, context: MandateContext, error: BaseException) -> Path:
        """
        Move a batch to the diagnostics directory and record the failure.

        Writes a JSON error record next to the quarantined file and
        persists a batch-level failure result. A store outage while
        recording is logged; the quarantined file and error record remain.

        Returns:
            Path of the quarantined file.
        """
        diagnostics_dir = ensure_directory(context.mandate.diagnostics_dir)
        target = move_file(claimed, diagnostics_dir)
        # Retention is counted from the quarantine, not from the scan date
        os.utime(target)

        try:
            batch_key = file_sha256(target)
        except OSError:
            batch_key = ""

        record = {
            'mandate_id': self.mandate_id,
            'source_file': claimed.name,
            'quarantined_path': str(target),
            'batch_key': batch_key,
            'error_type': type(error).__name__,
            'error': getattr(error, 'message', str(error)),
            'details': getattr(error, 'details', {}),
            'traceback': "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
            'quarantined_at': datetime.now().isoformat(),
        }

        record_path = diagnostics_dir / f"{target.name}{self.failure_suffix}"
        with open(record_path, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2, default=str)

        self.logger.warning(f"Quarantined {claimed.name} -> {target}")

        if batch_key:
            failure = OcrResult.batch_failure(
                self.mandate_id, batch_key, claimed.name, f"{type(error).__name__}: {error}"
            )
            try:
                self.repository.persist(failure)
            except MandateOcrError as e:
                self.logger.error(f"Could not record failure of {claimed.name}: {e}")

        return target
