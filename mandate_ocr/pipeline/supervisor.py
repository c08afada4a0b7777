"""
Supervisor Module.

Runs one MandateWorker per mandate, each on its own thread, and stops
them cooperatively with a bounded grace period.

Author: Document Automation Team
"""

import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import StoreUnavailableError
from mandate_ocr.repository import ConnectionRetry, Database
from .worker import MandateWorker

# Initialize module logger
logger = get_logger(__name__)

WorkerFactory = Callable[[str, threading.Event], MandateWorker]


class Supervisor:
    """
    Starts and stops mandate workers.

    Attributes:
        database: Shared Database
        workers: Mapping of mandate id to worker
        stop_event: Event shared by all workers

    Example:
        >>> supervisor = Supervisor(database)
        >>> supervisor.start()
        >>> supervisor.stop(grace=30)
        []
    """

    def __init__(
        self,
        database: Database,
        mandate_ids: Optional[Iterable[str]] = None,
        worker_factory: Optional[WorkerFactory] = None
    ) -> None:
        self.database = database
        self.mandate_ids = list(mandate_ids) if mandate_ids else None
        self.worker_factory = worker_factory or self._default_factory
        self.stop_event = threading.Event()
        self.workers: Dict[str, MandateWorker] = {}
        self._threads: Dict[str, threading.Thread] = {}

    def _default_factory(self, mandate_id: str, stop_event: threading.Event) -> MandateWorker:
        return MandateWorker(mandate_id, database=self.database, stop_event=stop_event)

    def resolve_mandates(self) -> List[str]:
        """
        Mandates to run: explicit ids, the configured list, or every
        active mandate in the store.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        if self.mandate_ids:
            return self.mandate_ids

        configured = get_config("mandates", []) or []
        if configured:
            return [str(m) for m in configured]

        outcome = ConnectionRetry(stop_event=self.stop_event).run(
            self.database.list_active_mandates, "list mandates"
        )
        if not outcome.success:
            raise StoreUnavailableError(
                "list mandates", outcome.attempts, str(outcome.error) if outcome.error else None
            )
        return outcome.value

    def start(self, once: bool = False) -> List[str]:
        """
        Start one thread per mandate.

        Args:
            once: Run a single polling cycle per mandate instead of the loop.

        Returns:
            Started mandate ids.
        """
        mandate_ids = self.resolve_mandates()
        if not mandate_ids:
            logger.warning("No active mandates, nothing to run")
            return []

        for mandate_id in mandate_ids:
            if mandate_id in self._threads and self._threads[mandate_id].is_alive():
                logger.warning(f"Worker for {mandate_id} already running")
                continue

            worker = self.worker_factory(mandate_id, self.stop_event)
            target = worker.run_once if once else worker.run
            thread = threading.Thread(
                target=target,
                name=f"mandate-{mandate_id}",
                daemon=True
            )
            self.workers[mandate_id] = worker
            self._threads[mandate_id] = thread
            thread.start()

        logger.info(f"Started {len(mandate_ids)} worker(s): {', '.join(mandate_ids)}")
        return mandate_ids

    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads.values())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for all worker threads to finish.

        Returns:
            True if every thread finished within the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads.values():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return not self.is_running()

    def stop(self, grace: Optional[float] = None) -> List[str]:
        """
        Stop all workers cooperatively.

        Args:
            grace: Seconds to wait for workers to finish their current batch.

        Returns:
            Ids of workers still running after the grace period.
        """
        grace = grace if grace is not None else get_config("pipeline.stop_grace_seconds", 30)
        logger.info(f"Stopping {len(self.workers)} worker(s), grace period {grace}s")

        self.stop_event.set()
        for worker in self.workers.values():
            worker.stop()

        self.wait(grace)

        unresponsive = [
            mandate_id for mandate_id, thread in self._threads.items() if thread.is_alive()
        ]
        for mandate_id in unresponsive:
            logger.error(
                f"Worker {mandate_id} did not stop within {grace}s "
                f"(state: {self.workers[mandate_id].state.value})"
            )

        if not unresponsive:
            logger.info("All workers stopped")
        return unresponsive
