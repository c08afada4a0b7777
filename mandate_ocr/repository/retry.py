"""
Connection Retry Module.

A bounded retry loop for store operations. Each attempt either
succeeds, fails with a transient error (retried after a fixed delay),
or fails with any other error (raised immediately). The loop returns a
typed outcome instead of raising once the bound is exhausted.

Author: Document Automation Team
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Tuple, Type, TypeVar

from sqlalchemy import exc as sa_exc

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import TransientStoreError

# Initialize module logger
logger = get_logger(__name__)

T = TypeVar('T')

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
    TransientStoreError,
    ConnectionError,
)


@dataclass
class ConnectionState:
    """
    Retry bookkeeping of one mandate's store handle. In memory only.

    Attributes:
        consecutive_failures: Failed attempts since the last success
        next_retry_at: Monotonic time before which calls fail fast
        last_error: Most recent transient error
    """
    consecutive_failures: int = 0
    next_retry_at: float = 0.0
    last_error: Optional[BaseException] = None

    def eligible(self, now: float) -> bool:
        return now >= self.next_retry_at

    def record_failure(self, error: BaseException) -> None:
        self.consecutive_failures += 1
        self.last_error = error

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.next_retry_at = 0.0
        self.last_error = None


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """
    Result of a retried operation.

    Attributes:
        success: Whether an attempt succeeded
        value: Return value of the successful attempt
        attempts: Number of attempts made
        error: Last transient error when not successful
        cancelled: The wait between attempts was interrupted
    """
    success: bool
    value: Optional[T] = None
    attempts: int = 0
    error: Optional[BaseException] = None
    cancelled: bool = False


class ConnectionRetry:
    """
    Bounded fixed-delay retry for store operations.

    Attributes:
        max_attempts: Attempts per operation (default 3)
        delay: Seconds between attempts (default 5)
        cooldown: Seconds during which calls fail fast after exhaustion
        state: ConnectionState of the owning mandate

    Example:
        >>> retry = ConnectionRetry()
        >>> outcome = retry.run(lambda: engine.connect(), "connect")
        >>> outcome.success, outcome.attempts
        (True, 1)
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
        cooldown: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.max_attempts = max_attempts or get_config("database.retry.max_attempts", 3)
        self.delay = delay if delay is not None else get_config("database.retry.delay_seconds", 5)
        self.cooldown = cooldown if cooldown is not None else \
            get_config("database.retry.cooldown_seconds", 0)
        self.stop_event = stop_event
        self._sleep = sleep
        self._clock = clock
        self.state = ConnectionState()

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def _wait(self) -> bool:
        """Wait the fixed delay. Returns False when interrupted by a stop request."""
        if self._sleep is not None:
            self._sleep(self.delay)
            return not (self.stop_event and self.stop_event.is_set())

        if self.stop_event is not None:
            return not self.stop_event.wait(self.delay)

        time.sleep(self.delay)
        return True

    def run(self, operation: Callable[[], T], name: str = "operation") -> RetryOutcome[T]:
        """
        Run an operation with bounded retries.

        Args:
            operation: Zero-argument callable performing one attempt.
            name: Operation name for logging.

        Returns:
            RetryOutcome; success with the value, or exhausted with the
            last transient error.

        Raises:
            Exception: Non-transient errors from the operation.
        """
        if not self.state.eligible(self._clock()):
            logger.debug(f"{name}: store in cooldown, not attempting")
            return RetryOutcome(success=False, attempts=0, error=self.state.last_error)

        attempts = 0
        while attempts < self.max_attempts:
            attempts += 1
            try:
                value = operation()
            except TRANSIENT_ERRORS as e:
                self.state.record_failure(e)
                logger.warning(
                    f"{name}: attempt {attempts}/{self.max_attempts} failed: {e}"
                )
                if attempts < self.max_attempts and not self._wait():
                    logger.info(f"{name}: retry interrupted by stop request")
                    return RetryOutcome(
                        success=False, attempts=attempts, error=e, cancelled=True
                    )
                continue

            if self.state.consecutive_failures:
                logger.info(f"{name}: succeeded after {attempts} attempt(s)")
            self.state.record_success()
            return RetryOutcome(success=True, value=value, attempts=attempts)

        if self.cooldown:
            self.state.next_retry_at = self._clock() + self.cooldown

        logger.error(f"{name}: giving up after {attempts} attempt(s)")
        return RetryOutcome(success=False, attempts=attempts, error=self.state.last_error)
