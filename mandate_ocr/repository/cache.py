"""
Cached Value Module.

Per-mandate cache slots with time-based expiry and explicit
invalidation. A slot holds one immutable (value, loaded_at) pair that
is replaced as a whole, so readers never see a half-updated value.

Author: Document Automation Team
"""

import threading
import time
from typing import Callable, Generic, Optional, Tuple, TypeVar

T = TypeVar('T')


class CachedValue(Generic[T]):
    """
    Lazily loaded value with TTL.

    Example:
        >>> slot = CachedValue(load_patterns, ttl=300)
        >>> patterns = slot.get()   # loads
        >>> patterns = slot.get()   # served from cache
        >>> slot.invalidate()       # next get() loads again
    """

    def __init__(
        self,
        loader: Callable[[], T],
        ttl: float,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._loader = loader
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[Tuple[T, float]] = None
        self._lock = threading.Lock()

    def _fresh(self, entry: Optional[Tuple[T, float]]) -> bool:
        if entry is None:
            return False
        if self.ttl <= 0:
            return True
        return self._clock() - entry[1] < self.ttl

    def get(self) -> T:
        entry = self._entry
        if self._fresh(entry):
            return entry[0]

        with self._lock:
            entry = self._entry
            if self._fresh(entry):
                return entry[0]
            value = self._loader()
            self._entry = (value, self._clock())
            return value

    def peek(self) -> Optional[T]:
        """Cached value without loading, None when empty."""
        entry = self._entry
        return entry[0] if entry else None

    def invalidate(self) -> None:
        self._entry = None

    @property
    def loaded(self) -> bool:
        return self._entry is not None
