"""Running count of logical queries sent by a client."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class QueryCounter:
    """Counts logical Search Analytics queries over the client lifetime.

    Uses its own lock, independent of the throttle, so recording never
    waits behind a throttled caller.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Start counting now.

        Args:
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._clock = clock
        self._start_time = clock()
        self._total = 0
        self._lock = threading.Lock()

    @property
    def start_time(self) -> float:
        """Clock reading when counting started."""
        return self._start_time

    @property
    def total(self) -> int:
        """Total queries recorded."""
        return self._total

    def record(self, count: int = 1) -> None:
        """Record queries that were sent.

        Args:
            count: Number of logical queries (non-negative).
        """
        if count < 0:
            raise ValueError("count must be non-negative")
        with self._lock:
            self._total += count

    def rate(self) -> float:
        """Average queries per second since counting started."""
        runtime = max(0.001, self._clock() - self._start_time)
        return self._total / runtime
