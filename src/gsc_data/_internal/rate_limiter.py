"""Token bucket throttle for the Search Analytics quota.

Every physical HTTP call acquires tokens equal to the number of logical
Search Analytics queries it carries before it is sent. The bucket refills
at the target rate and is capped at its capacity, so over any window of T
seconds at most ``capacity + T * rate`` queries are admitted.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import httpx

_logger = logging.getLogger(__name__)

SEARCH_ANALYTICS_PATH = "/searchAnalytics/query"


def request_cost(request: httpx.Request) -> int:
    """Count the logical Search Analytics queries inside a request.

    - Batch calls (POST to a ``/batch`` path, or a multipart/mixed body)
      cost one token per embedded searchAnalytics/query sub-request.
    - A direct searchAnalytics/query call costs one token.
    - Anything else (sites list, ...) is outside the quota and costs zero.

    Args:
        request: Fully built outgoing request.

    Returns:
        Number of logical queries carried by the request.
    """
    path = request.url.path
    content_type = request.headers.get("Content-Type", "")
    if request.method == "POST" and (
        "/batch" in path or "multipart/mixed" in content_type
    ):
        return request.content.decode("utf-8", errors="replace").count(
            SEARCH_ANALYTICS_PATH
        )
    if SEARCH_ANALYTICS_PATH in path:
        return 1
    return 0


class TokenBucket:
    """Thread-safe token bucket admission controller.

    The refill, wait and deduct steps of one ``acquire`` run under a single
    lock, so concurrent callers sharing one client cannot overdraw the
    bucket. A caller that finds too few tokens sleeps for exactly the
    deficit while holding the lock and leaves the bucket empty.

    Attributes:
        rate: Tokens added per second.
        capacity: Maximum tokens the bucket holds.

    Example:
        ```python
        bucket = TokenBucket(rate=18.0, capacity=900.0)

        def send(request: httpx.Request) -> httpx.Response:
            bucket.acquire(request_cost(request))
            return client.send(request)
        ```
    """

    def __init__(
        self,
        rate: float = 18.0,
        capacity: float = 900.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize a full bucket.

        Args:
            rate: Refill rate in tokens per second. Defaults to 18
                (90% of the documented 20 QPS quota).
            capacity: Burst capacity. Defaults to 900 (50 seconds at 18 QPS).
            clock: Monotonic clock in seconds (injectable for tests).
            sleep: Sleep function (injectable for tests).

        Raises:
            ValueError: If rate or capacity is not positive.
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self._rate = float(rate)
        self._capacity = float(capacity)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = self._capacity
        self._last_refill = clock()

    @property
    def rate(self) -> float:
        """Refill rate in tokens per second."""
        return self._rate

    @property
    def capacity(self) -> float:
        """Maximum number of tokens."""
        return self._capacity

    @property
    def tokens(self) -> float:
        """Tokens available right now (after a refill)."""
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._last_refill = now
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)

    def acquire(self, cost: float) -> float:
        """Block until ``cost`` tokens are available, then take them.

        Args:
            cost: Tokens required (logical queries in the physical call).

        Returns:
            Seconds spent waiting (0.0 when admitted immediately).

        Raises:
            ValueError: If cost is negative.
        """
        if cost < 0:
            raise ValueError("cost must be non-negative")
        if cost == 0:
            return 0.0

        with self._lock:
            self._refill()
            if self._tokens >= cost:
                self._tokens -= cost
                return 0.0

            wait = (cost - self._tokens) / self._rate
            _logger.debug(
                "Throttling: need %.1f tokens, have %.1f, waiting %.2fs",
                cost,
                self._tokens,
                wait,
            )
            self._sleep(wait)
            # The sleep paid for the deficit; do not credit it again on refill
            self._tokens = 0.0
            self._last_refill = self._clock()
            return wait
