"""Transport-level retry policy.

Decides, per physical HTTP attempt, whether to retry and how long to wait.
Quota-exceeded responses (HTTP 403 with a usageLimits/quotaExceeded error)
get a long fixed delay; connection errors, 5xx and 429 use exponential
backoff. The batch scheduler's own retry cascade sits on top of this.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx

_logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_DOMAIN = "usageLimits"
QUOTA_EXCEEDED_REASON = "quotaExceeded"


def is_quota_exceeded(response: httpx.Response | None) -> bool:
    """Check whether a response carries the quota-exceeded signal.

    Only HTTP 403 responses whose first structured error is
    ``{"domain": "usageLimits", "reason": "quotaExceeded"}`` qualify; any
    other 403 is a permission problem.

    Args:
        response: Response to inspect, or None.

    Returns:
        True if the response signals an exhausted quota.
    """
    if response is None or response.status_code != 403:
        return False
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return False
    return is_quota_exceeded_body(body)


def is_quota_exceeded_body(body: object) -> bool:
    """Check a decoded error body for the usageLimits/quotaExceeded pair.

    Args:
        body: Decoded JSON body.

    Returns:
        True if the first structured error is the quota signal.
    """
    if not isinstance(body, dict):
        return False
    error = body.get("error")
    if not isinstance(error, dict):
        return False
    errors = error.get("errors")
    if not isinstance(errors, list) or not errors or not isinstance(errors[0], dict):
        return False
    first = errors[0]
    return (
        first.get("domain") == QUOTA_EXCEEDED_DOMAIN
        and first.get("reason") == QUOTA_EXCEEDED_REASON
    )


@dataclass(frozen=True)
class RetryPolicy:
    """Retry decider and delay calculator for physical HTTP calls.

    Attributes:
        max_retries: Retries allowed after the first attempt.
        initial_delay: Delay in seconds before the first retry.
        backoff_factor: Multiplier applied for each further retry.
        quota_delay: Fixed delay in seconds after a quota-exceeded response.

    Example:
        ```python
        policy = RetryPolicy(max_retries=3)
        retries = 0
        while True:
            response = send()
            if not policy.should_retry(retries, request, response):
                break
            retries += 1
            time.sleep(policy.delay(retries, response))
        ```
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    quota_delay: float = 60.0

    def should_retry(
        self,
        retries: int,
        request: httpx.Request,
        response: httpx.Response | None = None,
        exception: BaseException | None = None,
    ) -> bool:
        """Decide whether a physical call should be retried.

        Args:
            retries: Retries already performed (0 after the first attempt).
            request: The request that was sent.
            response: The response received, if any.
            exception: The transport exception raised, if any.

        Returns:
            True if the call should be retried.
        """
        if retries >= self.max_retries:
            return False

        if isinstance(exception, httpx.TransportError):
            return True

        if response is None:
            return False

        if is_quota_exceeded(response):
            _logger.warning(
                "Quota exceeded for %s %s. Will retry in %.0f seconds "
                "(retry %d/%d)",
                request.method,
                request.url.path,
                self.quota_delay,
                retries + 1,
                self.max_retries,
            )
            return True

        if response.status_code >= 500:
            return True

        return response.status_code == 429

    def delay(self, retries: int, response: httpx.Response | None = None) -> float:
        """Compute the wait before the next retry.

        Args:
            retries: 1-based number of the retry about to happen.
            response: The response that triggered the retry, if any.

        Returns:
            Delay in seconds.
        """
        if is_quota_exceeded(response):
            return self.quota_delay
        exponent = max(retries - 1, 0)
        return float(self.initial_delay * self.backoff_factor**exponent)
