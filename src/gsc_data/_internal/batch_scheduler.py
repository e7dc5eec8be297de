"""Batch scheduler with a shrinking-batch retry cascade.

Groups logical queries into batch calls, demultiplexes each response by
correlation id and retries failed items with a halved batch size until
the batch size reaches one, then with exponential backoff per item.
Results are produced lazily: the next chunk is dispatched only when the
consumer asks for more.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from itertools import islice
from typing import Any, Generic, TypeVar

from gsc_data._internal.api_client import SearchConsoleAPIClient
from gsc_data._internal.batch_codec import BatchPart
from gsc_data._internal.config import MAX_BATCH_SIZE
from gsc_data.exceptions import (
    AuthenticationError,
    BatchItemFailedError,
    GscDataError,
)
from gsc_data.types import SearchAnalyticsQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ErrorCallback = Callable[[BaseException, Any], None]
"""Receives the error and the item it belongs to."""


@dataclass
class _Pending(Generic[T]):
    """A built item travelling through the cascade."""

    item: T
    query: SearchAnalyticsQuery
    attempts: int = 0
    last_error: BaseException | str | None = None


def _log_error(error: BaseException, item: Any) -> None:
    logger.error("Request for %r failed: %s", item, error)


def _chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


def validate_batch_size(batch_size: int) -> int:
    """Check a batch size against the upstream bounds (1..1000).

    Raises:
        ValueError: If the size is out of bounds.
    """
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(
            f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}"
        )
    return batch_size


class BatchScheduler:
    """Dispatches logical queries in batches with adaptive retries.

    Retry cascade for failed items, run after every chunk of the current
    pass has been dispatched:

    - batch size > 1: halve it (minimum 1), wait the cooldown, retry.
    - batch size 1: wait ``retry_cooldown * 2 ** attempt`` and retry, up
      to ``max_single_retries`` times.
    - afterwards each item is reported once via ``on_error`` with a
      BatchItemFailedError and dropped.

    Example:
        ```python
        scheduler = BatchScheduler(api_client, batch_size=10)
        pages = scheduler.run(
            days,
            build_request=lambda day: build_query(config, dims, start_date=day, end_date=day),
            handle_response=lambda payload, request_id: payload.get("rows", []),
        )
        for rows in pages:
            ...
        ```
    """

    def __init__(
        self,
        api_client: SearchConsoleAPIClient,
        batch_size: int = 10,
        *,
        retry_cooldown: float = 60.0,
        max_single_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            api_client: Client executing the physical calls.
            batch_size: Logical queries per batch call (1..1000).
            retry_cooldown: Seconds to wait before a retry pass (base of the
                single-item backoff).
            max_single_retries: Retries per item once the batch size is one.
            sleep: Sleep function (injectable for tests).

        Raises:
            ValueError: If batch_size is out of bounds.
        """
        self._api_client = api_client
        self._batch_size = validate_batch_size(batch_size)
        self._retry_cooldown = retry_cooldown
        self._max_single_retries = max_single_retries
        self._sleep = sleep

    @property
    def batch_size(self) -> int:
        """Logical queries per batch call for new runs."""
        return self._batch_size

    @batch_size.setter
    def batch_size(self, value: int) -> None:
        self._batch_size = validate_batch_size(value)

    def run(
        self,
        items: Iterable[T],
        build_request: Callable[[T], SearchAnalyticsQuery],
        handle_response: Callable[[dict[str, Any], str], R | None],
        on_error: ErrorCallback | None = None,
    ) -> Iterator[R]:
        """Dispatch items and yield handled responses lazily.

        Args:
            items: Work items (e.g. days), dispatched in order.
            build_request: Builds the logical query for an item. Failures
                are reported via on_error and not retried.
            handle_response: Converts a successful raw page and its
                correlation id into a result; None results are skipped.
                Failures are reported via on_error and not retried.
            on_error: Receives ``(error, item)`` for every item that is
                dropped. Defaults to logging at ERROR level.

        Items whose query equals one already built in this run (same
        ``request_id``) are skipped; they get neither a handler call nor an
        on_error call.

        Yields:
            Handler results in chunk order; results of retried items come
            after all chunks of the pass that failed them.

        Raises:
            AuthenticationError: On a 401, for the call or any part of it.
                Every later request would fail the same way, so the run
                stops instead of entering the retry cascade.
        """
        report = on_error or _log_error
        batch_size = self._batch_size
        attempt = 0

        seen: set[str] = set()
        failed: list[_Pending[T]] = []
        for chunk in _chunked(items, batch_size):
            entries = self._build(chunk, build_request, report, seen)
            yield from self._dispatch(entries, handle_response, report, failed)

        pending = failed
        while pending:
            if batch_size > 1:
                batch_size = max(1, batch_size // 2)
                attempt = 0
                delay = self._retry_cooldown
            elif attempt < self._max_single_retries:
                delay = self._retry_cooldown * 2**attempt
                attempt += 1
            else:
                for entry in pending:
                    error = BatchItemFailedError(
                        entry.item,
                        attempts=entry.attempts,
                        last_error=entry.last_error,
                    )
                    report(error, entry.item)
                return

            logger.warning(
                "Retrying %d failed request(s) with batch size %d in %.0f seconds",
                len(pending),
                batch_size,
                delay,
            )
            self._sleep(delay)

            failed = []
            for entries in _chunked(pending, batch_size):
                yield from self._dispatch(entries, handle_response, report, failed)
            pending = failed

    def _build(
        self,
        chunk: list[T],
        build_request: Callable[[T], SearchAnalyticsQuery],
        report: ErrorCallback,
        seen: set[str],
    ) -> list[_Pending[T]]:
        entries: list[_Pending[T]] = []
        for item in chunk:
            try:
                query = build_request(item)
            except Exception as e:
                report(e, item)
                continue
            if query.request_id in seen:
                logger.debug("Skipping duplicate request for %r", item)
                continue
            seen.add(query.request_id)
            entries.append(_Pending(item=item, query=query))
        return entries

    def _execute(
        self, entries: list[_Pending[T]]
    ) -> dict[str, dict[str, Any] | GscDataError]:
        if len(entries) == 1:
            query = entries[0].query
            payload = self._api_client.query(query.site_url, query.to_request_body())
            return {query.request_id: payload}

        parts = [
            BatchPart(
                correlation_id=entry.query.request_id,
                site_url=entry.query.site_url,
                body=entry.query.to_request_body(),
            )
            for entry in entries
        ]
        return dict(self._api_client.execute_batch(parts))

    def _dispatch(
        self,
        entries: list[_Pending[T]],
        handle_response: Callable[[dict[str, Any], str], R | None],
        report: ErrorCallback,
        failed: list[_Pending[T]],
    ) -> Iterator[R]:
        if not entries:
            return

        for entry in entries:
            entry.attempts += 1

        logger.debug("Dispatching %d request(s)", len(entries))
        try:
            results = self._execute(entries)
        except AuthenticationError:
            raise
        except GscDataError as e:
            logger.warning("Batch of %d request(s) failed: %s", len(entries), e)
            for entry in entries:
                entry.last_error = e
                failed.append(entry)
            return

        for entry in entries:
            request_id = entry.query.request_id
            result = results.get(request_id)
            if isinstance(result, AuthenticationError):
                raise result
            if not isinstance(result, dict):
                entry.last_error = result or "No response part for request"
                failed.append(entry)
                continue
            try:
                value = handle_response(result, request_id)
            except Exception as e:
                report(e, entry.item)
                continue
            if value is not None:
                yield value
