"""Search Console API Client.

Low-level HTTP client for the Search Console webmasters/v3 API. Handles:
- Bearer token authentication
- Token bucket throttling of every physical call (batch sub-requests count)
- Transport-level retries with exponential backoff and quota delays
- multipart/mixed batch calls demultiplexed by correlation id

This is a private implementation detail. Users should use the GscClient
class or service layer instead of accessing this module directly.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from gsc_data._internal.batch_codec import BatchPart, decode_batch, encode_batch
from gsc_data._internal.config import MAX_BATCH_SIZE, ClientSettings, Credentials
from gsc_data._internal.query_counter import QueryCounter
from gsc_data._internal.rate_limiter import TokenBucket, request_cost
from gsc_data._internal.retry import RetryPolicy, is_quota_exceeded_body
from gsc_data.exceptions import (
    APIError,
    AuthenticationError,
    QueryError,
    QuotaExceededError,
    RateLimitError,
    ServerError,
    TransportError,
)

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

API_BASE_URL = "https://searchconsole.googleapis.com/webmasters/v3"
BATCH_URL = "https://www.googleapis.com/batch/webmasters/v3"


def _error_message(body: str | dict[str, Any] | None, default: str) -> str:
    """Pull the human-readable message out of a Google error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    elif isinstance(body, str) and body:
        return body[:200]
    return default


def build_api_error(
    status_code: int,
    body: str | dict[str, Any] | None,
    *,
    request_method: str | None = None,
    request_url: str | None = None,
    request_body: dict[str, Any] | None = None,
    retry_after: int | None = None,
) -> APIError:
    """Map an error status and body to the exception hierarchy.

    Status code handling:
        - 401: AuthenticationError
        - 403 with usageLimits/quotaExceeded: QuotaExceededError
        - 429: RateLimitError
        - 5xx: ServerError
        - anything else: QueryError

    Args:
        status_code: HTTP status of the failed call or batch part.
        body: Decoded error body.
        request_method: HTTP method used.
        request_url: Full request URL.
        request_body: Request body sent.
        retry_after: Parsed Retry-After header, if any.

    Returns:
        The exception to raise or report.
    """
    if status_code == 401:
        return AuthenticationError(
            _error_message(body, "Invalid or expired access token"),
            status_code=status_code,
            response_body=body,
            request_method=request_method,
            request_url=request_url,
        )
    if status_code == 403 and is_quota_exceeded_body(body):
        return QuotaExceededError(
            _error_message(body, "Search Analytics quota exceeded"),
            status_code=status_code,
            response_body=body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
        )
    if status_code == 429:
        return RateLimitError(
            _error_message(body, "Rate limit exceeded after max retries"),
            retry_after=retry_after,
            status_code=status_code,
            response_body=body,
            request_method=request_method,
            request_url=request_url,
        )
    if status_code >= 500:
        return ServerError(
            f"Server error: {_error_message(body, str(status_code))}",
            status_code=status_code,
            response_body=body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
        )
    default = "Permission denied" if status_code == 403 else "Query failed"
    return QueryError(
        _error_message(body, default),
        status_code=status_code,
        response_body=body,
        request_method=request_method,
        request_url=request_url,
        request_body=request_body,
    )


class SearchConsoleAPIClient:
    """Low-level HTTP client for the Search Console API.

    Every physical call acquires throttle tokens equal to the number of
    Search Analytics queries it carries and is recorded by the query
    counter, retries included. Most users won't use this directly; they'll
    use the GscClient class instead.

    Example:
        ```python
        from gsc_data._internal.config import ConfigManager
        from gsc_data._internal.api_client import SearchConsoleAPIClient

        config = ConfigManager()
        credentials = config.resolve_credentials()

        with SearchConsoleAPIClient(credentials) as client:
            for site in client.list_sites():
                print(site["siteUrl"])
        ```
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        settings: ClientSettings | None = None,
        throttle: TokenBucket | None = None,
        counter: QueryCounter | None = None,
        sleep: Callable[[float], None] = time.sleep,
        _transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            credentials: Immutable authentication credentials.
            settings: Throttle, retry and timeout settings (defaults if None).
            throttle: Shared token bucket (built from settings if None).
            counter: Shared query counter (new if None).
            sleep: Sleep function used between retries (injectable for tests).
            _transport: Internal parameter for testing with MockTransport.
        """
        self._credentials = credentials
        self._settings = settings or ClientSettings()
        self._throttle = throttle or TokenBucket(
            rate=self._settings.target_qps,
            capacity=self._settings.bucket_capacity,
        )
        self._counter = counter or QueryCounter()
        self._retry_policy = RetryPolicy(
            max_retries=self._settings.max_retries,
            initial_delay=self._settings.initial_delay,
            backoff_factor=self._settings.backoff_factor,
            quota_delay=self._settings.quota_delay,
        )
        self._sleep = sleep
        self._client: httpx.Client | None = None
        self._transport = _transport

    @property
    def settings(self) -> ClientSettings:
        """Settings the client was built with."""
        return self._settings

    @property
    def throttle(self) -> TokenBucket:
        """Token bucket gating every physical call."""
        return self._throttle

    @property
    def counter(self) -> QueryCounter:
        """Counter of logical queries sent."""
        return self._counter

    @property
    def retry_policy(self) -> RetryPolicy:
        """Transport-level retry policy."""
        return self._retry_policy

    def _get_auth_header(self) -> str:
        """Build the bearer Authorization header value."""
        token = self._credentials.access_token.get_secret_value()
        return f"Bearer {token}"

    def _ensure_client(self) -> httpx.Client:
        """Ensure HTTP client is initialized.

        Returns:
            The httpx.Client instance.
        """
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(
                    self._settings.timeout,
                    connect=self._settings.connect_timeout,
                ),
                headers={"Accept-Encoding": "gzip, deflate"},
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> SearchConsoleAPIClient:
        """Enter context manager."""
        self._ensure_client()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, closing client."""
        self.close()

    def _parse_retry_after(self, response: httpx.Response) -> int | None:
        """Parse Retry-After header if present.

        Args:
            response: HTTP response.

        Returns:
            Seconds to wait, or None if header not present.
        """
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return int(retry_after)
            except ValueError:
                pass
        return None

    def _handle_response(
        self,
        response: httpx.Response,
        *,
        request_method: str | None = None,
        request_url: str | None = None,
        request_body: dict[str, Any] | None = None,
    ) -> Any:
        """Return the JSON body of a 2xx response or raise a mapped error.

        Args:
            response: The final HTTP response (after retries).
            request_method: HTTP method used.
            request_url: Full request URL.
            request_body: Request body sent (for POST).

        Returns:
            Parsed JSON response.

        Raises:
            AuthenticationError: On 401 response.
            QuotaExceededError: On 403 with the quota-exceeded signal.
            RateLimitError: On 429 response.
            ServerError: On 5xx response.
            QueryError: On any other non-2xx response.
        """
        response_body: str | dict[str, Any] | None = None
        try:
            response_body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            response_body = response.text[:500] if response.text else None

        if response.is_success:
            if isinstance(response_body, dict):
                return response_body
            raise ServerError(
                "Expected a JSON object response",
                status_code=response.status_code,
                response_body=response_body,
                request_method=request_method,
                request_url=request_url,
                request_body=request_body,
            )

        raise build_api_error(
            response.status_code,
            response_body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
            retry_after=self._parse_retry_after(response),
        )

    def _send(self, client: httpx.Client, request: httpx.Request) -> httpx.Response:
        """Throttle, count and send one physical attempt."""
        cost = request_cost(request)
        waited = self._throttle.acquire(cost)
        self._counter.record(cost)
        logger.debug(
            "Dispatching %s %s (cost=%d, throttled %.2fs)",
            request.method,
            request.url.path,
            cost,
            waited,
        )
        return client.send(request)

    def _execute_with_retry(
        self,
        method: str,
        url: str,
        *,
        json_data: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute an HTTP request under the retry policy.

        Each attempt is rebuilt, throttled and counted. Connection errors,
        5xx, 429 and quota-exceeded responses are retried up to the policy's
        limit; the final response is returned as is, whatever its status.

        Args:
            method: HTTP method (GET, POST).
            url: Full URL to request.
            json_data: Optional JSON request body.
            content: Optional raw request body.
            headers: Extra request headers.

        Returns:
            The final HTTP response.

        Raises:
            TransportError: If the last attempt failed at the network level.
        """
        client = self._ensure_client()
        request_headers = {"Authorization": self._get_auth_header()}
        if headers:
            request_headers.update(headers)

        retries = 0
        while True:
            request = client.build_request(
                method,
                url,
                json=json_data,
                content=content,
                headers=request_headers,
            )
            response: httpx.Response | None = None
            error: httpx.HTTPError | None = None
            try:
                response = self._send(client, request)
            except httpx.HTTPError as e:
                error = e

            if not self._retry_policy.should_retry(retries, request, response, error):
                break

            retries += 1
            delay = self._retry_policy.delay(retries, response)
            reason = str(error)
            if response is not None:
                reason = f"HTTP {response.status_code}"
            logger.warning(
                "Request %s %s failed (%s), retrying in %.1f seconds (retry %d/%d)",
                method,
                request.url.path,
                reason,
                delay,
                retries,
                self._retry_policy.max_retries,
            )
            self._sleep(delay)

        if response is None:
            raise TransportError(
                f"HTTP error: {error}",
                request_method=method,
                request_url=url,
            ) from error
        return response

    def _request(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated JSON request.

        Args:
            method: HTTP method (GET, POST).
            url: Full URL to request.
            data: Request body as JSON (for POST).

        Returns:
            Parsed JSON response.

        Raises:
            APIError: On a non-2xx final response.
            TransportError: On a network failure after retries.
        """
        response = self._execute_with_retry(method, url, json_data=data)
        return self._handle_response(
            response,
            request_method=method,
            request_url=url,
            request_body=data,
        )

    # =========================================================================
    # Sites
    # =========================================================================

    def list_sites(self) -> list[dict[str, Any]]:
        """List the properties visible to the authenticated user.

        Returns:
            List of ``{"siteUrl": ..., "permissionLevel": ...}`` entries.
        """
        result = self._request("GET", f"{API_BASE_URL}/sites")
        entries = result.get("siteEntry", [])
        return [entry for entry in entries if isinstance(entry, dict)]

    # =========================================================================
    # Search Analytics
    # =========================================================================

    def query(self, site_url: str, body: dict[str, Any]) -> dict[str, Any]:
        """Execute a single Search Analytics query.

        Args:
            site_url: Property URL.
            body: searchAnalytics/query request body.

        Returns:
            Raw response page (``{"rows": [...], "responseAggregationType": ...}``).
        """
        site = quote(site_url, safe="")
        url = f"{API_BASE_URL}/sites/{site}/searchAnalytics/query"
        result: dict[str, Any] = self._request("POST", url, data=body)
        return result

    def execute_batch(
        self, parts: list[BatchPart]
    ) -> dict[str, dict[str, Any] | APIError]:
        """Execute several Search Analytics queries in one batch call.

        A failed physical call raises; failed parts inside a successful
        call are returned as exceptions so the caller can retry them.

        Args:
            parts: Queries to send (at most 1000).

        Returns:
            Mapping of correlation id to the raw page or the part's error.
            Ids missing from the response are absent from the mapping.

        Raises:
            ValueError: If more than 1000 parts are given.
            APIError: If the batch call itself fails.
            TransportError: On a network failure after retries.
        """
        if len(parts) > MAX_BATCH_SIZE:
            raise ValueError(
                f"A batch holds at most {MAX_BATCH_SIZE} parts, got {len(parts)}"
            )
        if not parts:
            return {}

        boundary = f"batch_{uuid.uuid4().hex}"
        response = self._execute_with_retry(
            "POST",
            BATCH_URL,
            content=encode_batch(parts, boundary),
            headers={"Content-Type": f"multipart/mixed; boundary={boundary}"},
        )
        if not response.is_success:
            self._handle_response(
                response, request_method="POST", request_url=BATCH_URL
            )

        try:
            decoded = decode_batch(
                response.content, response.headers.get("Content-Type", "")
            )
        except ValueError as e:
            raise ServerError(
                f"Malformed batch response: {e}",
                status_code=response.status_code,
                response_body=response.text[:500] or None,
                request_method="POST",
                request_url=BATCH_URL,
            ) from e

        by_id = {part.correlation_id: part for part in parts}
        results: dict[str, dict[str, Any] | APIError] = {}
        for correlation_id, part_response in decoded.items():
            if correlation_id not in by_id:
                logger.debug("Ignoring unexpected batch part %s", correlation_id)
                continue
            if part_response.ok:
                results[correlation_id] = part_response.body
                continue
            part = by_id[correlation_id]
            results[correlation_id] = build_api_error(
                part_response.status_code,
                part_response.body,
                request_method="POST",
                request_url=part.path,
                request_body=part.body,
            )
        return results
