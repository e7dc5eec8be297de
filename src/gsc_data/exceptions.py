"""Exception hierarchy for gsc_data.

All library exceptions inherit from GscDataError, enabling callers to
catch all library errors with a single except clause while still allowing
fine-grained exception handling when needed.

API exceptions carry the HTTP context of the failed call:
- HTTP status codes and response bodies
- Original request context (method, URL, body)
- Parsed error details for the quota-exceeded signal
"""

from __future__ import annotations

from typing import Any


class GscDataError(Exception):
    """Base exception for all gsc_data errors.

    All library exceptions inherit from this class, allowing callers to:
    - Catch all library errors: except GscDataError
    - Handle specific errors: except QuotaExceededError
    - Serialize errors: error.to_dict()
    """

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code for programmatic handling.
            details: Additional structured data about the error.
        """
        super().__init__(message)
        self._message = message
        self._code = code
        self._details = details or {}

    @property
    def code(self) -> str:
        """Machine-readable error code."""
        return self._code

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return self._message

    @property
    def details(self) -> dict[str, Any]:
        """Additional structured error data."""
        return self._details

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/JSON output.

        Returns:
            Dictionary with keys: code, message, details.
        """
        return {
            "code": self._code,
            "message": self._message,
            "details": self._details,
        }

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self._message

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return (
            f"{self.__class__.__name__}(message={self._message!r}, code={self._code!r})"
        )


# Configuration Exceptions


class ConfigError(GscDataError):
    """Base for configuration-related errors.

    Raised when there's a problem with configuration files, environment
    variables, credential resolution or report parameters. Never retried.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Human-readable error message.
            details: Additional structured data.
        """
        super().__init__(message, code="CONFIG_ERROR", details=details)


class AccountNotFoundError(ConfigError):
    """Named account does not exist in configuration.

    The available_accounts property lists valid account names to help users.
    """

    def __init__(
        self,
        account_name: str,
        available_accounts: list[str] | None = None,
    ) -> None:
        """Initialize AccountNotFoundError.

        Args:
            account_name: The requested account name that wasn't found.
            available_accounts: List of valid account names for suggestions.
        """
        available = available_accounts or []
        if available:
            available_str = ", ".join(f"'{a}'" for a in available)
            message = (
                f"Account '{account_name}' not found. "
                f"Available accounts: {available_str}"
            )
        else:
            message = f"Account '{account_name}' not found. No accounts configured."

        details = {
            "account_name": account_name,
            "available_accounts": available,
        }
        super().__init__(message, details=details)
        self._code = "ACCOUNT_NOT_FOUND"

    @property
    def account_name(self) -> str:
        """The requested account name that wasn't found."""
        return str(self._details.get("account_name", ""))

    @property
    def available_accounts(self) -> list[str]:
        """List of valid account names."""
        accounts = self._details.get("available_accounts")
        return accounts if isinstance(accounts, list) else []


class AccountExistsError(ConfigError):
    """Account name already exists in configuration."""

    def __init__(self, account_name: str) -> None:
        """Initialize AccountExistsError.

        Args:
            account_name: The conflicting account name.
        """
        message = f"Account '{account_name}' already exists."
        details = {"account_name": account_name}
        super().__init__(message, details=details)
        self._code = "ACCOUNT_EXISTS"

    @property
    def account_name(self) -> str:
        """The conflicting account name."""
        return str(self._details.get("account_name", ""))


class PropertyNotAccessibleError(ConfigError):
    """Search Console property is not accessible with the current token.

    Raised before any report query is sent when the requested property is
    missing from the sites list of the authenticated user.

    Example:
        ```python
        try:
            config = client.report("https://example.com", "2024-01-01", "2024-01-31")
        except PropertyNotAccessibleError as e:
            print(f"No access to {e.site_url}")
            print(f"Accessible: {e.accessible_properties}")
        ```
    """

    def __init__(
        self,
        site_url: str,
        accessible_properties: list[str] | None = None,
    ) -> None:
        """Initialize PropertyNotAccessibleError.

        Args:
            site_url: The normalized property URL that was requested.
            accessible_properties: Property URLs the token can access.
        """
        message = (
            f"Property '{site_url}' is not accessible. "
            "Please check the URL and your permissions."
        )
        details = {
            "site_url": site_url,
            "accessible_properties": accessible_properties or [],
        }
        super().__init__(message, details=details)
        self._code = "PROPERTY_NOT_ACCESSIBLE"

    @property
    def site_url(self) -> str:
        """The property URL that was requested."""
        return str(self._details.get("site_url", ""))

    @property
    def accessible_properties(self) -> list[str]:
        """Property URLs the token can access."""
        props = self._details.get("accessible_properties")
        return props if isinstance(props, list) else []


# API Exceptions - Base class for HTTP errors


class APIError(GscDataError):
    """Base class for Search Console API HTTP errors.

    Provides structured access to HTTP request/response context for
    debugging. All API-related exceptions inherit from this class.

    Example:
        ```python
        try:
            sites = api.list_sites()
        except APIError as e:
            print(f"Status: {e.status_code}")
            print(f"Response: {e.response_body}")
            print(f"Request URL: {e.request_url}")
        ```
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_body: dict[str, Any] | None = None,
        code: str = "API_ERROR",
    ) -> None:
        """Initialize APIError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from response.
            response_body: Raw response body (string or parsed dict).
            request_method: HTTP method used (GET, POST).
            request_url: Full request URL.
            request_body: Request body sent (for POST requests).
            code: Machine-readable error code.
        """
        self._status_code = status_code
        self._response_body = response_body
        self._request_method = request_method
        self._request_url = request_url
        self._request_body = request_body

        details: dict[str, Any] = {
            "status_code": status_code,
        }
        if response_body is not None:
            details["response_body"] = response_body
        if request_method is not None:
            details["request_method"] = request_method
        if request_url is not None:
            details["request_url"] = request_url
        if request_body is not None:
            details["request_body"] = request_body

        super().__init__(message, code=code, details=details)

    @property
    def status_code(self) -> int:
        """HTTP status code from response."""
        return self._status_code

    @property
    def response_body(self) -> str | dict[str, Any] | None:
        """Raw response body (string or parsed dict)."""
        return self._response_body

    @property
    def request_method(self) -> str | None:
        """HTTP method used (GET, POST)."""
        return self._request_method

    @property
    def request_url(self) -> str | None:
        """Full request URL."""
        return self._request_url

    @property
    def request_body(self) -> dict[str, Any] | None:
        """Request body sent (for POST requests)."""
        return self._request_body


class AuthenticationError(APIError):
    """Authentication with the Search Console API failed (HTTP 401).

    Raised when the access token is invalid or expired.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        status_code: int = 401,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
    ) -> None:
        """Initialize AuthenticationError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (default 401).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            code="AUTH_FAILED",
        )


class RateLimitError(APIError):
    """Search Console API rate limit exceeded (HTTP 429).

    Raised after the transport-level retries are exhausted. The retry_after
    property carries the Retry-After header when the server sent one.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int | None = None,
        status_code: int = 429,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
    ) -> None:
        """Initialize RateLimitError.

        Args:
            message: Human-readable error message.
            retry_after: Seconds until retry is allowed (from Retry-After header).
            status_code: HTTP status code (default 429).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
        """
        self._retry_after = retry_after
        if retry_after is not None:
            message = f"{message}. Retry after {retry_after} seconds."

        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            code="RATE_LIMITED",
        )
        if retry_after is not None:
            self._details["retry_after"] = retry_after

    @property
    def retry_after(self) -> int | None:
        """Seconds until retry is allowed, or None if unknown."""
        return self._retry_after


class QuotaExceededError(APIError):
    """Search Console quota exhausted (HTTP 403, usageLimits/quotaExceeded).

    Distinguished from a plain permission error by the structured
    ``{"domain": "usageLimits", "reason": "quotaExceeded"}`` pair in the
    error body. Transient: the retry policy waits a long fixed delay before
    retrying, and this exception only surfaces once retries are exhausted.
    """

    def __init__(
        self,
        message: str = "Search Analytics quota exceeded",
        *,
        status_code: int = 403,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_body: dict[str, Any] | None = None,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (default 403).
            response_body: Raw response body with the usageLimits error.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_body: Request body sent.
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
            code="QUOTA_EXCEEDED",
        )


class QueryError(APIError):
    """Query rejected by the API (HTTP 400, 403 or 404).

    Raised when a Search Analytics query fails due to invalid parameters or
    missing permissions. Not retried by the transport.
    """

    def __init__(
        self,
        message: str = "Query execution failed",
        *,
        status_code: int = 400,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_body: dict[str, Any] | None = None,
    ) -> None:
        """Initialize QueryError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (default 400).
            response_body: Raw response body with error details.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_body: Request body sent (for POST).
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
            code="QUERY_FAILED",
        )


class ServerError(APIError):
    """Search Console server error (HTTP 5xx).

    These are typically transient issues that may succeed on retry.
    """

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int = 500,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_body: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ServerError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (5xx).
            response_body: Raw response body with error details.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_body: Request body sent (for POST).
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_body=request_body,
            code="SERVER_ERROR",
        )


class TransportError(GscDataError):
    """Network-level failure (connection refused, timeout, reset).

    Raised after the transport-level retries are exhausted.
    """

    def __init__(
        self,
        message: str,
        *,
        request_method: str | None = None,
        request_url: str | None = None,
    ) -> None:
        """Initialize TransportError.

        Args:
            message: Human-readable error message.
            request_method: HTTP method used.
            request_url: Full request URL.
        """
        details: dict[str, Any] = {}
        if request_method is not None:
            details["request_method"] = request_method
        if request_url is not None:
            details["request_url"] = request_url
        super().__init__(message, code="TRANSPORT_ERROR", details=details)


# Batch / stream Exceptions


class BatchItemFailedError(GscDataError):
    """An item failed at every batch size and exhausted its retries.

    Reported through the scheduler's error callback, never raised into the
    result stream. Carries enough context to diagnose the failure.
    """

    def __init__(
        self,
        item: Any,
        *,
        attempts: int,
        last_error: BaseException | str | None = None,
    ) -> None:
        """Initialize BatchItemFailedError.

        Args:
            item: The work item that permanently failed.
            attempts: Total dispatch attempts made for the item.
            last_error: The most recent failure seen for the item.
        """
        self._item = item
        self._last_error = last_error
        message = (
            f"Request for {item!r} failed after {attempts} attempts"
            " at every batch size"
        )
        if last_error is not None:
            message += f": {last_error}"
        details: dict[str, Any] = {
            "item": repr(item),
            "attempts": attempts,
        }
        if last_error is not None:
            details["last_error"] = str(last_error)
        super().__init__(message, code="BATCH_ITEM_FAILED", details=details)

    @property
    def item(self) -> Any:
        """The item that failed."""
        return self._item

    @property
    def attempts(self) -> int:
        """Total dispatch attempts made for the item."""
        return int(self._details.get("attempts", 0))

    @property
    def last_error(self) -> BaseException | str | None:
        """The most recent failure seen for the item."""
        return self._last_error


class MalformedRowError(GscDataError):
    """An upstream row lacks a required field (date or a metric).

    Reported per record; the rest of the stream continues.
    """

    def __init__(self, row: Any, missing: list[str]) -> None:
        """Initialize MalformedRowError.

        Args:
            row: The raw upstream row.
            missing: Names of the required fields that are absent.
        """
        message = f"Row is missing required field(s): {', '.join(missing)}"
        details = {"row": row, "missing": missing}
        super().__init__(message, code="MALFORMED_ROW", details=details)

    @property
    def missing(self) -> list[str]:
        """Names of the missing required fields."""
        missing = self._details.get("missing")
        return missing if isinstance(missing, list) else []
