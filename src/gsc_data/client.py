"""GscClient facade for Search Console data retrieval.

The GscClient class is the unified entry point for all gsc_data
operations, orchestrating PropertyService, SearchAnalyticsService and the
batch scheduler over one throttled API client.

Example:
    Basic usage with credentials from config:

    ```python
    with GscClient() as client:
        config = client.report("https://example.com/", "2024-01-01", "2024-01-31")
        for row in client.top_queries_by_day(config, max_rows_per_day=100):
            print(row.data_date, row.query, row.clicks)
    ```

    Full itemized report, streamed:

    ```python
    with GscClient(account="agency") as client:
        config = client.report("sc-domain:example.com", "2024-01-01", "2024-01-07")
        for row in client.search_performance_by_page(config):
            writer.writerow(row.to_dict())
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from datetime import date
from typing import Any

from gsc_data._internal.api_client import SearchConsoleAPIClient
from gsc_data._internal.batch_scheduler import BatchScheduler, validate_batch_size
from gsc_data._internal.config import ClientSettings, ConfigManager, Credentials
from gsc_data._internal.date_utils import parse_date
from gsc_data._internal.query_builder import MAX_ROWS_PER_REQUEST
from gsc_data._internal.query_counter import QueryCounter
from gsc_data._internal.services.properties import PropertyService
from gsc_data._internal.services.search_analytics import SearchAnalyticsService
from gsc_data.aggregation import AggregationResult, TimeframeResolution
from gsc_data.enums import DataState, DeviceType
from gsc_data.exceptions import ConfigError
from gsc_data.report_config import ReportConfig
from gsc_data.types import PropertyInfo, SearchAnalyticsRow, ThroughputInfo

ErrorCallback = Callable[[BaseException, Any], None]


class GscClient:
    """Unified entry point for Search Console data operations.

    One client owns one token bucket and one query counter; every report
    fetched through it shares them, so concurrent reports on one client
    stay inside the quota together. Report parameters travel in explicit
    ReportConfig objects and never live on the client.

    Example:
        ```python
        client = GscClient()
        client.batch_size = 50
        config = client.report("https://example.com/", "2024-01-01", "2024-03-31")
        rows = list(client.top_pages_by_day(config, 10))
        print(client.total_queries, client.queries_per_second)
        client.close()
        ```
    """

    # =========================================================================
    # LIFECYCLE & CONSTRUCTION
    # =========================================================================

    def __init__(
        self,
        account: str | None = None,
        *,
        settings: ClientSettings | None = None,
        # Dependency injection for testing
        _config_manager: ConfigManager | None = None,
        _api_client: SearchConsoleAPIClient | None = None,
    ) -> None:
        """Create a client with credentials and settings from config.

        Credentials are resolved in priority order:
        1. Environment variables (GSC_ACCESS_TOKEN, GSC_PROPERTY)
        2. Named account from config file (if account parameter specified)
        3. Default account from config file

        Args:
            account: Named account from config file to use.
            settings: Explicit client settings (default: resolved from the
                config file and GSC_* environment variables).
            _config_manager: Injected ConfigManager for testing.
            _api_client: Injected SearchConsoleAPIClient for testing.

        Raises:
            ConfigError: If no credentials can be resolved.
            AccountNotFoundError: If named account doesn't exist.
        """
        self._config_manager = _config_manager or ConfigManager()
        self._account_name = account

        self._credentials: Credentials | None = None
        if _api_client is None:
            self._credentials = self._config_manager.resolve_credentials(account)
            self._settings = settings or self._config_manager.resolve_settings()
            self._counter = QueryCounter()
        else:
            self._settings = settings or _api_client.settings
            self._counter = _api_client.counter

        self._batch_size = self._settings.batch_size

        # Lazy-initialized services (None until first use)
        self._api_client: SearchConsoleAPIClient | None = _api_client
        self._scheduler: BatchScheduler | None = None
        self._properties: PropertyService | None = None
        self._search_analytics: SearchAnalyticsService | None = None

    def __enter__(self) -> GscClient:
        """Enter context manager.

        Returns:
            Self for use in 'with' statement.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager, closing the HTTP client.

        Exceptions are NOT suppressed - they propagate normally after cleanup.
        """
        self.close()

    def close(self) -> None:
        """Close the HTTP client.

        This method is idempotent and safe to call multiple times.
        """
        if self._api_client is not None:
            self._api_client.close()

    @staticmethod
    def test_credentials(account: str | None = None) -> dict[str, Any]:
        """Test account credentials by listing the visible properties.

        Args:
            account: Named account to test. If None, tests the default account
                or credentials from environment variables.

        Returns:
            Dict containing:
                - success: bool - Whether the test succeeded
                - account: str | None - Account name tested
                - default_property: str | None - Property configured for the account
                - properties_found: int - Number of accessible properties

        Raises:
            AccountNotFoundError: If named account doesn't exist.
            AuthenticationError: If the token is invalid or expired.
            ConfigError: If no credentials can be resolved.
        """
        config_manager = ConfigManager()
        credentials = config_manager.resolve_credentials(account)

        account_info = None
        if account is not None:
            account_info = config_manager.get_account(account)
        else:
            for acc in config_manager.list_accounts():
                if acc.is_default:
                    account_info = acc
                    break

        api_client = SearchConsoleAPIClient(credentials)
        try:
            sites = api_client.list_sites()
            return {
                "success": True,
                "account": account_info.name if account_info else None,
                "default_property": credentials.site_url,
                "properties_found": len(sites),
            }
        finally:
            api_client.close()

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _get_api_client(self) -> SearchConsoleAPIClient:
        """Get or create the API client (lazy initialization)."""
        if self._api_client is None:
            if self._credentials is None:
                raise ConfigError("API access requires credentials.")
            self._api_client = SearchConsoleAPIClient(
                self._credentials,
                settings=self._settings,
                counter=self._counter,
            )
        return self._api_client

    def _get_scheduler(self) -> BatchScheduler:
        if self._scheduler is None:
            self._scheduler = BatchScheduler(
                self._get_api_client(),
                batch_size=self._batch_size,
                retry_cooldown=self._settings.retry_cooldown,
                max_single_retries=self._settings.max_single_retries,
            )
        return self._scheduler

    @property
    def _property_service(self) -> PropertyService:
        if self._properties is None:
            self._properties = PropertyService(self._get_api_client())
        return self._properties

    @property
    def _search_analytics_service(self) -> SearchAnalyticsService:
        if self._search_analytics is None:
            self._search_analytics = SearchAnalyticsService(
                self._get_api_client(), self._get_scheduler()
            )
        return self._search_analytics

    def _resolve_site_url(self, site_url: str | None) -> str:
        if site_url is not None:
            return site_url
        if self._credentials is not None and self._credentials.site_url:
            return self._credentials.site_url
        raise ConfigError(
            "No property given. Pass site_url or configure a default property "
            "(GSC_PROPERTY or 'gsc auth add --property')."
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    def properties(self) -> list[PropertyInfo]:
        """List the properties the token can access.

        Returns:
            Properties sorted by URL (cached per client).
        """
        return self._property_service.list_properties()

    def report(
        self,
        site_url: str | None,
        start_date: date | str,
        end_date: date | str,
        *,
        country: str | None = None,
        device: DeviceType | str | None = None,
        search_type: str | None = None,
        data_state: DataState | None = None,
    ) -> ReportConfig:
        """Build a validated report configuration.

        The property is normalized (trailing slash unless ``sc-domain:``)
        and checked against the accessible properties before any report
        query can be sent.

        Args:
            site_url: Property URL (None for the account's default property).
            start_date: First day (date or YYYY-MM-DD).
            end_date: Last day (date or YYYY-MM-DD).
            country: ISO-3166-1 alpha-3 country filter.
            device: Device filter.
            search_type: Search type filter (WEB, IMAGE, VIDEO, NEWS, ...).
            data_state: Freshness mode.

        Returns:
            Immutable ReportConfig.

        Raises:
            PropertyNotAccessibleError: If the token cannot access the property.
            ValueError: If dates or filters are invalid.
        """
        config = ReportConfig(
            site_url=self._resolve_site_url(site_url),
            start_date=parse_date(start_date),
            end_date=parse_date(end_date),
            country=country,
            device=device,
            search_type=search_type,
            data_state=data_state,
        )
        self._property_service.validate(config.site_url)
        return config

    def first_date_with_data(
        self,
        site_url: str | None = None,
        *,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> date | None:
        """Find the earliest day with data for a property.

        Args:
            site_url: Property URL (None for the account's default property).
            start_date: Window start (default: 18 months before end).
            end_date: Window end (default: today).

        Returns:
            The first day with data, or None.
        """
        return self._property_service.first_date_with_data(
            self._resolve_site_url(site_url),
            start_date=parse_date(start_date) if start_date is not None else None,
            end_date=parse_date(end_date) if end_date is not None else None,
        )

    # =========================================================================
    # REPORTS
    # =========================================================================

    def top_queries_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top queries of each day of the window.

        Args:
            config: Report configuration (see report()).
            max_rows_per_day: Rows per day (default 5000, max 25000).
            on_error: Receives ``(error, day)`` for data that had to be dropped.

        Returns:
            Lazy iterator of rows, day by day.
        """
        return self._search_analytics_service.top_queries_by_day(
            config, max_rows_per_day, on_error=on_error
        )

    def top_pages_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top pages of each day of the window."""
        return self._search_analytics_service.top_pages_by_day(
            config, max_rows_per_day, on_error=on_error
        )

    def top_pages_with_queries_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top page/query pairs of each day of the window."""
        return self._search_analytics_service.top_pages_with_queries_by_day(
            config, max_rows_per_day, on_error=on_error
        )

    def search_performance_by_page(
        self,
        config: ReportConfig,
        *,
        page_size: int = MAX_ROWS_PER_REQUEST,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the full date/page/query/country/device report.

        Args:
            config: Report configuration (see report()).
            page_size: Rows per request; a day is paged until it returns fewer.
            on_error: Receives ``(error, day)`` for data that had to be dropped.

        Returns:
            Lazy iterator of rows.
        """
        return self._search_analytics_service.search_performance_by_page(
            config, page_size=page_size, on_error=on_error
        )

    def search_performance(
        self,
        config: ReportConfig,
        *,
        keywords: Sequence[str] | None = None,
        urls: Sequence[str] | None = None,
        resolution: TimeframeResolution = TimeframeResolution.DAILY,
    ) -> AggregationResult:
        """Fetch clicks, impressions, CTR and position folded into periods.

        Args:
            config: Report configuration (see report()).
            keywords: Restrict to these queries.
            urls: Restrict to these pages.
            resolution: Period size (daily, weekly, monthly, allover).

        Returns:
            AggregationResult with one entry per period.
        """
        return self._search_analytics_service.search_performance(
            config, keywords=keywords, urls=urls, resolution=resolution
        )

    # =========================================================================
    # TUNING & THROUGHPUT
    # =========================================================================

    @property
    def batch_size(self) -> int:
        """Logical queries per batch call (1..1000)."""
        return self._batch_size

    @batch_size.setter
    def batch_size(self, value: int) -> None:
        self._batch_size = validate_batch_size(value)
        if self._scheduler is not None:
            self._scheduler.batch_size = value

    @property
    def total_queries(self) -> int:
        """Logical queries sent since the client was created."""
        return self._counter.total

    @property
    def queries_per_second(self) -> float:
        """Average logical queries per second since the client was created."""
        return self._counter.rate()

    def throughput(self) -> ThroughputInfo:
        """Snapshot of the query counter and batch size."""
        return ThroughputInfo(
            total_queries=self.total_queries,
            queries_per_second=self.queries_per_second,
            batch_size=self.batch_size,
        )
