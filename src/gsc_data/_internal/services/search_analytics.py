"""Search Analytics Service for per-day report streams.

Builds one logical query per day of a report window, runs them through
the batch scheduler and streams normalized rows back to the caller. Every
call builds fresh generators, so two calls never share a cursor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from datetime import date
from typing import TYPE_CHECKING, Any

from gsc_data._internal.query_builder import (
    MAX_ROWS_PER_REQUEST,
    build_query,
    normalize_row_limit,
)
from gsc_data._internal.transforms import normalize_rows
from gsc_data.aggregation import AggregationResult, TimeframeResolution, aggregate_rows
from gsc_data.enums import AggregationType, Dimension, FilterOperator, GroupType
from gsc_data.report_config import ReportConfig
from gsc_data.types import (
    DimensionFilter,
    DimensionFilterGroup,
    SearchAnalyticsQuery,
    SearchAnalyticsRow,
)

if TYPE_CHECKING:
    from gsc_data._internal.api_client import SearchConsoleAPIClient
    from gsc_data._internal.batch_scheduler import BatchScheduler

_logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseException, Any], None]

TOP_QUERIES_DIMENSIONS = (Dimension.DATE, Dimension.QUERY)
TOP_PAGES_DIMENSIONS = (Dimension.DATE, Dimension.PAGE)
TOP_PAGES_QUERIES_DIMENSIONS = (Dimension.DATE, Dimension.PAGE, Dimension.QUERY)
PERFORMANCE_DIMENSIONS = (
    Dimension.DATE,
    Dimension.PAGE,
    Dimension.QUERY,
    Dimension.COUNTRY,
    Dimension.DEVICE,
)


def _log_error(error: BaseException, item: Any) -> None:
    _logger.error("Dropping data for %s: %s", item, error)


class SearchAnalyticsService:
    """Per-day Search Analytics report streams.

    Configuration errors (bad dimensions, inverted windows, invalid page
    sizes) are raised when the method is called; network activity starts
    only when the returned iterator is pulled.

    Example:
        ```python
        service = SearchAnalyticsService(api_client, scheduler)
        for row in service.top_queries_by_day(config, max_rows_per_day=100):
            print(row.data_date, row.query, row.clicks)
        ```
    """

    def __init__(
        self,
        api_client: SearchConsoleAPIClient,
        scheduler: BatchScheduler,
    ) -> None:
        """Initialize the service.

        Args:
            api_client: Client used for direct (non-batched) queries.
            scheduler: Scheduler used for per-day batched queries.
        """
        self._api_client = api_client
        self._scheduler = scheduler

    # =========================================================================
    # Top-N by day
    # =========================================================================

    def top_by_day(
        self,
        config: ReportConfig,
        dimensions: Sequence[Dimension],
        aggregation_type: AggregationType,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top rows of every day in the window.

        Args:
            config: Property, window and filters.
            dimensions: Dimensions, starting with date.
            aggregation_type: Upstream aggregation mode.
            max_rows_per_day: Rows per day (default 5000, max 25000).
            on_error: Receives ``(error, day)`` for dropped days and rows.

        Returns:
            Lazy iterator of rows, day by day.
        """
        row_limit = normalize_row_limit(max_rows_per_day)

        def build(day: date) -> SearchAnalyticsQuery:
            return build_query(
                config,
                dimensions,
                start_date=day,
                end_date=day,
                row_limit=row_limit,
                aggregation_type=aggregation_type,
            )

        # Surface configuration errors before the first pull
        build(config.start_date)
        return self._stream(config, config.dates(), build, dimensions, on_error)

    def top_queries_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top queries of every day (aggregated by property)."""
        return self.top_by_day(
            config,
            TOP_QUERIES_DIMENSIONS,
            AggregationType.BY_PROPERTY,
            max_rows_per_day,
            on_error=on_error,
        )

    def top_pages_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top pages of every day (aggregated by page)."""
        return self.top_by_day(
            config,
            TOP_PAGES_DIMENSIONS,
            AggregationType.BY_PAGE,
            max_rows_per_day,
            on_error=on_error,
        )

    def top_pages_with_queries_by_day(
        self,
        config: ReportConfig,
        max_rows_per_day: int | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream the top page/query pairs of every day (aggregated by page)."""
        return self.top_by_day(
            config,
            TOP_PAGES_QUERIES_DIMENSIONS,
            AggregationType.BY_PAGE,
            max_rows_per_day,
            on_error=on_error,
        )

    # =========================================================================
    # Itemized report
    # =========================================================================

    def search_performance_by_page(
        self,
        config: ReportConfig,
        *,
        page_size: int = MAX_ROWS_PER_REQUEST,
        on_error: ErrorCallback | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        """Stream every date/page/query/country/device row of the window.

        Each day is paged through ``start_row`` until it returns fewer rows
        than the page size. Every paging pass covers only the days that
        filled their previous page.

        Args:
            config: Property, window and filters.
            page_size: Rows per request (1..25000).
            on_error: Receives ``(error, day)`` for dropped pages and rows.

        Returns:
            Lazy iterator of rows.

        Raises:
            ValueError: If page_size is out of range.
        """
        if not 1 <= page_size <= MAX_ROWS_PER_REQUEST:
            raise ValueError(
                f"page_size must be between 1 and {MAX_ROWS_PER_REQUEST}, got {page_size}"
            )
        build_query(
            config,
            PERFORMANCE_DIMENSIONS,
            row_limit=page_size,
            start_row=0,
            aggregation_type=AggregationType.BY_PAGE,
        )
        return self._paged_stream(config, page_size, on_error)

    def _paged_stream(
        self,
        config: ReportConfig,
        page_size: int,
        on_error: ErrorCallback | None,
    ) -> Iterator[SearchAnalyticsRow]:
        days = config.dates()
        start_row = 0
        while days:
            rows_by_day: dict[date, int] = {}
            yield from self._page_pass(
                config, days, start_row, page_size, rows_by_day, on_error
            )
            days = [day for day in days if rows_by_day.get(day, 0) >= page_size]
            start_row += page_size
            if days:
                _logger.debug(
                    "%d day(s) filled their page, fetching rows from %d",
                    len(days),
                    start_row,
                )

    def _page_pass(
        self,
        config: ReportConfig,
        days: list[date],
        start_row: int,
        page_size: int,
        rows_by_day: dict[date, int],
        on_error: ErrorCallback | None,
    ) -> Iterator[SearchAnalyticsRow]:
        def build(day: date) -> SearchAnalyticsQuery:
            return build_query(
                config,
                PERFORMANCE_DIMENSIONS,
                start_date=day,
                end_date=day,
                row_limit=page_size,
                start_row=start_row,
                aggregation_type=AggregationType.BY_PAGE,
            )

        def count(day: date, payload: dict[str, Any]) -> None:
            rows_by_day[day] = len(payload.get("rows") or [])

        return self._stream(
            config, days, build, PERFORMANCE_DIMENSIONS, on_error, observe=count
        )

    # =========================================================================
    # Aggregated performance
    # =========================================================================

    def search_performance(
        self,
        config: ReportConfig,
        *,
        keywords: Sequence[str] | None = None,
        urls: Sequence[str] | None = None,
        resolution: TimeframeResolution = TimeframeResolution.DAILY,
    ) -> AggregationResult:
        """Fetch performance over the window folded into periods.

        One direct query covers the whole window. Keyword and URL lists
        become ``or`` groups of exact-match filters and add the matching
        dimension, whose values are collected per period.

        Args:
            config: Property, window and filters.
            keywords: Queries to restrict to.
            urls: Page URLs to restrict to.
            resolution: Period size.

        Returns:
            AggregationResult with one entry per period.
        """
        dimensions: list[Dimension] = [Dimension.DATE]
        filters: list[DimensionFilterGroup] = []
        if keywords:
            filters.append(_any_of(Dimension.QUERY, keywords))
            dimensions = [Dimension.DATE, Dimension.QUERY]
        if urls:
            filters.append(_any_of(Dimension.PAGE, urls))
            dimensions = [Dimension.DATE, Dimension.PAGE]

        query = build_query(
            config,
            dimensions,
            row_limit=MAX_ROWS_PER_REQUEST,
            filters=filters,
        )
        payload = self._api_client.query(query.site_url, query.to_request_body())
        rows = normalize_rows(
            payload,
            site_url=query.site_url,
            dimensions=query.dimensions,
            on_error=lambda e: _log_error(e, query.start_date),
        )
        return aggregate_rows(rows, resolution)

    # =========================================================================
    # Shared streaming
    # =========================================================================

    def _stream(
        self,
        config: ReportConfig,
        days: list[date],
        build: Callable[[date], SearchAnalyticsQuery],
        dimensions: Sequence[Dimension],
        on_error: ErrorCallback | None,
        observe: Callable[[date, dict[str, Any]], None] | None = None,
    ) -> Iterator[SearchAnalyticsRow]:
        report = on_error or _log_error
        day_by_id: dict[str, date] = {}

        def build_request(day: date) -> SearchAnalyticsQuery:
            query = build(day)
            day_by_id[query.request_id] = day
            return query

        def handle_response(
            payload: dict[str, Any], request_id: str
        ) -> list[SearchAnalyticsRow]:
            day = day_by_id.pop(request_id)
            if observe is not None:
                observe(day, payload)
            return list(
                normalize_rows(
                    payload,
                    site_url=config.site_url,
                    dimensions=dimensions,
                    on_error=lambda e: report(e, day),
                )
            )

        for rows in self._scheduler.run(days, build_request, handle_response, report):
            yield from rows


def _any_of(dimension: Dimension, values: Sequence[str]) -> DimensionFilterGroup:
    return DimensionFilterGroup(
        filters=tuple(
            DimensionFilter(dimension, value, FilterOperator.EQUALS) for value in values
        ),
        group_type=GroupType.OR,
    )
