"""Construction of logical Search Analytics queries.

Pure functions: given a ReportConfig and the report shape, build the
immutable SearchAnalyticsQuery that the scheduler dispatches. All argument
validation happens here, before any network activity.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from gsc_data.enums import (
    AggregationType,
    DataState,
    Dimension,
    DimensionLike,
    parse_dimension,
)
from gsc_data.report_config import ReportConfig
from gsc_data.types import DimensionFilterGroup, SearchAnalyticsQuery

# Rows per day when the caller does not ask for a specific number
DEFAULT_ROWS_PER_DAY = 5000

# Upstream maximum for rowLimit
MAX_ROWS_PER_REQUEST = 25000


def normalize_row_limit(row_limit: int | None) -> int:
    """Clamp a requested row limit into the range upstream accepts.

    Args:
        row_limit: Requested rows, or None for the default of 5000.

    Returns:
        0 for non-positive requests, otherwise at most 25000.
    """
    if row_limit is None:
        row_limit = DEFAULT_ROWS_PER_DAY
    if row_limit <= 0:
        return 0
    return min(row_limit, MAX_ROWS_PER_REQUEST)


def config_filter_groups(config: ReportConfig) -> list[DimensionFilterGroup]:
    """Translate the config's country and device into filter groups."""
    groups: list[DimensionFilterGroup] = []
    if config.country is not None:
        groups.append(DimensionFilterGroup.single(Dimension.COUNTRY, config.country))
    if config.device is not None:
        groups.append(
            DimensionFilterGroup.single(Dimension.DEVICE, config.device.value)
        )
    return groups


def build_query(
    config: ReportConfig,
    dimensions: Sequence[DimensionLike | str],
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    row_limit: int | None = None,
    start_row: int | None = None,
    aggregation_type: AggregationType | None = None,
    data_state: DataState | None = None,
    filters: Sequence[DimensionFilterGroup] | None = None,
) -> SearchAnalyticsQuery:
    """Build one logical query from a report config.

    Args:
        config: Property, window and filters of the report.
        dimensions: Grouping dimensions, in order (at least one).
        start_date: First day (defaults to the config's start).
        end_date: Last day (defaults to the config's end).
        row_limit: Rows to request (see normalize_row_limit).
        start_row: Zero-based row offset for paging.
        aggregation_type: Aggregation mode (defaults to auto).
        data_state: Freshness mode (defaults to the config's).
        filters: Extra filter groups, appended after the config's.

    Returns:
        Immutable SearchAnalyticsQuery.

    Raises:
        ValueError: If dimensions are empty or invalid, the window is
            inverted, or start_row is negative.

    Example:
        ```python
        query = build_query(
            config,
            [Dimension.DATE, Dimension.QUERY],
            start_date=day,
            end_date=day,
            aggregation_type=AggregationType.BY_PROPERTY,
        )
        ```
    """
    if not dimensions:
        raise ValueError("At least one dimension must be provided")
    parsed = tuple(parse_dimension(d) for d in dimensions)

    start = start_date or config.start_date
    end = end_date or config.end_date
    if start > end:
        raise ValueError(f"start_date {start} is after end_date {end}")

    if start_row is not None and start_row < 0:
        raise ValueError("start_row must be non-negative")

    groups = config_filter_groups(config)
    if filters:
        groups.extend(filters)

    return SearchAnalyticsQuery(
        site_url=config.site_url,
        start_date=start,
        end_date=end,
        dimensions=parsed,
        row_limit=normalize_row_limit(row_limit),
        start_row=start_row,
        aggregation_type=aggregation_type or AggregationType.AUTO,
        filter_groups=tuple(groups),
        search_type=config.search_type,
        data_state=data_state or config.data_state,
    )
