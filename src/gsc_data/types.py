"""Query and result types for gsc_data operations.

All types are immutable frozen dataclasses with:
- JSON serialization via the `to_dict()` method (all values JSON-serializable)
- Full type hints for IDE/mypy support

Immutability: These dataclasses are frozen, meaning their attributes cannot be
modified after construction. Queries are shared across scheduler passes and
rows are handed to consumers as is.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import date
from typing import Any

from gsc_data.enums import (
    AggregationType,
    DataState,
    Dimension,
    FilterOperator,
    GroupType,
    RawField,
)

# =============================================================================
# Filters
# =============================================================================


@dataclass(frozen=True)
class DimensionFilter:
    """A single dimension filter.

    Attributes:
        dimension: Dimension to filter on.
        expression: Value or pattern to compare against.
        operator: Comparison operator (default equals).
    """

    dimension: Dimension | RawField
    expression: str
    operator: FilterOperator = FilterOperator.EQUALS

    def to_dict(self) -> dict[str, str]:
        """Serialize to the upstream filter shape."""
        return {
            "dimension": str(self.dimension),
            "operator": str(self.operator),
            "expression": self.expression,
        }


@dataclass(frozen=True)
class DimensionFilterGroup:
    """Filters combined with one group type.

    Attributes:
        filters: Filters in the group.
        group_type: How the filters combine (default and).
    """

    filters: tuple[DimensionFilter, ...]
    group_type: GroupType = GroupType.AND

    @classmethod
    def single(
        cls,
        dimension: Dimension | RawField,
        expression: str,
        operator: FilterOperator = FilterOperator.EQUALS,
    ) -> DimensionFilterGroup:
        """Build an ``and`` group holding one filter.

        Args:
            dimension: Dimension to filter on.
            expression: Value to compare against.
            operator: Comparison operator.

        Returns:
            A filter group with a single filter.
        """
        return cls(filters=(DimensionFilter(dimension, expression, operator),))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the upstream filter group shape."""
        return {
            "groupType": str(self.group_type),
            "filters": [f.to_dict() for f in self.filters],
        }


# =============================================================================
# Logical query
# =============================================================================


@dataclass(frozen=True)
class SearchAnalyticsQuery:
    """One logical Search Analytics query, prior to batching.

    Built by the request builder; never mutated afterwards. A query always
    targets one property and one date span; batching never splits it.

    Attributes:
        site_url: Property URL (e.g. 'https://example.com/' or 'sc-domain:example.com').
        start_date: First day of the span (inclusive).
        end_date: Last day of the span (inclusive).
        dimensions: Ordered grouping dimensions.
        row_limit: Maximum rows to return (row window size).
        start_row: Zero-based row offset, or None for the first page.
        aggregation_type: Upstream aggregation mode.
        filter_groups: Dimension filter groups.
        search_type: Search type ('WEB', 'IMAGE', ...), or None for upstream default.
        data_state: Freshness mode, or None for upstream default (final).
    """

    site_url: str
    start_date: date
    end_date: date
    dimensions: tuple[Dimension | RawField, ...]
    row_limit: int
    start_row: int | None = None
    aggregation_type: AggregationType = AggregationType.AUTO
    filter_groups: tuple[DimensionFilterGroup, ...] = ()
    search_type: str | None = None
    data_state: DataState | None = None

    def to_request_body(self) -> dict[str, Any]:
        """Serialize to the upstream searchAnalytics/query JSON body.

        Returns:
            Request body dict with only the fields that are set.
        """
        body: dict[str, Any] = {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "dimensions": [str(d) for d in self.dimensions],
            "aggregationType": str(self.aggregation_type),
            "rowLimit": self.row_limit,
        }
        if self.start_row is not None:
            body["startRow"] = self.start_row
        if self.filter_groups:
            body["dimensionFilterGroups"] = [g.to_dict() for g in self.filter_groups]
        if self.search_type is not None:
            body["type"] = self.search_type
        if self.data_state is not None:
            body["dataState"] = str(self.data_state)
        return body

    @property
    def request_id(self) -> str:
        """Deterministic identity of the query.

        A digest of the property and the canonical (sorted-key) request
        body. Equal queries share an id, which doubles as the correlation
        id inside batch calls.
        """
        canonical = json.dumps(
            {"siteUrl": self.site_url, "body": self.to_request_body()},
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.blake2b(canonical.encode(), digest_size=16).hexdigest()


# =============================================================================
# Result rows
# =============================================================================


@dataclass(frozen=True, slots=True)
class SearchAnalyticsRow:
    """One normalized Search Analytics result row.

    Grouping keys that were not requested are None. ``sum_top_position``
    is ``(position - 1) * impressions``; summing it over merged rows and
    dividing by summed impressions, plus one, gives the impressions
    weighted average position.

    Attributes:
        data_date: Day of the row (YYYY-MM-DD).
        site_url: Property URL the row belongs to.
        query: Search query text, if requested.
        url: Page URL, if requested.
        country: ISO-3166-1 alpha-3 country code (lowercase upstream), if requested.
        device: Device category, if requested.
        impressions: Impression count.
        clicks: Click count.
        position: Average 1-based position.
        sum_top_position: Position sum relative to the top, weighted by impressions.
    """

    data_date: str
    site_url: str
    impressions: int
    clicks: int
    position: float
    sum_top_position: float
    query: str | None = None
    url: str | None = None
    country: str | None = None
    device: str | None = None

    @property
    def ctr(self) -> float:
        """Click-through rate (0.0 when there were no impressions)."""
        return self.clicks / self.impressions if self.impressions else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize row for JSON output.

        Returns:
            Dictionary in the searchdata_site_impression column layout.
        """
        return {
            "data_date": self.data_date,
            "site_url": self.site_url,
            "query": self.query,
            "url": self.url,
            "country": self.country,
            "device": self.device,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "position": self.position,
            "sum_top_position": self.sum_top_position,
        }


# =============================================================================
# Properties
# =============================================================================


@dataclass(frozen=True)
class PropertyInfo:
    """A Search Console property visible to the authenticated user.

    Attributes:
        site_url: Property URL.
        permission_level: Upstream permission level (e.g. 'siteOwner').
    """

    site_url: str
    permission_level: str

    @property
    def is_domain_property(self) -> bool:
        """Whether this is a domain property (``sc-domain:`` prefix)."""
        return self.site_url.startswith("sc-domain:")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "site_url": self.site_url,
            "permission_level": self.permission_level,
            "is_domain_property": self.is_domain_property,
        }


@dataclass(frozen=True)
class ThroughputInfo:
    """Query throughput observed by a client.

    Attributes:
        total_queries: Logical queries sent over the client lifetime.
        queries_per_second: Average rate since the client was created.
        batch_size: Current scheduler batch size.
    """

    total_queries: int
    queries_per_second: float
    batch_size: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "total_queries": self.total_queries,
            "queries_per_second": self.queries_per_second,
            "batch_size": self.batch_size,
        }
