"""
gsc_data - Python library for retrieving Google Search Console data.

Streams per-day Search Analytics reports through batched, throttled calls
that stay inside the API quota, with memory use independent of report size.
"""

from gsc_data.aggregation import (
    AggregatedPeriod,
    AggregationResult,
    TimeframeResolution,
    aggregate_rows,
    period_key,
    rows_to_dataframe,
)
from gsc_data.client import GscClient
from gsc_data.enums import (
    AggregationType,
    DataState,
    DeviceType,
    Dimension,
    FilterOperator,
    GroupType,
    Metric,
    RawField,
)
from gsc_data.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    APIError,
    AuthenticationError,
    BatchItemFailedError,
    ConfigError,
    GscDataError,
    MalformedRowError,
    PropertyNotAccessibleError,
    QueryError,
    QuotaExceededError,
    RateLimitError,
    ServerError,
    TransportError,
)
from gsc_data.report_config import ReportConfig
from gsc_data.types import (
    DimensionFilter,
    DimensionFilterGroup,
    PropertyInfo,
    SearchAnalyticsQuery,
    SearchAnalyticsRow,
    ThroughputInfo,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "GscClient",
    "ReportConfig",
    # Enums
    "AggregationType",
    "DataState",
    "DeviceType",
    "Dimension",
    "FilterOperator",
    "GroupType",
    "Metric",
    "RawField",
    # Exceptions
    "GscDataError",
    "ConfigError",
    "AccountNotFoundError",
    "AccountExistsError",
    "PropertyNotAccessibleError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "QuotaExceededError",
    "QueryError",
    "ServerError",
    "TransportError",
    "BatchItemFailedError",
    "MalformedRowError",
    # Query and result types
    "DimensionFilter",
    "DimensionFilterGroup",
    "SearchAnalyticsQuery",
    "SearchAnalyticsRow",
    "PropertyInfo",
    "ThroughputInfo",
    # Aggregation
    "AggregatedPeriod",
    "AggregationResult",
    "TimeframeResolution",
    "aggregate_rows",
    "period_key",
    "rows_to_dataframe",
]
