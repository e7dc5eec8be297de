"""Closed value sets for Search Console request fields.

Each category is a StrEnum whose value is the exact upstream string, so
members serialize directly into request bodies. RawField is the escape
hatch for upstream dimensions this package does not model yet.

Example:
    from gsc_data import Dimension, RawField

    dims = [Dimension.DATE, Dimension.QUERY, RawField("hour")]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Dimension(StrEnum):
    """Grouping dimensions for Search Analytics queries."""

    DATE = "date"
    QUERY = "query"
    PAGE = "page"
    COUNTRY = "country"
    DEVICE = "device"
    SEARCH_APPEARANCE = "searchAppearance"


class AggregationType(StrEnum):
    """How upstream aggregates rows (by property or by canonical page)."""

    AUTO = "auto"
    BY_PAGE = "byPage"
    BY_PROPERTY = "byProperty"
    BY_NEWS_SHOWCASE_PANEL = "byNewsShowcasePanel"


class DataState(StrEnum):
    """Data freshness mode.

    FINAL returns only complete data (upstream default). ALL includes
    fresh, still-incomplete data. HOURLY_ALL is for hourly breakdowns.
    """

    FINAL = "final"
    ALL = "all"
    HOURLY_ALL = "hourly_all"


class DeviceType(StrEnum):
    """Device filter values."""

    DESKTOP = "DESKTOP"
    MOBILE = "MOBILE"
    TABLET = "TABLET"


class FilterOperator(StrEnum):
    """Dimension filter operators."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    INCLUDING_REGEX = "includingRegex"
    EXCLUDING_REGEX = "excludingRegex"


class GroupType(StrEnum):
    """How filters inside one filter group combine."""

    AND = "and"
    OR = "or"


class Metric(StrEnum):
    """Column names of aggregated performance output.

    COUNT is not an upstream metric; it counts the rows merged into a period.
    """

    CLICKS = "clicks"
    IMPRESSIONS = "impressions"
    CTR = "ctr"
    POSITION = "position"
    DATE = "date"
    KEYS = "keys"
    COUNT = "count"


@dataclass(frozen=True)
class RawField:
    """Raw upstream field name not covered by the enums.

    Attributes:
        value: Field name sent verbatim (case preserved).
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("RawField value cannot be empty")

    def __str__(self) -> str:
        return self.value


DimensionLike = Dimension | RawField
"""A modelled dimension or a raw upstream field name."""


def parse_dimension(value: Dimension | RawField | str) -> Dimension | RawField:
    """Coerce a value into a Dimension or RawField.

    Plain strings must match a Dimension value exactly; use RawField for
    anything else.

    Args:
        value: Dimension, RawField, or dimension string.

    Returns:
        The parsed dimension.

    Raises:
        ValueError: If a string does not name a known dimension.
    """
    if isinstance(value, Dimension | RawField):
        return value
    if isinstance(value, str):
        try:
            return Dimension(value)
        except ValueError:
            valid = ", ".join(d.value for d in Dimension)
            raise ValueError(
                f"Unknown dimension {value!r}. Valid: {valid}. "
                "Wrap other upstream fields in RawField."
            ) from None
    raise ValueError(
        f"Dimensions must be Dimension, RawField or str, got {type(value).__name__}"
    )


__all__ = [
    "AggregationType",
    "DataState",
    "DeviceType",
    "Dimension",
    "DimensionLike",
    "FilterOperator",
    "GroupType",
    "Metric",
    "RawField",
    "parse_dimension",
]
