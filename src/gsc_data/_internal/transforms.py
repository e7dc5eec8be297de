"""Conversion of raw Search Analytics pages into result rows.

Upstream rows carry their grouping values positionally in ``keys`` (in the
order the dimensions were requested) next to the metrics. These functions
map them onto SearchAnalyticsRow, one row at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from gsc_data.enums import Dimension, DimensionLike
from gsc_data.exceptions import MalformedRowError
from gsc_data.types import SearchAnalyticsRow

logger = logging.getLogger(__name__)

REQUIRED_METRICS = ("impressions", "clicks", "position")

# Row field each modelled dimension lands in
_FIELD_FOR_DIMENSION: dict[Dimension, str] = {
    Dimension.QUERY: "query",
    Dimension.PAGE: "url",
    Dimension.COUNTRY: "country",
    Dimension.DEVICE: "device",
}


def sum_top_position(position: float, impressions: int) -> float:
    """Position relative to the top, weighted by impressions.

    ``(position - 1) * impressions``; summed over rows and divided by the
    summed impressions, plus one, it recovers the weighted average position.
    """
    return (position - 1) * impressions


def _primary_dimension(dimensions: Sequence[DimensionLike]) -> DimensionLike | None:
    for dimension in dimensions:
        if dimension != Dimension.DATE:
            return dimension
    return None


def transform_row(
    raw: dict[str, Any],
    *,
    site_url: str,
    dimensions: Sequence[DimensionLike],
) -> SearchAnalyticsRow | None:
    """Transform one upstream row.

    Args:
        raw: Upstream row (``keys``, ``clicks``, ``impressions``, ``ctr``, ``position``).
        site_url: Property the row belongs to.
        dimensions: Dimensions requested, in order.

    Returns:
        The normalized row, or None if the primary grouping key is missing.

    Raises:
        MalformedRowError: If the date or a metric is missing.
    """
    keys = raw.get("keys")
    if not isinstance(keys, list):
        keys = []
    values: dict[DimensionLike, Any] = {
        dimension: keys[i] if i < len(keys) else None
        for i, dimension in enumerate(dimensions)
    }

    missing = [metric for metric in REQUIRED_METRICS if raw.get(metric) is None]
    if not values.get(Dimension.DATE):
        missing.insert(0, "date")
    if missing:
        raise MalformedRowError(raw, missing)

    primary = _primary_dimension(dimensions)
    if primary is not None and values.get(primary) in (None, ""):
        logger.warning(
            "Skipping row for %s without %s: %r", values[Dimension.DATE], primary, raw
        )
        return None

    impressions = int(raw["impressions"])
    position = float(raw["position"])
    fields = {
        name: values.get(dimension)
        for dimension, name in _FIELD_FOR_DIMENSION.items()
    }
    return SearchAnalyticsRow(
        data_date=str(values[Dimension.DATE]),
        site_url=site_url,
        impressions=impressions,
        clicks=int(raw["clicks"]),
        position=position,
        sum_top_position=sum_top_position(position, impressions),
        **fields,
    )


def normalize_rows(
    payload: dict[str, Any],
    *,
    site_url: str,
    dimensions: Sequence[DimensionLike],
    on_error: Callable[[MalformedRowError], None] | None = None,
) -> Iterator[SearchAnalyticsRow]:
    """Lazily normalize the rows of one upstream page.

    Args:
        payload: Raw searchAnalytics/query response.
        site_url: Property the rows belong to.
        dimensions: Dimensions requested, in order.
        on_error: Receives rows missing their date or a metric. If None,
            the MalformedRowError is raised.

    Yields:
        SearchAnalyticsRow per usable upstream row, in upstream order.

    Raises:
        MalformedRowError: For a malformed row when no on_error is given.
    """
    rows = payload.get("rows") or []
    for raw in rows:
        try:
            row = transform_row(raw, site_url=site_url, dimensions=dimensions)
        except MalformedRowError as e:
            if on_error is None:
                raise
            on_error(e)
            continue
        if row is not None:
            yield row
