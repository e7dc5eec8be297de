"""Client-side re-bucketing of per-day Search Analytics rows.

Rows fetched per day can be folded into weekly, monthly or whole-window
periods. Average position is recombined through ``sum_top_position`` so
the result equals the impressions-weighted average of the merged rows.

Example:
    ```python
    rows = client.top_queries_by_day(config)
    result = aggregate_rows(rows, TimeframeResolution.MONTHLY)
    print(result.df[["date", "clicks", "position"]])
    ```
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

import pandas as pd

from gsc_data.enums import Metric
from gsc_data.types import SearchAnalyticsRow

ALLOVER_KEY = "allover"


class TimeframeResolution(StrEnum):
    """Period size rows are folded into."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALLOVER = "allover"


def period_key(day: date | str, resolution: TimeframeResolution) -> str:
    """Label of the period a day belongs to.

    Args:
        day: Date or ISO date string.
        resolution: Period size.

    Returns:
        ``YYYY-MM-DD`` (daily), ``YYYY-CWnn`` (ISO week), ``YYYY-MM``
        (monthly) or ``allover``.
    """
    if resolution == TimeframeResolution.ALLOVER:
        return ALLOVER_KEY
    if isinstance(day, str):
        day = date.fromisoformat(day)
    if resolution == TimeframeResolution.WEEKLY:
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-CW{iso_week:02d}"
    if resolution == TimeframeResolution.MONTHLY:
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


@dataclass(frozen=True)
class AggregatedPeriod:
    """Metrics of one period.

    Attributes:
        period: Period label (see period_key).
        clicks: Summed clicks.
        impressions: Summed impressions.
        sum_top_position: Summed position offsets, weighted by impressions.
        count: Number of rows merged.
        keys: Distinct secondary keys (query or URL) seen, in first-seen order.
    """

    period: str
    clicks: int
    impressions: int
    sum_top_position: float
    count: int
    keys: tuple[str, ...] = ()

    @property
    def ctr(self) -> float:
        """Click-through rate (0.0 without impressions)."""
        return self.clicks / self.impressions if self.impressions else 0.0

    @property
    def position(self) -> float:
        """Impressions-weighted average position (0.0 without impressions)."""
        if not self.impressions:
            return 0.0
        return self.sum_top_position / self.impressions + 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        result: dict[str, Any] = {
            Metric.DATE.value: self.period,
            Metric.CLICKS.value: self.clicks,
            Metric.IMPRESSIONS.value: self.impressions,
            Metric.CTR.value: self.ctr,
            Metric.POSITION.value: self.position,
            Metric.COUNT.value: self.count,
        }
        if self.keys:
            result[Metric.KEYS.value] = list(self.keys)
        return result


@dataclass(frozen=True)
class AggregationResult:
    """Periods produced by aggregate_rows, in first-seen order."""

    resolution: TimeframeResolution
    periods: list[AggregatedPeriod]
    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self) -> Iterator[AggregatedPeriod]:
        return iter(self.periods)

    @property
    def df(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per period.

        Conversion is lazy - computed on first access and cached.
        """
        if self._df_cache is not None:
            return self._df_cache

        columns = [
            Metric.DATE.value,
            Metric.CLICKS.value,
            Metric.IMPRESSIONS.value,
            Metric.CTR.value,
            Metric.POSITION.value,
            Metric.COUNT.value,
        ]
        result_df = (
            pd.DataFrame([p.to_dict() for p in self.periods])
            if self.periods
            else pd.DataFrame(columns=columns)
        )

        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "resolution": self.resolution.value,
            "periods": [p.to_dict() for p in self.periods],
        }


class _Accumulator:
    def __init__(self, period: str) -> None:
        self.period = period
        self.clicks = 0
        self.impressions = 0
        self.sum_top_position = 0.0
        self.count = 0
        self.keys: dict[str, None] = {}

    def add(self, row: SearchAnalyticsRow) -> None:
        self.clicks += row.clicks
        self.impressions += row.impressions
        self.sum_top_position += row.sum_top_position
        self.count += 1
        key = row.query if row.query is not None else row.url
        if key is not None:
            self.keys.setdefault(key)

    def freeze(self) -> AggregatedPeriod:
        return AggregatedPeriod(
            period=self.period,
            clicks=self.clicks,
            impressions=self.impressions,
            sum_top_position=self.sum_top_position,
            count=self.count,
            keys=tuple(self.keys),
        )


def aggregate_rows(
    rows: Iterable[SearchAnalyticsRow],
    resolution: TimeframeResolution = TimeframeResolution.DAILY,
) -> AggregationResult:
    """Fold rows into periods.

    Consumes the iterable once; only one accumulator per period is kept.

    Args:
        rows: Rows to fold (typically a report stream).
        resolution: Period size.

    Returns:
        AggregationResult with one AggregatedPeriod per period seen.
    """
    groups: dict[str, _Accumulator] = {}
    for row in rows:
        key = period_key(row.data_date, resolution)
        accumulator = groups.get(key)
        if accumulator is None:
            accumulator = groups[key] = _Accumulator(key)
        accumulator.add(row)
    return AggregationResult(
        resolution=resolution,
        periods=[acc.freeze() for acc in groups.values()],
    )


def rows_to_dataframe(rows: Iterable[SearchAnalyticsRow]) -> pd.DataFrame:
    """Materialize rows into a DataFrame (one column per row field).

    Args:
        rows: Rows to collect.

    Returns:
        DataFrame in the row's to_dict() column layout.
    """
    records = [row.to_dict() for row in rows]
    if not records:
        return pd.DataFrame(
            columns=[
                "data_date",
                "site_url",
                "query",
                "url",
                "country",
                "device",
                "impressions",
                "clicks",
                "position",
                "sum_top_position",
            ]
        )
    return pd.DataFrame(records)
