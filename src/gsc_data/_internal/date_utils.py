"""Date utilities for per-day report fetching.

Search Analytics reports are fetched as one logical query per day; these
helpers enumerate the days of a window and resolve default windows.
"""

from __future__ import annotations

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

# Search Console keeps roughly 16 months of data; an 18 month lookback
# covers the oldest available day.
DEFAULT_LOOKBACK_MONTHS = 18


def parse_date(value: date | str) -> date:
    """Parse a YYYY-MM-DD string (dates pass through).

    Args:
        value: Date or ISO date string.

    Returns:
        The parsed date.

    Raises:
        ValueError: If the string is not in YYYY-MM-DD format.
    """
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Invalid date format. Expected YYYY-MM-DD, got {value!r}") from e


def dates_in_range(start: date, end: date) -> list[date]:
    """List every day between start and end (inclusive), ascending.

    Args:
        start: First day.
        end: Last day.

    Returns:
        List of days; empty if start is after end.

    Example:
        ```python
        dates_in_range(date(2024, 1, 30), date(2024, 2, 1))
        # [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1)]
        ```
    """
    days: list[date] = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def subtract_months(day: date, months: int) -> date:
    """Move a date back by whole calendar months.

    The day of month is clamped to the length of the target month
    (2024-03-31 minus one month is 2024-02-29).

    Args:
        day: Starting date.
        months: Number of months to go back (non-negative).

    Returns:
        The shifted date.
    """
    if months < 0:
        raise ValueError("months must be non-negative")
    result: date = day - relativedelta(months=months)
    return result


def default_discovery_window(
    start: date | None,
    end: date | None,
    *,
    today: date | None = None,
) -> tuple[date, date]:
    """Resolve the window used to discover the first day with data.

    Missing end defaults to today; missing start defaults to 18 months
    before the end.

    Args:
        start: Explicit start, or None.
        end: Explicit end, or None.
        today: Reference day (defaults to date.today()).

    Returns:
        (start, end) tuple.
    """
    resolved_end = end or today or date.today()
    resolved_start = start or subtract_months(resolved_end, DEFAULT_LOOKBACK_MONTHS)
    return resolved_start, resolved_end
