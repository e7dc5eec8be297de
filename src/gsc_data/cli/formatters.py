"""Output formatters for CLI commands.

This module provides formatting functions for different output formats:
- JSON: Pretty-printed JSON
- JSONL: Newline-delimited JSON (one object per line)
- Table: Rich ASCII table
- CSV: Comma-separated values with headers
- Plain: Minimal text output (one item per line)
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime
from typing import Any

from rich.table import Table

# Keys printed by plain output, most specific first
_PLAIN_KEYS = ("query", "url", "site_url", "date", "name", "value")


def _json_serializer(obj: Any) -> str:
    """Custom JSON serializer for non-standard types."""
    if isinstance(obj, datetime | date):
        return obj.isoformat()
    return str(obj)


def format_json(data: dict[str, Any] | list[Any]) -> str:
    """Format data as pretty-printed JSON with 2-space indentation."""
    return json.dumps(data, indent=2, default=_json_serializer, ensure_ascii=False)


def format_jsonl(data: dict[str, Any] | list[Any]) -> str:
    """Format data as newline-delimited JSON.

    Lists produce one object per line; a dict produces a single line.
    """
    if isinstance(data, list):
        return "\n".join(
            json.dumps(item, default=_json_serializer, ensure_ascii=False)
            for item in data
        )
    return json.dumps(data, default=_json_serializer, ensure_ascii=False)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:.4g}"
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, list | dict):
        return json.dumps(value, default=_json_serializer, ensure_ascii=False)
    return str(value)


def format_table(
    data: dict[str, Any] | list[Any],
    columns: list[str] | None = None,
) -> Table:
    """Format data as a Rich table.

    Args:
        data: Dict or list of dicts.
        columns: Columns to display (default: keys of the first item).

    Returns:
        Rich Table object ready for printing.
    """
    table = Table(show_header=True, header_style="bold")
    rows = [data] if isinstance(data, dict) else data
    if not rows:
        return table

    if columns is None:
        first = rows[0]
        columns = list(first.keys()) if isinstance(first, dict) else ["value"]

    for col in columns:
        table.add_column(col.upper().replace("_", " "))
    for item in rows:
        if isinstance(item, dict):
            table.add_row(*[_cell(item.get(col)) for col in columns])
        else:
            table.add_row(_cell(item))
    return table


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, list | dict):
        return json.dumps(value, default=_json_serializer, ensure_ascii=False)
    return str(value)


def format_csv(data: dict[str, Any] | list[Any]) -> str:
    """Format data as CSV with a header row.

    Floats keep full precision so sum_top_position survives a round trip.
    """
    rows = [data] if isinstance(data, dict) else data
    if not rows:
        return ""

    output = io.StringIO()
    first = rows[0]
    if isinstance(first, dict):
        writer = csv.DictWriter(output, fieldnames=list(first), extrasaction="ignore")
        writer.writeheader()
        for item in rows:
            if isinstance(item, dict):
                writer.writerow({k: _csv_value(v) for k, v in item.items()})
    else:
        value_writer = csv.writer(output)
        value_writer.writerow(["value"])
        for item in rows:
            value_writer.writerow([_csv_value(item)])
    return output.getvalue()


def _plain_line(item: Any) -> str:
    if not isinstance(item, dict):
        return str(item)
    for key in _PLAIN_KEYS:
        if item.get(key) is not None:
            return str(item[key])
    return str(next(iter(item.values()))) if item else ""


def format_plain(data: dict[str, Any] | list[Any]) -> str:
    """Format data as minimal text.

    Lists print one item per line (the property, query, URL or period of
    dict items). A single dict prints key=value pairs.
    """
    if isinstance(data, list):
        return "\n".join(_plain_line(item) for item in data)
    return "\n".join(f"{k}={v}" for k, v in data.items())
