"""Shared CLI option definitions.

Provides reusable Annotated type aliases for common CLI options
to avoid duplication across commands.
"""

from __future__ import annotations

from typing import Annotated, Literal

import typer

# Output format type for formatting command output
OutputFormat = Literal["json", "jsonl", "table", "csv", "plain"]

# Reusable Annotated type for --format option
FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format: json, jsonl, table, csv, plain.",
    ),
]

PropertyOption = Annotated[
    str | None,
    typer.Option(
        "--property",
        "-p",
        help="Property URL or sc-domain: property (default: account property).",
        envvar="GSC_PROPERTY",
        show_default=False,
    ),
]

FromOption = Annotated[
    str,
    typer.Option("--from", help="Start date (YYYY-MM-DD).", show_default=False),
]

ToOption = Annotated[
    str,
    typer.Option("--to", help="End date (YYYY-MM-DD).", show_default=False),
]

CountryOption = Annotated[
    str | None,
    typer.Option("--country", help="ISO-3166-1 alpha-3 country filter (e.g. DEU)."),
]

DeviceOption = Annotated[
    str | None,
    typer.Option("--device", help="Device filter: desktop, mobile, tablet."),
]

SearchTypeOption = Annotated[
    str | None,
    typer.Option("--search-type", help="Search type: web, image, video, news, ..."),
]

DataStateOption = Annotated[
    str | None,
    typer.Option("--data-state", help="Data freshness: final, all, hourly_all."),
]

BatchSizeOption = Annotated[
    int | None,
    typer.Option(
        "--batch-size",
        "-b",
        help="Queries per batch call (1-1000).",
        show_default=False,
    ),
]
