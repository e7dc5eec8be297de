"""Search Analytics report commands.

This module provides commands that fetch per-day reports:
- top-queries: Top queries of each day
- top-pages: Top pages of each day
- top-pages-queries: Top page/query pairs of each day
- performance: Full date/page/query/country/device report
- summary: Clicks, impressions, CTR and position folded into periods

Row reports default to JSONL, which is written while the report streams.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Annotated

import typer

from gsc_data.cli.options import (
    BatchSizeOption,
    CountryOption,
    DataStateOption,
    DeviceOption,
    FormatOption,
    FromOption,
    PropertyOption,
    SearchTypeOption,
    ToOption,
)
from gsc_data.cli.utils import (
    ErrorCollector,
    emit_rows,
    get_client,
    handle_errors,
    output_result,
    print_throughput,
    status_spinner,
)
from gsc_data.cli.validators import (
    validate_data_state,
    validate_device,
    validate_resolution,
)

if TYPE_CHECKING:
    from gsc_data.client import GscClient
    from gsc_data.report_config import ReportConfig
    from gsc_data.types import SearchAnalyticsRow

report_app = typer.Typer(
    name="report",
    help="Fetch Search Analytics reports.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

MaxRowsOption = Annotated[
    int | None,
    typer.Option(
        "--max-rows",
        "-n",
        help="Rows per day (default 5000, max 25000).",
        show_default=False,
    ),
]


def _build_config(
    ctx: typer.Context,
    client: GscClient,
    *,
    site_url: str | None,
    from_date: str,
    to_date: str,
    country: str | None,
    device: str | None,
    search_type: str | None,
    data_state: str | None,
    batch_size: int | None,
) -> ReportConfig:
    if batch_size is not None:
        client.batch_size = batch_size
    with status_spinner(ctx, "Checking property access..."):
        return client.report(
            site_url,
            from_date,
            to_date,
            country=country,
            device=validate_device(device),
            search_type=search_type,
            data_state=validate_data_state(data_state),
        )


def _run_rows_report(
    ctx: typer.Context,
    client: GscClient,
    fetch: Callable[[ErrorCollector], Iterator[SearchAnalyticsRow]],
    *,
    format: str,
    columns: list[str],
) -> None:
    errors = ErrorCollector()
    count = emit_rows(ctx, fetch(errors), format=format, columns=columns)
    print_throughput(ctx, client, count)
    errors.report(ctx)


@report_app.command("top-queries")
@handle_errors
def top_queries(
    ctx: typer.Context,
    from_date: FromOption,
    to_date: ToOption,
    site_url: PropertyOption = None,
    max_rows: MaxRowsOption = None,
    country: CountryOption = None,
    device: DeviceOption = None,
    search_type: SearchTypeOption = None,
    data_state: DataStateOption = None,
    batch_size: BatchSizeOption = None,
    format: FormatOption = "jsonl",
) -> None:
    """Fetch the top queries of each day, aggregated by property.

    Examples:

        gsc report top-queries -p https://example.com/ --from 2024-01-01 --to 2024-01-31
        gsc report top-queries --from 2024-01-01 --to 2024-01-07 -n 100 --format table
    """
    client = get_client(ctx)
    config = _build_config(
        ctx,
        client,
        site_url=site_url,
        from_date=from_date,
        to_date=to_date,
        country=country,
        device=device,
        search_type=search_type,
        data_state=data_state,
        batch_size=batch_size,
    )
    _run_rows_report(
        ctx,
        client,
        lambda errors: client.top_queries_by_day(config, max_rows, on_error=errors),
        format=format,
        columns=["data_date", "query", "clicks", "impressions", "position"],
    )


@report_app.command("top-pages")
@handle_errors
def top_pages(
    ctx: typer.Context,
    from_date: FromOption,
    to_date: ToOption,
    site_url: PropertyOption = None,
    max_rows: MaxRowsOption = None,
    country: CountryOption = None,
    device: DeviceOption = None,
    search_type: SearchTypeOption = None,
    data_state: DataStateOption = None,
    batch_size: BatchSizeOption = None,
    format: FormatOption = "jsonl",
) -> None:
    """Fetch the top pages of each day, aggregated by page.

    Examples:

        gsc report top-pages -p sc-domain:example.com --from 2024-01-01 --to 2024-01-31
    """
    client = get_client(ctx)
    config = _build_config(
        ctx,
        client,
        site_url=site_url,
        from_date=from_date,
        to_date=to_date,
        country=country,
        device=device,
        search_type=search_type,
        data_state=data_state,
        batch_size=batch_size,
    )
    _run_rows_report(
        ctx,
        client,
        lambda errors: client.top_pages_by_day(config, max_rows, on_error=errors),
        format=format,
        columns=["data_date", "url", "clicks", "impressions", "position"],
    )


@report_app.command("top-pages-queries")
@handle_errors
def top_pages_queries(
    ctx: typer.Context,
    from_date: FromOption,
    to_date: ToOption,
    site_url: PropertyOption = None,
    max_rows: MaxRowsOption = None,
    country: CountryOption = None,
    device: DeviceOption = None,
    search_type: SearchTypeOption = None,
    data_state: DataStateOption = None,
    batch_size: BatchSizeOption = None,
    format: FormatOption = "jsonl",
) -> None:
    """Fetch the top page/query pairs of each day.

    Examples:

        gsc report top-pages-queries --from 2024-01-01 --to 2024-01-02 -n 1000
    """
    client = get_client(ctx)
    config = _build_config(
        ctx,
        client,
        site_url=site_url,
        from_date=from_date,
        to_date=to_date,
        country=country,
        device=device,
        search_type=search_type,
        data_state=data_state,
        batch_size=batch_size,
    )
    _run_rows_report(
        ctx,
        client,
        lambda errors: client.top_pages_with_queries_by_day(
            config, max_rows, on_error=errors
        ),
        format=format,
        columns=["data_date", "url", "query", "clicks", "impressions", "position"],
    )


@report_app.command("performance")
@handle_errors
def performance(
    ctx: typer.Context,
    from_date: FromOption,
    to_date: ToOption,
    site_url: PropertyOption = None,
    page_size: Annotated[
        int,
        typer.Option("--page-size", help="Rows per request (1-25000)."),
    ] = 25000,
    country: CountryOption = None,
    device: DeviceOption = None,
    search_type: SearchTypeOption = None,
    data_state: DataStateOption = None,
    batch_size: BatchSizeOption = None,
    format: FormatOption = "jsonl",
) -> None:
    """Fetch every date/page/query/country/device row of the window.

    Days with more rows than one page are paged until exhausted, so the
    output can be large; prefer the default JSONL format.

    Examples:

        gsc report performance -p https://example.com/ --from 2024-01-01 --to 2024-01-01
        gsc report performance --from 2024-01-01 --to 2024-01-07 > rows.jsonl
    """
    client = get_client(ctx)
    config = _build_config(
        ctx,
        client,
        site_url=site_url,
        from_date=from_date,
        to_date=to_date,
        country=country,
        device=device,
        search_type=search_type,
        data_state=data_state,
        batch_size=batch_size,
    )
    _run_rows_report(
        ctx,
        client,
        lambda errors: client.search_performance_by_page(
            config, page_size=page_size, on_error=errors
        ),
        format=format,
        columns=[
            "data_date",
            "url",
            "query",
            "country",
            "device",
            "clicks",
            "impressions",
            "position",
        ],
    )


@report_app.command("summary")
@handle_errors
def summary(
    ctx: typer.Context,
    from_date: FromOption,
    to_date: ToOption,
    site_url: PropertyOption = None,
    keywords: Annotated[
        list[str] | None,
        typer.Option("--keyword", "-k", help="Restrict to a query (repeatable)."),
    ] = None,
    urls: Annotated[
        list[str] | None,
        typer.Option("--url", "-u", help="Restrict to a page URL (repeatable)."),
    ] = None,
    resolution: Annotated[
        str,
        typer.Option(
            "--resolution", "-r", help="Period: daily, weekly, monthly, allover."
        ),
    ] = "daily",
    country: CountryOption = None,
    device: DeviceOption = None,
    search_type: SearchTypeOption = None,
    data_state: DataStateOption = None,
    format: FormatOption = "json",
) -> None:
    """Fetch clicks, impressions, CTR and position folded into periods.

    Position is the impressions-weighted average over each period.

    Examples:

        gsc report summary --from 2024-01-01 --to 2024-03-31 -r monthly
        gsc report summary --from 2024-01-01 --to 2024-01-31 -k "blue shoes" -k "red shoes"
    """
    period = validate_resolution(resolution)
    client = get_client(ctx)
    config = _build_config(
        ctx,
        client,
        site_url=site_url,
        from_date=from_date,
        to_date=to_date,
        country=country,
        device=device,
        search_type=search_type,
        data_state=data_state,
        batch_size=None,
    )
    with status_spinner(ctx, "Fetching performance..."):
        result = client.search_performance(
            config, keywords=keywords, urls=urls, resolution=period
        )
    output_result(
        ctx,
        [p.to_dict() for p in result],
        columns=["date", "clicks", "impressions", "ctr", "position", "count"],
        format=format,
    )
