"""Property discovery commands.

This module provides commands for Search Console properties:
- list: List the properties the token can access
- first-date: Find the first day with data for a property
"""

from __future__ import annotations

from typing import Annotated

import typer

from gsc_data.cli.options import FormatOption, PropertyOption
from gsc_data.cli.utils import (
    get_client,
    handle_errors,
    output_result,
    status_spinner,
)

properties_app = typer.Typer(
    name="properties",
    help="Discover Search Console properties.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@properties_app.command("list")
@handle_errors
def list_properties(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """List the properties the access token can see.

    Examples:

        gsc properties list
        gsc properties list --format plain
    """
    client = get_client(ctx)
    with status_spinner(ctx, "Fetching properties..."):
        properties = client.properties()
    output_result(
        ctx,
        [p.to_dict() for p in properties],
        columns=["site_url", "permission_level", "is_domain_property"],
        format=format,
    )


@properties_app.command("first-date")
@handle_errors
def first_date(
    ctx: typer.Context,
    site_url: PropertyOption = None,
    from_date: Annotated[
        str | None,
        typer.Option("--from", help="Window start (default: 18 months back)."),
    ] = None,
    to_date: Annotated[
        str | None,
        typer.Option("--to", help="Window end (default: today)."),
    ] = None,
    format: FormatOption = "json",
) -> None:
    """Find the first day with data for a property.

    Examples:

        gsc properties first-date -p https://example.com/
        gsc properties first-date -p sc-domain:example.com --from 2024-01-01
    """
    client = get_client(ctx)
    with status_spinner(ctx, "Searching for the first day with data..."):
        first = client.first_date_with_data(
            site_url, start_date=from_date, end_date=to_date
        )
    output_result(
        ctx,
        {"first_date": first.isoformat() if first else None},
        format=format,
    )
