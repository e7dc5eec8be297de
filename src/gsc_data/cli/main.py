"""CLI entry point for gsc_data.

This module provides the `gsc` command-line interface, the main entry
point for the CLI. It defines global options and registers command
groups.

Usage:
    gsc [OPTIONS] COMMAND [ARGS]...

Examples:
    gsc --help
    gsc auth list
    gsc --account agency report top-queries -p https://example.com/ \\
        --from 2024-01-01 --to 2024-01-31
    gsc properties first-date -p sc-domain:example.com
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Annotated

import typer

import gsc_data
from gsc_data.cli.utils import ExitCode, err_console

# Create main application
app = typer.Typer(
    name="gsc",
    help="Search Console data CLI - stream Search Analytics reports.",
    epilog="""[dim]Workflow:[/dim] gsc auth add → gsc properties list → gsc report top-queries

[dim]Reports are fetched day by day in batched calls and streamed as they arrive.[/dim]""",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"gsc version {gsc_data.__version__}")
        raise typer.Exit()


def _handle_interrupt(_signum: int, _frame: object) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    err_console.print("\n[yellow]Interrupted[/yellow]")
    sys.exit(ExitCode.INTERRUPTED)


# Set up signal handler for Ctrl+C
signal.signal(signal.SIGINT, _handle_interrupt)


def _configure_logging(quiet: bool, verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("gsc_data").setLevel(level)


@app.callback()
def main(
    ctx: typer.Context,
    account: Annotated[
        str | None,
        typer.Option(
            "--account",
            "-a",
            help="Account name to use (overrides default).",
            envvar="GSC_ACCOUNT",
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug output.",
        ),
    ] = False,
    _version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Search Console data CLI - stream Search Analytics reports.

    Fetches per-day reports inside the Search Analytics quota and writes
    them to stdout; progress and warnings go to stderr.
    """
    _configure_logging(quiet, verbose)
    ctx.ensure_object(dict)
    ctx.obj["account"] = account
    ctx.obj["quiet"] = quiet
    ctx.obj["verbose"] = verbose
    ctx.obj["client"] = None
    ctx.obj["config"] = None


# Import and register command groups
# These imports are done here to avoid circular imports
def _register_commands() -> None:
    """Register all command groups with the main app."""
    from gsc_data.cli.commands.auth import auth_app
    from gsc_data.cli.commands.properties import properties_app
    from gsc_data.cli.commands.report import report_app

    app.add_typer(auth_app, name="auth", help="Manage authentication and accounts.")
    app.add_typer(
        properties_app, name="properties", help="Discover Search Console properties."
    )
    app.add_typer(report_app, name="report", help="Fetch Search Analytics reports.")


# Register commands when module is imported
_register_commands()


if __name__ == "__main__":
    app()
