"""CLI utility functions and error handling.

This module provides shared utilities for the CLI:
- ExitCode enum for standardized exit codes
- handle_errors decorator for exception-to-exit-code mapping
- Console instances for stdout/stderr separation
- Lazy client/config initialization helpers
- Row emission that streams JSONL without buffering the report
"""

from __future__ import annotations

import functools
import json
import os
import sys
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from enum import IntEnum
from typing import TYPE_CHECKING, Any, TypeVar

import typer
from rich.console import Console

from gsc_data.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    AuthenticationError,
    ConfigError,
    GscDataError,
    PropertyNotAccessibleError,
    QueryError,
    QuotaExceededError,
    RateLimitError,
)

if TYPE_CHECKING:
    from gsc_data._internal.config import ConfigManager
    from gsc_data.client import GscClient
    from gsc_data.types import SearchAnalyticsRow

# Console instances for stdout/stderr separation
# Data output goes to stdout; progress/errors go to stderr
console = Console()
err_console = Console(stderr=True, no_color=bool(os.environ.get("NO_COLOR")))


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands.

    Exit codes follow Unix conventions:
    - 0: Success
    - 1-5: Application-specific errors
    - 130: Interrupted by SIGINT (Ctrl+C)
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    INVALID_ARGS = 3
    NOT_FOUND = 4
    RATE_LIMIT = 5
    INTERRUPTED = 130


F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Decorator to convert library exceptions to CLI exit codes.

    Maps GscDataError subclasses to appropriate exit codes and
    displays formatted error messages to stderr.

    Usage:
        @handle_errors
        def my_command(ctx: typer.Context):
            client = get_client(ctx)
            output_result(ctx, [p.to_dict() for p in client.properties()])
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except AuthenticationError as e:
            err_console.print(f"[red]Authentication error:[/red] {e.message}")
            err_console.print(
                "[yellow]Hint:[/yellow] Access tokens expire; "
                "refresh it and run 'gsc auth add' again."
            )
            raise typer.Exit(ExitCode.AUTH_ERROR) from None
        except AccountNotFoundError as e:
            err_console.print(f"[red]Account not found:[/red] {e.account_name}")
            if e.available_accounts:
                err_console.print(
                    f"Available accounts: {', '.join(e.available_accounts)}"
                )
            raise typer.Exit(ExitCode.NOT_FOUND) from None
        except AccountExistsError as e:
            err_console.print(f"[red]Account exists:[/red] {e.account_name}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except PropertyNotAccessibleError as e:
            err_console.print(f"[red]Property not accessible:[/red] {e.site_url}")
            if e.accessible_properties:
                err_console.print("Accessible properties:")
                for site_url in e.accessible_properties:
                    err_console.print(f"  {site_url}")
            raise typer.Exit(ExitCode.NOT_FOUND) from None
        except (QuotaExceededError, RateLimitError) as e:
            err_console.print(f"[yellow]Quota exhausted:[/yellow] {e.message}")
            if isinstance(e, RateLimitError) and e.retry_after:
                err_console.print(
                    f"[cyan]Wait {e.retry_after} seconds before retrying.[/cyan]"
                )
            err_console.print(
                "[yellow]Tip:[/yellow] Lower GSC_TARGET_QPS or the batch size."
            )
            raise typer.Exit(ExitCode.RATE_LIMIT) from None
        except QueryError as e:
            err_console.print(f"[red]Query error:[/red] {e.message}")
            if e.request_url:
                err_console.print(f"  [dim]url:[/dim] {e.request_url}")
            if e.status_code == 403:
                err_console.print(
                    "[yellow]Hint:[/yellow] Check the token's access to the property."
                )
            raise typer.Exit(ExitCode.INVALID_ARGS) from None
        except ConfigError as e:
            err_console.print(f"[red]Configuration error:[/red] {e.message}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except GscDataError as e:
            err_console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except ValueError as e:
            # Validation errors (invalid dates, filters, batch size)
            err_console.print(f"[red]Invalid argument:[/red] {e}")
            raise typer.Exit(ExitCode.INVALID_ARGS) from None

    return wrapper  # type: ignore[return-value]


def get_client(ctx: typer.Context) -> GscClient:
    """Get or create the GscClient from context.

    Lazily initializes a client, respecting the --account global option.
    The client is cached in the context for reuse.

    Args:
        ctx: Typer context with global options in obj dict.

    Returns:
        Configured GscClient instance.

    Raises:
        AccountNotFoundError: If specified account doesn't exist.
        ConfigError: If no credentials can be resolved.
    """
    from gsc_data.client import GscClient

    if ctx.obj.get("client") is None:
        ctx.obj["client"] = GscClient(account=ctx.obj.get("account"))
        ctx.call_on_close(ctx.obj["client"].close)
    client: GscClient = ctx.obj["client"]
    return client


def get_config(ctx: typer.Context) -> ConfigManager:
    """Get or create ConfigManager from context.

    Args:
        ctx: Typer context with global options in obj dict.

    Returns:
        ConfigManager instance.
    """
    from gsc_data._internal.config import ConfigManager

    if ctx.obj.get("config") is None:
        ctx.obj["config"] = ConfigManager()
    config: ConfigManager = ctx.obj["config"]
    return config


def output_result(
    ctx: typer.Context,
    data: dict[str, Any] | list[Any],
    columns: list[str] | None = None,
    *,
    format: str | None = None,
) -> None:
    """Output data in the requested format.

    Args:
        ctx: Typer context with global options in obj dict.
        data: Data to output (dict or list).
        columns: Column names for table format (auto-detected if None).
        format: Output format. If None, falls back to ctx.obj["format"] or "json".
    """
    from gsc_data.cli.formatters import (
        format_csv,
        format_json,
        format_jsonl,
        format_plain,
        format_table,
    )

    fmt = format if format is not None else ctx.obj.get("format", "json")

    if fmt == "jsonl":
        console.print(format_jsonl(data), highlight=False, markup=False, soft_wrap=True)
    elif fmt == "table":
        console.print(format_table(data, columns))
    elif fmt == "csv":
        console.print(
            format_csv(data), highlight=False, markup=False, soft_wrap=True, end=""
        )
    elif fmt == "plain":
        console.print(format_plain(data), highlight=False, markup=False, soft_wrap=True)
    else:
        console.print(format_json(data), highlight=False, markup=False, soft_wrap=True)


@contextmanager
def status_spinner(ctx: typer.Context, message: str) -> Generator[None, None, None]:
    """Show a spinner on stderr while the wrapped block runs.

    Skipped with --quiet and when stderr is not a terminal.

    Example:
        with status_spinner(ctx, "Fetching properties..."):
            properties = client.properties()
    """
    quiet = ctx.obj.get("quiet", False) if ctx.obj else False
    if quiet or not sys.stderr.isatty():
        yield
    else:
        with err_console.status(message):
            yield


class ErrorCollector:
    """Collects per-day failures reported while a report streams."""

    def __init__(self) -> None:
        self.errors: list[tuple[Any, BaseException]] = []

    def __call__(self, error: BaseException, item: Any) -> None:
        self.errors.append((item, error))

    def report(self, ctx: typer.Context) -> None:
        """Print the collected failures to stderr and fail the command."""
        if not self.errors:
            return
        err_console.print(
            f"[yellow]Warning:[/yellow] {len(self.errors)} request(s) failed; "
            "their data is missing from the output."
        )
        if ctx.obj.get("verbose"):
            for item, error in self.errors:
                err_console.print(f"  [dim]{item}:[/dim] {error}", highlight=False)
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def emit_rows(
    ctx: typer.Context,
    rows: Iterable[SearchAnalyticsRow],
    *,
    format: str,
    columns: list[str] | None = None,
) -> int:
    """Write report rows to stdout.

    JSONL is written row by row as the report streams; other formats need
    the whole report and collect it first.

    Args:
        ctx: Typer context with global options in obj dict.
        rows: Row stream.
        format: Output format.
        columns: Columns for table output.

    Returns:
        Number of rows written.
    """
    quiet = ctx.obj.get("quiet", False)
    count = 0
    if format == "jsonl":
        for row in rows:
            print(json.dumps(row.to_dict(), ensure_ascii=False))
            count += 1
            if not quiet and count % 10000 == 0:
                err_console.print(f"Streaming rows... {count}", highlight=False)
        return count

    data = [row.to_dict() for row in rows]
    output_result(ctx, data, columns, format=format)
    return len(data)


def print_throughput(ctx: typer.Context, client: GscClient, rows: int) -> None:
    """Print row count and query throughput to stderr (unless --quiet)."""
    if ctx.obj.get("quiet", False):
        return
    info = client.throughput()
    err_console.print(
        f"[green]Fetched {rows} rows[/green] with {info.total_queries} queries "
        f"({info.queries_per_second:.1f} queries/s, batch size {info.batch_size})",
        highlight=False,
    )
