"""Authentication and account management commands.

This module provides commands for managing Search Console accounts:
- list: List configured accounts
- add: Add a new account
- remove: Remove an account
- switch: Set default account
- show: Display account details
- test: Test account credentials
"""

from __future__ import annotations

import os
import sys
from typing import Annotated

import typer

from gsc_data._internal.config import AccountInfo, ConfigManager
from gsc_data.cli.options import FormatOption
from gsc_data.cli.utils import (
    ExitCode,
    err_console,
    get_config,
    handle_errors,
    output_result,
)

auth_app = typer.Typer(
    name="auth",
    help="Manage authentication and accounts.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@auth_app.command("list")
@handle_errors
def list_accounts(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """List all configured accounts.

    Shows account name, default property and default status.

    Examples:

        gsc auth list
        gsc auth list --format table
    """
    config = get_config(ctx)
    data = [
        {
            "name": acc.name,
            "property": acc.site_url,
            "is_default": acc.is_default,
        }
        for acc in config.list_accounts()
    ]
    output_result(ctx, data, columns=["name", "property", "is_default"], format=format)


def _read_token(token_stdin: bool) -> str:
    # Priority: --token-stdin, GSC_ACCESS_TOKEN, hidden prompt
    if token_stdin:
        if sys.stdin.isatty():
            err_console.print("[red]Error:[/red] --token-stdin requires piped input")
            err_console.print("Example: echo $TOKEN | gsc auth add ...")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        token = sys.stdin.read().strip()
        if not token:
            err_console.print("[red]Error:[/red] No token provided via stdin")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        return token
    if os.environ.get("GSC_ACCESS_TOKEN"):
        return os.environ["GSC_ACCESS_TOKEN"]
    token: str = typer.prompt("OAuth access token", hide_input=True)
    return token.strip()


@auth_app.command("add")
@handle_errors
def add_account(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Account name (identifier).")],
    site_url: Annotated[
        str | None,
        typer.Option("--property", "-p", help="Default property URL."),
    ] = None,
    default: Annotated[
        bool,
        typer.Option("--default", "-d", help="Set as default account."),
    ] = False,
    token_stdin: Annotated[
        bool,
        typer.Option("--token-stdin", help="Read the access token from stdin."),
    ] = False,
    format: FormatOption = "json",
) -> None:
    """Add a new account to the configuration.

    The access token can be provided via:
    - Interactive prompt (default, hidden input)
    - GSC_ACCESS_TOKEN environment variable (for CI/CD)
    - --token-stdin flag to read from stdin

    Examples:

        gsc auth add main -p https://example.com/
        echo "$TOKEN" | gsc auth add agency -p sc-domain:example.com --token-stdin
        gsc auth add staging --default
    """
    token = _read_token(token_stdin)
    if not token:
        err_console.print("[red]Error:[/red] Access token is required")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    config = get_config(ctx)
    config.add_account(name=name, access_token=token, site_url=site_url)

    if default:
        config.set_default(name)

    output_result(ctx, {"added": name, "is_default": default}, format=format)


@auth_app.command("remove")
@handle_errors
def remove_account(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Account name to remove.")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt."),
    ] = False,
    format: FormatOption = "json",
) -> None:
    """Remove an account from the configuration.

    Examples:

        gsc auth remove staging
        gsc auth remove old_account --force
    """
    if not force:
        confirm = typer.confirm(f"Remove account '{name}'?")
        if not confirm:
            err_console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(ExitCode.AUTH_ERROR)

    config = get_config(ctx)
    config.remove_account(name)

    output_result(ctx, {"removed": name}, format=format)


@auth_app.command("switch")
@handle_errors
def switch_account(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Account name to set as default.")],
    format: FormatOption = "json",
) -> None:
    """Set an account as the default.

    The default account is used when --account is not specified.

    Examples:

        gsc auth switch agency
    """
    config = get_config(ctx)
    config.set_default(name)

    output_result(ctx, {"default": name}, format=format)


def _find_default_account(config: ConfigManager) -> AccountInfo | None:
    for acc in config.list_accounts():
        if acc.is_default:
            return acc
    return None


@auth_app.command("show")
@handle_errors
def show_account(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Argument(help="Account name (default if omitted)."),
    ] = None,
    format: FormatOption = "json",
) -> None:
    """Show account details (token is redacted).

    Examples:

        gsc auth show
        gsc auth show agency --format table
    """
    config = get_config(ctx)

    account: AccountInfo
    if name is None:
        default_account = _find_default_account(config)
        if default_account is None:
            err_console.print("[red]Error:[/red] No default account configured.")
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        account = default_account
    else:
        account = config.get_account(name)

    data = {
        "name": account.name,
        "access_token": "********",
        "property": account.site_url,
        "is_default": account.is_default,
    }
    output_result(ctx, data, format=format)


@auth_app.command("test")
@handle_errors
def test_account(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Argument(help="Account name to test (default if omitted)."),
    ] = None,
    format: FormatOption = "json",
) -> None:
    """Test account credentials by listing the accessible properties.

    Examples:

        gsc auth test
        gsc auth test agency
    """
    from gsc_data.client import GscClient

    result = GscClient.test_credentials(name)
    output_result(ctx, result, format=format)
