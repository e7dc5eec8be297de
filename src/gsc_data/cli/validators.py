"""CLI parameter validators for enum-valued options.

Validates string inputs from Typer against the gsc_data enums before
passing them to GscClient methods, providing early error feedback.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TypeVar

import typer

from gsc_data.aggregation import TimeframeResolution
from gsc_data.cli.utils import ExitCode, err_console
from gsc_data.enums import DataState, DeviceType

E = TypeVar("E", bound=StrEnum)


def validate_choice(value: str, enum_type: type[E], param_name: str) -> E:
    """Validate a CLI string against a StrEnum (case-insensitive).

    Args:
        value: String value from CLI.
        enum_type: The enum to validate against.
        param_name: Parameter name for error message.

    Returns:
        The matching enum member.

    Raises:
        typer.Exit: With code 3 (INVALID_ARGS) if invalid.
    """
    for member in enum_type:
        if member.value.lower() == value.lower():
            return member
    err_console.print(f"[red]Error:[/red] Invalid value for {param_name}: '{value}'")
    err_console.print(
        f"Valid options: {', '.join(m.value.lower() for m in enum_type)}"
    )
    raise typer.Exit(ExitCode.INVALID_ARGS)


def validate_device(
    value: str | None, param_name: str = "--device"
) -> DeviceType | None:
    """Validate the device filter (desktop, mobile, tablet)."""
    return validate_choice(value, DeviceType, param_name) if value else None


def validate_data_state(
    value: str | None, param_name: str = "--data-state"
) -> DataState | None:
    """Validate the data state (final, all, hourly_all)."""
    return validate_choice(value, DataState, param_name) if value else None


def validate_resolution(
    value: str, param_name: str = "--resolution"
) -> TimeframeResolution:
    """Validate the aggregation resolution.

    Args:
        value: One of daily, weekly, monthly, allover.
        param_name: Parameter name for error message. Default: "--resolution".

    Returns:
        Validated TimeframeResolution.

    Raises:
        typer.Exit: With code 3 (INVALID_ARGS) if value is invalid.
    """
    return validate_choice(value, TimeframeResolution, param_name)
