"""Unit tests for CLI validators."""

from __future__ import annotations

import click
import pytest

from gsc_data.aggregation import TimeframeResolution
from gsc_data.cli.utils import ExitCode
from gsc_data.cli.validators import (
    validate_choice,
    validate_data_state,
    validate_device,
    validate_resolution,
)
from gsc_data.enums import DataState, DeviceType


class TestValidateChoice:
    """Tests for validate_choice()."""

    @pytest.mark.parametrize("value", ["mobile", "MOBILE", "Mobile"])
    def test_case_insensitive(self, value: str) -> None:
        """Values match regardless of case."""
        assert validate_choice(value, DeviceType, "--device") == DeviceType.MOBILE

    def test_invalid_exits_with_code_3(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Unknown values exit with INVALID_ARGS and list the options."""
        with pytest.raises(click.exceptions.Exit) as exc:
            validate_choice("watch", DeviceType, "--device")

        assert exc.value.exit_code == ExitCode.INVALID_ARGS
        err = capsys.readouterr().err
        assert "--device" in err
        assert "desktop, mobile, tablet" in err


class TestValidators:
    """Tests for the option-specific validators."""

    def test_device_none_passes_through(self) -> None:
        """No device means no filter."""
        assert validate_device(None) is None

    def test_device(self) -> None:
        """Device names map to DeviceType."""
        assert validate_device("tablet") == DeviceType.TABLET

    def test_data_state(self) -> None:
        """Data states map to DataState."""
        assert validate_data_state("all") == DataState.ALL
        assert validate_data_state(None) is None

    @pytest.mark.parametrize("value", list(TimeframeResolution))
    def test_resolution(self, value: TimeframeResolution) -> None:
        """Every resolution is accepted."""
        assert validate_resolution(value.value.upper()) == value

    def test_invalid_resolution(self) -> None:
        """Unknown resolutions exit with INVALID_ARGS."""
        with pytest.raises(click.exceptions.Exit) as exc:
            validate_resolution("yearly")
        assert exc.value.exit_code == ExitCode.INVALID_ARGS
