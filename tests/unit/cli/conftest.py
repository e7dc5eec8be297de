"""Shared fixtures for CLI tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import typer
from typer.testing import CliRunner

from gsc_data._internal.config import AccountInfo


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def mock_config_manager() -> MagicMock:
    """Create a mock ConfigManager for testing auth commands."""
    config = MagicMock()

    config.list_accounts.return_value = [
        AccountInfo(name="main", site_url="https://example.com/", is_default=True),
        AccountInfo(name="agency", site_url="sc-domain:example.org", is_default=False),
    ]
    config.get_account.return_value = AccountInfo(
        name="main", site_url="https://example.com/", is_default=True
    )

    return config


@pytest.fixture
def mock_context() -> typer.Context:
    """Create a mock Typer context with default options."""
    ctx = MagicMock(spec=typer.Context)
    ctx.obj = {
        "account": None,
        "quiet": False,
        "verbose": False,
        "client": None,
        "config": None,
    }
    return ctx
