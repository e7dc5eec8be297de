"""Shared fixtures for CLI integration tests."""

from __future__ import annotations

from collections.abc import Generator
from datetime import date
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from gsc_data._internal.config import AccountInfo
from gsc_data.aggregation import AggregatedPeriod, AggregationResult, TimeframeResolution
from gsc_data.report_config import ReportConfig
from gsc_data.types import PropertyInfo, SearchAnalyticsRow, ThroughputInfo


def make_row(day: str, query: str, clicks: int = 1) -> SearchAnalyticsRow:
    """Build a normalized top-queries row."""
    return SearchAnalyticsRow(
        data_date=day,
        site_url="https://example.com/",
        query=query,
        impressions=10,
        clicks=clicks,
        position=2.0,
        sum_top_position=10.0,
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock GscClient for testing commands."""
    client = MagicMock()

    client.properties.return_value = [
        PropertyInfo(site_url="https://example.com/", permission_level="siteOwner"),
        PropertyInfo(
            site_url="sc-domain:example.org", permission_level="siteFullUser"
        ),
    ]
    client.first_date_with_data.return_value = date(2023, 3, 14)
    client.report.return_value = ReportConfig(
        site_url="https://example.com/",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 2),
    )

    rows = [
        make_row("2024-01-01", "blue shoes", clicks=3),
        make_row("2024-01-01", "red shoes"),
        make_row("2024-01-02", "blue shoes"),
    ]
    client.top_queries_by_day.side_effect = lambda *a, **kw: iter(rows)
    client.top_pages_by_day.side_effect = lambda *a, **kw: iter([])
    client.top_pages_with_queries_by_day.side_effect = lambda *a, **kw: iter(rows)
    client.search_performance_by_page.side_effect = lambda *a, **kw: iter(rows)
    client.search_performance.return_value = AggregationResult(
        resolution=TimeframeResolution.DAILY,
        periods=[
            AggregatedPeriod(
                period="2024-01-01",
                clicks=4,
                impressions=20,
                sum_top_position=20.0,
                count=2,
            ),
            AggregatedPeriod(
                period="2024-01-02",
                clicks=1,
                impressions=10,
                sum_top_position=10.0,
                count=1,
            ),
        ],
    )
    client.throughput.return_value = ThroughputInfo(
        total_queries=2, queries_per_second=4.0, batch_size=10
    )

    return client


@pytest.fixture
def mock_config_manager() -> MagicMock:
    """Create a mock ConfigManager for testing auth commands."""
    config = MagicMock()

    config.list_accounts.return_value = [
        AccountInfo(name="main", site_url="https://example.com/", is_default=True),
        AccountInfo(name="agency", site_url="sc-domain:example.org", is_default=False),
    ]
    config.get_account.return_value = AccountInfo(
        name="agency", site_url="sc-domain:example.org", is_default=False
    )

    return config


@pytest.fixture
def patch_config_manager(
    mock_config_manager: MagicMock,
) -> Generator[Any, None, None]:
    """Patch get_config to return mock ConfigManager."""
    with patch(
        "gsc_data.cli.commands.auth.get_config",
        return_value=mock_config_manager,
    ) as mock:
        yield mock
