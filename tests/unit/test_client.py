"""Unit tests for the GscClient facade."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from gsc_data import GscClient
from gsc_data._internal.api_client import SearchConsoleAPIClient
from gsc_data._internal.config import ClientSettings, ConfigManager, Credentials
from gsc_data.aggregation import TimeframeResolution
from gsc_data.exceptions import (
    AccountNotFoundError,
    ConfigError,
    PropertyNotAccessibleError,
)
from helpers import batch_bodies, batch_response, gsc_row, query_body

SITES = {"siteEntry": [{"siteUrl": "https://example.com/", "permissionLevel": "siteOwner"}]}


def search_console(request: httpx.Request) -> httpx.Response:
    """Minimal Search Console: one property, one row per queried day."""
    if request.url.path.endswith("/sites"):
        return httpx.Response(200, json=SITES)
    if "/batch/" in request.url.path:
        return batch_response(
            [
                (cid, 200, {"rows": [gsc_row(body["startDate"], "q")]})
                for cid, body in batch_bodies(request).items()
            ]
        )
    body = query_body(request)
    return httpx.Response(200, json={"rows": [gsc_row(body["startDate"], "q")]})


@pytest.fixture
def client(
    mock_client_factory: Callable[..., SearchConsoleAPIClient],
    config_manager: ConfigManager,
) -> GscClient:
    """A GscClient over the fake Search Console."""
    return GscClient(
        _config_manager=config_manager,
        _api_client=mock_client_factory(search_console),
    )


class TestConstruction:
    """Tests for credential and settings resolution."""

    def test_resolves_default_account(self, config_manager: ConfigManager) -> None:
        """Credentials come from the config manager."""
        config_manager.add_account("main", "tok", site_url="https://example.com/")

        client = GscClient(_config_manager=config_manager)

        assert client._credentials is not None
        assert client._credentials.site_url == "https://example.com/"
        assert client.batch_size == 10

    def test_unknown_account(self, config_manager: ConfigManager) -> None:
        """Unknown account names raise immediately."""
        with pytest.raises(AccountNotFoundError):
            GscClient("nope", _config_manager=config_manager)

    def test_no_credentials(self, config_manager: ConfigManager) -> None:
        """Without any credentials construction fails."""
        with pytest.raises(ConfigError):
            GscClient(_config_manager=config_manager)

    def test_explicit_settings(self, config_manager: ConfigManager) -> None:
        """Explicit settings win over the config file."""
        config_manager.add_account("main", "tok")
        client = GscClient(
            _config_manager=config_manager, settings=ClientSettings(batch_size=25)
        )
        assert client.batch_size == 25

    def test_context_manager_closes(
        self, mock_client_factory: Callable[..., SearchConsoleAPIClient]
    ) -> None:
        """Leaving the with block closes the HTTP client."""
        api_client = mock_client_factory(search_console)
        with GscClient(_api_client=api_client) as client:
            client.properties()
            assert api_client._client is not None
        assert api_client._client is None


class TestReport:
    """Tests for GscClient.report()."""

    def test_builds_validated_config(self, client: GscClient) -> None:
        """Strings are parsed and the property is normalized and checked."""
        config = client.report(
            "https://example.com", "2024-01-01", "2024-01-31", country="deu"
        )

        assert config.site_url == "https://example.com/"
        assert config.start_date == date(2024, 1, 1)
        assert config.end_date == date(2024, 1, 31)
        assert config.country == "DEU"

    def test_inaccessible_property(self, client: GscClient) -> None:
        """Properties the token cannot see are rejected."""
        with pytest.raises(PropertyNotAccessibleError):
            client.report("https://other.com/", "2024-01-01", "2024-01-02")

    def test_invalid_date(self, client: GscClient) -> None:
        """Malformed dates raise ValueError."""
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            client.report("https://example.com/", "01/01/2024", "2024-01-02")

    def test_default_property(
        self,
        config_manager: ConfigManager,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """site_url None uses the account's default property."""
        monkeypatch.setenv("GSC_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("GSC_PROPERTY", "https://example.com")
        client = GscClient(_config_manager=config_manager)
        client._api_client = SearchConsoleAPIClient(
            Credentials(access_token=SecretStr("tok")),
            _transport=httpx.MockTransport(search_console),
        )

        config = client.report(None, "2024-01-01", "2024-01-02")

        assert config.site_url == "https://example.com/"

    def test_missing_default_property(self, client: GscClient) -> None:
        """site_url None without a default raises ConfigError."""
        with pytest.raises(ConfigError, match="No property given"):
            client.report(None, "2024-01-01", "2024-01-02")


class TestReports:
    """Tests for report delegation and throughput."""

    def test_top_queries_and_counter(self, client: GscClient) -> None:
        """Rows stream through and every day counts as one query."""
        config = client.report("https://example.com/", "2024-01-01", "2024-01-05")

        rows = list(client.top_queries_by_day(config, 10))

        assert [r.data_date for r in rows] == [
            "2024-01-01",
            "2024-01-02",
            "2024-01-03",
            "2024-01-04",
            "2024-01-05",
        ]
        assert client.total_queries == 5
        info = client.throughput()
        assert info.total_queries == 5
        assert info.batch_size == 10

    def test_batch_size_applies_to_scheduler(self, client: GscClient) -> None:
        """Changing the batch size reaches the running scheduler."""
        config = client.report("https://example.com/", "2024-01-01", "2024-01-02")
        list(client.top_pages_by_day(config))

        client.batch_size = 1

        assert client._scheduler is not None
        assert client._scheduler.batch_size == 1

    def test_invalid_batch_size(self, client: GscClient) -> None:
        """Batch sizes outside 1..1000 are rejected."""
        with pytest.raises(ValueError):
            client.batch_size = 1001
        assert client.batch_size == 10

    def test_search_performance(self, client: GscClient) -> None:
        """Aggregated performance is one query folded into periods."""
        config = client.report("https://example.com/", "2024-01-01", "2024-01-31")

        result = client.search_performance(
            config, resolution=TimeframeResolution.MONTHLY
        )

        assert [p.period for p in result] == ["2024-01"]
        assert client.total_queries == 1

    def test_first_date_with_data(self, client: GscClient) -> None:
        """Discovery runs against the given property."""
        first = client.first_date_with_data(
            "https://example.com/", start_date="2024-01-01", end_date="2024-02-01"
        )
        assert first == date(2024, 1, 1)

    def test_properties(self, client: GscClient) -> None:
        """properties() lists the visible properties."""
        assert [p.site_url for p in client.properties()] == ["https://example.com/"]

    def test_on_error_forwarded(self, client: GscClient) -> None:
        """Per-item errors reach the caller's callback."""
        errors: list[Any] = []
        config = client.report("https://example.com/", "2024-01-01", "2024-01-01")

        rows = list(
            client.search_performance_by_page(
                config, page_size=5, on_error=lambda e, d: errors.append(d)
            )
        )

        assert len(rows) == 1
        assert errors == []
