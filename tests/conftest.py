"""Shared fixtures for gsc_data tests."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from hypothesis import Phase, Verbosity, settings
from pydantic import SecretStr

from helpers import FakeClock

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# Register Hypothesis profiles for different environments
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
    derandomize=True,  # Reproducible in CI
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

# Load profile from HYPOTHESIS_PROFILE env var, default to "default"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

if TYPE_CHECKING:
    from gsc_data._internal.api_client import SearchConsoleAPIClient
    from gsc_data._internal.config import ConfigManager, Credentials


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    """Return path for a temporary config file."""
    return temp_dir / "config.toml"


@pytest.fixture
def config_manager(config_path: Path) -> ConfigManager:
    """Create a ConfigManager with a temporary config file."""
    from gsc_data._internal.config import ConfigManager

    return ConfigManager(config_path=config_path)


@pytest.fixture(autouse=True)
def clean_gsc_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep GSC_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("GSC_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_gsc_logger() -> Generator[None, None, None]:
    """Undo log levels set by CLI invocations (--quiet, --verbose)."""
    yield
    logging.getLogger("gsc_data").setLevel(logging.NOTSET)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    """A fake clock whose sleep advances time."""
    return FakeClock()


@pytest.fixture
def mock_credentials() -> Credentials:
    """Create mock credentials for API client testing."""
    from gsc_data._internal.config import Credentials

    return Credentials(
        access_token=SecretStr("test_token"),
        site_url="https://example.com/",
    )


@pytest.fixture
def mock_client_factory(
    mock_credentials: Credentials,
) -> Callable[..., SearchConsoleAPIClient]:
    """Factory for creating mock API clients that never really sleep.

    Usage:
        def test_something(mock_client_factory):
            def handler(request):
                return httpx.Response(200, json={"siteEntry": []})

            client = mock_client_factory(handler)
            with client:
                sites = client.list_sites()
    """
    from gsc_data._internal.api_client import SearchConsoleAPIClient
    from gsc_data._internal.query_counter import QueryCounter
    from gsc_data._internal.rate_limiter import TokenBucket

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        sleeps: list[float] | None = None,
        **kwargs: Any,
    ) -> SearchConsoleAPIClient:
        clock = FakeClock()
        recorded = sleeps if sleeps is not None else []
        kwargs.setdefault(
            "throttle",
            TokenBucket(rate=18.0, capacity=900.0, clock=clock, sleep=clock.sleep),
        )
        kwargs.setdefault("counter", QueryCounter(clock=clock))
        return SearchConsoleAPIClient(
            mock_credentials,
            sleep=recorded.append,
            _transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return factory
