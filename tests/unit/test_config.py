"""Unit tests for ConfigManager, Credentials and ClientSettings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from gsc_data._internal.config import (
    AccountInfo,
    ClientSettings,
    ConfigManager,
    Credentials,
)
from gsc_data.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    ConfigError,
)


class TestCredentials:
    """Tests for the Credentials model."""

    def test_valid_credentials(self) -> None:
        """Test creating valid credentials."""
        creds = Credentials(
            access_token=SecretStr("ya29.token"),
            site_url="https://example.com/",
        )
        assert creds.access_token.get_secret_value() == "ya29.token"
        assert creds.site_url == "https://example.com/"

    def test_empty_token_rejected(self) -> None:
        """Blank tokens are rejected."""
        with pytest.raises(ValueError, match="cannot be empty"):
            Credentials(access_token=SecretStr("   "))

    def test_token_redacted(self) -> None:
        """The token never appears in repr or str."""
        creds = Credentials(access_token=SecretStr("ya29.secret"))
        assert "ya29.secret" not in repr(creds)
        assert "ya29.secret" not in str(creds)
        assert "***" in repr(creds)

    def test_immutable(self) -> None:
        """Credentials cannot be modified."""
        creds = Credentials(access_token=SecretStr("t"))
        with pytest.raises(ValidationError):
            creds.site_url = "https://other.com/"  # type: ignore[misc]


class TestClientSettings:
    """Tests for ClientSettings defaults and bounds."""

    def test_defaults(self) -> None:
        """Defaults sit below the upstream quota."""
        settings = ClientSettings()
        assert settings.batch_size == 10
        assert settings.target_qps == 18.0
        assert settings.bucket_capacity == 900.0
        assert settings.max_retries == 3
        assert settings.initial_delay == 1.0
        assert settings.quota_delay == 60.0

    @pytest.mark.parametrize("batch_size", [0, 1001])
    def test_batch_size_bounds(self, batch_size: int) -> None:
        """Batch sizes outside 1..1000 are rejected."""
        with pytest.raises(ValidationError):
            ClientSettings(batch_size=batch_size)

    def test_rate_must_be_positive(self) -> None:
        """A zero refill rate is rejected."""
        with pytest.raises(ValidationError):
            ClientSettings(target_qps=0)


class TestConfigManagerAccounts:
    """Tests for account management."""

    def test_empty_config(self, config_manager: ConfigManager) -> None:
        """A missing file means no accounts."""
        assert config_manager.list_accounts() == []

    def test_add_first_account_becomes_default(
        self, config_manager: ConfigManager, config_path: Path
    ) -> None:
        """The first account added is the default."""
        config_manager.add_account("main", "tok1", site_url="https://example.com/")

        assert config_manager.list_accounts() == [
            AccountInfo(name="main", site_url="https://example.com/", is_default=True)
        ]
        assert config_path.exists()

    def test_second_account_not_default(self, config_manager: ConfigManager) -> None:
        """Later accounts do not steal the default."""
        config_manager.add_account("main", "tok1")
        config_manager.add_account("other", "tok2")

        assert config_manager.get_account("other") == AccountInfo(
            name="other", site_url=None, is_default=False
        )

    def test_duplicate_rejected(self, config_manager: ConfigManager) -> None:
        """Account names are unique."""
        config_manager.add_account("main", "tok1")
        with pytest.raises(AccountExistsError, match="main"):
            config_manager.add_account("main", "tok2")

    def test_empty_token_not_written(
        self, config_manager: ConfigManager, config_path: Path
    ) -> None:
        """Invalid tokens are rejected before the file is touched."""
        with pytest.raises(ValueError):
            config_manager.add_account("main", "")
        assert not config_path.exists()

    def test_remove_reassigns_default(self, config_manager: ConfigManager) -> None:
        """Removing the default promotes another account."""
        config_manager.add_account("main", "tok1")
        config_manager.add_account("other", "tok2")

        config_manager.remove_account("main")

        assert config_manager.list_accounts() == [
            AccountInfo(name="other", site_url=None, is_default=True)
        ]

    def test_remove_last_account(self, config_manager: ConfigManager) -> None:
        """Removing the only account leaves no default."""
        config_manager.add_account("main", "tok1")
        config_manager.remove_account("main")

        assert config_manager.list_accounts() == []
        with pytest.raises(ConfigError, match="No credentials configured"):
            config_manager.resolve_credentials()

    def test_remove_missing(self, config_manager: ConfigManager) -> None:
        """Removing an unknown account raises."""
        with pytest.raises(AccountNotFoundError):
            config_manager.remove_account("nope")

    def test_set_default(self, config_manager: ConfigManager) -> None:
        """set_default switches the default account."""
        config_manager.add_account("main", "tok1")
        config_manager.add_account("other", "tok2")

        config_manager.set_default("other")

        assert config_manager.get_account("other").is_default
        assert not config_manager.get_account("main").is_default

    def test_set_default_missing(self, config_manager: ConfigManager) -> None:
        """Unknown accounts cannot become the default."""
        config_manager.add_account("main", "tok1")
        with pytest.raises(AccountNotFoundError) as exc_info:
            config_manager.set_default("nope")
        assert exc_info.value.available_accounts == ["main"]


class TestResolveCredentials:
    """Tests for credential resolution order."""

    def test_environment_wins(
        self, config_manager: ConfigManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """GSC_ACCESS_TOKEN overrides the config file."""
        config_manager.add_account("main", "file_token")
        monkeypatch.setenv("GSC_ACCESS_TOKEN", "env_token")
        monkeypatch.setenv("GSC_PROPERTY", "sc-domain:example.com")

        creds = config_manager.resolve_credentials()

        assert creds.access_token.get_secret_value() == "env_token"
        assert creds.site_url == "sc-domain:example.com"

    def test_default_account(self, config_manager: ConfigManager) -> None:
        """Without env vars, the default account is used."""
        config_manager.add_account("main", "tok1", site_url="https://example.com/")

        creds = config_manager.resolve_credentials()

        assert creds.access_token.get_secret_value() == "tok1"
        assert creds.site_url == "https://example.com/"

    def test_named_account(self, config_manager: ConfigManager) -> None:
        """An explicit account name picks that account."""
        config_manager.add_account("main", "tok1")
        config_manager.add_account("other", "tok2")

        creds = config_manager.resolve_credentials("other")

        assert creds.access_token.get_secret_value() == "tok2"

    def test_named_account_missing(self, config_manager: ConfigManager) -> None:
        """Unknown account names raise with the available names."""
        config_manager.add_account("main", "tok1")
        with pytest.raises(AccountNotFoundError) as exc_info:
            config_manager.resolve_credentials("nope")
        assert exc_info.value.available_accounts == ["main"]

    def test_nothing_configured(self, config_manager: ConfigManager) -> None:
        """No env vars and no accounts is a ConfigError."""
        with pytest.raises(ConfigError, match="GSC_ACCESS_TOKEN"):
            config_manager.resolve_credentials()

    def test_invalid_toml(self, config_path: Path) -> None:
        """A broken file raises ConfigError with its path."""
        config_path.write_text("this is = = not toml")
        manager = ConfigManager(config_path=config_path)

        with pytest.raises(ConfigError, match="Invalid TOML") as exc_info:
            manager.list_accounts()
        assert exc_info.value.details["path"] == str(config_path)


class TestResolveSettings:
    """Tests for client settings resolution."""

    def test_defaults(self, config_manager: ConfigManager) -> None:
        """Without overrides the defaults apply."""
        assert config_manager.resolve_settings() == ClientSettings()

    def test_layering(
        self,
        config_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """File, then environment, then explicit overrides."""
        config_path.write_text(
            "[settings]\nbatch_size = 20\ntarget_qps = 10.0\nmax_retries = 5\n"
        )
        monkeypatch.setenv("GSC_TARGET_QPS", "5")
        monkeypatch.setenv("GSC_MAX_RETRIES", "1")
        manager = ConfigManager(config_path=config_path)

        settings = manager.resolve_settings(max_retries=0, batch_size=None)

        assert settings.batch_size == 20
        assert settings.target_qps == 5.0
        assert settings.max_retries == 0

    def test_invalid_value(
        self, config_manager: ConfigManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Out-of-bounds settings raise ConfigError."""
        monkeypatch.setenv("GSC_BATCH_SIZE", "5000")
        with pytest.raises(ConfigError, match="Invalid client settings"):
            config_manager.resolve_settings()


class TestConfigPath:
    """Tests for config file location."""

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """GSC_CONFIG_PATH sets the location."""
        path = tmp_path / "custom.toml"
        monkeypatch.setenv("GSC_CONFIG_PATH", str(path))
        assert ConfigManager().config_path == path

    def test_default(self) -> None:
        """The default lives under ~/.gsc."""
        assert ConfigManager().config_path == Path.home() / ".gsc" / "config.toml"


class TestPublicAuthModule:
    """Tests for the gsc_data.auth re-exports."""

    def test_reexports(self) -> None:
        """The public module exposes the internal classes."""
        from gsc_data import auth

        assert auth.ConfigManager is ConfigManager
        assert auth.Credentials is Credentials
        assert auth.ClientSettings is ClientSettings
        assert auth.AccountInfo is AccountInfo
