"""Configuration management for gsc_data.

Handles credential storage, client tuning settings and account management.
Configuration is stored in TOML format at ~/.gsc/config.toml by default.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from gsc_data.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    ConfigError,
)

# Upstream hard cap on calls inside one batch request
MAX_BATCH_SIZE = 1000


class Credentials(BaseModel):
    """Immutable credentials for Search Console API authentication.

    This is a frozen Pydantic model that ensures:
    - All fields are validated on construction
    - The token is never exposed in repr/str output
    - The object cannot be modified after creation

    Obtaining the OAuth access token is the caller's concern.
    """

    model_config = ConfigDict(frozen=True)

    access_token: SecretStr
    """OAuth 2.0 bearer token with the webmasters scope (redacted in output)."""

    site_url: str | None = None
    """Default property URL for reports, if configured."""

    @field_validator("access_token")
    @classmethod
    def validate_token(cls, v: SecretStr) -> SecretStr:
        """Validate the token is non-empty."""
        if not v.get_secret_value().strip():
            raise ValueError("Access token cannot be empty")
        return v

    def __repr__(self) -> str:
        """Return string representation with redacted token."""
        return f"Credentials(access_token=***, site_url={self.site_url!r})"

    def __str__(self) -> str:
        """Return string representation with redacted token."""
        return self.__repr__()


class ClientSettings(BaseModel):
    """Tuning knobs for throttling, retries and batching.

    Defaults sit below the documented Search Analytics quota: 18 queries
    per second is 90% of the 20 QPS limit, and a 900 token bucket allows
    50 seconds worth of burst.
    """

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=10, ge=1, le=MAX_BATCH_SIZE)
    """Logical queries per batch call."""

    target_qps: float = Field(default=18.0, gt=0)
    """Token bucket refill rate (queries per second)."""

    bucket_capacity: float = Field(default=900.0, gt=0)
    """Token bucket burst capacity."""

    max_retries: int = Field(default=3, ge=0)
    """Transport-level retries per physical call."""

    initial_delay: float = Field(default=1.0, ge=0)
    """First transport retry delay in seconds."""

    backoff_factor: float = Field(default=2.0, ge=1)
    """Multiplier between transport retry delays."""

    quota_delay: float = Field(default=60.0, ge=0)
    """Fixed delay in seconds after a quota-exceeded response."""

    retry_cooldown: float = Field(default=60.0, ge=0)
    """Scheduler pause before retrying failed items (base of its backoff)."""

    max_single_retries: int = Field(default=3, ge=0)
    """Scheduler retries for an item once the batch size has reached one."""

    timeout: float = Field(default=300.0, gt=0)
    """Total request timeout in seconds (the endpoint is slow on big days)."""

    connect_timeout: float = Field(default=90.0, gt=0)
    """Connect timeout in seconds."""


# Environment overrides for ClientSettings fields
SETTINGS_ENV_VARS: dict[str, str] = {
    "batch_size": "GSC_BATCH_SIZE",
    "target_qps": "GSC_TARGET_QPS",
    "bucket_capacity": "GSC_BUCKET_CAPACITY",
    "max_retries": "GSC_MAX_RETRIES",
    "quota_delay": "GSC_QUOTA_DELAY",
    "retry_cooldown": "GSC_RETRY_COOLDOWN",
}


@dataclass(frozen=True)
class AccountInfo:
    """Information about a configured account (without token).

    Used for listing accounts without exposing sensitive credentials.
    """

    name: str
    """Account display name."""

    site_url: str | None
    """Default property URL."""

    is_default: bool
    """Whether this is the default account."""


class ConfigManager:
    """Manages Search Console accounts and client settings.

    Handles:
    - Adding, removing, and listing accounts
    - Setting the default account
    - Resolving credentials from environment variables or config file
    - Resolving client settings from the [settings] table and environment

    Config file location (in priority order):
    1. Explicit config_path parameter
    2. GSC_CONFIG_PATH environment variable
    3. Default: ~/.gsc/config.toml
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".gsc" / "config.toml"

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize ConfigManager.

        Args:
            config_path: Override config file location.
                         Default: ~/.gsc/config.toml
        """
        if config_path is not None:
            self._config_path = config_path
        elif "GSC_CONFIG_PATH" in os.environ:
            self._config_path = Path(os.environ["GSC_CONFIG_PATH"])
        else:
            self._config_path = self.DEFAULT_CONFIG_PATH

    @property
    def config_path(self) -> Path:
        """Return the config file path."""
        return self._config_path

    def _read_config(self) -> dict[str, Any]:
        """Read and parse the config file.

        Returns:
            Parsed config dictionary, or empty dict if file doesn't exist.
        """
        if not self._config_path.exists():
            return {}

        try:
            with self._config_path.open("rb") as f:
                return dict(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(
                f"Invalid TOML in config file: {e}",
                details={"path": str(self._config_path)},
            ) from e

    def _write_config(self, config: dict[str, Any]) -> None:
        """Write config to file, creating directory if needed.

        Args:
            config: Configuration dictionary to write.
        """
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with self._config_path.open("wb") as f:
            tomli_w.dump(config, f)

    def resolve_credentials(self, account: str | None = None) -> Credentials:
        """Resolve credentials using priority order.

        Resolution order:
        1. Environment variables (GSC_ACCESS_TOKEN, optional GSC_PROPERTY)
        2. Named account from config file (if account parameter provided)
        3. Default account from config file

        Args:
            account: Optional account name to use instead of default.

        Returns:
            Immutable Credentials object.

        Raises:
            ConfigError: If no credentials can be resolved.
            AccountNotFoundError: If named account doesn't exist.
        """
        env_creds = self._resolve_from_env()
        if env_creds is not None:
            return env_creds

        config = self._read_config()
        accounts = config.get("accounts", {})

        if account is not None:
            if account not in accounts:
                raise AccountNotFoundError(
                    account,
                    available_accounts=list(accounts.keys()),
                )
            account_data = accounts[account]
        else:
            default_name = config.get("default")
            if default_name is None or default_name not in accounts:
                raise ConfigError(
                    "No credentials configured. "
                    "Set GSC_ACCESS_TOKEN or add an account with 'gsc auth add'.",
                )
            account_data = accounts[default_name]

        return Credentials(
            access_token=SecretStr(account_data["access_token"]),
            site_url=account_data.get("property"),
        )

    def _resolve_from_env(self) -> Credentials | None:
        """Attempt to resolve credentials from environment variables.

        Returns:
            Credentials if GSC_ACCESS_TOKEN is set, None otherwise.
        """
        token = os.environ.get("GSC_ACCESS_TOKEN")
        if not token:
            return None
        return Credentials(
            access_token=SecretStr(token),
            site_url=os.environ.get("GSC_PROPERTY") or None,
        )

    def resolve_settings(self, **overrides: Any) -> ClientSettings:
        """Resolve client settings.

        Resolution order (later wins):
        1. ClientSettings defaults
        2. [settings] table in the config file
        3. GSC_* environment variables (see SETTINGS_ENV_VARS)
        4. Explicit keyword overrides (None values are ignored)

        Returns:
            Validated ClientSettings.

        Raises:
            ConfigError: If a value fails validation.
        """
        values: dict[str, Any] = dict(self._read_config().get("settings", {}))
        for field_name, env_var in SETTINGS_ENV_VARS.items():
            if env_var in os.environ:
                values[field_name] = os.environ[env_var]
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return ClientSettings(**values)
        except ValueError as e:
            raise ConfigError(
                f"Invalid client settings: {e}",
                details={"path": str(self._config_path)},
            ) from e

    def list_accounts(self) -> list[AccountInfo]:
        """List all configured accounts.

        Returns:
            List of AccountInfo objects (tokens not included).
        """
        config = self._read_config()
        accounts = config.get("accounts", {})
        default_name = config.get("default")

        return [
            AccountInfo(
                name=name,
                site_url=data.get("property"),
                is_default=(name == default_name),
            )
            for name, data in accounts.items()
        ]

    def add_account(
        self,
        name: str,
        access_token: str,
        site_url: str | None = None,
    ) -> None:
        """Add a new account configuration.

        The first account added becomes the default.

        Args:
            name: Display name for the account.
            access_token: OAuth bearer token.
            site_url: Optional default property URL.

        Raises:
            AccountExistsError: If account name already exists.
            ValueError: If the token is empty.
        """
        # Validate through the model before touching the file
        Credentials(access_token=SecretStr(access_token), site_url=site_url)

        config = self._read_config()
        accounts = config.setdefault("accounts", {})

        if name in accounts:
            raise AccountExistsError(name)

        account_data: dict[str, str] = {"access_token": access_token}
        if site_url is not None:
            account_data["property"] = site_url
        accounts[name] = account_data

        if len(accounts) == 1 or "default" not in config:
            config["default"] = name

        self._write_config(config)

    def remove_account(self, name: str) -> None:
        """Remove an account configuration.

        Args:
            name: Account name to remove.

        Raises:
            AccountNotFoundError: If account doesn't exist.
        """
        config = self._read_config()
        accounts = config.get("accounts", {})

        if name not in accounts:
            raise AccountNotFoundError(name, available_accounts=list(accounts.keys()))

        del accounts[name]

        if config.get("default") == name:
            if accounts:
                config["default"] = next(iter(accounts))
            else:
                config.pop("default", None)

        self._write_config(config)

    def set_default(self, name: str) -> None:
        """Set the default account.

        Args:
            name: Account name to set as default.

        Raises:
            AccountNotFoundError: If account doesn't exist.
        """
        config = self._read_config()
        accounts = config.get("accounts", {})

        if name not in accounts:
            raise AccountNotFoundError(name, available_accounts=list(accounts.keys()))

        config["default"] = name
        self._write_config(config)

    def get_account(self, name: str) -> AccountInfo:
        """Get information about a specific account.

        Args:
            name: Account name.

        Returns:
            AccountInfo object (token not included).

        Raises:
            AccountNotFoundError: If account doesn't exist.
        """
        config = self._read_config()
        accounts = config.get("accounts", {})

        if name not in accounts:
            raise AccountNotFoundError(name, available_accounts=list(accounts.keys()))

        return AccountInfo(
            name=name,
            site_url=accounts[name].get("property"),
            is_default=(config.get("default") == name),
        )
