"""Public authentication and configuration module.

Re-exports the ConfigManager and related types for public use.

Re-exported classes:
    ConfigManager: TOML-based account and settings management (~/.gsc/config.toml).
    Credentials: Immutable credential container with SecretStr for the token.
    ClientSettings: Throttle, retry and batching settings.
    AccountInfo: Named account metadata (name, default property).

Example usage:
    from gsc_data.auth import ConfigManager

    config = ConfigManager()
    creds = config.resolve_credentials()
    settings = config.resolve_settings(batch_size=50)
"""

from gsc_data._internal.config import (
    AccountInfo,
    ClientSettings,
    ConfigManager,
    Credentials,
)

__all__ = [
    "AccountInfo",
    "ClientSettings",
    "ConfigManager",
    "Credentials",
]
