"""Internal implementation modules. Not part of the public API."""

from gsc_data._internal.api_client import SearchConsoleAPIClient
from gsc_data._internal.batch_scheduler import BatchScheduler
from gsc_data._internal.config import ConfigManager, Credentials

__all__ = ["BatchScheduler", "ConfigManager", "Credentials", "SearchConsoleAPIClient"]
