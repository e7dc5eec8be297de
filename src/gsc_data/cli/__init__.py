"""CLI package for gsc_data.

This module provides the `gsc` command-line interface for retrieving
Search Console data. All commands delegate to the GscClient facade or
ConfigManager, adding only I/O formatting.
"""

from gsc_data.cli.main import app

__all__ = ["app"]
