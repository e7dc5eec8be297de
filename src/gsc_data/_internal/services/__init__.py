"""Service layer for gsc_data.

This package contains high-level service classes that orchestrate
operations using the lower-level API client and batch scheduler.
"""

from gsc_data._internal.services.properties import PropertyService
from gsc_data._internal.services.search_analytics import SearchAnalyticsService

__all__ = ["PropertyService", "SearchAnalyticsService"]
