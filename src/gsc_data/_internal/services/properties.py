"""Property Service for Search Console site discovery.

Lists the properties the token can see, validates report properties
against that list and finds the first day with data for a property.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from gsc_data._internal.date_utils import default_discovery_window, parse_date
from gsc_data._internal.query_builder import MAX_ROWS_PER_REQUEST, build_query
from gsc_data.enums import Dimension
from gsc_data.exceptions import PropertyNotAccessibleError
from gsc_data.report_config import ReportConfig, normalize_site_url
from gsc_data.types import PropertyInfo

if TYPE_CHECKING:
    from gsc_data._internal.api_client import SearchConsoleAPIClient

_logger = logging.getLogger(__name__)


class PropertyService:
    """Property discovery for the authenticated user.

    The property list is cached for the lifetime of the service instance;
    use clear_cache() to fetch it again.

    Example:
        ```python
        service = PropertyService(api_client)
        site_url = service.validate("https://example.com")  # 'https://example.com/'
        first_day = service.first_date_with_data(site_url)
        ```
    """

    def __init__(self, api_client: SearchConsoleAPIClient) -> None:
        """Initialize property service.

        Args:
            api_client: Authenticated Search Console API client.
        """
        self._api_client = api_client
        self._cache: list[PropertyInfo] | None = None

    def list_properties(self) -> list[PropertyInfo]:
        """List all properties visible to the token.

        Returns:
            Properties sorted by URL.

        Raises:
            AuthenticationError: Invalid or expired token.
        """
        if self._cache is None:
            entries = self._api_client.list_sites()
            self._cache = sorted(
                (
                    PropertyInfo(
                        site_url=str(entry.get("siteUrl", "")),
                        permission_level=str(entry.get("permissionLevel", "")),
                    )
                    for entry in entries
                    if entry.get("siteUrl")
                ),
                key=lambda p: p.site_url,
            )
            _logger.debug("Fetched %d properties", len(self._cache))
        return list(self._cache)

    def clear_cache(self) -> None:
        """Forget the cached property list."""
        self._cache = None

    def validate(self, site_url: str) -> str:
        """Normalize a property URL and check the token can access it.

        Args:
            site_url: Property URL as typed by the user.

        Returns:
            The normalized property URL.

        Raises:
            PropertyNotAccessibleError: If the property is not in the list.
        """
        normalized = normalize_site_url(site_url)
        accessible = [p.site_url for p in self.list_properties()]
        if normalized not in accessible:
            raise PropertyNotAccessibleError(
                normalized, accessible_properties=accessible
            )
        return normalized

    def first_date_with_data(
        self,
        site_url: str,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        today: date | None = None,
    ) -> date | None:
        """Find the earliest day with data inside a window.

        Issues one ``[date]`` query over the whole window. The window
        defaults to the 18 months up to today.

        Args:
            site_url: Property URL.
            start_date: Window start (default: 18 months before end).
            end_date: Window end (default: today).
            today: Reference day for the default window.

        Returns:
            The first day with data, or None if the window is empty.
        """
        start, end = default_discovery_window(start_date, end_date, today=today)
        if start > end:
            raise ValueError(f"start_date {start} is after end_date {end}")

        config = ReportConfig(site_url=site_url, start_date=start, end_date=end)
        query = build_query(config, [Dimension.DATE], row_limit=MAX_ROWS_PER_REQUEST)
        payload = self._api_client.query(query.site_url, query.to_request_body())

        days: list[date] = []
        for row in payload.get("rows") or []:
            keys = row.get("keys") or []
            if keys:
                days.append(parse_date(keys[0]))
        return min(days) if days else None
