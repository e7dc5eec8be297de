"""Immutable report parameters.

ReportConfig holds everything a report fetch needs besides the report
shape itself: the property, the date window and the optional filters.
It is passed explicitly into every fetch call, so one GscClient can serve
several reports concurrently without hidden shared state.

Example:
    ```python
    config = ReportConfig(
        site_url="https://example.com/",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    ).with_country("deu").with_device(DeviceType.MOBILE)
    ```
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from gsc_data._internal.date_utils import dates_in_range
from gsc_data.enums import DataState, DeviceType

DOMAIN_PROPERTY_PREFIX = "sc-domain:"


def normalize_site_url(site_url: str) -> str:
    """Normalize a property URL the way Search Console lists it.

    URL-prefix properties always end with a slash; domain properties
    (``sc-domain:example.com``) are left as they are.

    Args:
        site_url: Property URL as typed by the user.

    Returns:
        Normalized property URL.

    Raises:
        ValueError: If site_url is empty.
    """
    site_url = site_url.strip()
    if not site_url:
        raise ValueError("site_url cannot be empty")
    if not site_url.startswith(DOMAIN_PROPERTY_PREFIX) and not site_url.endswith("/"):
        site_url += "/"
    return site_url


class ReportConfig(BaseModel):
    """Immutable parameter object for report fetches.

    This is a frozen Pydantic model; use the ``with_*`` methods to derive
    modified copies.
    """

    model_config = ConfigDict(frozen=True)

    site_url: str
    """Property URL (normalized with a trailing slash unless domain property)."""

    start_date: date
    """First day of the report window (inclusive)."""

    end_date: date
    """Last day of the report window (inclusive)."""

    country: str | None = None
    """ISO-3166-1 alpha-3 country filter (upper-cased)."""

    device: DeviceType | None = None
    """Device filter."""

    search_type: str | None = None
    """Search type filter (upper-cased, e.g. WEB, IMAGE, NEWS)."""

    data_state: DataState | None = None
    """Freshness mode; None uses the upstream default (final)."""

    @field_validator("site_url")
    @classmethod
    def validate_site_url(cls, v: str) -> str:
        """Normalize the property URL."""
        return normalize_site_url(v)

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str | None) -> str | None:
        """Validate and upper-case the country code."""
        if v is None:
            return None
        if len(v) != 3 or not v.isalpha():
            raise ValueError(
                "Country code must be a valid ISO-3166-1-Alpha-3 code (3 letters)"
            )
        return v.upper()

    @field_validator("device", mode="before")
    @classmethod
    def validate_device(cls, v: Any) -> Any:
        """Accept device names case-insensitively."""
        if isinstance(v, str) and not isinstance(v, DeviceType):
            return v.upper()
        return v

    @field_validator("search_type")
    @classmethod
    def validate_search_type(cls, v: str | None) -> str | None:
        """Upper-case the search type."""
        return v.upper() if v is not None else None

    @model_validator(mode="after")
    def validate_dates(self) -> ReportConfig:
        """Reject windows whose start is after their end."""
        if self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date.")
        return self

    @property
    def is_domain_property(self) -> bool:
        """Whether the property is a domain property."""
        return self.site_url.startswith(DOMAIN_PROPERTY_PREFIX)

    def dates(self) -> list[date]:
        """Return every day of the window, ascending."""
        return dates_in_range(self.start_date, self.end_date)

    def with_dates(self, start_date: date, end_date: date) -> ReportConfig:
        """Return a copy with another date window."""
        return self._derive(start_date=start_date, end_date=end_date)

    def with_country(self, country: str | None) -> ReportConfig:
        """Return a copy with another country filter (None clears it)."""
        return self._derive(country=country)

    def with_device(self, device: DeviceType | str | None) -> ReportConfig:
        """Return a copy with another device filter (None clears it)."""
        return self._derive(device=device)

    def with_search_type(self, search_type: str | None) -> ReportConfig:
        """Return a copy with another search type (None clears it)."""
        return self._derive(search_type=search_type)

    def with_data_state(self, data_state: DataState | None) -> ReportConfig:
        """Return a copy with another data state (None clears it)."""
        return self._derive(data_state=data_state)

    def _derive(self, **changes: Any) -> ReportConfig:
        # model_copy skips validation, so rebuild through the constructor
        return ReportConfig(**{**self.model_dump(), **changes})
