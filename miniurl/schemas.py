"""Pydantic schemas for request/response validation in miniurl.

Response bodies use camelCase keys (``shortCode``, ``shortUrl``,
``totalClicks``...) for the browser frontend; Python code uses the snake_case
field names.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: str (validated by the allocator, not here)

    ShortenResponse (Output)
    ├─ shortCode: str
    └─ shortUrl: str

    AnalyticsResponse (Output)
    ├─ shortCode, totalClicks, uniqueVisitors
    ├─ recentClicks: list[RecentClick]
    └─ clicksByDate / topReferrers: list[LabelValue]

    HealthResponse (Output)
    ├─ status, database: HealthStatus
    └─ cacheEntries: int

Key Behaviours
===============
- ``ShortenRequest.url`` is a plain string so that a bad URL reaches the
  allocator and is reported as 400 rather than a 422 schema error.
- ``ClickMetadata`` is the request information handed to the analytics sink.
"""

import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from miniurl.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "ClickMetadata",
    "RecentClick",
    "LabelValue",
    "AnalyticsResponse",
    "HealthResponse",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ShortenRequest(BaseModel):
    url: str


class ShortenResponse(CamelModel):
    short_code: str
    short_url: str


class ClickMetadata(BaseModel):
    """Request details captured for one redirect."""

    ip_address: str | None = None
    user_agent: str | None = None
    referrer: str | None = None


class RecentClick(CamelModel):
    clicked_at: datetime.datetime | None = None
    ip_address: str | None = None
    referrer: str | None = None
    user_agent: str | None = None


class LabelValue(CamelModel):
    label: str
    value: int


class AnalyticsResponse(CamelModel):
    short_code: str
    total_clicks: int
    unique_visitors: int
    recent_clicks: list[RecentClick]
    clicks_by_date: list[LabelValue]
    top_referrers: list[LabelValue]


class HealthResponse(CamelModel):
    status: HealthStatus
    database: HealthStatus
    cache_entries: int
