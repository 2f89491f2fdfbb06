"""Click analytics: recording and summarising redirects.

Recording is best-effort. Routes schedule ``record_click_best_effort`` as a
background task after the redirect decision has been made; it captures and
logs every exception so that a broken sink can never change a redirect
response.

The sink opens its own session from a session factory because it runs after
the request's session has been handed back.

Summary Layout
==============
::
    {
      "totalClicks": 1247,
      "uniqueVisitors": 892,
      "recentClicks": [{"clickedAt", "ipAddress", "referrer", "userAgent"}, ...],
      "clicksByDate": [{"label": "2026-01-01", "value": 45}, ...],
      "topReferrers": [{"label": "twitter.com", "value": 300}, ...]
    }
"""

import logging
import re

from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from miniurl.repository import ClickRepository
from miniurl.schemas import AnalyticsResponse, ClickMetadata, LabelValue, RecentClick

__all__ = [
    "ClickAnalyticsSink",
    "build_analytics",
    "clean_referrer",
    "record_click_best_effort",
]

DIRECT_REFERRER = "direct"
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)

CLICKS_RECORDED_TOTAL = Counter(
    "miniurl_clicks_recorded_total",
    "Clicks written to the analytics store",
)
ANALYTICS_FAILURES_TOTAL = Counter(
    "miniurl_analytics_failures_total",
    "Click recordings that failed and were dropped",
)


def clean_referrer(referrer: str | None) -> str:
    """Reduce a Referer header to its host, e.g. ``https://www.twitter.com/x`` -> ``twitter.com``."""
    if not referrer:
        return DIRECT_REFERRER
    cleaned = _WWW_RE.sub("", _SCHEME_RE.sub("", referrer.strip()))
    host = cleaned.split("/", 1)[0].split("?", 1)[0]
    return host or DIRECT_REFERRER


class ClickAnalyticsSink:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record_click(self, short_code: str, metadata: ClickMetadata) -> None:
        async with self._session_factory() as session:
            await ClickRepository(session).add(
                short_code=short_code,
                ip_address=metadata.ip_address,
                referrer=clean_referrer(metadata.referrer),
                user_agent=metadata.user_agent[:1000] if metadata.user_agent else None,
            )
        CLICKS_RECORDED_TOTAL.inc()


async def record_click_best_effort(
    sink: ClickAnalyticsSink,
    short_code: str,
    metadata: ClickMetadata,
    logger: logging.Logger | logging.LoggerAdapter,
) -> None:
    try:
        await sink.record_click(short_code, metadata)
    except Exception as exc:
        ANALYTICS_FAILURES_TOTAL.inc()
        logger.error(f"Error recording analytics for {short_code}: {exc}")
    else:
        logger.debug(f"Recorded click for {short_code} from {metadata.ip_address}")


async def build_analytics(
    short_code: str,
    clicks: ClickRepository,
    recent_limit: int = 10,
    referrer_limit: int = 10,
) -> AnalyticsResponse:
    recent = await clicks.recent_clicks(short_code, recent_limit)
    by_date = await clicks.clicks_by_date(short_code)
    referrers = await clicks.top_referrers(short_code, referrer_limit)

    return AnalyticsResponse(
        short_code=short_code,
        total_clicks=await clicks.count_clicks(short_code),
        unique_visitors=await clicks.count_unique_visitors(short_code),
        recent_clicks=[RecentClick.model_validate(click) for click in recent],
        clicks_by_date=[LabelValue(label=str(day), value=count) for day, count in by_date],
        top_referrers=[LabelValue(label=str(referrer), value=count) for referrer, count in referrers],
    )
