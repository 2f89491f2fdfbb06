"""Click analytics tests."""

from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from miniurl.analytics import ClickAnalyticsSink, build_analytics, clean_referrer, record_click_best_effort
from miniurl.repository import ClickRepository, ShortLinkRepository
from miniurl.schemas import ClickMetadata


@pytest.mark.parametrize(
    "referrer, expected",
    [
        (None, "direct"),
        ("", "direct"),
        ("https://www.twitter.com/some/post", "twitter.com"),
        ("http://news.ycombinator.com/item?id=1", "news.ycombinator.com"),
        ("https://google.com?q=short", "google.com"),
        ("WWW.Example.com", "Example.com"),
    ],
)
def test_clean_referrer(referrer, expected) -> None:
    assert clean_referrer(referrer) == expected


@pytest.mark.asyncio
async def test_sink_records_click(
    db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    await ShortLinkRepository(db_session).insert("https://example.com", "sink0000")
    sink = ClickAnalyticsSink(session_factory)

    await sink.record_click(
        "sink0000",
        ClickMetadata(ip_address="10.0.0.1", user_agent="a" * 2000, referrer="https://www.reddit.com/r/python"),
    )

    clicks = await ClickRepository(db_session).recent_clicks("sink0000", 10)
    assert len(clicks) == 1
    assert clicks[0].referrer == "reddit.com"
    assert len(clicks[0].user_agent) == 1000


@pytest.mark.asyncio
async def test_best_effort_swallows_and_logs_failures() -> None:
    sink = MagicMock()
    sink.record_click.side_effect = RuntimeError("boom")
    logger = MagicMock()

    await record_click_best_effort(sink, "abc12345", ClickMetadata(), logger)

    logger.error.assert_called_once()


@pytest.mark.asyncio
async def test_build_analytics_empty(db_session: AsyncSession) -> None:
    await ShortLinkRepository(db_session).insert("https://example.com", "empty000")

    analytics = await build_analytics("empty000", ClickRepository(db_session))

    assert analytics.total_clicks == 0
    assert analytics.unique_visitors == 0
    assert analytics.recent_clicks == []
    assert analytics.clicks_by_date == []
    assert analytics.top_referrers == []


@pytest.mark.asyncio
async def test_build_analytics_limits_recent_clicks(db_session: AsyncSession) -> None:
    await ShortLinkRepository(db_session).insert("https://example.com", "many0000")
    clicks = ClickRepository(db_session)
    for i in range(15):
        await clicks.add("many0000", f"10.0.0.{i}", "direct", None)

    analytics = await build_analytics("many0000", clicks, recent_limit=10)

    assert analytics.total_clicks == 15
    assert analytics.unique_visitors == 15
    assert len(analytics.recent_clicks) == 10
    assert analytics.clicks_by_date[0].value == 15
    assert analytics.top_referrers[0].model_dump(by_alias=True) == {"label": "direct", "value": 15}


@pytest.mark.asyncio
async def test_analytics_endpoint_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/analytics/unknown0")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_analytics_endpoint_shape(client: AsyncClient) -> None:
    created = await client.post("/shorten", json={"url": "https://www.example.com"})
    short_code = created.json()["shortCode"]
    await client.get(f"/{short_code}", follow_redirects=False)

    response = await client.get(f"/analytics/{short_code}")

    assert response.status_code == 200
    data = response.json()
    assert data["shortCode"] == short_code
    assert data["totalClicks"] == 1
    assert set(data) == {
        "shortCode",
        "totalClicks",
        "uniqueVisitors",
        "recentClicks",
        "clicksByDate",
        "topReferrers",
    }
    assert data["topReferrers"] == [{"label": "direct", "value": 1}]
