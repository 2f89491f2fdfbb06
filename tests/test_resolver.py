"""Tests for cache-aside redirect resolution."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from miniurl.allocator import CodeAllocator
from miniurl.cache import URLCache
from miniurl.exceptions import ShortCodeNotFoundError
from miniurl.models import ShortLink
from miniurl.repository import ShortLinkRepository
from miniurl.resolver import RedirectResolver


class FakeTimer:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def url_cache(timer: FakeTimer) -> URLCache:
    return URLCache(maxsize=100, ttl=3600, timer=timer)


@pytest.fixture
def repository() -> AsyncMock:
    repo = AsyncMock(spec=ShortLinkRepository)
    repo.find_by_short_code = AsyncMock(
        return_value=ShortLink(id=1, short_code="abc12345", destination_url="https://example.com/a")
    )
    return repo


@pytest.mark.asyncio
async def test_miss_reads_store_and_populates_cache(url_cache: URLCache, repository: AsyncMock) -> None:
    resolver = RedirectResolver(url_cache, repository)

    assert await resolver.resolve("abc12345") == "https://example.com/a"

    repository.find_by_short_code.assert_awaited_once_with("abc12345")
    assert url_cache.get("abc12345") == "https://example.com/a"


@pytest.mark.asyncio
async def test_hit_within_ttl_skips_store(url_cache: URLCache, repository: AsyncMock, timer: FakeTimer) -> None:
    resolver = RedirectResolver(url_cache, repository)

    await resolver.resolve("abc12345")
    timer.now = 3599
    assert await resolver.resolve("abc12345") == "https://example.com/a"

    assert repository.find_by_short_code.await_count == 1


@pytest.mark.asyncio
async def test_expired_entry_issues_exactly_one_store_call(
    url_cache: URLCache, repository: AsyncMock, timer: FakeTimer
) -> None:
    resolver = RedirectResolver(url_cache, repository)

    await resolver.resolve("abc12345")
    timer.now = 3601
    await resolver.resolve("abc12345")
    await resolver.resolve("abc12345")

    assert repository.find_by_short_code.await_count == 2


@pytest.mark.asyncio
async def test_unknown_code_is_not_cached(url_cache: URLCache, repository: AsyncMock) -> None:
    repository.find_by_short_code.return_value = None
    resolver = RedirectResolver(url_cache, repository)

    for _ in range(2):
        with pytest.raises(ShortCodeNotFoundError):
            await resolver.resolve("nope0000")

    assert repository.find_by_short_code.await_count == 2
    assert "nope0000" not in url_cache


@pytest.mark.asyncio
async def test_prime_serves_without_store_call(url_cache: URLCache, repository: AsyncMock) -> None:
    resolver = RedirectResolver(url_cache, repository)
    resolver.prime(ShortLink(id=2, short_code="zzz99999", destination_url="https://example.com/z"))

    assert await resolver.resolve("zzz99999") == "https://example.com/z"
    repository.find_by_short_code.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/path?q=1",
        "http://example.com/a%20b?x=1&y=%C3%A9#frag",
        "https://example.com/" + "p" * 1500,
    ],
)
async def test_round_trip_through_database(db_session: AsyncSession, settings, url: str) -> None:
    repository = ShortLinkRepository(db_session)
    link = await CodeAllocator(repository, settings=settings).allocate(url)

    # Fresh cache so the lookup goes to the database.
    resolver = RedirectResolver(URLCache(maxsize=10, ttl=60), repository)

    assert await resolver.resolve(link.short_code) == url
