"""Redirect resolution with a cache-aside strategy.

Flow Diagram — resolve()
========================
::
    ┌─────────────┐
    │  GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ URLCache.get │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Query   │  │ Return  │
│ store   │  │ cached  │
└────┬────┘  └─────────┘
     │
  found? ── no ──► ShortCodeNotFoundError (nothing cached)
     │
     ▼
┌─────────┐
│ Cache + │
│ return  │
└─────────┘

Key Behaviours
===============
- A cache hit makes no store call.
- Unknown codes are never cached, so every lookup of one reaches the store.
- Concurrent misses for the same code may each query the store. Reads are
  idempotent, so there is no single-flight coordination.
- The resolver is the only writer to the cache.
"""

import logging

from prometheus_client import Counter

from miniurl.cache import URLCache
from miniurl.exceptions import ShortCodeNotFoundError
from miniurl.models import ShortLink
from miniurl.repository import ShortLinkRepository

__all__ = ["RedirectResolver"]

CACHE_HITS_TOTAL = Counter(
    "miniurl_cache_hits_total",
    "Redirect lookups served from the cache",
)
CACHE_MISSES_TOTAL = Counter(
    "miniurl_cache_misses_total",
    "Redirect lookups that missed the cache",
)
STORE_READS_TOTAL = Counter(
    "miniurl_store_reads_total",
    "Short link reads issued against the database",
)


class RedirectResolver:
    def __init__(
        self,
        cache: URLCache,
        repository: ShortLinkRepository,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._cache = cache
        self._repository = repository
        self._logger = logger or logging.getLogger("miniurl")

    async def resolve(self, short_code: str) -> str:
        cached = self._cache.get(short_code)
        if cached is not None:
            CACHE_HITS_TOTAL.inc()
            self._logger.debug(f"Cache hit for {short_code}")
            return cached

        CACHE_MISSES_TOTAL.inc()
        link = await self._repository.find_by_short_code(short_code)
        STORE_READS_TOTAL.inc()
        if link is None:
            self._logger.info(f"Short code not found: {short_code}")
            raise ShortCodeNotFoundError(short_code)

        self._logger.info(f"Cache miss - fetched from DB for short code: {short_code}")
        self._cache.put(link.short_code, link.destination_url)
        return link.destination_url

    def prime(self, link: ShortLink) -> None:
        """Cache a link that was just committed to the store."""
        self._cache.put(link.short_code, link.destination_url)
