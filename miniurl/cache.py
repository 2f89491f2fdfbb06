"""In-process redirect cache for short code lookups.

``URLCache`` holds a ``short_code -> destination_url`` projection in front of
the database. It is built on ``cachetools.TTLCache``:

- at most ``maxsize`` entries, least recently used evicted first;
- every entry expires ``ttl`` seconds after it was written, no matter how
  often it is read.

The cache is created once per process by the service manager and handed to
the redirect resolver; nothing else writes to it. Negative lookups are never
stored.

How to Use
===========
::
    cache = URLCache(maxsize=10_000, ttl=3600)
    cache.put("abc12345", "https://example.com")
    cache.get("abc12345")  # "https://example.com"
"""

import threading
import time
from collections.abc import Callable

from cachetools import TTLCache

__all__ = ["URLCache"]


class URLCache:
    """Bounded LRU cache with expire-after-write semantics."""

    def __init__(self, maxsize: int, ttl: float, timer: Callable[[], float] = time.monotonic):
        self._entries: TTLCache[str, str] = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        # cachetools is not thread safe; held only for the dict operation itself.
        self._lock = threading.Lock()

    @property
    def maxsize(self) -> int:
        return int(self._entries.maxsize)

    @property
    def ttl(self) -> float:
        return self._entries.ttl

    def get(self, short_code: str) -> str | None:
        with self._lock:
            return self._entries.get(short_code)

    def put(self, short_code: str, destination_url: str) -> None:
        with self._lock:
            self._entries[short_code] = destination_url

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)

    def __contains__(self, short_code: object) -> bool:
        with self._lock:
            return short_code in self._entries
