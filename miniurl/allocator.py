"""Short code allocation.

The allocator maps a validated destination URL to a freshly generated short
code and persists the pair. Uniqueness is enforced by the database, not by
checking first: each attempt inserts directly and the repository reports a
collision when the unique constraint on ``short_code`` fires.

Flow Diagram — allocate()
=========================
::
    ┌─────────────┐
    │ validate URL │──── invalid ───► InvalidURLError (no store call)
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ attempt n    │◄──────────────┐
    │ new code     │               │
    └──────┬──────┘               │
           ▼                       │
    ┌─────────────┐   COLLISION    │
    │ insert row   │───────────────┘  (n < MAX_ALLOCATION_ATTEMPTS)
    └──────┬──────┘
    INSERTED │  FAILURE ─────────────► StorageError (not retried)
           ▼
    ┌─────────────┐
    │ return link  │
    └─────────────┘

    all attempts collided ───────────► AllocationExhaustedError

Key Behaviours
===============
- Codes are ``SHORT_CODE_LENGTH`` characters drawn from a 62-symbol alphabet
  by nanoid's CSPRNG; there is no lock around generation.
- A colliding attempt leaves no row behind (the repository rolls back).
- Exhaustion is logged at CRITICAL: with 62**8 codes it means the generator
  is broken or the keyspace is nearly full.
"""

import logging
from urllib.parse import urlsplit

import validators
from nanoid import generate
from prometheus_client import Counter

from miniurl.config import Settings, get_settings
from miniurl.enums import InsertStatus
from miniurl.exceptions import AllocationExhaustedError, InvalidURLError, StorageError
from miniurl.models import ShortLink
from miniurl.repository import ShortLinkRepository

__all__ = ["ALPHABET", "CodeAllocator", "generate_short_code", "validate_destination_url"]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
ALLOWED_SCHEMES = ("http", "https")

SHORT_LINKS_CREATED_TOTAL = Counter(
    "miniurl_short_links_created_total",
    "Short links successfully allocated",
)
ALLOCATION_COLLISIONS_TOTAL = Counter(
    "miniurl_allocation_collisions_total",
    "Insert attempts rejected by the short code unique constraint",
)
ALLOCATION_EXHAUSTED_TOTAL = Counter(
    "miniurl_allocation_exhausted_total",
    "Allocations that ran out of attempts",
)


def generate_short_code(length: int = 8) -> str:
    if not isinstance(length, int) or length <= 0:
        raise ValueError(f"length must be a positive integer, got {length!r}")
    return generate(ALPHABET, length)


def validate_destination_url(url: str, max_length: int = 2048) -> str:
    """Return ``url`` unchanged if it is an absolute http(s) URL, else raise InvalidURLError."""
    if not isinstance(url, str) or not url:
        raise InvalidURLError("URL must be a non-empty string")
    if len(url) > max_length:
        raise InvalidURLError(f"URL exceeds maximum length of {max_length} characters")
    scheme = urlsplit(url).scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURLError(f"Invalid URL format: {url}")
    if not validators.url(url):
        raise InvalidURLError(f"Invalid URL format: {url}")
    return url


class CodeAllocator:
    """Allocates store-unique short codes with bounded retries.

    Args:
        repository: Store for short links.
        settings: Code length, attempt cap and URL length limit.
        logger: Logger or request-scoped LoggerAdapter.
        code_generator: Callable producing a code of the given length.
    """

    def __init__(
        self,
        repository: ShortLinkRepository,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        code_generator=generate_short_code,
    ):
        self._repository = repository
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("miniurl")
        self._generate = code_generator

    @property
    def max_attempts(self) -> int:
        return self._settings.MAX_ALLOCATION_ATTEMPTS

    async def allocate(self, destination_url: str) -> ShortLink:
        validate_destination_url(destination_url, self._settings.MAX_URL_LENGTH)

        for attempt in range(1, self.max_attempts + 1):
            short_code = self._generate(self._settings.SHORT_CODE_LENGTH)
            result = await self._repository.insert(destination_url, short_code)

            if result.status is InsertStatus.INSERTED:
                SHORT_LINKS_CREATED_TOTAL.inc()
                self._logger.info(f"Successfully shortened URL: {destination_url} -> {short_code}")
                return result.link

            if result.status is InsertStatus.COLLISION:
                ALLOCATION_COLLISIONS_TOTAL.inc()
                self._logger.warning(
                    f"Short code collision occurred on attempt {attempt} of {self.max_attempts}"
                )
                continue

            self._logger.error(f"Storage failure while allocating short code: {result.error}")
            raise StorageError(f"Failed to store short link: {result.error}") from result.error

        ALLOCATION_EXHAUSTED_TOTAL.inc()
        self._logger.critical(
            f"Short code allocation exhausted after {self.max_attempts} attempts "
            f"(code length {self._settings.SHORT_CODE_LENGTH})"
        )
        raise AllocationExhaustedError(self.max_attempts)
