"""Admission control for the public endpoints.

Rate limiting is delegated to slowapi, keyed by client IP:

- ``POST /shorten``: ``SHORTEN_RATE_LIMIT`` (20/minute) per client;
- redirects and analytics: one shared ``REDIRECT_RATE_LIMIT`` (100/minute)
  bucket per client.

Requests over the limit are answered with 429 before any service code runs.
"""

from fastapi import Request
from slowapi import Limiter

from miniurl.config import get_settings

__all__ = ["client_ip", "limiter", "redirect_limit"]

settings = get_settings()


def _header_ip(value: str | None) -> str | None:
    if not value or value.lower() == "unknown":
        return None
    # X-Forwarded-For is "client, proxy1, proxy2"
    return value.split(",", 1)[0].strip() or None


def client_ip(request: Request) -> str:
    """Best guess at the originating client address behind proxies."""
    return (
        _header_ip(request.headers.get("x-forwarded-for"))
        or _header_ip(request.headers.get("x-real-ip"))
        or (request.client.host if request.client else "unknown")
    )


limiter = Limiter(
    key_func=client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)

redirect_limit = limiter.shared_limit(settings.REDIRECT_RATE_LIMIT, scope="redirect")
