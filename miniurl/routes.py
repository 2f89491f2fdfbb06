"""FastAPI route definitions for the miniurl REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/422/429/500/503

    GET  /analytics/:short_code
        └─ AnalyticsResponse (200) or 404/429

    GET  /:short_code
        └─ 301 Redirect or 404/429

Error Mapping
=============
::
    InvalidURLError           -> 400
    ShortCodeNotFoundError    -> 404
    StorageError              -> 500
    AllocationExhaustedError  -> 503

Key Behaviours
===============
- Shared resources are injected through ``RequestContext``.
- Click recording is scheduled as a background task after the redirect
  decision and can never change the redirect response.
- The catch-all ``/{short_code}`` route is registered last.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from miniurl.allocator import CodeAllocator
from miniurl.analytics import build_analytics, record_click_best_effort
from miniurl.config import get_settings
from miniurl.dependencies import (
    RequestContext,
    get_allocator,
    get_click_repository,
    get_request_context,
    get_resolver,
)
from miniurl.enums import HealthStatus
from miniurl.exceptions import (
    AllocationExhaustedError,
    InvalidURLError,
    ShortCodeNotFoundError,
    StorageError,
)
from miniurl.rate_limit import limiter, redirect_limit
from miniurl.repository import ClickRepository, ShortLinkRepository
from miniurl.resolver import RedirectResolver
from miniurl.schemas import AnalyticsResponse, HealthResponse, ShortenRequest, ShortenResponse

__all__ = ["router"]

router = APIRouter()

settings = get_settings()


def _short_url(base_url: str, short_code: str) -> str:
    return f"{base_url.rstrip('/')}/{short_code}"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(
        status=db_status,
        database=db_status,
        cache_entries=len(ctx.service_manager.url_cache),
    )


@router.post("/shorten", response_model=ShortenResponse, status_code=201, tags=["links"])
@limiter.limit(settings.SHORTEN_RATE_LIMIT)
async def shorten_url(
    request: Request,
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    allocator: CodeAllocator = Depends(get_allocator),
    resolver: RedirectResolver = Depends(get_resolver),
) -> ShortenResponse:
    ctx.logger.info(
        f"URL shortening requested: {payload.url}",
        extra={"operation": "shorten", "target_url": payload.url},
    )

    try:
        link = await allocator.allocate(payload.url)
    except InvalidURLError as exc:
        ctx.logger.warning(
            f"URL shortening rejected: {exc}",
            extra={"operation": "shorten", "error_code": exc.error_code},
        )
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AllocationExhaustedError as exc:
        ctx.logger.error(f"URL shortening unavailable: {exc}", extra={"error_code": exc.error_code})
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except StorageError as exc:
        ctx.logger.error(f"URL shortening failed: {exc}", extra={"error_code": exc.error_code})
        raise HTTPException(status_code=500, detail="Failed to store short link") from exc

    resolver.prime(link)
    ctx.logger.info(
        f"URL shortened successfully: {link.short_code}",
        extra={"operation": "shorten", "short_code": link.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(short_code=link.short_code, short_url=_short_url(ctx.settings.BASE_URL, link.short_code))


@router.get("/analytics/{short_code}", response_model=AnalyticsResponse, tags=["analytics"])
@redirect_limit
async def get_analytics(
    request: Request,
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    clicks: ClickRepository = Depends(get_click_repository),
) -> AnalyticsResponse:
    link = await ShortLinkRepository(ctx.database).find_by_short_code(short_code)
    if link is None:
        raise HTTPException(status_code=404, detail="Short URL not found")

    analytics = await build_analytics(
        short_code,
        clicks,
        recent_limit=ctx.settings.RECENT_CLICKS_LIMIT,
        referrer_limit=ctx.settings.TOP_REFERRERS_LIMIT,
    )
    ctx.logger.info(
        f"Retrieved analytics for {short_code}: {analytics.total_clicks} total clicks, "
        f"{analytics.unique_visitors} unique visitors"
    )
    return analytics


@router.get("/{short_code}", tags=["redirect"])
@redirect_limit
async def redirect_to_url(
    request: Request,
    short_code: str,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(get_request_context),
    resolver: RedirectResolver = Depends(get_resolver),
) -> RedirectResponse:
    try:
        destination_url = await resolver.resolve(short_code)
    except ShortCodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Short URL not found") from exc

    if ctx.settings.ANALYTICS_ENABLED:
        background_tasks.add_task(
            record_click_best_effort,
            ctx.service_manager.analytics_sink,
            short_code,
            ctx.click_metadata(),
            ctx.logger,
        )

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {destination_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=destination_url, status_code=301)
