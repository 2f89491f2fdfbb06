"""FastAPI application entry point for the miniurl service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management, and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ lifespan()    │
    │ init_db()     │
    │ ServiceManager│
    │ (cache, sink) │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ cleanup()   │
    │ close_db()  │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn miniurl.main:app --host 0.0.0.0 --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'

    curl -i http://localhost:8080/abc12345

Key Behaviours
===============
- Database tables are created automatically on startup.
- The redirect cache is created on startup and cleared on shutdown.
- Rate limiting (slowapi) answers 429 before any route code runs.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from miniurl.config import get_settings
from miniurl.database import close_db, init_db
from miniurl.dependencies import ServiceManager
from miniurl.rate_limit import limiter
from miniurl.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    services = ServiceManager.create(settings)
    app.state.services = services
    services.logger.info(
        f"{settings.APP_NAME} started: cache {settings.CACHE_MAX_ENTRIES} entries / {settings.CACHE_TTL_SECONDS}s"
    )
    yield
    # Shutdown
    await services.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with cached redirects and click analytics",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
