"""Dependency injection for miniurl routes.

Process-wide resources (settings, logger, redirect cache, analytics sink) live
on a ``ServiceManager`` that the application creates at startup and stores on
``app.state``. Everything request-scoped (database session, repositories,
allocator, resolver) is built per request from a ``RequestContext``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from miniurl.allocator import CodeAllocator
from miniurl.analytics import ClickAnalyticsSink
from miniurl.cache import URLCache
from miniurl.config import Settings, get_settings
from miniurl.database import async_session, get_db
from miniurl.rate_limit import client_ip
from miniurl.repository import ClickRepository, ShortLinkRepository
from miniurl.resolver import RedirectResolver
from miniurl.schemas import ClickMetadata


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Owner of the shared, process-lifetime resources.

    Created once at startup and torn down at shutdown. The redirect cache is
    constructed here with its configured capacity and TTL and passed
    explicitly to every resolver.
    """

    def __init__(
        self,
        settings: Settings,
        url_cache: URLCache,
        analytics_sink: ClickAnalyticsSink,
        logger: logging.Logger | None = None,
    ):
        self.settings = settings
        self.url_cache = url_cache
        self.analytics_sink = analytics_sink
        self.logger = logger or self._setup_logger(settings)

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
    ) -> "ServiceManager":
        settings = settings or get_settings()
        return cls(
            settings=settings,
            url_cache=URLCache(maxsize=settings.CACHE_MAX_ENTRIES, ttl=settings.CACHE_TTL_SECONDS),
            analytics_sink=ClickAnalyticsSink(session_factory),
        )

    @staticmethod
    def _setup_logger(settings: Settings) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("miniurl")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(settings.LOG_LEVEL)
        return logger

    async def cleanup(self) -> None:
        """Release shared resources at shutdown."""
        self.url_cache.clear()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared resources plus request metadata.

    Attributes:
        database: Async database session (the only per-request resource)
        service_manager: Shared process-wide resources
        request_id: Unique identifier for this request
        client_ip: Client address as resolved by ``client_ip``
        user_agent: Client User-Agent header
        referrer: Client Referer header
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger with request context attached."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def click_metadata(self) -> ClickMetadata:
        return ClickMetadata(ip_address=self.client_ip, user_agent=self.user_agent, referrer=self.referrer)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager(request: Request) -> ServiceManager:
    """Return the application's ServiceManager, creating it if startup did not run."""
    manager = getattr(request.app.state, "services", None)
    if manager is None:
        manager = ServiceManager.create()
        request.app.state.services = manager
    return manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        client_ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )


def get_allocator(ctx: RequestContext = Depends(get_request_context)) -> CodeAllocator:
    return CodeAllocator(ShortLinkRepository(ctx.database), settings=ctx.settings, logger=ctx.logger)


def get_resolver(ctx: RequestContext = Depends(get_request_context)) -> RedirectResolver:
    return RedirectResolver(ctx.service_manager.url_cache, ShortLinkRepository(ctx.database), logger=ctx.logger)


def get_click_repository(ctx: RequestContext = Depends(get_request_context)) -> ClickRepository:
    return ClickRepository(ctx.database)
