"""Database configuration and session management for miniurl.

This module provides SQLAlchemy async engine setup, session management,
and database lifecycle operations. PostgreSQL (asyncpg) is the production
backend; SQLite (aiosqlite) is supported for local runs and tests.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_db()     │
    │ dependency  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Create async │
    │ session     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Yield to     │
    │ request     │
    │ handler     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (finally)    │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Use in FastAPI endpoints**::
    @app.get("/links")
    async def get_links(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(ShortLink))
        return result.scalars().all()

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- Async sessions are automatically closed after each request.
- Connection pooling is configured for server databases only; SQLite uses
  the driver's default pool.
- ``async_session`` is also used directly by the analytics sink, which must
  not share the request session's transaction.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    get_db():  FastAPI dependency for database sessions.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from miniurl.config import get_settings

__all__ = ["Base", "async_session", "engine", "get_db", "init_db", "close_db"]

settings = get_settings()


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.APP_ENV == "development"}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    # Import models so they register on Base.metadata.
    import miniurl.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
