"""Shared pytest fixtures for API, database, and cache tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BASE_URL", "http://localhost:8080")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import miniurl.models  # noqa: E402,F401
from miniurl.config import Settings, get_settings  # noqa: E402
from miniurl.database import Base, get_db  # noqa: E402
from miniurl.dependencies import ServiceManager, get_service_manager  # noqa: E402
from miniurl.main import app  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def services(settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> ServiceManager:
    return ServiceManager.create(settings, session_factory=session_factory)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, services: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_service_manager() -> ServiceManager:
        return services

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
