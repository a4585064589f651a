"""Integration test fixtures: the ASGI app wired to the in-memory test database."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance_engine.api.app import create_app
from attendance_engine.api.dependencies import get_clock, get_db_session, get_view_cache
from attendance_engine.config import AttendancePolicy, Settings, get_settings
from attendance_engine.services.view_cache import DerivedViewCache

from tests.factories import FrozenClock


@pytest.fixture
def settings(policy: AttendancePolicy) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        engine_version="1.0.0-test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        policy=policy,
    )


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    clock: FrozenClock,
) -> FastAPI:
    """Application with its database, clock and cache pointed at test doubles."""
    app = create_app()
    cache = DerivedViewCache()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_view_cache] = lambda: cache
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seed(session_factory: async_sessionmaker[AsyncSession]):
    """Run a coroutine function against a committed session."""

    async def run(builder, *args, **kwargs):
        async with session_factory() as session:
            row = await builder(session, *args, **kwargs)
            await session.commit()
            return row

    return run
