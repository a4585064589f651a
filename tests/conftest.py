"""Pytest fixtures for attendance engine tests."""

from __future__ import annotations

from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from attendance_engine.calculators.shift_matcher import ShiftMatcher
from attendance_engine.config import AttendancePolicy
from attendance_engine.models import Base
from attendance_engine.services.timeclock_service import TimeclockService
from attendance_engine.services.view_cache import DerivedViewCache

from tests.factories import TZ, FrozenClock, local

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def policy() -> AttendancePolicy:
    """Default policy: 5 min grace and window, 10 min late tolerance."""
    return AttendancePolicy(timezone="America/Vancouver")


@pytest.fixture
def matcher(policy: AttendancePolicy) -> ShiftMatcher:
    return ShiftMatcher(policy.clock_in_window_minutes, TZ)


@pytest.fixture
def clock() -> FrozenClock:
    """Monday 2024-03-04, 08:58 local (two minutes before a 09:00 shift)."""
    return FrozenClock(local(2024, 3, 4, 8, 58))


@pytest.fixture
def view_cache() -> DerivedViewCache:
    return DerivedViewCache()


@pytest.fixture
def service(
    session: AsyncSession,
    policy: AttendancePolicy,
    clock: FrozenClock,
    view_cache: DerivedViewCache,
) -> TimeclockService:
    return TimeclockService(session, policy, clock=clock, cache=view_cache)


@pytest.fixture
def employee_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_employee_id() -> UUID:
    return uuid4()
