"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_engine.config import Settings, get_settings
from attendance_engine.database import init_db
from attendance_engine.services.timeclock_service import TimeclockService, utc_now
from attendance_engine.services.view_cache import DerivedViewCache

ADJUSTMENT_ROLES = frozenset({"admin", "manager"})


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; commits when the request succeeds."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_clock() -> Callable[[], datetime]:
    """Source of the current instant."""
    return utc_now


@lru_cache(maxsize=1)
def get_view_cache() -> DerivedViewCache:
    """Process-wide derived view cache."""
    return DerivedViewCache()


async def get_timeclock_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
    cache: Annotated[DerivedViewCache, Depends(get_view_cache)],
) -> TimeclockService:
    return TimeclockService(session, settings.policy, clock=clock, cache=cache)


async def require_adjustment_role(
    x_user_role: Annotated[str | None, Header()] = None,
) -> str:
    """Only admins and managers may adjust time entries."""
    if not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Role header is required",
        )
    role = x_user_role.strip().lower()
    if role not in ADJUSTMENT_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{role}' may not adjust time entries",
        )
    return role


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
TimeclockServiceDep = Annotated[TimeclockService, Depends(get_timeclock_service)]
AdjusterRole = Annotated[str, Depends(require_adjustment_role)]
IdempotencyKey = Annotated[str | None, Header(alias="Idempotency-Key")]
