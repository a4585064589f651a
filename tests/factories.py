"""Record and row builders shared by the test suite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from attendance_engine.calculators.types import (
    ScheduleRecord,
    ScheduleStatus,
    TimeEntryRecord,
    TimeEntryStatus,
)
from attendance_engine.models import PayRate, Schedule, TimeEntry

TZ = ZoneInfo("America/Vancouver")


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """UTC instant of a Vancouver wall-clock time."""
    return datetime(year, month, day, hour, minute, tzinfo=TZ).astimezone(timezone.utc)


class FrozenClock:
    """Injectable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def schedule_record(
    employee_id: UUID,
    start: datetime,
    end: datetime,
    status: ScheduleStatus = ScheduleStatus.SCHEDULED,
    position: str | None = "Cashier",
    schedule_id: UUID | None = None,
) -> ScheduleRecord:
    return ScheduleRecord(
        schedule_id=schedule_id or uuid4(),
        employee_id=employee_id,
        start_time=start,
        end_time=end,
        position=position,
        status=status,
    )


def entry_record(
    employee_id: UUID,
    clock_in: datetime,
    clock_out: datetime | None = None,
    schedule_id: UUID | None = None,
    status: TimeEntryStatus | None = None,
    adjusted_start: datetime | None = None,
    adjusted_end: datetime | None = None,
) -> TimeEntryRecord:
    if status is None:
        status = TimeEntryStatus.CLOCKED_OUT if clock_out else TimeEntryStatus.CLOCKED_IN
    return TimeEntryRecord(
        time_entry_id=uuid4(),
        employee_id=employee_id,
        schedule_id=schedule_id,
        clock_in_time=clock_in,
        clock_out_time=clock_out,
        adjusted_start_time=adjusted_start,
        adjusted_end_time=adjusted_end,
        status=status,
    )


async def add_schedule(
    session: AsyncSession,
    employee_id: UUID,
    start: datetime,
    end: datetime,
    status: ScheduleStatus = ScheduleStatus.SCHEDULED,
    position: str | None = "Cashier",
) -> Schedule:
    schedule = Schedule(
        schedule_id=uuid4(),
        employee_id=employee_id,
        start_time=start,
        end_time=end,
        position=position,
        status=status.value,
    )
    session.add(schedule)
    await session.flush()
    return schedule


async def add_entry(
    session: AsyncSession,
    employee_id: UUID,
    clock_in: datetime,
    clock_out: datetime | None = None,
    schedule_id: UUID | None = None,
) -> TimeEntry:
    status = TimeEntryStatus.CLOCKED_OUT if clock_out else TimeEntryStatus.CLOCKED_IN
    entry = TimeEntry(
        time_entry_id=uuid4(),
        employee_id=employee_id,
        schedule_id=schedule_id,
        clock_in_time=clock_in,
        clock_out_time=clock_out,
        status=status.value,
    )
    session.add(entry)
    await session.flush()
    return entry


async def add_rate(
    session: AsyncSession,
    employee_id: UUID,
    amount: str,
    start_date: date = date(2024, 1, 1),
    end_date: date | None = None,
    priority: int = 0,
) -> PayRate:
    rate = PayRate(
        pay_rate_id=uuid4(),
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        amount=Decimal(amount),
        priority=priority,
    )
    session.add(rate)
    await session.flush()
    return rate
