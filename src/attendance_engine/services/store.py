"""Timeclock store - the source of truth for schedules and time entries."""

from __future__ import annotations

from datetime import date, timedelta, tzinfo
from uuid import UUID

from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_engine.calculators.pay_periods import local_date_range_bounds
from attendance_engine.calculators.types import (
    ScheduleRecord,
    TimeEntryRecord,
    TimeEntryStatus,
)
from attendance_engine.models import Schedule, TimeEntry, TimeEntryAdjustment

# Entries are fetched with a margin so overnight shifts starting the day
# before the range still pair with their schedule.
ENTRY_MARGIN = timedelta(days=1)


class TimeclockStore:
    """Query layer over schedules and time entries.

    Feeds return immutable records sorted by start instant; mutations are
    done by the service on the ORM rows returned by the ``get_*`` methods.
    """

    def __init__(self, session: AsyncSession, tz: tzinfo):
        self.session = session
        self.tz = tz

    # === Feeds ===

    async def list_schedules(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> list[ScheduleRecord]:
        """Schedules whose local start date falls in [start_date, end_date]."""
        lower, upper = local_date_range_bounds(start_date, end_date, self.tz)
        result = await self.session.execute(
            select(Schedule)
            .where(
                Schedule.employee_id == employee_id,
                Schedule.start_time >= lower,
                Schedule.start_time < upper,
            )
            .order_by(Schedule.start_time, Schedule.schedule_id)
        )
        return [s.to_record() for s in result.scalars().all()]

    async def list_time_entries(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> list[TimeEntryRecord]:
        """Entries clocked in around [start_date, end_date], plus any open entry."""
        lower, upper = local_date_range_bounds(start_date, end_date, self.tz)
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.employee_id == employee_id,
                (
                    (TimeEntry.clock_in_time >= lower - ENTRY_MARGIN)
                    & (TimeEntry.clock_in_time < upper + ENTRY_MARGIN)
                )
                | (TimeEntry.status == TimeEntryStatus.CLOCKED_IN.value),
            )
            .order_by(TimeEntry.clock_in_time, TimeEntry.time_entry_id)
        )
        return [e.to_record() for e in result.scalars().all()]

    async def search_time_entries(
        self,
        start_date: date,
        end_date: date,
        employee_id: UUID | None = None,
        status: TimeEntryStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[TimeEntry], int]:
        """Page of entries whose local clock-in date is in [start_date, end_date].

        Returns (rows, total matching rows). Newest clock-in first.
        """
        lower, upper = local_date_range_bounds(start_date, end_date, self.tz)
        query = select(TimeEntry).where(
            TimeEntry.clock_in_time >= lower, TimeEntry.clock_in_time < upper
        )
        if employee_id is not None:
            query = query.where(TimeEntry.employee_id == employee_id)
        if status is not None:
            query = query.where(TimeEntry.status == status.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        query = query.order_by(TimeEntry.clock_in_time.desc(), TimeEntry.time_entry_id)
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def list_schedules_by_ids(self, schedule_ids: set[UUID]) -> list[ScheduleRecord]:
        """Schedules referenced by entries that fell outside a date window."""
        if not schedule_ids:
            return []
        result = await self.session.execute(
            select(Schedule).where(Schedule.schedule_id.in_(schedule_ids))
        )
        return [s.to_record() for s in result.scalars().all()]

    async def list_active_employee_ids(self, start_date: date, end_date: date) -> list[UUID]:
        """Employees with schedules or time entries in the range."""
        lower, upper = local_date_range_bounds(start_date, end_date, self.tz)
        query = union(
            select(Schedule.employee_id).where(
                Schedule.start_time >= lower, Schedule.start_time < upper
            ),
            select(TimeEntry.employee_id).where(
                TimeEntry.clock_in_time >= lower - ENTRY_MARGIN,
                TimeEntry.clock_in_time < upper + ENTRY_MARGIN,
            ),
        )
        result = await self.session.execute(query)
        return sorted({row[0] for row in result.all()}, key=str)

    # === Rows for mutation ===

    async def get_schedule(self, schedule_id: UUID) -> Schedule | None:
        return await self.session.get(Schedule, schedule_id)

    async def get_time_entry(self, time_entry_id: UUID) -> TimeEntry | None:
        return await self.session.get(TimeEntry, time_entry_id)

    async def get_open_entry(self, employee_id: UUID) -> TimeEntry | None:
        """The employee's CLOCKED_IN entry, if any."""
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.employee_id == employee_id,
                TimeEntry.status == TimeEntryStatus.CLOCKED_IN.value,
            )
            .order_by(TimeEntry.clock_in_time.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def schedule_has_entry(self, schedule_id: UUID) -> bool:
        result = await self.session.execute(
            select(TimeEntry.time_entry_id).where(TimeEntry.schedule_id == schedule_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    # === Idempotency lookups ===

    async def find_by_clock_in_key(self, key: str) -> TimeEntry | None:
        result = await self.session.execute(
            select(TimeEntry).where(TimeEntry.clock_in_idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def find_by_clock_out_key(self, key: str) -> TimeEntry | None:
        result = await self.session.execute(
            select(TimeEntry).where(TimeEntry.clock_out_idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def find_adjustment_by_key(self, key: str) -> TimeEntryAdjustment | None:
        result = await self.session.execute(
            select(TimeEntryAdjustment).where(TimeEntryAdjustment.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def list_adjustments(self, time_entry_id: UUID) -> list[TimeEntryAdjustment]:
        """Audit trail of a time entry, oldest first."""
        result = await self.session.execute(
            select(TimeEntryAdjustment)
            .where(TimeEntryAdjustment.time_entry_id == time_entry_id)
            .order_by(TimeEntryAdjustment.created_at, TimeEntryAdjustment.time_entry_adjustment_id)
        )
        return list(result.scalars().all())
