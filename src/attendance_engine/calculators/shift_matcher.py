"""Shift matcher: pairs clock events with planned schedules.

Matching is always scoped to one employee. Entries carrying a ``schedule_id``
were linked at clock-in time and pair with that schedule; entries without one
(or referencing a schedule outside the input set) are orphans, i.e.
unscheduled work that is paid but never labeled against a specific shift.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable
from uuid import UUID

from attendance_engine.calculators.types import (
    MatchedShift,
    MatchResult,
    MatchStatus,
    ScheduleRecord,
    ScheduleStatus,
    TimeEntryRecord,
)


class ShiftMatcher:
    """Pairs schedules and time entries for one employee.

    Match status of a schedule without an entry:
    - CANCELLED: the schedule was cancelled
    - AVAILABLE: now is in [start - clock_in_window, end], the schedule is
      still SCHEDULED and the employee has no open entry
    - UNAVAILABLE: inside the window but an open entry exists (or the schedule
      is no longer in SCHEDULED status)
    - UPCOMING: before the clock-in window opens
    - MISSED: now is past the scheduled end
    """

    def __init__(self, clock_in_window_minutes: int, tz: tzinfo):
        self.clock_in_window = timedelta(minutes=clock_in_window_minutes)
        self.tz = tz

    def match(
        self,
        employee_id: UUID,
        schedules: Iterable[ScheduleRecord],
        entries: Iterable[TimeEntryRecord],
        now: datetime,
    ) -> MatchResult:
        """Match one employee's schedules against their time entries."""
        own_schedules = sorted(
            (s for s in schedules if s.employee_id == employee_id),
            key=lambda s: (s.start_time, str(s.schedule_id)),
        )
        own_entries = sorted(
            (e for e in entries if e.employee_id == employee_id),
            key=lambda e: (e.clock_in_time, str(e.time_entry_id)),
        )
        schedule_ids = {s.schedule_id for s in own_schedules}

        open_entries = [e for e in own_entries if e.is_open]
        open_entry = open_entries[-1] if open_entries else None

        # Partition into pre-linked entries and orphans
        linked: dict[UUID, list[TimeEntryRecord]] = defaultdict(list)
        orphans: list[TimeEntryRecord] = []
        for entry in own_entries:
            if entry.schedule_id is not None and entry.schedule_id in schedule_ids:
                linked[entry.schedule_id].append(entry)
            else:
                orphans.append(entry)

        shifts: list[MatchedShift] = []
        for schedule in own_schedules:
            candidates = linked.get(schedule.schedule_id, [])
            work_date = self.work_date_for_schedule(schedule)

            if candidates:
                # At most one entry per schedule; the closest clock-in wins
                winner = min(
                    candidates,
                    key=lambda e: (
                        abs(e.clock_in_time - schedule.start_time),
                        e.clock_in_time,
                        str(e.time_entry_id),
                    ),
                )
                orphans.extend(e for e in candidates if e is not winner)
                shifts.append(
                    MatchedShift(
                        schedule=schedule,
                        status=MatchStatus.MATCHED,
                        entry=winner,
                        work_date=work_date,
                    )
                )
                continue

            shifts.append(
                MatchedShift(
                    schedule=schedule,
                    status=self._unmatched_status(schedule, now, open_entry is not None),
                    work_date=work_date,
                )
            )

        orphans.sort(key=lambda e: (e.clock_in_time, str(e.time_entry_id)))
        return MatchResult(
            employee_id=employee_id,
            shifts=tuple(shifts),
            orphans=tuple(orphans),
            open_entry=open_entry,
        )

    def _unmatched_status(
        self, schedule: ScheduleRecord, now: datetime, has_open_entry: bool
    ) -> MatchStatus:
        if schedule.is_cancelled:
            return MatchStatus.CANCELLED
        if now > schedule.end_time:
            return MatchStatus.MISSED
        if now < schedule.start_time - self.clock_in_window:
            return MatchStatus.UPCOMING
        if has_open_entry or schedule.status != ScheduleStatus.SCHEDULED:
            return MatchStatus.UNAVAILABLE
        return MatchStatus.AVAILABLE

    def clock_in_window_opens(self, schedule: ScheduleRecord) -> datetime:
        """Earliest instant a clock-in against this schedule is accepted."""
        return schedule.start_time - self.clock_in_window

    def select_schedule_for_clock_in(
        self, result: MatchResult, at: datetime
    ) -> ScheduleRecord | None:
        """Pick the available schedule whose start is closest to ``at``."""
        available = result.with_status(MatchStatus.AVAILABLE)
        if not available:
            return None
        best = min(
            available,
            key=lambda s: (
                abs(s.schedule.start_time - at),
                s.schedule.start_time,
                str(s.schedule.schedule_id),
            ),
        )
        return best.schedule

    # === Civil-day grouping ===

    def work_date_for_schedule(self, schedule: ScheduleRecord) -> date:
        """Night shifts belong to the local date they start on."""
        return schedule.start_time.astimezone(self.tz).date()

    def work_date_for_entry(self, entry: TimeEntryRecord) -> date:
        return entry.clock_in_time.astimezone(self.tz).date()

    def group_by_work_date(
        self, result: MatchResult
    ) -> dict[date, tuple[list[MatchedShift], list[TimeEntryRecord]]]:
        """Group matched shifts and orphans by civil work date."""
        grouped: dict[date, tuple[list[MatchedShift], list[TimeEntryRecord]]] = {}
        for shift in result.shifts:
            day = shift.work_date or self.work_date_for_schedule(shift.schedule)
            grouped.setdefault(day, ([], []))[0].append(shift)
        for orphan in result.orphans:
            day = self.work_date_for_entry(orphan)
            grouped.setdefault(day, ([], []))[1].append(orphan)
        return dict(sorted(grouped.items()))
