"""Type definitions for the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class ScheduleStatus(str, Enum):
    """Schedule record status values."""

    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class TimeEntryStatus(str, Enum):
    """Time entry status values."""

    CLOCKED_IN = "CLOCKED_IN"
    CLOCKED_OUT = "CLOCKED_OUT"
    ADJUSTED = "ADJUSTED"


class ShiftType(str, Enum):
    """Time-of-day shift label (display and anomaly context only)."""

    DAY = "day"
    NIGHT = "night"


class MatchStatus(str, Enum):
    """Outcome of matching a schedule against clock events."""

    MATCHED = "MATCHED"
    AVAILABLE = "AVAILABLE"
    UPCOMING = "UPCOMING"
    UNAVAILABLE = "UNAVAILABLE"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"


class AnomalyKind(str, Enum):
    """Attendance anomaly labels."""

    LATE = "LATE"
    EARLY_CLOCK_OUT = "EARLY_CLOCK_OUT"
    DAILY_OVERTIME = "DAILY_OVERTIME"
    EXCESSIVE_PERIOD_HOURS = "EXCESSIVE_PERIOD_HOURS"
    NEGATIVE_DURATION = "NEGATIVE_DURATION"
    MISSED_SHIFT = "MISSED_SHIFT"


class DailyClockStatus(str, Enum):
    """Roll-up status of an employee's day."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    OVERTIME = "OVERTIME"


@dataclass(frozen=True)
class ScheduleRecord:
    """A planned shift, as read from the scheduling feed."""

    schedule_id: UUID
    employee_id: UUID
    start_time: datetime
    end_time: datetime
    position: str | None = None
    status: ScheduleStatus = ScheduleStatus.SCHEDULED

    @property
    def is_cancelled(self) -> bool:
        return self.status == ScheduleStatus.CANCELLED


@dataclass(frozen=True)
class TimeEntryRecord:
    """A clock-in/clock-out pair, open or closed."""

    time_entry_id: UUID
    employee_id: UUID
    clock_in_time: datetime
    schedule_id: UUID | None = None
    clock_out_time: datetime | None = None
    adjusted_start_time: datetime | None = None
    adjusted_end_time: datetime | None = None
    total_hours: Decimal | None = None
    status: TimeEntryStatus = TimeEntryStatus.CLOCKED_IN
    grace_period_applied: bool = False

    @property
    def is_open(self) -> bool:
        return self.status == TimeEntryStatus.CLOCKED_IN

    @property
    def effective_end(self) -> datetime | None:
        return self.adjusted_end_time or self.clock_out_time

    @property
    def is_closed(self) -> bool:
        return not self.is_open and self.effective_end is not None


@dataclass(frozen=True)
class GraceResult:
    """Result of grace-period snapping."""

    adjusted: datetime
    applied: bool


@dataclass(frozen=True)
class HourSplit:
    """Regular/overtime split of a number of hours."""

    regular: Decimal
    overtime: Decimal

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime


@dataclass(frozen=True)
class PayableInterval:
    """Payable window of a time entry after grace and manual corrections."""

    start: datetime
    end: datetime | None
    hours: Decimal
    inverted: bool = False
    grace_applied: bool = False


@dataclass(frozen=True)
class MatchedShift:
    """One schedule paired with zero-or-one time entry."""

    schedule: ScheduleRecord
    status: MatchStatus
    entry: TimeEntryRecord | None = None
    work_date: date | None = None

    @property
    def has_closed_entry(self) -> bool:
        return self.entry is not None and self.entry.is_closed


@dataclass(frozen=True)
class MatchResult:
    """Matcher output for one employee."""

    employee_id: UUID
    shifts: tuple[MatchedShift, ...] = ()
    orphans: tuple[TimeEntryRecord, ...] = ()
    open_entry: TimeEntryRecord | None = None

    def with_status(self, status: MatchStatus) -> list[MatchedShift]:
        return [s for s in self.shifts if s.status == status]


@dataclass(frozen=True)
class Anomaly:
    """A derived attendance flag attached to a shift, day or period."""

    kind: AnomalyKind
    employee_id: UUID
    work_date: date | None = None
    schedule_id: UUID | None = None
    time_entry_id: UUID | None = None
    pay_period_id: str | None = None
    detail: str | None = None

    def sort_key(self) -> tuple[Any, ...]:
        return (
            self.work_date or date.min,
            self.kind.value,
            str(self.schedule_id or ""),
            str(self.time_entry_id or ""),
        )


@dataclass(frozen=True)
class DailySummary:
    """Per-employee, per-civil-day roll-up. Recomputed on every read."""

    employee_id: UUID
    work_date: date
    scheduled_hours: Decimal
    worked_hours: Decimal
    completed_shift_count: int
    total_schedule_count: int
    clock_status: DailyClockStatus = DailyClockStatus.NOT_STARTED
    is_clocked_in: bool = False


@dataclass(frozen=True)
class PayPeriodAggregate:
    """Per-employee totals for one pay period."""

    employee_id: UUID
    pay_period_id: str
    period_start: date
    period_end: date
    pay_rate: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    deductions: Decimal
    net_pay: Decimal
    shift_count: int
    inputs_fingerprint: str
    anomalies: tuple[Anomaly, ...] = field(default=())

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours


@dataclass(frozen=True)
class YearToDateSummary:
    """Sum of completed pay periods within a calendar year."""

    employee_id: UUID
    year: int
    period_count: int
    regular_hours: Decimal
    overtime_hours: Decimal
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours


@dataclass(frozen=True)
class PeriodSummary:
    """Multi-employee totals for one pay period."""

    pay_period_id: str
    total_employees: int
    total_hours: Decimal
    total_overtime_hours: Decimal
    total_gross_pay: Decimal
    total_net_pay: Decimal
    anomalies_count: int


@dataclass(frozen=True)
class EmployeeClockStatus:
    """One row of the today-at-a-glance board."""

    employee_id: UUID
    clock_status: DailyClockStatus
    is_clocked_in: bool
    is_late: bool
    scheduled_hours: Decimal
    worked_hours: Decimal
    total_schedule_count: int

    @property
    def is_overtime(self) -> bool:
        return self.clock_status == DailyClockStatus.OVERTIME


@dataclass(frozen=True)
class TodayClockStatus:
    """Clock status of every employee scheduled or working on one civil day."""

    work_date: date
    employees: tuple[EmployeeClockStatus, ...] = ()

    @property
    def total_employees(self) -> int:
        return len(self.employees)

    @property
    def clocked_in_count(self) -> int:
        return sum(1 for e in self.employees if e.is_clocked_in)

    @property
    def completed_count(self) -> int:
        return sum(1 for e in self.employees if e.clock_status == DailyClockStatus.COMPLETED)

    @property
    def late_count(self) -> int:
        return sum(1 for e in self.employees if e.is_late)

    @property
    def overtime_count(self) -> int:
        return sum(1 for e in self.employees if e.is_overtime)

    @property
    def attendance_rate(self) -> int:
        """Percent of employees clocked in or done, rounded half up."""
        if not self.employees:
            return 0
        present = Decimal(self.clocked_in_count + self.completed_count)
        rate = present * 100 / self.total_employees
        return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
