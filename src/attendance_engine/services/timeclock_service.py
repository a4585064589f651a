"""Timeclock service - validates mutation intents and assembles derived views."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_engine.calculators.anomaly_detector import AnomalyDetector
from attendance_engine.calculators.pay_periods import (
    PayPeriod,
    current_pay_period,
    pay_period_for_date,
    pay_periods_in_year,
    parse_pay_period_id,
)
from attendance_engine.calculators.payroll_aggregator import (
    DeductionsProvider,
    PayrollAggregator,
    no_deductions,
)
from attendance_engine.calculators.rate_resolver import RateNotFoundError, RateResolver
from attendance_engine.calculators.shift_matcher import ShiftMatcher
from attendance_engine.calculators.time_model import (
    apply_grace_period,
    hours_between,
    payable_interval,
    scheduled_hours,
)
from attendance_engine.calculators.types import (
    Anomaly,
    DailyClockStatus,
    DailySummary,
    EmployeeClockStatus,
    MatchedShift,
    MatchResult,
    MatchStatus,
    PayPeriodAggregate,
    PeriodSummary,
    ScheduleRecord,
    TimeEntryRecord,
    TimeEntryStatus,
    TodayClockStatus,
    YearToDateSummary,
)
from attendance_engine.config import AttendancePolicy
from attendance_engine.errors import (
    ConflictError,
    NoOpenEntryError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from attendance_engine.models import TimeEntry, TimeEntryAdjustment
from attendance_engine.services.state_machine import (
    ClockAction,
    ClockStateMachine,
    Eligibility,
)
from attendance_engine.services.store import TimeclockStore
from attendance_engine.services.view_cache import DerivedViewCache, fingerprint_records

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Local days loaded around "today" so overnight shifts are visible
ELIGIBILITY_LOOKAROUND = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ListedTimeEntry:
    """A time entry row with its duration at read time."""

    entry: TimeEntry
    duration_hours: Decimal


@dataclass(frozen=True)
class TimeEntryPage:
    """One page of a time entry listing."""

    items: list[ListedTimeEntry]
    total: int
    page: int
    page_size: int


class TimeclockService:
    """Service for clock mutations and attendance/payroll views.

    Mutations:
    - clock_in: open a time entry against an available schedule
    - clock_out: close the employee's open entry
    - adjust_time_entry: manual correction with an audit row

    Views (recomputed from the store on every read):
    - get_eligibility, get_today_schedules, get_daily_summary, get_anomalies
    - list_time_entries, get_today_clock_status
    - get_pay_period_aggregate, get_year_to_date, get_period_summary

    The service flushes but never commits; the caller owns the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: AttendancePolicy,
        clock: Callable[[], datetime] = utc_now,
        cache: DerivedViewCache | None = None,
        deductions: DeductionsProvider = no_deductions,
    ):
        self.session = session
        self.policy = policy
        self.clock = clock
        self.cache = cache
        self.tz = policy.tz
        self.store = TimeclockStore(session, self.tz)
        self.rates = RateResolver(session)
        self.matcher = ShiftMatcher(policy.clock_in_window_minutes, self.tz)
        self.state_machine = ClockStateMachine(self.matcher, policy.allow_unscheduled_clock_in)
        self.detector = AnomalyDetector(policy)
        self.aggregator = PayrollAggregator(policy, deductions)

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    # === Mutations ===

    async def clock_in(
        self,
        employee_id: UUID,
        schedule_id: UUID | None = None,
        location: str | None = None,
        idempotency_key: str | None = None,
    ) -> TimeEntry:
        """Open a time entry for an employee.

        Raises:
            ConflictError: An open entry exists, or the schedule already has one
            NotFoundError: The schedule is missing or belongs to someone else
            NotEligibleError: No clock-in window is open
        """
        if idempotency_key:
            existing = await self.store.find_by_clock_in_key(idempotency_key)
            if existing is not None:
                return self._replay(existing, employee_id, idempotency_key)

        now = self.now()

        open_entry = await self.store.get_open_entry(employee_id)
        if open_entry is not None:
            logger.warning(
                "Clock-in rejected for employee %s: entry %s is still open",
                employee_id,
                open_entry.time_entry_id,
            )
            raise ConflictError(
                f"Employee {employee_id} is already clocked in "
                f"(time entry {open_entry.time_entry_id})",
                employee_id=employee_id,
            )

        today = now.astimezone(self.tz).date()
        result = await self._load_match(
            employee_id,
            today - ELIGIBILITY_LOOKAROUND,
            today + ELIGIBILITY_LOOKAROUND,
            now,
        )

        if schedule_id is not None:
            schedule = await self._schedule_for_explicit_clock_in(
                employee_id, schedule_id, result, now
            )
        else:
            schedule = self.matcher.select_schedule_for_clock_in(result, now)
            if schedule is None and not self.policy.allow_unscheduled_clock_in:
                eligibility = self.state_machine.evaluate_match(result, now)
                logger.warning(
                    "Clock-in rejected for employee %s: state %s",
                    employee_id,
                    eligibility.state.value,
                )
                raise NotEligibleError(self._not_eligible_message(eligibility))

        eligibility = self.state_machine.evaluate_match(result, now)
        ClockStateMachine.validate_action(eligibility.state, ClockAction.CLOCK_IN)

        grace_applied = False
        if schedule is not None:
            grace_applied = apply_grace_period(
                now, schedule.start_time, self.policy.grace_minutes
            ).applied

        entry = TimeEntry(
            employee_id=employee_id,
            schedule_id=schedule.schedule_id if schedule is not None else None,
            clock_in_time=now,
            status=TimeEntryStatus.CLOCKED_IN.value,
            grace_period_applied=grace_applied,
            clock_in_location=location,
            clock_in_idempotency_key=idempotency_key,
        )
        self.session.add(entry)
        await self._flush_or_conflict(
            employee_id, f"Employee {employee_id} is already clocked in"
        )

        self._invalidate(employee_id)
        logger.info(
            "Employee %s clocked in (entry %s, schedule %s, grace=%s)",
            employee_id,
            entry.time_entry_id,
            entry.schedule_id,
            grace_applied,
        )
        return entry

    async def clock_out(
        self,
        employee_id: UUID,
        location: str | None = None,
        idempotency_key: str | None = None,
    ) -> TimeEntry:
        """Close the employee's open time entry.

        Raises:
            NoOpenEntryError: Nothing is open
        """
        if idempotency_key:
            existing = await self.store.find_by_clock_out_key(idempotency_key)
            if existing is not None:
                return self._replay(existing, employee_id, idempotency_key)

        entry = await self.store.get_open_entry(employee_id)
        if entry is None:
            logger.warning("Clock-out rejected for employee %s: no open entry", employee_id)
            raise NoOpenEntryError(employee_id)

        now = self.now()
        entry.clock_out_time = now
        entry.status = TimeEntryStatus.CLOCKED_OUT.value
        entry.clock_out_location = location
        entry.clock_out_idempotency_key = idempotency_key

        schedule = await self._schedule_record(entry.schedule_id)
        interval = payable_interval(entry.to_record(), schedule, self.policy.grace_minutes)
        entry.total_hours = interval.hours
        entry.grace_period_applied = interval.grace_applied

        await self._flush_or_conflict(
            employee_id, f"Clock-out for employee {employee_id} conflicted with another write"
        )

        self._invalidate(employee_id)
        logger.info(
            "Employee %s clocked out (entry %s, %s hours)",
            employee_id,
            entry.time_entry_id,
            entry.total_hours,
        )
        return entry

    async def adjust_time_entry(
        self,
        time_entry_id: UUID,
        clock_in_time: datetime,
        reason: str,
        adjusted_by: str,
        clock_out_time: datetime | None = None,
        idempotency_key: str | None = None,
    ) -> TimeEntry:
        """Manually correct a time entry's payable times.

        An open entry adjusted without a clock-out time stays CLOCKED_IN;
        anything else becomes ADJUSTED. total_hours is recomputed immediately.

        Raises:
            ValidationError: Bad reason, missing actor, or times out of order
            NotFoundError: The time entry does not exist
            InvalidTransitionError: The employee's clock state forbids adjustments
        """
        if idempotency_key:
            previous = await self.store.find_adjustment_by_key(idempotency_key)
            if previous is not None:
                if previous.time_entry_id != time_entry_id:
                    raise ConflictError(
                        f"Idempotency key {idempotency_key!r} was used for another time entry"
                    )
                entry = await self.store.get_time_entry(previous.time_entry_id)
                assert entry is not None
                return entry

        self._validate_adjustment(clock_in_time, clock_out_time, reason, adjusted_by)

        entry = await self.store.get_time_entry(time_entry_id)
        if entry is None:
            raise NotFoundError("TimeEntry", time_entry_id)

        eligibility = await self.get_eligibility(entry.employee_id)
        ClockStateMachine.validate_action(eligibility.state, ClockAction.ADJUST)

        if clock_out_time is None and entry.status != TimeEntryStatus.CLOCKED_IN.value:
            existing_end = entry.adjusted_end_time or entry.clock_out_time
            if existing_end is not None and existing_end < clock_in_time:
                raise ValidationError(
                    "Clock-in time cannot be after the recorded clock-out time",
                    field="clock_in_time",
                )

        before = entry.snapshot()
        was_open = entry.status == TimeEntryStatus.CLOCKED_IN.value

        entry.adjusted_start_time = clock_in_time
        if clock_out_time is not None:
            entry.adjusted_end_time = clock_out_time

        if was_open and clock_out_time is None:
            entry.total_hours = None
        else:
            entry.status = TimeEntryStatus.ADJUSTED.value
            schedule = await self._schedule_record(entry.schedule_id)
            entry.total_hours = payable_interval(
                entry.to_record(), schedule, self.policy.grace_minutes
            ).hours

        self.session.add(
            TimeEntryAdjustment(
                time_entry_id=entry.time_entry_id,
                adjusted_by=adjusted_by.strip(),
                reason=reason.strip(),
                before_json=before,
                after_json=entry.snapshot(),
                idempotency_key=idempotency_key,
            )
        )
        await self._flush_or_conflict(
            entry.employee_id, f"Adjustment of time entry {time_entry_id} conflicted"
        )

        self._invalidate(entry.employee_id)
        logger.info(
            "Time entry %s adjusted by %s (%s -> %s)",
            time_entry_id,
            adjusted_by,
            before["status"],
            entry.status,
        )
        return entry

    # === Views ===

    async def get_eligibility(self, employee_id: UUID) -> Eligibility:
        """Current clock state of an employee."""
        now = self.now()
        today = now.astimezone(self.tz).date()
        result = await self._load_match(
            employee_id,
            today - ELIGIBILITY_LOOKAROUND,
            today + ELIGIBILITY_LOOKAROUND,
            now,
        )
        return self.state_machine.evaluate_match(result, now)

    async def get_today_schedules(self, employee_id: UUID) -> list[MatchedShift]:
        """Today's schedules of an employee with their match status."""
        now = self.now()
        today = now.astimezone(self.tz).date()
        result = await self._load_match(employee_id, today, today, now)
        return [s for s in result.shifts if s.work_date == today]

    async def get_daily_summary(
        self, employee_id: UUID, work_date: date | None = None
    ) -> DailySummary:
        """Scheduled vs. worked hours for one civil day (default: today)."""
        now = self.now()
        day = work_date or now.astimezone(self.tz).date()
        schedules, entries = await self._load_feeds(employee_id, day, day)

        fingerprint = fingerprint_records(schedules, entries)
        if self.cache is not None:
            cached = self.cache.get(employee_id, "daily_summary", day, fingerprint)
            if cached is not None:
                return cached

        result = self.matcher.match(employee_id, schedules, entries, now)
        shifts, orphans = self.matcher.group_by_work_date(result).get(day, ([], []))
        summary = self._summarize_day(employee_id, day, shifts, orphans)

        if self.cache is not None:
            self.cache.put(employee_id, "daily_summary", day, fingerprint, summary)
        return summary

    async def get_anomalies(
        self,
        employee_id: UUID,
        start_date: date,
        end_date: date,
        include_period: bool = True,
    ) -> list[Anomaly]:
        """Anomalies of an employee over an inclusive local date range."""
        if end_date < start_date:
            raise ValidationError("end_date cannot be before start_date", field="end_date")

        periods = self._periods_overlapping(start_date, end_date) if include_period else []
        load_start = min([start_date] + [p.start_date for p in periods])
        load_end = max([end_date] + [p.end_date for p in periods])

        now = self.now()
        result = await self._load_match(employee_id, load_start, load_end, now)

        anomalies: list[Anomaly] = []
        for day, (shifts, orphans) in self.matcher.group_by_work_date(result).items():
            if start_date <= day <= end_date:
                anomalies.extend(self.detector.detect_day_anomalies(day, shifts, orphans))

        for period in periods:
            # Period flags depend on hours only
            aggregate = self.aggregator.aggregate(period, result, ZERO)
            anomalies.extend(aggregate.anomalies)

        return anomalies

    async def list_time_entries(
        self,
        start_date: date,
        end_date: date,
        employee_id: UUID | None = None,
        status: TimeEntryStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> TimeEntryPage:
        """Time entries clocked in over a local date range, newest first.

        Closed entries report payable hours; open ones the hours elapsed so far.
        """
        if end_date < start_date:
            raise ValidationError("end_date cannot be before start_date", field="end_date")

        rows, total = await self.store.search_time_entries(
            start_date,
            end_date,
            employee_id=employee_id,
            status=status,
            page=page,
            page_size=page_size,
        )
        linked = {row.schedule_id for row in rows if row.schedule_id is not None}
        schedules = {s.schedule_id: s for s in await self.store.list_schedules_by_ids(linked)}

        now = self.now()
        items: list[ListedTimeEntry] = []
        for row in rows:
            record = row.to_record()
            interval = payable_interval(
                record, schedules.get(record.schedule_id), self.policy.grace_minutes
            )
            if record.is_open:
                hours, _ = hours_between(interval.start, now)
            else:
                hours = interval.hours
            items.append(ListedTimeEntry(entry=row, duration_hours=hours))

        return TimeEntryPage(items=items, total=total, page=page, page_size=page_size)

    async def get_today_clock_status(self) -> TodayClockStatus:
        """Status of every employee with a schedule or clock-in today."""
        now = self.now()
        today = now.astimezone(self.tz).date()
        employee_ids = await self.store.list_active_employee_ids(today, today)

        statuses: list[EmployeeClockStatus] = []
        for employee_id in employee_ids:
            result = await self._load_match(employee_id, today, today, now)
            shifts, orphans = self.matcher.group_by_work_date(result).get(today, ([], []))
            summary = self._summarize_day(employee_id, today, shifts, orphans)
            if summary.total_schedule_count == 0 and not orphans:
                continue
            statuses.append(
                EmployeeClockStatus(
                    employee_id=employee_id,
                    clock_status=summary.clock_status,
                    is_clocked_in=summary.is_clocked_in,
                    is_late=any(self.detector.is_late(s) for s in shifts),
                    scheduled_hours=summary.scheduled_hours,
                    worked_hours=summary.worked_hours,
                    total_schedule_count=summary.total_schedule_count,
                )
            )

        return TodayClockStatus(work_date=today, employees=tuple(statuses))

    def get_current_pay_period(self) -> PayPeriod:
        return current_pay_period(self.now(), self.tz)

    async def get_pay_period_aggregate(
        self, employee_id: UUID, pay_period_id: str
    ) -> PayPeriodAggregate:
        """Pay totals of one employee for one pay period.

        A period without paid work aggregates to zero whether or not a rate
        is on file.

        Raises:
            RateNotFoundError: There is paid work but no pay rate is active on
                the period end date
        """
        period = parse_pay_period_id(pay_period_id)
        return await self._aggregate_at_period_rate(employee_id, period)

    async def get_year_to_date(self, employee_id: UUID, year: int | None = None) -> YearToDateSummary:
        """Totals of the completed pay periods of a calendar year."""
        today = self.today()
        year = year or today.year
        aggregates: list[PayPeriodAggregate] = []
        for period in pay_periods_in_year(year):
            if period.end_date >= today:
                continue
            aggregate = await self._aggregate_if_paid(employee_id, period)
            if aggregate is not None:
                aggregates.append(aggregate)
        return self.aggregator.year_to_date(employee_id, year, aggregates, today)

    async def get_period_summary(self, pay_period_id: str) -> PeriodSummary:
        """Totals across all employees active in a pay period."""
        period = parse_pay_period_id(pay_period_id)
        employee_ids = await self.store.list_active_employee_ids(
            period.start_date, period.end_date
        )
        aggregates: list[PayPeriodAggregate] = []
        for employee_id in employee_ids:
            aggregate = await self._aggregate_if_paid(employee_id, period)
            if aggregate is not None:
                aggregates.append(aggregate)
        return self.aggregator.summarize_period(pay_period_id, aggregates)

    # === Helpers ===

    async def _load_feeds(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> tuple[list[ScheduleRecord], list[TimeEntryRecord]]:
        """Schedules and entries of a range, plus schedules the entries link to."""
        schedules = await self.store.list_schedules(employee_id, start_date, end_date)
        entries = await self.store.list_time_entries(employee_id, start_date, end_date)
        known = {s.schedule_id for s in schedules}
        linked = {e.schedule_id for e in entries if e.schedule_id is not None} - known
        schedules.extend(await self.store.list_schedules_by_ids(linked))
        return schedules, entries

    async def _load_match(
        self, employee_id: UUID, start_date: date, end_date: date, now: datetime
    ) -> MatchResult:
        schedules, entries = await self._load_feeds(employee_id, start_date, end_date)
        return self.matcher.match(employee_id, schedules, entries, now)

    async def _schedule_record(self, schedule_id: UUID | None) -> ScheduleRecord | None:
        if schedule_id is None:
            return None
        schedule = await self.store.get_schedule(schedule_id)
        return schedule.to_record() if schedule is not None else None

    async def _schedule_for_explicit_clock_in(
        self,
        employee_id: UUID,
        schedule_id: UUID,
        result: MatchResult,
        now: datetime,
    ) -> ScheduleRecord:
        schedule = await self.store.get_schedule(schedule_id)
        if schedule is None or schedule.employee_id != employee_id:
            raise NotFoundError("Schedule", schedule_id)

        if await self.store.schedule_has_entry(schedule_id):
            raise ConflictError(
                f"Schedule {schedule_id} already has a time entry", employee_id=employee_id
            )

        shift = next((s for s in result.shifts if s.schedule.schedule_id == schedule_id), None)
        if shift is None:
            # Outside the loaded window; match it on its own
            single = self.matcher.match(
                employee_id, [schedule.to_record()], [], now
            )
            shift = single.shifts[0]

        if shift.status != MatchStatus.AVAILABLE:
            logger.warning(
                "Clock-in rejected for employee %s: schedule %s is %s",
                employee_id,
                schedule_id,
                shift.status.value,
            )
            raise NotEligibleError(
                f"Schedule {schedule_id} is not open for clock-in ({shift.status.value})"
            )
        return shift.schedule

    def _summarize_day(
        self,
        employee_id: UUID,
        day: date,
        shifts: list[MatchedShift],
        orphans: list[TimeEntryRecord],
    ) -> DailySummary:
        grace = self.policy.grace_minutes
        active = [s for s in shifts if s.status != MatchStatus.CANCELLED]
        planned = sum((scheduled_hours(s.schedule) for s in active), ZERO)

        worked = ZERO
        completed = 0
        clocked_in = False
        for shift in active:
            if shift.entry is None:
                continue
            if shift.entry.is_open:
                clocked_in = True
            elif shift.entry.is_closed:
                completed += 1
                worked += payable_interval(shift.entry, shift.schedule, grace).hours
        for orphan in orphans:
            if orphan.is_open:
                clocked_in = True
            elif orphan.is_closed:
                worked += payable_interval(orphan, None, grace).hours

        overtime = worked > self.policy.daily_overtime_threshold_hours
        if clocked_in:
            status = DailyClockStatus.OVERTIME if overtime else DailyClockStatus.IN_PROGRESS
        elif completed > 0 or worked > 0:
            status = DailyClockStatus.OVERTIME if overtime else DailyClockStatus.COMPLETED
        else:
            status = DailyClockStatus.NOT_STARTED

        return DailySummary(
            employee_id=employee_id,
            work_date=day,
            scheduled_hours=planned,
            worked_hours=worked,
            completed_shift_count=completed,
            total_schedule_count=len(active),
            clock_status=status,
            is_clocked_in=clocked_in,
        )

    async def _aggregate(
        self, employee_id: UUID, period: PayPeriod, rate: Decimal
    ) -> PayPeriodAggregate:
        schedules, entries = await self._load_feeds(employee_id, period.start_date, period.end_date)
        range_key = (period.pay_period_id, str(rate))
        fingerprint = fingerprint_records(schedules, entries)
        if self.cache is not None:
            cached = self.cache.get(employee_id, "pay_period", range_key, fingerprint)
            if cached is not None:
                return cached

        result = self.matcher.match(employee_id, schedules, entries, self.now())
        aggregate = self.aggregator.aggregate(period, result, rate)

        if self.cache is not None:
            self.cache.put(employee_id, "pay_period", range_key, fingerprint, aggregate)
        return aggregate

    async def _aggregate_at_period_rate(
        self, employee_id: UUID, period: PayPeriod
    ) -> PayPeriodAggregate:
        """Aggregate at the rate active on the period end date.

        A missing rate is only an error when there is work to pay.
        """
        try:
            rate = await self.rates.resolve_rate_for_employee(employee_id, period.end_date)
        except RateNotFoundError:
            rate = None

        aggregate = await self._aggregate(employee_id, period, rate if rate is not None else ZERO)
        if rate is None and aggregate.shift_count > 0:
            raise RateNotFoundError(employee_id, period.end_date)
        return aggregate

    async def _aggregate_if_paid(
        self, employee_id: UUID, period: PayPeriod
    ) -> PayPeriodAggregate | None:
        """Aggregate a period, or None when it has no paid work."""
        aggregate = await self._aggregate_at_period_rate(employee_id, period)
        return aggregate if aggregate.shift_count > 0 else None

    def _periods_overlapping(self, start_date: date, end_date: date) -> list[PayPeriod]:
        periods = []
        period = pay_period_for_date(start_date)
        while period.start_date <= end_date:
            periods.append(period)
            period = period.next()
        return periods

    def _validate_adjustment(
        self,
        clock_in_time: datetime,
        clock_out_time: datetime | None,
        reason: str,
        adjusted_by: str,
    ) -> None:
        reason = (reason or "").strip()
        low = self.policy.min_adjustment_reason_length
        high = self.policy.max_adjustment_reason_length
        if not low <= len(reason) <= high:
            raise ValidationError(
                f"Reason must be between {low} and {high} characters", field="reason"
            )
        if not (adjusted_by or "").strip():
            raise ValidationError("adjusted_by is required", field="adjusted_by")
        if clock_in_time.tzinfo is None:
            raise ValidationError("clock_in_time must include a UTC offset", field="clock_in_time")
        if clock_out_time is not None:
            if clock_out_time.tzinfo is None:
                raise ValidationError(
                    "clock_out_time must include a UTC offset", field="clock_out_time"
                )
            if clock_out_time < clock_in_time:
                raise ValidationError(
                    "Clock-out time cannot be before clock-in time", field="clock_out_time"
                )

    def _not_eligible_message(self, eligibility: Eligibility) -> str:
        if eligibility.next_window is not None:
            return (
                f"Clock-in opens in {eligibility.minutes_until_window} minutes "
                f"(at {eligibility.next_window.isoformat()})"
            )
        return "No scheduled shift is open for clock-in"

    def _replay(self, entry: TimeEntry, employee_id: UUID, key: str) -> TimeEntry:
        if entry.employee_id != employee_id:
            raise ConflictError(
                f"Idempotency key {key!r} was used by another employee", employee_id=employee_id
            )
        logger.info("Replaying idempotent request %s for entry %s", key, entry.time_entry_id)
        return entry

    async def _flush_or_conflict(self, employee_id: UUID, message: str) -> None:
        """Flush pending writes; a unique-index violation becomes ConflictError."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("Write for employee %s rejected by the store: %s", employee_id, e.orig)
            raise ConflictError(message, employee_id=employee_id) from e

    def _invalidate(self, employee_id: UUID) -> None:
        if self.cache is not None:
            self.cache.invalidate_employee(employee_id)
