"""Pure time arithmetic: grace snapping, rounding, hour splits.

Every function here is total. Inverted intervals (clock-out before clock-in)
are clamped to zero hours and reported, never raised, because source data may
legitimately be mid-edit when it is read.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from attendance_engine.calculators.types import (
    GraceResult,
    HourSplit,
    PayableInterval,
    ScheduleRecord,
    ShiftType,
    TimeEntryRecord,
)

HOURS_PRECISION = Decimal("0.01")
SECONDS_PER_HOUR = Decimal("3600")

NIGHT_SHIFT_START_HOUR = 22
NIGHT_SHIFT_END_HOUR = 6

DEFAULT_DAILY_THRESHOLD = Decimal("8")


def round_hours(hours: Decimal) -> Decimal:
    """Round hours to 2 decimal places (half-up)."""
    return hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def apply_grace_period(
    actual: datetime, scheduled: datetime, grace_minutes: int
) -> GraceResult:
    """Snap an actual clock time to the scheduled time when within grace.

    Idempotent: feeding the adjusted value back in yields the same result.
    """
    if abs(actual - scheduled) <= timedelta(minutes=grace_minutes):
        return GraceResult(adjusted=scheduled, applied=True)
    return GraceResult(adjusted=actual, applied=False)


def round_to_payroll_increment(minutes: int | Decimal, increment_minutes: int) -> int:
    """Round a minute count to the nearest payroll increment (half-up)."""
    if increment_minutes <= 0:
        return int(Decimal(minutes).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    steps = (Decimal(minutes) / increment_minutes).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(steps) * increment_minutes


def round_time_to_increment(
    instant: datetime, increment_minutes: int, tz: tzinfo
) -> datetime:
    """Round an instant's local minute-of-day to the payroll increment."""
    local = instant.astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = Decimal((local - midnight).total_seconds()) / 60
    rounded = round_to_payroll_increment(elapsed, increment_minutes)
    return (midnight + timedelta(minutes=rounded)).astimezone(instant.tzinfo)


def split_regular_overtime(
    total_hours: Decimal, daily_threshold: Decimal = DEFAULT_DAILY_THRESHOLD
) -> HourSplit:
    """Split hours into regular (up to threshold) and overtime (the rest)."""
    total = max(Decimal("0"), total_hours)
    regular = min(total, daily_threshold)
    overtime = max(Decimal("0"), total - daily_threshold)
    return HourSplit(regular=regular, overtime=overtime)


def classify_shift_type(start_time: datetime, tz: tzinfo) -> ShiftType:
    """Night when the local start hour is in [22, 6), else day."""
    hour = start_time.astimezone(tz).hour
    if hour >= NIGHT_SHIFT_START_HOUR or hour < NIGHT_SHIFT_END_HOUR:
        return ShiftType.NIGHT
    return ShiftType.DAY


def hours_between(start: datetime, end: datetime) -> tuple[Decimal, bool]:
    """Elapsed hours between two instants, clamped at zero.

    Returns (hours, inverted) where inverted flags end < start.
    """
    seconds = Decimal(int((end - start).total_seconds()))
    if seconds < 0:
        return Decimal("0.00"), True
    return round_hours(seconds / SECONDS_PER_HOUR), False


def payable_interval(
    entry: TimeEntryRecord,
    schedule: ScheduleRecord | None,
    grace_minutes: int,
) -> PayableInterval:
    """Compute the payable window of a time entry.

    Manual adjusted times override; otherwise each end is grace-snapped to the
    linked schedule. Open entries report zero hours.
    """
    grace_applied = False

    if entry.adjusted_start_time is not None:
        start = entry.adjusted_start_time
    elif schedule is not None:
        snapped = apply_grace_period(entry.clock_in_time, schedule.start_time, grace_minutes)
        start = snapped.adjusted
        grace_applied = snapped.applied
    else:
        start = entry.clock_in_time

    if entry.adjusted_end_time is not None:
        end = entry.adjusted_end_time
    elif entry.clock_out_time is not None and schedule is not None:
        snapped = apply_grace_period(entry.clock_out_time, schedule.end_time, grace_minutes)
        end = snapped.adjusted
        grace_applied = grace_applied or snapped.applied
    else:
        end = entry.clock_out_time

    if end is None or entry.is_open:
        return PayableInterval(start=start, end=end, hours=Decimal("0.00"), grace_applied=grace_applied)

    hours, inverted = hours_between(start, end)
    return PayableInterval(
        start=start, end=end, hours=hours, inverted=inverted, grace_applied=grace_applied
    )


def scheduled_hours(schedule: ScheduleRecord) -> Decimal:
    """Planned hours of a schedule (zero for inverted records)."""
    hours, _ = hours_between(schedule.start_time, schedule.end_time)
    return hours
