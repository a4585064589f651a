"""Attendance anomaly detection.

Detection only annotates derived views; it never mutates source records.
Several anomalies may co-occur on one shift.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from attendance_engine.calculators.time_model import payable_interval
from attendance_engine.calculators.types import (
    Anomaly,
    AnomalyKind,
    MatchedShift,
    MatchStatus,
    PayPeriodAggregate,
    TimeEntryRecord,
)
from attendance_engine.config import AttendancePolicy


class AnomalyDetector:
    """Flags lateness, early departure, overtime and excessive period hours."""

    def __init__(self, policy: AttendancePolicy):
        self.policy = policy
        self.late_tolerance = timedelta(minutes=policy.late_tolerance_minutes)
        self.early_threshold = timedelta(minutes=policy.early_clock_out_minutes)

    def classify_shift(self, shift: MatchedShift) -> frozenset[AnomalyKind]:
        """Anomaly kinds for one matched shift."""
        if shift.status == MatchStatus.MISSED:
            return frozenset({AnomalyKind.MISSED_SHIFT})
        if shift.entry is None or not shift.entry.is_closed:
            return frozenset()

        schedule = shift.schedule
        interval = payable_interval(shift.entry, schedule, self.policy.grace_minutes)
        kinds: set[AnomalyKind] = set()

        # Tolerance is applied after grace snapping
        if interval.start > schedule.start_time + self.late_tolerance:
            kinds.add(AnomalyKind.LATE)

        if interval.end is not None and schedule.end_time - interval.end > self.early_threshold:
            kinds.add(AnomalyKind.EARLY_CLOCK_OUT)

        if interval.hours > self.policy.daily_overtime_threshold_hours:
            kinds.add(AnomalyKind.DAILY_OVERTIME)

        if interval.inverted:
            kinds.add(AnomalyKind.NEGATIVE_DURATION)

        return frozenset(kinds)

    def is_late(self, shift: MatchedShift) -> bool:
        """Late arrival; unlike classify_shift, also true while still clocked in."""
        if shift.entry is None:
            return False
        start = payable_interval(shift.entry, shift.schedule, self.policy.grace_minutes).start
        return start > shift.schedule.start_time + self.late_tolerance

    def detect_shift_anomalies(self, shift: MatchedShift) -> list[Anomaly]:
        """Anomaly records for one matched shift."""
        entry_id = shift.entry.time_entry_id if shift.entry is not None else None
        return [
            Anomaly(
                kind=kind,
                employee_id=shift.schedule.employee_id,
                work_date=shift.work_date,
                schedule_id=shift.schedule.schedule_id,
                time_entry_id=entry_id,
                detail=self._describe(kind, shift),
            )
            for kind in sorted(self.classify_shift(shift), key=lambda k: k.value)
        ]

    def detect_orphan_anomalies(
        self, orphan: TimeEntryRecord, work_date: date
    ) -> list[Anomaly]:
        """Unscheduled work is only checked for inverted durations."""
        if not orphan.is_closed:
            return []
        interval = payable_interval(orphan, None, self.policy.grace_minutes)
        if not interval.inverted:
            return []
        return [
            Anomaly(
                kind=AnomalyKind.NEGATIVE_DURATION,
                employee_id=orphan.employee_id,
                work_date=work_date,
                time_entry_id=orphan.time_entry_id,
                detail="Clock-out precedes clock-in; hours clamped to zero",
            )
        ]

    def detect_day_anomalies(
        self,
        work_date: date,
        shifts: Iterable[MatchedShift],
        orphans: Iterable[TimeEntryRecord],
    ) -> list[Anomaly]:
        """All anomalies of one civil day, including day-level overtime."""
        shifts = list(shifts)
        orphans = list(orphans)
        anomalies: list[Anomaly] = []
        day_hours = Decimal("0")
        shift_overtime = False

        for shift in shifts:
            shift_anomalies = self.detect_shift_anomalies(shift)
            anomalies.extend(shift_anomalies)
            if any(a.kind == AnomalyKind.DAILY_OVERTIME for a in shift_anomalies):
                shift_overtime = True
            if shift.entry is not None and shift.entry.is_closed:
                day_hours += payable_interval(
                    shift.entry, shift.schedule, self.policy.grace_minutes
                ).hours

        for orphan in orphans:
            anomalies.extend(self.detect_orphan_anomalies(orphan, work_date))
            if orphan.is_closed:
                day_hours += payable_interval(orphan, None, self.policy.grace_minutes).hours

        if (
            not shift_overtime
            and day_hours > self.policy.daily_overtime_threshold_hours
            and (shifts or orphans)
        ):
            employee_id = shifts[0].schedule.employee_id if shifts else orphans[0].employee_id
            anomalies.append(
                Anomaly(
                    kind=AnomalyKind.DAILY_OVERTIME,
                    employee_id=employee_id,
                    work_date=work_date,
                    detail=f"{day_hours}h worked across the day",
                )
            )

        return sorted(anomalies, key=Anomaly.sort_key)

    def detect_period_anomalies(self, aggregate: PayPeriodAggregate) -> list[Anomaly]:
        """Period-level flags for a pay period aggregate."""
        reasons: list[str] = []
        if aggregate.overtime_hours > self.policy.excessive_period_overtime_hours:
            reasons.append(f"overtime {aggregate.overtime_hours}h")
        if aggregate.total_hours > self.policy.excessive_period_total_hours:
            reasons.append(f"total {aggregate.total_hours}h")
        if not reasons:
            return []
        return [
            Anomaly(
                kind=AnomalyKind.EXCESSIVE_PERIOD_HOURS,
                employee_id=aggregate.employee_id,
                pay_period_id=aggregate.pay_period_id,
                detail=", ".join(reasons),
            )
        ]

    def _describe(self, kind: AnomalyKind, shift: MatchedShift) -> str:
        schedule = shift.schedule
        if kind == AnomalyKind.MISSED_SHIFT:
            return f"No clock-in for shift starting {schedule.start_time.isoformat()}"
        assert shift.entry is not None
        interval = payable_interval(shift.entry, schedule, self.policy.grace_minutes)
        if kind == AnomalyKind.LATE:
            minutes = int((interval.start - schedule.start_time).total_seconds() // 60)
            return f"Clocked in {minutes} minutes after scheduled start"
        if kind == AnomalyKind.EARLY_CLOCK_OUT:
            assert interval.end is not None
            minutes = int((schedule.end_time - interval.end).total_seconds() // 60)
            return f"Clocked out {minutes} minutes before scheduled end"
        if kind == AnomalyKind.DAILY_OVERTIME:
            return f"{interval.hours}h worked on a single shift"
        return "Clock-out precedes clock-in; hours clamped to zero"
