"""Payroll aggregator - rolls reconciled shifts up into pay period totals."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Protocol
from uuid import UUID

from attendance_engine.calculators.anomaly_detector import AnomalyDetector
from attendance_engine.calculators.pay_periods import PayPeriod, parse_pay_period_id
from attendance_engine.calculators.shift_matcher import ShiftMatcher
from attendance_engine.calculators.time_model import payable_interval, split_regular_overtime
from attendance_engine.calculators.types import (
    HourSplit,
    MatchResult,
    PayPeriodAggregate,
    PeriodSummary,
    YearToDateSummary,
)
from attendance_engine.config import AttendancePolicy, OvertimePolicy

ZERO = Decimal("0")
CENTS = Decimal("0.01")


class DeductionsProvider(Protocol):
    """External payroll-rules collaborator computing period deductions."""

    def __call__(self, employee_id: UUID, period: PayPeriod, gross_pay: Decimal) -> Decimal: ...


def no_deductions(employee_id: UUID, period: PayPeriod, gross_pay: Decimal) -> Decimal:
    """Default collaborator: no deductions."""
    return ZERO


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PayrollAggregator:
    """Computes per-employee pay period aggregates.

    Pipeline (stable order per employee):
    1) Collect closed entries whose civil work date falls in the period
       (matched shifts by schedule start date, orphans by clock-in date)
    2) Sum payable hours per work date
    3) Split regular/overtime per the configured overtime policy
    4) Price hours: regular x rate, overtime x rate x multiplier
    5) Apply deductions from the external collaborator
    6) Fingerprint inputs so regenerated reports can be compared

    Output depends only on the inputs, never on wall-clock time.
    """

    def __init__(
        self,
        policy: AttendancePolicy,
        deductions: DeductionsProvider = no_deductions,
    ):
        self.policy = policy
        self.deductions = deductions
        self.matcher = ShiftMatcher(policy.clock_in_window_minutes, policy.tz)
        self.detector = AnomalyDetector(policy)

    def aggregate(
        self,
        period: PayPeriod,
        match: MatchResult,
        pay_rate: Decimal,
    ) -> PayPeriodAggregate:
        """Aggregate one employee's matched shifts for a pay period."""
        day_hours, inputs_data = self._collect_payable_hours(period, match)
        split = self.split_hours(day_hours)

        regular_pay = round_to_cents(split.regular * pay_rate)
        overtime_pay = round_to_cents(
            split.overtime * pay_rate * self.policy.overtime_multiplier
        )
        gross_pay = regular_pay + overtime_pay
        deductions = round_to_cents(
            self.deductions(match.employee_id, period, gross_pay)
        )
        net_pay = gross_pay - deductions

        inputs_fingerprint = self._compute_inputs_fingerprint(
            inputs_data, pay_rate, period.pay_period_id
        )

        aggregate = PayPeriodAggregate(
            employee_id=match.employee_id,
            pay_period_id=period.pay_period_id,
            period_start=period.start_date,
            period_end=period.end_date,
            pay_rate=pay_rate,
            regular_hours=split.regular,
            overtime_hours=split.overtime,
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            gross_pay=gross_pay,
            deductions=deductions,
            net_pay=net_pay,
            shift_count=len(inputs_data),
            inputs_fingerprint=inputs_fingerprint,
        )
        anomalies = tuple(self.detector.detect_period_anomalies(aggregate))
        return dataclasses.replace(aggregate, anomalies=anomalies)

    def split_hours(self, day_hours: dict[date, Decimal]) -> HourSplit:
        """Split hours into regular/overtime according to the overtime policy."""
        if self.policy.overtime_policy == OvertimePolicy.PAY_PERIOD:
            total = sum(day_hours.values(), ZERO)
            return split_regular_overtime(total, self.policy.period_overtime_threshold_hours)

        regular = ZERO
        overtime = ZERO
        for day in sorted(day_hours):
            split = split_regular_overtime(
                day_hours[day], self.policy.daily_overtime_threshold_hours
            )
            regular += split.regular
            overtime += split.overtime
        return HourSplit(regular=regular, overtime=overtime)

    def year_to_date(
        self,
        employee_id: UUID,
        year: int,
        aggregates: Iterable[PayPeriodAggregate],
        today: date,
    ) -> YearToDateSummary:
        """Sum completed pay periods (ended before ``today``) within ``year``."""
        completed = sorted(
            (
                a
                for a in aggregates
                if a.employee_id == employee_id
                and a.period_start.year == year
                and a.period_end < today
            ),
            key=lambda a: a.pay_period_id,
        )
        return YearToDateSummary(
            employee_id=employee_id,
            year=year,
            period_count=len(completed),
            regular_hours=sum((a.regular_hours for a in completed), ZERO),
            overtime_hours=sum((a.overtime_hours for a in completed), ZERO),
            total_gross_pay=sum((a.gross_pay for a in completed), ZERO),
            total_deductions=sum((a.deductions for a in completed), ZERO),
            total_net_pay=sum((a.net_pay for a in completed), ZERO),
        )

    def summarize_period(
        self, pay_period_id: str, aggregates: Iterable[PayPeriodAggregate]
    ) -> PeriodSummary:
        """Multi-employee totals for a pay period."""
        parse_pay_period_id(pay_period_id)
        rows = sorted(
            (a for a in aggregates if a.pay_period_id == pay_period_id),
            key=lambda a: str(a.employee_id),
        )
        return PeriodSummary(
            pay_period_id=pay_period_id,
            total_employees=len(rows),
            total_hours=sum((a.total_hours for a in rows), ZERO),
            total_overtime_hours=sum((a.overtime_hours for a in rows), ZERO),
            total_gross_pay=sum((a.gross_pay for a in rows), ZERO),
            total_net_pay=sum((a.net_pay for a in rows), ZERO),
            anomalies_count=sum(1 for a in rows if a.anomalies),
        )

    def _collect_payable_hours(
        self, period: PayPeriod, match: MatchResult
    ) -> tuple[dict[date, Decimal], list[dict[str, Any]]]:
        """Payable hours per work date plus canonical input records."""
        day_hours: dict[date, Decimal] = {}
        inputs_data: list[dict[str, Any]] = []
        grace = self.policy.grace_minutes

        for work_date, (shifts, orphans) in self.matcher.group_by_work_date(match).items():
            if not period.contains(work_date):
                continue

            for shift in shifts:
                if shift.entry is None or not shift.entry.is_closed:
                    continue
                hours = payable_interval(shift.entry, shift.schedule, grace).hours
                day_hours[work_date] = day_hours.get(work_date, ZERO) + hours
                inputs_data.append({
                    "type": "shift",
                    "id": str(shift.entry.time_entry_id),
                    "schedule_id": str(shift.schedule.schedule_id),
                    "work_date": work_date.isoformat(),
                    "hours": str(hours),
                })

            for orphan in orphans:
                if not orphan.is_closed:
                    continue
                hours = payable_interval(orphan, None, grace).hours
                day_hours[work_date] = day_hours.get(work_date, ZERO) + hours
                inputs_data.append({
                    "type": "unscheduled",
                    "id": str(orphan.time_entry_id),
                    "schedule_id": None,
                    "work_date": work_date.isoformat(),
                    "hours": str(hours),
                })

        inputs_data.sort(key=lambda d: (d["work_date"], d["id"]))
        return day_hours, inputs_data

    def _compute_inputs_fingerprint(
        self, inputs_data: list[dict[str, Any]], pay_rate: Decimal, pay_period_id: str
    ) -> str:
        """Compute fingerprint of all inputs used in the aggregate."""
        data = {
            "pay_period_id": pay_period_id,
            "pay_rate": str(pay_rate),
            "overtime_policy": self.policy.overtime_policy.value,
            "inputs": inputs_data,
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
