"""Tests for attendance anomaly detection."""

from datetime import date
from decimal import Decimal

import pytest

from attendance_engine.calculators.anomaly_detector import AnomalyDetector
from attendance_engine.calculators.types import (
    AnomalyKind,
    MatchedShift,
    MatchStatus,
    PayPeriodAggregate,
)

from tests.factories import entry_record, local, schedule_record

WORK_DATE = date(2024, 3, 4)


@pytest.fixture
def detector(policy):
    return AnomalyDetector(policy)


def worked_shift(employee_id, clock_in, clock_out, start=(9, 0), end=(17, 0)):
    schedule = schedule_record(
        employee_id, local(2024, 3, 4, *start), local(2024, 3, 4, *end)
    )
    entry = entry_record(employee_id, clock_in, clock_out, schedule_id=schedule.schedule_id)
    return MatchedShift(
        schedule=schedule, status=MatchStatus.MATCHED, entry=entry, work_date=WORK_DATE
    )


class TestShiftAnomalies:
    """Test per-shift classification."""

    def test_clock_in_within_grace_is_not_late(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 8, 58), local(2024, 3, 4, 17))
        assert detector.classify_shift(shift) == frozenset()

    def test_clock_in_past_tolerance_is_late(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 9, 20), local(2024, 3, 4, 17))
        assert detector.is_late(shift) is True

    def test_tolerance_boundary(self, detector, employee_id):
        on_edge = worked_shift(employee_id, local(2024, 3, 4, 9, 10), local(2024, 3, 4, 17))
        past_edge = worked_shift(employee_id, local(2024, 3, 4, 9, 11), local(2024, 3, 4, 17))
        assert detector.is_late(on_edge) is False
        assert detector.is_late(past_edge) is True

    def test_open_entry_can_be_late(self, detector, employee_id):
        late = worked_shift(employee_id, local(2024, 3, 4, 9, 20), None)
        on_time = worked_shift(employee_id, local(2024, 3, 4, 9, 3), None)

        assert detector.is_late(late) is True
        assert detector.is_late(on_time) is False
        # Anomaly records wait for the clock-out
        assert detector.classify_shift(late) == frozenset()

    def test_early_clock_out(self, detector, employee_id):
        early = worked_shift(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 16, 29))
        on_edge = worked_shift(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 16, 30))
        assert AnomalyKind.EARLY_CLOCK_OUT in detector.classify_shift(early)
        assert AnomalyKind.EARLY_CLOCK_OUT not in detector.classify_shift(on_edge)

    def test_long_shift_is_daily_overtime(self, detector, employee_id):
        shift = worked_shift(
            employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 19, 30), end=(19, 30)
        )
        assert detector.classify_shift(shift) == frozenset({AnomalyKind.DAILY_OVERTIME})

    def test_inverted_entry_is_negative_duration(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 17), local(2024, 3, 4, 9))
        assert AnomalyKind.NEGATIVE_DURATION in detector.classify_shift(shift)

    def test_missed_shift(self, detector, employee_id):
        schedule = schedule_record(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17))
        shift = MatchedShift(schedule=schedule, status=MatchStatus.MISSED, work_date=WORK_DATE)

        anomalies = detector.detect_shift_anomalies(shift)

        assert [a.kind for a in anomalies] == [AnomalyKind.MISSED_SHIFT]
        assert anomalies[0].schedule_id == schedule.schedule_id
        assert anomalies[0].time_entry_id is None

    def test_open_entry_has_no_anomalies(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 9, 30), None)
        assert detector.classify_shift(shift) == frozenset()

    def test_anomalies_can_co_occur(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 9, 30), local(2024, 3, 4, 16))
        assert detector.classify_shift(shift) == frozenset(
            {AnomalyKind.LATE, AnomalyKind.EARLY_CLOCK_OUT}
        )


class TestDayAnomalies:
    """Test day-level aggregation."""

    def test_split_shifts_exceeding_threshold(self, detector, employee_id):
        morning = worked_shift(
            employee_id, local(2024, 3, 4, 6), local(2024, 3, 4, 11), start=(6, 0), end=(11, 0)
        )
        afternoon = worked_shift(
            employee_id, local(2024, 3, 4, 12), local(2024, 3, 4, 17), start=(12, 0)
        )

        anomalies = detector.detect_day_anomalies(WORK_DATE, [morning, afternoon], [])

        assert len(anomalies) == 1
        assert anomalies[0].kind == AnomalyKind.DAILY_OVERTIME
        assert anomalies[0].schedule_id is None
        assert anomalies[0].work_date == WORK_DATE

    def test_unscheduled_work_counts_toward_day(self, detector, employee_id):
        shift = worked_shift(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17))
        orphan = entry_record(employee_id, local(2024, 3, 4, 18), local(2024, 3, 4, 20))

        anomalies = detector.detect_day_anomalies(WORK_DATE, [shift], [orphan])

        assert [a.kind for a in anomalies] == [AnomalyKind.DAILY_OVERTIME]

    def test_no_double_flag_when_shift_already_overtime(self, detector, employee_id):
        shift = worked_shift(
            employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 19, 30), end=(19, 30)
        )
        anomalies = detector.detect_day_anomalies(WORK_DATE, [shift], [])
        assert len(anomalies) == 1

    def test_inverted_orphan(self, detector, employee_id):
        orphan = entry_record(employee_id, local(2024, 3, 4, 18), local(2024, 3, 4, 17))
        anomalies = detector.detect_day_anomalies(WORK_DATE, [], [orphan])
        assert [a.kind for a in anomalies] == [AnomalyKind.NEGATIVE_DURATION]
        assert anomalies[0].time_entry_id == orphan.time_entry_id


class TestPeriodAnomalies:
    """Test pay period thresholds."""

    def make_aggregate(self, employee_id, regular, overtime):
        return PayPeriodAggregate(
            employee_id=employee_id,
            pay_period_id="2024-03-A",
            period_start=date(2024, 3, 1),
            period_end=date(2024, 3, 15),
            pay_rate=Decimal("20"),
            regular_hours=Decimal(regular),
            overtime_hours=Decimal(overtime),
            regular_pay=Decimal("0"),
            overtime_pay=Decimal("0"),
            gross_pay=Decimal("0"),
            deductions=Decimal("0"),
            net_pay=Decimal("0"),
            shift_count=10,
            inputs_fingerprint="x",
        )

    def test_excessive_overtime(self, detector, employee_id):
        anomalies = detector.detect_period_anomalies(self.make_aggregate(employee_id, "60", "12"))
        assert [a.kind for a in anomalies] == [AnomalyKind.EXCESSIVE_PERIOD_HOURS]
        assert anomalies[0].pay_period_id == "2024-03-A"

    def test_excessive_total(self, detector, employee_id):
        anomalies = detector.detect_period_anomalies(self.make_aggregate(employee_id, "75", "6"))
        assert len(anomalies) == 1

    def test_at_thresholds_is_fine(self, detector, employee_id):
        assert detector.detect_period_anomalies(self.make_aggregate(employee_id, "70", "10")) == []
