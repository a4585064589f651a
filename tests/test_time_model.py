"""Tests for time arithmetic: grace, rounding, hour splits."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from hypothesis import given, strategies as st

from attendance_engine.calculators.time_model import (
    apply_grace_period,
    classify_shift_type,
    hours_between,
    payable_interval,
    round_time_to_increment,
    round_to_payroll_increment,
    split_regular_overtime,
)
from attendance_engine.calculators.types import ShiftType

from tests.factories import TZ, entry_record, local, schedule_record

SCHEDULED = local(2024, 3, 4, 9, 0)


class TestGracePeriod:
    """Test snapping clock times to the schedule."""

    def test_within_grace_snaps_to_scheduled(self):
        result = apply_grace_period(local(2024, 3, 4, 8, 58), SCHEDULED, 5)
        assert result.adjusted == SCHEDULED
        assert result.applied is True

    def test_boundary_is_inclusive(self):
        result = apply_grace_period(SCHEDULED + timedelta(minutes=5), SCHEDULED, 5)
        assert result.applied is True

    def test_outside_grace_keeps_actual(self):
        actual = local(2024, 3, 4, 8, 50)
        result = apply_grace_period(actual, SCHEDULED, 5)
        assert result.adjusted == actual
        assert result.applied is False

    def test_zero_grace_only_snaps_exact_match(self):
        assert apply_grace_period(SCHEDULED, SCHEDULED, 0).applied is True
        assert apply_grace_period(SCHEDULED + timedelta(seconds=1), SCHEDULED, 0).applied is False

    @given(offset=st.integers(min_value=-300, max_value=300))
    def test_snaps_whenever_within_grace(self, offset):
        result = apply_grace_period(SCHEDULED + timedelta(seconds=offset), SCHEDULED, 5)
        assert result.adjusted == SCHEDULED
        assert result.applied is True

    @given(
        offset=st.integers(min_value=-24 * 3600, max_value=24 * 3600),
        grace=st.integers(min_value=0, max_value=60),
    )
    def test_idempotent(self, offset, grace):
        actual = SCHEDULED + timedelta(seconds=offset)
        once = apply_grace_period(actual, SCHEDULED, grace)
        twice = apply_grace_period(once.adjusted, SCHEDULED, grace)
        assert twice.adjusted == once.adjusted


class TestPayrollRounding:
    """Test rounding to payroll increments."""

    def test_rounds_half_up_to_increment(self):
        assert round_to_payroll_increment(7, 15) == 0
        assert round_to_payroll_increment(8, 15) == 15
        assert round_to_payroll_increment(Decimal("7.5"), 15) == 15
        assert round_to_payroll_increment(22, 15) == 15
        assert round_to_payroll_increment(23, 15) == 30

    def test_non_positive_increment_returns_input(self):
        assert round_to_payroll_increment(37, 0) == 37
        assert round_to_payroll_increment(37, -15) == 37

    def test_round_time_uses_local_minute_of_day(self):
        assert round_time_to_increment(local(2024, 3, 4, 9, 7), 15, TZ) == local(2024, 3, 4, 9, 0)
        assert round_time_to_increment(local(2024, 3, 4, 9, 8), 15, TZ) == local(2024, 3, 4, 9, 15)

    @given(minutes=st.integers(min_value=0, max_value=24 * 60), increment=st.integers(1, 60))
    def test_result_is_multiple_of_increment(self, minutes, increment):
        rounded = round_to_payroll_increment(minutes, increment)
        assert rounded % increment == 0
        assert abs(rounded - minutes) * 2 <= increment


class TestHourSplit:
    """Test regular/overtime splitting."""

    def test_ten_and_a_half_hours(self):
        split = split_regular_overtime(Decimal("10.5"))
        assert split.regular == Decimal("8")
        assert split.overtime == Decimal("2.5")

    def test_under_threshold(self):
        split = split_regular_overtime(Decimal("6"))
        assert split.regular == Decimal("6")
        assert split.overtime == Decimal("0")

    def test_negative_total_clamps_to_zero(self):
        split = split_regular_overtime(Decimal("-3"))
        assert split.regular == 0
        assert split.overtime == 0

    @given(hours=st.decimals(min_value=0, max_value=48, places=2))
    def test_parts_sum_to_total(self, hours):
        split = split_regular_overtime(hours)
        assert split.regular + split.overtime == hours
        assert split.regular <= Decimal("8")
        assert split.overtime >= 0


class TestShiftType:
    """Test day/night classification in local time."""

    def test_night_hours(self):
        assert classify_shift_type(local(2024, 3, 4, 22, 0), TZ) == ShiftType.NIGHT
        assert classify_shift_type(local(2024, 3, 4, 5, 59), TZ) == ShiftType.NIGHT

    def test_day_hours(self):
        assert classify_shift_type(local(2024, 3, 4, 6, 0), TZ) == ShiftType.DAY
        assert classify_shift_type(local(2024, 3, 4, 21, 59), TZ) == ShiftType.DAY


class TestPayableInterval:
    """Test the payable window of a time entry."""

    def test_inverted_interval_clamps_to_zero(self):
        hours, inverted = hours_between(local(2024, 3, 4, 17), local(2024, 3, 4, 9))
        assert hours == Decimal("0.00")
        assert inverted is True

    def test_grace_snaps_both_ends(self):
        employee_id = uuid4()
        schedule = schedule_record(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17))
        entry = entry_record(
            employee_id,
            local(2024, 3, 4, 8, 58),
            local(2024, 3, 4, 17, 3),
            schedule_id=schedule.schedule_id,
        )
        interval = payable_interval(entry, schedule, 5)
        assert interval.start == schedule.start_time
        assert interval.end == schedule.end_time
        assert interval.hours == Decimal("8.00")
        assert interval.grace_applied is True

    def test_adjusted_times_override_grace(self):
        employee_id = uuid4()
        schedule = schedule_record(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17))
        entry = entry_record(
            employee_id,
            local(2024, 3, 4, 8, 58),
            local(2024, 3, 4, 17),
            schedule_id=schedule.schedule_id,
            adjusted_start=local(2024, 3, 4, 10),
            adjusted_end=local(2024, 3, 4, 12),
        )
        assert payable_interval(entry, schedule, 5).hours == Decimal("2.00")

    def test_open_entry_has_no_hours(self):
        entry = entry_record(uuid4(), local(2024, 3, 4, 9))
        interval = payable_interval(entry, None, 5)
        assert interval.end is None
        assert interval.hours == Decimal("0.00")

    def test_unscheduled_entry_uses_raw_times(self):
        entry = entry_record(uuid4(), local(2024, 3, 4, 9, 2), local(2024, 3, 4, 12, 32))
        assert payable_interval(entry, None, 5).hours == Decimal("3.50")
