"""Tests for pairing clock events with schedules."""

from datetime import date
from uuid import uuid4

from attendance_engine.calculators.types import MatchStatus, ScheduleStatus

from tests.factories import entry_record, local, schedule_record


def nine_to_five(employee_id, **kwargs):
    return schedule_record(employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17), **kwargs)


class TestMatchStatus:
    """Test classification of schedules."""

    def test_linked_entry_is_matched(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        entry = entry_record(employee_id, local(2024, 3, 4, 9), schedule_id=schedule.schedule_id)

        result = matcher.match(employee_id, [schedule], [entry], local(2024, 3, 4, 10))

        assert result.shifts[0].status == MatchStatus.MATCHED
        assert result.shifts[0].entry == entry
        assert result.open_entry == entry
        assert result.orphans == ()

    def test_available_inside_clock_in_window(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        result = matcher.match(employee_id, [schedule], [], local(2024, 3, 4, 8, 55))
        assert result.shifts[0].status == MatchStatus.AVAILABLE

    def test_upcoming_before_window(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        result = matcher.match(employee_id, [schedule], [], local(2024, 3, 4, 8, 54))
        assert result.shifts[0].status == MatchStatus.UPCOMING

    def test_unavailable_while_clocked_in(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        open_orphan = entry_record(employee_id, local(2024, 3, 4, 7))
        result = matcher.match(employee_id, [schedule], [open_orphan], local(2024, 3, 4, 9))
        assert result.shifts[0].status == MatchStatus.UNAVAILABLE
        assert result.open_entry == open_orphan

    def test_missed_after_end(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        result = matcher.match(employee_id, [schedule], [], local(2024, 3, 4, 17, 1))
        assert result.shifts[0].status == MatchStatus.MISSED

    def test_cancelled_is_never_available(self, matcher, employee_id):
        schedule = nine_to_five(employee_id, status=ScheduleStatus.CANCELLED)
        result = matcher.match(employee_id, [schedule], [], local(2024, 3, 4, 9))
        assert result.shifts[0].status == MatchStatus.CANCELLED

    def test_completed_schedule_without_entry_is_unavailable(self, matcher, employee_id):
        schedule = nine_to_five(employee_id, status=ScheduleStatus.COMPLETED)
        result = matcher.match(employee_id, [schedule], [], local(2024, 3, 4, 9))
        assert result.shifts[0].status == MatchStatus.UNAVAILABLE


class TestPairing:
    """Test entry-to-schedule pairing rules."""

    def test_closest_entry_wins_and_rest_become_orphans(self, matcher, employee_id):
        schedule = nine_to_five(employee_id)
        close = entry_record(
            employee_id, local(2024, 3, 4, 9, 1), local(2024, 3, 4, 12),
            schedule_id=schedule.schedule_id,
        )
        far = entry_record(
            employee_id, local(2024, 3, 4, 13), local(2024, 3, 4, 17),
            schedule_id=schedule.schedule_id,
        )

        result = matcher.match(employee_id, [schedule], [far, close], local(2024, 3, 4, 18))

        assert result.shifts[0].entry == close
        assert result.orphans == (far,)

    def test_reference_outside_input_set_is_orphan(self, matcher, employee_id):
        entry = entry_record(
            employee_id, local(2024, 3, 4, 9), local(2024, 3, 4, 17), schedule_id=uuid4()
        )
        result = matcher.match(employee_id, [], [entry], local(2024, 3, 4, 18))
        assert result.orphans == (entry,)

    def test_other_employees_are_ignored(self, matcher, employee_id, other_employee_id):
        mine = nine_to_five(employee_id)
        theirs = nine_to_five(other_employee_id)
        their_entry = entry_record(other_employee_id, local(2024, 3, 4, 9))

        result = matcher.match(employee_id, [mine, theirs], [their_entry], local(2024, 3, 4, 9))

        assert [s.schedule for s in result.shifts] == [mine]
        assert result.open_entry is None
        assert result.shifts[0].status == MatchStatus.AVAILABLE

    def test_selects_available_schedule_closest_to_clock_in(self, matcher, employee_id):
        long_shift = nine_to_five(employee_id)
        short_shift = schedule_record(
            employee_id, local(2024, 3, 4, 9, 3), local(2024, 3, 4, 12)
        )
        now = local(2024, 3, 4, 9, 2)

        result = matcher.match(employee_id, [long_shift, short_shift], [], now)

        assert matcher.select_schedule_for_clock_in(result, now) == short_shift

    def test_no_schedule_selected_when_none_available(self, matcher, employee_id):
        result = matcher.match(
            employee_id, [nine_to_five(employee_id)], [], local(2024, 3, 4, 6)
        )
        assert matcher.select_schedule_for_clock_in(result, local(2024, 3, 4, 6)) is None


class TestWorkDates:
    """Test grouping by civil day."""

    def test_night_shift_belongs_to_start_date(self, matcher, employee_id):
        night = schedule_record(employee_id, local(2024, 3, 4, 22), local(2024, 3, 5, 6))
        entry = entry_record(
            employee_id, local(2024, 3, 4, 22), local(2024, 3, 5, 6),
            schedule_id=night.schedule_id,
        )
        orphan = entry_record(employee_id, local(2024, 3, 5, 10), local(2024, 3, 5, 12))

        result = matcher.match(employee_id, [night], [entry, orphan], local(2024, 3, 6))
        grouped = matcher.group_by_work_date(result)

        assert list(grouped) == [date(2024, 3, 4), date(2024, 3, 5)]
        assert grouped[date(2024, 3, 4)][0][0].schedule == night
        assert grouped[date(2024, 3, 5)][1] == [orphan]
