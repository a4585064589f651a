"""Clock eligibility state machine with transition validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable
from uuid import UUID

from attendance_engine.calculators.shift_matcher import ShiftMatcher
from attendance_engine.calculators.types import (
    MatchResult,
    MatchStatus,
    ScheduleRecord,
    TimeEntryRecord,
)


class ClockState(str, Enum):
    """Per-employee actionable clock state."""

    IDLE = "IDLE"
    ELIGIBLE_IN = "ELIGIBLE_IN"
    CLOCKED_IN = "CLOCKED_IN"
    BLOCKED = "BLOCKED"


class ClockAction(str, Enum):
    """Mutation intents that move an employee between states."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    ADJUST = "adjust"


class InvalidTransitionError(Exception):
    """Raised when an action is not allowed from the current state."""

    def __init__(self, from_state: str, action: str, reason: str | None = None):
        self.from_state = from_state
        self.action = action
        self.reason = reason
        msg = (
            f"Action '{getattr(action, 'value', action)}' is not allowed "
            f"from state '{getattr(from_state, 'value', from_state)}'"
        )
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# States without an open entry
_SETTLED_STATES = [ClockState.IDLE, ClockState.ELIGIBLE_IN, ClockState.BLOCKED]


@dataclass(frozen=True)
class Eligibility:
    """Derived clock state of one employee at one instant."""

    employee_id: UUID
    state: ClockState
    evaluated_at: datetime
    next_window: datetime | None = None
    open_time_entry_id: UUID | None = None
    schedule_id: UUID | None = None
    position: str | None = None

    @property
    def can_clock_in(self) -> bool:
        return self.state == ClockState.ELIGIBLE_IN

    @property
    def can_clock_out(self) -> bool:
        return self.state == ClockState.CLOCKED_IN

    @property
    def minutes_until_window(self) -> int:
        """Whole minutes (rounded up) until the next clock-in window opens."""
        if self.next_window is None:
            return 0
        seconds = (self.next_window - self.evaluated_at).total_seconds()
        return max(0, math.ceil(seconds / 60))


class ClockStateMachine:
    """State machine for employee clock state.

    Allowed transitions:
    - IDLE → CLOCKED_IN (clock_in, unscheduled work when policy allows)
    - ELIGIBLE_IN → CLOCKED_IN (clock_in)
    - CLOCKED_IN → IDLE | ELIGIBLE_IN | BLOCKED (clock_out, recomputed)
    - CLOCKED_IN → CLOCKED_IN | IDLE | ELIGIBLE_IN | BLOCKED (adjust)
    - IDLE | ELIGIBLE_IN | BLOCKED → IDLE | ELIGIBLE_IN | BLOCKED (adjust of a
      closed entry; it never reopens one)

    No state is persisted: ``evaluate`` derives it from schedules, entries and
    now on every read.
    """

    # Define valid transitions: {from_state: {action: [allowed_to_states]}}
    VALID_TRANSITIONS: dict[str, dict[str, list[str]]] = {
        ClockState.IDLE: {
            ClockAction.CLOCK_IN: [ClockState.CLOCKED_IN],
            ClockAction.ADJUST: _SETTLED_STATES,
        },
        ClockState.ELIGIBLE_IN: {
            ClockAction.CLOCK_IN: [ClockState.CLOCKED_IN],
            ClockAction.ADJUST: _SETTLED_STATES,
        },
        ClockState.CLOCKED_IN: {
            ClockAction.CLOCK_OUT: _SETTLED_STATES,
            ClockAction.ADJUST: [ClockState.CLOCKED_IN, *_SETTLED_STATES],
        },
        ClockState.BLOCKED: {
            ClockAction.ADJUST: _SETTLED_STATES,
        },
    }

    def __init__(self, matcher: ShiftMatcher, allow_unscheduled_clock_in: bool = False):
        self.matcher = matcher
        self.allow_unscheduled_clock_in = allow_unscheduled_clock_in

    @classmethod
    def can_perform(cls, from_state: str, action: str) -> bool:
        """Check if an action is allowed from a state."""
        return action in cls.VALID_TRANSITIONS.get(from_state, {})

    @classmethod
    def can_transition(cls, from_state: str, action: str, to_state: str) -> bool:
        """Check if an action may move from_state to to_state."""
        allowed = cls.VALID_TRANSITIONS.get(from_state, {}).get(action, [])
        return to_state in allowed

    @classmethod
    def validate_action(cls, from_state: str, action: str) -> None:
        """Validate an action, raising InvalidTransitionError if invalid."""
        if not cls.can_perform(from_state, action):
            raise InvalidTransitionError(from_state, action)

    @classmethod
    def get_allowed_actions(cls, state: str) -> list[str]:
        """List of actions valid from a state."""
        return list(cls.VALID_TRANSITIONS.get(state, {}).keys())

    def evaluate(
        self,
        employee_id: UUID,
        schedules: Iterable[ScheduleRecord],
        entries: Iterable[TimeEntryRecord],
        now: datetime,
    ) -> Eligibility:
        """Derive the current clock state from raw feeds."""
        result = self.matcher.match(employee_id, schedules, entries, now)
        return self.evaluate_match(result, now)

    def evaluate_match(self, result: MatchResult, now: datetime) -> Eligibility:
        """Derive the current clock state from a match result."""
        if result.open_entry is not None:
            entry = result.open_entry
            return Eligibility(
                employee_id=result.employee_id,
                state=ClockState.CLOCKED_IN,
                evaluated_at=now,
                open_time_entry_id=entry.time_entry_id,
                schedule_id=entry.schedule_id,
            )

        available = result.with_status(MatchStatus.AVAILABLE)
        if available:
            earliest = min(available, key=lambda s: s.schedule.start_time).schedule
            chosen = self.matcher.select_schedule_for_clock_in(result, now) or earliest
            return Eligibility(
                employee_id=result.employee_id,
                state=ClockState.ELIGIBLE_IN,
                evaluated_at=now,
                next_window=self.matcher.clock_in_window_opens(earliest),
                schedule_id=chosen.schedule_id,
                position=chosen.position,
            )

        upcoming = result.with_status(MatchStatus.UPCOMING)
        if upcoming:
            earliest = min(upcoming, key=lambda s: s.schedule.start_time).schedule
            return Eligibility(
                employee_id=result.employee_id,
                state=ClockState.IDLE,
                evaluated_at=now,
                next_window=self.matcher.clock_in_window_opens(earliest),
                schedule_id=earliest.schedule_id,
                position=earliest.position,
            )

        if self.allow_unscheduled_clock_in:
            return Eligibility(
                employee_id=result.employee_id,
                state=ClockState.IDLE,
                evaluated_at=now,
            )

        return Eligibility(
            employee_id=result.employee_id,
            state=ClockState.BLOCKED,
            evaluated_at=now,
        )
