"""Attendance engine services."""

from attendance_engine.services.state_machine import (
    ClockState,
    ClockStateMachine,
    Eligibility,
    InvalidTransitionError,
)
from attendance_engine.services.store import TimeclockStore
from attendance_engine.services.timeclock_service import TimeclockService
from attendance_engine.services.view_cache import DerivedViewCache

__all__ = [
    "ClockState",
    "ClockStateMachine",
    "Eligibility",
    "InvalidTransitionError",
    "TimeclockStore",
    "TimeclockService",
    "DerivedViewCache",
]
