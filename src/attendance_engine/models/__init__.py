"""ORM models."""

from attendance_engine.models.base import Base, TimestampMixin, UTCDateTime
from attendance_engine.models.payroll import PayRate
from attendance_engine.models.timeclock import Schedule, TimeEntry, TimeEntryAdjustment

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "PayRate",
    "Schedule",
    "TimeEntry",
    "TimeEntryAdjustment",
]
