"""Domain errors raised by timeclock operations.

All of these are recoverable at the caller: derived views are recomputed on
every read, so a rejected mutation never leaves partial derived state behind.
"""

from __future__ import annotations

from uuid import UUID


class AttendanceError(Exception):
    """Base class for attendance engine errors."""

    code = "ATTENDANCE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConflictError(AttendanceError):
    """Raised when a clock-in would create a second open time entry."""

    code = "CONFLICT"

    def __init__(self, message: str, employee_id: UUID | None = None):
        self.employee_id = employee_id
        super().__init__(message)


class NotEligibleError(AttendanceError):
    """Raised when a clock-in is attempted outside any clock-in window."""

    code = "NOT_ELIGIBLE"


class NoOpenEntryError(AttendanceError):
    """Raised when a clock-out finds nothing to close."""

    code = "NO_OPEN_ENTRY"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} has no open time entry")


class ValidationError(AttendanceError):
    """Raised for malformed adjustment requests."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(AttendanceError):
    """Raised when a referenced schedule, time entry or rate is missing."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")
