"""Schedule, time entry and adjustment audit models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_engine.calculators.types import (
    ScheduleRecord,
    ScheduleStatus,
    TimeEntryRecord,
    TimeEntryStatus,
)
from attendance_engine.models.base import Base, TimestampMixin, UTCDateTime

OPEN_ENTRY_PREDICATE = text("status = 'CLOCKED_IN'")


class Schedule(Base, TimestampMixin):
    """Planned work shift (owned by the scheduling subsystem)."""

    __tablename__ = "schedule"

    schedule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ScheduleStatus.SCHEDULED.value
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('SCHEDULED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="schedule_status_check",
        ),
        Index("ix_schedule_employee_start", "employee_id", "start_time"),
    )

    # Relationships
    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="schedule")

    def to_record(self) -> ScheduleRecord:
        return ScheduleRecord(
            schedule_id=self.schedule_id,
            employee_id=self.employee_id,
            start_time=self.start_time,
            end_time=self.end_time,
            position=self.position,
            status=ScheduleStatus(self.status),
        )


class TimeEntry(Base, TimestampMixin):
    """Clock-in/clock-out pair. Never deleted; corrections set ADJUSTED."""

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("schedule.schedule_id"),
        nullable=True,
    )
    clock_in_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    clock_out_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    adjusted_start_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    adjusted_end_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    # Payable hours, not raw wall-clock time: the span after manual overrides
    # and grace snapping against the linked schedule, clamped at zero.
    # Null while open. Pay and summary views recompute it from the raw times.
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TimeEntryStatus.CLOCKED_IN.value
    )
    grace_period_applied: Mapped[bool] = mapped_column(default=False, nullable=False)
    clock_in_location: Mapped[str | None] = mapped_column(String, nullable=True)
    clock_out_location: Mapped[str | None] = mapped_column(String, nullable=True)

    # Idempotency keys for retried clock requests
    clock_in_idempotency_key: Mapped[str | None] = mapped_column(
        String, nullable=True, unique=True
    )
    clock_out_idempotency_key: Mapped[str | None] = mapped_column(
        String, nullable=True, unique=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('CLOCKED_IN', 'CLOCKED_OUT', 'ADJUSTED')",
            name="time_entry_status_check",
        ),
        # At most one open entry per employee; the store is the serialization point
        Index(
            "uq_time_entry_one_open_per_employee",
            "employee_id",
            unique=True,
            postgresql_where=OPEN_ENTRY_PREDICATE,
            sqlite_where=OPEN_ENTRY_PREDICATE,
        ),
        Index("ix_time_entry_employee_clock_in", "employee_id", "clock_in_time"),
    )

    # Relationships
    schedule: Mapped[Schedule | None] = relationship(back_populates="time_entries")
    adjustments: Mapped[list[TimeEntryAdjustment]] = relationship(
        back_populates="time_entry", order_by="TimeEntryAdjustment.created_at"
    )

    def to_record(self) -> TimeEntryRecord:
        return TimeEntryRecord(
            time_entry_id=self.time_entry_id,
            employee_id=self.employee_id,
            schedule_id=self.schedule_id,
            clock_in_time=self.clock_in_time,
            clock_out_time=self.clock_out_time,
            adjusted_start_time=self.adjusted_start_time,
            adjusted_end_time=self.adjusted_end_time,
            total_hours=self.total_hours,
            status=TimeEntryStatus(self.status),
            grace_period_applied=self.grace_period_applied,
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the mutable fields, for audit rows."""
        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value is not None else None

        return {
            "clock_in_time": iso(self.clock_in_time),
            "clock_out_time": iso(self.clock_out_time),
            "adjusted_start_time": iso(self.adjusted_start_time),
            "adjusted_end_time": iso(self.adjusted_end_time),
            "total_hours": str(self.total_hours) if self.total_hours is not None else None,
            "status": self.status,
        }


class TimeEntryAdjustment(Base, TimestampMixin):
    """Audit trail entry for a manual time correction."""

    __tablename__ = "time_entry_adjustment"

    time_entry_adjustment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    time_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("time_entry.time_entry_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    adjusted_by: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    before_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    after_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)

    # Relationships
    time_entry: Mapped[TimeEntry] = relationship(back_populates="adjustments")
