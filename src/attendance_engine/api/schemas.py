"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from attendance_engine.calculators.types import (
    AnomalyKind,
    DailyClockStatus,
    MatchStatus,
    ScheduleStatus,
    ShiftType,
)
from attendance_engine.services.state_machine import ClockState


# ============================================================================
# Clock mutation schemas
# ============================================================================


class ClockInRequest(BaseModel):
    """Schema for a clock-in intent."""

    employee_id: UUID
    schedule_id: UUID | None = None
    location: str | None = Field(default=None, max_length=255)


class ClockOutRequest(BaseModel):
    """Schema for a clock-out intent."""

    employee_id: UUID
    location: str | None = Field(default=None, max_length=255)


class TimeEntryAdjustRequest(BaseModel):
    """Schema for a manual time correction."""

    clock_in_time: datetime
    clock_out_time: datetime | None = None
    reason: str
    adjusted_by: str


class TimeEntryResponse(BaseModel):
    """Schema for time entry response."""

    model_config = ConfigDict(from_attributes=True)

    time_entry_id: UUID
    employee_id: UUID
    schedule_id: UUID | None = None
    clock_in_time: datetime
    clock_out_time: datetime | None = None
    adjusted_start_time: datetime | None = None
    adjusted_end_time: datetime | None = None
    total_hours: Decimal | None = None
    status: str
    grace_period_applied: bool
    clock_in_location: str | None = None
    clock_out_location: str | None = None


class TimeEntryListItem(TimeEntryResponse):
    """Schema for a listed time entry with its duration."""

    duration_hours: Decimal | None = None


class TimeEntryListResponse(BaseModel):
    """Schema for listing time entries."""

    items: list[TimeEntryListItem]
    total: int
    page: int
    page_size: int


class TimeEntryAdjustmentResponse(BaseModel):
    """Schema for an adjustment audit row."""

    model_config = ConfigDict(from_attributes=True)

    time_entry_adjustment_id: UUID
    time_entry_id: UUID
    adjusted_by: str
    reason: str
    before_json: dict[str, Any]
    after_json: dict[str, Any]


# ============================================================================
# Timeclock view schemas
# ============================================================================


class ShiftResponse(BaseModel):
    """Schema for a schedule with its match status."""

    schedule_id: UUID
    start_time: datetime
    end_time: datetime
    position: str | None = None
    schedule_status: ScheduleStatus
    match_status: MatchStatus
    shift_type: ShiftType
    work_date: date | None = None
    time_entry_id: UUID | None = None


class EligibilityResponse(BaseModel):
    """Schema for an employee's clock status."""

    employee_id: UUID
    state: ClockState
    can_clock_in: bool
    can_clock_out: bool
    evaluated_at: datetime
    next_window: datetime | None = None
    minutes_until_window: int
    open_time_entry_id: UUID | None = None
    schedule_id: UUID | None = None
    position: str | None = None
    today_schedules: list[ShiftResponse] = []


class DailySummaryResponse(BaseModel):
    """Schema for daily summary response."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    work_date: date
    scheduled_hours: Decimal
    worked_hours: Decimal
    completed_shift_count: int
    total_schedule_count: int
    clock_status: DailyClockStatus
    is_clocked_in: bool


class EmployeeClockStatusResponse(BaseModel):
    """Schema for one employee on the today board."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    clock_status: DailyClockStatus
    is_clocked_in: bool
    is_late: bool
    is_overtime: bool
    scheduled_hours: Decimal
    worked_hours: Decimal
    total_schedule_count: int


class TodayClockStatusResponse(BaseModel):
    """Schema for today's clock status across employees."""

    model_config = ConfigDict(from_attributes=True)

    work_date: date
    employees: list[EmployeeClockStatusResponse]
    total_employees: int
    clocked_in_count: int
    completed_count: int
    late_count: int
    overtime_count: int
    attendance_rate: int


class AnomalyResponse(BaseModel):
    """Schema for an attendance anomaly."""

    model_config = ConfigDict(from_attributes=True)

    kind: AnomalyKind
    employee_id: UUID
    work_date: date | None = None
    schedule_id: UUID | None = None
    time_entry_id: UUID | None = None
    pay_period_id: str | None = None
    detail: str | None = None


class AnomalyListResponse(BaseModel):
    """Schema for listing anomalies."""

    employee_id: UUID
    start_date: date
    end_date: date
    items: list[AnomalyResponse]
    total: int


class RoundingPreviewResponse(BaseModel):
    """Schema for the payroll rounding diagnostic."""

    minutes: int
    increment_minutes: int
    rounded_minutes: int
    time: datetime | None = None
    rounded_time: datetime | None = None


class GracePreviewResponse(BaseModel):
    """Schema for the grace period diagnostic."""

    actual: datetime
    scheduled: datetime
    grace_minutes: int
    adjusted: datetime
    applied: bool
    difference_minutes: Decimal


# ============================================================================
# Payroll schemas
# ============================================================================


class PayPeriodResponse(BaseModel):
    """Schema for a semi-monthly pay period."""

    pay_period_id: str
    label: str
    start_date: date
    end_date: date
    previous_pay_period_id: str
    next_pay_period_id: str


class PayPeriodAggregateResponse(BaseModel):
    """Schema for per-employee pay period totals."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    pay_period_id: str
    period_start: date
    period_end: date
    pay_rate: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    deductions: Decimal
    net_pay: Decimal
    shift_count: int
    inputs_fingerprint: str
    anomalies: list[AnomalyResponse] = []


class YearToDateResponse(BaseModel):
    """Schema for year-to-date totals."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    year: int
    period_count: int
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal


class PeriodSummaryResponse(BaseModel):
    """Schema for multi-employee pay period totals."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_id: str
    total_employees: int
    total_hours: Decimal
    total_overtime_hours: Decimal
    total_gross_pay: Decimal
    total_net_pay: Decimal
    anomalies_count: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
