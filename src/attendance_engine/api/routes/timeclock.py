"""Timeclock API endpoints."""

from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from attendance_engine.api.dependencies import (
    AdjusterRole,
    IdempotencyKey,
    SettingsDep,
    TimeclockServiceDep,
)
from attendance_engine.api.schemas import (
    AnomalyListResponse,
    AnomalyResponse,
    ClockInRequest,
    ClockOutRequest,
    DailySummaryResponse,
    EligibilityResponse,
    ErrorResponse,
    GracePreviewResponse,
    RoundingPreviewResponse,
    ShiftResponse,
    TimeEntryAdjustmentResponse,
    TimeEntryAdjustRequest,
    TimeEntryListItem,
    TimeEntryListResponse,
    TimeEntryResponse,
    TodayClockStatusResponse,
)
from attendance_engine.calculators.time_model import (
    apply_grace_period,
    classify_shift_type,
    round_time_to_increment,
    round_to_payroll_increment,
)
from attendance_engine.calculators.types import MatchedShift, TimeEntryStatus

router = APIRouter(prefix="/timeclock", tags=["timeclock"])


def _shift_response(shift: MatchedShift, tz: tzinfo) -> ShiftResponse:
    schedule = shift.schedule
    return ShiftResponse(
        schedule_id=schedule.schedule_id,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        position=schedule.position,
        schedule_status=schedule.status,
        match_status=shift.status,
        shift_type=classify_shift_type(schedule.start_time, tz),
        work_date=shift.work_date,
        time_entry_id=shift.entry.time_entry_id if shift.entry is not None else None,
    )


# ============================================================================
# Mutations
# ============================================================================


@router.post(
    "/clock-in",
    response_model=TimeEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def clock_in(
    service: TimeclockServiceDep,
    payload: ClockInRequest,
    idempotency_key: IdempotencyKey = None,
) -> TimeEntryResponse:
    """Clock an employee in against an open schedule."""
    entry = await service.clock_in(
        payload.employee_id,
        schedule_id=payload.schedule_id,
        location=payload.location,
        idempotency_key=idempotency_key,
    )
    return TimeEntryResponse.model_validate(entry)


@router.post(
    "/clock-out",
    response_model=TimeEntryResponse,
    responses={409: {"model": ErrorResponse}},
)
async def clock_out(
    service: TimeclockServiceDep,
    payload: ClockOutRequest,
    idempotency_key: IdempotencyKey = None,
) -> TimeEntryResponse:
    """Close the employee's open time entry."""
    entry = await service.clock_out(
        payload.employee_id,
        location=payload.location,
        idempotency_key=idempotency_key,
    )
    return TimeEntryResponse.model_validate(entry)


@router.put(
    "/entries/{time_entry_id}",
    response_model=TimeEntryResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def adjust_time_entry(
    service: TimeclockServiceDep,
    role: AdjusterRole,
    time_entry_id: Annotated[UUID, Path()],
    payload: TimeEntryAdjustRequest,
    idempotency_key: IdempotencyKey = None,
) -> TimeEntryResponse:
    """Manually correct a time entry (admin/manager only)."""
    entry = await service.adjust_time_entry(
        time_entry_id,
        clock_in_time=payload.clock_in_time,
        clock_out_time=payload.clock_out_time,
        reason=payload.reason,
        adjusted_by=payload.adjusted_by,
        idempotency_key=idempotency_key,
    )
    return TimeEntryResponse.model_validate(entry)


@router.get(
    "/entries",
    response_model=TimeEntryListResponse,
    responses={422: {"model": ErrorResponse}},
)
async def list_time_entries(
    service: TimeclockServiceDep,
    start_date: date | None = None,
    end_date: date | None = None,
    employee_id: UUID | None = None,
    status_filter: Annotated[TimeEntryStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> TimeEntryListResponse:
    """List time entries with optional filters (default: current pay period)."""
    period = service.get_current_pay_period()
    listing = await service.list_time_entries(
        start_date or period.start_date,
        end_date or period.end_date,
        employee_id=employee_id,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return TimeEntryListResponse(
        items=[
            TimeEntryListItem.model_validate(item.entry).model_copy(
                update={"duration_hours": item.duration_hours}
            )
            for item in listing.items
        ],
        total=listing.total,
        page=listing.page,
        page_size=listing.page_size,
    )


@router.get(
    "/entries/{time_entry_id}/adjustments",
    response_model=list[TimeEntryAdjustmentResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_adjustments(
    service: TimeclockServiceDep,
    role: AdjusterRole,
    time_entry_id: Annotated[UUID, Path()],
) -> list[TimeEntryAdjustmentResponse]:
    """Audit trail of a time entry."""
    entry = await service.store.get_time_entry(time_entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Time entry not found",
        )
    adjustments = await service.store.list_adjustments(time_entry_id)
    return [TimeEntryAdjustmentResponse.model_validate(a) for a in adjustments]


# ============================================================================
# Views
# ============================================================================


@router.get("/status/{employee_id}", response_model=EligibilityResponse)
async def get_clock_status(
    service: TimeclockServiceDep,
    employee_id: Annotated[UUID, Path()],
) -> EligibilityResponse:
    """Current clock eligibility and today's schedules."""
    eligibility = await service.get_eligibility(employee_id)
    shifts = await service.get_today_schedules(employee_id)
    return EligibilityResponse(
        employee_id=eligibility.employee_id,
        state=eligibility.state,
        can_clock_in=eligibility.can_clock_in,
        can_clock_out=eligibility.can_clock_out,
        evaluated_at=eligibility.evaluated_at,
        next_window=eligibility.next_window,
        minutes_until_window=eligibility.minutes_until_window,
        open_time_entry_id=eligibility.open_time_entry_id,
        schedule_id=eligibility.schedule_id,
        position=eligibility.position,
        today_schedules=[_shift_response(s, service.tz) for s in shifts],
    )


@router.get("/today", response_model=TodayClockStatusResponse)
async def get_today_clock_status(service: TimeclockServiceDep) -> TodayClockStatusResponse:
    """Who is scheduled, working, done, late or in overtime today."""
    today = await service.get_today_clock_status()
    return TodayClockStatusResponse.model_validate(today)


@router.get("/daily-summary/{employee_id}", response_model=DailySummaryResponse)
async def get_daily_summary(
    service: TimeclockServiceDep,
    employee_id: Annotated[UUID, Path()],
    work_date: date | None = None,
) -> DailySummaryResponse:
    """Scheduled vs. worked hours for one day (default: today)."""
    summary = await service.get_daily_summary(employee_id, work_date)
    return DailySummaryResponse.model_validate(summary)


@router.get(
    "/anomalies/{employee_id}",
    response_model=AnomalyListResponse,
    responses={422: {"model": ErrorResponse}},
)
async def get_anomalies(
    service: TimeclockServiceDep,
    employee_id: Annotated[UUID, Path()],
    start_date: date | None = None,
    end_date: date | None = None,
) -> AnomalyListResponse:
    """Anomalies over a date range (default: current pay period)."""
    period = service.get_current_pay_period()
    start = start_date or period.start_date
    end = end_date or period.end_date
    anomalies = await service.get_anomalies(employee_id, start, end)
    return AnomalyListResponse(
        employee_id=employee_id,
        start_date=start,
        end_date=end,
        items=[AnomalyResponse.model_validate(a) for a in anomalies],
        total=len(anomalies),
    )


# ============================================================================
# Diagnostic tools
# ============================================================================


@router.get("/tools/rounding", response_model=RoundingPreviewResponse)
async def preview_rounding(
    settings: SettingsDep,
    minutes: Annotated[int, Query(ge=0)],
    increment_minutes: Annotated[int | None, Query(ge=1)] = None,
    time: datetime | None = None,
) -> RoundingPreviewResponse:
    """Show how payroll rounding treats a minute count (and optionally a time)."""
    increment = increment_minutes or settings.policy.payroll_rounding_increment_minutes
    rounded_time = None
    if time is not None:
        if time.tzinfo is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="time must include a UTC offset",
            )
        rounded_time = round_time_to_increment(time, increment, settings.policy.tz)
    return RoundingPreviewResponse(
        minutes=minutes,
        increment_minutes=increment,
        rounded_minutes=round_to_payroll_increment(minutes, increment),
        time=time,
        rounded_time=rounded_time,
    )


@router.get("/tools/grace-period", response_model=GracePreviewResponse)
async def preview_grace_period(
    settings: SettingsDep,
    actual: datetime,
    scheduled: datetime,
    grace_minutes: Annotated[int | None, Query(ge=0)] = None,
) -> GracePreviewResponse:
    """Show whether a clock time would be snapped to the scheduled time."""
    if actual.tzinfo is None or scheduled.tzinfo is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="actual and scheduled must include a UTC offset",
        )
    grace = settings.policy.grace_minutes if grace_minutes is None else grace_minutes
    result = apply_grace_period(actual, scheduled, grace)
    difference = Decimal(int((actual - scheduled).total_seconds())) / 60
    return GracePreviewResponse(
        actual=actual,
        scheduled=scheduled,
        grace_minutes=grace,
        adjusted=result.adjusted,
        applied=result.applied,
        difference_minutes=difference.quantize(Decimal("0.01")),
    )
