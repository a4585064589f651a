"""Payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from attendance_engine.api.dependencies import TimeclockServiceDep
from attendance_engine.api.schemas import (
    ErrorResponse,
    PayPeriodAggregateResponse,
    PayPeriodResponse,
    PeriodSummaryResponse,
    YearToDateResponse,
)
from attendance_engine.calculators.pay_periods import PayPeriod, parse_pay_period_id

router = APIRouter(prefix="/payroll", tags=["payroll"])

PayPeriodId = Annotated[str, Path(pattern=r"^\d{4}-\d{2}-[AB]$")]


def _period_response(period: PayPeriod) -> PayPeriodResponse:
    return PayPeriodResponse(
        pay_period_id=period.pay_period_id,
        label=period.label,
        start_date=period.start_date,
        end_date=period.end_date,
        previous_pay_period_id=period.previous().pay_period_id,
        next_pay_period_id=period.next().pay_period_id,
    )


# ============================================================================
# Pay periods
# ============================================================================


@router.get("/periods/current", response_model=PayPeriodResponse)
async def get_current_period(service: TimeclockServiceDep) -> PayPeriodResponse:
    """The pay period containing today."""
    return _period_response(service.get_current_pay_period())


@router.get(
    "/periods/{pay_period_id}",
    response_model=PayPeriodResponse,
    responses={422: {"model": ErrorResponse}},
)
async def get_period(pay_period_id: PayPeriodId) -> PayPeriodResponse:
    """Boundaries and neighbours of a pay period."""
    return _period_response(parse_pay_period_id(pay_period_id))


@router.get(
    "/periods/{pay_period_id}/summary",
    response_model=PeriodSummaryResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_period_summary(
    service: TimeclockServiceDep,
    pay_period_id: PayPeriodId,
) -> PeriodSummaryResponse:
    """Totals across all employees with work in the period."""
    summary = await service.get_period_summary(pay_period_id)
    return PeriodSummaryResponse.model_validate(summary)


# ============================================================================
# Employee totals
# ============================================================================


@router.get(
    "/employees/{employee_id}/periods/{pay_period_id}",
    response_model=PayPeriodAggregateResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_employee_period(
    service: TimeclockServiceDep,
    employee_id: Annotated[UUID, Path()],
    pay_period_id: PayPeriodId,
) -> PayPeriodAggregateResponse:
    """Hours and pay of one employee for one pay period."""
    aggregate = await service.get_pay_period_aggregate(employee_id, pay_period_id)
    return PayPeriodAggregateResponse.model_validate(aggregate)


@router.get(
    "/employees/{employee_id}/ytd",
    response_model=YearToDateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_employee_year_to_date(
    service: TimeclockServiceDep,
    employee_id: Annotated[UUID, Path()],
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
) -> YearToDateResponse:
    """Totals of the completed pay periods of a year (default: this year)."""
    summary = await service.get_year_to_date(employee_id, year)
    return YearToDateResponse.model_validate(summary)
