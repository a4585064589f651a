"""Effective-dated hourly pay rate resolution."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_engine.errors import NotFoundError
from attendance_engine.models.payroll import PayRate


class RateNotFoundError(NotFoundError):
    """Raised when no pay rate is active for an employee on a date."""

    def __init__(self, employee_id: UUID, as_of_date: date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__("PayRate", f"for employee {employee_id} on {as_of_date}")


class RateResolver:
    """Resolves the hourly pay rate of an employee.

    Rate selection:
    1. Effective date range must include as_of_date
    2. Higher priority wins
    3. Later start_date breaks ties (most recent raise applies)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_rate_for_employee(self, employee_id: UUID, as_of_date: date) -> Decimal:
        """Resolve the hourly rate active on a date.

        Raises:
            RateNotFoundError: If no rate is active on as_of_date
        """
        rates = await self._get_candidate_rates(employee_id, as_of_date)
        best = select_rate(rates, as_of_date)
        if best is None:
            raise RateNotFoundError(employee_id, as_of_date)
        return best.amount

    async def _get_candidate_rates(
        self,
        employee_id: UUID,
        as_of_date: date,
    ) -> list[PayRate]:
        """Get all candidate rates for an employee effective on a date."""
        result = await self.session.execute(
            select(PayRate).where(
                PayRate.employee_id == employee_id,
                PayRate.start_date <= as_of_date,
                (PayRate.end_date.is_(None) | (PayRate.end_date >= as_of_date)),
            )
        )
        return list(result.scalars().all())


def select_rate(rates: list[PayRate], as_of_date: date) -> PayRate | None:
    """Pick the winning rate among candidates active on as_of_date."""
    active = [r for r in rates if r.is_active_on(as_of_date)]
    if not active:
        return None
    return max(active, key=lambda r: (r.priority, r.start_date, str(r.pay_rate_id)))
