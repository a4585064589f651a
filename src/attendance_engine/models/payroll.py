"""Pay rate model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from attendance_engine.models.base import Base, TimestampMixin


class PayRate(Base, TimestampMixin):
    """Effective-dated hourly pay rate of an employee."""

    __tablename__ = "pay_rate"

    pay_rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="pay_rate_amount_check"),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="pay_rate_dates_check"),
    )

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if rate is active on a given date."""
        if self.start_date > as_of_date:
            return False
        if self.end_date is not None and self.end_date < as_of_date:
            return False
        return True
