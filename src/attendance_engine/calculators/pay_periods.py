"""Semi-monthly pay periods.

Period A covers calendar days 1-15, period B covers day 16 through the end of
the month, both inclusive, in the employees' local civil calendar. Period ids
have the form ``YYYY-MM-A`` / ``YYYY-MM-B``.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

PERIOD_A_LAST_DAY = 15

_PERIOD_ID_RE = re.compile(r"^(\d{4})-(\d{2})-([AB])$")


class InvalidPayPeriodError(ValueError):
    """Raised when a pay period id cannot be parsed."""

    def __init__(self, pay_period_id: str):
        self.pay_period_id = pay_period_id
        super().__init__(
            f"Invalid pay period id '{pay_period_id}' (expected YYYY-MM-A or YYYY-MM-B)"
        )


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A semi-monthly pay period."""

    year: int
    month: int
    half: str  # "A" or "B"

    @property
    def pay_period_id(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.half}"

    @property
    def start_date(self) -> date:
        day = 1 if self.half == "A" else PERIOD_A_LAST_DAY + 1
        return date(self.year, self.month, day)

    @property
    def end_date(self) -> date:
        if self.half == "A":
            return date(self.year, self.month, PERIOD_A_LAST_DAY)
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    @property
    def label(self) -> str:
        """Human label, e.g. 'March 2024 - Period A (1st-15th)'."""
        month_name = calendar.month_name[self.month]
        span = "1st-15th" if self.half == "A" else "16th-End"
        return f"{month_name} {self.year} - Period {self.half} ({span})"

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def previous(self) -> PayPeriod:
        if self.half == "B":
            return PayPeriod(self.year, self.month, "A")
        if self.month == 1:
            return PayPeriod(self.year - 1, 12, "B")
        return PayPeriod(self.year, self.month - 1, "B")

    def next(self) -> PayPeriod:
        if self.half == "A":
            return PayPeriod(self.year, self.month, "B")
        if self.month == 12:
            return PayPeriod(self.year + 1, 1, "A")
        return PayPeriod(self.year, self.month + 1, "A")

    def utc_bounds(self, tz: tzinfo) -> tuple[datetime, datetime]:
        """Half-open instant range [start-of-first-day, start-of-day-after-end)."""
        return local_date_range_bounds(self.start_date, self.end_date, tz)


def pay_period_for_date(day: date) -> PayPeriod:
    """The pay period containing a civil date."""
    half = "A" if day.day <= PERIOD_A_LAST_DAY else "B"
    return PayPeriod(day.year, day.month, half)


def current_pay_period(now: datetime, tz: tzinfo) -> PayPeriod:
    """The pay period containing ``now`` in the local calendar."""
    return pay_period_for_date(now.astimezone(tz).date())


def parse_pay_period_id(pay_period_id: str) -> PayPeriod:
    """Parse ``YYYY-MM-A|B`` into a PayPeriod."""
    match = _PERIOD_ID_RE.match(pay_period_id)
    if match is None:
        raise InvalidPayPeriodError(pay_period_id)
    year, month, half = int(match.group(1)), int(match.group(2)), match.group(3)
    if not 1 <= month <= 12:
        raise InvalidPayPeriodError(pay_period_id)
    return PayPeriod(year, month, half)


def pay_periods_in_year(year: int) -> list[PayPeriod]:
    """All 24 pay periods of a calendar year, in order."""
    return [PayPeriod(year, month, half) for month in range(1, 13) for half in ("A", "B")]


def local_date_range_bounds(
    start_date: date, end_date: date, tz: tzinfo
) -> tuple[datetime, datetime]:
    """UTC-comparable instants bounding an inclusive local date range."""
    start = datetime.combine(start_date, time.min, tzinfo=tz)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz)
    return start, end
