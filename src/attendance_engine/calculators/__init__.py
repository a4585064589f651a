"""Attendance reconciliation calculators."""

from attendance_engine.calculators.anomaly_detector import AnomalyDetector
from attendance_engine.calculators.pay_periods import PayPeriod, current_pay_period, parse_pay_period_id
from attendance_engine.calculators.payroll_aggregator import PayrollAggregator
from attendance_engine.calculators.rate_resolver import RateNotFoundError, RateResolver
from attendance_engine.calculators.shift_matcher import ShiftMatcher

__all__ = [
    "AnomalyDetector",
    "PayPeriod",
    "current_pay_period",
    "parse_pay_period_id",
    "PayrollAggregator",
    "RateNotFoundError",
    "RateResolver",
    "ShiftMatcher",
]
