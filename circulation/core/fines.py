"""
    Due date and late fee arithmetic.

    Everything here is pure: no session, no clock. Callers pass the
    evaluation date explicitly so results are reproducible.
"""

import datetime
from decimal import Decimal, ROUND_HALF_UP
from circulation.configs import MIN_LOAN_DAYS, MAX_LOAN_DAYS
from circulation.core.exceptions import InvalidDurationError

CENTS = Decimal("0.01")


def as_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def days_overdue(due_date, as_of) -> int:
    return max(0, (as_date(as_of) - as_date(due_date)).days)


def compute_late_fee(due_date, as_of, per_day_rate) -> Decimal:
    """max(0, days(as_of - due_date)) * per_day_rate, zero when on time."""
    return to_money(days_overdue(due_date, as_of) * to_money(per_day_rate))


def is_overdue(loan, as_of) -> bool:
    return bool(loan.is_issued) and as_date(as_of) > as_date(loan.due_date)


def validate_duration(days: int) -> int:
    if not isinstance(days, int) or isinstance(days, bool) \
            or not MIN_LOAN_DAYS <= days <= MAX_LOAN_DAYS:
        raise InvalidDurationError(
            f"Duration must be between {MIN_LOAN_DAYS} and {MAX_LOAN_DAYS} days.",
            duration_days=days,
        )
    return days


def due_date_for(start, days: int) -> datetime.date:
    return as_date(start) + datetime.timedelta(days=validate_duration(days))
