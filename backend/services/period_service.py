"""
period_service.py - Budget period math
Maps (reference date, month start day) onto one "budget month". Pure
functions only: no clock, no store. Period ends are inclusive everywhere.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from errors import ValidationError

# Settings accept 1..28 so every month has the start day. The math below
# clamps to the month length and still tiles the calendar for 29..31.
MIN_START_DAY = 1
MAX_START_DAY = 28
_MATH_MAX_START_DAY = 31


@dataclass(frozen=True)
class BudgetPeriod:
    start: date
    end: date  # inclusive
    start_day: int

    @property
    def month_key(self) -> str:
        """First-of-month key of the calendar month the period starts in, e.g. '2024-01-01'."""
        return self.start.replace(day=1).isoformat()

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, value) -> bool:
        d = parse_date(value)
        return self.start <= d <= self.end

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "month": self.month_key,
            "start_day": self.start_day,
        }


def parse_date(value) -> date:
    """Accept a date, datetime or ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD") from e
    raise ValidationError(f"Invalid date: {value!r}")


def validate_month_start_day(value, upper: int = MAX_START_DAY) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"month_start_day must be an integer, got {value!r}")
    if not MIN_START_DAY <= value <= upper:
        raise ValidationError(f"month_start_day must be between {MIN_START_DAY} and {upper}, got {value}")
    return value


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _anchor(year: int, month: int, start_day: int) -> date:
    """The start day inside a given calendar month, clamped to its last day."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(start_day, last))


def _period_starting(year: int, month: int, start_day: int) -> BudgetPeriod:
    next_year, next_month = _shift_month(year, month, 1)
    start = _anchor(year, month, start_day)
    end = _anchor(next_year, next_month, start_day) - timedelta(days=1)
    return BudgetPeriod(start=start, end=end, start_day=start_day)


def budget_period(reference_date, month_start_day: int) -> BudgetPeriod:
    """
    The budget period containing `reference_date`.

    With month_start_day == 1 this is the calendar month. Otherwise a period
    runs from `month_start_day` of one month to the day before it in the next;
    a reference day before the start day belongs to the period that began in
    the previous calendar month.

    Example:
        budget_period("2024-02-10", 15) -> 2024-01-15 .. 2024-02-14
        budget_period("2024-02-20", 15) -> 2024-02-15 .. 2024-03-14
    """
    start_day = validate_month_start_day(month_start_day, upper=_MATH_MAX_START_DAY)
    ref = parse_date(reference_date)
    year, month = ref.year, ref.month
    if ref < _anchor(year, month, start_day):
        year, month = _shift_month(year, month, -1)
    return _period_starting(year, month, start_day)


def period_for_month(month_key: str, month_start_day: int) -> BudgetPeriod:
    """The period whose month key is `month_key` ('YYYY-MM' or 'YYYY-MM-DD')."""
    start_day = validate_month_start_day(month_start_day, upper=_MATH_MAX_START_DAY)
    try:
        year, month = (int(part) for part in str(month_key).split("-")[:2])
        date(year, month, 1)
    except ValueError as e:
        raise ValidationError(f"Invalid month: {month_key!r}, expected YYYY-MM") from e
    return _period_starting(year, month, start_day)


def next_period(period: BudgetPeriod) -> BudgetPeriod:
    year, month = _shift_month(period.start.year, period.start.month, 1)
    return _period_starting(year, month, period.start_day)


def previous_period(period: BudgetPeriod) -> BudgetPeriod:
    year, month = _shift_month(period.start.year, period.start.month, -1)
    return _period_starting(year, month, period.start_day)
