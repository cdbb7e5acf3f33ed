"""
Working-day calendar.

A working day is Monday-Friday and not a registered holiday. `working_days` is
pure; `DbHolidayLookup` reads the holiday table so callers can build the
holiday set for the years a request spans.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Protocol, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.holiday import Holiday

HALF_DAY = Decimal("0.5")

# ISO weekday numbers for Saturday and Sunday
WEEKEND_ISO_DAYS = (6, 7)


class HolidayLookup(Protocol):
    def is_holiday(self, day: date) -> bool:
        ...

    def all_for(self, year: int) -> Set[date]:
        ...


def is_weekend(day: date) -> bool:
    return day.isoweekday() in WEEKEND_ISO_DAYS


def working_days(start: date, end: date, holidays: Iterable[date]) -> Decimal:
    """
    Count working days in the inclusive range [start, end].

    Saturdays, Sundays and any date in `holidays` are excluded. Returns a whole
    number as Decimal; 0 when the range holds no working day (or start > end).
    """
    holiday_set = set(holidays)
    count = 0
    current = start
    while current <= end:
        if not is_weekend(current) and current not in holiday_set:
            count += 1
        current += timedelta(days=1)
    return Decimal(count)


def _same_day_in_year(day: date, year: int):
    """Recurring holiday projected into `year`; Feb 29 is skipped in non-leap years."""
    try:
        return day.replace(year=year)
    except ValueError:
        return None


class DbHolidayLookup:
    """Holiday lookup backed by the `holidays` table (active rows only)."""

    def __init__(self, db: Session):
        self.db = db
        self._cache = {}

    def all_for(self, year: int) -> Set[date]:
        if year in self._cache:
            return self._cache[year]
        rows = (
            self.db.query(Holiday)
            .filter(
                Holiday.active == True,  # noqa: E712
                or_(Holiday.year == year, Holiday.is_recurring == True),  # noqa: E712
            )
            .all()
        )
        days: Set[date] = set()
        for row in rows:
            if row.is_recurring:
                projected = _same_day_in_year(row.date, year)
                if projected is not None:
                    days.add(projected)
            elif row.date.year == year:
                days.add(row.date)
        self._cache[year] = days
        return days

    def is_holiday(self, day: date) -> bool:
        return day in self.all_for(day.year)


def holidays_between(lookup: HolidayLookup, start: date, end: date) -> Set[date]:
    """Union of the holiday sets of every year the range touches."""
    days: Set[date] = set()
    for year in range(start.year, end.year + 1):
        days |= lookup.all_for(year)
    return days


def count_leave_days(lookup: HolidayLookup, start: date, end: date, is_half_day: bool = False) -> Decimal:
    """
    Days a request consumes: 0.5 for a half-day on a working day, otherwise the
    working-day count. Callers treat 0 as NoWorkingDays.
    """
    working = working_days(start, end, holidays_between(lookup, start, end))
    if is_half_day:
        return HALF_DAY if working > 0 else Decimal(0)
    return working
