"""
Tests for working-day counting (weekends, holidays, recurring holidays, half days)
"""
from datetime import date
from decimal import Decimal

from app.models.holiday import Holiday
from app.services.working_calendar import (
    DbHolidayLookup,
    count_leave_days,
    is_weekend,
    working_days,
)

# 2030-03-04 is a Monday
MON = date(2030, 3, 4)
WED = date(2030, 3, 6)
FRI = date(2030, 3, 8)
SAT = date(2030, 3, 9)
SUN = date(2030, 3, 10)
NEXT_MON = date(2030, 3, 11)


class StaticHolidays:
    def __init__(self, *days):
        self.days = set(days)

    def is_holiday(self, day):
        return day in self.days

    def all_for(self, year):
        return {d for d in self.days if d.year == year}


def test_weekdays_count_fully():
    assert working_days(MON, FRI, []) == Decimal(5)


def test_weekend_only_range_has_no_working_days():
    assert is_weekend(SAT) and is_weekend(SUN)
    assert working_days(SAT, SUN, []) == Decimal(0)


def test_holiday_midweek_is_excluded():
    assert working_days(MON, FRI, [WED]) == Decimal(4)


def test_range_across_weekend():
    assert working_days(MON, NEXT_MON, []) == Decimal(6)


def test_inverted_range_is_zero():
    assert working_days(FRI, MON, []) == Decimal(0)


def test_half_day_on_working_day():
    assert count_leave_days(StaticHolidays(), MON, MON, is_half_day=True) == Decimal("0.5")


def test_half_day_on_holiday_or_weekend_is_zero():
    assert count_leave_days(StaticHolidays(WED), WED, WED, is_half_day=True) == Decimal(0)
    assert count_leave_days(StaticHolidays(), SAT, SAT, is_half_day=True) == Decimal(0)


def test_range_spanning_two_years_uses_both_holiday_sets():
    # 2029-12-31 is a Monday, 2030-01-01 a Tuesday
    lookup = StaticHolidays(date(2030, 1, 1))
    assert count_leave_days(lookup, date(2029, 12, 31), date(2030, 1, 1)) == Decimal(1)


def test_db_lookup_reads_active_holidays_for_year(db):
    db.add_all([
        Holiday(year=2030, date=WED, name="Festival", active=True),
        Holiday(year=2030, date=FRI, name="Cancelled holiday", active=False),
        Holiday(year=2031, date=date(2031, 3, 5), name="Next year", active=True),
    ])
    db.commit()

    lookup = DbHolidayLookup(db)
    assert lookup.all_for(2030) == {WED}
    assert lookup.is_holiday(WED)
    assert not lookup.is_holiday(FRI)
    assert count_leave_days(lookup, MON, FRI) == Decimal(4)


def test_recurring_holiday_projects_into_every_year(db):
    db.add(Holiday(year=2020, date=date(2020, 3, 6), name="Founders Day", active=True, is_recurring=True))
    db.commit()

    lookup = DbHolidayLookup(db)
    assert WED in lookup.all_for(2030)
    assert date(2031, 3, 6) in lookup.all_for(2031)
    assert count_leave_days(lookup, MON, FRI) == Decimal(4)


def test_recurring_feb_29_skipped_in_non_leap_year(db):
    db.add(Holiday(year=2024, date=date(2024, 2, 29), name="Leap Day", active=True, is_recurring=True))
    db.commit()

    lookup = DbHolidayLookup(db)
    assert lookup.all_for(2030) == set()
    assert lookup.all_for(2032) == {date(2032, 2, 29)}
