"""
Calendar Utilities for the Vacation Planner

Day enumeration and weekend classification over plain calendar dates.
No time component is ever involved, so there is no timezone drift.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Union


DATE_FORMAT = "%Y-%m-%d"

# date.weekday(): Monday == 0 .. Sunday == 6
WEEKEND_DAYS = (5, 6)


def parse_date(value: Union[str, date]) -> date:
    """Parse an ISO "YYYY-MM-DD" string into a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, DATE_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class Period:
    """Planning window, start..end inclusive"""
    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


def default_period(today: Optional[date] = None) -> Period:
    """1 May to 31 August of the current year"""
    year = (today or date.today()).year
    return Period(date(year, 5, 1), date(year, 8, 31))


def enumerate_days(period: Period) -> List[date]:
    """
    Return every day from period.start to period.end inclusive.

    An inverted period yields an empty list instead of raising, since
    callers treat it as "nothing to plan".
    """
    if period.is_empty:
        return []
    count = (period.end - period.start).days + 1
    return [period.start + timedelta(days=offset) for offset in range(count)]


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def weekend_days(period: Period) -> List[date]:
    """Saturdays and Sundays of the period in ascending order"""
    return [day for day in enumerate_days(period) if is_weekend(day)]
