"""
US federal holiday calculations.

Holidays fall on their calendar date; no observed-day shifting is applied.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date:
    """The n-th given weekday (0=Monday) of a month, n starting at 1."""
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + (n - 1) * 7)


def last_weekday_of_month(year: int, month: int, weekday: int) -> date:
    """The last given weekday (0=Monday) of a month."""
    last = date(year, month, calendar.monthrange(year, month)[1])
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def us_federal_holidays(year: int) -> dict[date, str]:
    """Federal holidays of a year keyed by date."""
    holidays = {
        date(year, 1, 1): "New Year's Day",
        nth_weekday_of_month(year, 1, calendar.MONDAY, 3): "Martin Luther King Jr. Day",
        nth_weekday_of_month(year, 2, calendar.MONDAY, 3): "Presidents' Day",
        last_weekday_of_month(year, 5, calendar.MONDAY): "Memorial Day",
        date(year, 7, 4): "Independence Day",
        nth_weekday_of_month(year, 9, calendar.MONDAY, 1): "Labor Day",
        nth_weekday_of_month(year, 10, calendar.MONDAY, 2): "Columbus Day",
        date(year, 11, 11): "Veterans Day",
        nth_weekday_of_month(year, 11, calendar.THURSDAY, 4): "Thanksgiving Day",
        date(year, 12, 25): "Christmas Day",
    }
    if year >= 2021:
        holidays[date(year, 6, 19)] = "Juneteenth National Independence Day"
    return holidays


def us_federal_holidays_in_range(start: date, end: date) -> dict[date, str]:
    """Federal holidays between start and end (inclusive)."""
    result: dict[date, str] = {}
    if start > end:
        return result
    for year in range(start.year, end.year + 1):
        for day, name in us_federal_holidays(year).items():
            if start <= day <= end:
                result[day] = name
    return dict(sorted(result.items()))
