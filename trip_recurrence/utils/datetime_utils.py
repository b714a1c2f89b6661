"""
Timezone-aware datetime utilities.

Services never read the clock themselves; the API and the background
scheduler resolve "today" here and pass it down explicitly.
"""

import calendar
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def get_local_today(tz_name: str) -> date:
    """
    Get today's date in the given timezone.

    Args:
        tz_name: IANA timezone name (e.g., "America/Chicago")

    Returns:
        date: Today's date in that timezone

    Example:
        >>> get_local_today("Asia/Tokyo")  # When UTC is 2024-01-19 23:00
        date(2024, 1, 20)  # JST is 2024-01-20 08:00
    """
    tz = ZoneInfo(tz_name)
    return datetime.now(UTC).astimezone(tz).date()


def get_local_now(tz_name: str) -> datetime:
    """Current wall-clock time in the given timezone, as a naive datetime.

    Trip datetimes are stored naive in the operating timezone, so this is the
    value to compare them against.
    """
    return datetime.now(UTC).astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(anchor: date, months: int, day: int | None = None) -> date:
    """
    Shift a date by whole calendar months.

    The target day defaults to the anchor's day and is clamped to the last
    day of the resulting month (Jan 31 + 1 month = Feb 28/29).
    """
    month_index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    target_day = anchor.day if day is None else day
    return date(year, month, min(target_day, days_in_month(year, month)))
