"""Abstract interfaces for infrastructure abstraction."""

from trip_recurrence.interfaces.holiday_calendar import IHolidayCalendar, IHolidayRepository
from trip_recurrence.interfaces.pattern_repository import IPatternRepository
from trip_recurrence.interfaces.trip_repository import ITripRepository

__all__ = [
    "IHolidayCalendar",
    "IHolidayRepository",
    "IPatternRepository",
    "ITripRepository",
]
