"""
Holiday calendar interface.

Supplies exclusion dates to the recurrence engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from uuid import UUID

from trip_recurrence.models.holiday import Holiday, HolidayCreate


class IHolidayCalendar(ABC):
    """Abstract source of holiday dates."""

    @abstractmethod
    async def list_holidays(self, start: date, end: date) -> list[Holiday]:
        """Holidays between start and end (inclusive), ordered by date."""
        pass

    async def get_holiday_dates(self, start: date, end: date) -> frozenset[date]:
        """Exclusion set for the given range."""
        return frozenset(holiday.holiday_date for holiday in await self.list_holidays(start, end))


class IHolidayRepository(IHolidayCalendar):
    """Holiday calendar that also stores operator-defined holidays."""

    @abstractmethod
    async def create(self, data: HolidayCreate) -> Holiday:
        """Register a custom holiday."""
        pass

    @abstractmethod
    async def delete(self, holiday_id: UUID) -> bool:
        """Delete a custom holiday."""
        pass
