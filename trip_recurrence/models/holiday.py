"""
Holiday models used as exclusion dates.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from trip_recurrence.models.enums import HolidaySource


class HolidayCreate(BaseModel):
    """Register a custom holiday."""

    holiday_date: date
    name: str = Field(..., min_length=1, max_length=200)


class Holiday(BaseModel):
    """A holiday from the federal calendar or a custom entry."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    holiday_date: date
    name: str
    source: HolidaySource = HolidaySource.CUSTOM
