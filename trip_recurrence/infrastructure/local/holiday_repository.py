"""
SQLite implementation of the holiday calendar.

Custom holidays live in the ``holidays`` table; US federal holidays are
computed on the fly when enabled.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError

from trip_recurrence.core.config import get_settings
from trip_recurrence.core.exceptions import ConflictError
from trip_recurrence.infrastructure.local.database import HolidayORM, get_session_factory
from trip_recurrence.interfaces.holiday_calendar import IHolidayRepository
from trip_recurrence.models.enums import HolidaySource
from trip_recurrence.models.holiday import Holiday, HolidayCreate
from trip_recurrence.utils.holidays import us_federal_holidays_in_range


class SqliteHolidayRepository(IHolidayRepository):
    """Custom holidays in SQLite, merged with the federal calendar."""

    def __init__(self, session_factory=None, include_federal: Optional[bool] = None):
        self._session_factory = session_factory or get_session_factory()
        if include_federal is None:
            include_federal = get_settings().INCLUDE_FEDERAL_HOLIDAYS
        self._include_federal = include_federal

    def _orm_to_model(self, orm: HolidayORM) -> Holiday:
        return Holiday(
            id=UUID(orm.id),
            holiday_date=orm.holiday_date,
            name=orm.name,
            source=HolidaySource.CUSTOM,
        )

    async def list_holidays(self, start: date, end: date) -> list[Holiday]:
        """Custom and (optionally) federal holidays in range, ordered by date."""
        if start > end:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(HolidayORM)
                .where(and_(HolidayORM.holiday_date >= start, HolidayORM.holiday_date <= end))
                .order_by(HolidayORM.holiday_date)
            )
            holidays = [self._orm_to_model(orm) for orm in result.scalars().all()]

        if self._include_federal:
            holidays.extend(
                Holiday(holiday_date=day, name=name, source=HolidaySource.FEDERAL)
                for day, name in us_federal_holidays_in_range(start, end).items()
            )
        return sorted(holidays, key=lambda holiday: (holiday.holiday_date, holiday.name))

    async def create(self, data: HolidayCreate) -> Holiday:
        """Register a custom holiday."""
        async with self._session_factory() as session:
            orm = HolidayORM(id=str(uuid4()), holiday_date=data.holiday_date, name=data.name)
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    f"Holiday '{data.name}' on {data.holiday_date} already exists"
                ) from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, holiday_id: UUID) -> bool:
        """Delete a custom holiday."""
        async with self._session_factory() as session:
            result = await session.execute(select(HolidayORM).where(HolidayORM.id == str(holiday_id)))
            orm = result.scalar_one_or_none()
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True
