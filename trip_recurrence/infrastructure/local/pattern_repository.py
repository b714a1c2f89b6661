"""
SQLite implementation of recurrence pattern repository.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select

from trip_recurrence.core.exceptions import NotFoundError
from trip_recurrence.infrastructure.local.database import RecurrencePatternORM, get_session_factory
from trip_recurrence.interfaces.pattern_repository import IPatternRepository
from trip_recurrence.models.recurrence import (
    Location,
    RecurrencePattern,
    RecurrencePatternBase,
    RecurrencePatternCreate,
    RecurrencePatternUpdate,
    rule_from_fields,
    rule_to_fields,
)


class SqlitePatternRepository(IPatternRepository):
    """SQLite implementation of recurrence pattern repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _parse_time(self, value: str) -> time:
        return datetime.strptime(value, "%H:%M").time()

    def _format_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    def _columns(self, data: RecurrencePatternBase) -> dict[str, Any]:
        """Flatten a pattern into ORM column values."""
        columns: dict[str, Any] = {
            "title": data.title,
            "description": data.description,
            "rider_id": data.rider_id,
            "rider_name": data.rider_name,
            "rider_phone": data.rider_phone,
            "rider_email": data.rider_email,
            "pickup_location": data.pickup_location.model_dump(),
            "dropoff_location": data.dropoff_location.model_dump(),
            "start_date": data.start_date,
            "end_date": data.end_date,
            "start_time": self._format_time(data.start_time),
            "duration_minutes": data.duration_minutes,
            "max_occurrences": data.max_occurrences,
            "skip_weekends": data.skip_weekends,
            "skip_holidays": data.skip_holidays,
            "is_active": data.is_active,
            "assigned_driver": data.assigned_driver,
            "assigned_vehicle": data.assigned_vehicle,
            "notes": data.notes,
            "priority": data.priority.value,
            "tags": list(data.tags),
        }
        columns.update(rule_to_fields(data.rule))
        return columns

    def _orm_to_model(self, orm: RecurrencePatternORM) -> RecurrencePattern:
        """Convert ORM object to Pydantic model."""
        rule = rule_from_fields(
            orm.frequency,
            days_of_week=orm.days_of_week,
            day_of_month=orm.day_of_month,
            custom_interval=orm.custom_interval,
            custom_unit=orm.custom_unit,
        )
        return RecurrencePattern(
            id=UUID(orm.id),
            title=orm.title,
            description=orm.description,
            rider_id=orm.rider_id,
            rider_name=orm.rider_name,
            rider_phone=orm.rider_phone,
            rider_email=orm.rider_email,
            pickup_location=Location.model_validate(orm.pickup_location),
            dropoff_location=Location.model_validate(orm.dropoff_location),
            rule=rule,
            start_date=orm.start_date,
            end_date=orm.end_date,
            start_time=self._parse_time(orm.start_time),
            duration_minutes=orm.duration_minutes,
            max_occurrences=orm.max_occurrences,
            skip_weekends=bool(orm.skip_weekends),
            skip_holidays=bool(orm.skip_holidays),
            is_active=bool(orm.is_active),
            assigned_driver=orm.assigned_driver,
            assigned_vehicle=orm.assigned_vehicle,
            notes=orm.notes,
            priority=orm.priority,
            tags=orm.tags or [],
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def create(self, data: RecurrencePatternCreate) -> RecurrencePattern:
        """Create a new recurrence pattern."""
        async with self._session_factory() as session:
            orm = RecurrencePatternORM(id=str(uuid4()), **self._columns(data))
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, pattern_id: UUID) -> Optional[RecurrencePattern]:
        """Get a pattern by ID."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(RecurrencePatternORM).where(RecurrencePatternORM.id == str(pattern_id))
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(
        self,
        rider_id: Optional[str] = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RecurrencePattern]:
        """List patterns, newest first."""
        async with self._session_factory() as session:
            conditions = []
            if rider_id is not None:
                conditions.append(RecurrencePatternORM.rider_id == rider_id)
            if not include_inactive:
                conditions.append(RecurrencePatternORM.is_active.is_(True))

            query = select(RecurrencePatternORM)
            if conditions:
                query = query.where(and_(*conditions))
            query = query.order_by(RecurrencePatternORM.created_at.desc()).limit(limit).offset(offset)
            result = await session.execute(query)
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update(self, pattern_id: UUID, update: RecurrencePatternUpdate) -> RecurrencePattern:
        """Update a pattern; the merged result is validated as a whole."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(RecurrencePatternORM).where(RecurrencePatternORM.id == str(pattern_id))
            )
            orm = result.scalar_one_or_none()
            if not orm:
                raise NotFoundError(f"RecurrencePattern {pattern_id} not found")

            merged = self._orm_to_model(orm).with_update(update)
            for field, value in self._columns(merged).items():
                setattr(orm, field, value)

            orm.updated_at = datetime.utcnow()
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, pattern_id: UUID) -> bool:
        """Delete a pattern record."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(RecurrencePatternORM).where(RecurrencePatternORM.id == str(pattern_id))
            )
            orm = result.scalar_one_or_none()
            if not orm:
                return False

            await session.delete(orm)
            await session.commit()
            return True
