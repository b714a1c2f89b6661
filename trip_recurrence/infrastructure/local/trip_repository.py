"""
SQLite implementation of trip repository.

The partial unique index on (pattern_id, sequence_index) rejects a second
active trip for the same occurrence; that rejection surfaces as ConflictError.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trip_recurrence.core.exceptions import (
    BusinessLogicError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
)
from trip_recurrence.infrastructure.local.database import TripORM, get_session_factory
from trip_recurrence.interfaces.trip_repository import ITripRepository
from trip_recurrence.models.enums import CancellationReason, TripStatus
from trip_recurrence.models.trip import Trip, TripCreate

_ALLOWED_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.SCHEDULED: {TripStatus.IN_PROGRESS, TripStatus.CANCELLED},
    TripStatus.IN_PROGRESS: {TripStatus.COMPLETED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}


class SqliteTripRepository(ITripRepository):
    """SQLite implementation of trip repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TripORM) -> Trip:
        """Convert ORM object to Pydantic model."""
        return Trip.model_validate(orm, from_attributes=True)

    async def create(self, data: TripCreate) -> Trip:
        """Create a trip, rejecting a duplicate idempotency key."""
        async with self._session_factory() as session:
            orm = TripORM(
                id=str(uuid4()),
                pattern_id=str(data.pattern_id) if data.pattern_id else None,
                sequence_index=data.sequence_index,
                title=data.title,
                rider_id=data.rider_id,
                rider_name=data.rider_name,
                rider_phone=data.rider_phone,
                rider_email=data.rider_email,
                pickup_location=data.pickup_location.model_dump(),
                dropoff_location=data.dropoff_location.model_dump(),
                scheduled_date=data.scheduled_date,
                scheduled_datetime=data.scheduled_datetime,
                duration_minutes=data.duration_minutes,
                status=TripStatus.SCHEDULED.value,
                assigned_driver=data.assigned_driver,
                assigned_vehicle=data.assigned_vehicle,
                notes=data.notes,
                priority=data.priority.value,
                tags=list(data.tags),
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    f"Active trip already exists for pattern {data.pattern_id} "
                    f"sequence {data.sequence_index}",
                    pattern_id=data.pattern_id,
                    sequence_index=data.sequence_index,
                ) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise InfrastructureError(f"Failed to persist trip: {exc}") from exc
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, trip_id: UUID) -> Optional[Trip]:
        """Get a trip by ID."""
        async with self._session_factory() as session:
            result = await session.execute(select(TripORM).where(TripORM.id == str(trip_id)))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list_for_pattern(
        self,
        pattern_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[Iterable[TripStatus]] = None,
    ) -> list[Trip]:
        """List a pattern's trips ordered by scheduled time."""
        async with self._session_factory() as session:
            conditions = [TripORM.pattern_id == str(pattern_id)]
            if start_date is not None:
                conditions.append(TripORM.scheduled_date >= start_date)
            if end_date is not None:
                conditions.append(TripORM.scheduled_date <= end_date)
            if statuses is not None:
                conditions.append(TripORM.status.in_([status.value for status in statuses]))

            query = (
                select(TripORM)
                .where(and_(*conditions))
                .order_by(TripORM.scheduled_datetime, TripORM.sequence_index)
            )
            try:
                result = await session.execute(query)
            except SQLAlchemyError as exc:
                raise InfrastructureError(f"Failed to list trips: {exc}") from exc
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def cancel(self, trip_id: UUID, reason: CancellationReason) -> Optional[Trip]:
        """Cancel a trip only while it is still scheduled."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    update(TripORM)
                    .where(
                        and_(
                            TripORM.id == str(trip_id),
                            TripORM.status == TripStatus.SCHEDULED.value,
                        )
                    )
                    .values(
                        status=TripStatus.CANCELLED.value,
                        cancellation_reason=reason.value,
                        updated_at=datetime.utcnow(),
                    )
                )
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise InfrastructureError(f"Failed to cancel trip {trip_id}: {exc}") from exc

            if result.rowcount == 0:
                return None
            refreshed = await session.execute(select(TripORM).where(TripORM.id == str(trip_id)))
            return self._orm_to_model(refreshed.scalar_one())

    async def update_status(
        self,
        trip_id: UUID,
        status: TripStatus,
        reason: Optional[CancellationReason] = None,
    ) -> Trip:
        """Advance a trip along its lifecycle."""
        async with self._session_factory() as session:
            result = await session.execute(select(TripORM).where(TripORM.id == str(trip_id)))
            orm = result.scalar_one_or_none()
            if not orm:
                raise NotFoundError(f"Trip {trip_id} not found")

            current = TripStatus(orm.status)
            if status not in _ALLOWED_TRANSITIONS[current]:
                raise BusinessLogicError(
                    f"Trip {trip_id} cannot move from {current.value} to {status.value}"
                )

            orm.status = status.value
            if status == TripStatus.CANCELLED:
                orm.cancellation_reason = (reason or CancellationReason.MANUAL).value
            orm.updated_at = datetime.utcnow()
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def count_by_status(self, pattern_id: UUID) -> dict[TripStatus, int]:
        """Count a pattern's trips per status."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TripORM.status, func.count(TripORM.id))
                .where(TripORM.pattern_id == str(pattern_id))
                .group_by(TripORM.status)
            )
            counts = {status: 0 for status in TripStatus}
            for status_value, count in result.all():
                counts[TripStatus(status_value)] = count
            return counts
