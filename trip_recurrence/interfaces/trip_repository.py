"""
Trip repository interface.

Defines contract for trip persistence operations. Implementations must
enforce uniqueness of (pattern_id, sequence_index) among active trips at the
storage level and report violations as ConflictError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from trip_recurrence.models.enums import CancellationReason, TripStatus
from trip_recurrence.models.trip import Trip, TripCreate


class ITripRepository(ABC):
    """Abstract interface for trip persistence."""

    @abstractmethod
    async def create(self, data: TripCreate) -> Trip:
        """Create a trip.

        Raises:
            ConflictError: an active trip already holds the idempotency key.
            InfrastructureError: the write failed and may be retried.
        """
        pass

    @abstractmethod
    async def get(self, trip_id: UUID) -> Optional[Trip]:
        """Get a trip by ID."""
        pass

    @abstractmethod
    async def list_for_pattern(
        self,
        pattern_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[Iterable[TripStatus]] = None,
    ) -> list[Trip]:
        """List a pattern's trips ordered by scheduled time (dates inclusive)."""
        pass

    @abstractmethod
    async def cancel(self, trip_id: UUID, reason: CancellationReason) -> Optional[Trip]:
        """Cancel a trip only if it is still scheduled.

        Returns the cancelled trip, or None when the trip is missing or has
        already left the scheduled state.
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        trip_id: UUID,
        status: TripStatus,
        reason: Optional[CancellationReason] = None,
    ) -> Trip:
        """Advance a trip's status (dispatch workflow / manual cancellation).

        Raises:
            NotFoundError: unknown trip.
            BusinessLogicError: the transition is not allowed.
        """
        pass

    @abstractmethod
    async def count_by_status(self, pattern_id: UUID) -> dict[TripStatus, int]:
        """Count a pattern's trips per status."""
        pass
