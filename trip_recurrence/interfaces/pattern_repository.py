"""
Recurrence pattern repository interface.

Defines contract for pattern persistence operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from trip_recurrence.models.recurrence import (
    RecurrencePattern,
    RecurrencePatternCreate,
    RecurrencePatternUpdate,
)


class IPatternRepository(ABC):
    """Abstract interface for recurrence pattern persistence."""

    @abstractmethod
    async def create(self, data: RecurrencePatternCreate) -> RecurrencePattern:
        """Create a new recurrence pattern."""
        pass

    @abstractmethod
    async def get(self, pattern_id: UUID) -> Optional[RecurrencePattern]:
        """Get a pattern by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        rider_id: Optional[str] = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RecurrencePattern]:
        """List patterns, newest first."""
        pass

    @abstractmethod
    async def update(self, pattern_id: UUID, update: RecurrencePatternUpdate) -> RecurrencePattern:
        """Update a pattern. Raises NotFoundError / ValidationError."""
        pass

    @abstractmethod
    async def delete(self, pattern_id: UUID) -> bool:
        """Delete a pattern record. Trips keep their pattern_id."""
        pass
