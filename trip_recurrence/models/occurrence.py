"""
Occurrence model.

An occurrence is one dated instance implied by a recurrence pattern. It is
derived on demand and never stored on its own.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Occurrence(BaseModel):
    """A single expanded occurrence of a pattern."""

    model_config = ConfigDict(frozen=True)

    pattern_id: UUID
    sequence_index: int = Field(..., ge=0, description="0-based, counted from the pattern start date")
    scheduled_date: date
    start_datetime: datetime

    @property
    def key(self) -> tuple[UUID, int]:
        """Idempotency key of the trip materialized from this occurrence."""
        return (self.pattern_id, self.sequence_index)
