"""
Trip models.

Trips are materialized occurrences consumed by dispatch. Rider and location
fields are snapshots taken when the trip is created.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from trip_recurrence.models.enums import (
    ACTIVE_TRIP_STATUSES,
    AUTOMATIC_CANCELLATION_REASONS,
    CancellationReason,
    TripPriority,
    TripStatus,
)
from trip_recurrence.models.recurrence import Location


class TripBase(BaseModel):
    """Base trip fields shared across create/read."""

    pattern_id: Optional[UUID] = Field(None, description="Source pattern (None for ad hoc trips)")
    sequence_index: Optional[int] = Field(None, ge=0)
    title: str = Field(..., min_length=1, max_length=200)
    rider_id: str = Field(..., min_length=1, max_length=100)
    rider_name: Optional[str] = Field(None, max_length=200)
    rider_phone: Optional[str] = Field(None, max_length=50)
    rider_email: Optional[str] = Field(None, max_length=255)
    pickup_location: Location
    dropoff_location: Location
    scheduled_date: date
    scheduled_datetime: datetime
    duration_minutes: int = Field(30, ge=1)
    assigned_driver: Optional[str] = Field(None, max_length=100)
    assigned_vehicle: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=4000)
    priority: TripPriority = TripPriority.NORMAL
    tags: list[str] = Field(default_factory=list)


class TripCreate(TripBase):
    """Create a new trip."""

    pass


class Trip(TripBase):
    """Trip with status and metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: TripStatus = TripStatus.SCHEDULED
    cancellation_reason: Optional[CancellationReason] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TRIP_STATUSES

    @property
    def cancelled_by_reconcile(self) -> bool:
        return (
            self.status == TripStatus.CANCELLED
            and self.cancellation_reason in AUTOMATIC_CANCELLATION_REASONS
        )
