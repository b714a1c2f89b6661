"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from datetime import date
from enum import Enum


class Frequency(str, Enum):
    """Recurrence frequency (discriminator of a recurrence rule)."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


class CustomUnit(str, Enum):
    """Step unit for CUSTOM recurrence rules."""

    DAYS = "DAYS"
    WEEKS = "WEEKS"
    MONTHS = "MONTHS"


class Weekday(str, Enum):
    """Day of week. Declaration order matches date.weekday() (0=Monday)."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def number(self) -> int:
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_index(cls, value: int) -> "Weekday":
        return _WEEKDAY_ORDER[value]

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return _WEEKDAY_ORDER[day.weekday()]

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)


_WEEKDAY_ORDER = list(Weekday)


class TripStatus(str, Enum):
    """Materialized trip status."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses covered by the (pattern_id, sequence_index) unique index
ACTIVE_TRIP_STATUSES = (TripStatus.SCHEDULED, TripStatus.IN_PROGRESS)


class CancellationReason(str, Enum):
    """Why a trip was cancelled."""

    PATTERN_UPDATED = "pattern_updated"
    PATTERN_DEACTIVATED = "pattern_deactivated"
    MANUAL = "manual"


# Cancellations made by the reconciler; they do not block re-materialization
AUTOMATIC_CANCELLATION_REASONS = (
    CancellationReason.PATTERN_UPDATED,
    CancellationReason.PATTERN_DEACTIVATED,
)


class TripPriority(str, Enum):
    """Dispatch priority copied onto generated trips."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PatternStatus(str, Enum):
    """Computed status of a recurrence pattern on a given day."""

    INACTIVE = "inactive"
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"


class OutcomeStatus(str, Enum):
    """Per-occurrence materialization outcome."""

    CREATED = "created"
    EXISTING = "existing"
    CONFLICT = "conflict"
    FAILED = "failed"
    PLANNED = "planned"


class HolidaySource(str, Enum):
    """Origin of an exclusion date."""

    FEDERAL = "federal"
    CUSTOM = "custom"


class BulkAction(str, Enum):
    """Actions accepted by the bulk pattern endpoint."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DELETE = "delete"
