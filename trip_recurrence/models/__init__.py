"""Pydantic models (schemas) for the application."""

from trip_recurrence.models.enums import (
    CancellationReason,
    CustomUnit,
    Frequency,
    OutcomeStatus,
    PatternStatus,
    TripPriority,
    TripStatus,
    Weekday,
)
from trip_recurrence.models.holiday import Holiday, HolidayCreate
from trip_recurrence.models.occurrence import Occurrence
from trip_recurrence.models.recurrence import (
    CustomRule,
    DailyRule,
    Location,
    MonthlyRule,
    RecurrencePattern,
    RecurrencePatternCreate,
    RecurrencePatternUpdate,
    RecurrenceRule,
    WeeklyRule,
)
from trip_recurrence.models.schedule import (
    MaterializationResult,
    OccurrenceOutcome,
    ReconcileSummary,
    SweepResult,
)
from trip_recurrence.models.trip import Trip, TripCreate

__all__ = [
    # Enums
    "Frequency",
    "CustomUnit",
    "Weekday",
    "TripStatus",
    "CancellationReason",
    "TripPriority",
    "PatternStatus",
    "OutcomeStatus",
    # Patterns
    "DailyRule",
    "WeeklyRule",
    "MonthlyRule",
    "CustomRule",
    "RecurrenceRule",
    "Location",
    "RecurrencePattern",
    "RecurrencePatternCreate",
    "RecurrencePatternUpdate",
    # Occurrences and trips
    "Occurrence",
    "Trip",
    "TripCreate",
    # Holidays
    "Holiday",
    "HolidayCreate",
    # Results
    "OccurrenceOutcome",
    "MaterializationResult",
    "ReconcileSummary",
    "SweepResult",
]
