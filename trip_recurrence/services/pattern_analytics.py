"""
Per-pattern trip statistics.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import AbstractSet, Iterable

from trip_recurrence.models.enums import TripStatus
from trip_recurrence.models.recurrence import RecurrencePattern
from trip_recurrence.models.schedule import PatternStatistics
from trip_recurrence.models.trip import Trip
from trip_recurrence.services.recurrence_engine import describe_frequency, pattern_status


def _rate(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part / total * 100, 2)


def build_statistics(
    pattern: RecurrencePattern,
    trips: Iterable[Trip],
    now: datetime,
    exclusions: AbstractSet[date] = frozenset(),
) -> PatternStatistics:
    """Summarize a pattern's trips as of ``now`` (naive, pattern-local)."""
    trips = list(trips)
    by_status = {status.value: 0 for status in TripStatus}
    for trip in trips:
        by_status[trip.status.value] += 1

    scheduled = [trip for trip in trips if trip.status == TripStatus.SCHEDULED]
    upcoming = sorted(
        (trip for trip in scheduled if trip.scheduled_datetime >= now),
        key=lambda trip: trip.scheduled_datetime,
    )
    total = len(trips)

    return PatternStatistics(
        pattern_id=pattern.id,
        computed_status=pattern_status(pattern, now.date(), exclusions).value,
        frequency_description=describe_frequency(pattern.rule),
        total_trips=total,
        by_status=by_status,
        upcoming_scheduled=len(upcoming),
        overdue=len(scheduled) - len(upcoming),
        completion_rate=_rate(by_status[TripStatus.COMPLETED.value], total),
        cancellation_rate=_rate(by_status[TripStatus.CANCELLED.value], total),
        next_trip_at=upcoming[0].scheduled_datetime if upcoming else None,
    )
