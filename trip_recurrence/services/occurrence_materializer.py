"""
Occurrence materializer.

Creates one trip per occurrence, exactly once. The trip table's unique index on
(pattern_id, sequence_index) over active trips is the source of truth; the
in-memory check here only avoids pointless inserts.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Iterable, Optional, Sequence

from trip_recurrence.core.config import get_settings
from trip_recurrence.core.exceptions import ConflictError, InfrastructureError
from trip_recurrence.core.logger import setup_logger
from trip_recurrence.interfaces.holiday_calendar import IHolidayCalendar
from trip_recurrence.interfaces.trip_repository import ITripRepository
from trip_recurrence.models.enums import OutcomeStatus
from trip_recurrence.models.occurrence import Occurrence
from trip_recurrence.models.recurrence import RecurrencePattern
from trip_recurrence.models.schedule import MaterializationResult, OccurrenceOutcome
from trip_recurrence.models.trip import Trip, TripCreate
from trip_recurrence.services.recurrence_engine import describe_frequency, expand

logger = setup_logger(__name__)


def build_trip_notes(pattern: RecurrencePattern) -> str:
    """Notes stamped onto every generated trip."""
    notes = []
    if pattern.notes:
        notes.append(pattern.notes)
    notes.append(f'Generated from recurring pattern: "{pattern.title}"')
    notes.append(f"Frequency: {describe_frequency(pattern.rule)}")

    options = []
    if pattern.skip_holidays:
        options.append("Skip Holidays")
    if pattern.skip_weekends:
        options.append("Skip Weekends")
    if options:
        notes.append(f"Options: {', '.join(options)}")
    return " | ".join(notes)


def build_trip(pattern: RecurrencePattern, occurrence: Occurrence) -> TripCreate:
    """Snapshot the pattern into a trip for one occurrence."""
    return TripCreate(
        pattern_id=pattern.id,
        sequence_index=occurrence.sequence_index,
        title=pattern.title,
        rider_id=pattern.rider_id,
        rider_name=pattern.rider_name,
        rider_phone=pattern.rider_phone,
        rider_email=pattern.rider_email,
        pickup_location=pattern.pickup_location,
        dropoff_location=pattern.dropoff_location,
        scheduled_date=occurrence.scheduled_date,
        scheduled_datetime=occurrence.start_datetime,
        duration_minutes=pattern.duration_minutes,
        assigned_driver=pattern.assigned_driver,
        assigned_vehicle=pattern.assigned_vehicle,
        notes=build_trip_notes(pattern),
        priority=pattern.priority,
        tags=list(pattern.tags),
    )


def find_covering_trip(occurrence: Occurrence, trips: Iterable[Trip]) -> Optional[Trip]:
    """The trip that already accounts for ``occurrence``, if any.

    A trip counts when it has the same sequence index and the same date and
    was not cancelled by the reconciler.
    """
    for trip in trips:
        if trip.sequence_index != occurrence.sequence_index:
            continue
        if trip.scheduled_date != occurrence.scheduled_date:
            continue
        if not trip.cancelled_by_reconcile:
            return trip
    return None


class OccurrenceMaterializer:
    """Turns occurrences into persisted trips."""

    def __init__(
        self,
        trip_repo: ITripRepository,
        holiday_calendar: IHolidayCalendar,
        max_attempts: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self._trip_repo = trip_repo
        self._holiday_calendar = holiday_calendar
        self._max_attempts = max(1, max_attempts or settings.MATERIALIZE_MAX_ATTEMPTS)
        self._retry_delay_seconds = (
            settings.MATERIALIZE_RETRY_DELAY_SECONDS
            if retry_delay_seconds is None
            else retry_delay_seconds
        )

    async def exclusions_for(self, pattern: RecurrencePattern, until: date) -> frozenset[date]:
        """Holiday dates from the pattern's start through ``until``."""
        if not pattern.skip_holidays or until < pattern.start_date:
            return frozenset()
        return await self._holiday_calendar.get_holiday_dates(pattern.start_date, until)

    async def materialize(
        self,
        pattern: RecurrencePattern,
        horizon_end: date,
        today: date,
        dry_run: bool = False,
    ) -> MaterializationResult:
        """
        Create trips for the pattern's occurrences in [today, horizon_end].

        Args:
            pattern: Pattern to materialize
            horizon_end: Last date (inclusive) to create trips for
            today: Reference date; nothing earlier is created
            dry_run: Report PLANNED outcomes instead of writing

        Returns:
            Per-occurrence outcomes
        """
        if not pattern.is_active or horizon_end < today:
            return MaterializationResult(pattern_id=pattern.id, dry_run=dry_run)

        exclusions = await self.exclusions_for(pattern, horizon_end)
        occurrences = expand(pattern, today, horizon_end, exclusions)
        existing = await self._trip_repo.list_for_pattern(pattern.id)
        return await self.materialize_occurrences(pattern, occurrences, existing, dry_run=dry_run)

    async def materialize_occurrences(
        self,
        pattern: RecurrencePattern,
        occurrences: Sequence[Occurrence],
        existing_trips: Iterable[Trip] = (),
        dry_run: bool = False,
    ) -> MaterializationResult:
        """Create trips for the given occurrences, skipping covered ones."""
        existing_trips = list(existing_trips)
        outcomes: list[OccurrenceOutcome] = []

        for occurrence in occurrences:
            covering = find_covering_trip(occurrence, existing_trips)
            if covering is not None:
                outcomes.append(
                    self._outcome(occurrence, OutcomeStatus.EXISTING, trip_id=covering.id)
                )
                continue
            if dry_run:
                outcomes.append(self._outcome(occurrence, OutcomeStatus.PLANNED))
                continue
            outcomes.append(await self._create_with_retry(pattern, occurrence))

        result = MaterializationResult(pattern_id=pattern.id, dry_run=dry_run, outcomes=outcomes)
        if result.created_count or result.failed_count:
            logger.info(
                f"Materialized pattern {pattern.id}: created={result.created_count} "
                f"failed={result.failed_count} total={len(outcomes)}"
            )
        return result

    def _outcome(
        self,
        occurrence: Occurrence,
        status: OutcomeStatus,
        trip_id=None,
        attempts: int = 0,
        error: Optional[str] = None,
    ) -> OccurrenceOutcome:
        return OccurrenceOutcome(
            sequence_index=occurrence.sequence_index,
            scheduled_date=occurrence.scheduled_date,
            start_datetime=occurrence.start_datetime,
            status=status,
            trip_id=trip_id,
            attempts=attempts,
            error=error,
        )

    async def _create_with_retry(
        self, pattern: RecurrencePattern, occurrence: Occurrence
    ) -> OccurrenceOutcome:
        data = build_trip(pattern, occurrence)
        attempts = 0
        while True:
            attempts += 1
            try:
                trip = await self._trip_repo.create(data)
            except ConflictError as e:
                # Another writer won the race for this occurrence
                logger.info(
                    f"Trip for pattern {pattern.id} sequence {occurrence.sequence_index} "
                    f"already exists, skipping"
                )
                return self._outcome(
                    occurrence, OutcomeStatus.CONFLICT, attempts=attempts, error=e.message
                )
            except InfrastructureError as e:
                if attempts >= self._max_attempts:
                    logger.error(
                        f"Giving up on pattern {pattern.id} sequence {occurrence.sequence_index} "
                        f"after {attempts} attempts: {e.message}"
                    )
                    return self._outcome(
                        occurrence, OutcomeStatus.FAILED, attempts=attempts, error=e.message
                    )
                logger.warning(
                    f"Attempt {attempts} to create trip for pattern {pattern.id} "
                    f"sequence {occurrence.sequence_index} failed: {e.message}"
                )
                await asyncio.sleep(self._retry_delay_seconds * attempts)
                continue

            logger.debug(f"Created trip {trip.id} for {occurrence.scheduled_date}")
            return self._outcome(
                occurrence, OutcomeStatus.CREATED, trip_id=trip.id, attempts=attempts
            )
