"""
Schedule reconciler.

Brings a pattern's future trips in line with what the pattern currently
describes: cancels scheduled trips that are no longer wanted and hands the
gaps to the materializer. Trips dated before ``today`` and trips that have
left ``scheduled`` are never touched.
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from trip_recurrence.core.config import get_settings
from trip_recurrence.core.exceptions import NotFoundError, RecurrenceError
from trip_recurrence.core.logger import setup_logger
from trip_recurrence.interfaces.pattern_repository import IPatternRepository
from trip_recurrence.interfaces.trip_repository import ITripRepository
from trip_recurrence.models.enums import CancellationReason, TripStatus
from trip_recurrence.models.recurrence import RecurrencePattern
from trip_recurrence.models.schedule import PatternSweepResult, ReconcileSummary, SweepResult
from trip_recurrence.models.trip import Trip
from trip_recurrence.services.occurrence_materializer import OccurrenceMaterializer
from trip_recurrence.services.recurrence_engine import expand, preview

logger = setup_logger(__name__)

_SWEEP_PAGE_SIZE = 100


class PatternLockRegistry:
    """One asyncio.Lock per pattern id."""

    def __init__(self):
        self._locks: dict[UUID, asyncio.Lock] = {}

    def get(self, pattern_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(pattern_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pattern_id] = lock
        return lock


class ScheduleReconciler:
    """Reconciles future trips against their patterns."""

    def __init__(
        self,
        pattern_repo: IPatternRepository,
        trip_repo: ITripRepository,
        materializer: OccurrenceMaterializer,
        horizon_days: Optional[int] = None,
        locks: Optional[PatternLockRegistry] = None,
    ):
        self._pattern_repo = pattern_repo
        self._trip_repo = trip_repo
        self._materializer = materializer
        settings = get_settings()
        self._horizon_days = (
            settings.MATERIALIZATION_HORIZON_DAYS if horizon_days is None else horizon_days
        )
        self._lookahead_days = settings.PREVIEW_LOOKAHEAD_DAYS
        self._locks = locks or PatternLockRegistry()
        self._is_processing = False

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    async def reconcile(self, pattern_id: UUID, today: date) -> ReconcileSummary:
        """
        Reconcile one pattern's trips from ``today`` on.

        Raises:
            NotFoundError: The pattern no longer exists
        """
        async with self._locks.get(pattern_id):
            pattern = await self._pattern_repo.get(pattern_id)
            if not pattern:
                raise NotFoundError(f"RecurrencePattern {pattern_id} not found")
            return await self._reconcile_locked(pattern, today)

    async def retire(self, pattern_id: UUID, today: date) -> ReconcileSummary:
        """Cancel every future scheduled trip of a pattern that is about to be removed."""
        async with self._locks.get(pattern_id):
            return await self._retire_locked(pattern_id, today)

    async def delete(self, pattern_id: UUID, today: date) -> ReconcileSummary:
        """Cancel a pattern's future scheduled trips and delete the pattern.

        Both steps run under the pattern's lock.

        Raises:
            NotFoundError: The pattern no longer exists
        """
        async with self._locks.get(pattern_id):
            summary = await self._retire_locked(pattern_id, today)
            await self._pattern_repo.delete(pattern_id)
            logger.info(f"Deleted pattern {pattern_id}")
            return summary

    async def _retire_locked(self, pattern_id: UUID, today: date) -> ReconcileSummary:
        pattern = await self._pattern_repo.get(pattern_id)
        if not pattern:
            raise NotFoundError(f"RecurrencePattern {pattern_id} not found")
        summary = ReconcileSummary(pattern_id=pattern_id, reference_date=today)
        future_trips = await self._trip_repo.list_for_pattern(pattern_id, start_date=today)
        await self._cancel_unwanted(
            future_trips, set(), CancellationReason.PATTERN_DEACTIVATED, summary
        )
        logger.info(f"Retired pattern {pattern_id}: cancelled={summary.cancelled}")
        return summary

    async def _reconcile_locked(self, pattern: RecurrencePattern, today: date) -> ReconcileSummary:
        horizon_end = today + timedelta(days=self._horizon_days)
        future_trips = await self._trip_repo.list_for_pattern(pattern.id, start_date=today)
        summary = ReconcileSummary(pattern_id=pattern.id, reference_date=today)

        if pattern.is_active:
            # Cover every trip already on the books, not just the horizon
            window_end = max([horizon_end, *(trip.scheduled_date for trip in future_trips)])
            exclusions = await self._materializer.exclusions_for(pattern, window_end)
            desired = expand(pattern, today, window_end, exclusions)
            reason = CancellationReason.PATTERN_UPDATED
        else:
            desired = []
            reason = CancellationReason.PATTERN_DEACTIVATED

        summary.desired_count = len(desired)
        desired_keys = {(occurrence.sequence_index, occurrence.start_datetime) for occurrence in desired}
        await self._cancel_unwanted(future_trips, desired_keys, reason, summary)

        if pattern.is_active:
            if not desired and not await self._has_future_occurrence(pattern, today):
                warning = f"Pattern {pattern.id} has no occurrences on or after {today}"
                logger.warning(warning)
                summary.warnings.append(warning)

            to_create = [occurrence for occurrence in desired if occurrence.scheduled_date <= horizon_end]
            existing = await self._trip_repo.list_for_pattern(pattern.id)
            result = await self._materializer.materialize_occurrences(pattern, to_create, existing)
            summary.outcomes = result.outcomes
            summary.created = result.created_count
            summary.failed = result.failed_count

        logger.info(
            f"Reconciled pattern {pattern.id} as of {today}: desired={summary.desired_count} "
            f"created={summary.created} cancelled={summary.cancelled} failed={summary.failed}"
        )
        return summary

    async def _has_future_occurrence(self, pattern: RecurrencePattern, today: date) -> bool:
        lookahead_end = today + timedelta(days=self._lookahead_days)
        exclusions = await self._materializer.exclusions_for(pattern, lookahead_end)
        return bool(preview(pattern, today, 1, exclusions, lookahead_days=self._lookahead_days))

    async def _cancel_unwanted(
        self,
        trips: list[Trip],
        desired_keys: set,
        reason: CancellationReason,
        summary: ReconcileSummary,
    ) -> None:
        for trip in trips:
            if trip.status != TripStatus.SCHEDULED:
                continue
            if (trip.sequence_index, trip.scheduled_datetime) in desired_keys:
                continue
            cancelled = await self._trip_repo.cancel(trip.id, reason)
            if cancelled is None:
                logger.info(f"Trip {trip.id} left scheduled before it could be cancelled")
                continue
            summary.cancelled += 1
            summary.cancelled_trip_ids.append(trip.id)

    async def reconcile_all(self, today: date) -> SweepResult:
        """Reconcile every active pattern; one failing pattern does not stop the sweep."""
        if self._is_processing:
            logger.warning("Reconcile sweep already in progress, skipping")
            return SweepResult(reference_date=today, skipped=True)

        self._is_processing = True
        sweep = SweepResult(reference_date=today)
        try:
            offset = 0
            while True:
                patterns = await self._pattern_repo.list(limit=_SWEEP_PAGE_SIZE, offset=offset)
                for pattern in patterns:
                    sweep.patterns.append(await self._sweep_one(pattern, today))
                if len(patterns) < _SWEEP_PAGE_SIZE:
                    break
                offset += _SWEEP_PAGE_SIZE
        finally:
            self._is_processing = False

        sweep.processed = sum(1 for line in sweep.patterns if line.error is None)
        sweep.errors = sum(1 for line in sweep.patterns if line.error is not None)
        sweep.created = sum(line.created for line in sweep.patterns)
        sweep.cancelled = sum(line.cancelled for line in sweep.patterns)
        logger.info(
            f"Reconcile sweep for {today}: processed={sweep.processed} errors={sweep.errors} "
            f"created={sweep.created} cancelled={sweep.cancelled}"
        )
        return sweep

    async def _sweep_one(self, pattern: RecurrencePattern, today: date) -> PatternSweepResult:
        try:
            summary = await self.reconcile(pattern.id, today)
        except RecurrenceError as e:
            logger.error(f"Failed to reconcile pattern {pattern.id}: {e.message}")
            return PatternSweepResult(
                pattern_id=pattern.id, title=pattern.title, status="error", error=e.message
            )
        return PatternSweepResult(
            pattern_id=pattern.id,
            title=pattern.title,
            status="success",
            created=summary.created,
            cancelled=summary.cancelled,
        )
