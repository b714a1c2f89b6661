"""
Unit tests for OccurrenceMaterializer with mocked repositories.
"""

from datetime import date, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from trip_recurrence.core.exceptions import ConflictError, InfrastructureError
from trip_recurrence.models.enums import CancellationReason, OutcomeStatus, TripStatus, Weekday
from trip_recurrence.models.recurrence import WeeklyRule
from trip_recurrence.models.trip import Trip
from trip_recurrence.services.occurrence_materializer import (
    OccurrenceMaterializer,
    build_trip,
    build_trip_notes,
    find_covering_trip,
)
from trip_recurrence.services.recurrence_engine import expand


def _trip_from(data, status=TripStatus.SCHEDULED, reason=None) -> Trip:
    return Trip(
        **data.model_dump(),
        id=uuid4(),
        status=status,
        cancellation_reason=reason,
        created_at=datetime(2025, 1, 1),
        updated_at=datetime(2025, 1, 1),
    )


@pytest.fixture
def trip_repo():
    repo = AsyncMock()
    repo.list_for_pattern.return_value = []
    repo.create.side_effect = lambda data: _trip_from(data)
    return repo


@pytest.fixture
def holiday_calendar():
    calendar = AsyncMock()
    calendar.get_holiday_dates.return_value = frozenset()
    return calendar


def _materializer(trip_repo, holiday_calendar, max_attempts=3):
    return OccurrenceMaterializer(
        trip_repo=trip_repo,
        holiday_calendar=holiday_calendar,
        max_attempts=max_attempts,
        retry_delay_seconds=0,
    )


class TestMaterialize:
    """Tests for materialize()."""

    async def test_creates_one_trip_per_occurrence(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 12), today=date(2025, 1, 6))

        assert result.created_count == 7
        assert trip_repo.create.await_count == 7
        created = [call.args[0] for call in trip_repo.create.await_args_list]
        assert [data.sequence_index for data in created] == list(range(7))
        assert all(data.pattern_id == pattern.id for data in created)

    async def test_skips_occurrences_with_existing_trips(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        occurrences = expand(pattern, date(2025, 1, 6), date(2025, 1, 8))
        trip_repo.list_for_pattern.return_value = [_trip_from(build_trip(pattern, occurrences[0]))]
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 8), today=date(2025, 1, 6))

        assert [outcome.status for outcome in result.outcomes] == [
            OutcomeStatus.EXISTING,
            OutcomeStatus.CREATED,
            OutcomeStatus.CREATED,
        ]

    async def test_inactive_pattern_creates_nothing(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(is_active=False)
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 12), today=date(2025, 1, 6))

        assert result.outcomes == []
        trip_repo.create.assert_not_awaited()

    async def test_dry_run_plans_without_writing(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(
            pattern, horizon_end=date(2025, 1, 8), today=date(2025, 1, 6), dry_run=True
        )

        assert result.dry_run is True
        assert [outcome.status for outcome in result.outcomes] == [OutcomeStatus.PLANNED] * 3
        trip_repo.create.assert_not_awaited()

    async def test_holidays_fetched_from_pattern_start(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=[Weekday.MONDAY, Weekday.WEDNESDAY]),
            start_date=date(2025, 1, 6),
            skip_holidays=True,
        )
        holiday_calendar.get_holiday_dates.return_value = frozenset({date(2025, 1, 8)})
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 15), today=date(2025, 1, 10))

        holiday_calendar.get_holiday_dates.assert_awaited_once_with(date(2025, 1, 6), date(2025, 1, 15))
        # 01-06 is index 0, 01-08 is dropped, so 01-13 is index 1
        assert [(o.scheduled_date, o.sequence_index) for o in result.outcomes] == [
            (date(2025, 1, 13), 1),
            (date(2025, 1, 15), 2),
        ]

    async def test_skip_holidays_off_does_not_query_calendar(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(skip_holidays=False)
        materializer = _materializer(trip_repo, holiday_calendar)

        await materializer.materialize(pattern, horizon_end=date(2025, 1, 8), today=date(2025, 1, 6))

        holiday_calendar.get_holiday_dates.assert_not_awaited()


class TestRetries:
    """Persistence failures are retried per occurrence."""

    async def test_transient_failure_is_retried(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        calls = {"count": 0}

        def flaky(data):
            calls["count"] += 1
            if calls["count"] == 1:
                raise InfrastructureError("database is locked")
            return _trip_from(data)

        trip_repo.create.side_effect = flaky
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 6), today=date(2025, 1, 6))

        assert result.outcomes[0].status == OutcomeStatus.CREATED
        assert result.outcomes[0].attempts == 2

    async def test_failure_after_max_attempts_is_reported_not_raised(
        self, make_pattern, trip_repo, holiday_calendar
    ):
        pattern = make_pattern(start_date=date(2025, 1, 6))

        def fail_first_day(data):
            if data.scheduled_date == date(2025, 1, 6):
                raise InfrastructureError("disk I/O error")
            return _trip_from(data)

        trip_repo.create.side_effect = fail_first_day
        materializer = _materializer(trip_repo, holiday_calendar, max_attempts=2)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 7), today=date(2025, 1, 6))

        first, second = result.outcomes
        assert first.status == OutcomeStatus.FAILED
        assert first.attempts == 2
        assert first.error == "disk I/O error"
        assert second.status == OutcomeStatus.CREATED
        assert result.is_complete is False

    async def test_conflict_is_reported_without_retry(self, make_pattern, trip_repo, holiday_calendar):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        trip_repo.create.side_effect = ConflictError("taken", pattern_id=pattern.id, sequence_index=0)
        materializer = _materializer(trip_repo, holiday_calendar)

        result = await materializer.materialize(pattern, horizon_end=date(2025, 1, 6), today=date(2025, 1, 6))

        assert result.outcomes[0].status == OutcomeStatus.CONFLICT
        assert trip_repo.create.await_count == 1


class TestCoveringTrip:
    """Which existing trips account for an occurrence."""

    def _occurrence(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        return pattern, expand(pattern, date(2025, 1, 7), date(2025, 1, 7))[0]

    def test_active_trip_with_same_index(self, make_pattern):
        pattern, occurrence = self._occurrence(make_pattern)
        trip = _trip_from(build_trip(pattern, occurrence), status=TripStatus.IN_PROGRESS)

        assert find_covering_trip(occurrence, [trip]) == trip

    def test_active_trip_on_another_date_does_not_cover(self, make_pattern):
        pattern, occurrence = self._occurrence(make_pattern)
        earlier = expand(pattern, date(2025, 1, 6), date(2025, 1, 6))[0]
        trip = _trip_from(
            build_trip(pattern, earlier).model_copy(update={"sequence_index": occurrence.sequence_index})
        )

        assert find_covering_trip(occurrence, [trip]) is None

    def test_completed_trip_on_same_date(self, make_pattern):
        pattern, occurrence = self._occurrence(make_pattern)
        trip = _trip_from(build_trip(pattern, occurrence), status=TripStatus.COMPLETED)

        assert find_covering_trip(occurrence, [trip]) == trip

    def test_manually_cancelled_trip_on_same_date(self, make_pattern):
        pattern, occurrence = self._occurrence(make_pattern)
        trip = _trip_from(
            build_trip(pattern, occurrence),
            status=TripStatus.CANCELLED,
            reason=CancellationReason.MANUAL,
        )

        assert find_covering_trip(occurrence, [trip]) == trip

    def test_reconcile_cancelled_trip_does_not_cover(self, make_pattern):
        pattern, occurrence = self._occurrence(make_pattern)
        trip = _trip_from(
            build_trip(pattern, occurrence),
            status=TripStatus.CANCELLED,
            reason=CancellationReason.PATTERN_DEACTIVATED,
        )

        assert find_covering_trip(occurrence, [trip]) is None


class TestTripSnapshot:
    """Tests for the trip built from a pattern."""

    def test_snapshot_fields(self, make_pattern):
        pattern = make_pattern(assigned_driver="driver-7", tags=["dialysis"], duration_minutes=45)
        occurrence = expand(pattern, date(2025, 1, 6), date(2025, 1, 6))[0]

        data = build_trip(pattern, occurrence)

        assert data.rider_id == pattern.rider_id
        assert data.pickup_location == pattern.pickup_location
        assert data.scheduled_datetime == datetime(2025, 1, 6, 9, 0)
        assert data.assigned_driver == "driver-7"
        assert data.duration_minutes == 45
        assert data.tags == ["dialysis"]

    def test_notes(self, make_pattern):
        pattern = make_pattern(
            title="Dialysis",
            notes="Use side entrance",
            rule=WeeklyRule(days_of_week=["mon", "wed"]),
            skip_holidays=True,
            skip_weekends=True,
        )

        assert build_trip_notes(pattern) == (
            'Use side entrance | Generated from recurring pattern: "Dialysis" | '
            "Frequency: Weekly (Monday, Wednesday) | Options: Skip Holidays, Skip Weekends"
        )

    def test_notes_without_options(self, make_pattern):
        pattern = make_pattern(title="Dialysis", skip_holidays=False)

        assert build_trip_notes(pattern) == 'Generated from recurring pattern: "Dialysis" | Frequency: Daily'
