"""
Recurring trip API endpoints.
"""

import asyncio
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from trip_recurrence.api.deps import (
    AppSettings,
    Materializer,
    PatternRepo,
    Reconciler,
    Today,
    TripRepo,
)
from trip_recurrence.core.exceptions import (
    BusinessLogicError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    RecurrenceError,
    ValidationError,
)
from trip_recurrence.core.logger import setup_logger
from trip_recurrence.models.enums import BulkAction, TripStatus
from trip_recurrence.models.recurrence import (
    RecurrencePattern,
    RecurrencePatternCreate,
    RecurrencePatternUpdate,
)
from trip_recurrence.models.schedule import (
    BulkRequest,
    BulkResult,
    MaterializationResult,
    PatternChangeResult,
    PatternPreview,
    PatternStatistics,
    ReconcileSummary,
)
from trip_recurrence.models.trip import Trip
from trip_recurrence.services.pattern_analytics import build_statistics
from trip_recurrence.services.recurrence_engine import describe_frequency, pattern_status, preview
from trip_recurrence.utils.datetime_utils import get_local_now

logger = setup_logger(__name__)

router = APIRouter()

_STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: 422,
    ConflictError: status.HTTP_409_CONFLICT,
    BusinessLogicError: status.HTTP_409_CONFLICT,
    InfrastructureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: RecurrenceError) -> HTTPException:
    """Map a domain error onto an HTTP error response."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


async def _get_pattern_or_404(repo: PatternRepo, pattern_id: UUID) -> RecurrencePattern:
    pattern = await repo.get(pattern_id)
    if not pattern:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"RecurrencePattern {pattern_id} not found",
        )
    return pattern


@router.post("", response_model=PatternChangeResult, status_code=status.HTTP_201_CREATED)
async def create_recurring_trip(
    payload: RecurrencePatternCreate,
    repo: PatternRepo,
    reconciler: Reconciler,
    today: Today,
) -> PatternChangeResult:
    """Create a recurrence pattern and materialize its upcoming trips."""
    created = await repo.create(payload)
    try:
        summary = await reconciler.reconcile(created.id, today)
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc
    return PatternChangeResult(pattern=created, reconcile=summary)


@router.get("", response_model=list[RecurrencePattern])
async def list_recurring_trips(
    repo: PatternRepo,
    rider_id: Optional[str] = Query(None, description="Filter by rider"),
    include_inactive: bool = Query(False, description="Include inactive patterns"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> list[RecurrencePattern]:
    """List recurrence patterns."""
    return await repo.list(
        rider_id=rider_id,
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


@router.post("/bulk", response_model=BulkResult)
async def bulk_update_recurring_trips(
    payload: BulkRequest,
    repo: PatternRepo,
    reconciler: Reconciler,
    today: Today,
) -> BulkResult:
    """Activate, deactivate or delete many patterns at once."""

    async def apply(pattern_id: UUID) -> None:
        if payload.action == BulkAction.DELETE:
            await reconciler.delete(pattern_id, today)
            return
        await repo.update(
            pattern_id,
            RecurrencePatternUpdate(is_active=payload.action == BulkAction.ACTIVATE),
        )
        await reconciler.reconcile(pattern_id, today)

    unique_ids = list(dict.fromkeys(payload.ids))
    outcomes = await asyncio.gather(
        *(apply(pattern_id) for pattern_id in unique_ids), return_exceptions=True
    )

    result = BulkResult(action=payload.action)
    for pattern_id, outcome in zip(unique_ids, outcomes):
        if isinstance(outcome, RecurrenceError):
            result.failed[str(pattern_id)] = outcome.message
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.succeeded.append(pattern_id)
    logger.info(
        f"Bulk {payload.action.value}: succeeded={len(result.succeeded)} failed={len(result.failed)}"
    )
    return result


@router.get("/{pattern_id}", response_model=RecurrencePattern)
async def get_recurring_trip(
    pattern_id: UUID,
    repo: PatternRepo,
) -> RecurrencePattern:
    """Get a recurrence pattern by ID."""
    return await _get_pattern_or_404(repo, pattern_id)


@router.patch("/{pattern_id}", response_model=PatternChangeResult)
async def update_recurring_trip(
    pattern_id: UUID,
    update: RecurrencePatternUpdate,
    repo: PatternRepo,
    reconciler: Reconciler,
    today: Today,
) -> PatternChangeResult:
    """Update a pattern and reconcile its future trips."""
    try:
        updated = await repo.update(pattern_id, update)
        summary = await reconciler.reconcile(pattern_id, today)
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc
    return PatternChangeResult(pattern=updated, reconcile=summary)


@router.delete("/{pattern_id}", response_model=ReconcileSummary)
async def delete_recurring_trip(
    pattern_id: UUID,
    reconciler: Reconciler,
    today: Today,
) -> ReconcileSummary:
    """Cancel a pattern's future scheduled trips, then delete the pattern."""
    try:
        return await reconciler.delete(pattern_id, today)
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{pattern_id}/preview", response_model=PatternPreview)
async def preview_recurring_trip(
    pattern_id: UUID,
    repo: PatternRepo,
    materializer: Materializer,
    settings: AppSettings,
    today: Today,
    count: int = Query(10, ge=1, le=50, description="Number of occurrences to return"),
    from_date: Optional[date] = Query(None, description="Defaults to today"),
) -> PatternPreview:
    """Preview the next occurrences of a pattern without creating anything."""
    pattern = await _get_pattern_or_404(repo, pattern_id)
    start = from_date or today
    lookahead_end = start + timedelta(days=settings.PREVIEW_LOOKAHEAD_DAYS)
    exclusions = await materializer.exclusions_for(pattern, lookahead_end)
    try:
        occurrences = preview(
            pattern,
            start,
            count,
            exclusions,
            lookahead_days=settings.PREVIEW_LOOKAHEAD_DAYS,
        )
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc
    return PatternPreview(
        pattern_id=pattern.id,
        frequency_description=describe_frequency(pattern.rule),
        status=pattern_status(pattern, today, exclusions),
        occurrences=occurrences,
    )


@router.post("/{pattern_id}/generate", response_model=MaterializationResult)
async def generate_trips(
    pattern_id: UUID,
    repo: PatternRepo,
    materializer: Materializer,
    settings: AppSettings,
    today: Today,
    horizon_days: Optional[int] = Query(None, ge=1, le=90, description="Generate trips for the next N days"),
    dry_run: bool = Query(False, description="Report what would be created without writing"),
) -> MaterializationResult:
    """Manually materialize a pattern's trips up to a horizon."""
    pattern = await _get_pattern_or_404(repo, pattern_id)
    if not pattern.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"RecurrencePattern {pattern_id} is inactive",
        )
    horizon = horizon_days or settings.MATERIALIZATION_HORIZON_DAYS
    try:
        return await materializer.materialize(
            pattern,
            horizon_end=today + timedelta(days=horizon),
            today=today,
            dry_run=dry_run,
        )
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{pattern_id}/reconcile", response_model=ReconcileSummary)
async def reconcile_recurring_trip(
    pattern_id: UUID,
    reconciler: Reconciler,
    today: Today,
) -> ReconcileSummary:
    """Bring a pattern's future trips in line with the pattern."""
    try:
        return await reconciler.reconcile(pattern_id, today)
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{pattern_id}/trips", response_model=list[Trip])
async def list_pattern_trips(
    pattern_id: UUID,
    repo: PatternRepo,
    trip_repo: TripRepo,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    trip_status: Optional[list[TripStatus]] = Query(None, alias="status"),
) -> list[Trip]:
    """List trips generated from a pattern."""
    await _get_pattern_or_404(repo, pattern_id)
    try:
        return await trip_repo.list_for_pattern(
            pattern_id,
            start_date=start_date,
            end_date=end_date,
            statuses=trip_status,
        )
    except RecurrenceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{pattern_id}/analytics", response_model=PatternStatistics)
async def get_pattern_analytics(
    pattern_id: UUID,
    repo: PatternRepo,
    trip_repo: TripRepo,
    materializer: Materializer,
    settings: AppSettings,
) -> PatternStatistics:
    """Trip counts and completion rates for a pattern."""
    pattern = await _get_pattern_or_404(repo, pattern_id)
    trips = await trip_repo.list_for_pattern(pattern_id)
    now = get_local_now(settings.TIMEZONE)
    exclusions = await materializer.exclusions_for(pattern, now.date())
    return build_statistics(pattern, trips, now, exclusions)
