"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the infrastructure
implementations and the scheduling services built on top of them.
"""

from datetime import date
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from trip_recurrence.core.config import Settings, get_settings
from trip_recurrence.interfaces.holiday_calendar import IHolidayRepository
from trip_recurrence.interfaces.pattern_repository import IPatternRepository
from trip_recurrence.interfaces.trip_repository import ITripRepository
from trip_recurrence.services.occurrence_materializer import OccurrenceMaterializer
from trip_recurrence.services.schedule_reconciler import ScheduleReconciler
from trip_recurrence.utils.datetime_utils import get_local_today


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_pattern_repository() -> IPatternRepository:
    """Get recurrence pattern repository instance."""
    from trip_recurrence.infrastructure.local.pattern_repository import SqlitePatternRepository
    return SqlitePatternRepository()


@lru_cache()
def get_trip_repository() -> ITripRepository:
    """Get trip repository instance."""
    from trip_recurrence.infrastructure.local.trip_repository import SqliteTripRepository
    return SqliteTripRepository()


@lru_cache()
def get_holiday_repository() -> IHolidayRepository:
    """Get holiday repository instance."""
    from trip_recurrence.infrastructure.local.holiday_repository import SqliteHolidayRepository
    return SqliteHolidayRepository()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_materializer() -> OccurrenceMaterializer:
    """Get the shared occurrence materializer."""
    return OccurrenceMaterializer(
        trip_repo=get_trip_repository(),
        holiday_calendar=get_holiday_repository(),
    )


@lru_cache()
def get_reconciler() -> ScheduleReconciler:
    """Get the shared reconciler; its per-pattern locks must be process-wide."""
    return ScheduleReconciler(
        pattern_repo=get_pattern_repository(),
        trip_repo=get_trip_repository(),
        materializer=get_materializer(),
    )


def get_today(settings: Annotated[Settings, Depends(get_settings)]) -> date:
    """Today's date in the operating timezone."""
    return get_local_today(settings.TIMEZONE)


# Type aliases for cleaner dependency injection
AppSettings = Annotated[Settings, Depends(get_settings)]
PatternRepo = Annotated[IPatternRepository, Depends(get_pattern_repository)]
TripRepo = Annotated[ITripRepository, Depends(get_trip_repository)]
HolidayRepo = Annotated[IHolidayRepository, Depends(get_holiday_repository)]
Materializer = Annotated[OccurrenceMaterializer, Depends(get_materializer)]
Reconciler = Annotated[ScheduleReconciler, Depends(get_reconciler)]
Today = Annotated[date, Depends(get_today)]
