"""
Holiday calendar API endpoints.
"""

from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from trip_recurrence.api.deps import HolidayRepo, Today
from trip_recurrence.core.exceptions import ConflictError
from trip_recurrence.models.holiday import Holiday, HolidayCreate

router = APIRouter()


@router.get("", response_model=list[Holiday])
async def list_holidays(
    repo: HolidayRepo,
    today: Today,
    start: Optional[date] = Query(None, description="Defaults to today"),
    end: Optional[date] = Query(None, description="Defaults to one year after start"),
) -> list[Holiday]:
    """List custom and federal holidays in a date range."""
    start = start or today
    end = end or start + timedelta(days=365)
    if end < start:
        raise HTTPException(
            status_code=422,
            detail="end must not be before start",
        )
    return await repo.list_holidays(start, end)


@router.post("", response_model=Holiday, status_code=status.HTTP_201_CREATED)
async def create_holiday(payload: HolidayCreate, repo: HolidayRepo) -> Holiday:
    """Register a custom holiday."""
    try:
        return await repo.create(payload)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message) from exc


@router.delete("/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holiday(holiday_id: UUID, repo: HolidayRepo):
    """Delete a custom holiday."""
    deleted = await repo.delete(holiday_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Holiday {holiday_id} not found",
        )
