"""
Result models for materialization, reconciliation and sweeps.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from trip_recurrence.models.enums import BulkAction, OutcomeStatus, PatternStatus
from trip_recurrence.models.occurrence import Occurrence
from trip_recurrence.models.recurrence import RecurrencePattern


class OccurrenceOutcome(BaseModel):
    """What happened to one occurrence during materialization."""

    sequence_index: int
    scheduled_date: date
    start_datetime: datetime
    status: OutcomeStatus
    trip_id: Optional[UUID] = None
    attempts: int = 0
    error: Optional[str] = None


class MaterializationResult(BaseModel):
    """Per-occurrence outcomes of a materialize() call."""

    pattern_id: UUID
    dry_run: bool = False
    outcomes: list[OccurrenceOutcome] = Field(default_factory=list)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @computed_field
    @property
    def created_count(self) -> int:
        return self._count(OutcomeStatus.CREATED)

    @computed_field
    @property
    def failed_count(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def created_trip_ids(self) -> list[UUID]:
        return [
            outcome.trip_id
            for outcome in self.outcomes
            if outcome.status == OutcomeStatus.CREATED and outcome.trip_id
        ]

    @property
    def is_complete(self) -> bool:
        """True when no occurrence ended in FAILED."""
        return self.failed_count == 0


class ReconcileSummary(BaseModel):
    """Outcome of reconciling one pattern's future trips."""

    pattern_id: UUID
    reference_date: date
    desired_count: int = 0
    created: int = 0
    cancelled: int = 0
    failed: int = 0
    cancelled_trip_ids: list[UUID] = Field(default_factory=list)
    outcomes: list[OccurrenceOutcome] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PatternSweepResult(BaseModel):
    """One pattern's line in a sweep report."""

    pattern_id: UUID
    title: str
    status: str
    created: int = 0
    cancelled: int = 0
    error: Optional[str] = None


class SweepResult(BaseModel):
    """Report of a reconcile sweep across all active patterns."""

    reference_date: date
    skipped: bool = False
    processed: int = 0
    errors: int = 0
    created: int = 0
    cancelled: int = 0
    patterns: list[PatternSweepResult] = Field(default_factory=list)


class PatternStatistics(BaseModel):
    """Trip counts and rates for one pattern."""

    pattern_id: UUID
    computed_status: str
    frequency_description: str
    total_trips: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    upcoming_scheduled: int = 0
    overdue: int = 0
    completion_rate: float = 0.0
    cancellation_rate: float = 0.0
    next_trip_at: Optional[datetime] = None


class PatternChangeResult(BaseModel):
    """A pattern after a create/update, with the reconcile it triggered."""

    pattern: RecurrencePattern
    reconcile: ReconcileSummary


class PatternPreview(BaseModel):
    """Upcoming occurrences of a pattern."""

    pattern_id: UUID
    frequency_description: str
    status: PatternStatus
    occurrences: list[Occurrence] = Field(default_factory=list)


class BulkRequest(BaseModel):
    """Apply one action to many patterns."""

    action: BulkAction
    ids: list[UUID] = Field(..., min_length=1, max_length=100)


class BulkResult(BaseModel):
    action: BulkAction
    succeeded: list[UUID] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
