"""
Recurrence expansion engine.

Turns a recurrence pattern plus a date window into ordered occurrences.
Everything in this module is pure: no clock reads and no I/O, so the same
inputs always give the same output and callers may run it concurrently.

Sequence indexes are counted over *surviving* occurrences from the pattern's
start date, so an occurrence keeps its index no matter which window it is
expanded in. Candidates dropped by the weekend / holiday filters do not
consume an index and do not count toward ``max_occurrences``.
"""

from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta
from typing import AbstractSet, Iterator

from trip_recurrence.core.exceptions import ValidationError
from trip_recurrence.models.enums import CustomUnit, PatternStatus, Weekday
from trip_recurrence.models.occurrence import Occurrence
from trip_recurrence.models.recurrence import (
    CustomRule,
    DailyRule,
    MonthlyRule,
    RecurrencePattern,
    WeeklyRule,
    sorted_weekdays,
)
from trip_recurrence.utils.datetime_utils import add_months

DEFAULT_PREVIEW_LOOKAHEAD_DAYS = 366

_NO_EXCLUSIONS: frozenset[date] = frozenset()


def validate_pattern(pattern: RecurrencePattern) -> None:
    """Raise ValidationError if the pattern cannot be expanded.

    Pydantic already rejects most of these on construction; this guards
    values built without validation (e.g. ``model_construct``) before any
    expansion work starts.
    """
    rule = pattern.rule
    if isinstance(rule, WeeklyRule):
        if not rule.days_of_week:
            raise ValidationError("Weekly pattern requires at least one day of week")
    elif isinstance(rule, MonthlyRule):
        if not 1 <= rule.day_of_month <= 31:
            raise ValidationError(
                f"day_of_month must be between 1 and 31, got {rule.day_of_month}"
            )
    elif isinstance(rule, CustomRule):
        if rule.interval < 1:
            raise ValidationError(f"Custom interval must be positive, got {rule.interval}")
    elif not isinstance(rule, DailyRule):
        raise ValidationError(f"Unsupported recurrence rule: {type(rule).__name__}")

    if pattern.end_date is not None and pattern.start_date > pattern.end_date:
        raise ValidationError(
            f"start_date {pattern.start_date} is after end_date {pattern.end_date}"
        )
    if pattern.max_occurrences is not None and pattern.max_occurrences < 1:
        raise ValidationError("max_occurrences must be at least 1")


# ===========================================
# Candidate generation
# ===========================================


def _candidates(pattern: RecurrencePattern) -> Iterator[date]:
    """Unfiltered, ascending candidate dates starting at the pattern's start date."""
    rule = pattern.rule
    start = pattern.start_date
    try:
        if isinstance(rule, DailyRule):
            current = start
            while True:
                yield current
                current += timedelta(days=1)

        elif isinstance(rule, WeeklyRule):
            weekdays = {day.number for day in rule.days_of_week}
            current = start
            while True:
                if current.weekday() in weekdays:
                    yield current
                current += timedelta(days=1)

        elif isinstance(rule, MonthlyRule):
            for offset in itertools.count():
                candidate = add_months(start, offset, day=rule.day_of_month)
                # The start month is skipped when its day has already passed
                if candidate >= start:
                    yield candidate

        elif isinstance(rule, CustomRule):
            if rule.unit == CustomUnit.MONTHS:
                for n in itertools.count():
                    yield add_months(start, n * rule.interval)
            else:
                days = rule.interval * (7 if rule.unit == CustomUnit.WEEKS else 1)
                step = timedelta(days=days)
                current = start
                while True:
                    yield current
                    current += step
    except (OverflowError, ValueError):
        # Ran past date.max
        return


def _is_dropped(
    pattern: RecurrencePattern, candidate: date, exclusions: AbstractSet[date]
) -> bool:
    if pattern.skip_weekends and Weekday.of(candidate).is_weekend:
        return True
    if pattern.skip_holidays and candidate in exclusions:
        return True
    return False


def _surviving(
    pattern: RecurrencePattern, exclusions: AbstractSet[date], until: date
) -> Iterator[tuple[int, date]]:
    """Yield (sequence_index, date) for surviving candidates up to ``until``."""
    limit = until if pattern.end_date is None else min(until, pattern.end_date)
    produced = 0
    for candidate in _candidates(pattern):
        if candidate > limit:
            return
        if pattern.max_occurrences is not None and produced >= pattern.max_occurrences:
            return
        if _is_dropped(pattern, candidate, exclusions):
            continue
        yield produced, candidate
        produced += 1


def _to_occurrence(pattern: RecurrencePattern, index: int, day: date) -> Occurrence:
    return Occurrence(
        pattern_id=pattern.id,
        sequence_index=index,
        scheduled_date=day,
        start_datetime=datetime.combine(day, pattern.start_time),
    )


# ===========================================
# Public API
# ===========================================


def expand(
    pattern: RecurrencePattern,
    window_start: date,
    window_end: date,
    exclusions: AbstractSet[date] = _NO_EXCLUSIONS,
) -> list[Occurrence]:
    """Expand a pattern into its occurrences within [window_start, window_end].

    Args:
        pattern: The recurrence pattern.
        window_start: First date (inclusive) to return occurrences for.
        window_end: Last date (inclusive) to consider.
        exclusions: Holiday dates, applied only when ``skip_holidays`` is set.
            Must cover ``pattern.start_date .. window_end`` for stable indexes.

    Returns:
        Occurrences in ascending date order.

    Raises:
        ValidationError: The pattern is structurally invalid.
    """
    validate_pattern(pattern)
    if window_start > window_end:
        return []
    return [
        _to_occurrence(pattern, index, day)
        for index, day in _surviving(pattern, exclusions, window_end)
        if day >= window_start
    ]


def preview(
    pattern: RecurrencePattern,
    from_date: date,
    count: int,
    exclusions: AbstractSet[date] = _NO_EXCLUSIONS,
    lookahead_days: int = DEFAULT_PREVIEW_LOOKAHEAD_DAYS,
) -> list[Occurrence]:
    """The next ``count`` occurrences on or after ``from_date``.

    The search stops after ``lookahead_days`` so that a pattern whose every
    candidate is filtered out still returns.
    """
    validate_pattern(pattern)
    if count <= 0:
        return []
    try:
        window_end = from_date + timedelta(days=lookahead_days)
    except OverflowError:
        window_end = date.max
    upcoming = (
        (index, day)
        for index, day in _surviving(pattern, exclusions, window_end)
        if day >= from_date
    )
    return [
        _to_occurrence(pattern, index, day)
        for index, day in itertools.islice(upcoming, count)
    ]


def describe_frequency(rule) -> str:
    """Human-readable description of a recurrence rule."""
    if isinstance(rule, DailyRule):
        return "Daily"
    if isinstance(rule, WeeklyRule):
        names = ", ".join(day.value.capitalize() for day in sorted_weekdays(rule.days_of_week))
        return f"Weekly ({names})"
    if isinstance(rule, MonthlyRule):
        return f"Monthly (day {rule.day_of_month})"
    if isinstance(rule, CustomRule):
        unit = rule.unit.value.lower()
        if rule.interval == 1:
            return f"Every {unit[:-1]}"
        return f"Every {rule.interval} {unit}"
    return str(getattr(rule, "frequency", rule))


def pattern_status(
    pattern: RecurrencePattern,
    today: date,
    exclusions: AbstractSet[date] = _NO_EXCLUSIONS,
) -> PatternStatus:
    """Computed status of a pattern as of ``today``."""
    if not pattern.is_active:
        return PatternStatus.INACTIVE
    if today < pattern.start_date:
        return PatternStatus.PENDING
    if pattern.end_date is not None and today > pattern.end_date:
        return PatternStatus.EXPIRED
    if pattern.max_occurrences is not None:
        past = sum(1 for _ in _surviving(pattern, exclusions, today - timedelta(days=1)))
        if past >= pattern.max_occurrences:
            return PatternStatus.COMPLETED
    return PatternStatus.ACTIVE
