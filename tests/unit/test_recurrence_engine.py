"""
Tests for recurrence expansion.
"""

from datetime import date, datetime, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from trip_recurrence.core.exceptions import ValidationError
from trip_recurrence.models.enums import CustomUnit, PatternStatus, Weekday
from trip_recurrence.models.recurrence import CustomRule, DailyRule, MonthlyRule, WeeklyRule
from trip_recurrence.services.recurrence_engine import (
    describe_frequency,
    expand,
    pattern_status,
    preview,
    validate_pattern,
)


def _dates(occurrences):
    return [occurrence.scheduled_date for occurrence in occurrences]


def _indexes(occurrences):
    return [occurrence.sequence_index for occurrence in occurrences]


class TestDaily:
    """Tests for DAILY rules."""

    def test_every_day_in_window(self, make_pattern):
        pattern = make_pattern(rule=DailyRule(), start_date=date(2025, 1, 6))
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 15))

        assert len(result) == 10
        assert _indexes(result) == list(range(10))
        assert all(
            later.scheduled_date - earlier.scheduled_date == timedelta(days=1)
            for earlier, later in zip(result, result[1:])
        )

    def test_start_datetime_combines_date_and_time(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        first = expand(pattern, date(2025, 1, 6), date(2025, 1, 6))[0]

        assert first.start_datetime == datetime(2025, 1, 6, 9, 0)
        assert first.pattern_id == pattern.id

    def test_sequence_index_is_stable_across_windows(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        full = expand(pattern, date(2025, 1, 6), date(2025, 1, 20))
        partial = expand(pattern, date(2025, 1, 10), date(2025, 1, 12))

        assert _indexes(partial) == [4, 5, 6]
        assert partial == full[4:7]

    def test_same_inputs_same_output(self, make_pattern):
        pattern = make_pattern(skip_holidays=True)
        exclusions = frozenset({date(2025, 1, 8)})

        first = expand(pattern, date(2025, 1, 6), date(2025, 2, 6), exclusions)
        second = expand(pattern, date(2025, 1, 6), date(2025, 2, 6), exclusions)

        assert first == second

    def test_skip_weekends_drops_saturday_and_sunday(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), skip_weekends=True)
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 19))

        assert len(result) == 10
        assert all(day.weekday() < 5 for day in _dates(result))
        assert _indexes(result) == list(range(10))


class TestWeekly:
    """Tests for WEEKLY rules."""

    def test_monday_wednesday_with_holiday(self, make_pattern):
        """Holiday on a selected weekday is dropped; the window ends before the next Monday."""
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=[Weekday.MONDAY, Weekday.WEDNESDAY]),
            start_date=date(2025, 1, 6),
            end_date=date(2025, 1, 17),
            skip_holidays=True,
        )
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 17), frozenset({date(2025, 1, 15)}))

        assert _dates(result) == [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13)]
        assert _indexes(result) == [0, 1, 2]

    def test_exclusions_ignored_when_not_skipping_holidays(self, make_pattern):
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=["mon", "wed"]),
            start_date=date(2025, 1, 6),
            end_date=date(2025, 1, 17),
            skip_holidays=False,
        )
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 17), frozenset({date(2025, 1, 15)}))

        assert date(2025, 1, 15) in _dates(result)

    def test_exactly_the_selected_weekdays(self, make_pattern):
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=[Weekday.TUESDAY, Weekday.THURSDAY]),
            start_date=date(2025, 2, 1),
        )
        result = expand(pattern, date(2025, 2, 1), date(2025, 2, 28))

        expected = [
            date(2025, 2, 1) + timedelta(days=offset)
            for offset in range(28)
            if (date(2025, 2, 1) + timedelta(days=offset)).weekday() in (1, 3)
        ]
        assert _dates(result) == expected
        assert len(result) == 8

    def test_starts_on_first_selected_day_after_start(self, make_pattern):
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=[Weekday.MONDAY, Weekday.WEDNESDAY]),
            start_date=date(2025, 1, 7),
        )
        result = expand(pattern, date(2025, 1, 1), date(2025, 1, 13))

        assert _dates(result) == [date(2025, 1, 8), date(2025, 1, 13)]


class TestMonthly:
    """Tests for MONTHLY rules."""

    def test_day_31_clamps_to_month_end(self, make_pattern):
        pattern = make_pattern(rule=MonthlyRule(day_of_month=31), start_date=date(2025, 1, 31))
        result = expand(pattern, date(2025, 1, 31), date(2025, 4, 30))

        assert _dates(result) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]

    def test_leap_february(self, make_pattern):
        pattern = make_pattern(rule=MonthlyRule(day_of_month=31), start_date=date(2024, 1, 31))
        result = expand(pattern, date(2024, 1, 1), date(2024, 3, 31))

        assert _dates(result) == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_first_month_skipped_when_day_already_passed(self, make_pattern):
        pattern = make_pattern(rule=MonthlyRule(day_of_month=10), start_date=date(2025, 1, 15))
        result = expand(pattern, date(2025, 1, 1), date(2025, 3, 31))

        assert _dates(result) == [date(2025, 2, 10), date(2025, 3, 10)]
        assert _indexes(result) == [0, 1]

    def test_crosses_year_boundary(self, make_pattern):
        pattern = make_pattern(rule=MonthlyRule(day_of_month=15), start_date=date(2024, 11, 1))
        result = expand(pattern, date(2024, 11, 1), date(2025, 2, 1))

        assert _dates(result) == [date(2024, 11, 15), date(2024, 12, 15), date(2025, 1, 15)]


class TestCustom:
    """Tests for CUSTOM rules."""

    def test_every_three_days(self, make_pattern):
        pattern = make_pattern(rule=CustomRule(interval=3), start_date=date(2025, 1, 6))
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 15))

        assert _dates(result) == [
            date(2025, 1, 6),
            date(2025, 1, 9),
            date(2025, 1, 12),
            date(2025, 1, 15),
        ]

    def test_every_two_weeks(self, make_pattern):
        pattern = make_pattern(
            rule=CustomRule(interval=2, unit=CustomUnit.WEEKS), start_date=date(2025, 1, 6)
        )
        result = expand(pattern, date(2025, 1, 6), date(2025, 2, 10))

        assert _dates(result) == [date(2025, 1, 6), date(2025, 1, 20), date(2025, 2, 3)]

    def test_monthly_interval_is_anchored_on_start_date(self, make_pattern):
        """Clamping to Feb 28 must not pull later months back to the 28th."""
        pattern = make_pattern(
            rule=CustomRule(interval=1, unit=CustomUnit.MONTHS), start_date=date(2025, 1, 31)
        )
        result = expand(pattern, date(2025, 1, 1), date(2025, 5, 31))

        assert _dates(result) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
            date(2025, 5, 31),
        ]


class TestTermination:
    """Tests for end_date, max_occurrences and window bounds."""

    def test_max_occurrences_counts_surviving_only(self, make_pattern):
        pattern = make_pattern(
            start_date=date(2025, 1, 4),  # Saturday
            skip_weekends=True,
            max_occurrences=3,
        )
        result = expand(pattern, date(2025, 1, 1), date(2025, 1, 31))

        assert _dates(result) == [date(2025, 1, 6), date(2025, 1, 7), date(2025, 1, 8)]

    def test_skipped_holiday_does_not_consume_an_occurrence(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), skip_holidays=True, max_occurrences=3)
        result = expand(pattern, date(2025, 1, 6), date(2025, 1, 31), frozenset({date(2025, 1, 7)}))

        assert _dates(result) == [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 9)]

    def test_end_date_stops_expansion(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), end_date=date(2025, 1, 8))
        result = expand(pattern, date(2025, 1, 1), date(2025, 1, 31))

        assert _dates(result) == [date(2025, 1, 6), date(2025, 1, 7), date(2025, 1, 8)]

    def test_max_reached_before_window(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), max_occurrences=3)

        assert expand(pattern, date(2025, 1, 20), date(2025, 1, 31)) == []

    def test_window_before_start(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))

        assert expand(pattern, date(2024, 12, 1), date(2024, 12, 31)) == []

    def test_inverted_window(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))

        assert expand(pattern, date(2025, 1, 10), date(2025, 1, 9)) == []

    def test_expansion_near_date_max_terminates(self, make_pattern):
        pattern = make_pattern(rule=CustomRule(interval=365), start_date=date(9999, 1, 1))

        assert _dates(expand(pattern, date(9999, 1, 1), date.max)) == [date(9999, 1, 1)]


class TestValidation:
    """Structurally invalid patterns are rejected before expansion."""

    def test_empty_weekday_set_rejected_by_model(self):
        with pytest.raises(PydanticValidationError):
            WeeklyRule(days_of_week=[])

    def test_day_of_month_out_of_range_rejected_by_model(self):
        with pytest.raises(PydanticValidationError):
            MonthlyRule(day_of_month=32)

    @pytest.mark.parametrize(
        "rule",
        [
            WeeklyRule.model_construct(days_of_week=frozenset()),
            MonthlyRule.model_construct(day_of_month=0),
            MonthlyRule.model_construct(day_of_month=32),
            CustomRule.model_construct(interval=0, unit=CustomUnit.DAYS),
        ],
    )
    def test_unvalidated_rule_raises_before_expansion(self, make_pattern, rule):
        pattern = make_pattern().model_copy(update={"rule": rule})

        with pytest.raises(ValidationError):
            expand(pattern, date(2025, 1, 1), date(2025, 1, 31))

    def test_start_after_end_raises(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6)).model_copy(
            update={"end_date": date(2025, 1, 1)}
        )

        with pytest.raises(ValidationError):
            validate_pattern(pattern)

    def test_valid_pattern_passes(self, make_pattern):
        validate_pattern(make_pattern(rule=WeeklyRule(days_of_week=["fri"])))


class TestPreview:
    """Tests for the next-N preview."""

    def test_next_occurrences_from_date(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6))
        result = preview(pattern, date(2025, 1, 10), 3)

        assert _dates(result) == [date(2025, 1, 10), date(2025, 1, 11), date(2025, 1, 12)]
        assert _indexes(result) == [4, 5, 6]

    def test_fully_filtered_pattern_returns_empty(self, make_pattern):
        pattern = make_pattern(
            rule=WeeklyRule(days_of_week=[Weekday.SATURDAY, Weekday.SUNDAY]),
            skip_weekends=True,
        )

        assert preview(pattern, date(2025, 1, 6), 5) == []

    def test_zero_count(self, make_pattern):
        assert preview(make_pattern(), date(2025, 1, 6), 0) == []

    def test_lookahead_limits_search(self, make_pattern):
        pattern = make_pattern(rule=MonthlyRule(day_of_month=1), start_date=date(2025, 1, 1))
        result = preview(pattern, date(2025, 1, 2), 5, lookahead_days=40)

        assert _dates(result) == [date(2025, 2, 1)]


class TestDescribeFrequency:
    """Tests for human-readable rule descriptions."""

    @pytest.mark.parametrize(
        "rule, expected",
        [
            (DailyRule(), "Daily"),
            (WeeklyRule(days_of_week=["wed", "mon"]), "Weekly (Monday, Wednesday)"),
            (MonthlyRule(day_of_month=31), "Monthly (day 31)"),
            (CustomRule(interval=1, unit=CustomUnit.WEEKS), "Every week"),
            (CustomRule(interval=2, unit=CustomUnit.DAYS), "Every 2 days"),
            (CustomRule(interval=3, unit=CustomUnit.MONTHS), "Every 3 months"),
        ],
    )
    def test_description(self, rule, expected):
        assert describe_frequency(rule) == expected


class TestPatternStatus:
    """Tests for computed pattern status."""

    def test_inactive(self, make_pattern):
        pattern = make_pattern(is_active=False)
        assert pattern_status(pattern, date(2025, 1, 10)) == PatternStatus.INACTIVE

    def test_pending_before_start(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 2, 1))
        assert pattern_status(pattern, date(2025, 1, 10)) == PatternStatus.PENDING

    def test_expired_after_end(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), end_date=date(2025, 1, 8))
        assert pattern_status(pattern, date(2025, 1, 9)) == PatternStatus.EXPIRED

    def test_completed_when_max_used_up(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), max_occurrences=3)
        assert pattern_status(pattern, date(2025, 1, 10)) == PatternStatus.COMPLETED

    def test_active(self, make_pattern):
        pattern = make_pattern(start_date=date(2025, 1, 6), max_occurrences=10)
        assert pattern_status(pattern, date(2025, 1, 10)) == PatternStatus.ACTIVE
