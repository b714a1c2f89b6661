"""
Recurrence pattern models.

A pattern's frequency is a tagged variant: each rule type carries only the
fields that make sense for it, so a weekly rule without weekdays or a monthly
rule without a day cannot be constructed.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Any, Iterable, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from trip_recurrence.core.exceptions import ValidationError
from trip_recurrence.models.enums import CustomUnit, Frequency, TripPriority, Weekday


# ===========================================
# Weekday set conversion (edge formats -> canonical frozenset)
# ===========================================

_WEEKDAY_ALIASES: dict[str, Weekday] = {}
for _day in Weekday:
    _WEEKDAY_ALIASES[_day.value.lower()] = _day
    _WEEKDAY_ALIASES[_day.value[:3].lower()] = _day


def parse_weekday(value: Any) -> Weekday:
    """Parse a single weekday from an enum, a name/abbreviation or 0-6 (0=Monday)."""
    if isinstance(value, Weekday):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 6:
            return Weekday.from_index(value)
        raise ValueError(f"Weekday index out of range: {value}")
    if isinstance(value, str):
        day = _WEEKDAY_ALIASES.get(value.strip().lower())
        if day is not None:
            return day
    raise ValueError(f"Unrecognized weekday: {value!r}")


def parse_weekday_set(value: Any) -> frozenset[Weekday]:
    """Normalize any accepted weekday representation to a frozenset.

    Accepts an iterable of names / indexes, a single name, or a checkbox map
    such as ``{"monday": True, "tuesday": False}``.
    """
    if value is None:
        return frozenset()
    if isinstance(value, dict):
        return frozenset(parse_weekday(key) for key, checked in value.items() if checked)
    if isinstance(value, (str, int, Weekday)):
        return frozenset({parse_weekday(value)})
    return frozenset(parse_weekday(item) for item in value)


def sorted_weekdays(days: Iterable[Weekday]) -> list[Weekday]:
    return sorted(days, key=lambda day: day.number)


def weekday_flags(days: Iterable[Weekday]) -> dict[str, bool]:
    """Checkbox representation of a weekday set."""
    selected = set(days)
    return {day.value.lower(): day in selected for day in Weekday}


# ===========================================
# Recurrence rules
# ===========================================


class DailyRule(BaseModel):
    """Every calendar day."""

    model_config = ConfigDict(frozen=True)

    frequency: Literal["DAILY"] = "DAILY"


class WeeklyRule(BaseModel):
    """Every calendar day whose weekday is selected."""

    model_config = ConfigDict(frozen=True)

    frequency: Literal["WEEKLY"] = "WEEKLY"
    days_of_week: frozenset[Weekday] = Field(..., min_length=1)

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _normalize_days(cls, value: Any) -> frozenset[Weekday]:
        return parse_weekday_set(value)

    @field_serializer("days_of_week")
    def _serialize_days(self, days: frozenset[Weekday]) -> list[str]:
        return [day.value for day in sorted_weekdays(days)]


class MonthlyRule(BaseModel):
    """A fixed day of every month, clamped to the month's last day."""

    model_config = ConfigDict(frozen=True)

    frequency: Literal["MONTHLY"] = "MONTHLY"
    day_of_month: int = Field(..., ge=1, le=31)


class CustomRule(BaseModel):
    """Every N days, weeks or calendar months from the start date."""

    model_config = ConfigDict(frozen=True)

    frequency: Literal["CUSTOM"] = "CUSTOM"
    interval: int = Field(..., ge=1, le=365)
    unit: CustomUnit = CustomUnit.DAYS


RecurrenceRule = Annotated[
    Union[DailyRule, WeeklyRule, MonthlyRule, CustomRule],
    Field(discriminator="frequency"),
]

_rule_adapter: TypeAdapter = TypeAdapter(RecurrenceRule)


def rule_from_fields(
    frequency: str | Frequency,
    days_of_week: Any = None,
    day_of_month: Optional[int] = None,
    custom_interval: Optional[int] = None,
    custom_unit: Optional[str] = None,
) -> Union[DailyRule, WeeklyRule, MonthlyRule, CustomRule]:
    """Build a rule from the flat column layout used by storage and legacy payloads."""
    frequency_value = frequency.value if isinstance(frequency, Frequency) else str(frequency).upper()
    payload: dict[str, Any] = {"frequency": frequency_value}
    if frequency_value == Frequency.WEEKLY.value:
        payload["days_of_week"] = days_of_week
    elif frequency_value == Frequency.MONTHLY.value:
        payload["day_of_month"] = day_of_month
    elif frequency_value == Frequency.CUSTOM.value:
        payload["interval"] = custom_interval
        if custom_unit:
            payload["unit"] = str(custom_unit).upper()
    try:
        return _rule_adapter.validate_python(payload)
    except (PydanticValidationError, ValueError) as exc:
        raise ValidationError(f"Invalid {frequency_value} recurrence rule", details=str(exc)) from exc


def rule_to_fields(rule: Union[DailyRule, WeeklyRule, MonthlyRule, CustomRule]) -> dict[str, Any]:
    """Flatten a rule into storage columns."""
    fields: dict[str, Any] = {
        "frequency": rule.frequency,
        "days_of_week": None,
        "day_of_month": None,
        "custom_interval": None,
        "custom_unit": None,
    }
    if isinstance(rule, WeeklyRule):
        fields["days_of_week"] = [day.value for day in sorted_weekdays(rule.days_of_week)]
    elif isinstance(rule, MonthlyRule):
        fields["day_of_month"] = rule.day_of_month
    elif isinstance(rule, CustomRule):
        fields["custom_interval"] = rule.interval
        fields["custom_unit"] = rule.unit.value
    return fields


# ===========================================
# Pattern models
# ===========================================


class Location(BaseModel):
    """Pickup or dropoff point."""

    address: str = Field(..., min_length=1, max_length=500)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    place_id: Optional[str] = Field(None, max_length=255)


class RecurrencePatternBase(BaseModel):
    """Base fields for recurrence patterns."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    rider_id: str = Field(..., min_length=1, max_length=100)
    rider_name: Optional[str] = Field(None, max_length=200)
    rider_phone: Optional[str] = Field(None, max_length=50)
    rider_email: Optional[str] = Field(None, max_length=255)
    pickup_location: Location
    dropoff_location: Location
    rule: RecurrenceRule
    start_date: date
    end_date: Optional[date] = None
    start_time: time
    duration_minutes: int = Field(30, ge=15, le=480)
    max_occurrences: Optional[int] = Field(None, ge=1)
    skip_weekends: bool = False
    skip_holidays: bool = True
    is_active: bool = True
    assigned_driver: Optional[str] = Field(None, max_length=100)
    assigned_vehicle: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    priority: TripPriority = TripPriority.NORMAL
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_date_range(self):
        if self.end_date is not None and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class RecurrencePatternCreate(RecurrencePatternBase):
    """Create a new recurrence pattern."""

    pass


class RecurrencePatternUpdate(BaseModel):
    """Update recurrence pattern fields."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    rider_id: Optional[str] = Field(None, min_length=1, max_length=100)
    rider_name: Optional[str] = Field(None, max_length=200)
    rider_phone: Optional[str] = Field(None, max_length=50)
    rider_email: Optional[str] = Field(None, max_length=255)
    pickup_location: Optional[Location] = None
    dropoff_location: Optional[Location] = None
    rule: Optional[RecurrenceRule] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=480)
    max_occurrences: Optional[int] = Field(None, ge=1)
    skip_weekends: Optional[bool] = None
    skip_holidays: Optional[bool] = None
    is_active: Optional[bool] = None
    assigned_driver: Optional[str] = Field(None, max_length=100)
    assigned_vehicle: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    priority: Optional[TripPriority] = None
    tags: Optional[list[str]] = None


_CLEARABLE_FIELDS = frozenset(
    {
        "description",
        "rider_name",
        "rider_phone",
        "rider_email",
        "end_date",
        "max_occurrences",
        "assigned_driver",
        "assigned_vehicle",
        "notes",
    }
)


class RecurrencePattern(RecurrencePatternBase):
    """Recurrence pattern with metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime

    @property
    def frequency(self) -> Frequency:
        return Frequency(self.rule.frequency)

    def with_update(self, update: RecurrencePatternUpdate) -> RecurrencePattern:
        """Return a copy with the update applied, re-validated as a whole.

        Explicit nulls clear optional fields (``end_date``, ``max_occurrences``).
        """
        data = self.model_dump()
        for field in update.model_fields_set:
            value = getattr(update, field)
            if value is None and field not in _CLEARABLE_FIELDS:
                continue
            data[field] = value
        try:
            return RecurrencePattern.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError("Invalid recurrence pattern update", details=exc.errors()) from exc
