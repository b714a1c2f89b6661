"""
Shared fixtures.

Each test gets its own SQLite file so concurrent sessions behave like they do
against a real database.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENABLE_BACKGROUND_SCHEDULER", "false")
os.environ.setdefault("MATERIALIZE_RETRY_DELAY_SECONDS", "0")

from datetime import date, datetime, time  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from trip_recurrence.infrastructure.local.database import get_session_factory, init_db  # noqa: E402
from trip_recurrence.models.recurrence import (  # noqa: E402
    DailyRule,
    Location,
    RecurrencePattern,
    RecurrencePatternCreate,
)

PICKUP = Location(address="100 Main St", lat=40.0, lng=-75.0)
DROPOFF = Location(address="200 Clinic Ave", lat=40.1, lng=-75.1)


def pattern_fields(**overrides) -> dict:
    """Field values for a valid pattern; overrides win."""
    fields = {
        "title": "Dialysis",
        "rider_id": "rider-1",
        "rider_name": "Pat Rider",
        "pickup_location": PICKUP,
        "dropoff_location": DROPOFF,
        "rule": DailyRule(),
        "start_date": date(2025, 1, 6),
        "start_time": time(9, 0),
        "skip_holidays": False,
    }
    fields.update(overrides)
    return fields


def _build_pattern(**overrides) -> RecurrencePattern:
    fields = pattern_fields(**overrides)
    fields.setdefault("id", uuid4())
    fields.setdefault("created_at", datetime(2025, 1, 1))
    fields.setdefault("updated_at", datetime(2025, 1, 1))
    return RecurrencePattern(**fields)


def _build_pattern_create(**overrides) -> RecurrencePatternCreate:
    return RecurrencePatternCreate(**pattern_fields(**overrides))


@pytest.fixture
def make_pattern():
    """Factory for in-memory patterns (not persisted)."""
    return _build_pattern


@pytest.fixture
def make_pattern_create():
    """Factory for pattern create payloads."""
    return _build_pattern_create


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)
