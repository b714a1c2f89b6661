"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from datetime import datetime
from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
    text,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from trip_recurrence.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class RecurrencePatternORM(Base):
    """Recurrence pattern ORM model (rule flattened into columns)."""

    __tablename__ = "recurrence_patterns"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    rider_id = Column(String(100), nullable=False, index=True)
    rider_name = Column(String(200), nullable=True)
    rider_phone = Column(String(50), nullable=True)
    rider_email = Column(String(255), nullable=True)
    pickup_location = Column(JSON, nullable=False)
    dropoff_location = Column(JSON, nullable=False)

    # Rule columns: only the ones belonging to `frequency` are populated
    frequency = Column(String(10), nullable=False, index=True)
    days_of_week = Column(JSON, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    custom_interval = Column(Integer, nullable=True)
    custom_unit = Column(String(10), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, default=30)
    max_occurrences = Column(Integer, nullable=True)
    skip_weekends = Column(Boolean, default=False)
    skip_holidays = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True, index=True)
    assigned_driver = Column(String(100), nullable=True)
    assigned_vehicle = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(String(10), default="normal")
    tags = Column(JSON, nullable=True, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TripORM(Base):
    """Trip ORM model."""

    __tablename__ = "trips"
    __table_args__ = (
        # Idempotency key: one active trip per occurrence
        Index(
            "uq_trips_pattern_sequence_active",
            "pattern_id",
            "sequence_index",
            "scheduled_date",
            unique=True,
            sqlite_where=text("status IN ('scheduled', 'in_progress')"),
            postgresql_where=text("status IN ('scheduled', 'in_progress')"),
        ),
        Index("ix_trips_pattern_date", "pattern_id", "scheduled_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    pattern_id = Column(String(36), nullable=True)
    sequence_index = Column(Integer, nullable=True)
    title = Column(String(200), nullable=False)
    rider_id = Column(String(100), nullable=False, index=True)
    rider_name = Column(String(200), nullable=True)
    rider_phone = Column(String(50), nullable=True)
    rider_email = Column(String(255), nullable=True)
    pickup_location = Column(JSON, nullable=False)
    dropoff_location = Column(JSON, nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_datetime = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, default=30)
    status = Column(String(20), default="scheduled", index=True)
    cancellation_reason = Column(String(30), nullable=True)
    assigned_driver = Column(String(100), nullable=True)
    assigned_vehicle = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(String(10), default="normal")
    tags = Column(JSON, nullable=True, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class HolidayORM(Base):
    """Custom holiday ORM model."""

    __tablename__ = "holidays"
    __table_args__ = (UniqueConstraint("holiday_date", "name", name="uq_holidays_date_name"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    holiday_date = Column(Date, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine():
    """Get the process-wide async engine."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG and settings.LOG_LEVEL == "DEBUG")


def get_session_factory(engine=None):
    """Get async session factory."""
    engine = engine or get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

