"""API routers."""

from trip_recurrence.api import holidays, recurring_trips

__all__ = [
    "recurring_trips",
    "holidays",
]
