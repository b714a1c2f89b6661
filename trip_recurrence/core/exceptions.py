"""
Custom exceptions for the recurring trip core.
"""

from typing import Any, Optional


class RecurrenceError(Exception):
    """Base exception for trip_recurrence."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(RecurrenceError):
    """Resource not found."""

    pass


class ValidationError(RecurrenceError):
    """Structurally invalid recurrence pattern."""

    pass


class ConflictError(RecurrenceError):
    """Idempotency key already taken by another trip.

    Expected when two writers materialize the same occurrence concurrently.
    """

    def __init__(
        self,
        message: str,
        pattern_id: Optional[Any] = None,
        sequence_index: Optional[int] = None,
    ):
        super().__init__(
            message,
            details={"pattern_id": str(pattern_id) if pattern_id else None, "sequence_index": sequence_index},
        )
        self.pattern_id = pattern_id
        self.sequence_index = sequence_index


class InfrastructureError(RecurrenceError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class BusinessLogicError(RecurrenceError):
    """Business logic constraint violation."""

    pass
