"""
Custom exceptions for scheduling operations.

Provides structured error handling with retryable flags.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class StaffNotFoundError(SchedulingError):
    """
    Professional could not be resolved.

    Causes:
    - Unknown staff id
    - Staff member was soft-deleted
    """

    retryable = False


class AppointmentNotFoundError(SchedulingError):
    """Appointment id does not resolve to a live appointment."""

    retryable = False


class MalformedInputError(SchedulingError):
    """
    Input that cannot be evaluated safely.

    Causes:
    - Time string not in HH:MM form
    - Date string not in YYYY-MM-DD form
    - Interval whose end is not after its start
    - Duration of zero or less
    """

    retryable = False


class UpstreamUnavailableError(SchedulingError):
    """
    A backing store could not be read or written.

    Retryable after backoff.
    """

    retryable = True


class CommitConflictError(SchedulingError):
    """
    A conditional write lost against a concurrent writer.

    Retryable after re-reading availability.
    """

    retryable = True


class SlotUnavailableError(CommitConflictError):
    """The requested interval overlaps an existing commitment at commit time."""


class BlockConflictError(CommitConflictError):
    """
    A blocking block would overlap existing appointments.

    Carries the conflict report so callers can show which bookings collide.
    """

    retryable = False

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
