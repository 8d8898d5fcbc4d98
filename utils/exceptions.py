"""
Custom exceptions for the Training Ops scheduling core.

Conflicts found by the conflict engine are NOT exceptions; they are returned
as a ``ConflictVerdict``. The classes below cover validation failures,
missing records, store failures and lock contention.
"""

from typing import Any

from django.utils.translation import gettext_lazy as _
from rest_framework import status


class TrainingOpsError(Exception):
    """
    Base exception for all Training Ops custom exceptions.

    Attributes:
        message: Error message
        detail: Additional error details
        status_code: HTTP status code for API responses
    """

    def __init__(
        self,
        message: str = None,
        detail: Any = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        self.message = message if message else _("An error occurred")
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self):
        return str(self.message)


class ValidationError(TrainingOpsError):
    """
    Exception for data validation errors.
    """

    def __init__(
        self,
        message: str = None,
        detail: Any = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        message = message if message else _("Validation error")
        super().__init__(message, detail, status_code)


class InvalidTimeRangeError(ValidationError):
    """
    Raised when an interval is empty, reversed or crosses midnight.
    """

    def __init__(self, message: str = None, detail: Any = None):
        message = message if message else _("End time must be after start time")
        super().__init__(message, detail)


class InvalidRecurrenceRuleError(ValidationError):
    """
    Raised for an unknown frequency or a non-positive interval.
    """

    def __init__(self, message: str = None, detail: Any = None):
        message = message if message else _("Invalid recurrence rule")
        super().__init__(message, detail)


class ResourceNotFoundError(TrainingOpsError):
    """
    Exception for resource not found errors.
    """

    def __init__(
        self,
        message: str = None,
        detail: Any = None,
        status_code: int = status.HTTP_404_NOT_FOUND,
    ):
        message = message if message else _("Resource not found")
        super().__init__(message, detail, status_code)


class BookingNotFoundError(ResourceNotFoundError):
    def __init__(self, booking_id=None):
        super().__init__(
            _("Booking not found"), detail={"booking_id": str(booking_id)}
        )


class ScheduleNotFoundError(ResourceNotFoundError):
    def __init__(self, schedule_id=None):
        super().__init__(
            _("Course schedule not found"), detail={"schedule_id": str(schedule_id)}
        )


class EnrollmentNotFoundError(ResourceNotFoundError):
    def __init__(self, enrollment_id=None):
        super().__init__(
            _("Enrollment not found"), detail={"enrollment_id": str(enrollment_id)}
        )


class BookingStoreError(TrainingOpsError):
    """
    Raised when the booking store fails while persisting an occurrence.
    """

    def __init__(
        self,
        message: str = None,
        detail: Any = None,
        status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE,
    ):
        message = message if message else _("Booking store unavailable")
        super().__init__(message, detail, status_code)


class LockAcquisitionError(TrainingOpsError):
    """
    Raised when the per-resource scheduling lock cannot be acquired in time.
    """

    def __init__(
        self,
        message: str = None,
        detail: Any = None,
        status_code: int = status.HTTP_423_LOCKED,
    ):
        message = message if message else _("Resource is busy, try again")
        super().__init__(message, detail, status_code)
