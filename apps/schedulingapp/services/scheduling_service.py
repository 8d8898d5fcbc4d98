"""
Scheduling Service Module

Turns conflict-free requests into persisted bookings (and course schedules),
and moves or cancels them afterwards. Each write for a resource runs under a
per-resource distributed lock and a database transaction so the conflict
check and the insert cannot interleave with another request for the same
instructor.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction

from apps.availabilityapp.models import Booking
from apps.availabilityapp.services.conflict_detection_service import (
    ConflictDetectionService,
)
from apps.availabilityapp.types import ConflictVerdict
from apps.availabilityapp.utils.date_utils import (
    day_of_week,
    end_time_of,
    get_date_range,
    split_datetime,
    to_storage_datetime,
    validate_interval,
)
from apps.schedulingapp.models import CourseSchedule
from utils.distributed_locks import distributed_lock, with_distributed_lock
from utils.exceptions import (
    BookingNotFoundError,
    LockAcquisitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_VALIDATION = "validation"
ERROR_CONFLICT = "conflict"
ERROR_LOCKED = "locked"
ERROR_STORE = "store"


@dataclass(frozen=True)
class ScheduleRequest:
    """Request to occupy an instructor for an interval"""

    resource_id: str
    start_time: Any
    end_time: Any
    title: str
    booking_type: str = "course_instruction"
    course_id: Optional[str] = None
    location_id: Optional[str] = None
    description: str = ""
    max_capacity: Optional[int] = None
    billable_hours: Optional[float] = None
    parent_schedule_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduleResult:
    success: bool
    message: str
    booking_id: Optional[str] = None
    schedule_id: Optional[str] = None
    verdict: Optional[ConflictVerdict] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "booking_id": self.booking_id,
            "schedule_id": self.schedule_id,
            "error": self.error,
            "conflicts": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass(frozen=True)
class ResourceAvailability:
    resource_id: str
    available: bool
    verdict: Optional[ConflictVerdict] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "available": self.available,
            "conflicts": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass
class BulkScheduleResult:
    total: int = 0
    created: List[str] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
            "created": self.created,
            "skipped": self.skipped,
        }


def _resource_lock_key(resource_id):
    return f"schedule:resource:{resource_id}"


class SchedulingService:
    """
    Orchestrates conflict checks and booking writes for instructors.

    Conflicts are returned as unsuccessful results carrying the verdict;
    missing bookings raise; store failures are reported as unsuccessful
    results.
    """

    @staticmethod
    def schedule(request: ScheduleRequest) -> ScheduleResult:
        """
        Book an instructor for an interval if it is conflict-free.

        Args:
            request: ScheduleRequest describing the booking

        Returns:
            ScheduleResult with the booking (and course schedule) id on
            success, or the conflict verdict on failure
        """
        if not request.resource_id:
            return ScheduleResult(
                success=False, message="An instructor is required", error=ERROR_VALIDATION
            )
        if not request.title:
            return ScheduleResult(
                success=False, message="A title is required", error=ERROR_VALIDATION
            )

        try:
            validate_interval(request.start_time, request.end_time)
        except ValidationError as e:
            return ScheduleResult(success=False, message=str(e), error=ERROR_VALIDATION)

        try:
            return SchedulingService._schedule_locked(request.resource_id, request)
        except LockAcquisitionError as e:
            logger.warning(f"Scheduling lock busy for resource {request.resource_id}")
            return ScheduleResult(success=False, message=str(e), error=ERROR_LOCKED)
        except DatabaseError as e:
            logger.error(f"Failed to persist booking for {request.resource_id}: {str(e)}")
            return ScheduleResult(
                success=False,
                message=f"Failed to save booking: {str(e)}",
                error=ERROR_STORE,
            )

    @staticmethod
    @with_distributed_lock(lambda resource_id, request: _resource_lock_key(resource_id))
    @transaction.atomic
    def _schedule_locked(resource_id, request: ScheduleRequest) -> ScheduleResult:
        verdict = ConflictDetectionService.check_conflicts(
            resource_id, request.start_time, request.end_time
        )
        if verdict.has_conflicts:
            logger.info(
                f"Scheduling rejected for resource {resource_id}: {verdict.first_reason}"
            )
            return ScheduleResult(
                success=False,
                message="Scheduling conflicts detected",
                verdict=verdict,
                error=ERROR_CONFLICT,
            )

        booking, schedule = SchedulingService._persist(request)

        logger.info(
            f"Booking created: ID={booking.id}, Resource={resource_id}, "
            f"Date={booking.booking_date} {booking.start_time}-{booking.end_time}"
        )
        return ScheduleResult(
            success=True,
            message="Scheduled successfully",
            booking_id=str(booking.id),
            schedule_id=str(schedule.id) if schedule else None,
        )

    @staticmethod
    def _persist(request: ScheduleRequest):
        start, end = validate_interval(request.start_time, request.end_time)
        booking_date, start_time = split_datetime(start)

        booking = Booking.objects.create(
            resource_id=request.resource_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time_of(start, end),
            title=request.title,
            description=request.description or "",
            booking_type=request.booking_type,
            status="scheduled",
            course_id=request.course_id,
            billable_hours=request.billable_hours,
        )

        schedule = None
        if request.course_id:
            capacity = request.max_capacity
            if capacity is None:
                capacity = getattr(settings, "DEFAULT_COURSE_CAPACITY", None)
            schedule = CourseSchedule.objects.create(
                course_id=request.course_id,
                instructor_id=request.resource_id,
                location_id=request.location_id,
                title=request.title,
                start_datetime=to_storage_datetime(start),
                end_datetime=to_storage_datetime(end),
                max_capacity=capacity,
                booking=booking,
                parent_schedule_id=request.parent_schedule_id,
            )

        return booking, schedule

    @staticmethod
    def _get_booking(booking_id, for_update=False) -> Booking:
        queryset = Booking.objects.select_for_update() if for_update else Booking.objects
        try:
            return queryset.get(id=booking_id)
        except (Booking.DoesNotExist, DjangoValidationError):
            raise BookingNotFoundError(booking_id)

    @staticmethod
    def reschedule(booking_id, new_start, new_end) -> ScheduleResult:
        """
        Move an existing booking to a new interval.

        The booking itself is excluded from the conflict check, so moving
        it onto its own current interval never conflicts. The row is read
        again under the resource lock, so a cancellation that lands first
        is never undone.

        Raises:
            BookingNotFoundError: if the booking does not exist
        """
        booking = SchedulingService._get_booking(booking_id)

        try:
            start, end = validate_interval(new_start, new_end)
        except ValidationError as e:
            return ScheduleResult(
                success=False,
                message=str(e),
                booking_id=str(booking.id),
                error=ERROR_VALIDATION,
            )

        cancelled_result = ScheduleResult(
            success=False,
            message="Cancelled bookings cannot be rescheduled",
            booking_id=str(booking.id),
            error=ERROR_VALIDATION,
        )
        if booking.is_cancelled:
            return cancelled_result

        try:
            with distributed_lock(_resource_lock_key(booking.resource_id)) as acquired:
                if not acquired:
                    raise LockAcquisitionError()
                with transaction.atomic():
                    booking = SchedulingService._get_booking(booking.id, for_update=True)
                    if booking.is_cancelled:
                        return cancelled_result

                    verdict = ConflictDetectionService.check_conflicts(
                        booking.resource_id, start, end, exclude_booking_id=str(booking.id)
                    )
                    if verdict.has_conflicts:
                        return ScheduleResult(
                            success=False,
                            message="Scheduling conflicts detected",
                            booking_id=str(booking.id),
                            verdict=verdict,
                            error=ERROR_CONFLICT,
                        )

                    booking_date, start_time = split_datetime(start)
                    booking.move_to(booking_date, start_time, end_time_of(start, end))

                    schedule = CourseSchedule.objects.filter(booking=booking).first()
                    if schedule:
                        schedule.start_datetime = to_storage_datetime(start)
                        schedule.end_datetime = to_storage_datetime(end)
                        schedule.save(update_fields=["start_datetime", "end_datetime", "updated_at"])
        except LockAcquisitionError as e:
            return ScheduleResult(
                success=False,
                message=str(e),
                booking_id=str(booking.id),
                error=ERROR_LOCKED,
            )
        except DatabaseError as e:
            logger.error(f"Failed to reschedule booking {booking_id}: {str(e)}")
            return ScheduleResult(
                success=False,
                message=f"Failed to update booking: {str(e)}",
                booking_id=str(booking.id),
                error=ERROR_STORE,
            )

        logger.info(f"Booking {booking.id} moved to {start.isoformat()}-{end.isoformat()}")
        return ScheduleResult(
            success=True,
            message="Rescheduled successfully",
            booking_id=str(booking.id),
            schedule_id=str(schedule.id) if schedule else None,
        )

    @staticmethod
    def cancel(booking_id) -> ScheduleResult:
        """
        Cancel a booking. The row is kept for audit and stops taking part
        in conflict checks.

        Runs under the same resource lock as scheduling and rescheduling.

        Raises:
            BookingNotFoundError: if the booking does not exist
        """
        booking = SchedulingService._get_booking(booking_id)

        if booking.is_cancelled:
            return ScheduleResult(
                success=True, message="Booking already cancelled", booking_id=str(booking.id)
            )

        try:
            with distributed_lock(_resource_lock_key(booking.resource_id)) as acquired:
                if not acquired:
                    raise LockAcquisitionError()
                with transaction.atomic():
                    booking = SchedulingService._get_booking(booking.id, for_update=True)
                    if booking.is_cancelled:
                        return ScheduleResult(
                            success=True,
                            message="Booking already cancelled",
                            booking_id=str(booking.id),
                        )

                    booking.mark_cancelled()
                    schedule = CourseSchedule.objects.filter(booking=booking).first()
                    if schedule and schedule.status != "cancelled":
                        schedule.mark_cancelled()
        except LockAcquisitionError as e:
            logger.warning(f"Cancellation lock busy for booking {booking_id}")
            return ScheduleResult(
                success=False,
                message=str(e),
                booking_id=str(booking.id),
                error=ERROR_LOCKED,
            )
        except DatabaseError as e:
            logger.error(f"Failed to cancel booking {booking_id}: {str(e)}")
            return ScheduleResult(
                success=False,
                message=f"Failed to cancel booking: {str(e)}",
                booking_id=str(booking.id),
                error=ERROR_STORE,
            )

        logger.info(f"Booking {booking.id} cancelled")
        return ScheduleResult(
            success=True,
            message="Booking cancelled",
            booking_id=str(booking.id),
            schedule_id=str(schedule.id) if schedule else None,
        )

    @staticmethod
    def find_available_resources(
        candidate_ids: Iterable[str], start_time, end_time
    ) -> List[ResourceAvailability]:
        """
        Check each candidate instructor for the interval, preserving order.
        """
        results = []
        for resource_id in candidate_ids:
            verdict = ConflictDetectionService.check_conflicts(resource_id, start_time, end_time)
            results.append(
                ResourceAvailability(
                    resource_id=resource_id,
                    available=not verdict.has_conflicts,
                    verdict=verdict if verdict.has_conflicts else None,
                )
            )
        return results

    @staticmethod
    def bulk_schedule(
        resource_ids: Iterable[str],
        start_date,
        end_date,
        days_of_week: Iterable[int],
        start_time: time,
        end_time: time,
        title: str,
        booking_type: str = "course_instruction",
        course_id: Optional[str] = None,
        description: str = "",
    ) -> BulkScheduleResult:
        """
        Book several instructors on every matching weekday of a date range.

        Each item goes through ``schedule``; conflicting items are recorded
        as skipped rather than aborting the batch.

        Args:
            days_of_week: Weekdays to include, 0 = Sunday
        """
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        if start_time >= end_time:
            raise ValidationError("End time must be after start time")

        wanted_days = set(days_of_week)
        resource_ids = list(resource_ids)
        result = BulkScheduleResult()

        for current in get_date_range(start_date, end_date):
            if day_of_week(current) not in wanted_days:
                continue
            for resource_id in resource_ids:
                result.total += 1
                outcome = SchedulingService.schedule(
                    ScheduleRequest(
                        resource_id=resource_id,
                        start_time=datetime.combine(current, start_time),
                        end_time=datetime.combine(current, end_time),
                        title=title,
                        booking_type=booking_type,
                        course_id=course_id,
                        description=description,
                    )
                )
                if outcome.success:
                    result.created.append(outcome.booking_id)
                else:
                    result.skipped.append(
                        {
                            "resource_id": resource_id,
                            "date": current.isoformat(),
                            "reason": (
                                outcome.verdict.first_reason
                                if outcome.verdict
                                else outcome.message
                            ),
                        }
                    )

        logger.info(
            f"Bulk scheduling finished: {result.success_count} created, "
            f"{result.skipped_count} skipped of {result.total}"
        )
        return result
