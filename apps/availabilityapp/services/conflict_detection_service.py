"""
Conflict Detection Service

Decides whether an instructor can take a proposed interval by evaluating:
1. Regular weekly availability windows
2. Existing, non-cancelled bookings
3. Date-specific availability exceptions

The three checks always run and their results are concatenated. When any
conflict is found, up to three same-day alternatives are attached.
This service never writes to the database.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Union

from apps.availabilityapp.constants import (
    AVAILABILITY_TYPE_AVAILABLE,
    BLOCKING_EXCEPTION_TYPES,
)
from apps.availabilityapp.models import AvailabilityException, AvailabilityWindow, Booking
from apps.availabilityapp.types import (
    AvailabilityConflict,
    ConflictSeverity,
    ConflictType,
    ConflictVerdict,
)
from apps.availabilityapp.utils.date_utils import (
    day_name,
    day_of_week,
    end_time_of,
    format_time,
    validate_interval,
)

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, str]


class ConflictDetectionService:
    """
    Service for detecting scheduling conflicts for a single resource
    (instructor) and a proposed interval.
    """

    @classmethod
    def check_conflicts(
        cls,
        resource_id: str,
        start_time: Timestamp,
        end_time: Timestamp,
        exclude_booking_id: Optional[str] = None,
        suggest_alternatives: bool = True,
    ) -> ConflictVerdict:
        """
        Run every conflict check for a proposed interval.

        Args:
            resource_id: ID of the instructor
            start_time: Start of the interval (datetime or ISO-8601 string)
            end_time: End of the interval (datetime or ISO-8601 string)
            exclude_booking_id: Booking to ignore, used when rescheduling it
            suggest_alternatives: Attach same-day alternatives on conflict

        Returns:
            ConflictVerdict with the ordered conflicts and suggestions

        Raises:
            InvalidTimeRangeError: if the interval is empty or spans days
        """
        start, end = validate_interval(start_time, end_time)

        conflicts: List[AvailabilityConflict] = []
        conflicts.extend(cls.check_regular_availability(resource_id, start, end))
        conflicts.extend(
            cls.check_booking_conflicts(resource_id, start, end, exclude_booking_id)
        )
        conflicts.extend(cls.check_exception_conflicts(resource_id, start, end))

        suggested = []
        if conflicts and suggest_alternatives:
            from apps.availabilityapp.services.slot_service import SlotService

            suggested = SlotService.generate_alternatives(resource_id, start, end)

        if conflicts:
            logger.info(
                f"{len(conflicts)} conflict(s) for resource {resource_id} "
                f"at {start.isoformat()}-{end.isoformat()}"
            )

        return ConflictVerdict(conflicts=conflicts, suggested_times=suggested)

    @classmethod
    def is_available(
        cls,
        resource_id: str,
        start_time: Timestamp,
        end_time: Timestamp,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        verdict = cls.check_conflicts(
            resource_id,
            start_time,
            end_time,
            exclude_booking_id=exclude_booking_id,
            suggest_alternatives=False,
        )
        return not verdict.has_conflicts

    @staticmethod
    def check_regular_availability(
        resource_id: str, start: datetime, end: datetime
    ) -> List[AvailabilityConflict]:
        """
        Check the request against the weekly availability windows.

        A request must be fully contained by one window; partial
        containment is a conflict, the request is never clipped.
        """
        weekday = day_of_week(start)
        request_start = start.time()
        request_end = end_time_of(start, end)

        windows = AvailabilityWindow.objects.filter(
            resource_id=resource_id,
            day_of_week=weekday,
            availability_type=AVAILABILITY_TYPE_AVAILABLE,
        )

        if not windows.exists():
            return [
                AvailabilityConflict(
                    conflict_type=ConflictType.AVAILABILITY,
                    conflict_with="Not available on this day",
                    reason=f"Instructor is not available on {day_name(weekday)}",
                    severity=ConflictSeverity.HIGH,
                )
            ]

        if any(window.contains(request_start, request_end) for window in windows):
            return []

        return [
            AvailabilityConflict(
                conflict_type=ConflictType.AVAILABILITY,
                conflict_with="Outside available hours",
                reason=(
                    f"Requested time {format_time(request_start)}-{format_time(request_end)} "
                    f"is outside the instructor's available hours"
                ),
                severity=ConflictSeverity.HIGH,
            )
        ]

    @staticmethod
    def check_booking_conflicts(
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[AvailabilityConflict]:
        """
        Check the request against existing non-cancelled bookings on the
        same date using a half-open overlap test.
        """
        request_start = start.time()
        request_end = end_time_of(start, end)

        bookings = Booking.active.filter(
            resource_id=resource_id,
            booking_date=start.date(),
            start_time__lt=request_end,
            end_time__gt=request_start,
        ).order_by("start_time")

        if exclude_booking_id:
            try:
                bookings = bookings.exclude(id=uuid.UUID(str(exclude_booking_id)))
            except ValueError:
                # Not a booking id, so there is nothing to exclude
                logger.debug(f"Ignoring malformed exclude_booking_id {exclude_booking_id!r}")

        return [
            AvailabilityConflict(
                conflict_type=ConflictType.BOOKING,
                conflict_with=booking.title,
                reason=f"Overlaps with existing booking: {booking.title}",
                severity=ConflictSeverity.HIGH,
                reference_id=str(booking.id),
            )
            for booking in bookings
        ]

    @staticmethod
    def check_exception_conflicts(
        resource_id: str, start: datetime, end: datetime
    ) -> List[AvailabilityConflict]:
        """
        Check the request against date-specific exceptions. A whole-day
        exception blocks any time on that date.
        """
        request_start = start.time()
        request_end = end_time_of(start, end)

        exceptions = AvailabilityException.objects.filter(
            resource_id=resource_id,
            exception_date=start.date(),
            exception_type__in=BLOCKING_EXCEPTION_TYPES,
        ).order_by("start_time")

        conflicts = []
        for exception in exceptions:
            reason_text = exception.reason or "No reason provided"

            if exception.is_all_day:
                conflicts.append(
                    AvailabilityConflict(
                        conflict_type=ConflictType.EXCEPTION,
                        conflict_with="Unavailable exception",
                        reason=f"Instructor is unavailable all day: {reason_text}",
                        severity=ConflictSeverity.HIGH,
                        reference_id=str(exception.id),
                    )
                )
            elif exception.start_time < request_end and exception.end_time > request_start:
                conflicts.append(
                    AvailabilityConflict(
                        conflict_type=ConflictType.EXCEPTION,
                        conflict_with="Unavailable exception",
                        reason=f"Instructor is unavailable during this time: {reason_text}",
                        severity=ConflictSeverity.HIGH,
                        reference_id=str(exception.id),
                    )
                )

        return conflicts
