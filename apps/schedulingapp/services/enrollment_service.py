"""
Enrollment Service

Capacity-aware registration of participants into course schedules. The seat
counter is only ever moved by a single conditional UPDATE, so the enrolled
count of a schedule cannot exceed its capacity even under concurrent calls.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F

from apps.schedulingapp.models import CourseSchedule, Enrollment
from utils.exceptions import EnrollmentNotFoundError, ScheduleNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentResult:
    success: bool
    message: str
    enrollment_id: Optional[str] = None
    status: Optional[str] = None
    waitlist_position: Optional[int] = None
    promoted_enrollment_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "enrollment_id": self.enrollment_id,
            "status": self.status,
            "waitlist_position": self.waitlist_position,
            "promoted_enrollment_id": self.promoted_enrollment_id,
        }


class EnrollmentService:
    """Service for enrolling participants and managing waitlists"""

    @staticmethod
    def enroll(schedule_id, participant_id) -> EnrollmentResult:
        """
        Enroll a participant, or waitlist them when the schedule is full

        Args:
            schedule_id: ID of the course schedule
            participant_id: ID of the participant

        Returns:
            EnrollmentResult with status ``enrolled`` or ``waitlisted``

        Raises:
            ScheduleNotFoundError: if the schedule does not exist
        """
        try:
            schedule = CourseSchedule.objects.get(id=schedule_id)
        except (CourseSchedule.DoesNotExist, DjangoValidationError):
            raise ScheduleNotFoundError(schedule_id)

        if not participant_id:
            return EnrollmentResult(success=False, message="A participant is required")

        if schedule.max_capacity is None:
            return EnrollmentResult(
                success=False, message="Schedule has no capacity information"
            )

        if schedule.status == "cancelled":
            return EnrollmentResult(
                success=False, message="Cannot enroll in a cancelled schedule"
            )

        try:
            with transaction.atomic():
                # Row lock on the schedule serializes waitlist numbering
                CourseSchedule.objects.select_for_update().get(id=schedule.id)

                if (
                    Enrollment.objects.filter(
                        schedule_id=schedule.id, participant_id=participant_id
                    )
                    .exclude(status="cancelled")
                    .exists()
                ):
                    return EnrollmentResult(
                        success=False,
                        message="Participant is already enrolled in this schedule",
                    )

                seat_taken = CourseSchedule.objects.filter(
                    id=schedule.id, current_enrollment__lt=F("max_capacity")
                ).update(current_enrollment=F("current_enrollment") + 1)

                if seat_taken:
                    enrollment = Enrollment.objects.create(
                        schedule_id=schedule.id,
                        participant_id=participant_id,
                        status="enrolled",
                    )
                    message = "Enrolled successfully"
                else:
                    position = (
                        Enrollment.objects.filter(
                            schedule_id=schedule.id, status="waitlisted"
                        ).count()
                        + 1
                    )
                    enrollment = Enrollment.objects.create(
                        schedule_id=schedule.id,
                        participant_id=participant_id,
                        status="waitlisted",
                        waitlist_position=position,
                    )
                    message = f"Schedule is full; added to waitlist at position {position}"
        except IntegrityError:
            return EnrollmentResult(
                success=False,
                message="Participant is already enrolled in this schedule",
            )
        except DatabaseError as e:
            logger.error(f"Error enrolling {participant_id} in {schedule_id}: {str(e)}")
            return EnrollmentResult(success=False, message=f"Failed to enroll: {str(e)}")

        logger.info(
            f"Participant {participant_id} {enrollment.status} on schedule {schedule.id}"
        )
        return EnrollmentResult(
            success=True,
            message=message,
            enrollment_id=str(enrollment.id),
            status=enrollment.status,
            waitlist_position=enrollment.waitlist_position,
        )

    @staticmethod
    def cancel_enrollment(enrollment_id) -> EnrollmentResult:
        """
        Cancel an enrollment

        A freed seat goes to the first waitlisted participant, and the
        remaining waitlist is renumbered from 1.

        Raises:
            EnrollmentNotFoundError: if the enrollment does not exist
        """
        try:
            enrollment = Enrollment.objects.get(id=enrollment_id)
        except (Enrollment.DoesNotExist, DjangoValidationError):
            raise EnrollmentNotFoundError(enrollment_id)

        if enrollment.status == "cancelled":
            return EnrollmentResult(
                success=True,
                message="Enrollment already cancelled",
                enrollment_id=str(enrollment.id),
                status=enrollment.status,
            )

        promoted = None
        try:
            with transaction.atomic():
                CourseSchedule.objects.select_for_update().get(id=enrollment.schedule_id)

                was_enrolled = enrollment.status == "enrolled"
                enrollment.status = "cancelled"
                enrollment.waitlist_position = None
                enrollment.save(update_fields=["status", "waitlist_position", "updated_at"])

                if was_enrolled:
                    promoted = (
                        Enrollment.objects.filter(
                            schedule_id=enrollment.schedule_id, status="waitlisted"
                        )
                        .order_by("waitlist_position", "enrolled_at")
                        .first()
                    )
                    if promoted:
                        # The freed seat passes straight to the promoted participant
                        promoted.status = "enrolled"
                        promoted.waitlist_position = None
                        promoted.save(
                            update_fields=["status", "waitlist_position", "updated_at"]
                        )
                    else:
                        CourseSchedule.objects.filter(
                            id=enrollment.schedule_id, current_enrollment__gt=0
                        ).update(current_enrollment=F("current_enrollment") - 1)

                EnrollmentService._renumber_waitlist(enrollment.schedule_id)
        except DatabaseError as e:
            logger.error(f"Error cancelling enrollment {enrollment_id}: {str(e)}")
            return EnrollmentResult(
                success=False,
                message=f"Failed to cancel enrollment: {str(e)}",
                enrollment_id=str(enrollment.id),
            )

        if promoted:
            logger.info(
                f"Participant {promoted.participant_id} promoted from waitlist "
                f"on schedule {enrollment.schedule_id}"
            )

        return EnrollmentResult(
            success=True,
            message="Enrollment cancelled",
            enrollment_id=str(enrollment.id),
            status=enrollment.status,
            promoted_enrollment_id=str(promoted.id) if promoted else None,
        )

    @staticmethod
    def waitlist(schedule_id) -> List[Enrollment]:
        try:
            exists = CourseSchedule.objects.filter(id=schedule_id).exists()
        except DjangoValidationError:
            exists = False
        if not exists:
            raise ScheduleNotFoundError(schedule_id)
        return list(
            Enrollment.objects.filter(schedule_id=schedule_id, status="waitlisted").order_by(
                "waitlist_position", "enrolled_at"
            )
        )

    @staticmethod
    def _renumber_waitlist(schedule_id):
        waitlisted = Enrollment.objects.filter(
            schedule_id=schedule_id, status="waitlisted"
        ).order_by("waitlist_position", "enrolled_at")

        for position, entry in enumerate(waitlisted, start=1):
            if entry.waitlist_position != position:
                entry.waitlist_position = position
                entry.save(update_fields=["waitlist_position", "updated_at"])
