# apps/schedulingapp/services/recurrence_service.py
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional

from dateutil.relativedelta import relativedelta
from django.utils.translation import gettext_lazy as _

from apps.availabilityapp.utils.date_utils import to_wall_clock
from apps.schedulingapp.models import CourseSchedule
from apps.schedulingapp.services.scheduling_service import (
    ERROR_CONFLICT,
    ERROR_LOCKED,
    ERROR_STORE,
    ScheduleRequest,
    SchedulingService,
)
from utils.exceptions import (
    BookingStoreError,
    InvalidRecurrenceRuleError,
    LockAcquisitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_RECURRENCE_HORIZON_MONTHS = 6

FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"

FREQUENCIES = (FREQUENCY_DAILY, FREQUENCY_WEEKLY, FREQUENCY_MONTHLY)


@dataclass(frozen=True)
class RecurrenceRule:
    """Repetition rule for a course schedule"""

    frequency: str
    interval: int = 1
    end_date: Optional[date] = None

    def __post_init__(self):
        if self.frequency not in FREQUENCIES:
            raise InvalidRecurrenceRuleError(
                _("Frequency must be one of: daily, weekly, monthly"),
                detail={"frequency": self.frequency},
            )
        if not isinstance(self.interval, int) or self.interval < 1:
            raise InvalidRecurrenceRuleError(
                _("Interval must be a positive integer"),
                detail={"interval": self.interval},
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecurrenceRule":
        if not isinstance(data, dict):
            raise InvalidRecurrenceRuleError()

        interval = data.get("interval", 1)
        try:
            interval = int(interval)
        except (TypeError, ValueError):
            raise InvalidRecurrenceRuleError(
                _("Interval must be a positive integer"), detail={"interval": interval}
            )

        end_date = data.get("end_date")
        if isinstance(end_date, str):
            try:
                end_date = date.fromisoformat(end_date)
            except ValueError:
                raise InvalidRecurrenceRuleError(
                    _("End date must be an ISO-8601 date"), detail={"end_date": end_date}
                )
        elif isinstance(end_date, datetime):
            end_date = end_date.date()

        return cls(frequency=data.get("frequency"), interval=interval, end_date=end_date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency,
            "interval": self.interval,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }

    def step(self, count: int) -> relativedelta:
        """Offset of the count-th occurrence from the base date"""
        amount = self.interval * count
        if self.frequency == FREQUENCY_DAILY:
            return relativedelta(days=amount)
        if self.frequency == FREQUENCY_WEEKLY:
            return relativedelta(weeks=amount)
        return relativedelta(months=amount)


@dataclass(frozen=True)
class OccurrenceOutcome:
    start: datetime
    end: datetime
    status: str
    schedule: Optional[CourseSchedule] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status,
            "schedule_id": str(self.schedule.id) if self.schedule else None,
            "reason": self.reason,
        }


@dataclass
class RecurrenceResult:
    base_schedule_id: str
    outcomes: List[OccurrenceOutcome] = field(default_factory=list)

    @property
    def created(self) -> List[CourseSchedule]:
        return [o.schedule for o in self.outcomes if o.status == "created"]

    @property
    def skipped(self) -> List[OccurrenceOutcome]:
        return [o for o in self.outcomes if o.status == "skipped"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_schedule_id": self.base_schedule_id,
            "created_count": len(self.created),
            "skipped_count": len(self.skipped),
            "occurrences": [o.to_dict() for o in self.outcomes],
        }


class RecurrenceService:
    """
    Expands a base course schedule into a series of occurrences.

    Every occurrence goes through the single-schedule path of
    SchedulingService, so it gets the same conflict check, lock and
    booking as a one-off schedule.
    """

    @staticmethod
    def occurrence_dates(start: datetime, rule: RecurrenceRule) -> Iterator[datetime]:
        """
        Yield the start of every occurrence after ``start``.

        Offsets are computed from ``start`` rather than from the previous
        occurrence, so monthly series clamped to a short month (Jan 31 ->
        Feb 29) return to the 31st afterwards.
        """
        if rule.end_date:
            last_day = rule.end_date
        else:
            last_day = (start + relativedelta(months=DEFAULT_RECURRENCE_HORIZON_MONTHS)).date()

        count = 1
        while True:
            occurrence = start + rule.step(count)
            if occurrence.date() > last_day:
                return
            yield occurrence
            count += 1

    @staticmethod
    def expand(base_schedule: CourseSchedule, rule: RecurrenceRule) -> RecurrenceResult:
        """
        Create the occurrences of a recurring schedule.

        Args:
            base_schedule: The first session of the series; it is not re-created
            rule: Repetition rule, stored on the base schedule

        Returns:
            RecurrenceResult with a created outcome per occurrence, or a
            skipped one where the occurrence conflicts

        Raises:
            BookingStoreError: if persisting an occurrence fails
            LockAcquisitionError: if the instructor's lock stays busy
            ValidationError: if an occurrence request is rejected as invalid

        Occurrences created before an error are kept; the rest of the series
        is not attempted.
        """
        base_start = to_wall_clock(base_schedule.start_datetime)
        duration = to_wall_clock(base_schedule.end_datetime) - base_start

        base_schedule.recurrence_rule = rule.to_dict()
        base_schedule.save(update_fields=["recurrence_rule", "updated_at"])

        booking_type = "course_instruction"
        description = ""
        if base_schedule.booking_id:
            booking_type = base_schedule.booking.booking_type
            description = base_schedule.booking.description

        result = RecurrenceResult(base_schedule_id=str(base_schedule.id))

        for start in RecurrenceService.occurrence_dates(base_start, rule):
            end = start + duration
            outcome = SchedulingService.schedule(
                ScheduleRequest(
                    resource_id=base_schedule.instructor_id,
                    start_time=start,
                    end_time=end,
                    title=base_schedule.title or base_schedule.course_id,
                    booking_type=booking_type,
                    course_id=base_schedule.course_id,
                    location_id=base_schedule.location_id,
                    description=description,
                    max_capacity=base_schedule.max_capacity,
                    parent_schedule_id=base_schedule.id,
                )
            )

            if outcome.error == ERROR_STORE:
                logger.error(
                    f"Recurrence expansion of {base_schedule.id} aborted at "
                    f"{start.isoformat()}: {outcome.message}"
                )
                raise BookingStoreError(outcome.message, detail={"occurrence": start.isoformat()})

            if outcome.error == ERROR_LOCKED:
                logger.warning(
                    f"Recurrence expansion of {base_schedule.id} stopped at "
                    f"{start.isoformat()}: resource lock busy"
                )
                raise LockAcquisitionError(
                    outcome.message, detail={"occurrence": start.isoformat()}
                )

            if outcome.success:
                schedule = CourseSchedule.objects.get(id=outcome.schedule_id)
                result.outcomes.append(
                    OccurrenceOutcome(start=start, end=end, status="created", schedule=schedule)
                )
                continue

            if outcome.error != ERROR_CONFLICT:
                raise ValidationError(outcome.message, detail={"occurrence": start.isoformat()})

            reason = outcome.verdict.first_reason
            logger.info(
                f"Skipping occurrence of {base_schedule.id} at {start.isoformat()}: {reason}"
            )
            result.outcomes.append(
                OccurrenceOutcome(start=start, end=end, status="skipped", reason=reason)
            )

        logger.info(
            f"Expanded schedule {base_schedule.id}: {len(result.created)} created, "
            f"{len(result.skipped)} skipped"
        )
        return result
