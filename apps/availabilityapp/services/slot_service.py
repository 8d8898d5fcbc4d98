# apps/availabilityapp/services/slot_service.py
import logging
from datetime import date, datetime, timedelta
from typing import List

from apps.availabilityapp.constants import (
    AVAILABILITY_TYPE_AVAILABLE,
    BUSINESS_DAY_END,
    BUSINESS_DAY_START,
    DEFAULT_SLOT_DURATION_MINUTES,
    MAX_SUGGESTED_ALTERNATIVES,
    SLOT_STEP_MINUTES,
)
from apps.availabilityapp.models import AvailabilityWindow
from apps.availabilityapp.types import TimeSlot
from apps.availabilityapp.utils.date_utils import (
    day_of_week,
    to_wall_clock,
    validate_interval,
)
from utils.exceptions import InvalidTimeRangeError

logger = logging.getLogger(__name__)


class SlotService:
    """Enumerates candidate slots for an instructor on a single day"""

    @staticmethod
    def generate_alternatives(resource_id, requested_start, requested_end) -> List[TimeSlot]:
        """
        Find free intervals with the requested duration on the same day

        Scans the business day (08:00-18:00) in 30-minute steps and keeps
        candidates that pass a full conflict check.

        Args:
            resource_id: ID of the instructor
            requested_start: Start of the rejected interval
            requested_end: End of the rejected interval

        Returns:
            At most three free TimeSlots, earliest first
        """
        from apps.availabilityapp.services.conflict_detection_service import (
            ConflictDetectionService,
        )

        start, end = validate_interval(requested_start, requested_end)
        duration = end - start
        step = timedelta(minutes=SLOT_STEP_MINUTES)

        day_start = datetime.combine(start.date(), BUSINESS_DAY_START)
        day_end = datetime.combine(start.date(), BUSINESS_DAY_END)

        alternatives = []
        cursor = day_start
        while cursor + duration <= day_end:
            slot_end = cursor + duration
            if ConflictDetectionService.is_available(resource_id, cursor, slot_end):
                alternatives.append(TimeSlot(start=cursor, end=slot_end, available=True))
                if len(alternatives) >= MAX_SUGGESTED_ALTERNATIVES:
                    break
            cursor += step

        logger.debug(
            f"{len(alternatives)} alternative(s) found for resource {resource_id} "
            f"on {start.date()}"
        )
        return alternatives

    @staticmethod
    def list_free_slots(
        resource_id, on_date, duration_minutes=DEFAULT_SLOT_DURATION_MINUTES
    ) -> List[TimeSlot]:
        """
        Expand the instructor's available windows for a date into slots

        Every slot of ``duration_minutes`` that fits inside a window is
        returned, stepping by 30 minutes, with its availability and the
        first conflict reason when occupied.

        Args:
            resource_id: ID of the instructor
            on_date: date (or datetime / ISO string) to enumerate
            duration_minutes: Length of each slot

        Returns:
            List of TimeSlots in window order
        """
        from apps.availabilityapp.services.conflict_detection_service import (
            ConflictDetectionService,
        )

        if duration_minutes is None or int(duration_minutes) <= 0:
            raise InvalidTimeRangeError("Slot duration must be a positive number of minutes")

        if not isinstance(on_date, date) or isinstance(on_date, datetime):
            on_date = to_wall_clock(on_date).date()

        duration = timedelta(minutes=int(duration_minutes))
        step = timedelta(minutes=SLOT_STEP_MINUTES)

        windows = AvailabilityWindow.objects.filter(
            resource_id=resource_id,
            day_of_week=day_of_week(on_date),
            availability_type=AVAILABILITY_TYPE_AVAILABLE,
        ).order_by("start_time")

        slots = []
        for window in windows:
            cursor = datetime.combine(on_date, window.start_time)
            window_end = datetime.combine(on_date, window.end_time)

            # Inclusive bound: a slot ending exactly at the window end is listed
            while cursor + duration <= window_end:
                slot_end = cursor + duration
                verdict = ConflictDetectionService.check_conflicts(
                    resource_id, cursor, slot_end, suggest_alternatives=False
                )
                slots.append(
                    TimeSlot(
                        start=cursor,
                        end=slot_end,
                        available=not verdict.has_conflicts,
                        conflict_reason=verdict.first_reason,
                    )
                )
                cursor += step

        return slots
