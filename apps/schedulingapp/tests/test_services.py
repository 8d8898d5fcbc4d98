# apps/schedulingapp/tests/test_services.py
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from apps.availabilityapp.models import AvailabilityWindow, Booking
from apps.availabilityapp.types import ConflictType
from apps.schedulingapp.models import CourseSchedule, Enrollment
from apps.schedulingapp.services.enrollment_service import EnrollmentService
from apps.schedulingapp.services.recurrence_service import (
    RecurrenceRule,
    RecurrenceService,
)
from apps.schedulingapp.services.scheduling_service import (
    ERROR_CONFLICT,
    ERROR_LOCKED,
    ERROR_STORE,
    ERROR_VALIDATION,
    ScheduleRequest,
    SchedulingService,
)
from utils.distributed_locks import DistributedLock, distributed_lock
from utils.exceptions import (
    BookingNotFoundError,
    BookingStoreError,
    EnrollmentNotFoundError,
    InvalidRecurrenceRuleError,
    LockAcquisitionError,
    ScheduleNotFoundError,
)

MONDAY = date(2024, 6, 3)


def at(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute))


def add_weekday_windows(resource_id, days=(1, 2, 3, 4, 5), start=time(8, 0), end=time(17, 0)):
    for day in days:
        AvailabilityWindow.objects.create(
            resource_id=resource_id, day_of_week=day, start_time=start, end_time=end
        )


class SchedulingServiceTest(TestCase):
    """Test cases for the SchedulingService"""

    def setUp(self):
        """Instructor available on weekdays with a Monday standup"""
        self.resource_id = "inst-1"
        add_weekday_windows(self.resource_id)

        self.standup = Booking.objects.create(
            resource_id=self.resource_id,
            booking_date=MONDAY,
            start_time=time(10, 0),
            end_time=time(11, 0),
            title="Standup",
        )

    def _request(self, start, end, **kwargs):
        kwargs.setdefault("title", "First Aid Basics")
        return ScheduleRequest(
            resource_id=kwargs.pop("resource_id", self.resource_id),
            start_time=start,
            end_time=end,
            **kwargs,
        )

    def test_schedule_creates_booking(self):
        result = SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 15)))

        self.assertTrue(result.success)
        self.assertIsNone(result.schedule_id)

        booking = Booking.objects.get(id=result.booking_id)
        self.assertEqual(booking.booking_date, MONDAY)
        self.assertEqual(booking.start_time, time(13, 0))
        self.assertEqual(booking.end_time, time(15, 0))
        self.assertEqual(booking.status, "scheduled")
        self.assertEqual(booking.billable_hours, Decimal("2.00"))

    def test_schedule_with_course_creates_linked_schedule(self):
        result = SchedulingService.schedule(
            self._request(
                at(MONDAY, 13), at(MONDAY, 15), course_id="course-cpr", location_id="room-1"
            )
        )

        self.assertTrue(result.success)
        schedule = CourseSchedule.objects.get(id=result.schedule_id)
        self.assertEqual(str(schedule.booking_id), result.booking_id)
        self.assertEqual(schedule.instructor_id, self.resource_id)
        self.assertEqual(schedule.location_id, "room-1")
        self.assertEqual(schedule.max_capacity, 20)
        self.assertEqual(schedule.start_datetime, timezone.make_aware(at(MONDAY, 13)))
        self.assertEqual(schedule.duration, timedelta(hours=2))
        self.assertEqual(Booking.objects.get(id=result.booking_id).course_id, "course-cpr")

    def test_schedule_rejects_conflict_without_writing(self):
        before = Booking.objects.count()

        result = SchedulingService.schedule(
            self._request(at(MONDAY, 10, 30), at(MONDAY, 11, 30), course_id="course-cpr")
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_CONFLICT)
        self.assertEqual(result.verdict.conflicts[0].conflict_type, ConflictType.BOOKING)
        self.assertTrue(result.verdict.suggested_times)
        self.assertEqual(Booking.objects.count(), before)
        self.assertFalse(CourseSchedule.objects.exists())

    def test_schedule_validation_failures(self):
        missing_title = SchedulingService.schedule(
            self._request(at(MONDAY, 13), at(MONDAY, 14), title="")
        )
        missing_resource = SchedulingService.schedule(
            self._request(at(MONDAY, 13), at(MONDAY, 14), resource_id="")
        )
        reversed_range = SchedulingService.schedule(
            self._request(at(MONDAY, 14), at(MONDAY, 13))
        )

        for result in (missing_title, missing_resource, reversed_range):
            self.assertFalse(result.success)
            self.assertEqual(result.error, ERROR_VALIDATION)
        self.assertEqual(Booking.objects.count(), 1)

    @override_settings(SCHEDULING_LOCK_TIMEOUT=0)
    def test_schedule_fails_when_resource_locked(self):
        lock = DistributedLock(f"schedule:resource:{self.resource_id}")
        self.assertTrue(lock.acquire())
        try:
            result = SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 14)))
        finally:
            lock.release()

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_LOCKED)
        self.assertEqual(Booking.objects.count(), 1)

    def test_schedule_wraps_store_errors(self):
        with patch.object(Booking.objects, "create", side_effect=DatabaseError("disk full")):
            result = SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 14)))

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_STORE)
        self.assertIn("disk full", result.message)

    def test_lock_released_after_schedule(self):
        SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 14)))

        lock = DistributedLock(f"schedule:resource:{self.resource_id}", timeout=0)
        self.assertTrue(lock.acquire())
        lock.release()

    def test_reschedule_to_own_interval(self):
        result = SchedulingService.reschedule(self.standup.id, at(MONDAY, 10), at(MONDAY, 11))

        self.assertTrue(result.success)

    def test_reschedule_moves_booking_and_schedule(self):
        created = SchedulingService.schedule(
            self._request(at(MONDAY, 13), at(MONDAY, 14), course_id="course-cpr")
        )
        tuesday = MONDAY + timedelta(days=1)

        result = SchedulingService.reschedule(
            created.booking_id, at(tuesday, 9), at(tuesday, 11)
        )

        self.assertTrue(result.success)
        booking = Booking.objects.get(id=created.booking_id)
        self.assertEqual(booking.booking_date, tuesday)
        self.assertEqual(booking.start_time, time(9, 0))
        self.assertEqual(booking.billable_hours, Decimal("2.00"))

        schedule = CourseSchedule.objects.get(id=created.schedule_id)
        self.assertEqual(schedule.start_datetime, timezone.make_aware(at(tuesday, 9)))
        self.assertEqual(schedule.end_datetime, timezone.make_aware(at(tuesday, 11)))

    def test_reschedule_onto_other_booking_conflicts(self):
        created = SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 14)))

        result = SchedulingService.reschedule(
            created.booking_id, at(MONDAY, 10, 30), at(MONDAY, 11, 30)
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_CONFLICT)
        self.assertEqual(
            Booking.objects.get(id=created.booking_id).start_time, time(13, 0)
        )

    def test_reschedule_unknown_booking_raises(self):
        with self.assertRaises(BookingNotFoundError):
            SchedulingService.reschedule(uuid.uuid4(), at(MONDAY, 13), at(MONDAY, 14))

    def test_reschedule_does_not_revive_booking_cancelled_meanwhile(self):
        booking_id = self.standup.id

        def cancel_then_lock(*args, **kwargs):
            Booking.objects.filter(id=booking_id).update(status="cancelled")
            return distributed_lock(*args, **kwargs)

        with patch(
            "apps.schedulingapp.services.scheduling_service.distributed_lock",
            side_effect=cancel_then_lock,
        ):
            result = SchedulingService.reschedule(booking_id, at(MONDAY, 14), at(MONDAY, 15))

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_VALIDATION)
        self.standup.refresh_from_db()
        self.assertEqual(self.standup.status, "cancelled")
        self.assertEqual(self.standup.start_time, time(10, 0))

    def test_reschedule_malformed_id_raises_not_found(self):
        with self.assertRaises(BookingNotFoundError):
            SchedulingService.reschedule("no-such-booking", at(MONDAY, 13), at(MONDAY, 14))

    def test_cancel_flips_status_and_frees_time(self):
        created = SchedulingService.schedule(
            self._request(at(MONDAY, 13), at(MONDAY, 14), course_id="course-cpr")
        )

        result = SchedulingService.cancel(created.booking_id)

        self.assertTrue(result.success)
        self.assertEqual(Booking.objects.get(id=created.booking_id).status, "cancelled")
        self.assertEqual(CourseSchedule.objects.get(id=created.schedule_id).status, "cancelled")

        again = SchedulingService.schedule(self._request(at(MONDAY, 13), at(MONDAY, 14)))
        self.assertTrue(again.success)

    def test_cancel_twice_is_noop(self):
        SchedulingService.cancel(self.standup.id)
        result = SchedulingService.cancel(self.standup.id)

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Booking already cancelled")

    def test_cancel_unknown_booking_raises(self):
        with self.assertRaises(BookingNotFoundError):
            SchedulingService.cancel(uuid.uuid4())

    def test_cancel_malformed_id_raises_not_found(self):
        with self.assertRaises(BookingNotFoundError):
            SchedulingService.cancel("no-such-booking")

    def test_cancel_fails_when_resource_locked(self):
        lock = DistributedLock(f"schedule:resource:{self.resource_id}")
        self.assertTrue(lock.acquire())
        try:
            result = SchedulingService.cancel(self.standup.id)
        finally:
            lock.release()

        self.assertFalse(result.success)
        self.assertEqual(result.error, ERROR_LOCKED)
        self.standup.refresh_from_db()
        self.assertEqual(self.standup.status, "scheduled")

    def test_find_available_resources_preserves_order(self):
        add_weekday_windows("inst-2")

        results = SchedulingService.find_available_resources(
            ["inst-1", "inst-2", "inst-3"], at(MONDAY, 10), at(MONDAY, 11)
        )

        self.assertEqual([r.resource_id for r in results], ["inst-1", "inst-2", "inst-3"])
        self.assertEqual([r.available for r in results], [False, True, False])
        self.assertIsNone(results[1].verdict)
        self.assertEqual(
            results[2].verdict.conflicts[0].conflict_type, ConflictType.AVAILABILITY
        )

    def test_bulk_schedule_skips_conflicts(self):
        add_weekday_windows("inst-2")

        # Mondays and Wednesdays between June 3 and June 14: 3, 5, 10, 12
        result = SchedulingService.bulk_schedule(
            resource_ids=["inst-1", "inst-2"],
            start_date=MONDAY,
            end_date=date(2024, 6, 14),
            days_of_week=[1, 3],
            start_time=time(10, 0),
            end_time=time(11, 0),
            title="Refresher",
        )

        self.assertEqual(result.total, 8)
        self.assertEqual(result.success_count, 7)
        self.assertEqual(result.skipped_count, 1)
        self.assertEqual(result.skipped[0]["resource_id"], "inst-1")
        self.assertEqual(result.skipped[0]["date"], "2024-06-03")
        self.assertEqual(
            result.skipped[0]["reason"], "Overlaps with existing booking: Standup"
        )


class RecurrenceRuleTest(SimpleTestCase):
    def test_from_dict(self):
        rule = RecurrenceRule.from_dict(
            {"frequency": "weekly", "interval": "2", "end_date": "2024-08-01"}
        )

        self.assertEqual(rule.frequency, "weekly")
        self.assertEqual(rule.interval, 2)
        self.assertEqual(rule.end_date, date(2024, 8, 1))

    def test_rejects_invalid_rules(self):
        for data in (
            {"frequency": "yearly"},
            {"frequency": "daily", "interval": 0},
            {"frequency": "daily", "interval": "often"},
            {"frequency": "daily", "end_date": "soon"},
        ):
            with self.assertRaises(InvalidRecurrenceRuleError):
                RecurrenceRule.from_dict(data)

    def test_weekly_dates_until_end_date(self):
        rule = RecurrenceRule(frequency="weekly", end_date=date(2024, 7, 15))

        dates = list(RecurrenceService.occurrence_dates(at(MONDAY, 9), rule))

        self.assertEqual(len(dates), 6)
        self.assertEqual(dates[0], at(date(2024, 6, 10), 9))
        self.assertEqual(dates[-1], at(date(2024, 7, 15), 9))

    def test_monthly_dates_clamp_to_month_end(self):
        rule = RecurrenceRule(frequency="monthly", end_date=date(2024, 4, 30))

        dates = [d.date() for d in RecurrenceService.occurrence_dates(at(date(2024, 1, 31), 9), rule)]

        self.assertEqual(dates, [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)])

    def test_interval_applies(self):
        rule = RecurrenceRule(frequency="daily", interval=3, end_date=date(2024, 6, 12))

        dates = [d.date() for d in RecurrenceService.occurrence_dates(at(MONDAY, 9), rule)]

        self.assertEqual(dates, [date(2024, 6, 6), date(2024, 6, 9), date(2024, 6, 12)])

    def test_default_horizon_is_six_months(self):
        rule = RecurrenceRule(frequency="daily")

        dates = list(RecurrenceService.occurrence_dates(at(date(2024, 1, 1), 9), rule))

        self.assertEqual(dates[-1].date(), date(2024, 7, 1))


class RecurrenceServiceTest(TestCase):
    """Test cases for expanding recurring schedules"""

    def setUp(self):
        self.resource_id = "inst-1"
        add_weekday_windows(self.resource_id, days=(1,))

        result = SchedulingService.schedule(
            ScheduleRequest(
                resource_id=self.resource_id,
                start_time=at(MONDAY, 9),
                end_time=at(MONDAY, 10),
                title="CPR Weekly",
                course_id="course-cpr",
                max_capacity=12,
            )
        )
        self.base = CourseSchedule.objects.get(id=result.schedule_id)
        self.rule = RecurrenceRule(frequency="weekly", end_date=date(2024, 7, 15))

    def test_expand_skips_colliding_occurrence(self):
        Booking.objects.create(
            resource_id=self.resource_id,
            booking_date=date(2024, 6, 24),
            start_time=time(9, 30),
            end_time=time(10, 30),
            title="Audit",
        )

        result = RecurrenceService.expand(self.base, self.rule)

        self.assertEqual(len(result.created), 5)
        self.assertEqual(len(result.skipped), 1)
        self.assertEqual(result.skipped[0].start, at(date(2024, 6, 24), 9))
        self.assertEqual(result.skipped[0].reason, "Overlaps with existing booking: Audit")
        self.assertNotIn(
            date(2024, 6, 24),
            [timezone.localtime(s.start_datetime).date() for s in result.created],
        )

    def test_created_occurrences_link_to_base(self):
        result = RecurrenceService.expand(self.base, self.rule)

        self.assertEqual(len(result.created), 6)
        for occurrence in result.created:
            self.assertEqual(occurrence.parent_schedule_id, self.base.id)
            self.assertEqual(occurrence.duration, timedelta(hours=1))
            self.assertEqual(occurrence.max_capacity, 12)
            self.assertIsNotNone(occurrence.booking_id)

        self.base.refresh_from_db()
        self.assertEqual(
            self.base.recurrence_rule,
            {"frequency": "weekly", "interval": 1, "end_date": "2024-07-15"},
        )
        self.assertEqual(self.base.occurrences.count(), 6)

    def test_store_failure_aborts_expansion(self):
        with patch.object(
            SchedulingService, "_persist", side_effect=DatabaseError("connection lost")
        ):
            with self.assertRaises(BookingStoreError):
                RecurrenceService.expand(self.base, self.rule)

        self.assertFalse(self.base.occurrences.exists())

    def test_busy_lock_stops_expansion(self):
        with patch.object(DistributedLock, "acquire", return_value=False):
            with self.assertRaises(LockAcquisitionError):
                RecurrenceService.expand(self.base, self.rule)

        self.assertFalse(self.base.occurrences.exists())


class EnrollmentServiceTest(TestCase):
    """Test cases for the EnrollmentService"""

    def setUp(self):
        self.schedule = CourseSchedule.objects.create(
            course_id="course-cpr",
            instructor_id="inst-1",
            title="CPR",
            start_datetime=timezone.make_aware(at(MONDAY, 9)),
            end_datetime=timezone.make_aware(at(MONDAY, 12)),
            max_capacity=2,
        )

    def test_capacity_then_waitlist(self):
        first = EnrollmentService.enroll(self.schedule.id, "p-1")
        second = EnrollmentService.enroll(self.schedule.id, "p-2")
        third = EnrollmentService.enroll(self.schedule.id, "p-3")
        fourth = EnrollmentService.enroll(self.schedule.id, "p-4")

        self.assertEqual([first.status, second.status], ["enrolled", "enrolled"])
        self.assertEqual(third.status, "waitlisted")
        self.assertEqual(third.waitlist_position, 1)
        self.assertEqual(fourth.status, "waitlisted")
        self.assertEqual(fourth.waitlist_position, 2)

        self.schedule.refresh_from_db()
        self.assertEqual(self.schedule.current_enrollment, 2)
        self.assertTrue(self.schedule.is_full)
        self.assertEqual(
            Enrollment.objects.filter(schedule=self.schedule, status="enrolled").count(), 2
        )

    def test_duplicate_enrollment_rejected(self):
        EnrollmentService.enroll(self.schedule.id, "p-1")
        result = EnrollmentService.enroll(self.schedule.id, "p-1")

        self.assertFalse(result.success)
        self.assertEqual(Enrollment.objects.filter(participant_id="p-1").count(), 1)

    def test_unknown_schedule_raises(self):
        with self.assertRaises(ScheduleNotFoundError):
            EnrollmentService.enroll(uuid.uuid4(), "p-1")

    def test_missing_capacity_is_validation_failure(self):
        self.schedule.max_capacity = None
        self.schedule.save()

        result = EnrollmentService.enroll(self.schedule.id, "p-1")

        self.assertFalse(result.success)
        self.assertFalse(Enrollment.objects.exists())

    def test_missing_participant_is_validation_failure(self):
        result = EnrollmentService.enroll(self.schedule.id, "")

        self.assertFalse(result.success)
        self.assertFalse(Enrollment.objects.exists())

    def test_cancel_promotes_first_waitlisted(self):
        first = EnrollmentService.enroll(self.schedule.id, "p-1")
        EnrollmentService.enroll(self.schedule.id, "p-2")
        third = EnrollmentService.enroll(self.schedule.id, "p-3")
        fourth = EnrollmentService.enroll(self.schedule.id, "p-4")

        result = EnrollmentService.cancel_enrollment(first.enrollment_id)

        self.assertTrue(result.success)
        self.assertEqual(result.promoted_enrollment_id, third.enrollment_id)
        self.assertEqual(Enrollment.objects.get(id=third.enrollment_id).status, "enrolled")

        remaining = Enrollment.objects.get(id=fourth.enrollment_id)
        self.assertEqual(remaining.waitlist_position, 1)

        self.schedule.refresh_from_db()
        self.assertEqual(self.schedule.current_enrollment, 2)

    def test_cancel_without_waitlist_frees_seat(self):
        first = EnrollmentService.enroll(self.schedule.id, "p-1")

        EnrollmentService.cancel_enrollment(first.enrollment_id)

        self.schedule.refresh_from_db()
        self.assertEqual(self.schedule.current_enrollment, 0)

        again = EnrollmentService.enroll(self.schedule.id, "p-1")
        self.assertTrue(again.success)
        self.assertEqual(again.status, "enrolled")

    def test_cancel_waitlisted_renumbers(self):
        EnrollmentService.enroll(self.schedule.id, "p-1")
        EnrollmentService.enroll(self.schedule.id, "p-2")
        third = EnrollmentService.enroll(self.schedule.id, "p-3")
        EnrollmentService.enroll(self.schedule.id, "p-4")

        EnrollmentService.cancel_enrollment(third.enrollment_id)

        waitlist = EnrollmentService.waitlist(self.schedule.id)
        self.assertEqual([e.participant_id for e in waitlist], ["p-4"])
        self.assertEqual(waitlist[0].waitlist_position, 1)

    def test_cancel_unknown_enrollment_raises(self):
        with self.assertRaises(EnrollmentNotFoundError):
            EnrollmentService.cancel_enrollment(uuid.uuid4())

    def test_malformed_ids_raise_not_found(self):
        with self.assertRaises(ScheduleNotFoundError):
            EnrollmentService.enroll("not-a-schedule", "p-1")
        with self.assertRaises(ScheduleNotFoundError):
            EnrollmentService.waitlist("not-a-schedule")
        with self.assertRaises(EnrollmentNotFoundError):
            EnrollmentService.cancel_enrollment("not-an-enrollment")
