# apps/schedulingapp/models.py
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.availabilityapp.models import Booking


class CourseSchedule(models.Model):
    """A scheduled course session taught by one instructor"""

    STATUS_CHOICES = (
        ("scheduled", _("Scheduled")),
        ("in_progress", _("In Progress")),
        ("completed", _("Completed")),
        ("cancelled", _("Cancelled")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    course_id = models.CharField(_("Course ID"), max_length=64, db_index=True)
    instructor_id = models.CharField(_("Instructor ID"), max_length=64, db_index=True)
    location_id = models.CharField(_("Location ID"), max_length=64, blank=True, null=True)
    title = models.CharField(_("Title"), max_length=255, blank=True)
    start_datetime = models.DateTimeField(_("Start"), db_index=True)
    end_datetime = models.DateTimeField(_("End"))
    max_capacity = models.PositiveIntegerField(_("Max Capacity"), null=True, blank=True)
    current_enrollment = models.PositiveIntegerField(_("Current Enrollment"), default=0)
    status = models.CharField(
        _("Status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default="scheduled",
        db_index=True,
    )
    recurrence_rule = models.JSONField(_("Recurrence Rule"), null=True, blank=True)
    parent_schedule = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        related_name="occurrences",
        null=True,
        blank=True,
        verbose_name=_("Parent Schedule"),
    )
    booking = models.OneToOneField(
        Booking,
        on_delete=models.SET_NULL,
        related_name="course_schedule",
        null=True,
        blank=True,
        verbose_name=_("Booking"),
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Course Schedule")
        verbose_name_plural = _("Course Schedules")
        ordering = ["start_datetime"]
        indexes = [
            models.Index(fields=["instructor_id", "start_datetime"]),
            models.Index(fields=["course_id", "status"]),
        ]

    def __str__(self):
        return f"{self.course_id} - {self.instructor_id} ({self.start_datetime:%Y-%m-%d %H:%M})"

    def clean(self):
        if self.end_datetime <= self.start_datetime:
            raise ValidationError(_("End time must be after start time"))

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    @property
    def duration(self):
        return self.end_datetime - self.start_datetime

    @property
    def available_seats(self):
        if self.max_capacity is None:
            return None
        return max(self.max_capacity - self.current_enrollment, 0)

    @property
    def is_full(self):
        return self.max_capacity is not None and self.current_enrollment >= self.max_capacity

    def mark_cancelled(self):
        self.status = "cancelled"
        self.save(update_fields=["status", "updated_at"])


class Enrollment(models.Model):
    """A participant's seat (or waitlist place) on a course schedule"""

    STATUS_CHOICES = (
        ("enrolled", _("Enrolled")),
        ("waitlisted", _("Waitlisted")),
        ("cancelled", _("Cancelled")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    schedule = models.ForeignKey(
        CourseSchedule,
        on_delete=models.CASCADE,
        related_name="enrollments",
        verbose_name=_("Schedule"),
    )
    participant_id = models.CharField(_("Participant ID"), max_length=64, db_index=True)
    status = models.CharField(
        _("Status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default="enrolled",
        db_index=True,
    )
    waitlist_position = models.PositiveIntegerField(
        _("Waitlist Position"), null=True, blank=True
    )
    enrolled_at = models.DateTimeField(_("Enrolled At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Enrollment")
        verbose_name_plural = _("Enrollments")
        ordering = ["enrolled_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["schedule", "participant_id"],
                condition=~Q(status="cancelled"),
                name="unique_active_enrollment_per_participant",
            ),
        ]
        indexes = [
            models.Index(fields=["schedule", "status"]),
        ]

    def __str__(self):
        return f"{self.participant_id} - {self.schedule_id} ({self.status})"

    @property
    def is_waitlisted(self):
        return self.status == "waitlisted"
