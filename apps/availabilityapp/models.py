# apps/availabilityapp/models.py
import uuid
from datetime import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.availabilityapp.constants import (
    AVAILABILITY_TYPE_AVAILABLE,
    AVAILABILITY_TYPE_CHOICES,
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_CHOICES,
    BOOKING_TYPE_CHOICES,
    EXCEPTION_TYPE_CHOICES,
    WEEKDAY_CHOICES,
)


class AvailabilityWindow(models.Model):
    """Recurring weekly availability of an instructor"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource_id = models.CharField(_("Resource ID"), max_length=64, db_index=True)
    day_of_week = models.IntegerField(_("Day of Week"), choices=WEEKDAY_CHOICES)
    start_time = models.TimeField(_("Start Time"))
    end_time = models.TimeField(_("End Time"))
    availability_type = models.CharField(
        _("Availability Type"),
        max_length=20,
        choices=AVAILABILITY_TYPE_CHOICES,
        default=AVAILABILITY_TYPE_AVAILABLE,
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Availability Window")
        verbose_name_plural = _("Availability Windows")
        ordering = ["resource_id", "day_of_week", "start_time"]
        indexes = [
            models.Index(fields=["resource_id", "day_of_week", "availability_type"]),
        ]

    def __str__(self):
        return (
            f"{self.resource_id} - {self.get_day_of_week_display()} "
            f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"
        )

    def clean(self):
        """Reject empty windows and windows overlapping a sibling window"""
        if self.start_time >= self.end_time:
            raise ValidationError(_("End time must be after start time"))

        overlapping = AvailabilityWindow.objects.filter(
            resource_id=self.resource_id,
            day_of_week=self.day_of_week,
            availability_type=self.availability_type,
            start_time__lt=self.end_time,
            end_time__gt=self.start_time,
        ).exclude(pk=self.pk)

        if overlapping.exists():
            raise ValidationError(
                _("Window overlaps an existing window for this resource and day")
            )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    def contains(self, start_time, end_time):
        """True when [start_time, end_time) lies fully inside this window"""
        return self.start_time <= start_time and self.end_time >= end_time


class AvailabilityException(models.Model):
    """Date-specific override of the weekly availability"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource_id = models.CharField(_("Resource ID"), max_length=64, db_index=True)
    exception_date = models.DateField(_("Date"), db_index=True)
    exception_type = models.CharField(
        _("Exception Type"),
        max_length=20,
        choices=EXCEPTION_TYPE_CHOICES,
        default="out_of_office",
    )
    start_time = models.TimeField(_("Start Time"), null=True, blank=True)
    end_time = models.TimeField(_("End Time"), null=True, blank=True)
    reason = models.TextField(_("Reason"), blank=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Availability Exception")
        verbose_name_plural = _("Availability Exceptions")
        ordering = ["exception_date", "start_time"]
        indexes = [
            models.Index(fields=["resource_id", "exception_date"]),
        ]

    def __str__(self):
        return f"{self.resource_id} - {self.exception_date} ({self.exception_type})"

    @property
    def is_all_day(self):
        return self.start_time is None or self.end_time is None

    def clean(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValidationError(
                _("Provide both start and end time, or neither for a whole day")
            )
        if not self.is_all_day and self.start_time >= self.end_time:
            raise ValidationError(_("End time must be after start time"))

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)


class ActiveBookingManager(models.Manager):
    """Bookings that still occupy time"""

    def get_queryset(self):
        return super().get_queryset().exclude(status=BOOKING_STATUS_CANCELLED)


class Booking(models.Model):
    """Concrete time-bound occupation of an instructor"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource_id = models.CharField(_("Resource ID"), max_length=64, db_index=True)
    booking_date = models.DateField(_("Date"))
    start_time = models.TimeField(_("Start Time"))
    end_time = models.TimeField(_("End Time"))
    title = models.CharField(_("Title"), max_length=255)
    description = models.TextField(_("Description"), blank=True)
    booking_type = models.CharField(
        _("Booking Type"),
        max_length=30,
        choices=BOOKING_TYPE_CHOICES,
        default="course_instruction",
    )
    status = models.CharField(
        _("Status"),
        max_length=20,
        choices=BOOKING_STATUS_CHOICES,
        default="scheduled",
        db_index=True,
    )
    course_id = models.CharField(_("Course ID"), max_length=64, blank=True, null=True)
    billable_hours = models.DecimalField(
        _("Billable Hours"), max_digits=6, decimal_places=2, null=True, blank=True
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    objects = models.Manager()
    active = ActiveBookingManager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-booking_date", "start_time"]
        indexes = [
            models.Index(fields=["resource_id", "booking_date", "status"]),
        ]

    def __str__(self):
        return f"{self.title} - {self.resource_id} ({self.booking_date} {self.start_time})"

    def clean(self):
        if self.start_time >= self.end_time:
            raise ValidationError(_("End time must be after start time"))

    def save(self, *args, **kwargs):
        self.clean()
        if self.billable_hours is None:
            self.billable_hours = (
                Decimal(self.duration_minutes) / Decimal(60)
            ).quantize(Decimal("0.01"))
        super().save(*args, **kwargs)

    @property
    def duration_minutes(self):
        start = datetime.combine(self.booking_date, self.start_time)
        end = datetime.combine(self.booking_date, self.end_time)
        return int((end - start).total_seconds() // 60)

    @property
    def is_cancelled(self):
        return self.status == BOOKING_STATUS_CANCELLED

    def overlaps(self, start_time, end_time):
        """Half-open interval overlap against an intraday range"""
        return self.start_time < end_time and self.end_time > start_time

    def mark_cancelled(self):
        """Mark booking as cancelled; it stays in the table for audit"""
        self.status = BOOKING_STATUS_CANCELLED
        self.save(update_fields=["status", "updated_at"])

    def move_to(self, booking_date, start_time, end_time):
        self.booking_date = booking_date
        self.start_time = start_time
        self.end_time = end_time
        self.billable_hours = None
        self.save(
            update_fields=["booking_date", "start_time", "end_time", "billable_hours", "updated_at"]
        )
