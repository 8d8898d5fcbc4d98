# apps/schedulingapp/serializers.py
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from apps.availabilityapp.constants import BOOKING_TYPE_CHOICES
from apps.schedulingapp.models import CourseSchedule, Enrollment
from apps.schedulingapp.services.recurrence_service import FREQUENCIES
from apps.schedulingapp.services.scheduling_service import ScheduleRequest


def _validate_range(data, start="start_time", end="end_time"):
    if data[end] <= data[start]:
        raise serializers.ValidationError(_("End time must be after start time"))
    return data


class CourseScheduleSerializer(serializers.ModelSerializer):
    """Serializer for course schedules"""

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    available_seats = serializers.IntegerField(read_only=True)
    is_full = serializers.BooleanField(read_only=True)

    class Meta:
        model = CourseSchedule
        fields = [
            "id",
            "course_id",
            "instructor_id",
            "location_id",
            "title",
            "start_datetime",
            "end_datetime",
            "max_capacity",
            "current_enrollment",
            "available_seats",
            "is_full",
            "status",
            "status_display",
            "recurrence_rule",
            "parent_schedule",
            "booking",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class EnrollmentSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Enrollment
        fields = [
            "id",
            "schedule",
            "participant_id",
            "status",
            "status_display",
            "waitlist_position",
            "enrolled_at",
            "updated_at",
        ]
        read_only_fields = fields


class ScheduleRequestSerializer(serializers.Serializer):
    """Input of a schedule call"""

    resource_id = serializers.CharField(max_length=64)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    title = serializers.CharField(max_length=255)
    booking_type = serializers.ChoiceField(
        choices=BOOKING_TYPE_CHOICES, default="course_instruction"
    )
    course_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    location_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    max_capacity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    billable_hours = serializers.DecimalField(
        max_digits=6, decimal_places=2, required=False, allow_null=True
    )

    def validate(self, data):
        return _validate_range(data)

    def to_request(self) -> ScheduleRequest:
        return ScheduleRequest(**self.validated_data)


class RescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, data):
        return _validate_range(data)


class AvailableInstructorsSerializer(serializers.Serializer):
    resource_ids = serializers.ListField(
        child=serializers.CharField(max_length=64), allow_empty=False
    )
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, data):
        return _validate_range(data)


class BulkScheduleSerializer(serializers.Serializer):
    """Input of a bulk schedule over a date range"""

    resource_ids = serializers.ListField(
        child=serializers.CharField(max_length=64), allow_empty=False
    )
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    days_of_week = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6), allow_empty=False
    )
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    title = serializers.CharField(max_length=255)
    booking_type = serializers.ChoiceField(
        choices=BOOKING_TYPE_CHOICES, default="course_instruction"
    )
    course_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, data):
        if data["end_date"] < data["start_date"]:
            raise serializers.ValidationError(_("End date must not be before start date"))
        return _validate_range(data)


class RecurrenceRuleSerializer(serializers.Serializer):
    frequency = serializers.ChoiceField(choices=FREQUENCIES)
    interval = serializers.IntegerField(min_value=1, default=1)
    end_date = serializers.DateField(required=False, allow_null=True)


class EnrollSerializer(serializers.Serializer):
    participant_id = serializers.CharField(max_length=64)
