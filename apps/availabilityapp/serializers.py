# apps/availabilityapp/serializers.py
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from apps.availabilityapp.constants import DEFAULT_SLOT_DURATION_MINUTES
from apps.availabilityapp.models import AvailabilityException, AvailabilityWindow, Booking


class ModelCleanMixin:
    """Run the model's clean() during serializer validation"""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        instance = self.Meta.model(**attrs)
        if self.instance is not None:
            instance.pk = self.instance.pk
        try:
            instance.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return attrs


class AvailabilityWindowSerializer(ModelCleanMixin, serializers.ModelSerializer):
    """Serializer for weekly availability windows"""

    day_of_week_display = serializers.CharField(source="get_day_of_week_display", read_only=True)

    class Meta:
        model = AvailabilityWindow
        fields = [
            "id",
            "resource_id",
            "day_of_week",
            "day_of_week_display",
            "start_time",
            "end_time",
            "availability_type",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class AvailabilityExceptionSerializer(ModelCleanMixin, serializers.ModelSerializer):
    """Serializer for date-specific availability exceptions"""

    is_all_day = serializers.BooleanField(read_only=True)

    class Meta:
        model = AvailabilityException
        fields = [
            "id",
            "resource_id",
            "exception_date",
            "exception_type",
            "start_time",
            "end_time",
            "is_all_day",
            "reason",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]


class BookingSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    duration_minutes = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "resource_id",
            "booking_date",
            "start_time",
            "end_time",
            "duration_minutes",
            "title",
            "description",
            "booking_type",
            "status",
            "status_display",
            "course_id",
            "billable_hours",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ConflictCheckSerializer(serializers.Serializer):
    """Input of a conflict check"""

    resource_id = serializers.CharField(max_length=64)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    exclude_booking_id = serializers.UUIDField(required=False, allow_null=True)
    suggest_alternatives = serializers.BooleanField(default=True)

    def validate(self, data):
        if data["end_time"] <= data["start_time"]:
            raise serializers.ValidationError(_("End time must be after start time"))
        return data


class SlotQuerySerializer(serializers.Serializer):
    resource_id = serializers.CharField(max_length=64)
    date = serializers.DateField()
    duration_minutes = serializers.IntegerField(
        min_value=1, default=DEFAULT_SLOT_DURATION_MINUTES
    )
