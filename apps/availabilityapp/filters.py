# apps/availabilityapp/filters.py
from django_filters import rest_framework as filters

from apps.availabilityapp.constants import (
    AVAILABILITY_TYPE_CHOICES,
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_CHOICES,
    BOOKING_TYPE_CHOICES,
    EXCEPTION_TYPE_CHOICES,
)
from apps.availabilityapp.models import AvailabilityException, AvailabilityWindow, Booking


class AvailabilityWindowFilter(filters.FilterSet):
    resource_id = filters.CharFilter(field_name="resource_id")
    day_of_week = filters.NumberFilter(field_name="day_of_week")
    availability_type = filters.ChoiceFilter(choices=AVAILABILITY_TYPE_CHOICES)

    class Meta:
        model = AvailabilityWindow
        fields = ["resource_id", "day_of_week", "availability_type"]


class AvailabilityExceptionFilter(filters.FilterSet):
    resource_id = filters.CharFilter(field_name="resource_id")
    start_date = filters.DateFilter(field_name="exception_date", lookup_expr="gte")
    end_date = filters.DateFilter(field_name="exception_date", lookup_expr="lte")
    exception_type = filters.ChoiceFilter(choices=EXCEPTION_TYPE_CHOICES)

    class Meta:
        model = AvailabilityException
        fields = ["resource_id", "start_date", "end_date", "exception_type"]


class BookingFilter(filters.FilterSet):
    """Filter bookings by instructor, date range and status"""

    resource_id = filters.CharFilter(field_name="resource_id")
    date = filters.DateFilter(field_name="booking_date")
    start_date = filters.DateFilter(field_name="booking_date", lookup_expr="gte")
    end_date = filters.DateFilter(field_name="booking_date", lookup_expr="lte")
    status = filters.ChoiceFilter(choices=BOOKING_STATUS_CHOICES)
    booking_type = filters.ChoiceFilter(choices=BOOKING_TYPE_CHOICES)
    course_id = filters.CharFilter(field_name="course_id")
    active = filters.BooleanFilter(method="filter_active")

    class Meta:
        model = Booking
        fields = [
            "resource_id",
            "date",
            "start_date",
            "end_date",
            "status",
            "booking_type",
            "course_id",
            "active",
        ]

    def filter_active(self, queryset, name, value):
        if value:
            return queryset.exclude(status=BOOKING_STATUS_CANCELLED)
        if value is False:
            return queryset.filter(status=BOOKING_STATUS_CANCELLED)
        return queryset
