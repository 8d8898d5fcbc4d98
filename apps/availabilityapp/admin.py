# apps/availabilityapp/admin.py
from django.contrib import admin

from apps.availabilityapp.models import AvailabilityException, AvailabilityWindow, Booking


@admin.register(AvailabilityWindow)
class AvailabilityWindowAdmin(admin.ModelAdmin):
    list_display = ["resource_id", "day_of_week", "start_time", "end_time", "availability_type"]
    list_filter = ["day_of_week", "availability_type"]
    search_fields = ["resource_id"]


@admin.register(AvailabilityException)
class AvailabilityExceptionAdmin(admin.ModelAdmin):
    list_display = ["resource_id", "exception_date", "exception_type", "start_time", "end_time"]
    list_filter = ["exception_type", "exception_date"]
    search_fields = ["resource_id", "reason"]
    date_hierarchy = "exception_date"


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin configuration for bookings"""

    list_display = [
        "title",
        "resource_id",
        "booking_date",
        "start_time",
        "end_time",
        "booking_type",
        "status",
    ]
    list_filter = ["status", "booking_type", "booking_date"]
    search_fields = ["title", "resource_id", "course_id"]
    readonly_fields = ["created_at", "updated_at"]
    date_hierarchy = "booking_date"
    actions = ["mark_cancelled"]

    def mark_cancelled(self, request, queryset):
        from apps.schedulingapp.services.scheduling_service import SchedulingService

        for booking in queryset.exclude(status="cancelled"):
            SchedulingService.cancel(booking.id)
        self.message_user(request, "Selected bookings were cancelled")

    mark_cancelled.short_description = "Cancel selected bookings"
