# apps/schedulingapp/urls.py
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from apps.schedulingapp.views import (
    AvailableInstructorsView,
    BulkScheduleView,
    CancelBookingView,
    CourseScheduleViewSet,
    EnrollmentViewSet,
    RescheduleBookingView,
    ScheduleView,
)

app_name = "schedulingapp"

router = DefaultRouter()
router.register(r"schedules", CourseScheduleViewSet, basename="schedule")
router.register(r"enrollments", EnrollmentViewSet, basename="enrollment")

urlpatterns = [
    path("schedule/", ScheduleView.as_view(), name="schedule"),
    path("bulk-schedule/", BulkScheduleView.as_view(), name="bulk-schedule"),
    path(
        "bookings/<uuid:booking_id>/reschedule/",
        RescheduleBookingView.as_view(),
        name="booking-reschedule",
    ),
    path(
        "bookings/<uuid:booking_id>/cancel/",
        CancelBookingView.as_view(),
        name="booking-cancel",
    ),
    path(
        "available-instructors/",
        AvailableInstructorsView.as_view(),
        name="available-instructors",
    ),
    path("", include(router.urls)),
]
