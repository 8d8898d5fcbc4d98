# apps/availabilityapp/urls.py
from django.urls import path

from apps.availabilityapp.views import (
    AvailabilityExceptionListCreateView,
    AvailabilityWindowListCreateView,
    BookingListView,
    ConflictCheckView,
    FreeSlotsView,
)

app_name = "availabilityapp"

urlpatterns = [
    path("windows/", AvailabilityWindowListCreateView.as_view(), name="window-list"),
    path("exceptions/", AvailabilityExceptionListCreateView.as_view(), name="exception-list"),
    path("bookings/", BookingListView.as_view(), name="booking-list"),
    path("conflicts/check/", ConflictCheckView.as_view(), name="conflict-check"),
    path("slots/", FreeSlotsView.as_view(), name="free-slots"),
]
