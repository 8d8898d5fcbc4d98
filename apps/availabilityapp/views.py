"""
Availability app views
Exposes weekly windows, exceptions, bookings, conflict checks and free slots
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.availabilityapp.filters import (
    AvailabilityExceptionFilter,
    AvailabilityWindowFilter,
    BookingFilter,
)
from apps.availabilityapp.models import AvailabilityException, AvailabilityWindow, Booking
from apps.availabilityapp.serializers import (
    AvailabilityExceptionSerializer,
    AvailabilityWindowSerializer,
    BookingSerializer,
    ConflictCheckSerializer,
    SlotQuerySerializer,
)
from apps.availabilityapp.services.conflict_detection_service import (
    ConflictDetectionService,
)
from apps.availabilityapp.services.slot_service import SlotService


class AvailabilityWindowListCreateView(generics.ListCreateAPIView):
    """
    List or declare weekly availability windows.

    Filter by ``resource_id``, ``day_of_week`` (0 = Sunday) and
    ``availability_type``.
    """

    queryset = AvailabilityWindow.objects.all()
    serializer_class = AvailabilityWindowSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AvailabilityWindowFilter
    ordering_fields = ["day_of_week", "start_time"]
    ordering = ["resource_id", "day_of_week", "start_time"]


class AvailabilityExceptionListCreateView(generics.ListCreateAPIView):
    """List or record date-specific availability exceptions"""

    queryset = AvailabilityException.objects.all()
    serializer_class = AvailabilityExceptionSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AvailabilityExceptionFilter
    ordering_fields = ["exception_date", "start_time"]
    ordering = ["exception_date", "start_time"]


class BookingListView(generics.ListAPIView):
    """List bookings, cancelled ones included unless filtered out"""

    queryset = Booking.objects.all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = BookingFilter
    ordering_fields = ["booking_date", "start_time", "created_at"]
    ordering = ["booking_date", "start_time"]


class ConflictCheckView(APIView):
    """
    Check a proposed interval for an instructor.

    Always answers 200 with the verdict; callers branch on ``has_conflicts``.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        exclude_booking_id = data.get("exclude_booking_id")
        verdict = ConflictDetectionService.check_conflicts(
            data["resource_id"],
            data["start_time"],
            data["end_time"],
            exclude_booking_id=str(exclude_booking_id) if exclude_booking_id else None,
            suggest_alternatives=data["suggest_alternatives"],
        )
        return Response(verdict.to_dict(), status=status.HTTP_200_OK)


class FreeSlotsView(APIView):
    """Enumerate the instructor's slots for a date with their availability"""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        serializer = SlotQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        slots = SlotService.list_free_slots(
            data["resource_id"], data["date"], data["duration_minutes"]
        )
        return Response(
            {
                "resource_id": data["resource_id"],
                "date": data["date"].isoformat(),
                "duration_minutes": data["duration_minutes"],
                "slots": [slot.to_dict() for slot in slots],
            }
        )
