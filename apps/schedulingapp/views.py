"""
Scheduling app views
Handles endpoints for scheduling, rescheduling and cancelling bookings,
recurring series and enrollments
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.schedulingapp.filters import CourseScheduleFilter, EnrollmentFilter
from apps.schedulingapp.models import CourseSchedule, Enrollment
from apps.schedulingapp.serializers import (
    AvailableInstructorsSerializer,
    BulkScheduleSerializer,
    CourseScheduleSerializer,
    EnrollmentSerializer,
    EnrollSerializer,
    RecurrenceRuleSerializer,
    RescheduleSerializer,
    ScheduleRequestSerializer,
)
from apps.schedulingapp.services.enrollment_service import EnrollmentService
from apps.schedulingapp.services.recurrence_service import RecurrenceRule, RecurrenceService
from apps.schedulingapp.services.scheduling_service import (
    ERROR_CONFLICT,
    ERROR_LOCKED,
    ERROR_STORE,
    SchedulingService,
)

UUID_REGEX = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


def schedule_result_status(result, success_status=status.HTTP_200_OK):
    """HTTP status for a ScheduleResult"""
    if result.success:
        return success_status
    return {
        ERROR_CONFLICT: status.HTTP_409_CONFLICT,
        ERROR_LOCKED: status.HTTP_423_LOCKED,
        ERROR_STORE: status.HTTP_503_SERVICE_UNAVAILABLE,
    }.get(result.error, status.HTTP_400_BAD_REQUEST)


class ScheduleView(APIView):
    """
    Book an instructor for an interval.

    Answers 201 on success and 409 with the conflict verdict (including
    suggested alternatives) when the interval is not free.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = ScheduleRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SchedulingService.schedule(serializer.to_request())
        return Response(
            result.to_dict(),
            status=schedule_result_status(result, status.HTTP_201_CREATED),
        )


class RescheduleBookingView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, booking_id):
        """Move a booking to a new interval"""
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SchedulingService.reschedule(
            booking_id,
            serializer.validated_data["start_time"],
            serializer.validated_data["end_time"],
        )
        return Response(result.to_dict(), status=schedule_result_status(result))


class CancelBookingView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, booking_id):
        result = SchedulingService.cancel(booking_id)
        return Response(result.to_dict(), status=schedule_result_status(result))


class AvailableInstructorsView(APIView):
    """Annotate candidate instructors with their availability for an interval"""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = AvailableInstructorsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        results = SchedulingService.find_available_resources(
            data["resource_ids"], data["start_time"], data["end_time"]
        )
        return Response(
            {
                "available": [r.resource_id for r in results if r.available],
                "results": [r.to_dict() for r in results],
            }
        )


class BulkScheduleView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        """Book instructors on every matching weekday of a date range"""
        serializer = BulkScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SchedulingService.bulk_schedule(**serializer.validated_data)
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)


class CourseScheduleViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for course schedules.

    Schedules are created through the schedule endpoint; this viewset adds
    actions for:
    - Expanding a schedule into a recurring series
    - Enrolling participants
    - Listing the waitlist
    """

    queryset = CourseSchedule.objects.all()
    serializer_class = CourseScheduleSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = CourseScheduleFilter
    ordering_fields = ["start_datetime", "created_at"]
    ordering = ["start_datetime"]
    lookup_value_regex = UUID_REGEX

    @action(detail=True, methods=["post"])
    def recurrence(self, request, pk=None):
        """Expand the schedule with a recurrence rule"""
        schedule = self.get_object()

        serializer = RecurrenceRuleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rule = RecurrenceRule.from_dict(serializer.validated_data)

        result = RecurrenceService.expand(schedule, rule)
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def enroll(self, request, pk=None):
        serializer = EnrollSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EnrollmentService.enroll(pk, serializer.validated_data["participant_id"])
        return Response(
            result.to_dict(),
            status=status.HTTP_201_CREATED if result.success else status.HTTP_400_BAD_REQUEST,
        )

    @action(detail=True, methods=["get"])
    def waitlist(self, request, pk=None):
        entries = EnrollmentService.waitlist(pk)
        return Response(EnrollmentSerializer(entries, many=True).data)


class EnrollmentViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Enrollment.objects.select_related("schedule")
    serializer_class = EnrollmentSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = EnrollmentFilter
    lookup_value_regex = UUID_REGEX

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        """Cancel an enrollment and promote the first waitlisted participant"""
        result = EnrollmentService.cancel_enrollment(pk)
        return Response(
            result.to_dict(),
            status=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        )
