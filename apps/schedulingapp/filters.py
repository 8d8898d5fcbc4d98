# apps/schedulingapp/filters.py
from django_filters import rest_framework as filters

from apps.schedulingapp.models import CourseSchedule, Enrollment


class CourseScheduleFilter(filters.FilterSet):
    """Filter course schedules by instructor, course, status and dates"""

    instructor_id = filters.CharFilter(field_name="instructor_id")
    course_id = filters.CharFilter(field_name="course_id")
    location_id = filters.CharFilter(field_name="location_id")
    status = filters.ChoiceFilter(choices=CourseSchedule.STATUS_CHOICES)
    start_date = filters.DateFilter(field_name="start_datetime", lookup_expr="date__gte")
    end_date = filters.DateFilter(field_name="start_datetime", lookup_expr="date__lte")
    parent_schedule = filters.UUIDFilter(field_name="parent_schedule__id")

    class Meta:
        model = CourseSchedule
        fields = [
            "instructor_id",
            "course_id",
            "location_id",
            "status",
            "start_date",
            "end_date",
            "parent_schedule",
        ]


class EnrollmentFilter(filters.FilterSet):
    schedule = filters.UUIDFilter(field_name="schedule__id")
    participant_id = filters.CharFilter(field_name="participant_id")
    status = filters.ChoiceFilter(choices=Enrollment.STATUS_CHOICES)

    class Meta:
        model = Enrollment
        fields = ["schedule", "participant_id", "status"]
