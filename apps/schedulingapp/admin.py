# apps/schedulingapp/admin.py
from django.contrib import admin

from apps.schedulingapp.models import CourseSchedule, Enrollment


class EnrollmentInline(admin.TabularInline):
    """Inline admin for schedule enrollments"""

    model = Enrollment
    extra = 0
    readonly_fields = ["enrolled_at", "updated_at"]


@admin.register(CourseSchedule)
class CourseScheduleAdmin(admin.ModelAdmin):
    list_display = [
        "course_id",
        "instructor_id",
        "start_datetime",
        "end_datetime",
        "current_enrollment",
        "max_capacity",
        "status",
    ]
    list_filter = ["status", "start_datetime"]
    search_fields = ["course_id", "instructor_id", "title"]
    readonly_fields = ["created_at", "updated_at", "current_enrollment"]
    raw_id_fields = ["parent_schedule", "booking"]
    date_hierarchy = "start_datetime"
    inlines = [EnrollmentInline]


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ["participant_id", "schedule", "status", "waitlist_position", "enrolled_at"]
    list_filter = ["status"]
    search_fields = ["participant_id"]
    raw_id_fields = ["schedule"]
