# apps/availabilityapp/constants.py
from datetime import time

from django.utils.translation import gettext_lazy as _

# 0 = Sunday, matching the stored day_of_week values
WEEKDAY_CHOICES = (
    (0, _("Sunday")),
    (1, _("Monday")),
    (2, _("Tuesday")),
    (3, _("Wednesday")),
    (4, _("Thursday")),
    (5, _("Friday")),
    (6, _("Saturday")),
)

DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

AVAILABILITY_TYPE_AVAILABLE = "available"
AVAILABILITY_TYPE_UNAVAILABLE = "unavailable"

AVAILABILITY_TYPE_CHOICES = (
    (AVAILABILITY_TYPE_AVAILABLE, _("Available")),
    (AVAILABILITY_TYPE_UNAVAILABLE, _("Unavailable")),
)

EXCEPTION_TYPE_CHOICES = (
    ("out_of_office", _("Out of Office")),
    ("unavailable", _("Unavailable")),
    ("busy", _("Busy")),
    ("available", _("Available")),
)

# Exception kinds that take time away from the instructor
BLOCKING_EXCEPTION_TYPES = ("out_of_office", "unavailable", "busy")

BOOKING_TYPE_CHOICES = (
    ("course_instruction", _("Course Instruction")),
    ("training_session", _("Training Session")),
    ("meeting", _("Meeting")),
    ("administrative", _("Administrative")),
    ("personal", _("Personal")),
)

BOOKING_STATUS_CHOICES = (
    ("scheduled", _("Scheduled")),
    ("confirmed", _("Confirmed")),
    ("completed", _("Completed")),
    ("cancelled", _("Cancelled")),
)

BOOKING_STATUS_CANCELLED = "cancelled"

# Alternative slot search
BUSINESS_DAY_START = time(8, 0)
BUSINESS_DAY_END = time(18, 0)
SLOT_STEP_MINUTES = 30
MAX_SUGGESTED_ALTERNATIVES = 3
DEFAULT_SLOT_DURATION_MINUTES = 60
