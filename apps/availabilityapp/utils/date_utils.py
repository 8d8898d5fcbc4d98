# apps/availabilityapp/utils/date_utils.py
from datetime import date, datetime, time, timedelta

from django.conf import settings
from django.utils import timezone

from apps.availabilityapp.constants import DAY_NAMES
from utils.exceptions import InvalidTimeRangeError, ValidationError


def to_wall_clock(value):
    """
    Normalize a timestamp to a naive wall-clock datetime

    Args:
        value: datetime or ISO-8601 string (a trailing "Z" is accepted)

    Returns:
        Naive datetime in the project time zone
    """
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid ISO-8601 timestamp: {value}")
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    elif not isinstance(value, datetime):
        raise ValidationError(f"Expected a timestamp, got {type(value).__name__}")

    if timezone.is_aware(value):
        value = timezone.localtime(value).replace(tzinfo=None)
    return value


def to_storage_datetime(value):
    """Make a wall-clock datetime suitable for a DateTimeField"""
    value = to_wall_clock(value)
    if settings.USE_TZ:
        return timezone.make_aware(value)
    return value


def validate_interval(start, end):
    """
    Validate a same-day, non-empty interval

    Returns:
        Tuple of naive (start, end)

    Raises:
        InvalidTimeRangeError: if end <= start or the interval crosses midnight
    """
    start = to_wall_clock(start)
    end = to_wall_clock(end)

    if end <= start:
        raise InvalidTimeRangeError()
    if end.date() != start.date():
        # Only an interval ending exactly at the following midnight is allowed
        next_midnight = datetime.combine(start.date() + timedelta(days=1), time.min)
        if end != next_midnight:
            raise InvalidTimeRangeError("Interval must start and end on the same day")
    return start, end


def day_of_week(value):
    """
    Day of week with 0 = Sunday

    Python's weekday() is 0 = Monday, so shift by one.
    """
    return (value.weekday() + 1) % 7


def day_name(weekday):
    return DAY_NAMES[weekday]


def split_datetime(value):
    """Split a wall-clock datetime into (date, time) booking fields"""
    return value.date(), value.time().replace(microsecond=0)


def end_time_of(start, end):
    """
    Time-of-day used for the end of an interval

    An interval ending exactly at midnight is stored as 23:59:59 so that
    intraday comparisons keep working.
    """
    if end.date() != start.date():
        return time(23, 59, 59)
    return end.time().replace(microsecond=0)


def format_time(value):
    """HH:MM:SS representation used by the store"""
    return value.strftime("%H:%M:%S")


def get_date_range(start_date, end_date):
    """
    Get list of all dates in the specified range (inclusive)

    Args:
        start_date: Start date
        end_date: End date

    Returns:
        List of all dates in the range
    """
    delta = end_date - start_date
    return [start_date + timedelta(days=i) for i in range(delta.days + 1)]
