from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from bellringer.constants import SCHOOL_TZ


format_norm = "%H:%M"


def minutes(value: int) -> timedelta:
    """Single conversion point from integer minutes to a duration."""
    return timedelta(minutes=value)


def end_of_interval(start: datetime, duration_minutes: int) -> datetime:
    return start + minutes(duration_minutes)


def normalize_time_to_datetime(time: time, tz: ZoneInfo, date: date) -> datetime:
    normalized_time = datetime.combine(date, time, tz)
    return normalized_time


def truncate_to_minute(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


def diff_time_in_sec(t1: datetime, t2: datetime) -> float:
    return (t1 - t2).total_seconds()


def now_in_school_tz() -> datetime:
    return datetime.now(SCHOOL_TZ)


def parse_time(raw_time: str) -> time:
    """
    Parse time string in either 24-hour format (HH:MM) or 12-hour format (HH:MMAM/PM).

    Args:
        raw_time: Time string in format "08:00" or "8:00AM"

    Returns:
        datetime.time object
    """
    try:
        return datetime.strptime(raw_time, format_norm).time()
    except ValueError:
        try:
            return datetime.strptime(raw_time, "%I:%M%p").time()
        except ValueError:
            raise ValueError(f"Time '{raw_time}' does not match expected formats: 'HH:MM' or 'HH:MMAM/PM'")


def format_time(value: time) -> str:
    return value.strftime(format_norm)
