"""
Timezone helpers for rendering session times in emails.
"""

from datetime import datetime

import pytz

from .config import EMAIL_TIMEZONE, EMAIL_TIMEZONE_LABEL


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime (naive datetimes are treated as UTC)."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_email_timezone(dt: datetime, tz_name: str = EMAIL_TIMEZONE) -> datetime:
    """
    Convert a datetime to the timezone used in emails.

    Falls back to UTC for unknown timezone names.
    """
    utc_dt = ensure_utc(dt)
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return utc_dt.astimezone(tz)


def format_date_for_email(dt: datetime, tz_name: str = EMAIL_TIMEZONE) -> str:
    """
    Format a datetime as a full date.

    Returns:
        Formatted string like "Monday, December 8, 2024"
    """
    local_dt = to_email_timezone(dt, tz_name)
    return f"{local_dt:%A, %B} {local_dt.day}, {local_dt.year}"


def format_time_for_email(dt: datetime, tz_name: str = EMAIL_TIMEZONE) -> str:
    """
    Format a datetime as a clock time with timezone label.

    Returns:
        Formatted string like "1:00 PM ET"
    """
    local_dt = to_email_timezone(dt, tz_name)
    time_str = local_dt.strftime("%I:%M %p").lstrip("0")  # "1:00 PM" not "01:00 PM"
    label = EMAIL_TIMEZONE_LABEL if tz_name == EMAIL_TIMEZONE else local_dt.tzname()
    return f"{time_str} {label}"


def format_datetime_for_email(dt: datetime, tz_name: str = EMAIL_TIMEZONE) -> str:
    """Format as "Monday, December 8, 2024 at 1:00 PM ET"."""
    return f"{format_date_for_email(dt, tz_name)} at {format_time_for_email(dt, tz_name)}"
