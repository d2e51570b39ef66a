"""
Schedule time calculation for session emails.

Every reminder offset lives here so initial scheduling and rescheduling
always agree on when an email goes out.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from mentorhub.config import DEFAULT_SESSION_DURATION_MINUTES, MAX_SCHEDULE_DAYS
from mentorhub.enums import EmailJobType
from mentorhub.timezone import ensure_utc


# =============================================================================
# Reminder offsets - SINGLE SOURCE OF TRUTH
# =============================================================================

PREP_48H_OFFSET = timedelta(hours=-48)
PREP_24H_OFFSET = timedelta(hours=-24)


@dataclass(frozen=True)
class ScheduleTimes:
    """Target send times for one session."""

    prep_48h: datetime
    prep_24h: datetime
    feedback_immediate: datetime

    def for_type(self, job_type: EmailJobType) -> datetime:
        if job_type == EmailJobType.prep_48h:
            return self.prep_48h
        if job_type == EmailJobType.prep_24h:
            return self.prep_24h
        if job_type == EmailJobType.feedback_immediate:
            return self.feedback_immediate
        raise ValueError(f"No schedule offset for job type {job_type.value}")


def calculate_schedule_times(
    scheduled_start: datetime,
    duration_minutes: int | None = None,
) -> ScheduleTimes:
    """
    Calculate when each reminder type should be sent.

    Args:
        scheduled_start: Session start (naive datetimes are treated as UTC)
        duration_minutes: Session length; feedback goes out when it ends

    Returns:
        ScheduleTimes with prep48h = start - 48h, prep24h = start - 24h,
        feedbackImmediate = start + duration
    """
    start = ensure_utc(scheduled_start)
    duration = duration_minutes or DEFAULT_SESSION_DURATION_MINUTES
    return ScheduleTimes(
        prep_48h=start + PREP_48H_OFFSET,
        prep_24h=start + PREP_24H_OFFSET,
        feedback_immediate=start + timedelta(minutes=duration),
    )


def is_valid_schedule_time(
    scheduled_for: datetime,
    now: datetime | None = None,
    max_days: int = MAX_SCHEDULE_DAYS,
) -> bool:
    """
    Check whether an email can be scheduled for the given time.

    Valid times are strictly in the future and at most ``max_days`` ahead.
    An invalid time means "do not schedule", never an error.
    """
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    target = ensure_utc(scheduled_for)
    return now < target <= now + timedelta(days=max_days)


def hours_until(when: datetime, now: datetime | None = None) -> float:
    """Hours from now until ``when`` (negative if it has passed)."""
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    return (ensure_utc(when) - now).total_seconds() / 3600
