"""
Rescheduling of session emails after a time or duration change.

Emails embed the session date and time, and the dispatcher can move an
email but not rewrite it, so every existing email is cancelled and a fresh
set is rendered. Which reminders come back depends on how close the new
time is:

    more than 24h away  -> prep24h for students + feedback for everyone
    24h or less         -> feedback for everyone only

The 48h prep reminder is never recreated on a reschedule. Cancellation
always runs before any new email is submitted.
"""

import logging
from datetime import datetime
from uuid import uuid4

from mentorhub.config import PREP_REMINDER_CUTOFF_HOURS
from mentorhub.enums import EmailJobType
from mentorhub.sessions import Session

from . import dispatch
from .cancellation import cancel_session_emails, cancel_session_jobs
from .errors import MessageNotFoundError
from .jobs import JobKey
from .legacy import ScheduledEmailIds
from .schedule_times import calculate_schedule_times, hours_until, is_valid_schedule_time
from .scheduler import ScheduleResult, schedule_session_jobs

logger = logging.getLogger(__name__)


def get_reschedule_job_types(hours_until_session: float) -> tuple[EmailJobType, ...]:
    """Reminder types to recreate for a session this many hours away."""
    if hours_until_session > PREP_REMINDER_CUTOFF_HOURS:
        return (EmailJobType.prep_24h, EmailJobType.feedback_immediate)
    return (EmailJobType.feedback_immediate,)


async def reschedule_session_jobs(
    session: Session,
    current_email_ids: ScheduledEmailIds | None = None,
) -> ScheduleResult:
    """
    Replace a session's emails after its start time or duration changed.

    Args:
        session: The session with its new start time and duration
        current_email_ids: Legacy inline map for emails not in the job store

    Returns:
        ScheduleResult for the replacement emails
    """
    # 1. Cancel everything first so no recipient gets both old and new reminders
    cancel_result = await cancel_session_jobs(session.id)
    if current_email_ids:
        await cancel_session_emails(
            current_email_ids, skip_message_ids=set(cancel_result["message_ids"])
        )

    if not session.scheduled_start:
        logger.info(f"Session {session.id} has no start time, not rescheduling emails")
        return ScheduleResult(batch_id=str(uuid4()))

    # 2. Pick reminder types by proximity of the new time
    hours = hours_until(session.scheduled_start)
    job_types = get_reschedule_job_types(hours)
    logger.info(
        f"Rescheduling emails for session {session.id} ({hours:.1f}h away): "
        f"{', '.join(t.value for t in job_types)}"
    )

    # 3. Render and submit the replacements
    return await schedule_session_jobs(session, job_types=job_types)


async def handle_prep_reminder_rescheduling(
    session: Session,
    current_email_ids: ScheduledEmailIds | None = None,
) -> ScheduledEmailIds:
    """
    Reschedule a session's emails and return the new legacy map.

    If the dispatcher is not running nothing is cancelled or created, and
    the current map is returned unchanged.
    """
    if not dispatch.is_running():
        logger.warning(
            f"Email dispatcher not initialized, keeping existing emails for session {session.id}"
        )
        return dict(current_email_ids or {})

    result = await reschedule_session_jobs(session, current_email_ids)
    return result.email_ids


async def reschedule_session_emails(
    session_id: str,
    current_email_ids: ScheduledEmailIds,
    new_start: datetime,
    new_duration: int | None = None,
) -> ScheduledEmailIds:
    """
    Move legacy inline-tracked emails to match a new session time.

    Only the send time changes; the email content keeps the old date. Emails
    whose new time is outside the schedule window are cancelled and dropped.
    Used for sessions that still keep their email map on the record.

    Returns:
        The map of emails that are still queued
    """
    times = calculate_schedule_times(new_start, new_duration)
    updated: ScheduledEmailIds = {}

    for legacy_key, message_id in current_email_ids.items():
        try:
            key = JobKey.from_legacy_key(session_id, legacy_key)
            new_time = times.for_type(key.job_type)
        except ValueError as e:
            logger.warning(f"Dropping unrecognised scheduled email {legacy_key}: {e}")
            continue

        try:
            if is_valid_schedule_time(new_time):
                await dispatch.update_time(message_id, new_time)
                updated[legacy_key] = message_id
            else:
                await dispatch.cancel(message_id)
                logger.info(f"Cancelled {legacy_key}: new send time {new_time} out of window")
        except MessageNotFoundError:
            logger.info(f"Email {legacy_key} already sent or cancelled, dropping it")
        except Exception as e:
            logger.error(f"Failed to move email {legacy_key} ({message_id}): {e}")

    return updated
