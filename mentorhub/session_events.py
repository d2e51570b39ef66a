"""
Session lifecycle hooks for email notifications.

Called by whatever creates, edits or deletes sessions. Every hook is
best-effort with Sentry reporting: a notification failure never fails the
session operation that triggered it.
"""

import logging

import sentry_sdk

from .enums import SessionStatus
from .notifications.cancellation import (
    cancel_and_delete_session_jobs,
    cancel_session_jobs,
)
from .notifications.legacy import (
    parse_scheduled_email_ids,
    stringify_scheduled_email_ids,
)
from .notifications.rescheduling import reschedule_session_jobs
from .notifications.scheduler import schedule_session_jobs
from .notifications.updates import send_session_update_notifications
from .sessions import Session, SessionSource, diff_sessions

logger = logging.getLogger(__name__)


def _flag_turned_off(before: bool, after: bool) -> bool:
    return before and not after


async def on_session_created(session: Session) -> dict:
    """
    Schedule reminder emails for a new session.

    Returns:
        {"batch_id", "scheduled", "skipped", "failed"} or {"error": ...}
    """
    try:
        result = await schedule_session_jobs(session)
    except Exception as e:
        logger.error(f"Failed to schedule emails for new session {session.id}: {e}")
        sentry_sdk.capture_exception(e)
        return {"error": str(e)}
    return result.to_dict()


async def on_session_updated(
    before: Session,
    after: Session,
    notification_recipients: list[str] | None = None,
) -> dict:
    """
    Bring a session's emails in line with an edit.

    - Status changed to Cancelled: cancel all emails
    - Start time or duration changed: replace emails (proximity rules apply)
    - Prep or feedback requirement switched off: cancel and schedule again
    - Selected recipients get an update email listing what changed

    Returns:
        Dict describing what was done, e.g. {"action": "rescheduled", ...}
    """
    summary: dict = {"action": "none"}
    changes = diff_sessions(before, after)

    try:
        if after.status == SessionStatus.cancelled:
            if before.status != SessionStatus.cancelled:
                summary = {"action": "cancelled", **await cancel_session_jobs(after.id)}
        elif changes.time_changed:
            legacy_ids = parse_scheduled_email_ids(before.scheduled_email_ids)
            result = await reschedule_session_jobs(after, legacy_ids)
            summary = {"action": "rescheduled", **result.to_dict()}
            summary["scheduled_email_ids"] = stringify_scheduled_email_ids(result.email_ids)
        elif _flag_turned_off(before.prep_required, after.prep_required) or _flag_turned_off(
            before.feedback_required, after.feedback_required
        ):
            await cancel_session_jobs(after.id)
            result = await schedule_session_jobs(after)
            summary = {"action": "requirements_changed", **result.to_dict()}
    except Exception as e:
        logger.error(f"Failed to update emails for session {after.id}: {e}")
        sentry_sdk.capture_exception(e)
        summary = {"action": "error", "error": str(e)}

    if notification_recipients and not changes.is_empty():
        try:
            summary["notifications"] = await send_session_update_notifications(
                after, changes, notification_recipients
            )
        except Exception as e:
            logger.error(f"Failed to send update emails for session {after.id}: {e}")
            sentry_sdk.capture_exception(e)
            summary["notifications"] = {"error": str(e)}

    return summary


async def on_session_deleted(session_id: str) -> dict:
    """Cancel a deleted session's emails and drop its job records."""
    try:
        return await cancel_and_delete_session_jobs(session_id)
    except Exception as e:
        logger.error(f"Failed to clean up emails for deleted session {session_id}: {e}")
        sentry_sdk.capture_exception(e)
        return {"error": str(e)}


# ============================================================================
# Session source wrappers
# ============================================================================


async def update_session_with_notifications(
    source: SessionSource,
    session_id: str,
    fields: dict,
    notification_recipients: list[str] | None = None,
) -> Session | None:
    """
    Apply a session edit through the session source, then sync its emails.

    When the session record still carries an inline email map, the new map
    is written back to it.

    Returns:
        The updated session, or None if it does not exist
    """
    before = await source.get_session_detail(session_id)
    if before is None:
        return None

    await source.update_session(session_id, fields)
    after = await source.get_session_detail(session_id)
    if after is None:
        return None

    summary = await on_session_updated(before, after, notification_recipients)
    if before.scheduled_email_ids is not None and "scheduled_email_ids" in summary:
        await source.update_session(
            session_id, {"scheduled_email_ids": summary["scheduled_email_ids"]}
        )
        after.scheduled_email_ids = summary["scheduled_email_ids"]
    return after


async def delete_session_with_notifications(source: SessionSource, session_id: str) -> None:
    """Cancel a session's emails, then delete it through the session source."""
    await on_session_deleted(session_id)
    await source.delete_session(session_id)
