"""
"Your session has been updated" emails.

These are sent right away to participants picked by whoever edited the
session. They are separate from the reminder pipeline: nothing is queued
and nothing is rescheduled later.
"""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from mentorhub.enums import EmailJobStatus, EmailJobType
from mentorhub.sessions import (
    Participant,
    Session,
    SessionChanges,
    get_session_participants,
)
from mentorhub.timezone import format_datetime_for_email

from . import dispatch, job_store
from .context import build_session_context, render_job_email
from .errors import JobStoreUnavailableError
from .jobs import EmailJob

logger = logging.getLogger(__name__)


def _describe(value, formatter=str, empty: str = "none") -> str:
    return formatter(value) if value not in (None, "") else empty


def format_changes(changes: SessionChanges) -> str:
    """
    Describe session changes as a bulleted list for the email body.

    Example:
        - Time: Monday, December 8, 2024 at 1:00 PM ET → Tuesday, ...
        - Duration: 60 minutes → 90 minutes
    """
    lines = []
    if changes.scheduled_start:
        old = _describe(changes.scheduled_start.old, format_datetime_for_email, "not set")
        new = _describe(changes.scheduled_start.new, format_datetime_for_email, "not set")
        lines.append(f"- Time: {old} → {new}")
    if changes.duration:
        lines.append(
            f"- Duration: {changes.duration.old} minutes → {changes.duration.new} minutes"
        )
    if changes.location:
        old = _describe(changes.location.old)
        new = _describe(changes.location.new)
        lines.append(f"- Location: {old} → {new}")
    if changes.meeting_url:
        if changes.meeting_url.new:
            lines.append(f"- Meeting link: {changes.meeting_url.new}")
        else:
            lines.append("- Meeting link: removed")
    return "\n".join(lines)


async def _record_update(
    session: Session,
    participant: Participant,
    subject: str,
    body: str,
    batch_id: str,
    status: EmailJobStatus,
    provider_message_id: str | None = None,
    last_error: str | None = None,
) -> None:
    try:
        await job_store.upsert_job(
            EmailJob(
                job_id=str(uuid4()),
                batch_id=batch_id,
                session_id=session.id,
                job_type=EmailJobType.session_update,
                recipient_email=participant.email,
                recipient_name=participant.name,
                recipient_role=participant.role,
                scheduled_for=datetime.now(timezone.utc),
                status=status,
                subject=subject,
                body=body,
                provider_message_id=provider_message_id,
                last_error=last_error,
                attempts=1,
            )
        )
    except JobStoreUnavailableError as e:
        logger.warning(f"Could not record update email to {participant.email}: {e}")


async def send_session_update_notifications(
    session: Session,
    changes: SessionChanges,
    recipient_ids: list[str],
) -> dict:
    """
    Email selected participants about changes to their session.

    Args:
        session: The session after the update
        changes: What changed (old -> new per field)
        recipient_ids: Contact ids of the participants to notify

    Returns:
        {"sent": N, "failed": N}
    """
    if changes.is_empty() or not recipient_ids:
        return {"sent": 0, "failed": 0}

    wanted = set(recipient_ids)
    recipients = [p for p in get_session_participants(session) if p.contact_id in wanted]
    missing = wanted - {p.contact_id for p in recipients}
    if missing:
        logger.warning(
            f"Skipping update email for {len(missing)} recipients not in session {session.id}"
        )

    session_context = build_session_context(session)
    extra_context = {"changes_text": format_changes(changes)}
    tracked = await job_store.is_available()
    batch_id = str(uuid4())

    sent = 0
    failed = 0
    for participant in recipients:
        message = None
        try:
            message = render_job_email(
                EmailJobType.session_update,
                participant,
                session,
                session_context,
                extra_context,
            )
            message_id = await dispatch.send_now(message)
        except Exception as e:
            logger.error(f"Failed to send update email to {participant.email}: {e}")
            failed += 1
            # A message that never rendered has nothing worth keeping
            if tracked and message is not None:
                await _record_update(
                    session, participant, message.subject, message.body, batch_id,
                    EmailJobStatus.failed, last_error=str(e),
                )
            continue

        sent += 1
        if tracked:
            await _record_update(
                session, participant, message.subject, message.body, batch_id,
                EmailJobStatus.completed, provider_message_id=message_id,
            )

    logger.info(f"Sent {sent} update emails for session {session.id} ({failed} failed)")
    return {"sent": sent, "failed": failed}
