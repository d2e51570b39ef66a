"""
Context building and rendering for session emails.

Emails are rendered when a job is created, from the session as it is at
that moment. A reschedule therefore re-renders rather than reusing old
content, since the body embeds the date and time.
"""

from mentorhub.enums import EmailJobType, RecipientRole
from mentorhub.sessions import Participant, Session, format_mentor_names
from mentorhub.timezone import format_date_for_email, format_time_for_email

from .channels.email import EmailMessage
from .templates import render_email
from .urls import build_feedback_url, build_prep_url, build_session_url


def build_session_context(session: Session) -> dict:
    """
    Build the template variables shared by every email about a session.

    Args:
        session: Session with a scheduled start

    Returns:
        Dict with session_type, mentor_name, team_name, session_date,
        session_time, duration_minutes and the session/prep/feedback URLs
    """
    return {
        "session_type": session.session_type_label,
        "mentor_name": format_mentor_names(session),
        "team_name": session.team_name,
        "session_date": format_date_for_email(session.scheduled_start),
        "session_time": format_time_for_email(session.scheduled_start),
        "duration_minutes": session.duration_minutes,
        "session_url": build_session_url(session.id),
        "prep_url": build_prep_url(session.id),
        "feedback_url": build_feedback_url(session.id),
    }


def get_message_type(job_type: EmailJobType, role: RecipientRole) -> str:
    """Map a job type and recipient role to a messages.yaml entry."""
    if job_type == EmailJobType.prep_48h:
        return "prep_reminder_48h"
    if job_type == EmailJobType.prep_24h:
        return "prep_reminder_24h"
    if job_type == EmailJobType.feedback_immediate:
        return "feedback_mentor" if role == RecipientRole.mentor else "feedback_student"
    if job_type == EmailJobType.session_update:
        return "session_update"
    raise ValueError(f"No template for job type {job_type}")


def render_job_email(
    job_type: EmailJobType,
    participant: Participant,
    session: Session,
    session_context: dict | None = None,
    extra_context: dict | None = None,
) -> EmailMessage:
    """
    Render the email one participant receives for one job type.

    Args:
        session_context: Precomputed build_session_context(session), to
                         avoid rebuilding it for every recipient
        extra_context: Additional variables (e.g. changes_text for updates)
    """
    context = dict(session_context or build_session_context(session))
    context["name"] = participant.name
    if extra_context:
        context.update(extra_context)

    subject, body = render_email(get_message_type(job_type, participant.role), context)
    return EmailMessage(to_email=participant.email, subject=subject, body=body)
