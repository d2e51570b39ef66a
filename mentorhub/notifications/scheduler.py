"""
Scheduling service: creates the reminder emails for a session.

Scheduling is best-effort per recipient. Each email is planned, rendered,
tracked and submitted on its own; a failure is logged and collected in the
ScheduleResult and the loop moves on to the next recipient. Nothing raised
for one recipient reaches the caller.

Job tracking lifecycle for one email:
    pending (row written) -> scheduled (dispatcher accepted it)
    pending -> failed (dispatcher rejected it; retryable from retry.py)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Collection
from uuid import uuid4

import sentry_sdk

from mentorhub.enums import EmailJobStatus, EmailJobType
from mentorhub.sessions import (
    Participant,
    Session,
    get_session_participants,
    get_students,
)

from . import dispatch, job_store
from .context import build_session_context, render_job_email
from .errors import JobNotFoundError, JobStoreUnavailableError
from .jobs import EmailJob, JobKey
from .legacy import ScheduledEmailIds
from .schedule_times import calculate_schedule_times, is_valid_schedule_time

logger = logging.getLogger(__name__)


# Reminder types created from a session's schedule, in send order
REMINDER_JOB_TYPES = (
    EmailJobType.prep_48h,
    EmailJobType.prep_24h,
    EmailJobType.feedback_immediate,
)


@dataclass
class PlannedJob:
    key: JobKey
    participant: Participant
    send_at: datetime


@dataclass
class ScheduleResult:
    """Outcome of scheduling one session's emails."""

    batch_id: str
    scheduled: dict[JobKey, str] = field(default_factory=dict)
    skipped: list[tuple[JobKey, str]] = field(default_factory=list)
    failed: list[tuple[JobKey, str]] = field(default_factory=list)
    jobs: list[EmailJob] = field(default_factory=list)

    @property
    def email_ids(self) -> ScheduledEmailIds:
        """Scheduled emails as the legacy ``{"{type}_{email}": provider_id}`` map."""
        return {key.legacy_key: provider_id for key, provider_id in self.scheduled.items()}

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "scheduled": len(self.scheduled),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }


def plan_session_jobs(
    session: Session,
    job_types: Collection[EmailJobType] | None = None,
) -> list[PlannedJob]:
    """
    Work out which emails a session needs and when, without side effects.

    Prep reminders go to students only, and only when the session requires
    prep. Feedback reminders go to every participant when the session
    requires feedback. Send times are not validated here.

    Args:
        session: Session with resolved team and mentors
        job_types: Restrict planning to these types (default: all reminders)
    """
    if not session.scheduled_start:
        return []

    wanted = set(REMINDER_JOB_TYPES if job_types is None else job_types)
    times = calculate_schedule_times(session.scheduled_start, session.duration)
    planned: list[PlannedJob] = []
    seen: set[JobKey] = set()

    def add(job_type: EmailJobType, participant: Participant) -> None:
        key = JobKey(session.id, job_type, participant.email)
        if key in seen:
            return
        seen.add(key)
        planned.append(PlannedJob(key, participant, times.for_type(job_type)))

    if session.prep_required:
        for student in get_students(session):
            for job_type in (EmailJobType.prep_48h, EmailJobType.prep_24h):
                if job_type in wanted:
                    add(job_type, student)

    if session.feedback_required and EmailJobType.feedback_immediate in wanted:
        for participant in get_session_participants(session):
            add(EmailJobType.feedback_immediate, participant)

    return planned


async def _mark_failed(job: EmailJob, error: str) -> None:
    try:
        await job_store.update_job_status(
            job.job_id,
            EmailJobStatus.failed,
            last_error=error,
            increment_attempts=True,
        )
    except (JobStoreUnavailableError, JobNotFoundError) as e:
        logger.warning(f"Could not record failure for email job {job.job_id}: {e}")


async def _schedule_job(
    planned: PlannedJob,
    session: Session,
    session_context: dict,
    result: ScheduleResult,
    tracked: bool,
) -> None:
    """Schedule one email, recording the outcome in ``result``."""
    key = planned.key
    job = None
    try:
        if tracked:
            existing = await job_store.find_active_job(key)
            if existing:
                logger.info(
                    f"Skipping {key.job_type.value} for {key.recipient_email}: "
                    f"active job {existing.job_id} already exists"
                )
                result.skipped.append((key, "already scheduled"))
                return

        message = render_job_email(
            key.job_type, planned.participant, session, session_context
        )

        if tracked:
            job = await job_store.upsert_job(
                EmailJob(
                    job_id=str(uuid4()),
                    batch_id=result.batch_id,
                    session_id=session.id,
                    job_type=key.job_type,
                    recipient_email=key.recipient_email,
                    recipient_name=planned.participant.name,
                    recipient_role=planned.participant.role,
                    scheduled_for=planned.send_at,
                    status=EmailJobStatus.pending,
                    subject=message.subject,
                    body=message.body,
                )
            )

        provider_id = await dispatch.submit(
            message, planned.send_at, job_id=job.job_id if job else None
        )
    except Exception as e:
        logger.error(
            f"Failed to schedule {key.job_type.value} email for "
            f"{key.recipient_email} (session {session.id}): {e}"
        )
        result.failed.append((key, str(e)))
        if job:
            await _mark_failed(job, str(e))
        return

    result.scheduled[key] = provider_id
    if job:
        try:
            job = await job_store.update_job_status(
                job.job_id, EmailJobStatus.scheduled, provider_message_id=provider_id
            )
        except (JobStoreUnavailableError, JobNotFoundError) as e:
            logger.warning(f"Could not mark email job {job.job_id} scheduled: {e}")
        result.jobs.append(job)


async def schedule_session_jobs(
    session: Session,
    job_types: Collection[EmailJobType] | None = None,
    batch_id: str | None = None,
) -> ScheduleResult:
    """
    Schedule a session's reminder emails.

    Emails whose send time is in the past or beyond the schedule window are
    skipped. If the job store is down, emails are still submitted but not
    tracked. All jobs created by one call share a batch id.

    Args:
        session: Session with resolved team and mentors
        job_types: Restrict to these types (used by rescheduling)
        batch_id: Batch id to stamp on new jobs (generated if omitted)

    Returns:
        ScheduleResult listing scheduled, skipped and failed emails
    """
    result = ScheduleResult(batch_id=batch_id or str(uuid4()))

    if not dispatch.is_running():
        logger.warning(
            f"Email dispatcher not initialized, cannot schedule emails for session {session.id}"
        )
        return result

    plans = plan_session_jobs(session, job_types)
    if not plans:
        logger.info(f"No emails to schedule for session {session.id}")
        return result

    tracked = await job_store.is_available()
    if not tracked:
        logger.warning(
            f"Email job store unavailable, scheduling session {session.id} emails untracked"
        )

    session_context = build_session_context(session)
    for planned in plans:
        if not is_valid_schedule_time(planned.send_at):
            logger.info(
                f"Skipping {planned.key.job_type.value} for {planned.key.recipient_email}: "
                f"{planned.send_at.isoformat()} is outside the schedule window"
            )
            result.skipped.append((planned.key, "outside schedule window"))
            continue
        await _schedule_job(planned, session, session_context, result, tracked)

    logger.info(
        f"Scheduled {len(result.scheduled)} emails for session {session.id} "
        f"(skipped {len(result.skipped)}, failed {len(result.failed)}, batch {result.batch_id})"
    )
    if result.failed:
        sentry_sdk.capture_message(
            f"Failed to schedule {len(result.failed)} emails for session {session.id}"
        )
    return result


async def schedule_session_emails(session: Session) -> ScheduledEmailIds:
    """
    Schedule every reminder email for a newly created session.

    Returns:
        Map of ``"{type}_{email}"`` to provider message id for emails that
        were accepted by the dispatcher
    """
    result = await schedule_session_jobs(session)
    return result.email_ids
