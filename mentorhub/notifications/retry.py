"""
Operator-triggered retry and resend of session emails.

There is no background retry loop: failed jobs stay failed until an
operator asks for a retry through the API. A retry resubmits the failed
job itself; a resend creates a new job that sends a completed email again.
"""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from mentorhub.enums import EmailJobStatus, EmailJobType

from . import dispatch, job_store
from .channels.email import EmailMessage
from .errors import (
    JobNotFoundError,
    JobNotResendableError,
    JobNotRetryableError,
    JobOwnershipError,
)
from .jobs import EmailJob
from .schedule_times import is_valid_schedule_time

logger = logging.getLogger(__name__)


EXPIRED_RETRY_ERROR = "Send time passed before retry"
SUPERSEDED_RETRY_ERROR = "Replaced by a newer email for the same recipient"


def _is_retryable(job: EmailJob) -> bool:
    # Update emails are sent on the spot; their send time is always in the past
    return job.status == EmailJobStatus.failed and job.job_type != EmailJobType.session_update


async def _get_owned_job(job_id: str, session_id: str | None) -> EmailJob:
    await job_store.require_available()
    job = await job_store.get_job(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if session_id is not None and job.session_id != session_id:
        raise JobOwnershipError(job_id, session_id)
    return job


async def retry_job(job: EmailJob) -> bool:
    """
    Resubmit one failed job with its original content and send time.

    A job is dropped (marked cancelled so it leaves the failed list) when
    its send time has passed, or when another job is already active for the
    same session, type and recipient. Returns True only if the job was
    resubmitted.
    """
    active = await job_store.find_active_job(job.key)
    if active is not None and active.job_id != job.job_id:
        logger.info(
            f"Dropping failed email job {job.job_id}: superseded by active job {active.job_id}"
        )
        await job_store.update_job_status(
            job.job_id, EmailJobStatus.cancelled, last_error=SUPERSEDED_RETRY_ERROR
        )
        return False

    if not is_valid_schedule_time(job.scheduled_for):
        logger.info(f"Dropping failed email job {job.job_id}: send time {job.scheduled_for} passed")
        await job_store.update_job_status(
            job.job_id, EmailJobStatus.cancelled, last_error=EXPIRED_RETRY_ERROR
        )
        return False

    message = EmailMessage(
        to_email=job.recipient_email, subject=job.subject, body=job.body
    )
    try:
        provider_id = await dispatch.submit(message, job.scheduled_for, job_id=job.job_id)
    except Exception as e:
        logger.error(f"Retry of email job {job.job_id} failed: {e}")
        await job_store.update_job_status(
            job.job_id, EmailJobStatus.failed, last_error=str(e), increment_attempts=True
        )
        return False

    await job_store.update_job_status(
        job.job_id,
        EmailJobStatus.scheduled,
        provider_message_id=provider_id,
        clear_last_error=True,
    )
    logger.info(f"Retried email job {job.job_id} as {provider_id}")
    return True


async def retry_job_by_id(job_id: str, session_id: str | None = None) -> EmailJob:
    """
    Retry a single failed job on operator request.

    Args:
        job_id: Email job to retry
        session_id: If given, the job must belong to this session

    Returns:
        The job after the attempt: scheduled if resubmitted, failed if the
        dispatcher rejected it again, cancelled if it was dropped

    Raises:
        JobStoreUnavailableError: If the job store is down
        JobNotFoundError: If the job does not exist
        JobOwnershipError: If the job belongs to another session
        JobNotRetryableError: If the job is not a failed reminder
    """
    job = await _get_owned_job(job_id, session_id)
    if job.status != EmailJobStatus.failed:
        raise JobNotRetryableError(
            job_id, f"only failed jobs can be retried (status: {job.status.value})"
        )
    if not _is_retryable(job):
        raise JobNotRetryableError(job_id, "update emails cannot be retried")

    await retry_job(job)
    return await job_store.get_job(job_id) or job


async def resend_job(job_id: str, session_id: str | None = None) -> EmailJob:
    """
    Send a completed email again as a new job, right away.

    The new job keeps the original batch, recipient and rendered content.

    Returns:
        The new job: scheduled if the dispatcher accepted it, failed if not

    Raises:
        JobStoreUnavailableError: If the job store is down
        JobNotFoundError: If the job does not exist
        JobOwnershipError: If the job belongs to another session
        JobNotResendableError: If the job has not completed, or another
            email for the same recipient is still active
    """
    job = await _get_owned_job(job_id, session_id)
    if job.status != EmailJobStatus.completed:
        raise JobNotResendableError(
            job_id, "only completed emails can be resent, use retry for failed emails"
        )
    active = await job_store.find_active_job(job.key)
    if active is not None:
        raise JobNotResendableError(job_id, f"active job {active.job_id} already exists")

    new_job = await job_store.upsert_job(
        EmailJob(
            job_id=str(uuid4()),
            batch_id=job.batch_id,
            session_id=job.session_id,
            job_type=job.job_type,
            recipient_email=job.recipient_email,
            recipient_name=job.recipient_name,
            recipient_role=job.recipient_role,
            scheduled_for=datetime.now(timezone.utc),
            status=EmailJobStatus.pending,
            subject=job.subject,
            body=job.body,
        )
    )

    message = EmailMessage(to_email=job.recipient_email, subject=job.subject, body=job.body)
    try:
        provider_id = await dispatch.submit(message, None, job_id=new_job.job_id)
    except Exception as e:
        logger.error(f"Resend of email job {job_id} failed: {e}")
        return await job_store.update_job_status(
            new_job.job_id, EmailJobStatus.failed, last_error=str(e), increment_attempts=True
        )

    logger.info(f"Resent email job {job_id} as {new_job.job_id} ({provider_id})")
    return await job_store.update_job_status(
        new_job.job_id, EmailJobStatus.scheduled, provider_message_id=provider_id
    )


async def retry_all_failed_jobs_for_session(session_id: str) -> dict:
    """
    Retry every failed reminder email for a session.

    Failed update emails are left alone and not counted.

    Returns:
        {"total": failed jobs found, "retried": jobs resubmitted}

    Raises:
        JobStoreUnavailableError: If the job store is down
    """
    await job_store.require_available()

    jobs = await job_store.get_session_jobs(session_id)
    failed_jobs = [job for job in jobs if _is_retryable(job)]

    retried = 0
    for job in failed_jobs:
        if await retry_job(job):
            retried += 1

    logger.info(f"Retried {retried}/{len(failed_jobs)} failed emails for session {session_id}")
    return {"total": len(failed_jobs), "retried": retried}
