"""
Cancellation of scheduled session emails.

Cancellation accompanies session deletes and reschedules, which must go
ahead regardless, so failures here are logged and counted, never raised.
The one exception is cancel_job, an explicit operator action on a single
tracked job, which refuses cleanly when the job store is down.
"""

import logging

from mentorhub.enums import EmailJobStatus

from . import dispatch, job_store
from .errors import (
    JobNotCancellableError,
    JobNotFoundError,
    JobOwnershipError,
    JobStoreUnavailableError,
)
from .jobs import EmailJob
from .legacy import ScheduledEmailIds

logger = logging.getLogger(__name__)


OPERATOR_CANCELLABLE_STATUSES = frozenset(
    {EmailJobStatus.pending, EmailJobStatus.scheduled}
)

SUPERSEDED_ERROR = "Superseded: session emails were cancelled"


async def _cancel_one(job: EmailJob) -> bool:
    """
    Cancel one job at the dispatcher, then mark it cancelled locally.

    A message the dispatcher no longer holds (already sent or cancelled)
    still counts as cancelled. Any other error leaves the job untouched.
    """
    try:
        if job.provider_message_id:
            await dispatch.cancel(job.provider_message_id)
        await job_store.update_job_status(
            job.job_id, EmailJobStatus.cancelled, clear_provider_message_id=True
        )
    except Exception as e:
        logger.warning(f"Failed to cancel email job {job.job_id} ({job.recipient_email}): {e}")
        return False
    return True


async def _supersede_failed(jobs: list[EmailJob]) -> int:
    """
    Mark failed jobs cancelled so an operator retry cannot bring them back.

    Failed jobs hold no queued message, so the dispatcher is not called.
    """
    superseded = 0
    for job in jobs:
        try:
            await job_store.update_job_status(
                job.job_id,
                EmailJobStatus.cancelled,
                clear_provider_message_id=True,
                last_error=job.last_error or SUPERSEDED_ERROR,
            )
        except Exception as e:
            logger.warning(f"Failed to supersede failed email job {job.job_id}: {e}")
            continue
        superseded += 1
    return superseded


async def cancel_jobs(jobs: list[EmailJob]) -> dict:
    """
    Cancel each given job, one at a time.

    Returns:
        {"cancelled": N, "failed": N, "message_ids": [...]} where message_ids
        lists the provider ids that were attempted
    """
    cancelled = 0
    failed = 0
    message_ids = []
    for job in jobs:
        if job.provider_message_id:
            message_ids.append(job.provider_message_id)
        if await _cancel_one(job):
            cancelled += 1
        else:
            failed += 1
    return {"cancelled": cancelled, "failed": failed, "message_ids": message_ids}


async def cancel_session_jobs(session_id: str) -> dict:
    """
    Cancel every active (pending, scheduled or processing) job for a session.

    Processing jobs are attempted too; the dispatcher reports in-flight
    messages as already gone, which is harmless. Failed jobs are marked
    cancelled as well so a later retry cannot resurrect an email for a
    send time that no longer applies.

    Returns:
        {"cancelled": N, "failed": N, "message_ids": [...], "superseded": N},
        plus {"error": "job_store_unavailable"} if jobs could not be listed
    """
    try:
        jobs = await job_store.get_session_jobs(session_id)
    except JobStoreUnavailableError as e:
        logger.warning(f"Cannot cancel emails for session {session_id}: {e}")
        return {
            "cancelled": 0,
            "failed": 0,
            "message_ids": [],
            "superseded": 0,
            "error": "job_store_unavailable",
        }

    active = [job for job in jobs if job.is_active]
    leftovers = [job for job in jobs if job.status == EmailJobStatus.failed]

    if active:
        result = await cancel_jobs(active)
        logger.info(
            f"Cancelled {result['cancelled']}/{len(active)} emails for session {session_id}"
            + (f" ({result['failed']} failed)" if result["failed"] else "")
        )
    else:
        result = {"cancelled": 0, "failed": 0, "message_ids": []}

    result["superseded"] = await _supersede_failed(leftovers)
    if result["superseded"]:
        logger.info(f"Superseded {result['superseded']} failed emails for session {session_id}")
    return result


async def cancel_session_emails(
    current_email_ids: ScheduledEmailIds,
    skip_message_ids: set[str] | None = None,
) -> None:
    """
    Cancel emails listed in a legacy inline map.

    Args:
        current_email_ids: Map of ``"{type}_{email}"`` to provider message id
        skip_message_ids: Provider ids already handled through the job store
    """
    for key, message_id in current_email_ids.items():
        if skip_message_ids and message_id in skip_message_ids:
            continue
        try:
            await dispatch.cancel(message_id)
        except Exception as e:
            logger.warning(f"Failed to cancel email {key} ({message_id}): {e}")


async def cancel_job(job_id: str, session_id: str | None = None) -> bool:
    """
    Cancel a single tracked job on operator request.

    Only pending and scheduled jobs can be cancelled this way.

    Args:
        job_id: Email job to cancel
        session_id: If given, the job must belong to this session

    Returns:
        True if cancelled, False if the dispatcher refused

    Raises:
        JobStoreUnavailableError: If the job store is down
        JobNotFoundError: If the job does not exist
        JobOwnershipError: If the job belongs to another session
        JobNotCancellableError: If the job is past the cancellable stage
    """
    await job_store.require_available()

    job = await job_store.get_job(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if session_id is not None and job.session_id != session_id:
        raise JobOwnershipError(job_id, session_id)
    if job.status not in OPERATOR_CANCELLABLE_STATUSES:
        raise JobNotCancellableError(job_id, job.status.value)

    return await _cancel_one(job)


async def cancel_and_delete_session_jobs(session_id: str) -> dict:
    """
    Cancel a deleted session's emails and remove its job records.

    Returns:
        Cancellation counts plus {"deleted": N}
    """
    result = await cancel_session_jobs(session_id)
    if result.get("error"):
        result["deleted"] = 0
        return result

    try:
        result["deleted"] = await job_store.delete_session_jobs(session_id)
    except JobStoreUnavailableError as e:
        logger.warning(f"Could not delete email jobs for session {session_id}: {e}")
        result["deleted"] = 0
    return result


async def cancel_and_delete_batch_jobs(batch_id: str) -> dict | None:
    """
    Cancel a batch's queued emails and remove its job records.

    Returns:
        Cancellation counts plus {"deleted": N}, or None if the batch has no jobs

    Raises:
        JobStoreUnavailableError: If the job store is down
    """
    await job_store.require_available()

    jobs = await job_store.get_batch_jobs(batch_id)
    if not jobs:
        return None

    result = await cancel_jobs([job for job in jobs if job.is_active])
    result["deleted"] = await job_store.delete_batch_jobs(batch_id)
    logger.info(f"Deleted {result['deleted']} email jobs in batch {batch_id}")
    return result
