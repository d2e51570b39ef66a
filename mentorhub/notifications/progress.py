"""
Progress reporting for session email jobs.

Read-only: the aggregate is for display and never drives writes.
"""

from collections import Counter, defaultdict

from mentorhub.enums import BatchStatus, EmailJobStatus

from . import job_store
from .jobs import EmailJob, JobProgress


def count_by_status(jobs: list[EmailJob]) -> dict[str, int]:
    """Count jobs per status, including zero counts for every status."""
    counts = Counter(job.status.value for job in jobs)
    return {status.value: counts.get(status.value, 0) for status in EmailJobStatus}


def derive_overall_status(jobs: list[EmailJob]) -> BatchStatus:
    """
    Summarize a job set.

    Cancelled jobs are ignored. Of the rest:
        none started (all pending/scheduled)   -> pending
        all completed                          -> completed
        all failed                             -> failed
        some failed, some not                  -> partial_failure
        otherwise                              -> in_progress
    """
    live = [job for job in jobs if job.status != EmailJobStatus.cancelled]
    if not live:
        return BatchStatus.completed if jobs else BatchStatus.pending

    statuses = Counter(job.status for job in live)
    total = len(live)
    failed = statuses[EmailJobStatus.failed]

    if failed == total:
        return BatchStatus.failed
    if failed:
        return BatchStatus.partial_failure
    if statuses[EmailJobStatus.completed] == total:
        return BatchStatus.completed
    if statuses[EmailJobStatus.processing] or statuses[EmailJobStatus.completed]:
        return BatchStatus.in_progress
    return BatchStatus.pending


def summarize_jobs(
    jobs: list[EmailJob],
    session_id: str | None = None,
    batch_id: str | None = None,
) -> JobProgress:
    return JobProgress(
        status=derive_overall_status(jobs),
        total=len(jobs),
        counts=count_by_status(jobs),
        session_id=session_id,
        batch_id=batch_id,
        jobs=list(jobs),
    )


async def get_session_progress(session_id: str) -> JobProgress:
    """
    Progress across all of a session's email jobs.

    Raises:
        JobStoreUnavailableError: If the job store is down
    """
    await job_store.require_available()
    jobs = await job_store.get_session_jobs(session_id)
    return summarize_jobs(jobs, session_id=session_id)


async def get_batch_progress(batch_id: str) -> JobProgress | None:
    """
    Progress of the jobs created together in one scheduling call.

    Returns None if no job carries this batch id.

    Raises:
        JobStoreUnavailableError: If the job store is down
    """
    await job_store.require_available()
    jobs = await job_store.get_batch_jobs(batch_id)
    if not jobs:
        return None
    return summarize_jobs(jobs, session_id=jobs[0].session_id, batch_id=batch_id)


async def list_session_batches(session_id: str) -> list[JobProgress]:
    """Progress per batch for a session, oldest batch first."""
    await job_store.require_available()
    jobs = await job_store.get_session_jobs(session_id)

    batches: dict[str, list[EmailJob]] = defaultdict(list)
    for job in jobs:
        batches[job.batch_id].append(job)

    def created(batch_jobs: list[EmailJob]):
        stamps = [job.created_at for job in batch_jobs if job.created_at]
        return min(stamps) if stamps else batch_jobs[0].scheduled_for

    ordered = sorted(batches.items(), key=lambda item: created(item[1]))
    return [
        summarize_jobs(batch_jobs, session_id=session_id, batch_id=batch_id)
        for batch_id, batch_jobs in ordered
    ]
