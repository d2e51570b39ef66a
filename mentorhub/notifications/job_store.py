"""
Persistent tracking of email jobs in the ``email_jobs`` table.

Every read and write raises JobStoreUnavailableError when the database
cannot be reached, so callers can tell "no jobs" apart from "no idea".
Writes are single-statement transactions; concurrent writers to the same
job resolve last-writer-wins.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection

from mentorhub import database
from mentorhub.enums import ACTIVE_JOB_STATUSES, EmailJobStatus
from mentorhub.tables import email_jobs

from .errors import JobNotFoundError, JobStoreUnavailableError
from .jobs import EmailJob, JobKey

logger = logging.getLogger(__name__)


AVAILABILITY_PROBE_TIMEOUT = 5.0
FAILED_JOBS_LIMIT = 100

_CONNECTION_ERRORS = (OperationalError, InterfaceError, OSError, asyncio.TimeoutError)


@asynccontextmanager
async def _connect(transaction: bool = False) -> AsyncGenerator[AsyncConnection, None]:
    """Open a connection, translating connectivity failures."""
    if not database.is_configured():
        raise JobStoreUnavailableError()
    try:
        if transaction:
            async with database.get_transaction() as conn:
                yield conn
        else:
            async with database.get_connection() as conn:
                yield conn
    except _CONNECTION_ERRORS as e:
        logger.error(f"Email job store unreachable: {e}")
        raise JobStoreUnavailableError() from e


async def is_available() -> bool:
    """Probe the store with a trivial query."""
    if not database.is_configured():
        return False
    try:
        async with database.get_connection() as conn:
            await asyncio.wait_for(
                conn.execute(text("SELECT 1")), timeout=AVAILABILITY_PROBE_TIMEOUT
            )
        return True
    except _CONNECTION_ERRORS as e:
        logger.warning(f"Email job store availability probe failed: {e}")
        return False


async def require_available() -> None:
    """
    Raise unless the store answers the availability probe.

    Raises:
        JobStoreUnavailableError: If the store is down or not configured
    """
    if not await is_available():
        raise JobStoreUnavailableError()


# =============================================================================
# Reads
# =============================================================================


async def get_job(job_id: str) -> EmailJob | None:
    async with _connect() as conn:
        result = await conn.execute(
            select(email_jobs).where(email_jobs.c.job_id == job_id)
        )
        row = result.mappings().first()
    return EmailJob.from_row(row) if row else None


async def get_session_jobs(session_id: str) -> list[EmailJob]:
    """All jobs for a session, earliest send time first."""
    async with _connect() as conn:
        result = await conn.execute(
            select(email_jobs)
            .where(email_jobs.c.session_id == session_id)
            .order_by(email_jobs.c.scheduled_for, email_jobs.c.created_at)
        )
        rows = result.mappings().all()
    return [EmailJob.from_row(row) for row in rows]


async def get_batch_jobs(batch_id: str) -> list[EmailJob]:
    async with _connect() as conn:
        result = await conn.execute(
            select(email_jobs)
            .where(email_jobs.c.batch_id == batch_id)
            .order_by(email_jobs.c.scheduled_for, email_jobs.c.created_at)
        )
        rows = result.mappings().all()
    return [EmailJob.from_row(row) for row in rows]


async def get_failed_jobs(limit: int = FAILED_JOBS_LIMIT) -> list[EmailJob]:
    """Failed jobs across all sessions, most recently failed first."""
    async with _connect() as conn:
        result = await conn.execute(
            select(email_jobs)
            .where(email_jobs.c.status == EmailJobStatus.failed)
            .order_by(email_jobs.c.updated_at.desc())
            .limit(limit)
        )
        rows = result.mappings().all()
    return [EmailJob.from_row(row) for row in rows]


async def find_active_job(key: JobKey) -> EmailJob | None:
    """Find the pending/scheduled/processing job for a (session, type, recipient)."""
    async with _connect() as conn:
        result = await conn.execute(
            select(email_jobs)
            .where(
                email_jobs.c.session_id == key.session_id,
                email_jobs.c.job_type == key.job_type,
                email_jobs.c.recipient_email == key.recipient_email,
                email_jobs.c.status.in_(list(ACTIVE_JOB_STATUSES)),
            )
            .order_by(email_jobs.c.created_at.desc())
            .limit(1)
        )
        row = result.mappings().first()
    return EmailJob.from_row(row) if row else None


# =============================================================================
# Writes
# =============================================================================


async def upsert_job(job: EmailJob) -> EmailJob:
    """Insert a job, or replace every mutable field if the id already exists."""
    values = {
        "job_id": job.job_id,
        "batch_id": job.batch_id,
        "session_id": job.session_id,
        "job_type": job.job_type,
        "recipient_email": job.recipient_email,
        "recipient_name": job.recipient_name,
        "recipient_role": job.recipient_role,
        "scheduled_for": job.scheduled_for,
        "status": job.status,
        "provider_message_id": job.provider_message_id,
        "last_error": job.last_error,
        "attempts": job.attempts,
        "subject": job.subject,
        "body": job.body,
    }
    stmt = insert(email_jobs).values(**values)
    mutable = {k: stmt.excluded[k] for k in values if k != "job_id"}
    stmt = stmt.on_conflict_do_update(
        index_elements=[email_jobs.c.job_id],
        set_={**mutable, "updated_at": func.now()},
    ).returning(email_jobs)

    async with _connect(transaction=True) as conn:
        result = await conn.execute(stmt)
        row = result.mappings().first()
    return EmailJob.from_row(row)


async def update_job_status(
    job_id: str,
    status: EmailJobStatus,
    *,
    provider_message_id: str | None = None,
    clear_provider_message_id: bool = False,
    last_error: str | None = None,
    clear_last_error: bool = False,
    increment_attempts: bool = False,
) -> EmailJob:
    """
    Set a job's status and optionally its provider id, error and attempt count.

    Raises:
        JobNotFoundError: If no job has this id
        JobStoreUnavailableError: If the store cannot be reached
    """
    values: dict = {"status": status}
    if provider_message_id is not None:
        values["provider_message_id"] = provider_message_id
    elif clear_provider_message_id:
        values["provider_message_id"] = None
    if last_error is not None:
        values["last_error"] = last_error
    elif clear_last_error:
        values["last_error"] = None
    if increment_attempts:
        values["attempts"] = email_jobs.c.attempts + 1

    async with _connect(transaction=True) as conn:
        result = await conn.execute(
            update(email_jobs)
            .where(email_jobs.c.job_id == job_id)
            .values(**values)
            .returning(email_jobs)
        )
        row = result.mappings().first()

    if not row:
        raise JobNotFoundError(job_id)
    logger.info(f"Email job {job_id} -> {status.value}")
    return EmailJob.from_row(row)


async def delete_session_jobs(session_id: str) -> int:
    """Permanently remove a session's jobs. Returns number of rows deleted."""
    async with _connect(transaction=True) as conn:
        result = await conn.execute(
            delete(email_jobs).where(email_jobs.c.session_id == session_id)
        )
    return result.rowcount


async def delete_batch_jobs(batch_id: str) -> int:
    """Permanently remove a batch's jobs. Returns number of rows deleted."""
    async with _connect(transaction=True) as conn:
        result = await conn.execute(
            delete(email_jobs).where(email_jobs.c.batch_id == batch_id)
        )
    return result.rowcount
