"""
Email dispatch client backed by APScheduler.

Scheduled emails are APScheduler date jobs persisted to PostgreSQL so they
survive restarts. The APScheduler job id is the provider message id handed
back to callers. When a job fires, the email goes out through SendGrid and
the tracked EmailJob (if any) is moved through processing -> completed/failed.

Jobs carry the rendered email, so a job fired after a reschedule still has
the content it was created with. Rescheduling therefore replaces jobs
instead of moving them (see rescheduling.py).
"""

import logging
from datetime import datetime, timezone
from uuid import uuid4

import sentry_sdk
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from mentorhub.database import get_sync_database_url, is_configured
from mentorhub.enums import EmailJobStatus

from . import job_store
from .channels.email import EmailMessage, send_email
from .errors import (
    DispatchUnavailableError,
    JobNotFoundError,
    JobStoreUnavailableError,
    MessageNotFoundError,
)
from .throttle import call_provider

logger = logging.getLogger(__name__)


_scheduler: AsyncIOScheduler | None = None

MESSAGE_ID_PREFIX = "email_"

JOB_DEFAULTS = {
    "coalesce": True,
    "max_instances": 1,
    "misfire_grace_time": 3600,  # Allow 1 hour late delivery
}


# =============================================================================
# Dispatcher initialization and shutdown
# =============================================================================


def _get_jobstore_url() -> str:
    """Sync database URL for APScheduler (it uses sync SQLAlchemy)."""
    if not is_configured():
        return ""
    database_url = get_sync_database_url()

    # Add connection timeout to prevent hanging when DB is unavailable
    if "?" not in database_url:
        database_url += "?connect_timeout=5"
    elif "connect_timeout" not in database_url:
        database_url += "&connect_timeout=5"

    return database_url


def init_dispatcher(skip_if_db_unavailable: bool = True) -> AsyncIOScheduler | None:
    """
    Initialize and start the dispatcher.

    Call this during app startup (in FastAPI lifespan).

    Args:
        skip_if_db_unavailable: If True, fall back to an in-memory job store
                                when the DB is unreachable instead of failing.
    """
    global _scheduler

    if _scheduler is not None:
        return _scheduler

    database_url = _get_jobstore_url()

    jobstores = {}
    if database_url:
        jobstores["default"] = SQLAlchemyJobStore(
            url=database_url,
            tablename="apscheduler_jobs",
        )

    _scheduler = AsyncIOScheduler(jobstores=jobstores, job_defaults=JOB_DEFAULTS)

    try:
        _scheduler.start()
        print("Email dispatcher started")
    except Exception as e:
        if skip_if_db_unavailable and "timeout" in str(e).lower():
            print("Warning: Could not connect to database for email dispatcher: timeout expired")
            print("  └─ Dispatcher running in memory-only mode (scheduled emails won't persist)")
            _scheduler = AsyncIOScheduler(jobstores={}, job_defaults=JOB_DEFAULTS)
            _scheduler.start()
            print("Email dispatcher started (memory-only)")
        else:
            _scheduler = None
            raise

    return _scheduler


def shutdown_dispatcher() -> None:
    """
    Shutdown the dispatcher gracefully.

    Call this during app shutdown.
    """
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=True)
        _scheduler = None
        print("Email dispatcher stopped")


def is_running() -> bool:
    return _scheduler is not None


def _require_scheduler() -> AsyncIOScheduler:
    if not _scheduler:
        raise DispatchUnavailableError("Email dispatcher not initialized")
    return _scheduler


# =============================================================================
# Client operations
# =============================================================================


async def submit(
    message: EmailMessage,
    send_at: datetime | None,
    job_id: str | None = None,
) -> str:
    """
    Queue an email for delivery at ``send_at``.

    Args:
        message: Rendered email
        send_at: When to send; None sends as soon as possible
        job_id: Tracked EmailJob to update on delivery, if any

    Returns:
        Provider message id (used later to move or cancel the email)

    Raises:
        DispatchUnavailableError: If the dispatcher is not running
    """
    scheduler = _require_scheduler()
    provider_id = f"{MESSAGE_ID_PREFIX}{uuid4().hex}"

    def _add_job():
        return scheduler.add_job(
            deliver_scheduled_email,
            trigger="date",
            run_date=send_at,
            id=provider_id,
            replace_existing=True,
            kwargs={
                "job_id": job_id,
                "to_email": message.to_email,
                "subject": message.subject,
                "body": message.body,
            },
        )

    await call_provider(_add_job, description=f"schedule email {provider_id}")
    logger.info(f"Scheduled email {provider_id} to {message.to_email} at {send_at}")
    return provider_id


async def update_time(provider_id: str, new_send_at: datetime) -> None:
    """
    Move a queued email to a new send time.

    Raises:
        MessageNotFoundError: If the email was already sent or cancelled
    """
    scheduler = _require_scheduler()
    try:
        await call_provider(
            scheduler.reschedule_job,
            provider_id,
            trigger="date",
            run_date=new_send_at,
            description=f"reschedule email {provider_id}",
        )
    except JobLookupError as e:
        raise MessageNotFoundError(provider_id) from e
    logger.info(f"Moved email {provider_id} to {new_send_at}")


async def cancel(provider_id: str) -> bool:
    """
    Cancel a queued email.

    Cancelling an email that was already sent or cancelled is not an error.

    Returns:
        True if a queued email was removed, False if there was nothing to cancel
    """
    scheduler = _require_scheduler()
    try:
        await call_provider(
            scheduler.remove_job, provider_id, description=f"cancel email {provider_id}"
        )
    except JobLookupError:
        logger.info(f"Email {provider_id} already sent or cancelled")
        return False
    logger.info(f"Cancelled email {provider_id}")
    return True


async def send_now(message: EmailMessage) -> str:
    """
    Send an email immediately, bypassing the queue.

    Returns:
        SendGrid message id, or a generated id if SendGrid returned none

    Raises:
        EmailDeliveryError: If SendGrid rejects the send
    """
    message_id = await call_provider(
        send_email,
        message,
        description=f"send email to {message.to_email}",
        retry_timeouts=False,
    )
    return message_id or f"{MESSAGE_ID_PREFIX}{uuid4().hex}"


# =============================================================================
# Delivery (runs when an APScheduler job fires)
# =============================================================================


async def _record_status(job_id: str, status: EmailJobStatus, **fields) -> None:
    """Update a tracked job; delivery carries on if tracking fails."""
    try:
        await job_store.update_job_status(job_id, status, **fields)
    except (JobStoreUnavailableError, JobNotFoundError) as e:
        logger.warning(f"Could not mark email job {job_id} {status.value}: {e}")


async def deliver_scheduled_email(
    job_id: str | None,
    to_email: str,
    subject: str,
    body: str,
) -> None:
    """
    Send a queued email. Called by APScheduler at the target time.

    Skips delivery when the tracked job was cancelled locally or deleted
    along with its session. If the job store is down the email is still sent.
    """
    tracked = job_id is not None
    if tracked:
        try:
            job = await job_store.get_job(job_id)
        except JobStoreUnavailableError:
            logger.warning(f"Job store unavailable, sending email job {job_id} untracked")
            tracked = False
        else:
            if job is None:
                logger.info(f"Email job {job_id} no longer exists, skipping delivery")
                return
            if job.status == EmailJobStatus.cancelled:
                logger.info(f"Email job {job_id} was cancelled, skipping delivery")
                return
            await _record_status(job_id, EmailJobStatus.processing)

    message = EmailMessage(to_email=to_email, subject=subject, body=body)
    try:
        await call_provider(
            send_email, message, description=f"send email to {to_email}", retry_timeouts=False
        )
    except Exception as e:
        logger.error(f"Failed to deliver email job {job_id} to {to_email}: {e}")
        sentry_sdk.capture_exception(e)
        if tracked:
            await _record_status(
                job_id,
                EmailJobStatus.failed,
                last_error=str(e),
                increment_attempts=True,
            )
        return

    if tracked:
        await _record_status(
            job_id,
            EmailJobStatus.completed,
            clear_last_error=True,
            increment_attempts=True,
        )
    logger.info(f"Delivered email job {job_id} to {to_email} at {datetime.now(timezone.utc)}")
