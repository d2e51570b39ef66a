"""
Email notifications for mentoring sessions.

Public API:
    schedule_session_emails(session) - Schedule prep and feedback reminders
    handle_prep_reminder_rescheduling(session, current_email_ids) - Replace after a time change
    cancel_session_emails(current_email_ids) - Cancel emails from a legacy inline map
    cancel_session_jobs(session_id) - Cancel a session's tracked emails
    retry_all_failed_jobs_for_session(session_id) - Operator retry
    retry_job_by_id(job_id), resend_job(job_id) - Single-job retry and resend
    send_session_update_notifications(session, changes, recipient_ids) - Immediate update emails

Job store:
    get_session_jobs(session_id), get_job(job_id), update_job_status(job_id, status)

Dispatcher lifecycle:
    init_dispatcher(), shutdown_dispatcher()
"""

from .dispatch import init_dispatcher, shutdown_dispatcher
from .job_store import get_job, get_session_jobs, update_job_status
from .legacy import parse_scheduled_email_ids, stringify_scheduled_email_ids
from .schedule_times import calculate_schedule_times, is_valid_schedule_time
from .scheduler import schedule_session_emails, schedule_session_jobs
from .rescheduling import (
    handle_prep_reminder_rescheduling,
    reschedule_session_emails,
)
from .cancellation import (
    cancel_and_delete_batch_jobs,
    cancel_and_delete_session_jobs,
    cancel_job,
    cancel_session_emails,
    cancel_session_jobs,
)
from .retry import resend_job, retry_all_failed_jobs_for_session, retry_job_by_id
from .progress import get_batch_progress, get_session_progress
from .updates import send_session_update_notifications

__all__ = [
    # Dispatcher
    "init_dispatcher",
    "shutdown_dispatcher",
    # Job store
    "get_job",
    "get_session_jobs",
    "update_job_status",
    # Schedule times
    "calculate_schedule_times",
    "is_valid_schedule_time",
    # Scheduling
    "schedule_session_emails",
    "schedule_session_jobs",
    "handle_prep_reminder_rescheduling",
    "reschedule_session_emails",
    # Cancellation
    "cancel_session_emails",
    "cancel_session_jobs",
    "cancel_job",
    "cancel_and_delete_session_jobs",
    "cancel_and_delete_batch_jobs",
    # Retry and progress
    "retry_all_failed_jobs_for_session",
    "retry_job_by_id",
    "resend_job",
    "get_session_progress",
    "get_batch_progress",
    # Legacy codec
    "parse_scheduled_email_ids",
    "stringify_scheduled_email_ids",
    # Updates
    "send_session_update_notifications",
]
