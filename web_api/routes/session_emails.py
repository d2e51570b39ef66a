"""
Session email API routes (operator job list, cancel, retry and resend).

Endpoints:
- GET /api/sessions/{session_id}/emails - List email jobs with a status summary
- DELETE /api/sessions/{session_id}/emails?job_id=... - Cancel one scheduled email
- POST /api/sessions/{session_id}/emails - Retry every failed email
- POST /api/sessions/{session_id}/emails/{job_id}/retry - Retry one failed email
- POST /api/sessions/{session_id}/emails/{job_id}/resend - Send a completed email again
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from mentorhub.enums import EmailJobStatus
from mentorhub.notifications.cancellation import cancel_job
from mentorhub.notifications.errors import (
    JobNotCancellableError,
    JobNotFoundError,
    JobNotResendableError,
    JobNotRetryableError,
    JobOwnershipError,
    JobStoreUnavailableError,
)
from mentorhub.notifications.progress import get_session_progress
from mentorhub.notifications.retry import (
    resend_job,
    retry_all_failed_jobs_for_session,
    retry_job_by_id,
)

router = APIRouter(prefix="/api/sessions", tags=["session-emails"])

STORE_UNAVAILABLE_DETAIL = "Email job tracking service unavailable"


@router.get("/{session_id}/emails")
async def list_session_emails(session_id: str) -> dict[str, Any]:
    """
    List a session's email jobs, earliest send time first.

    Returns the jobs plus counts per status and the overall status.
    """
    try:
        progress = await get_session_progress(session_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)

    return {
        "jobs": [job.to_dict() for job in progress.jobs],
        "summary": {
            "total": progress.total,
            "status": progress.status.value,
            **progress.counts,
        },
    }


@router.delete("/{session_id}/emails")
async def cancel_session_email(
    session_id: str,
    job_id: str = Query(..., description="Email job to cancel"),
) -> dict[str, Any]:
    """Cancel one pending or scheduled email for this session."""
    try:
        cancelled = await cancel_job(job_id, session_id=session_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)
    except JobNotFoundError:
        raise HTTPException(404, "Email job not found")
    except JobOwnershipError:
        raise HTTPException(403, "Email job does not belong to this session")
    except JobNotCancellableError as e:
        raise HTTPException(400, f"Cannot cancel email with status {e.status}")

    if not cancelled:
        raise HTTPException(502, "Email provider could not cancel this email")
    return {"success": True, "job_id": job_id}


@router.post("/{session_id}/emails")
async def retry_session_emails(session_id: str) -> dict[str, Any]:
    """Retry every failed email for this session."""
    try:
        result = await retry_all_failed_jobs_for_session(session_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)

    return {
        "success": True,
        "total": result["total"],
        "retried": result["retried"],
        "message": f"Retried {result['retried']} of {result['total']} failed emails",
    }


@router.post("/{session_id}/emails/{job_id}/retry")
async def retry_session_email(session_id: str, job_id: str) -> dict[str, Any]:
    """Retry one failed email for this session."""
    try:
        job = await retry_job_by_id(job_id, session_id=session_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)
    except JobNotFoundError:
        raise HTTPException(404, "Email job not found")
    except JobOwnershipError:
        raise HTTPException(403, "Email job does not belong to this session")
    except JobNotRetryableError as e:
        raise HTTPException(400, f"Cannot retry email: {e.reason}")

    if job.status == EmailJobStatus.failed:
        raise HTTPException(502, f"Email provider rejected the retry: {job.last_error}")
    if job.status == EmailJobStatus.cancelled:
        raise HTTPException(409, f"Email was dropped instead of retried: {job.last_error}")
    return {"success": True, "job": job.to_dict()}


@router.post("/{session_id}/emails/{job_id}/resend")
async def resend_session_email(session_id: str, job_id: str) -> dict[str, Any]:
    """Send a completed email again as a new job."""
    try:
        job = await resend_job(job_id, session_id=session_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)
    except JobNotFoundError:
        raise HTTPException(404, "Email job not found")
    except JobOwnershipError:
        raise HTTPException(403, "Email job does not belong to this session")
    except JobNotResendableError as e:
        raise HTTPException(400, f"Cannot resend email: {e.reason}")

    if job.status == EmailJobStatus.failed:
        raise HTTPException(502, f"Email provider rejected the resend: {job.last_error}")
    return {"success": True, "job_id": job_id, "new_job_id": job.job_id}
