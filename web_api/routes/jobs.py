"""
Email job progress API routes.

Endpoints:
- GET /api/jobs/status?session_id=... - Progress of all a session's emails
- GET /api/jobs/status?batch_id=... - Progress of one scheduling batch
- GET /api/jobs/status?dlq=true - Failed emails across all sessions
- DELETE /api/jobs/status?batch_id=... - Cancel and remove a scheduling batch
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from mentorhub.notifications.cancellation import cancel_and_delete_batch_jobs
from mentorhub.notifications.errors import JobStoreUnavailableError
from mentorhub.notifications.job_store import get_failed_jobs
from mentorhub.notifications.progress import (
    get_batch_progress,
    get_session_progress,
    list_session_batches,
)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])

STORE_UNAVAILABLE_DETAIL = "Email job tracking service unavailable"


@router.get("/status")
async def get_job_status(
    session_id: str | None = None,
    batch_id: str | None = None,
    details: bool = False,
    dlq: bool = False,
) -> dict[str, Any]:
    """
    Get email job progress for a session or a batch.

    Pass details=true to include the individual jobs (and, for a session,
    the per-batch breakdown). Pass dlq=true to list the most recent failed
    emails instead.
    """
    if dlq:
        try:
            failed = await get_failed_jobs()
        except JobStoreUnavailableError:
            raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)
        return {"failed_jobs": [job.to_dict() for job in failed], "count": len(failed)}

    if not session_id and not batch_id:
        raise HTTPException(400, "Either session_id or batch_id is required")

    try:
        if batch_id:
            progress = await get_batch_progress(batch_id)
            if progress is None:
                raise HTTPException(404, "Batch not found")
            return progress.to_dict(include_jobs=details)

        progress = await get_session_progress(session_id)
        result = progress.to_dict(include_jobs=details)
        if details:
            batches = await list_session_batches(session_id)
            result["batches"] = [batch.to_dict() for batch in batches]
        return result
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)


@router.delete("/status")
async def delete_batch(
    batch_id: str = Query(..., description="Scheduling batch to remove"),
) -> dict[str, Any]:
    """Cancel a batch's queued emails and delete all of its jobs."""
    try:
        result = await cancel_and_delete_batch_jobs(batch_id)
    except JobStoreUnavailableError:
        raise HTTPException(503, STORE_UNAVAILABLE_DETAIL)

    if result is None:
        raise HTTPException(404, "Batch not found")
    return {
        "success": True,
        "batch_id": batch_id,
        "cancelled": result["cancelled"],
        "deleted": result["deleted"],
    }
