"""Job tracking router."""
from typing import List, Optional

from fastapi import APIRouter, Depends

from transit_backup.api.dependencies import get_job_manager, require_super_operator
from transit_backup.api.exceptions import JobNotCancellableError, JobNotFoundError
from transit_backup.api.jobs import JobManager
from transit_backup.api.models import JobResponse, JobStatus

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_super_operator)])


@router.get("", response_model=List[JobResponse])
async def list_jobs(
    status: Optional[JobStatus] = None,
    limit: int = 100,
    job_manager: JobManager = Depends(get_job_manager),
):
    """List all jobs with optional status filter."""
    return await job_manager.list_jobs(status=status, limit=limit)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
):
    """Get specific job details."""
    job = await job_manager.get_job(job_id)

    if not job:
        raise JobNotFoundError(job_id)

    return job


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
):
    """Ask a running restore to stop after the document it is writing."""
    job = await job_manager.get_job(job_id)
    if not job:
        raise JobNotFoundError(job_id)
    if job.finished or not job_manager.request_cancel(job_id):
        raise JobNotCancellableError(job_id)
    return job
