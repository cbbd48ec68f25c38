"""Job tracking for background backup and restore runs."""
import asyncio
import os
import uuid
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from transit_backup._utils import logger, utc_now
from transit_backup.api.models import JobProgress, JobResponse, JobStatus


class JobManager:
    """Manages job lifecycle and tracking.

    Jobs live in Redis when a client is given, otherwise in this process.
    Cancel events are always process-local: only the process running a
    restore can stop it.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis = redis_client
        # Configurable TTL via environment variable (default: 7 days)
        self.job_ttl = int(os.getenv("REDIS_JOB_TTL", "604800"))
        self._jobs: Dict[str, str] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    async def _save(self, job: JobResponse) -> None:
        payload = job.model_dump_json()
        if self.redis:
            await self.redis.setex(f"job:{job.job_id}", self.job_ttl, payload)
        else:
            self._jobs[job.job_id] = payload

    async def create_job(
        self,
        job_type: str,
        metadata: Optional[Dict[str, Any]] = None,
        cancellable: bool = False,
    ) -> JobResponse:
        """Create a new job and store it."""
        job = JobResponse(
            job_id=str(uuid.uuid4()),
            job_type=job_type,
            status=JobStatus.PENDING,
            created_at=utc_now(),
            progress=JobProgress(),
            metadata=metadata or {},
        )
        if cancellable:
            self._cancel_events[job.job_id] = asyncio.Event()
        await self._save(job)

        logger.info(f"Created {job_type} job {job.job_id}")
        return job

    async def get_job(self, job_id: str) -> Optional[JobResponse]:
        if self.redis:
            job_data = await self.redis.get(f"job:{job_id}")
        else:
            job_data = self._jobs.get(job_id)
        if job_data:
            return JobResponse.model_validate_json(job_data)
        return None

    async def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        result: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Update job status; finished jobs get a completion time and drop their cancel event."""
        job = await self.get_job(job_id)
        if not job:
            return False

        job.status = status
        if error is not None:
            job.error = error
        if result:
            job.metadata.update(result)
        if job.finished:
            job.completed_at = utc_now()
            self._cancel_events.pop(job_id, None)

        await self._save(job)
        logger.info(f"Updated job {job_id} status to {status.value}")
        return True

    async def update_job_progress(
        self,
        job_id: str,
        current: int,
        total: int,
        percentage: float,
        phase: str,
        message: str = "",
    ) -> bool:
        job = await self.get_job(job_id)
        if not job:
            return False

        job.progress = JobProgress(
            current=current, total=total, percentage=percentage, phase=phase, message=message
        )
        await self._save(job)
        return True

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 100
    ) -> List[JobResponse]:
        """List jobs, newest first, optionally filtered by status."""
        if self.redis:
            payloads = []
            # Use SCAN instead of KEYS to avoid blocking Redis
            async for key in self.redis.scan_iter(match="job:*", count=100):
                job_data = await self.redis.get(key)
                if job_data:
                    payloads.append(job_data)
        else:
            payloads = list(self._jobs.values())

        jobs = []
        for job_data in payloads:
            try:
                job = JobResponse.model_validate_json(job_data)
            except Exception as e:
                logger.warning(f"Failed to parse job data: {e}")
                continue
            if status is None or job.status == status:
                jobs.append(job)

        jobs.sort(key=lambda x: x.created_at, reverse=True)
        return jobs[:limit]

    def cancel_event(self, job_id: str) -> Optional[asyncio.Event]:
        return self._cancel_events.get(job_id)

    def request_cancel(self, job_id: str) -> bool:
        """Signal a running job to stop. Returns False when this process cannot cancel it."""
        event = self._cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        logger.info(f"Cancellation requested for job {job_id}")
        return True
