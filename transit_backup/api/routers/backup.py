"""Backup and restore API endpoints."""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import Response

from transit_backup._utils import logger
from transit_backup.backup import BackupManager
from transit_backup.backup.models import (
    BackupMetadata,
    BackupProgress,
    BackupStatistics,
    RestoreMode,
    RestoreProgress,
)
from transit_backup.base import BackupNotFoundError, BlobNotFoundError

from ..dependencies import get_backup_manager, get_job_manager, require_super_operator
from ..exceptions import BackupNotFoundHTTPError
from ..jobs import JobManager
from ..models import CleanupResponse, CollectionInfo, CreateBackupRequest, JobResponse, JobStatus, RestoreRequest

router = APIRouter(prefix="/backup", tags=["backup"], dependencies=[Depends(require_super_operator)])


async def _create_backup_task(
    backup_manager: BackupManager,
    job_manager: JobManager,
    job_id: str,
    request: CreateBackupRequest,
):
    """Background task to create backup."""
    async def on_progress(progress: BackupProgress) -> None:
        await job_manager.update_job_progress(
            job_id,
            current=progress.percentage,
            total=100,
            percentage=float(progress.percentage),
            phase="backup",
            message=progress.message,
        )

    try:
        await job_manager.update_job_status(job_id, JobStatus.PROCESSING)
        metadata = await backup_manager.create_backup(
            request.collections, backup_name=request.backup_name, on_progress=on_progress
        )
        await job_manager.update_job_status(
            job_id,
            JobStatus.COMPLETED,
            result={
                "backup_id": metadata.backup_id,
                "file_name": metadata.file_name,
                "total_documents": metadata.total_documents,
                "file_size_bytes": metadata.file_size_bytes,
            },
        )
        logger.info(f"Backup job {job_id} completed: {metadata.backup_id}")

    except Exception as e:
        logger.error(f"Backup job {job_id} failed: {e}")
        await job_manager.update_job_status(job_id, JobStatus.FAILED, str(e))


async def _restore_backup_task(
    backup_manager: BackupManager,
    job_manager: JobManager,
    job_id: str,
    backup_id: str,
    mode: RestoreMode,
):
    """Background task to restore backup."""
    last_reported = {}

    async def on_progress(progress: RestoreProgress) -> None:
        # One job write per phase change or whole percent
        key = (progress.phase, int(progress.percentage))
        if last_reported.get("key") == key:
            return
        last_reported["key"] = key
        await job_manager.update_job_progress(
            job_id,
            current=progress.processed_documents,
            total=progress.total_documents,
            percentage=progress.percentage,
            phase=progress.phase.value,
            message=progress.current_item,
        )

    try:
        await job_manager.update_job_status(job_id, JobStatus.PROCESSING)
        result = await backup_manager.restore_backup(
            backup_id,
            mode=mode,
            on_progress=on_progress,
            cancel_event=job_manager.cancel_event(job_id),
        )
    except Exception as e:
        logger.error(f"Restore job {job_id} failed: {e}")
        await job_manager.update_job_status(job_id, JobStatus.FAILED, str(e))
        return

    if result.cancelled:
        status = JobStatus.CANCELLED
    elif result.success:
        status = JobStatus.COMPLETED
    else:
        status = JobStatus.FAILED
    await job_manager.update_job_status(job_id, status, result.error, result=result.model_dump(mode="json"))
    logger.info(f"Restore job {job_id} finished ({status.value}): {backup_id}")


@router.get("/collections", response_model=List[CollectionInfo])
async def list_collections(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> List[CollectionInfo]:
    """Logical collections that can be selected for backup."""
    return [
        CollectionInfo(key=c.key, name=c.name, collection=c.collection, description=c.description)
        for c in backup_manager.available_collections()
    ]


@router.post("", response_model=JobResponse)
async def create_backup(
    request: CreateBackupRequest,
    background_tasks: BackgroundTasks,
    backup_manager: BackupManager = Depends(get_backup_manager),
    job_manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """Create new backup asynchronously.

    Returns job ID for tracking backup progress.
    """
    job = await job_manager.create_job(
        job_type="backup",
        metadata={"operation": "backup", "collections": request.collections},
    )
    background_tasks.add_task(_create_backup_task, backup_manager, job_manager, job.job_id, request)
    return job


@router.get("", response_model=List[BackupMetadata])
async def list_backups(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> List[BackupMetadata]:
    """List all backups, newest first."""
    return await backup_manager.list_backups()


@router.get("/statistics", response_model=BackupStatistics)
async def backup_statistics(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupStatistics:
    return await backup_manager.get_statistics()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_expired(
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> CleanupResponse:
    """Delete expired backups now instead of waiting for the sweeper."""
    deleted = await backup_manager.cleanup_expired()
    return CleanupResponse(deleted=deleted)


@router.get("/{backup_id}", response_model=BackupMetadata)
async def get_backup(
    backup_id: str,
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupMetadata:
    try:
        return await backup_manager.get_backup(backup_id)
    except BackupNotFoundError:
        raise BackupNotFoundHTTPError(backup_id)


@router.get("/{backup_id}/download")
async def download_backup(
    backup_id: str,
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> Response:
    """Download the snapshot file of a backup."""
    try:
        metadata = await backup_manager.get_backup(backup_id)
        data = await backup_manager.download_backup(backup_id)
    except (BackupNotFoundError, BlobNotFoundError):
        raise BackupNotFoundHTTPError(backup_id)

    return Response(
        content=data,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{metadata.file_name}.json"'},
    )


@router.delete("/{backup_id}")
async def delete_backup(
    backup_id: str,
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> dict:
    """Delete a backup and its file."""
    deleted = await backup_manager.delete_backup(backup_id)

    if not deleted:
        raise BackupNotFoundHTTPError(backup_id)

    return {"message": f"Backup deleted: {backup_id}"}


@router.post("/{backup_id}/restore", response_model=JobResponse)
async def restore_backup(
    backup_id: str,
    background_tasks: BackgroundTasks,
    request: RestoreRequest = RestoreRequest(),
    backup_manager: BackupManager = Depends(get_backup_manager),
    job_manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """Restore a backup into the live store asynchronously.

    Returns a cancellable job; progress mirrors the restore phases.
    """
    try:
        await backup_manager.get_backup(backup_id)
    except BackupNotFoundError:
        raise BackupNotFoundHTTPError(backup_id)

    job = await job_manager.create_job(
        job_type="restore",
        metadata={"operation": "restore", "backup_id": backup_id, "mode": request.mode.value},
        cancellable=True,
    )
    background_tasks.add_task(
        _restore_backup_task, backup_manager, job_manager, job.job_id, backup_id, request.mode
    )
    return job
