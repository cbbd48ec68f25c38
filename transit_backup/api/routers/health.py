"""Health check endpoints."""

import asyncio
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from transit_backup.backup import BackupManager
from transit_backup.base import StorageNameSpace

from ..dependencies import get_backup_manager
from ..models import HealthStatus

router = APIRouter(prefix="/health", tags=["health"])


async def check_store(store: StorageNameSpace) -> bool:
    try:
        return await store.check_health()
    except Exception:
        return False


@router.get("", response_model=HealthStatus)
async def health_check(backup_manager: BackupManager = Depends(get_backup_manager)) -> HealthStatus:
    """Health of the document, blob and metadata stores."""
    document_ok, blob_ok, metadata_ok = await asyncio.gather(
        check_store(backup_manager.document_store),
        check_store(backup_manager.blob_store),
        check_store(backup_manager.metadata_store),
    )
    results = [document_ok, blob_ok, metadata_ok]

    if all(results):
        status = "healthy"
    elif not any(results):
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthStatus(
        status=status,
        document_store=document_ok,
        blob_store=blob_ok,
        metadata_store=metadata_ok,
    )


@router.get("/ready")
async def readiness_probe(backup_manager: BackupManager = Depends(get_backup_manager)) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    health = await health_check(backup_manager)
    if health.status == "unhealthy":
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
