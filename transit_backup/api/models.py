"""Request/response models for the HTTP API."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from transit_backup._utils import utc_now
from transit_backup.backup.models import RestoreMode


class CreateBackupRequest(BaseModel):
    collections: List[str] = Field(..., min_length=1, description="Logical collection keys to back up")
    backup_name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("collections")
    @classmethod
    def strip_keys(cls, v: List[str]) -> List[str]:
        keys = [key.strip() for key in v if key and key.strip()]
        if not keys:
            raise ValueError("At least one collection must be selected")
        return keys


class RestoreRequest(BaseModel):
    mode: RestoreMode = RestoreMode.MISSING_ONLY


class CollectionInfo(BaseModel):
    key: str
    name: str
    collection: str
    description: str


class CleanupResponse(BaseModel):
    deleted: int


class HealthStatus(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    document_store: bool
    blob_store: bool
    metadata_store: bool
    timestamp: datetime = Field(default_factory=utc_now)


class JobStatus(str, Enum):
    """Job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobProgress(BaseModel):
    """Job progress tracking."""
    current: int = 0
    total: int = 0
    percentage: float = 0.0
    phase: str = "initializing"
    message: str = ""


class JobResponse(BaseModel):
    """Job response model."""
    job_id: str
    job_type: str
    status: JobStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    progress: JobProgress = Field(default_factory=JobProgress)
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)
