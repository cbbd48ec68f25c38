"""Data models for backup/restore operations.

Snapshot models serialize with the camelCase keys of the backup file format
(``dailyTrips``, ``preTickets``, ``totalDocuments`` ...) so files written by
earlier console releases stay loadable. Use ``model_dump(by_alias=True)``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator, model_validator

from .._utils import utc_now


class RestoreMode(str, Enum):
    """Conflict policy applied when writing snapshot documents back."""
    MISSING_ONLY = "missing-only"  # write only documents absent from the live store
    MERGE = "merge"  # shallow merge, snapshot wins on conflicting keys
    OVERWRITE = "overwrite"  # last snapshot wins


class RestorePhase(str, Enum):
    INITIALIZING = "initializing"
    ANALYZING = "analyzing"
    RESTORING = "restoring"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BackupStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ==================== Snapshot payload ====================

class SnapshotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DocumentRecord(SnapshotModel):
    id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    subcollections: Optional[Dict[str, List["DocumentRecord"]]] = None

    def document_count(self) -> int:
        """This document plus everything nested beneath it."""
        nested = sum(
            record.document_count()
            for records in (self.subcollections or {}).values()
            for record in records
        )
        return 1 + nested


class CollectionSnapshot(SnapshotModel):
    """A flat (or declaratively nested) collection, or a failed collection's error marker."""
    collection_path: str = Field(..., alias="collection")
    count: int = 0
    documents: List[DocumentRecord] = Field(default_factory=list)
    error: Optional[str] = None

    def document_count(self) -> int:
        return sum(record.document_count() for record in self.documents)


class TripRecord(SnapshotModel):
    """Ticket sub-collections of one dynamically named trip (``trip1``, ``trip2`` ...)."""
    tickets: Optional[List[DocumentRecord]] = None
    pre_bookings: Optional[List[DocumentRecord]] = Field(default=None, alias="preBookings")
    pre_tickets: Optional[List[DocumentRecord]] = Field(default=None, alias="preTickets")

    def iter_subcollections(self) -> Iterator[Tuple[str, List[DocumentRecord]]]:
        """Yield (store name, records) for each sub-collection that was captured."""
        for name, records in (
            ("tickets", self.tickets),
            ("preBookings", self.pre_bookings),
            ("preTickets", self.pre_tickets),
        ):
            if records:
                yield name, records

    def document_count(self) -> int:
        return sum(len(records) for _, records in self.iter_subcollections())


class DailyTripSnapshot(SnapshotModel):
    data: Dict[str, Any] = Field(default_factory=dict)
    trips: Dict[str, TripRecord] = Field(default_factory=dict)


class RemittanceSnapshot(SnapshotModel):
    data: Dict[str, Any] = Field(default_factory=dict)
    tickets: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flat_console_entry(cls, value: Any) -> Any:
        # Older console files store the remittance document itself, with no tickets
        if isinstance(value, dict) and "data" not in value and "tickets" not in value:
            return {"data": value, "tickets": {}}
        return value


class ConductorSubcollections(SnapshotModel):
    daily_trips: Dict[str, DailyTripSnapshot] = Field(default_factory=dict, alias="dailyTrips")
    pre_tickets: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="preTickets")
    pre_bookings: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="preBookings")
    scanned_qr_codes: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="scannedQRCodes")
    remittance: Dict[str, RemittanceSnapshot] = Field(default_factory=dict)

    def flat_collections(self) -> Iterator[Tuple[str, Dict[str, Dict[str, Any]]]]:
        yield "preTickets", self.pre_tickets
        yield "preBookings", self.pre_bookings
        yield "scannedQRCodes", self.scanned_qr_codes


class ConductorSnapshot(SnapshotModel):
    profile: Dict[str, Any] = Field(default_factory=dict)
    subcollections: ConductorSubcollections = Field(default_factory=ConductorSubcollections)

    def document_count(self) -> int:
        """Profile, date documents, trip leaves, flat sub-collections and remittance."""
        subs = self.subcollections
        count = 1
        for day in subs.daily_trips.values():
            count += 1 + sum(trip.document_count() for trip in day.trips.values())
        count += sum(len(docs) for _, docs in subs.flat_collections())
        for remittance in subs.remittance.values():
            count += 1 + len(remittance.tickets)
        return count


class ConductorForest(SnapshotModel):
    collection_path: str = Field("conductors_complete", alias="collection")
    source_path: str = Field("conductors", alias="sourceCollection")
    count: int = 0
    total_documents: int = Field(0, alias="totalDocuments")
    documents: Dict[str, ConductorSnapshot] = Field(default_factory=dict)
    error: Optional[str] = None

    def document_count(self) -> int:
        return sum(conductor.document_count() for conductor in self.documents.values())


CollectionData = Union[ConductorForest, CollectionSnapshot]


class SnapshotMetadata(SnapshotModel):
    backup_id: str = Field(..., alias="backupId")
    created_at: datetime = Field(..., alias="createdAt")
    expires_at: datetime = Field(..., alias="expiresAt")
    collections: List[str] = Field(default_factory=list)
    version: str = "1.0"
    total_documents: int = Field(0, alias="totalDocuments")
    rebuilt: bool = False

    @field_validator("created_at", "expires_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @field_serializer("created_at", "expires_at")
    def _iso(self, value: datetime) -> str:
        return value.isoformat()


class SnapshotDocument(SnapshotModel):
    metadata: SnapshotMetadata
    data: Dict[str, CollectionData] = Field(default_factory=dict)

    def total_documents(self) -> int:
        """Documents actually captured across every collection slot."""
        return sum(collection.document_count() for collection in self.data.values())


# ==================== Backup records ====================

class BackupMetadata(BaseModel):
    """One record per stored snapshot."""

    backup_id: str
    file_name: str
    created_at: datetime
    expires_at: datetime
    collections: List[str] = Field(default_factory=list)
    total_documents: int = 0
    file_size_bytes: int = 0
    download_url: str = ""
    storage_path: str = ""
    checksum: Optional[str] = None
    status: BackupStatus = BackupStatus.COMPLETED

    @field_validator("created_at", "expires_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @computed_field
    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at

    def to_record(self) -> Dict[str, Any]:
        """JSON-compatible form written to the metadata store."""
        return self.model_dump(mode="json", exclude={"is_expired"})


class BackupProgress(BaseModel):
    """Coarse, advisory progress of a backup run."""
    percentage: int = Field(..., ge=0, le=100)
    message: str


class BackupStatistics(BaseModel):
    total: int = 0
    active: int = 0
    expired: int = 0
    total_size_kb: float = 0.0


# ==================== Restore ====================

class RestoreProgress(BaseModel):
    """Mutable progress record shared with the caller's callback during one restore."""

    phase: RestorePhase = RestorePhase.INITIALIZING
    mode: RestoreMode = RestoreMode.MISSING_ONLY
    total_documents: int = 0
    processed_documents: int = 0
    restored_documents: int = 0
    skipped_documents: int = 0
    total_conductors: int = 0
    processed_conductors: int = 0
    errors: List[str] = Field(default_factory=list)
    current_item: str = ""
    start_time: datetime = Field(default_factory=utc_now)

    @property
    def percentage(self) -> float:
        if self.total_documents <= 0:
            return 100.0 if self.phase == RestorePhase.COMPLETED else 0.0
        return round(100.0 * self.processed_documents / self.total_documents, 1)


class RestoreResult(BaseModel):
    success: bool
    mode: RestoreMode = RestoreMode.MISSING_ONLY
    documents_restored: int = 0
    documents_skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    cancelled: bool = False
    error: Optional[str] = None
