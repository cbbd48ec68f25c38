"""Backup and restore orchestration over one set of storage collaborators."""

import asyncio
import re
from typing import Any, Callable, List, Optional, Sequence, Union

from .._storage import StorageFactory
from .._utils import logger
from ..audit import ActivityType, BaseAuditSink, DocumentAuditSink, LoggingAuditSink
from ..base import BaseBlobStore, BaseDocumentStore, BaseMetadataStore, BlobNotFoundError
from ..config import BackupConfig, TransitBackupConfig
from .builder import SnapshotBuilder
from .collections import BACKUP_COLLECTIONS, LogicalCollection
from .models import (
    BackupMetadata,
    BackupProgress,
    BackupStatistics,
    RestoreMode,
    RestoreProgress,
    RestoreResult,
    SnapshotDocument,
)
from .restore import RestoreEngine
from .retention import RetentionSweeper
from .store import SnapshotStore

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_file_name(name: str) -> str:
    """Make an operator-supplied backup name safe to use as a blob name."""
    name = name.strip()
    if name.lower().endswith(".json"):
        name = name[:-5]
    return _UNSAFE_NAME.sub("-", name).strip("-.")


class BackupManager:
    """Orchestrate backup and restore operations over the document store."""

    def __init__(
        self,
        document_store: BaseDocumentStore,
        blob_store: BaseBlobStore,
        metadata_store: BaseMetadataStore,
        audit: Optional[BaseAuditSink] = None,
        config: Optional[BackupConfig] = None,
    ):
        """Initialize backup manager.

        Args:
            document_store: Live document store that is backed up and restored into
            blob_store: Where snapshot files are uploaded
            metadata_store: Where BackupMetadata records are kept
            audit: Audit sink; defaults to logging only
            config: Backup behaviour; defaults to BackupConfig()
        """
        self.config = config or BackupConfig()
        self.document_store = document_store
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.audit = audit or LoggingAuditSink()

        self.builder = SnapshotBuilder(
            document_store,
            max_concurrent=self.config.max_concurrent,
            version=self.config.snapshot_version,
        )
        self.store = SnapshotStore(blob_store, metadata_store, self.audit, self.config.backup_folder)
        self.restore_engine = RestoreEngine(document_store, self.audit, self.config.max_concurrent)
        self.sweeper = RetentionSweeper(self.store, self.config.sweep_interval_seconds)

    @classmethod
    def from_config(cls, config: TransitBackupConfig, audit: Optional[BaseAuditSink] = None) -> "BackupManager":
        """Build the storage backends named in ``config`` and wire a manager over them.

        Audit events go to the ``AuditLogs`` collection of the document store
        unless another sink is given.
        """
        global_config = config.to_dict()
        storage = config.storage
        document_store = StorageFactory.create_document_store(storage.document_backend, "documents", global_config)
        blob_store = StorageFactory.create_blob_store(storage.blob_backend, "backups", global_config)
        metadata_store = StorageFactory.create_metadata_store(
            storage.metadata_backend, storage.metadata_namespace, global_config
        )
        logger.info(
            f"Backup manager storage: documents={storage.document_backend}, "
            f"blobs={storage.blob_backend}, metadata={storage.metadata_backend}"
        )
        return cls(
            document_store,
            blob_store,
            metadata_store,
            audit=audit or DocumentAuditSink(document_store),
            config=config.backup,
        )

    @staticmethod
    def available_collections() -> List[LogicalCollection]:
        return list(BACKUP_COLLECTIONS.values())

    async def create_backup(
        self,
        collections: Sequence[str],
        backup_name: Optional[str] = None,
        on_progress: Optional[Callable[[BackupProgress], Any]] = None,
    ) -> BackupMetadata:
        """Create a backup of the selected logical collections.

        Args:
            collections: Logical collection keys (case-insensitive)
            backup_name: Optional blob name; derived from the creation time when omitted
            on_progress: Optional callback receiving BackupProgress

        Returns:
            BackupMetadata with backup information

        Raises:
            ValueError: If none of the selected keys is a known collection
            BackupError: If the upload or metadata write failed
        """
        if not self.builder.resolve(collections):
            raise ValueError(f"No valid collections selected: {list(collections)}")

        snapshot = await self.builder.build(collections, on_progress=on_progress)
        file_name = sanitize_file_name(backup_name) if backup_name else None
        return await self.store.create(
            snapshot,
            file_name=file_name or None,
            on_progress=on_progress,
            requested_collections=list(collections),
        )

    async def list_backups(self) -> List[BackupMetadata]:
        """List all backups, newest first."""
        return await self.store.list()

    async def get_backup(self, backup_id: str) -> BackupMetadata:
        return await self.store.get(backup_id)

    async def delete_backup(self, backup_id: str) -> bool:
        """Delete a backup.

        Returns:
            True if deleted, False if not found
        """
        return await self.store.delete(backup_id)

    async def get_statistics(self) -> BackupStatistics:
        return await self.store.statistics()

    async def cleanup_expired(self) -> int:
        return await self.store.sweep_expired()

    async def download_backup(self, backup_id: str) -> bytes:
        """Raw snapshot file of a backup, for export."""
        data = await self.store.download(backup_id)
        await self.audit.log_activity(
            ActivityType.DATA_EXPORT,
            f"System backup downloaded: {backup_id}",
            {"backupId": backup_id, "fileSize": len(data)},
        )
        return data

    async def load_snapshot(self, backup_id: str, allow_rebuild: bool = True) -> SnapshotDocument:
        """Load the snapshot of a backup.

        When the backup record exists but its file cannot be fetched and
        ``allow_rebuild`` is set, the snapshot is re-collected from the live
        store over the same collections and flagged ``rebuilt``.
        """
        metadata = await self.store.get(backup_id)
        try:
            return await self.store.load(backup_id)
        except BlobNotFoundError:
            if not allow_rebuild:
                raise
            logger.warning(f"Snapshot file of {backup_id} is missing, re-collecting from live data")

        snapshot = await self.builder.build(
            metadata.collections, now=metadata.created_at, backup_id=metadata.backup_id
        )
        snapshot.metadata.expires_at = metadata.expires_at
        snapshot.metadata.rebuilt = True
        return snapshot

    async def restore_backup(
        self,
        backup_id: str,
        mode: Union[RestoreMode, str] = RestoreMode.MISSING_ONLY,
        on_progress: Optional[Callable[[RestoreProgress], Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RestoreResult:
        """Restore a backup into the live document store.

        A backup that cannot be loaded ends the restore before any write and
        is reported as ``RestoreResult(success=False, error=...)``.
        """
        mode = RestoreMode(mode)
        try:
            metadata = await self.store.get(backup_id)
            snapshot = await self.load_snapshot(backup_id)
        except Exception as e:
            logger.error(f"Cannot load backup {backup_id} for restore: {e}")
            await self.audit.log_activity(
                ActivityType.SYSTEM_ERROR,
                "System restore failed",
                {"error": str(e), "backupId": backup_id, "mode": mode.value},
                severity="error",
            )
            return RestoreResult(success=False, mode=mode, error=str(e))

        return await self.restore_engine.restore(
            snapshot,
            mode=mode,
            on_progress=on_progress,
            cancel_event=cancel_event,
            backup_file=metadata.file_name,
        )

    async def close(self) -> None:
        await self.sweeper.stop()
        for store in (self.document_store, self.blob_store, self.metadata_store):
            await store.close()
