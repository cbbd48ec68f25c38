"""Persist snapshots as blobs and track them with metadata records."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from .._utils import emit_progress, join_path, logger, utc_now
from ..audit import ActivityType, BaseAuditSink, LoggingAuditSink
from ..base import BackupError, BackupNotFoundError, BaseBlobStore, BaseMetadataStore, BlobNotFoundError
from .models import BackupMetadata, BackupProgress, BackupStatistics, BackupStatus, SnapshotDocument
from .utils import compute_checksum, default_file_name, deserialize_snapshot, serialize_snapshot, verify_checksum

ProgressCallback = Callable[[BackupProgress], Any]

_timestamp = TypeAdapter(datetime)


def expired_by(now: datetime) -> Callable[[Dict[str, Any]], bool]:
    """Metadata query predicate: ``expires_at <= now``. Unreadable expiries never match."""

    def predicate(record: Dict[str, Any]) -> bool:
        try:
            expires_at = _timestamp.validate_python(record.get("expires_at"))
        except ValidationError:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now

    return predicate


class SnapshotStore:
    """Blob + metadata persistence for snapshots.

    The metadata record is written only after the blob upload succeeded, so
    a listed backup always has its file.
    """

    def __init__(
        self,
        blob_store: BaseBlobStore,
        metadata_store: BaseMetadataStore,
        audit: Optional[BaseAuditSink] = None,
        backup_folder: str = "system-backups",
    ):
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.audit = audit or LoggingAuditSink()
        self.backup_folder = backup_folder

    def blob_path(self, file_name: str) -> str:
        return join_path(self.backup_folder, f"{file_name}.json")

    async def create(
        self,
        snapshot: SnapshotDocument,
        file_name: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        requested_collections: Optional[Sequence[str]] = None,
    ) -> BackupMetadata:
        """Upload a snapshot and record its metadata.

        Args:
            snapshot: Built snapshot
            file_name: Blob name without extension; derived from createdAt when omitted and
                suffixed with the backup id when another backup already uses it
            on_progress: Optional callback receiving BackupProgress (80-100%)
            requested_collections: Collection keys the operator asked for, for the audit trail

        Returns:
            BackupMetadata of the stored backup

        Raises:
            BackupError: If the upload or the metadata write failed
        """
        meta = snapshot.metadata
        file_name = file_name or default_file_name(meta.created_at)
        requested = list(requested_collections or meta.collections)

        try:
            file_name = await self._unused_file_name(file_name, meta.backup_id)
            path = self.blob_path(file_name)
            await emit_progress(on_progress, BackupProgress(percentage=80, message="Uploading backup file..."))
            data = serialize_snapshot(snapshot)
            url = await self.blob_store.put(
                path,
                data,
                content_type="application/json",
                content_disposition=f'attachment; filename="{file_name}.json"',
            )

            await emit_progress(on_progress, BackupProgress(percentage=95, message="Saving backup metadata..."))
            metadata = BackupMetadata(
                backup_id=meta.backup_id,
                file_name=file_name,
                created_at=meta.created_at,
                expires_at=meta.expires_at,
                collections=meta.collections,
                total_documents=meta.total_documents,
                file_size_bytes=len(data),
                download_url=url,
                storage_path=path,
                checksum=compute_checksum(data),
                status=BackupStatus.COMPLETED,
            )
            try:
                await self.metadata_store.put(metadata.backup_id, metadata.to_record())
            except Exception:
                await self._discard_blob(path)
                raise
        except Exception as e:
            logger.error(f"Backup {meta.backup_id} failed: {e}")
            await self.audit.log_activity(
                ActivityType.SYSTEM_ERROR,
                "System backup failed",
                {"error": str(e), "selectedCollections": requested},
                severity="error",
            )
            raise BackupError(f"Backup failed: {e}") from e

        await emit_progress(on_progress, BackupProgress(percentage=100, message="Backup completed"))
        logger.info(f"Backup {metadata.backup_id} stored at {path} ({metadata.file_size_bytes:,} bytes)")
        await self.audit.log_activity(
            ActivityType.SYSTEM_BACKUP,
            f"System backup created: {file_name}",
            {
                "backupId": metadata.backup_id,
                "fileName": file_name,
                "collections": metadata.collections,
                "totalDocuments": metadata.total_documents,
                "fileSize": metadata.file_size_bytes,
            },
        )
        return metadata

    async def _unused_file_name(self, file_name: str, backup_id: str) -> str:
        """Suffix ``file_name`` with the backup id when another backup already stores under it."""
        path = self.blob_path(file_name)
        taken = await self.metadata_store.query(
            lambda r: r.get("storage_path") == path or r.get("file_name") == file_name
        )
        if not taken:
            return file_name
        logger.warning(f"Backup file name {file_name} is in use, storing {backup_id} as {file_name}-{backup_id}")
        return f"{file_name}-{backup_id}"

    async def _discard_blob(self, path: str) -> None:
        try:
            await self.blob_store.delete(path)
        except Exception as e:
            logger.warning(f"Could not remove orphaned blob {path}: {e}")

    def _parse_records(self, records: List[Dict[str, Any]]) -> List[BackupMetadata]:
        parsed = []
        for record in records:
            try:
                parsed.append(BackupMetadata.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed backup record {record.get('backup_id')}: {e}")
        return parsed

    async def list(self) -> List[BackupMetadata]:
        """All backups, newest first."""
        backups = self._parse_records(await self.metadata_store.query())
        backups.sort(key=lambda b: b.created_at, reverse=True)
        return backups

    async def get(self, backup_id: str) -> BackupMetadata:
        record = await self.metadata_store.get(backup_id)
        if record is None:
            raise BackupNotFoundError(backup_id)
        return BackupMetadata.model_validate(record)

    async def download(self, backup_id: str) -> bytes:
        """Fetch the raw blob bytes of a backup.

        Raises:
            BackupNotFoundError: If no metadata record exists
            BlobNotFoundError: If the record exists but its blob is gone
        """
        metadata = await self.get(backup_id)
        data = await self.blob_store.get(metadata.storage_path or self.blob_path(metadata.file_name))
        if metadata.checksum and not verify_checksum(data, metadata.checksum):
            logger.warning(f"Checksum mismatch for backup {backup_id}")
        return data

    async def load(self, backup_id: str) -> SnapshotDocument:
        return deserialize_snapshot(await self.download(backup_id))

    async def delete(self, backup_id: str) -> bool:
        """Delete a backup's blob and record. Returns False if the backup is unknown.

        A blob that is already gone is not an error; any other blob failure
        propagates and leaves the record in place.
        """
        record = await self.metadata_store.get(backup_id)
        if record is None:
            return False
        metadata = BackupMetadata.model_validate(record)
        path = metadata.storage_path or self.blob_path(metadata.file_name)

        try:
            if not await self.blob_store.delete(path):
                logger.warning(f"Blob {path} already gone while deleting backup {backup_id}")
        except BlobNotFoundError:
            logger.warning(f"Blob {path} already gone while deleting backup {backup_id}")

        await self.metadata_store.delete(backup_id)
        logger.info(f"Deleted backup {backup_id}")
        await self.audit.log_activity(
            ActivityType.SYSTEM_MAINTENANCE,
            f"System backup deleted: {metadata.file_name}",
            {"backupId": backup_id, "fileName": metadata.file_name},
        )
        return True

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every backup whose expiry is at or before ``now``.

        Returns:
            Number of backups deleted
        """
        now = now or utc_now()
        expired = self._parse_records(await self.metadata_store.query(expired_by(now)))

        deleted = 0
        for backup in expired:
            path = backup.storage_path or self.blob_path(backup.file_name)
            try:
                await self.blob_store.delete(path)
            except Exception as e:
                logger.warning(f"Could not delete blob {path} of expired backup {backup.backup_id}: {e}")
            try:
                await self.metadata_store.delete(backup.backup_id)
                deleted += 1
            except Exception as e:
                logger.error(f"Could not delete record of expired backup {backup.backup_id}: {e}")

        if deleted:
            logger.info(f"Cleaned up {deleted} expired backups")
            await self.audit.log_activity(
                ActivityType.SYSTEM_MAINTENANCE,
                f"Cleaned up {deleted} expired backups",
                {"deletedCount": deleted},
            )
        return deleted

    async def statistics(self) -> BackupStatistics:
        backups = await self.list()
        expired = sum(1 for b in backups if b.is_expired)
        return BackupStatistics(
            total=len(backups),
            active=len(backups) - expired,
            expired=expired,
            total_size_kb=round(sum(b.file_size_bytes for b in backups) / 1024, 2),
        )
