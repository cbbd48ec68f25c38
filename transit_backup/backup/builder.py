"""Assemble a SnapshotDocument from the selected logical collections."""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .._utils import emit_progress, logger, utc_now
from ..base import BaseDocumentStore
from .collections import BACKUP_COLLECTIONS, CollectionKind, LogicalCollection, resolve_collection
from .models import BackupProgress, CollectionData, CollectionSnapshot, SnapshotDocument, SnapshotMetadata
from .utils import generate_backup_id
from .walkers import ConductorTreeWalker, TreeWalker

ProgressCallback = Callable[[BackupProgress], Any]

COLLECT_SHARE = 80
RETENTION_DAYS = 30


class SnapshotBuilder:
    """Drive the walkers over each selected collection.

    A collection whose walk fails is stored as an error marker
    (``{error, count: 0, documents: []}``) and the build moves on.
    """

    def __init__(
        self,
        document_store: BaseDocumentStore,
        max_concurrent: int = 8,
        version: str = "1.0",
        registry: Optional[Mapping[str, LogicalCollection]] = None,
    ):
        self.document_store = document_store
        self.max_concurrent = max_concurrent
        self.version = version
        self.registry = BACKUP_COLLECTIONS if registry is None else registry

    def walker_for(self, collection: LogicalCollection) -> TreeWalker:
        if collection.kind == CollectionKind.CONDUCTOR_FOREST:
            return ConductorTreeWalker(self.document_store, self.max_concurrent)
        return TreeWalker(self.document_store, self.max_concurrent)

    def resolve(self, selected: Sequence[str]) -> List[LogicalCollection]:
        """Resolve keys in order, dropping duplicates and unknown keys."""
        resolved: List[LogicalCollection] = []
        seen = set()
        for key in selected:
            collection = resolve_collection(key, self.registry)
            if collection is None:
                logger.warning(f"Unknown backup collection '{key}', skipping")
                continue
            if collection.key in seen:
                continue
            seen.add(collection.key)
            resolved.append(collection)
        return resolved

    async def collect(self, collection: LogicalCollection) -> CollectionData:
        walker = self.walker_for(collection)
        try:
            return await walker.collect(collection.collection, collection.shape)
        except Exception as e:
            logger.error(f"Failed to back up collection {collection.key}: {e}")
            return CollectionSnapshot(collection=collection.collection, count=0, documents=[], error=str(e))

    async def build(
        self,
        selected: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
        now: Optional[datetime] = None,
        backup_id: Optional[str] = None,
    ) -> SnapshotDocument:
        """Collect every selected collection into one snapshot.

        Args:
            selected: Logical collection keys, in the order to collect them
            on_progress: Optional callback receiving BackupProgress (0-80%)
            now: Creation time; defaults to the current UTC time
            backup_id: Optional custom backup ID

        Returns:
            SnapshotDocument with metadata and one slot per collection
        """
        now = now or utc_now()
        collections = self.resolve(selected)
        backup_id = backup_id or generate_backup_id(now)
        logger.info(f"Building snapshot {backup_id}: {[c.key for c in collections]}")

        data: Dict[str, CollectionData] = {}
        for index, collection in enumerate(collections):
            percentage = int(COLLECT_SHARE * index / len(collections))
            await emit_progress(
                on_progress, BackupProgress(percentage=percentage, message=f"Backing up {collection.name}...")
            )
            data[collection.key] = await self.collect(collection)

        await emit_progress(on_progress, BackupProgress(percentage=COLLECT_SHARE, message="Collection complete"))

        snapshot = SnapshotDocument(
            metadata=SnapshotMetadata(
                backup_id=backup_id,
                created_at=now,
                expires_at=now + timedelta(days=RETENTION_DAYS),
                collections=[c.key for c in collections],
                version=self.version,
            ),
            data=data,
        )
        snapshot.metadata.total_documents = snapshot.total_documents()
        logger.info(f"Snapshot {backup_id} built: {snapshot.metadata.total_documents} documents")
        return snapshot
