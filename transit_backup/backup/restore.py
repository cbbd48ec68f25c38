"""Write a snapshot back into the live document store.

There is no transaction around a restore: documents are written one at a
time, and writers active during the restore can interleave with it.
Cancelling stops the walk at the next document; anything already written
stays written.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .._utils import convert_timestamps, emit_progress, gather_or_cancel, join_path, logger
from ..audit import ActivityType, BaseAuditSink, LoggingAuditSink
from ..base import BaseDocumentStore, RestoreCancelledError
from .models import (
    CollectionSnapshot,
    ConductorForest,
    ConductorSnapshot,
    DocumentRecord,
    RestoreMode,
    RestorePhase,
    RestoreProgress,
    RestoreResult,
    SnapshotDocument,
)
from .walkers.conductor_walker import trip_collection_path

ProgressCallback = Callable[[RestoreProgress], Any]


def count_documents(snapshot: SnapshotDocument) -> Tuple[int, int]:
    """Exact (documents, conductors) a restore of ``snapshot`` will process."""
    documents = conductors = 0
    for slot in snapshot.data.values():
        if slot.error:
            continue
        documents += slot.document_count()
        if isinstance(slot, ConductorForest):
            conductors += len(slot.documents)
    return documents, conductors


class _RestoreRun:
    """State of one restore invocation."""

    def __init__(
        self,
        document_store: BaseDocumentStore,
        mode: RestoreMode,
        progress: RestoreProgress,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
        max_concurrent: int,
    ):
        self.document_store = document_store
        self.mode = mode
        self.progress = progress
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.semaphore = asyncio.Semaphore(max_concurrent)

    async def report(self) -> None:
        await emit_progress(self.on_progress, self.progress)

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RestoreCancelledError("Restore cancelled")

    async def write(self, path: str, data: Dict[str, Any]) -> bool:
        """Apply the restore mode to one document; returns True when it was written."""
        data = convert_timestamps(data)
        if self.mode == RestoreMode.OVERWRITE:
            await self.document_store.set_document(path, data)
            return True

        existing = await self.document_store.get_document(path)
        if self.mode == RestoreMode.MISSING_ONLY:
            if existing is not None:
                return False
        elif existing is not None:
            data = {**existing, **data}
        await self.document_store.set_document(path, data)
        return True

    async def restore_document(self, path: str, data: Dict[str, Any]) -> None:
        self.check_cancelled()
        progress = self.progress
        progress.current_item = path
        try:
            if await self.write(path, data):
                progress.restored_documents += 1
            else:
                progress.skipped_documents += 1
        except Exception as e:
            logger.warning(f"Failed to restore {path}: {e}")
            progress.errors.append(f"failed to restore {path}: {e}")
        progress.processed_documents += 1
        await self.report()

    async def restore_record(self, collection_path: str, record: DocumentRecord) -> None:
        path = join_path(collection_path, record.id)
        await self.restore_document(path, record.data)
        for name, children in (record.subcollections or {}).items():
            for child in children:
                await self.restore_record(join_path(path, name), child)

    async def restore_collection(self, slot: CollectionSnapshot) -> None:
        async def bounded(record: DocumentRecord) -> None:
            async with self.semaphore:
                await self.restore_record(slot.collection_path, record)

        await gather_or_cancel(bounded(record) for record in slot.documents)

    async def restore_conductor(self, root_path: str, conductor_id: str, conductor: ConductorSnapshot) -> None:
        base = join_path(root_path, conductor_id)
        subs = conductor.subcollections

        await self.restore_document(base, conductor.profile)

        for date_id, day in subs.daily_trips.items():
            date_path = join_path(base, "dailyTrips", date_id)
            await self.restore_document(date_path, day.data)
            for trip_name, trip in day.trips.items():
                for kind, records in trip.iter_subcollections():
                    collection_path = trip_collection_path(date_path, trip_name, kind)
                    for record in records:
                        await self.restore_document(join_path(collection_path, record.id), record.data)

        for name, documents in subs.flat_collections():
            for doc_id, data in documents.items():
                await self.restore_document(join_path(base, name, doc_id), data)

        for date_id, remittance in subs.remittance.items():
            date_path = join_path(base, "remittance", date_id)
            await self.restore_document(date_path, remittance.data)
            for ticket_id, data in remittance.tickets.items():
                await self.restore_document(join_path(date_path, "tickets", ticket_id), data)

        self.progress.processed_conductors += 1
        await self.report()

    async def restore_forest(self, forest: ConductorForest) -> None:
        async def bounded(conductor_id: str, conductor: ConductorSnapshot) -> None:
            async with self.semaphore:
                await self.restore_conductor(forest.source_path, conductor_id, conductor)

        await gather_or_cancel(
            bounded(conductor_id, conductor) for conductor_id, conductor in forest.documents.items()
        )


class RestoreEngine:
    """Re-materialize a SnapshotDocument under a restore mode.

    Modes:
        missing-only: write a document only when its live path is empty; re-runnable
        overwrite: write every document, snapshot wins
        merge: shallow ``{**live, **snapshot}`` per document

    Per-document failures are collected in ``RestoreResult.errors`` and never
    stop the walk.
    """

    def __init__(
        self,
        document_store: BaseDocumentStore,
        audit: Optional[BaseAuditSink] = None,
        max_concurrent: int = 8,
    ):
        self.document_store = document_store
        self.audit = audit or LoggingAuditSink()
        self.max_concurrent = max_concurrent

    async def restore(
        self,
        snapshot: SnapshotDocument,
        mode: Union[RestoreMode, str] = RestoreMode.MISSING_ONLY,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        backup_file: Optional[str] = None,
    ) -> RestoreResult:
        mode = RestoreMode(mode)
        backup_file = backup_file or snapshot.metadata.backup_id
        progress = RestoreProgress(mode=mode)
        run = _RestoreRun(self.document_store, mode, progress, on_progress, cancel_event, self.max_concurrent)
        logger.info(f"Starting restore of {backup_file} (mode={mode.value})")

        try:
            await run.report()

            progress.phase = RestorePhase.ANALYZING
            progress.current_item = "Counting documents"
            progress.total_documents, progress.total_conductors = count_documents(snapshot)
            await run.report()

            progress.phase = RestorePhase.RESTORING
            for key, slot in snapshot.data.items():
                if slot.error:
                    progress.errors.append(f"skipped {key}: collection failed during backup ({slot.error})")
                    continue
                run.check_cancelled()
                if isinstance(slot, ConductorForest):
                    await run.restore_forest(slot)
                else:
                    await run.restore_collection(slot)

            progress.phase = RestorePhase.COMPLETED
            progress.current_item = ""
            await run.report()
        except RestoreCancelledError:
            progress.phase = RestorePhase.CANCELLED
            await run.report()
            logger.warning(
                f"Restore of {backup_file} cancelled after {progress.processed_documents}"
                f"/{progress.total_documents} documents"
            )
            await self.audit.log_activity(
                ActivityType.SYSTEM_RESTORE,
                f"System restore cancelled: {backup_file}",
                self._summary(backup_file, progress, cancelled=True),
                severity="warning",
            )
            return self._result(progress, success=False, cancelled=True)
        except Exception as e:
            logger.error(f"Restore of {backup_file} failed: {e}")
            await self.audit.log_activity(
                ActivityType.SYSTEM_ERROR,
                "System restore failed",
                {"error": str(e), "backupFile": backup_file, "mode": mode.value},
                severity="error",
            )
            return self._result(progress, success=False, error=str(e))

        logger.info(
            f"Restore of {backup_file} completed: {progress.restored_documents} restored, "
            f"{progress.skipped_documents} skipped, {len(progress.errors)} errors"
        )
        await self.audit.log_activity(
            ActivityType.SYSTEM_RESTORE,
            f"System restore completed: {backup_file}",
            self._summary(backup_file, progress),
        )
        return self._result(progress, success=True)

    @staticmethod
    def _summary(backup_file: str, progress: RestoreProgress, cancelled: bool = False) -> Dict[str, Any]:
        summary = {
            "backupFile": backup_file,
            "mode": progress.mode.value,
            "documentsRestored": progress.restored_documents,
            "documentsSkipped": progress.skipped_documents,
            "errorCount": len(progress.errors),
        }
        if cancelled:
            summary["cancelled"] = True
        return summary

    @staticmethod
    def _result(progress: RestoreProgress, success: bool, **kwargs) -> RestoreResult:
        errors: List[str] = list(progress.errors)
        return RestoreResult(
            success=success,
            mode=progress.mode,
            documents_restored=progress.restored_documents,
            documents_skipped=progress.skipped_documents,
            errors=errors,
            **kwargs,
        )
