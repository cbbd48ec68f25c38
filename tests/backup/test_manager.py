"""Tests for BackupManager."""

import asyncio
import os
from datetime import timedelta
from unittest.mock import patch

import pytest

from transit_backup.audit import DocumentAuditSink
from transit_backup.backup import BackupManager
from transit_backup.backup.manager import sanitize_file_name
from transit_backup.backup.models import RestoreMode
from transit_backup.base import BlobNotFoundError
from transit_backup.config import StorageConfig, TransitBackupConfig
from tests.utils import SEEDED_CONDUCTOR_DOCUMENTS, seed_conductor, seed_flat


async def _clear(store):
    for path in store.document_paths():
        await store.delete_document(path)


@pytest.mark.asyncio
async def test_backup_then_restore_into_empty_store(backup_manager, document_store):
    await seed_flat(document_store)
    await seed_conductor(document_store)
    original = {path: await document_store.get_document(path) for path in document_store.document_paths()}

    metadata = await backup_manager.create_backup(["admin", "USERS", "CONDUCTOR_DATA"], backup_name="Nightly run")
    await _clear(document_store)
    result = await backup_manager.restore_backup(metadata.backup_id, RestoreMode.MISSING_ONLY)

    assert metadata.file_name == "Nightly-run"
    assert metadata.total_documents == 3 + SEEDED_CONDUCTOR_DOCUMENTS
    assert result.success is True
    assert result.documents_restored == 3 + SEEDED_CONDUCTOR_DOCUMENTS
    assert {path: await document_store.get_document(path) for path in document_store.document_paths()} == original


@pytest.mark.asyncio
async def test_restore_audit_names_backup_file(backup_manager, document_store, audit):
    await seed_flat(document_store)
    metadata = await backup_manager.create_backup(["ADMIN"], backup_name="admins")

    await backup_manager.restore_backup(metadata.backup_id, "overwrite")

    event = audit.of_type("SYSTEM_RESTORE")[0]
    assert event["metadata"]["backupFile"] == "admins"
    assert event["metadata"]["mode"] == "overwrite"
    assert event["metadata"]["documentsRestored"] == 2


@pytest.mark.asyncio
async def test_create_backup_rejects_unknown_collections(backup_manager):
    with pytest.raises(ValueError):
        await backup_manager.create_backup(["PAYROLL", "invoices"])


@pytest.mark.asyncio
async def test_missing_file_is_rebuilt_from_live_data(backup_manager, document_store, blob_store):
    await seed_flat(document_store)
    metadata = await backup_manager.create_backup(["ADMIN"])
    await blob_store.delete(metadata.storage_path)

    snapshot = await backup_manager.load_snapshot(metadata.backup_id)

    assert snapshot.metadata.rebuilt is True
    assert snapshot.metadata.backup_id == metadata.backup_id
    assert snapshot.metadata.created_at == metadata.created_at
    assert snapshot.metadata.expires_at == metadata.expires_at
    assert snapshot.data["ADMIN"].count == 2


@pytest.mark.asyncio
async def test_missing_file_without_rebuild(backup_manager, blob_store):
    metadata = await backup_manager.create_backup(["ADMIN"])
    await blob_store.delete(metadata.storage_path)

    with pytest.raises(BlobNotFoundError):
        await backup_manager.load_snapshot(metadata.backup_id, allow_rebuild=False)


@pytest.mark.asyncio
async def test_restore_unknown_backup_reports_failure(backup_manager, document_store, audit):
    result = await backup_manager.restore_backup("backup_0", "merge")

    assert result.success is False
    assert result.mode == RestoreMode.MERGE
    assert "backup_0" in result.error
    assert document_store.document_paths() == []
    error = audit.of_type("SYSTEM_ERROR")[0]
    assert error["metadata"]["backupId"] == "backup_0"
    assert audit.of_type("SYSTEM_RESTORE") == []


@pytest.mark.asyncio
async def test_download_is_audited(backup_manager, document_store, audit):
    await seed_flat(document_store)
    metadata = await backup_manager.create_backup(["USERS"])

    data = await backup_manager.download_backup(metadata.backup_id)

    assert len(data) == metadata.file_size_bytes
    export = audit.of_type("DATA_EXPORT")[0]
    assert export["metadata"] == {"backupId": metadata.backup_id, "fileSize": len(data)}


@pytest.mark.asyncio
async def test_list_delete_and_statistics(backup_manager):
    first = await backup_manager.create_backup(["ADMIN"], backup_name="first")
    # backup ids are millisecond timestamps
    await asyncio.sleep(0.01)
    await backup_manager.create_backup(["USERS"], backup_name="second")

    assert len(await backup_manager.list_backups()) == 2
    assert await backup_manager.delete_backup(first.backup_id) is True
    assert await backup_manager.delete_backup(first.backup_id) is False

    stats = await backup_manager.get_statistics()
    assert stats.total == 1
    assert await backup_manager.cleanup_expired() == 0


@pytest.mark.asyncio
async def test_from_config_wires_local_backends(tmp_path):
    config = TransitBackupConfig(storage=StorageConfig(local_blob_dir=str(tmp_path / "blobs")))
    manager = BackupManager.from_config(config)

    assert isinstance(manager.audit, DocumentAuditSink)
    await manager.document_store.set_document("Admin/a1", {"role": "admin"})
    metadata = await manager.create_backup(["ADMIN"], backup_name="from-config")

    assert (tmp_path / "blobs" / "system-backups" / "from-config.json").is_file()
    audit_log = await manager.document_store.list_collection("AuditLogs")
    assert [data["activityType"] for _, data in audit_log] == ["SYSTEM_BACKUP"]
    assert (await manager.get_backup(metadata.backup_id)).file_name == "from-config"
    await manager.close()


@pytest.mark.asyncio
async def test_backups_always_expire_after_thirty_days(tmp_path):
    with patch.dict(os.environ, {"BACKUP_RETENTION_DAYS": "7", "LOCAL_BLOB_DIR": str(tmp_path / "blobs")}):
        manager = BackupManager.from_config(TransitBackupConfig.from_env())

    metadata = await manager.create_backup(["ADMIN"])

    assert metadata.expires_at == metadata.created_at + timedelta(days=30)
    stored = await manager.get_backup(metadata.backup_id)
    assert stored.expires_at == stored.created_at + timedelta(days=30)
    await manager.close()


@pytest.mark.asyncio
async def test_close_stops_sweeper(backup_manager):
    backup_manager.sweeper.start()
    assert backup_manager.sweeper.running

    await backup_manager.close()

    assert not backup_manager.sweeper.running


def test_available_collections():
    keys = [c.key for c in BackupManager.available_collections()]
    assert "CONDUCTOR_DATA" in keys
    assert len(keys) == len(set(keys)) == 6


def test_sanitize_file_name():
    assert sanitize_file_name("Nightly Backup.json") == "Nightly-Backup"
    assert sanitize_file_name("../../etc/passwd") == "etc-passwd"
    assert sanitize_file_name("  weekly_2024.05  ") == "weekly_2024.05"
