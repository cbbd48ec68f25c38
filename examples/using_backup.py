"""Example of backing up and restoring the transit document tree."""

import asyncio
import os
from datetime import datetime, timezone

from transit_backup import BackupManager, TransitBackupConfig
from transit_backup.backup import RestoreMode
from transit_backup.config import BackupConfig, StorageConfig


async def seed(manager: BackupManager):
    """Write a small conductor tree into the in-memory document store."""
    store = manager.document_store
    await store.set_document("Admin/root", {"email": "root@transit.ph", "role": "superadmin"})
    await store.set_document("conductors/c1", {"name": "Juan Dela Cruz", "busNumber": "B-12"})
    await store.set_document(
        "conductors/c1/dailyTrips/2024-05-01",
        {"trip1": {"route": "Manila - Baguio", "startTime": datetime.now(timezone.utc)}},
    )
    await store.set_document(
        "conductors/c1/dailyTrips/2024-05-01/trip1/tickets/tickets/t1",
        {"fare": 450, "submittedAt": datetime.now(timezone.utc)},
    )


async def example_backup_and_restore():
    """Back up two collections, lose a ticket, restore it."""
    print("=== Backup and Restore ===")

    config = TransitBackupConfig(
        backup=BackupConfig(max_concurrent=4),
        storage=StorageConfig(local_blob_dir="./example_backups"),
    )
    manager = BackupManager.from_config(config)
    await seed(manager)

    metadata = await manager.create_backup(
        ["ADMIN", "CONDUCTOR_DATA"],
        backup_name="example",
        on_progress=lambda p: print(f"  {p.percentage:3d}% {p.message}"),
    )
    print(f"Backup {metadata.backup_id}: {metadata.total_documents} documents, {metadata.file_size_bytes:,} bytes")
    print(f"Expires at {metadata.expires_at.isoformat()}")

    ticket = "conductors/c1/dailyTrips/2024-05-01/trip1/tickets/tickets/t1"
    await manager.document_store.delete_document(ticket)

    result = await manager.restore_backup(metadata.backup_id, RestoreMode.MISSING_ONLY)
    print(f"Restored {result.documents_restored}, skipped {result.documents_skipped}")
    print(f"Ticket back: {await manager.document_store.get_document(ticket)}")

    await manager.delete_backup(metadata.backup_id)
    await manager.close()


async def example_env_config():
    """Build the manager from environment variables."""
    print("\n=== Using Environment Variable Configuration ===")

    # Normally these would be in your shell or .env
    os.environ["BACKUP_SWEEP_INTERVAL"] = "3600"
    os.environ["LOCAL_BLOB_DIR"] = "./example_backups"

    config = TransitBackupConfig.from_env()
    manager = BackupManager.from_config(config)
    print(f"Sweep interval: {config.backup.sweep_interval_seconds:.0f}s")
    print(f"Blob backend: {config.storage.blob_backend}")
    print(f"Collections: {', '.join(c.key for c in manager.available_collections())}")
    await manager.close()


if __name__ == "__main__":
    asyncio.run(example_backup_and_restore())
    asyncio.run(example_env_config())
