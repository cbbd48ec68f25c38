"""Backup and restore engine for the transit-ticketing admin console."""

from .backup import BackupManager, RestoreEngine, SnapshotBuilder, SnapshotStore
from .config import BackupConfig, StorageConfig, TransitBackupConfig

__version__ = "0.3.0"
__author__ = "Transit Admin Team"
__url__ = "https://github.com/transit-admin/transit-backup"

__all__ = [
    "BackupManager",
    "RestoreEngine",
    "SnapshotBuilder",
    "SnapshotStore",
    "BackupConfig",
    "StorageConfig",
    "TransitBackupConfig",
]
