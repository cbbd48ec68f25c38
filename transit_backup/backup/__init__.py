"""Backup and restore of the transit document tree."""

from .builder import SnapshotBuilder
from .collections import BACKUP_COLLECTIONS, CollectionKind, LogicalCollection, resolve_collection
from .manager import BackupManager
from .models import (
    BackupMetadata,
    BackupProgress,
    BackupStatistics,
    RestoreMode,
    RestorePhase,
    RestoreProgress,
    RestoreResult,
    SnapshotDocument,
)
from .restore import RestoreEngine
from .retention import RetentionSweeper
from .store import SnapshotStore
from .walkers import ConductorTreeWalker, TreeWalker

__all__ = [
    "BACKUP_COLLECTIONS",
    "BackupManager",
    "BackupMetadata",
    "BackupProgress",
    "BackupStatistics",
    "CollectionKind",
    "ConductorTreeWalker",
    "LogicalCollection",
    "RestoreEngine",
    "RestoreMode",
    "RestorePhase",
    "RestoreProgress",
    "RestoreResult",
    "RetentionSweeper",
    "SnapshotBuilder",
    "SnapshotDocument",
    "SnapshotStore",
    "TreeWalker",
    "resolve_collection",
]
