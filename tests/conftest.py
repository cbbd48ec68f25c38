"""Global pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from transit_backup._storage import LocalBlobStore, MemoryDocumentStore, MemoryMetadataStore
from transit_backup.backup import BackupManager
from transit_backup.config import BackupConfig
from tests.utils import RecordingAuditSink


@pytest.fixture
def document_store():
    return MemoryDocumentStore(namespace="documents")


@pytest.fixture
def metadata_store():
    return MemoryMetadataStore(namespace="systemBackups")


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(namespace="backups", global_config={"local_blob_dir": str(tmp_path / "blobs")})


@pytest.fixture
def audit():
    return RecordingAuditSink()


@pytest.fixture
def backup_manager(document_store, blob_store, metadata_store, audit):
    return BackupManager(
        document_store,
        blob_store,
        metadata_store,
        audit=audit,
        config=BackupConfig(sweep_interval_seconds=3600),
    )
