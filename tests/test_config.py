"""Tests for configuration management."""

import os
import pytest
from unittest.mock import patch

from transit_backup.config import BackupConfig, StorageConfig, TransitBackupConfig


class TestBackupConfig:
    """Test backup configuration."""

    def test_defaults(self):
        config = BackupConfig()
        assert config.backup_folder == "system-backups"
        assert config.max_concurrent == 8
        assert config.sweep_interval_seconds == 86400.0
        assert config.snapshot_version == "1.0"

    def test_from_env(self):
        with patch.dict(os.environ, {
            "BACKUP_FOLDER": "nightly",
            "BACKUP_MAX_CONCURRENT": "16",
            "BACKUP_SWEEP_INTERVAL": "3600",
        }):
            config = BackupConfig.from_env()
            assert config.backup_folder == "nightly"
            assert config.max_concurrent == 16
            assert config.sweep_interval_seconds == 3600.0

    def test_validation(self):
        with pytest.raises(ValueError, match="max_concurrent must be positive"):
            BackupConfig(max_concurrent=-1)

        with pytest.raises(ValueError, match="backup_folder must not be empty"):
            BackupConfig(backup_folder="/")

    def test_immutable(self):
        config = BackupConfig()
        with pytest.raises(AttributeError):
            config.max_concurrent = 1


class TestStorageConfig:
    """Test storage configuration."""

    def test_defaults(self):
        config = StorageConfig()
        assert config.document_backend == "memory"
        assert config.blob_backend == "local"
        assert config.metadata_backend == "memory"
        assert config.metadata_namespace == "systemBackups"

    def test_from_env(self):
        with patch.dict(os.environ, {
            "STORAGE_DOCUMENT_BACKEND": "redis",
            "STORAGE_BLOB_BACKEND": "s3",
            "STORAGE_METADATA_BACKEND": "redis",
            "S3_BUCKET": "transit-backups",
            "AWS_REGION": "ap-southeast-1",
            "REDIS_URL": "redis://cache:6379",
        }):
            config = StorageConfig.from_env()
            assert config.document_backend == "redis"
            assert config.blob_backend == "s3"
            assert config.s3_bucket == "transit-backups"
            assert config.s3_region == "ap-southeast-1"
            assert config.redis_url == "redis://cache:6379"

    def test_unknown_backends(self):
        with pytest.raises(ValueError, match="Unknown document backend"):
            StorageConfig(document_backend="firestore")

        with pytest.raises(ValueError, match="Unknown blob backend"):
            StorageConfig(blob_backend="gcs")

        with pytest.raises(ValueError, match="Unknown metadata backend"):
            StorageConfig(metadata_backend="postgres")

    def test_s3_requires_bucket(self):
        with pytest.raises(ValueError, match="s3_bucket is required"):
            StorageConfig(blob_backend="s3")

    def test_url_expiry_bounds(self):
        with pytest.raises(ValueError, match="s3_url_expiry_seconds"):
            StorageConfig(s3_url_expiry_seconds=604801)


class TestTransitBackupConfig:

    def test_to_dict_flattens_both_sections(self):
        config = TransitBackupConfig(
            backup=BackupConfig(max_concurrent=14),
            storage=StorageConfig(local_blob_dir="/tmp/blobs"),
        )
        flat = config.to_dict()
        assert flat["max_concurrent"] == 14
        assert flat["local_blob_dir"] == "/tmp/blobs"
        assert flat["document_backend"] == "memory"

    def test_from_env(self):
        with patch.dict(os.environ, {"BACKUP_SWEEP_INTERVAL": "60", "LOCAL_BLOB_DIR": "/data"}):
            config = TransitBackupConfig.from_env()
            assert config.backup.sweep_interval_seconds == 60.0
            assert config.storage.local_blob_dir == "/data"
