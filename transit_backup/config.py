"""Configuration management for transit-backup."""

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BackupConfig:
    """Backup engine behaviour."""
    backup_folder: str = "system-backups"
    max_concurrent: int = 8  # cap on in-flight document store reads/conductor restores
    sweep_interval_seconds: float = 86400.0
    snapshot_version: str = "1.0"

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            backup_folder=os.getenv("BACKUP_FOLDER", "system-backups"),
            max_concurrent=int(os.getenv("BACKUP_MAX_CONCURRENT", "8")),
            sweep_interval_seconds=float(os.getenv("BACKUP_SWEEP_INTERVAL", "86400")),
            snapshot_version=os.getenv("BACKUP_SNAPSHOT_VERSION", "1.0"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.backup_folder.strip("/"):
            raise ValueError("backup_folder must not be empty")
        if self.max_concurrent <= 0:
            raise ValueError(f"max_concurrent must be positive, got {self.max_concurrent}")
        if self.sweep_interval_seconds <= 0:
            raise ValueError(
                f"sweep_interval_seconds must be positive, got {self.sweep_interval_seconds}"
            )


@dataclass(frozen=True)
class StorageConfig:
    """Storage backend configuration."""
    document_backend: str = "memory"  # memory, redis
    blob_backend: str = "local"  # local, s3
    metadata_backend: str = "memory"  # memory, redis
    metadata_namespace: str = "systemBackups"

    # Local blob settings
    local_blob_dir: str = "./backups"

    # Redis specific settings
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_key_prefix: str = "transit"
    redis_max_connections: int = 50
    redis_connection_timeout: float = 5.0
    redis_socket_timeout: float = 5.0

    # S3 specific settings
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    s3_url_expiry_seconds: int = 604800  # presigned URLs max out at 7 days

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        """Create config from environment variables."""
        return cls(
            document_backend=os.getenv("STORAGE_DOCUMENT_BACKEND", "memory"),
            blob_backend=os.getenv("STORAGE_BLOB_BACKEND", "local"),
            metadata_backend=os.getenv("STORAGE_METADATA_BACKEND", "memory"),
            metadata_namespace=os.getenv("STORAGE_METADATA_NAMESPACE", "systemBackups"),
            local_blob_dir=os.getenv("LOCAL_BLOB_DIR", "./backups"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_key_prefix=os.getenv("REDIS_KEY_PREFIX", "transit"),
            redis_max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            redis_connection_timeout=float(os.getenv("REDIS_CONNECTION_TIMEOUT", "5.0")),
            redis_socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5.0")),
            s3_bucket=os.getenv("S3_BUCKET", None),
            s3_region=os.getenv("AWS_REGION", "us-east-1"),
            s3_endpoint_url=os.getenv("S3_ENDPOINT_URL", None),
            s3_url_expiry_seconds=int(os.getenv("S3_URL_EXPIRY_SECONDS", "604800")),
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_document_backends = {"memory", "redis"}
        valid_blob_backends = {"local", "s3"}
        valid_metadata_backends = {"memory", "redis"}

        if self.document_backend not in valid_document_backends:
            raise ValueError(
                f"Unknown document backend: {self.document_backend}. Available: {valid_document_backends}"
            )
        if self.blob_backend not in valid_blob_backends:
            raise ValueError(
                f"Unknown blob backend: {self.blob_backend}. Available: {valid_blob_backends}"
            )
        if self.metadata_backend not in valid_metadata_backends:
            raise ValueError(
                f"Unknown metadata backend: {self.metadata_backend}. Available: {valid_metadata_backends}"
            )
        if self.blob_backend == "s3" and not self.s3_bucket:
            raise ValueError("s3_bucket is required when blob_backend is 's3'")
        if not 1 <= self.s3_url_expiry_seconds <= 604800:
            raise ValueError(
                f"s3_url_expiry_seconds must be between 1 and 604800, got {self.s3_url_expiry_seconds}"
            )


@dataclass(frozen=True)
class TransitBackupConfig:
    """Main transit-backup configuration."""
    backup: BackupConfig = field(default_factory=BackupConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls) -> 'TransitBackupConfig':
        """Create complete config from environment variables."""
        return cls(
            backup=BackupConfig.from_env(),
            storage=StorageConfig.from_env(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the ``global_config`` dict handed to storage backends."""
        return {**asdict(self.storage), **asdict(self.backup)}
