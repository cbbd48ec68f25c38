"""Storage module with lazy loading support."""

from typing import TYPE_CHECKING

# Always import factory and registration (lightweight)
from .factory import StorageFactory, _register_backends

# Type checking imports (no runtime cost)
if TYPE_CHECKING:
    from .doc_memory import MemoryDocumentStore
    from .doc_redis import RedisDocumentStore
    from .blob_local import LocalBlobStore
    from .blob_s3 import S3BlobStore
    from .meta_memory import MemoryMetadataStore
    from .meta_redis import RedisMetadataStore


def __getattr__(name):
    """Lazy import storage backends so redis/aioboto3 load only when used."""
    if name == "MemoryDocumentStore":
        from .doc_memory import MemoryDocumentStore
        return MemoryDocumentStore
    elif name == "RedisDocumentStore":
        from .doc_redis import RedisDocumentStore
        return RedisDocumentStore
    elif name == "LocalBlobStore":
        from .blob_local import LocalBlobStore
        return LocalBlobStore
    elif name == "S3BlobStore":
        from .blob_s3 import S3BlobStore
        return S3BlobStore
    elif name == "MemoryMetadataStore":
        from .meta_memory import MemoryMetadataStore
        return MemoryMetadataStore
    elif name == "RedisMetadataStore":
        from .meta_redis import RedisMetadataStore
        return RedisMetadataStore
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "StorageFactory",
    "_register_backends",
    "MemoryDocumentStore",
    "RedisDocumentStore",
    "LocalBlobStore",
    "S3BlobStore",
    "MemoryMetadataStore",
    "RedisMetadataStore",
]
