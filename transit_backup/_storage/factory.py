"""Storage factory for centralized backend creation."""

from typing import Callable, Dict, Type

from transit_backup._utils import ensure_dependency
from transit_backup.base import BaseBlobStore, BaseDocumentStore, BaseMetadataStore


class StorageFactory:
    """Factory for creating storage backends with validation and registration."""

    _document_backends: Dict[str, Callable[[], Type[BaseDocumentStore]]] = {}
    _blob_backends: Dict[str, Callable[[], Type[BaseBlobStore]]] = {}
    _metadata_backends: Dict[str, Callable[[], Type[BaseMetadataStore]]] = {}

    ALLOWED_DOCUMENT = {"memory", "redis"}
    ALLOWED_BLOB = {"local", "s3"}
    ALLOWED_METADATA = {"memory", "redis"}

    @classmethod
    def register_document(cls, name: str, backend_loader: Callable[[], Type[BaseDocumentStore]]) -> None:
        """Register a document store backend.

        Args:
            name: Backend name (must be in ALLOWED_DOCUMENT)
            backend_loader: Function that returns the document store class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_DOCUMENT:
            raise ValueError(f"Backend {name} not in allowed document backends: {cls.ALLOWED_DOCUMENT}")
        cls._document_backends[name] = backend_loader

    @classmethod
    def register_blob(cls, name: str, backend_loader: Callable[[], Type[BaseBlobStore]]) -> None:
        """Register a blob store backend."""
        if name not in cls.ALLOWED_BLOB:
            raise ValueError(f"Backend {name} not in allowed blob backends: {cls.ALLOWED_BLOB}")
        cls._blob_backends[name] = backend_loader

    @classmethod
    def register_metadata(cls, name: str, backend_loader: Callable[[], Type[BaseMetadataStore]]) -> None:
        """Register a metadata store backend."""
        if name not in cls.ALLOWED_METADATA:
            raise ValueError(f"Backend {name} not in allowed metadata backends: {cls.ALLOWED_METADATA}")
        cls._metadata_backends[name] = backend_loader

    @classmethod
    def create_document_store(cls, backend: str, namespace: str, global_config: dict) -> BaseDocumentStore:
        """Create a document store instance.

        Raises:
            ValueError: If backend not registered
        """
        if backend not in cls._document_backends:
            _register_backends()
            if backend not in cls._document_backends:
                raise ValueError(
                    f"Unknown document backend: {backend}. Available: {list(cls._document_backends.keys())}"
                )
        backend_class = cls._document_backends[backend]()
        return backend_class(namespace=namespace, global_config=global_config)

    @classmethod
    def create_blob_store(cls, backend: str, namespace: str, global_config: dict) -> BaseBlobStore:
        """Create a blob store instance."""
        if backend not in cls._blob_backends:
            _register_backends()
            if backend not in cls._blob_backends:
                raise ValueError(
                    f"Unknown blob backend: {backend}. Available: {list(cls._blob_backends.keys())}"
                )
        backend_class = cls._blob_backends[backend]()
        return backend_class(namespace=namespace, global_config=global_config)

    @classmethod
    def create_metadata_store(cls, backend: str, namespace: str, global_config: dict) -> BaseMetadataStore:
        """Create a metadata store instance."""
        if backend not in cls._metadata_backends:
            _register_backends()
            if backend not in cls._metadata_backends:
                raise ValueError(
                    f"Unknown metadata backend: {backend}. Available: {list(cls._metadata_backends.keys())}"
                )
        backend_class = cls._metadata_backends[backend]()
        return backend_class(namespace=namespace, global_config=global_config)


def _get_memory_document_store():
    """Lazy loader for the in-process document store."""
    from .doc_memory import MemoryDocumentStore
    return MemoryDocumentStore


def _get_redis_document_store():
    """Lazy loader for the Redis document store."""
    ensure_dependency("redis", "redis[hiredis]", "Redis document store")
    from .doc_redis import RedisDocumentStore
    return RedisDocumentStore


def _get_local_blob_store():
    """Lazy loader for the filesystem blob store."""
    from .blob_local import LocalBlobStore
    return LocalBlobStore


def _get_s3_blob_store():
    """Lazy loader for the S3 blob store."""
    ensure_dependency("aioboto3", "aioboto3", "S3 blob store")
    from .blob_s3 import S3BlobStore
    return S3BlobStore


def _get_memory_metadata_store():
    """Lazy loader for the in-process metadata store."""
    from .meta_memory import MemoryMetadataStore
    return MemoryMetadataStore


def _get_redis_metadata_store():
    """Lazy loader for the Redis metadata store."""
    ensure_dependency("redis", "redis[hiredis]", "Redis metadata store")
    from .meta_redis import RedisMetadataStore
    return RedisMetadataStore


def _register_backends():
    """Register built-in backends with lazy loaders. Called when factory is first used."""
    if not StorageFactory._document_backends:
        StorageFactory.register_document("memory", _get_memory_document_store)
        StorageFactory.register_document("redis", _get_redis_document_store)

    if not StorageFactory._blob_backends:
        StorageFactory.register_blob("local", _get_local_blob_store)
        StorageFactory.register_blob("s3", _get_s3_blob_store)

    if not StorageFactory._metadata_backends:
        StorageFactory.register_metadata("memory", _get_memory_metadata_store)
        StorageFactory.register_metadata("redis", _get_redis_metadata_store)
