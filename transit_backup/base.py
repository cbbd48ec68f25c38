"""Interfaces for the external collaborators the backup engine consumes.

The document store, blob store and metadata record store are all reached
through the abstract dataclasses below; concrete backends live in
``transit_backup._storage`` and are created through ``StorageFactory``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


class NotFoundError(Exception):
    """A requested document, blob or record does not exist."""


class BlobNotFoundError(NotFoundError):
    def __init__(self, path: str):
        super().__init__(f"Blob not found: {path}")
        self.path = path


class BackupNotFoundError(NotFoundError):
    def __init__(self, backup_id: str):
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class BackupError(Exception):
    """Creating a backup failed as a whole (upload or metadata write)."""


class RestoreCancelledError(Exception):
    """Raised inside a restore walk once the caller has requested cancellation."""


@dataclass
class StorageNameSpace:
    namespace: str
    global_config: dict = field(default_factory=dict)

    async def check_health(self) -> bool:
        return True

    async def close(self) -> None:
        """Release connections held by the backend."""
        pass


@dataclass
class BaseDocumentStore(StorageNameSpace):
    """Hierarchical document store.

    Paths alternate collection and document segments
    (``conductors/{id}/dailyTrips/{date}``). Listing a collection that was
    never written returns an empty list; datetimes are the native timestamp type.
    """

    async def list_collection(self, path: str) -> List[Tuple[str, Dict[str, Any]]]:
        raise NotImplementedError

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete_document(self, path: str) -> bool:
        raise NotImplementedError


@dataclass
class BaseBlobStore(StorageNameSpace):
    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        content_disposition: Optional[str] = None,
    ) -> str:
        """Store bytes at ``path`` and return a URL the blob can be fetched from."""
        raise NotImplementedError

    async def get(self, path: str) -> bytes:
        """Return the blob bytes, raising BlobNotFoundError when absent."""
        raise NotImplementedError

    async def delete(self, path: str) -> bool:
        """Delete the blob. Returns False when it did not exist."""
        raise NotImplementedError


@dataclass
class BaseMetadataStore(StorageNameSpace):
    """Keyed store of JSON-compatible records."""

    async def put(self, id: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def get(self, id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def query(
        self,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def delete(self, id: str) -> bool:
        raise NotImplementedError


def sort_records(
    records: List[Dict[str, Any]], order_by: Optional[str], descending: bool
) -> List[Dict[str, Any]]:
    """Order query results by a field; records missing the field sort last."""
    if not order_by:
        return records
    present = [r for r in records if r.get(order_by) is not None]
    missing = [r for r in records if r.get(order_by) is None]
    present.sort(key=lambda r: r[order_by], reverse=descending)
    return present + missing
