"""Generic recursive collector for document sub-trees."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..._utils import gather_or_cancel, join_path, logger
from ...base import BaseDocumentStore, NotFoundError
from ..models import CollectionSnapshot, DocumentRecord


@dataclass(frozen=True)
class CollectionShape:
    """Declarative description of the sub-collections nested under each document.

    ``CollectionShape({"tickets": FLAT})`` means every document of the
    collection owns a flat ``tickets`` sub-collection.
    """
    subcollections: Dict[str, "CollectionShape"] = field(default_factory=dict)


FLAT = CollectionShape()


class TreeWalker:
    """Read-only walk over a document store.

    Every store read goes through one semaphore, so fan-out at any depth of
    the walk stays bounded by ``max_concurrent``.
    """

    def __init__(
        self,
        document_store: BaseDocumentStore,
        max_concurrent: int = 8,
        semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.document_store = document_store
        self.max_concurrent = max_concurrent
        self._semaphore = semaphore or asyncio.Semaphore(max_concurrent)

    async def list_documents(self, path: str) -> List[Tuple[str, Dict[str, Any]]]:
        """List a collection; a collection with nothing recorded yet is empty."""
        async with self._semaphore:
            try:
                return await self.document_store.list_collection(path)
            except NotFoundError:
                logger.debug(f"Collection {path} not found, treating as empty")
                return []

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        async with self._semaphore:
            try:
                return await self.document_store.get_document(path)
            except NotFoundError:
                return None

    async def walk(self, path: str, shape: CollectionShape = FLAT) -> List[DocumentRecord]:
        documents = await self.list_documents(path)
        if not shape.subcollections:
            return [DocumentRecord(id=doc_id, data=data) for doc_id, data in documents]

        async def expand(doc_id: str, data: Dict[str, Any]) -> DocumentRecord:
            names = list(shape.subcollections)
            children = await gather_or_cancel(
                self.walk(join_path(path, doc_id, name), shape.subcollections[name])
                for name in names
            )
            nested = {name: records for name, records in zip(names, children) if records}
            return DocumentRecord(id=doc_id, data=data, subcollections=nested or None)

        return await gather_or_cancel(expand(doc_id, data) for doc_id, data in documents)

    async def collect(self, root_path: str, shape: CollectionShape = FLAT) -> CollectionSnapshot:
        records = await self.walk(root_path, shape)
        logger.debug(f"Collected {len(records)} documents from {root_path}")
        return CollectionSnapshot(collection=root_path, count=len(records), documents=records)
