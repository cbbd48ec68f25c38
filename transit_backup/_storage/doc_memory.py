"""In-process document store, used for local runs and as the test double."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .._utils import join_path, logger, split_document_path
from ..base import BaseDocumentStore


@dataclass
class MemoryDocumentStore(BaseDocumentStore):
    # collection path -> {document id -> data}
    _collections: Dict[str, Dict[str, Dict[str, Any]]] = field(init=False, default_factory=dict)

    def __post_init__(self):
        logger.debug(f"Memory document store ready: {self.namespace}")

    async def list_collection(self, path: str) -> List[Tuple[str, Dict[str, Any]]]:
        documents = self._collections.get(join_path(path), {})
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in documents.items()]

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        collection, doc_id = split_document_path(path)
        data = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        collection, doc_id = split_document_path(path)
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    async def delete_document(self, path: str) -> bool:
        collection, doc_id = split_document_path(path)
        documents = self._collections.get(collection)
        if not documents or doc_id not in documents:
            return False
        del documents[doc_id]
        if not documents:
            del self._collections[collection]
        return True

    def document_paths(self) -> List[str]:
        """Every stored document path, in insertion order."""
        return [
            join_path(collection, doc_id)
            for collection, documents in self._collections.items()
            for doc_id in documents
        ]
