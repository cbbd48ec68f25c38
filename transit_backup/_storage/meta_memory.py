"""In-process metadata record store."""

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..base import BaseMetadataStore, sort_records


@dataclass
class MemoryMetadataStore(BaseMetadataStore):
    _records: Dict[str, Dict[str, Any]] = field(init=False, default_factory=dict)

    async def put(self, id: str, record: Dict[str, Any]) -> None:
        self._records[id] = copy.deepcopy(record)

    async def get(self, id: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(id)
        return copy.deepcopy(record) if record is not None else None

    async def query(
        self,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        matches = [
            copy.deepcopy(record)
            for record in self._records.values()
            if predicate is None or predicate(record)
        ]
        return sort_records(matches, order_by, descending)

    async def delete(self, id: str) -> bool:
        return self._records.pop(id, None) is not None
