"""Redis-backed document store.

Each document is a JSON string under ``{prefix}:doc:{path}``; each collection
keeps the ids of its documents in a set under ``{prefix}:col:{path}``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .._utils import convert_timestamps, join_path, json_default, logger, split_document_path
from ..base import BaseDocumentStore

redis_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
    reraise=True,
)


@dataclass
class RedisDocumentStore(BaseDocumentStore):
    _redis_client: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.connection_timeout = self.global_config.get("redis_connection_timeout", 5.0)
        key_prefix = self.global_config.get("redis_key_prefix", "transit")
        self._prefix = f"{key_prefix}:{self.namespace}:"

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        self._redis_client = aioredis.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connection_timeout,
            decode_responses=True,
        )

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis document store: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise

        self._initialized = True

    def _doc_key(self, path: str) -> str:
        return f"{self._prefix}doc:{join_path(path)}"

    def _collection_key(self, path: str) -> str:
        return f"{self._prefix}col:{join_path(path)}"

    def _serialize(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, default=json_default)

    def _deserialize(self, raw: Optional[str]) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        return convert_timestamps(json.loads(raw))

    @redis_retry
    async def list_collection(self, path: str) -> List[Tuple[str, Dict[str, Any]]]:
        await self._ensure_initialized()

        doc_ids = sorted(await self._redis_client.smembers(self._collection_key(path)))
        if not doc_ids:
            return []

        values = await self._redis_client.mget([self._doc_key(join_path(path, i)) for i in doc_ids])
        documents = []
        for doc_id, raw in zip(doc_ids, values):
            # Set membership can briefly outlive a concurrently deleted document
            if raw is None:
                continue
            documents.append((doc_id, self._deserialize(raw)))
        return documents

    @redis_retry
    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        await self._ensure_initialized()
        split_document_path(path)
        return self._deserialize(await self._redis_client.get(self._doc_key(path)))

    @redis_retry
    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        await self._ensure_initialized()
        collection, doc_id = split_document_path(path)
        await self._redis_client.set(self._doc_key(path), self._serialize(data))
        await self._redis_client.sadd(self._collection_key(collection), doc_id)

    @redis_retry
    async def delete_document(self, path: str) -> bool:
        await self._ensure_initialized()
        collection, doc_id = split_document_path(path)
        removed = await self._redis_client.delete(self._doc_key(path))
        await self._redis_client.srem(self._collection_key(collection), doc_id)
        return bool(removed)

    async def check_health(self) -> bool:
        try:
            await self._ensure_initialized()
            return bool(await self._redis_client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.close()
        self._initialized = False
