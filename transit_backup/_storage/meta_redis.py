"""Redis-backed metadata record store."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .._utils import json_default, logger
from ..base import BaseMetadataStore, sort_records
from .doc_redis import redis_retry


@dataclass
class RedisMetadataStore(BaseMetadataStore):
    _redis_client: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        key_prefix = self.global_config.get("redis_key_prefix", "transit")
        self._prefix = f"{key_prefix}:{self.namespace}:"

    async def _ensure_initialized(self):
        if self._initialized:
            return

        self._redis_client = aioredis.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            decode_responses=True,
        )
        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis metadata store: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise

        self._initialized = True

    def _get_key(self, id: str) -> str:
        return f"{self._prefix}{id}"

    @redis_retry
    async def put(self, id: str, record: Dict[str, Any]) -> None:
        await self._ensure_initialized()
        await self._redis_client.set(self._get_key(id), json.dumps(record, default=json_default))

    @redis_retry
    async def get(self, id: str) -> Optional[Dict[str, Any]]:
        await self._ensure_initialized()
        raw = await self._redis_client.get(self._get_key(id))
        return json.loads(raw) if raw is not None else None

    @redis_retry
    async def query(
        self,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        await self._ensure_initialized()

        records = []
        # SCAN rather than KEYS to avoid blocking Redis
        async for key in self._redis_client.scan_iter(match=f"{self._prefix}*", count=1000):
            raw = await self._redis_client.get(key)
            if raw is None:
                continue
            try:
                record = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable metadata record {key}: {e}")
                continue
            if predicate is None or predicate(record):
                records.append(record)

        return sort_records(records, order_by, descending)

    @redis_retry
    async def delete(self, id: str) -> bool:
        await self._ensure_initialized()
        return bool(await self._redis_client.delete(self._get_key(id)))

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
