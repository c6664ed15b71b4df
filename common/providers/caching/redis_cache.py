import json
from typing import Any, Optional
import redis.asyncio as redis

from common.core.config import settings
from .interface import CacheInterface
from common.core.otel_axiom_exporter import get_logger, trace_span

logger = get_logger(__name__)


class RedisCache(CacheInterface):
    """Redis-based cache storing JSON values."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                settings.redis_connection_url, decode_responses=True
            )
            logger.info("Redis cache client created")
        return self._client

    @trace_span
    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self._get_client().get(key)
        except redis.RedisError as e:
            logger.error(f"Error getting cache key {key}: {e}")
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to deserialize cached value for key {key}: {e}")
            return None

    @trace_span
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self._get_client().setex(key, ttl, serialized_value)
            else:
                await self._get_client().set(key, serialized_value)
            return True
        except (TypeError, redis.RedisError) as e:
            logger.error(f"Error setting cache key {key}: {e}")
            return False

    @trace_span
    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._get_client().delete(key))
        except redis.RedisError as e:
            logger.error(f"Error deleting cache key {key}: {e}")
            return False

    async def clear(self) -> bool:
        try:
            await self._get_client().flushdb()
            return True
        except redis.RedisError as e:
            logger.error(f"Error clearing cache: {e}")
            return False
