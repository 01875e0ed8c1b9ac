"""
Durable (shared, process-independent) cache tier backed by Redis.
Implements the namespaced key-value protocol consumed by TieredCache.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import redis.asyncio as redis
from redis.exceptions import RedisError
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.utils.exceptions import CacheUnavailableError


class DurableCache(ABC):
    """Key-value protocol of the shared cache service."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, expiry_ms: int) -> None:
        pass

    @abstractmethod
    async def keys(self, pattern: str) -> List[str]:
        pass

    @abstractmethod
    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        pass

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None


class RedisDurableCache(DurableCache):
    """DurableCache over redis-py's asyncio client."""

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        """
        Initialize the Redis client.

        Args:
            url: Redis connection URL (redis://host:port/db)
            client: Pre-built client, mainly for tests
        """
        self.url = url
        self._client = client or redis.Redis.from_url(url, decode_responses=True)
        logger.info("[DurableCache] Redis client created")

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis GET failed: {e}") from e

    async def set(self, key: str, value: str, expiry_ms: int) -> None:
        try:
            await self._client.set(key, value, px=expiry_ms)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis SET failed: {e}") from e

    async def keys(self, pattern: str) -> List[str]:
        try:
            return list(await self._client.keys(pattern))
        except RedisError as e:
            raise CacheUnavailableError(f"Redis KEYS failed: {e}") from e

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        if not keys:
            return []
        try:
            return list(await self._client.mget(keys))
        except RedisError as e:
            raise CacheUnavailableError(f"Redis MGET failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("[DurableCache] Redis client closed")
