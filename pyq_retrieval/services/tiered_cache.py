"""
Two-level cache for formatted PYQ results.

Tier one is an in-process map with per-entry TTL and bounded capacity
(oldest-inserted entry evicted first). Tier two is an optional durable
shared cache (Redis). Durable failures degrade to tier-one-only behaviour
and never reach the caller.
"""
import asyncio
import json
import time
from typing import Any, Callable, Dict, List, Optional, Set
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.context_schemas import CacheEntry
from pyq_retrieval.services.durable_cache import DurableCache
from pyq_retrieval.utils.exceptions import MalformedCacheValueError
from pyq_retrieval.utils.json_recovery import decode_cache_payload, decode_cache_timestamp


class _CacheMiss:
    """Sentinel type for a cache miss; None is a legitimate cached value."""

    def __repr__(self) -> str:
        return "CACHE_MISS"

    def __bool__(self) -> bool:
        return False


CACHE_MISS = _CacheMiss()

CIRCULAR_PLACEHOLDER = "[unserializable: circular reference]"


class TTLCache:
    """In-process map with lazy per-entry expiry and insertion-order eviction."""

    def __init__(
        self,
        ttl_seconds: float = 900,
        max_entries: int = 250,
        clock: Callable[[], float] = time.time
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self.clock = clock
        self._store: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._store)

    def _purge_expired(self) -> None:
        now = self.clock()
        for key in [k for k, entry in self._store.items() if entry.is_expired(now)]:
            del self._store[key]

    def get(self, key: str) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return CACHE_MISS
        if entry.is_expired(self.clock()):
            del self._store[key]
            return CACHE_MISS
        return entry.value

    def set(self, key: str, value: Any, ttl_override: Optional[float] = None) -> None:
        self._purge_expired()
        # Re-setting a key moves it to the back of the eviction order
        self._store.pop(key, None)
        if len(self._store) >= self.max_entries:
            oldest_key = next(iter(self._store))
            del self._store[oldest_key]
        self._store[key] = CacheEntry(
            key=key,
            value=value,
            inserted_at=self.clock(),
            ttl=ttl_override if ttl_override is not None else self.ttl_seconds
        )

    def entries(self) -> List[CacheEntry]:
        self._purge_expired()
        return list(self._store.values())


class TieredCache:
    """Fast in-process map in front of an optional durable shared cache."""

    def __init__(
        self,
        durable: Optional[DurableCache] = None,
        namespace: str = "pyq-cache",
        ttl_seconds: float = 900,
        max_entries: int = 250,
        max_payload_bytes: int = 512_000,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize both tiers.

        Args:
            durable: Durable cache adapter, or None for fast-map-only mode
            namespace: Prefix for durable keys
            ttl_seconds: Default TTL for both tiers
            max_entries: Fast-map capacity
            max_payload_bytes: Serialized payloads above this size are not written durably
            clock: Time source in seconds, injectable for tests
        """
        self.durable = durable
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self.max_payload_bytes = max_payload_bytes
        self.clock = clock
        self.memory = TTLCache(ttl_seconds=ttl_seconds, max_entries=max_entries, clock=clock)
        self._pending_writes: Set[asyncio.Task] = set()

    def _namespaced(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Any:
        """
        Look a key up in the fast map, then in the durable cache.

        Returns:
            The cached value, or CACHE_MISS
        """
        if not key:
            return CACHE_MISS

        value = self.memory.get(key)
        if value is not CACHE_MISS:
            return value

        if self.durable is None:
            return CACHE_MISS

        try:
            raw = await self.durable.get(self._namespaced(key))
        except Exception as e:
            logger.warning(f"[TieredCache] Durable get failed, using fast map only: {e}")
            return CACHE_MISS

        if raw is None:
            return CACHE_MISS

        try:
            value = decode_cache_payload(raw)
        except MalformedCacheValueError as e:
            logger.warning(f"[TieredCache] Discarding malformed durable payload for {key[:80]}: {e}")
            return CACHE_MISS

        self.memory.set(key, value, self._remaining_ttl(raw))
        return value

    def _remaining_ttl(self, raw: Any) -> Optional[float]:
        """TTL left on a durable payload, from its write timestamp; None when unknown."""
        timestamp_ms = decode_cache_timestamp(raw)
        if not isinstance(timestamp_ms, (int, float)) or isinstance(timestamp_ms, bool):
            return None
        age = self.clock() - timestamp_ms / 1000
        return max(0.0, self.ttl_seconds - age)

    def _serialize(self, value: Any) -> Optional[str]:
        """Serialize a value into the durable payload shape, or None if it is too large."""
        timestamp = int(self.clock() * 1000)
        try:
            payload = json.dumps({"value": value, "timestamp": timestamp}, default=str)
        except ValueError:
            logger.warning("[TieredCache] Circular structure in cached value, storing placeholder")
            payload = json.dumps({"value": CIRCULAR_PLACEHOLDER, "timestamp": timestamp})

        size = len(payload.encode("utf-8"))
        if size > self.max_payload_bytes:
            logger.warning(
                f"[TieredCache] Payload of {size} bytes exceeds {self.max_payload_bytes}, skipping durable write"
            )
            return None
        return payload

    async def _write_durable(self, namespaced_key: str, payload: str, expiry_ms: int) -> None:
        try:
            await self.durable.set(namespaced_key, payload, expiry_ms)
        except Exception as e:
            logger.warning(f"[TieredCache] Durable set failed for {namespaced_key[:80]}: {e}")

    async def set(self, key: str, value: Any, ttl_override: Optional[float] = None) -> None:
        """
        Write-through: update the fast map now, write the durable tier in the background.

        Args:
            key: Cache key
            value: JSON-friendly value (None allowed)
            ttl_override: TTL in seconds for this entry
        """
        if not key:
            return

        self.memory.set(key, value, ttl_override)

        if self.durable is None:
            return

        payload = self._serialize(value)
        if payload is None:
            return

        ttl = ttl_override if ttl_override is not None else self.ttl_seconds
        expiry_ms = max(1000, int(ttl * 1000))

        task = asyncio.create_task(self._write_durable(self._namespaced(key), payload, expiry_ms))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def flush(self) -> None:
        """Wait for background durable writes started so far."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def entries(self, limit: int = 50) -> List[CacheEntry]:
        """
        Most recent cache entries, read from the durable tier when available.

        Args:
            limit: Maximum number of entries

        Returns:
            List of CacheEntry, newest first
        """
        local = sorted(self.memory.entries(), key=lambda e: e.inserted_at, reverse=True)[:limit]

        if self.durable is None:
            return local

        prefix = f"{self.namespace}:"
        try:
            keys = await self.durable.keys(f"{prefix}*")
            if not keys:
                return local
            selected = keys[max(0, len(keys) - limit):]
            values = await self.durable.mget(selected)
        except Exception as e:
            logger.warning(f"[TieredCache] Durable entries failed, using fast map: {e}")
            return local

        entries = []
        for namespaced_key, raw in zip(selected, values):
            if raw is None:
                continue
            try:
                value = decode_cache_payload(raw)
            except MalformedCacheValueError:
                value = raw
            timestamp_ms = decode_cache_timestamp(raw)
            inserted_at = timestamp_ms / 1000 if isinstance(timestamp_ms, (int, float)) else self.clock()
            entries.append(CacheEntry(
                key=namespaced_key[len(prefix):] if namespaced_key.startswith(prefix) else namespaced_key,
                value=value,
                inserted_at=inserted_at
            ))

        entries.sort(key=lambda e: e.inserted_at, reverse=True)
        return entries

    async def close(self) -> None:
        """Drain background writes and close the durable tier."""
        await self.flush()
        if self.durable is not None:
            try:
                await self.durable.close()
            except Exception as e:
                logger.warning(f"[TieredCache] Error closing durable cache: {e}")
