"""
Tests for TTLCache and TieredCache: round trips, TTL, eviction and durable degradation.
"""
import json

import pytest

from pyq_retrieval.services.tiered_cache import CACHE_MISS, CIRCULAR_PLACEHOLDER, TieredCache, TTLCache


@pytest.fixture
def cache(durable, clock):
    return TieredCache(durable=durable, namespace="pyq-cache", ttl_seconds=900, max_entries=3, clock=clock)


class TestTTLCache:

    def test_expires_lazily(self, clock):
        memory = TTLCache(ttl_seconds=10, clock=clock)
        memory.set("k", "v")

        clock.advance(10)
        assert memory.get("k") == "v"
        clock.advance(1)
        assert memory.get("k") is CACHE_MISS
        assert len(memory) == 0

    def test_evicts_oldest_inserted(self, clock):
        memory = TTLCache(max_entries=2, clock=clock)
        memory.set("a", 1)
        memory.set("b", 2)
        memory.get("a")
        memory.set("c", 3)

        assert memory.get("a") is CACHE_MISS
        assert memory.get("b") == 2
        assert memory.get("c") == 3

    def test_ttl_override(self, clock):
        memory = TTLCache(ttl_seconds=900, clock=clock)
        memory.set("short", "v", ttl_override=5)

        clock.advance(6)
        assert memory.get("short") is CACHE_MISS


class TestTieredCache:

    @pytest.mark.asyncio
    async def test_round_trip(self, cache):
        await cache.set("k", {"content": "x"})
        await cache.flush()

        assert await cache.get("k") == {"content": "x"}

    @pytest.mark.asyncio
    async def test_round_trip_none(self, cache):
        await cache.set("k", None)
        await cache.flush()

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_miss_after_ttl(self, cache, clock):
        await cache.set("k", "v")
        await cache.flush()

        clock.advance(901)
        assert await cache.get("k") is CACHE_MISS

    @pytest.mark.asyncio
    async def test_durable_write_is_namespaced_envelope(self, cache, durable, clock):
        await cache.set("k", "v")
        await cache.flush()

        key, payload, expiry_ms = durable.set_calls[0]
        assert key == "pyq-cache:k"
        assert json.loads(payload) == {"value": "v", "timestamp": int(clock() * 1000)}
        assert expiry_ms == 900_000

    @pytest.mark.asyncio
    async def test_durable_hit_written_back_to_memory(self, cache, durable, clock):
        durable.put_raw("pyq-cache:k", json.dumps({"value": [1, 2], "timestamp": int(clock() * 1000)}))

        assert await cache.get("k") == [1, 2]
        durable.store.clear()
        assert await cache.get("k") == [1, 2]

    @pytest.mark.asyncio
    async def test_durable_hit_keeps_remaining_ttl_in_memory(self, cache, durable, clock):
        written_at = clock() - 800
        durable.put_raw("pyq-cache:k", json.dumps({"value": "v", "timestamp": int(written_at * 1000)}))

        assert await cache.get("k") == "v"
        durable.store.clear()

        clock.advance(99)
        assert await cache.get("k") == "v"
        clock.advance(2)
        assert await cache.get("k") is CACHE_MISS

    @pytest.mark.asyncio
    async def test_durable_hit_without_timestamp_gets_full_ttl(self, cache, durable, clock):
        durable.put_raw("pyq-cache:k", json.dumps("bare"))

        assert await cache.get("k") == "bare"
        durable.store.clear()

        clock.advance(899)
        assert await cache.get("k") == "bare"

    @pytest.mark.asyncio
    async def test_corrupted_durable_payload_recovered(self, cache, durable):
        durable.put_raw("pyq-cache:k", '{"value": "42", "timestamp": 1700')

        assert await cache.get("k") == "42"

    @pytest.mark.asyncio
    async def test_unrecoverable_durable_payload_is_miss(self, cache, durable):
        durable.put_raw("pyq-cache:k", "<<garbage>>")

        assert await cache.get("k") is CACHE_MISS

    @pytest.mark.asyncio
    async def test_durable_get_failure_degrades(self, cache, durable):
        durable.fail_get = True

        assert await cache.get("k") is CACHE_MISS
        await cache.set("k", "v")
        await cache.flush()
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_durable_set_failure_is_silent(self, cache, durable):
        durable.fail_set = True

        await cache.set("k", "v")
        await cache.flush()

        assert await cache.get("k") == "v"
        assert durable.store == {}

    @pytest.mark.asyncio
    async def test_oversized_payload_not_written_durably(self, durable, clock):
        cache = TieredCache(durable=durable, max_payload_bytes=100, clock=clock)

        await cache.set("big", "x" * 500)
        await cache.flush()

        assert durable.set_calls == []
        assert await cache.get("big") == "x" * 500

    @pytest.mark.asyncio
    async def test_circular_value_gets_placeholder(self, cache, durable):
        value = {}
        value["self"] = value

        await cache.set("loop", value)
        await cache.flush()

        assert json.loads(durable.set_calls[0][1])["value"] == CIRCULAR_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_memory_only_mode(self, clock):
        cache = TieredCache(durable=None, max_entries=2, clock=clock)
        await cache.set("a", 1)
        clock.advance(1)
        await cache.set("b", 2)
        clock.advance(1)
        await cache.set("c", 3)

        assert await cache.get("a") is CACHE_MISS
        assert [e.key for e in await cache.entries(10)] == ["c", "b"]

    @pytest.mark.asyncio
    async def test_entries_newest_first(self, cache, clock):
        await cache.set("old", 1)
        clock.advance(5)
        await cache.set("new", 2)
        await cache.flush()

        entries = await cache.entries(10)

        assert [e.key for e in entries] == ["new", "old"]
        assert entries[0].value == 2

    @pytest.mark.asyncio
    async def test_entries_fall_back_to_memory(self, cache, durable, clock):
        await cache.set("k", "v")
        await cache.flush()
        durable.fail_keys = True

        assert [e.key for e in await cache.entries(10)] == ["k"]

    @pytest.mark.asyncio
    async def test_close_drains_and_closes(self, cache, durable):
        await cache.set("k", "v")
        await cache.close()

        assert durable.closed
        assert "pyq-cache:k" in durable.store

    @pytest.mark.asyncio
    async def test_empty_key_is_miss(self, cache):
        await cache.set("", "v")

        assert await cache.get("") is CACHE_MISS
