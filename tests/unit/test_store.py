"""Tests for memory persistence."""

from unittest.mock import AsyncMock

import pytest


class FailingStore:
    """Store whose every operation fails."""

    name = "broken"

    async def get(self, key):
        from src.memory.store import StoreError

        raise StoreError(self.name, "connection refused")

    async def set(self, key, blob):
        from src.memory.store import StoreError

        raise StoreError(self.name, "connection refused")

    async def delete(self, key):
        from src.memory.store import StoreError

        raise StoreError(self.name, "connection refused")


class TestFileStore:
    """Tests for the local JSON file store."""

    @pytest.mark.asyncio
    async def test_missing_file_is_none(self, tmp_path):
        from src.memory.store import FileStore

        store = FileStore(tmp_path / "memory.json")
        assert await store.get("prediction_memory") is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        from src.memory.store import FileStore

        path = tmp_path / "nested" / "memory.json"
        store = FileStore(path)
        await store.set("prediction_memory", '{"version": 2}')

        assert await store.get("prediction_memory") == '{"version": 2}'
        # Temp file is renamed away
        assert not (tmp_path / "nested" / "memory.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        from src.memory.store import FileStore

        store = FileStore(tmp_path / "memory.json")
        await store.set("k", "{}")
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_undecodable_file_is_store_error(self, tmp_path):
        from src.memory.store import FileStore, StoreError

        path = tmp_path / "memory.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(StoreError):
            await FileStore(path).get("prediction_memory")


class TestRedisStore:
    """Tests for the Redis adapter with a mocked client."""

    @pytest.mark.asyncio
    async def test_get_and_set(self):
        from src.memory.store import RedisStore

        client = AsyncMock()
        client.get.return_value = "{}"
        store = RedisStore(client)

        assert await store.get("prediction_memory") == "{}"
        await store.set("prediction_memory", "{}")
        client.set.assert_awaited_once_with("prediction_memory", "{}")

    @pytest.mark.asyncio
    async def test_redis_errors_become_store_errors(self):
        from redis.exceptions import ConnectionError as RedisConnectionError

        from src.memory.store import RedisStore, StoreError

        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")
        store = RedisStore(client)

        with pytest.raises(StoreError):
            await store.get("prediction_memory")


class TestMemoryStore:
    """Tests for load/save with fallback."""

    @pytest.mark.asyncio
    async def test_load_empty_gives_fresh_memory(self, memory_store):
        memory = await memory_store.load()
        assert memory.predictions == []
        assert memory.version == 2

    @pytest.mark.asyncio
    async def test_save_then_load(self, memory_store, memory):
        memory.patterns = ["On a 3-match win streak (best 3)"]
        assert await memory_store.save(memory) is True

        loaded = await memory_store.load()
        assert loaded.patterns == memory.patterns

    @pytest.mark.asyncio
    async def test_save_falls_back_when_primary_fails(self, memory):
        from src.memory.store import InMemoryStore, MemoryStore

        fallback = InMemoryStore()
        store = MemoryStore(FailingStore(), fallback)

        assert await store.save(memory) is True
        assert "prediction_memory" in fallback.data

    @pytest.mark.asyncio
    async def test_load_falls_back_when_primary_fails(self, memory):
        from src.memory.store import InMemoryStore, MemoryStore

        memory.total_predictions = 7
        fallback = InMemoryStore({"prediction_memory": memory.model_dump_json()})
        store = MemoryStore(FailingStore(), fallback)

        loaded = await store.load()
        assert loaded.total_predictions == 7

    @pytest.mark.asyncio
    async def test_all_stores_failing(self, memory):
        from src.memory.store import MemoryStore

        store = MemoryStore(FailingStore(), FailingStore())
        assert await store.save(memory) is False
        loaded = await store.load()
        assert loaded.predictions == []

    @pytest.mark.asyncio
    async def test_corrupt_blob_gives_fresh_memory(self):
        from src.memory.store import InMemoryStore, MemoryStore

        store = MemoryStore(InMemoryStore({"prediction_memory": "{{{"}))
        memory = await store.load()
        assert memory.predictions == []

    @pytest.mark.asyncio
    async def test_undecodable_file_gives_fresh_memory(self, tmp_path):
        from src.memory.store import FileStore, MemoryStore

        path = tmp_path / "memory.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        memory = await MemoryStore(None, FileStore(path)).load()
        assert memory.predictions == []

    @pytest.mark.asyncio
    async def test_deeply_nested_blob_gives_fresh_memory(self):
        from src.memory.store import InMemoryStore, MemoryStore

        blob = "[" * 100000 + "]" * 100000
        memory = await MemoryStore(InMemoryStore({"prediction_memory": blob})).load()
        assert memory.predictions == []

    @pytest.mark.asyncio
    async def test_fresh_memory_uses_given_weights(self):
        from src.data.profiles import CLASSIC
        from src.memory.store import InMemoryStore, MemoryStore

        memory = await MemoryStore(InMemoryStore()).load(CLASSIC.default_weights)

        assert memory.learned_weights == CLASSIC.default_weights
        assert memory.factor_accuracy["h2h"].total == 0

    @pytest.mark.asyncio
    async def test_corrupt_primary_skipped_for_fallback(self, memory):
        from src.memory.store import InMemoryStore, MemoryStore

        memory.total_predictions = 3
        primary = InMemoryStore({"prediction_memory": "garbage"})
        fallback = InMemoryStore({"prediction_memory": memory.model_dump_json()})

        loaded = await MemoryStore(primary, fallback).load()
        assert loaded.total_predictions == 3

    @pytest.mark.asyncio
    async def test_reset_writes_every_store(self, memory):
        from src.memory.store import InMemoryStore, MemoryStore

        memory.total_predictions = 12
        blob = memory.model_dump_json()
        primary = InMemoryStore({"prediction_memory": blob})
        fallback = InMemoryStore({"prediction_memory": blob})
        store = MemoryStore(primary, fallback)

        assert await store.reset() is True
        for backing in (primary, fallback):
            loaded = await MemoryStore(backing).load()
            assert loaded.total_predictions == 0

    @pytest.mark.asyncio
    async def test_reset_partial_failure_still_succeeds(self):
        from src.memory.store import InMemoryStore, MemoryStore

        store = MemoryStore(FailingStore(), InMemoryStore())
        assert await store.reset() is True

    @pytest.mark.asyncio
    async def test_custom_key(self, memory):
        from src.memory.store import InMemoryStore, MemoryStore

        backing = InMemoryStore()
        await MemoryStore(backing, key="staging_memory").save(memory)
        assert list(backing.data) == ["staging_memory"]
