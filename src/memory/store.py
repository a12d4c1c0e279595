"""Persistence for the prediction memory.

The memory is a single JSON blob, loaded and saved wholesale. A
`MemoryStore` tries its stores in priority order (Redis first, then a
local file) and never lets a storage failure reach the caller. Writes
are last-writer-wins; there is no locking or versioning.
"""

import os
from pathlib import Path
from typing import Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from src.data.models import Memory
from src.memory.schema import empty_memory, parse_memory

logger = structlog.get_logger()

MEMORY_KEY = "prediction_memory"


class StoreError(Exception):
    """Raised when a backing store cannot be read or written."""

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(f"{store} store error: {message}")


class Store(Protocol):
    """Key-value capability shared by every backing store."""

    name: str

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, blob: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store, for tests and dry runs."""

    name = "memory"

    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, blob: str) -> None:
        self.data[key] = blob

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FileStore:
    """Single JSON file; the key is ignored since the file holds one blob."""

    name = "file"

    def __init__(self, path: str | Path = "data/prediction_memory.json"):
        self.path = Path(path)

    async def get(self, key: str) -> str | None:
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(self.name, str(e)) from e

    async def set(self, key: str, blob: str) -> None:
        """Write to a temp file, then rename over the target."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(blob, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(self.name, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(self.name, str(e)) from e


class RedisStore:
    """Shared key-value store for stateless request handlers."""

    name = "redis"

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StoreError(self.name, str(e)) from e

    async def set(self, key: str, blob: str) -> None:
        try:
            await self.client.set(key, blob)
        except RedisError as e:
            raise StoreError(self.name, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StoreError(self.name, str(e)) from e

    async def close(self) -> None:
        await self.client.aclose()


class MemoryStore:
    """Loads and saves the whole Memory against prioritized stores."""

    def __init__(
        self,
        primary: Store | None = None,
        fallback: Store | None = None,
        key: str = MEMORY_KEY,
    ):
        """
        Initialize the memory store.

        Args:
            primary: Preferred store (usually Redis)
            fallback: Store used when the primary fails or is empty
            key: Key the memory blob lives under
        """
        self.stores: list[Store] = [s for s in (primary, fallback) if s is not None]
        self.key = key

    async def load(self, weights: dict[str, float] | None = None) -> Memory:
        """
        Load the memory, trying each store in order.

        Never raises: unreadable stores and corrupt blobs are skipped,
        and a fresh Memory is returned when nothing usable is found.

        Args:
            weights: Starting weights for a fresh memory, also used to
                replace stored weight vectors that name retired factors
        """
        for store in self.stores:
            try:
                blob = await store.get(self.key)
            except StoreError as e:
                logger.warning("memory_load_failed", store=store.name, error=str(e))
                continue

            if blob is None:
                continue

            memory = parse_memory(blob, weights)
            if memory is None:
                logger.warning("memory_corrupt", store=store.name)
                continue
            return memory

        return empty_memory(weights)

    async def save(self, memory: Memory) -> bool:
        """
        Save the memory to the first store that accepts it.

        Returns:
            True if any store accepted the write
        """
        blob = memory.model_dump_json()
        for store in self.stores:
            try:
                await store.set(self.key, blob)
            except StoreError as e:
                logger.warning("memory_save_failed", store=store.name, error=str(e))
                continue
            logger.debug("memory_saved", store=store.name, predictions=len(memory.predictions))
            return True

        logger.error("memory_save_exhausted", stores=[s.name for s in self.stores])
        return False

    async def reset(self, weights: dict[str, float] | None = None) -> bool:
        """
        Replace the stored memory with a fresh one in every store.

        The whole blob is overwritten so no store is left holding a
        partially-cleared or stale memory.

        Returns:
            True if at least one store now holds the fresh memory
        """
        blob = empty_memory(weights).model_dump_json()
        written = 0
        for store in self.stores:
            try:
                await store.set(self.key, blob)
                written += 1
            except StoreError as e:
                logger.warning("memory_reset_failed", store=store.name, error=str(e))

        logger.info("memory_reset", stores_written=written)
        return written > 0

    async def close(self) -> None:
        for store in self.stores:
            if isinstance(store, RedisStore):
                await store.close()
