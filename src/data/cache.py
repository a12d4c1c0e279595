"""SQLite response cache for the match feed."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite


class ResponseCache:
    """Async SQLite cache of raw feed responses with per-entry expiry."""

    def __init__(self, db_path: str | Path = "data/cache.db"):
        self.db_path = str(db_path)
        self._connection: aiosqlite.Connection | None = None

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get or create a database connection."""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        yield self._connection

    async def initialize(self) -> None:
        """Create the cache table if it doesn't exist."""
        async with self._get_connection() as conn:
            await conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS api_cache (
                    cache_key TEXT PRIMARY KEY,
                    response_data TEXT NOT NULL,
                    fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    expires_at TIMESTAMP
                );
                """
            )
            await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def set_cached(self, key: str, data: Any, ttl_seconds: int = 120) -> None:
        """Cache a response for ttl_seconds."""
        expires_at = datetime.now() + timedelta(seconds=ttl_seconds)
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO api_cache (cache_key, response_data, expires_at)
                VALUES (?, ?, ?)
                ON CONFLICT(cache_key) DO UPDATE SET
                    response_data = excluded.response_data,
                    fetched_at = CURRENT_TIMESTAMP,
                    expires_at = excluded.expires_at
                """,
                (key, json.dumps(data), expires_at.isoformat()),
            )
            await conn.commit()

    async def get_cached(self, key: str) -> Any | None:
        """Get a cached response if not expired."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT response_data, expires_at FROM api_cache WHERE cache_key = ?",
                (key,),
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            expires_at = datetime.fromisoformat(row["expires_at"])
            if datetime.now() >= expires_at:
                return None

            return json.loads(row["response_data"])

    async def invalidate(self, pattern: str = "%") -> int:
        """
        Drop cached entries whose key matches a SQL LIKE pattern.

        Returns:
            Number of entries removed
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM api_cache WHERE cache_key LIKE ?",
                (pattern,),
            )
            await conn.commit()
            return cursor.rowcount
