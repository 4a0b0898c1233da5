"""Caches for built search indices and computed statistics.

Two invalidation strategies live side by side:

* ``TTLCache`` keeps in-memory values for a fixed window regardless of
  changes on disk. Used for search indices, where slight staleness is fine.
* ``StatsSnapshotStore`` persists statistics in SQLite and only serves a
  snapshot while its build time is at least the watched directory's
  modification time.

Both are best-effort: a failed read or write is logged and treated as a
miss, never surfaced to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiosqlite
from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from cclens.data.protocols import DatabaseProtocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(slots=True)
class _Entry[V]:
    value: V
    stored_at: float


class TTLCache[K, V]:
    """Key/value store whose entries expire ``ttl_seconds`` after insertion.

    ``get_or_build`` serializes builders per key with an ``asyncio.Lock`` so
    concurrent misses for the same key build once; distinct keys never
    contend.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}
        self._locks: dict[K, asyncio.Lock] = {}
        self._lock_users: dict[K, int] = {}

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: K, value: V) -> None:
        self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def invalidate(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending_builds(self) -> int:
        """Number of keys with a build in progress or waiting on one."""
        return len(self._locks)

    async def get_or_build(self, key: K, builder: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value for ``key``, building and storing it on a miss.

        A key's lock is dropped once no caller is building or waiting on it.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                cached = self.get(key)
                if cached is not None:
                    return cached
                value = await builder()
                self.put(key, value)
                return value
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]


class StatsSnapshotStore:
    """Persisted statistics snapshots keyed by scope (e.g. ``project:<id>``)."""

    def __init__(self, db: DatabaseProtocol | None) -> None:
        self._db = db

    async def load[M: BaseModel](
        self,
        key: str,
        model: type[M],
        source_mtime_ms: int,
    ) -> M | None:
        """Return the snapshot for ``key`` if it is not older than ``source_mtime_ms``."""
        if self._db is None:
            return None
        try:
            row = await self._db.fetch_one(
                "SELECT built_at_ms, payload FROM stats_snapshots WHERE scope_key = ?",
                (key,),
            )
            if row is None:
                return None
            if int(row["built_at_ms"]) < source_mtime_ms:
                logger.info("Stats snapshot for %s is stale, rebuilding", key)
                return None
            return model.model_validate_json(row["payload"])
        except (aiosqlite.Error, OSError, RuntimeError, ValidationError, ValueError) as exc:
            logger.warning("Ignoring unreadable stats snapshot for %s: %s", key, exc)
            return None

    async def save(self, key: str, snapshot: BaseModel, built_at_ms: int) -> None:
        """Insert or replace the snapshot for ``key``."""
        if self._db is None:
            return
        try:
            await self._db.execute(
                """INSERT OR REPLACE INTO stats_snapshots (scope_key, built_at_ms, payload)
                VALUES (?, ?, ?)""",
                (key, built_at_ms, snapshot.model_dump_json()),
            )
            await self._db.commit()
        except (aiosqlite.Error, OSError, RuntimeError) as exc:
            logger.warning("Failed to write stats snapshot for %s: %s", key, exc)

    async def invalidate(self, key: str) -> None:
        if self._db is None:
            return
        try:
            await self._db.execute("DELETE FROM stats_snapshots WHERE scope_key = ?", (key,))
            await self._db.commit()
        except (aiosqlite.Error, OSError, RuntimeError) as exc:
            logger.warning("Failed to drop stats snapshot for %s: %s", key, exc)


def now_ms() -> int:
    return int(time.time() * 1000)
