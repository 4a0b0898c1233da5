"""Protocol definitions for data access."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import BaseModel


class DatabaseProtocol(Protocol):
    """Async database interface."""

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> Any: ...

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> Any | None: ...

    async def commit(self) -> None: ...


class CacheProtocol[K, V](Protocol):
    """Key/value store with explicit invalidation."""

    def get(self, key: K) -> V | None: ...

    def put(self, key: K, value: V) -> None: ...

    def invalidate(self, key: K) -> None: ...

    def clear(self) -> None: ...

    async def get_or_build(self, key: K, builder: Callable[[], Awaitable[V]]) -> V: ...


class SnapshotStoreProtocol(Protocol):
    """Persisted snapshots validated against a source modification time."""

    async def load[M: BaseModel](
        self, key: str, model: type[M], source_mtime_ms: int
    ) -> M | None: ...

    async def save(self, key: str, snapshot: BaseModel, built_at_ms: int) -> None: ...

    async def invalidate(self, key: str) -> None: ...
