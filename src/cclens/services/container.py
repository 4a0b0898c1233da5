"""Service container with DI wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiosqlite

from cclens.data.cache import StatsSnapshotStore, TTLCache
from cclens.data.db import Database
from cclens.data.index import SearchIndex
from cclens.data.repositories import ConversationRepository
from cclens.services.conversation_service import ConversationService
from cclens.services.project_service import ProjectService
from cclens.services.search_service import SearchService
from cclens.services.stats_service import StatsService

if TYPE_CHECKING:
    from cclens.config import Config

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Holds all application services. Built once at startup, immutable."""

    db: Database | None
    project_service: ProjectService
    conversation_service: ConversationService
    search_service: SearchService
    stats_service: StatsService

    @classmethod
    async def create(cls, config: Config) -> ServiceContainer:
        """Async factory that wires all dependencies.

        The snapshot database is optional: if it cannot be opened, stats are
        recomputed from the logs on every request.
        """
        db: Database | None = Database(config.db_path)
        try:
            await db.connect()  # type: ignore[union-attr]
        except (aiosqlite.Error, OSError) as exc:
            logger.warning("Stats snapshots disabled, cannot open %s: %s", config.db_path, exc)
            db = None

        repository = ConversationRepository()
        index_cache: TTLCache[str, SearchIndex] = TTLCache(ttl_seconds=config.index_ttl_seconds)

        return cls(
            db=db,
            project_service=ProjectService(config),
            conversation_service=ConversationService(config, repository),
            search_service=SearchService(config, repository, index_cache),
            stats_service=StatsService(config, StatsSnapshotStore(db)),
        )

    async def close(self) -> None:
        """Shut down all services."""
        if self.db is not None:
            await self.db.close()
