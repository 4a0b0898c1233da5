"""Stats service — usage statistics backed by persisted snapshots."""

from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cclens.data.cache import now_ms
from cclens.data.discovery import (
    DiscoveredProject,
    discover_projects,
    find_conversation_file,
    find_project,
    watched_mtime_ms,
)
from cclens.data.stats import aggregate_conversation_file, aggregate_project, combine_project_stats
from cclens.models.errors import ServiceError
from cclens.models.stats import ConversationStats, GlobalStats, ProjectStats
from cclens.services._helpers import check_identifier

if TYPE_CHECKING:
    from cclens.config import Config
    from cclens.data.protocols import SnapshotStoreProtocol

logger = logging.getLogger(__name__)


class StatsService:
    """Service for statistics queries."""

    def __init__(
        self,
        config: Config,
        snapshots: SnapshotStoreProtocol,
        tz: tzinfo | None = None,
    ) -> None:
        self._config = config
        self._snapshots = snapshots
        self._tz = tz

    async def get_project_stats(self, project_id: str) -> Result[ProjectStats, ServiceError]:
        """Statistics for one project, served from a snapshot while it is fresh."""
        if error := check_identifier(project_id, "project"):
            return Err(error)
        project = await asyncio.to_thread(find_project, self._config, project_id)
        if project is None:
            return Err(ServiceError.not_found(f"Project {project_id} not found"))
        try:
            return Ok(await self._project_stats(project))
        except Exception as exc:
            logger.exception("Failed to compute stats for %s", project_id)
            return Err(ServiceError.internal(f"Failed to calculate stats: {exc}"))

    async def get_conversation_stats(
        self,
        conversation_id: str,
        project_id: str | None = None,
    ) -> Result[ConversationStats, ServiceError]:
        """Statistics for one conversation, computed directly from its log."""
        if error := check_identifier(conversation_id, "conversation"):
            return Err(error)
        if project_id is not None and (error := check_identifier(project_id, "project")):
            return Err(error)

        located = await asyncio.to_thread(
            find_conversation_file, self._config, conversation_id, project_id
        )
        if located is None:
            return Err(ServiceError.not_found(f"Conversation {conversation_id} not found"))

        owner, path = located
        try:
            stats = await asyncio.to_thread(aggregate_conversation_file, path, owner, tz=self._tz)
        except OSError as exc:
            logger.warning("Failed to read conversation %s: %s", path, exc)
            return Err(ServiceError.not_found(f"Conversation {conversation_id} not found"))
        return Ok(stats)

    async def get_global_stats(self) -> Result[GlobalStats, ServiceError]:
        """Totals across every project, one aggregation task per project."""
        try:
            projects = await asyncio.to_thread(discover_projects, self._config)
            per_project = await asyncio.gather(
                *(self._project_stats_or_none(project) for project in projects)
            )
        except Exception as exc:
            logger.exception("Failed to compute global stats")
            return Err(ServiceError.internal(f"Failed to calculate stats: {exc}"))
        return Ok(combine_project_stats(stats for stats in per_project if stats is not None))

    async def _project_stats_or_none(self, project: DiscoveredProject) -> ProjectStats | None:
        try:
            return await self._project_stats(project)
        except OSError as exc:
            logger.warning("Skipping stats for project %s: %s", project.project_id, exc)
            return None

    async def _project_stats(self, project: DiscoveredProject) -> ProjectStats:
        key = f"project:{project.project_id}"
        source_mtime = await asyncio.to_thread(watched_mtime_ms, project.dir_path)
        cached = await self._snapshots.load(key, ProjectStats, source_mtime)
        if cached is not None:
            return cached

        built_at = now_ms()
        stats = await asyncio.to_thread(
            aggregate_project, project.project_id, project.conversation_files, tz=self._tz
        )
        await self._snapshots.save(key, stats, built_at)
        return stats
