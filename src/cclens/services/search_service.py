"""Search service — project and corpus-wide search over cached indices."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cclens.data.discovery import (
    DiscoveredProject,
    discover_projects,
    find_conversation_file,
    find_project,
)
from cclens.data.extractor import extract_text
from cclens.data.index import SearchIndex
from cclens.data.query import make_preview, merge_results, run_query
from cclens.models.errors import ServiceError
from cclens.models.search import (
    MatchPreview,
    SearchHit,
    SearchMode,
    SearchResult,
    SearchResults,
)
from cclens.services._helpers import check_identifier

if TYPE_CHECKING:
    from cclens.config import Config
    from cclens.data.protocols import CacheProtocol
    from cclens.data.repositories import ConversationRepository

logger = logging.getLogger(__name__)


class SearchService:
    """Service for searching conversations.

    Indices are built per project and kept in the injected cache. A search
    without a project fans out one task per project and merges the ranked
    groups at the end; no state is shared between the per-project passes.
    """

    def __init__(
        self,
        config: Config,
        repository: ConversationRepository,
        index_cache: CacheProtocol[str, SearchIndex],
    ) -> None:
        self._config = config
        self._repository = repository
        self._cache = index_cache

    async def search(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.EXACT,
        project_id: str | None = None,
    ) -> Result[SearchResults, ServiceError]:
        """Search one project, or every project when ``project_id`` is None.

        Returns at most ``Config.search_result_limit`` hits; ``truncated`` is
        set when more conversations matched.
        """
        try:
            search_mode = SearchMode(mode)
        except ValueError:
            return Err(ServiceError.invalid(f"Unknown search mode: {mode!r}"))

        if not query.strip():
            return Ok(SearchResults(query=query, mode=search_mode))

        if project_id is not None:
            if error := check_identifier(project_id, "project"):
                return Err(error)
            project = await asyncio.to_thread(find_project, self._config, project_id)
            if project is None:
                return Err(ServiceError.not_found(f"Project {project_id} not found"))
            projects = [project]
        else:
            projects = await asyncio.to_thread(discover_projects, self._config)

        try:
            groups = await asyncio.gather(
                *(self._search_project(project, query, search_mode) for project in projects)
            )
        except Exception as exc:
            logger.exception("Search failed for %r", query)
            return Err(ServiceError.internal(f"Search failed: {exc}"))

        names = {project.project_id: project.name for project in projects}
        return Ok(self._format(query, search_mode, merge_results(*groups), names))

    async def search_conversation(
        self,
        conversation_id: str,
        query: str,
        mode: SearchMode | str = SearchMode.EXACT,
        project_id: str | None = None,
    ) -> Result[SearchResults, ServiceError]:
        """Search within a single conversation."""
        try:
            search_mode = SearchMode(mode)
        except ValueError:
            return Err(ServiceError.invalid(f"Unknown search mode: {mode!r}"))
        if error := check_identifier(conversation_id, "conversation"):
            return Err(error)
        if project_id is not None and (error := check_identifier(project_id, "project")):
            return Err(error)

        located = await asyncio.to_thread(
            find_conversation_file, self._config, conversation_id, project_id
        )
        if located is None:
            return Err(ServiceError.not_found(f"Conversation {conversation_id} not found"))
        if not query.strip():
            return Ok(SearchResults(query=query, mode=search_mode))

        owner, path = located

        async def build() -> SearchIndex:
            record = await self._repository.load_one(owner, path)
            return SearchIndex.from_conversations([record])

        try:
            index = await self._cache.get_or_build(f"conversation:{owner}/{conversation_id}", build)
        except OSError as exc:
            logger.warning("Failed to read conversation %s: %s", path, exc)
            return Err(ServiceError.not_found(f"Conversation {conversation_id} not found"))

        results = await asyncio.to_thread(run_query, index, query, search_mode)
        return Ok(self._format(query, search_mode, results, {owner: owner}))

    async def project_index(self, project: DiscoveredProject) -> SearchIndex:
        """Cached index for a project, built from its logs on a miss."""

        async def build() -> SearchIndex:
            conversations = await self._repository.load_many(
                project.project_id, project.conversation_files
            )
            return await asyncio.to_thread(SearchIndex.from_conversations, conversations)

        return await self._cache.get_or_build(f"project:{project.project_id}", build)

    def invalidate(self, project_id: str | None = None) -> None:
        """Drop cached indices for one project, or all of them."""
        if project_id is None:
            self._cache.clear()
        else:
            self._cache.invalidate(f"project:{project_id}")

    async def _search_project(
        self,
        project: DiscoveredProject,
        query: str,
        mode: SearchMode,
    ) -> list[SearchResult]:
        try:
            index = await self.project_index(project)
        except OSError as exc:
            logger.warning("Skipping project %s: %s", project.project_id, exc)
            return []
        return await asyncio.to_thread(run_query, index, query, mode)

    def _format(
        self,
        query: str,
        mode: SearchMode,
        ranked: list[SearchResult],
        project_names: dict[str, str],
    ) -> SearchResults:
        limit = self._config.search_result_limit
        return SearchResults(
            query=query,
            mode=mode,
            results=[
                self._to_hit(result, query, mode, project_names) for result in ranked[:limit]
            ],
            total_matches=sum(result.match_count for result in ranked),
            total_conversations=len(ranked),
            truncated=len(ranked) > limit,
        )

    def _to_hit(
        self,
        result: SearchResult,
        query: str,
        mode: SearchMode,
        project_names: dict[str, str],
    ) -> SearchHit:
        conversation = result.conversation
        previews: list[MatchPreview] = []
        for uuid in result.matching_message_ids[: self._config.previews_per_hit]:
            message = conversation.message_by_uuid(uuid)
            if message is None:
                continue
            previews.append(
                MatchPreview(
                    uuid=message.uuid,
                    role=message.role,
                    timestamp=message.timestamp,
                    preview=make_preview(
                        extract_text(message),
                        query,
                        mode,
                        before=self._config.preview_before,
                        after=self._config.preview_after,
                    ),
                )
            )
        return SearchHit(
            project_id=result.project_id,
            project_name=project_names.get(result.project_id, result.project_id),
            conversation_id=result.conversation_id,
            summary=conversation.summary.text,
            message_count=conversation.message_count,
            last_updated=conversation.last_updated,
            match_count=result.match_count,
            matches=previews,
        )
