"""Protocol definitions for services."""

from __future__ import annotations

from typing import Protocol

from result import Result

from cclens.models.conversations import ConversationRecord
from cclens.models.errors import ServiceError
from cclens.models.projects import ProjectSummary
from cclens.models.search import SearchMode, SearchResults
from cclens.models.stats import ConversationStats, GlobalStats, ProjectStats


class ProjectServiceProtocol(Protocol):
    """Interface for project operations."""

    async def list_projects(self) -> Result[list[ProjectSummary], ServiceError]: ...

    async def get_project(self, project_id: str) -> Result[ProjectSummary, ServiceError]: ...


class ConversationServiceProtocol(Protocol):
    """Interface for conversation operations."""

    async def list_conversations(
        self, project_id: str
    ) -> Result[list[ConversationRecord], ServiceError]: ...

    async def get_conversation(
        self,
        conversation_id: str,
        project_id: str | None = None,
    ) -> Result[ConversationRecord, ServiceError]: ...


class SearchServiceProtocol(Protocol):
    """Interface for search operations."""

    async def search(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.EXACT,
        project_id: str | None = None,
    ) -> Result[SearchResults, ServiceError]: ...

    async def search_conversation(
        self,
        conversation_id: str,
        query: str,
        mode: SearchMode | str = SearchMode.EXACT,
        project_id: str | None = None,
    ) -> Result[SearchResults, ServiceError]: ...


class StatsServiceProtocol(Protocol):
    """Interface for statistics operations."""

    async def get_project_stats(self, project_id: str) -> Result[ProjectStats, ServiceError]: ...

    async def get_conversation_stats(
        self,
        conversation_id: str,
        project_id: str | None = None,
    ) -> Result[ConversationStats, ServiceError]: ...

    async def get_global_stats(self) -> Result[GlobalStats, ServiceError]: ...
