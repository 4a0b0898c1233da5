"""Project service — project directory listing."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cclens.data.discovery import DiscoveredProject, discover_projects, find_project
from cclens.models.errors import ServiceError
from cclens.models.projects import ProjectSummary
from cclens.services._helpers import check_identifier

if TYPE_CHECKING:
    from cclens.config import Config

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project queries."""

    def __init__(self, config: Config) -> None:
        self._config = config

    async def list_projects(self) -> Result[list[ProjectSummary], ServiceError]:
        """List all projects sorted by last modification, newest first."""
        try:
            projects = await asyncio.to_thread(discover_projects, self._config)
        except OSError as exc:
            logger.exception("Failed to list projects")
            return Err(ServiceError.internal(f"Failed to list projects: {exc}"))
        return Ok([_to_summary(project) for project in projects])

    async def get_project(self, project_id: str) -> Result[ProjectSummary, ServiceError]:
        """Get a single project by ID."""
        if error := check_identifier(project_id, "project"):
            return Err(error)
        project = await asyncio.to_thread(find_project, self._config, project_id)
        if project is None:
            return Err(ServiceError.not_found(f"Project {project_id} not found"))
        return Ok(_to_summary(project))


def _to_summary(project: DiscoveredProject) -> ProjectSummary:
    return ProjectSummary(
        project_id=project.project_id,
        name=project.name,
        path=str(project.dir_path),
        conversation_count=len(project.conversation_files),
        last_modified=project.last_modified,
    )
