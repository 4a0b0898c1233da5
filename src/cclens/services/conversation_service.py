"""Conversation service — parsed conversations per project."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cclens.data.discovery import find_conversation_file, find_project
from cclens.models.errors import ServiceError
from cclens.services._helpers import check_identifier

if TYPE_CHECKING:
    from cclens.config import Config
    from cclens.data.repositories import ConversationRepository
    from cclens.models.conversations import ConversationRecord

logger = logging.getLogger(__name__)


class ConversationService:
    """Service for conversation queries."""

    def __init__(self, config: Config, repository: ConversationRepository) -> None:
        self._config = config
        self._repository = repository

    async def list_conversations(
        self, project_id: str
    ) -> Result[list[ConversationRecord], ServiceError]:
        """List a project's conversations, most recently updated first.

        Logs that cannot be read are left out of the listing.
        """
        if error := check_identifier(project_id, "project"):
            return Err(error)
        project = await asyncio.to_thread(find_project, self._config, project_id)
        if project is None:
            return Err(ServiceError.not_found(f"Project {project_id} not found"))

        try:
            conversations = await self._repository.load_many(
                project.project_id, project.conversation_files
            )
        except Exception as exc:
            logger.exception("Failed to load conversations for %s", project_id)
            return Err(ServiceError.internal(f"Failed to load conversations: {exc}"))
        conversations.sort(key=lambda c: c.last_updated, reverse=True)
        return Ok(conversations)

    async def get_conversation(
        self,
        conversation_id: str,
        project_id: str | None = None,
    ) -> Result[ConversationRecord, ServiceError]:
        """Load one conversation, looking through every project if none is given."""
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
            return Ok(await self._repository.load_one(owner, path))
        except OSError as exc:
            logger.warning("Failed to read conversation %s: %s", path, exc)
            return Err(ServiceError.not_found(f"Conversation {conversation_id} not found"))
