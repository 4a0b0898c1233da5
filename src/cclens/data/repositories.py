"""Repository layer reading conversation logs from disk."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from cclens.data.parser import Clock, parse_conversation_file, utc_now
from cclens.models.conversations import ConversationRecord

logger = logging.getLogger(__name__)


class ConversationRepository:
    """Loads ``ConversationRecord``s, running file I/O and parsing off the event loop."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def load_many_sync(self, project_id: str, files: Iterable[Path]) -> list[ConversationRecord]:
        """Parse every file, omitting the ones that cannot be read or parsed."""
        conversations: list[ConversationRecord] = []
        for path in files:
            try:
                conversations.append(parse_conversation_file(path, project_id, clock=self._clock))
            except OSError as exc:
                logger.warning("Skipping unreadable log %s: %s", path, exc)
            except Exception:
                logger.exception("Skipping log %s that failed to parse", path)
        return conversations

    async def load_many(self, project_id: str, files: Iterable[Path]) -> list[ConversationRecord]:
        return await asyncio.to_thread(self.load_many_sync, project_id, list(files))

    async def load_one(self, project_id: str, path: Path) -> ConversationRecord:
        """Parse a single log. Raises ``OSError`` when the file cannot be read."""
        return await asyncio.to_thread(
            parse_conversation_file, path, project_id, clock=self._clock
        )
