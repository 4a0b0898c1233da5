"""In-memory search index over parsed conversations."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cclens.data.extractor import extract_text
from cclens.models.conversations import ConversationRecord
from cclens.models.search import IndexEntry, IndexStats

logger = logging.getLogger(__name__)


class SearchIndex:
    """Flat list of searchable entries plus a conversation lookup.

    The lowercase form of every entry is computed once at build time so that
    queries only lowercase the query string. Rebuilding replaces all state;
    there are no incremental updates.
    """

    def __init__(self) -> None:
        self._entries: list[IndexEntry] = []
        self._conversations: dict[str, ConversationRecord] = {}

    @classmethod
    def from_conversations(cls, conversations: Iterable[ConversationRecord]) -> SearchIndex:
        index = cls()
        index.build(conversations)
        return index

    def build(self, conversations: Iterable[ConversationRecord]) -> None:
        """Index every message with non-empty text, replacing prior state."""
        entries: list[IndexEntry] = []
        lookup: dict[str, ConversationRecord] = {}

        for conversation in conversations:
            lookup[conversation.id] = conversation
            for message in conversation.messages:
                text = extract_text(message)
                if not text:
                    continue
                entries.append(
                    IndexEntry(
                        conversation_id=conversation.id,
                        message_id=message.uuid,
                        raw_text=text,
                        lowercased_text=text.lower(),
                        timestamp=message.timestamp,
                    )
                )

        self._entries = entries
        self._conversations = lookup
        logger.debug(
            "Built search index: %d conversations, %d entries", len(lookup), len(entries)
        )

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return tuple(self._entries)

    def iter_entries(self) -> Iterable[IndexEntry]:
        return iter(self._entries)

    def conversation(self, conversation_id: str) -> ConversationRecord | None:
        return self._conversations.get(conversation_id)

    @property
    def conversation_ids(self) -> list[str]:
        return list(self._conversations)

    def stats(self) -> IndexStats:
        return IndexStats(
            total_conversations=len(self._conversations),
            total_entries=len(self._entries),
            index_size=sum(len(entry.raw_text) for entry in self._entries),
        )

    def clear(self) -> None:
        self._entries = []
        self._conversations = {}

    def __len__(self) -> int:
        return len(self._entries)
