"""Search models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from cclens.models.conversations import ConversationRecord
from cclens.models.messages import MessageRole


class SearchMode(StrEnum):
    """How a query string is matched against indexed text.

    ``EXACT`` treats the whole query as one phrase bounded by word
    boundaries. ``PARTIAL`` splits the query into word tokens and requires
    every token to appear somewhere in the text. ``"regex"`` is accepted as
    an alias of ``PARTIAL`` for older callers.
    """

    EXACT = "exact"
    PARTIAL = "partial"

    @classmethod
    def _missing_(cls, value: object) -> SearchMode | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "regex":
                return cls.PARTIAL
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """One unit of searchable text. Never mutated after creation."""

    conversation_id: str
    message_id: str
    raw_text: str
    lowercased_text: str
    timestamp: str


@dataclass(frozen=True, slots=True)
class IndexStats:
    total_conversations: int = 0
    total_entries: int = 0
    index_size: int = 0


class SearchResult(BaseModel):
    """Matches of a query within one conversation."""

    conversation_id: str
    project_id: str = ""
    conversation: ConversationRecord
    matching_message_ids: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def match_count(self) -> int:
        return len(self.matching_message_ids)

    @property
    def last_updated(self) -> datetime:
        return self.conversation.last_updated


class MatchPreview(BaseModel):
    """A short excerpt of one matching message."""

    uuid: str
    role: MessageRole
    timestamp: str = ""
    preview: str = ""


class SearchHit(BaseModel):
    """A search result trimmed for display."""

    project_id: str
    project_name: str = ""
    conversation_id: str
    summary: str = ""
    message_count: int = 0
    last_updated: datetime
    match_count: int = 0
    matches: list[MatchPreview] = Field(default_factory=list)


class SearchResults(BaseModel):
    """Capped, ranked search results."""

    query: str = ""
    mode: SearchMode = SearchMode.EXACT
    results: list[SearchHit] = Field(default_factory=list)
    total_matches: int = 0
    total_conversations: int = 0
    truncated: bool = False
