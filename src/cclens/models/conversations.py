"""Conversation-level models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from cclens.models.messages import Message


class ConversationSummary(BaseModel):
    """Short title for a conversation, taken from the log or synthesized."""

    text: str
    timestamp: str = ""
    leaf_uuid: str = ""
    synthesized: bool = False


class ConversationRecord(BaseModel):
    """One conversation backed by one JSONL log file."""

    id: str
    project_id: str = ""
    summary: ConversationSummary
    messages: list[Message] = Field(default_factory=list)
    last_updated: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message_count(self) -> int:
        return len(self.messages)

    def message_by_uuid(self, uuid: str) -> Message | None:
        for message in self.messages:
            if message.uuid == uuid:
                return message
        return None
