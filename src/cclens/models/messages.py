"""Message-level models for parsed JSONL data."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class MessageRole(StrEnum):
    """Roles a conversation turn can have."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TokenUsage(BaseModel):
    """Token usage reported for a single API call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
            cache_creation_tokens=self.cache_creation_tokens + other.cache_creation_tokens,
        )


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ThinkingBlock(BaseModel):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""


class ToolUseBlock(BaseModel):
    """A tool invocation emitted by the assistant."""

    type: Literal["tool_use"] = "tool_use"
    id: str = ""
    name: str = ""
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """Output of a tool invocation, echoed back on a user turn."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = ""
    content: str = ""
    is_error: bool = False


class UnknownBlock(BaseModel):
    """Fallback for block shapes the parser does not recognise."""

    type: Literal["unknown"] = "unknown"
    source_type: str = ""


ContentBlock = Annotated[
    TextBlock | ThinkingBlock | ToolUseBlock | ToolResultBlock | UnknownBlock,
    Field(discriminator="type"),
]


class Message(BaseModel):
    """One turn of a conversation, normalized from a JSONL record."""

    uuid: str
    parent_uuid: str | None = None
    timestamp: str = ""
    role: MessageRole
    is_sidechain: bool = False
    content: str | list[ContentBlock] = ""
    model: str | None = None
    usage: TokenUsage | None = None

    @property
    def blocks(self) -> list[ContentBlock]:
        """Content blocks, or an empty list for plain-string content."""
        return self.content if isinstance(self.content, list) else []
