"""Pydantic models for cclens."""

from cclens.models.conversations import ConversationRecord, ConversationSummary
from cclens.models.errors import ErrorKind, ServiceError
from cclens.models.messages import (
    ContentBlock,
    Message,
    MessageRole,
    TextBlock,
    ThinkingBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
    UnknownBlock,
)
from cclens.models.projects import ProjectSummary
from cclens.models.search import (
    IndexEntry,
    IndexStats,
    MatchPreview,
    SearchHit,
    SearchMode,
    SearchResult,
    SearchResults,
)
from cclens.models.stats import (
    ActiveDay,
    ConversationStats,
    GlobalStats,
    HourlyBucket,
    LongestConversation,
    ProjectStats,
)

__all__ = [
    "ActiveDay",
    "ContentBlock",
    "ConversationRecord",
    "ConversationStats",
    "ConversationSummary",
    "ErrorKind",
    "GlobalStats",
    "HourlyBucket",
    "IndexEntry",
    "IndexStats",
    "LongestConversation",
    "MatchPreview",
    "Message",
    "MessageRole",
    "ProjectStats",
    "ProjectSummary",
    "SearchHit",
    "SearchMode",
    "SearchResult",
    "SearchResults",
    "ServiceError",
    "TextBlock",
    "ThinkingBlock",
    "TokenUsage",
    "ToolResultBlock",
    "ToolUseBlock",
    "UnknownBlock",
]
