"""Statistics models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from cclens.models.messages import TokenUsage


class HourlyBucket(BaseModel):
    """Message count for one hour of the day (0-23)."""

    hour: int
    count: int = 0


def empty_timeline() -> list[HourlyBucket]:
    return [HourlyBucket(hour=hour) for hour in range(24)]


class LongestConversation(BaseModel):
    id: str = ""
    message_count: int = 0


class ActiveDay(BaseModel):
    date: str = ""
    message_count: int = 0


class ConversationStats(BaseModel):
    """Counters for a single conversation."""

    conversation_id: str
    project_id: str = ""
    total_messages: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    system_messages: int = 0
    sidechain_messages: int = 0
    tool_calls: int = 0
    tool_calls_by_type: dict[str, int] = Field(default_factory=dict)
    thinking_blocks: int = 0
    error_count: int = 0
    total_tokens_estimate: int = 0
    reported_usage: TokenUsage = Field(default_factory=TokenUsage)
    unique_models: list[str] = Field(default_factory=list)
    average_response_time: int = 0
    message_timeline: list[HourlyBucket] = Field(default_factory=empty_timeline)


class ProjectStats(BaseModel):
    """Counters accumulated across every conversation in a project."""

    project_id: str
    total_conversations: int = 0
    total_messages: int = 0
    total_user_messages: int = 0
    total_assistant_messages: int = 0
    total_system_messages: int = 0
    total_sidechain_messages: int = 0
    total_tool_calls: int = 0
    tool_usage_breakdown: dict[str, int] = Field(default_factory=dict)
    total_thinking_blocks: int = 0
    error_count: int = 0
    average_messages_per_conversation: int = 0
    total_tokens_estimate: int = 0
    reported_usage: TokenUsage = Field(default_factory=TokenUsage)
    longest_conversation: LongestConversation = Field(default_factory=LongestConversation)
    most_active_day: ActiveDay = Field(default_factory=ActiveDay)
    hourly_activity: list[HourlyBucket] = Field(default_factory=empty_timeline)


class GlobalStats(BaseModel):
    """Totals across all projects."""

    total_projects: int = 0
    total_conversations: int = 0
    total_messages: int = 0
    total_user_messages: int = 0
    total_assistant_messages: int = 0
    total_tool_calls: int = 0
    tool_usage_breakdown: dict[str, int] = Field(default_factory=dict)
    total_thinking_blocks: int = 0
    error_count: int = 0
    average_messages_per_conversation: int = 0
    total_tokens_estimate: int = 0
    reported_usage: TokenUsage = Field(default_factory=TokenUsage)
