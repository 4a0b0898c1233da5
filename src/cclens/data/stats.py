"""Single-pass statistics over raw conversation logs.

The aggregator never builds ``ConversationRecord`` objects or a search index.
Each record is decoded, folded into running counters and dropped, so memory
stays flat regardless of log size.
"""

from __future__ import annotations

import json
import logging
import math
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo
from pathlib import Path

from cclens.data.parser import (
    SidechainTracker,
    decode_message,
    iter_raw_records,
    parse_timestamp,
    read_raw_records,
)
from cclens.models.messages import (
    MessageRole,
    ThinkingBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
)
from cclens.models.stats import (
    ActiveDay,
    ConversationStats,
    GlobalStats,
    HourlyBucket,
    LongestConversation,
    ProjectStats,
)

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def estimate_tokens(raw: dict[str, object]) -> int:
    """Rough token count of a record: compact JSON length / 4, rounded up."""
    encoded = json.dumps(raw, separators=(",", ":"), ensure_ascii=False, default=str)
    return math.ceil(len(encoded) / CHARS_PER_TOKEN)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ConversationAccumulator:
    """Running counters for one conversation log."""

    def __init__(
        self,
        conversation_id: str,
        project_id: str = "",
        tz: tzinfo | None = None,
    ) -> None:
        self.conversation_id = conversation_id
        self.project_id = project_id
        self.tz = tz
        self.valid_records = 0
        self.total_messages = 0
        self.role_counts: Counter[MessageRole] = Counter()
        self.sidechain_messages = 0
        self.tool_calls: Counter[str] = Counter()
        self.thinking_blocks = 0
        self.error_count = 0
        self.tokens_estimate = 0
        self.usage = TokenUsage()
        self.models: dict[str, None] = {}
        self.hourly = [0] * 24
        self.daily: Counter[str] = Counter()
        self._response_times: list[timedelta] = []
        self._last_user_at: datetime | None = None
        self._sidechain = SidechainTracker()

    def feed(self, raw: dict[str, object]) -> None:
        self.valid_records += 1
        if self._sidechain.observe(str(raw.get("type", ""))):
            return
        message = decode_message(
            raw,
            fallback_uuid=f"{self.conversation_id}:msg:{self.total_messages}",
            in_sidechain=self._sidechain.active,
        )
        if message is None:
            return

        self.total_messages += 1
        self.role_counts[message.role] += 1
        self.tokens_estimate += estimate_tokens(raw)
        if message.is_sidechain:
            self.sidechain_messages += 1

        timestamp = parse_timestamp(message.timestamp)
        if timestamp is not None:
            self._bucket(timestamp)

        match message.role:
            case MessageRole.USER:
                if timestamp is not None:
                    self._last_user_at = timestamp
            case MessageRole.ASSISTANT:
                if timestamp is not None and self._last_user_at is not None:
                    self._response_times.append(timestamp - self._last_user_at)
                if message.model:
                    self.models[message.model] = None
                if message.usage is not None:
                    self.usage = self.usage + message.usage

        for block in message.blocks:
            if isinstance(block, ToolUseBlock):
                self.tool_calls[block.name or "unknown"] += 1
            elif isinstance(block, ThinkingBlock):
                self.thinking_blocks += 1
            elif isinstance(block, ToolResultBlock) and block.is_error:
                self.error_count += 1

    def _bucket(self, timestamp: datetime) -> None:
        try:
            local = timestamp.astimezone(self.tz)
        except (OverflowError, ValueError):
            logger.debug("Timestamp %s out of range in %s", timestamp, self.conversation_id)
            return
        self.hourly[local.hour] += 1
        self.daily[local.date().isoformat()] += 1

    @property
    def has_content(self) -> bool:
        return self.valid_records > 0

    def average_response_seconds(self) -> int:
        if not self._response_times:
            return 0
        total = sum(delta.total_seconds() for delta in self._response_times)
        return _round_half_up(total / len(self._response_times))

    def finish(self) -> ConversationStats:
        return ConversationStats(
            conversation_id=self.conversation_id,
            project_id=self.project_id,
            total_messages=self.total_messages,
            user_messages=self.role_counts[MessageRole.USER],
            assistant_messages=self.role_counts[MessageRole.ASSISTANT],
            system_messages=self.role_counts[MessageRole.SYSTEM],
            sidechain_messages=self.sidechain_messages,
            tool_calls=sum(self.tool_calls.values()),
            tool_calls_by_type=dict(self.tool_calls),
            thinking_blocks=self.thinking_blocks,
            error_count=self.error_count,
            total_tokens_estimate=self.tokens_estimate,
            reported_usage=self.usage,
            unique_models=list(self.models),
            average_response_time=self.average_response_seconds(),
            message_timeline=[
                HourlyBucket(hour=hour, count=count) for hour, count in enumerate(self.hourly)
            ],
        )


class ProjectAccumulator:
    """Folds finished conversation accumulators into project totals."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        self.total_conversations = 0
        self.total_messages = 0
        self.role_counts: Counter[MessageRole] = Counter()
        self.sidechain_messages = 0
        self.tool_calls: Counter[str] = Counter()
        self.thinking_blocks = 0
        self.error_count = 0
        self.tokens_estimate = 0
        self.usage = TokenUsage()
        self.hourly = [0] * 24
        self.daily: Counter[str] = Counter()
        self.longest = LongestConversation()

    def add(self, conversation: ConversationAccumulator) -> None:
        if not conversation.has_content:
            return
        self.total_conversations += 1
        self.total_messages += conversation.total_messages
        self.role_counts.update(conversation.role_counts)
        self.sidechain_messages += conversation.sidechain_messages
        self.tool_calls.update(conversation.tool_calls)
        self.thinking_blocks += conversation.thinking_blocks
        self.error_count += conversation.error_count
        self.tokens_estimate += conversation.tokens_estimate
        self.usage = self.usage + conversation.usage
        for hour, count in enumerate(conversation.hourly):
            self.hourly[hour] += count
        self.daily.update(conversation.daily)
        if conversation.total_messages > self.longest.message_count:
            self.longest = LongestConversation(
                id=conversation.conversation_id,
                message_count=conversation.total_messages,
            )

    def finish(self) -> ProjectStats:
        most_active = ActiveDay()
        if self.daily:
            date, count = max(self.daily.items(), key=lambda item: item[1])
            most_active = ActiveDay(date=date, message_count=count)

        average = 0
        if self.total_conversations:
            average = _round_half_up(self.total_messages / self.total_conversations)

        return ProjectStats(
            project_id=self.project_id,
            total_conversations=self.total_conversations,
            total_messages=self.total_messages,
            total_user_messages=self.role_counts[MessageRole.USER],
            total_assistant_messages=self.role_counts[MessageRole.ASSISTANT],
            total_system_messages=self.role_counts[MessageRole.SYSTEM],
            total_sidechain_messages=self.sidechain_messages,
            total_tool_calls=sum(self.tool_calls.values()),
            tool_usage_breakdown=dict(self.tool_calls),
            total_thinking_blocks=self.thinking_blocks,
            error_count=self.error_count,
            average_messages_per_conversation=average,
            total_tokens_estimate=self.tokens_estimate,
            reported_usage=self.usage,
            longest_conversation=self.longest,
            most_active_day=most_active,
            hourly_activity=[
                HourlyBucket(hour=hour, count=count) for hour, count in enumerate(self.hourly)
            ],
        )


def accumulate_lines(
    lines: Iterable[str],
    conversation_id: str,
    project_id: str = "",
    *,
    tz: tzinfo | None = None,
    source: str = "<memory>",
) -> ConversationAccumulator:
    accumulator = ConversationAccumulator(conversation_id, project_id, tz)
    for raw in iter_raw_records(lines, source):
        accumulator.feed(raw)
    return accumulator


def accumulate_file(
    path: Path,
    project_id: str = "",
    *,
    tz: tzinfo | None = None,
) -> ConversationAccumulator:
    """Stream one log file into counters. Raises ``OSError`` if unreadable."""
    accumulator = ConversationAccumulator(path.stem, project_id, tz)
    for raw in read_raw_records(path):
        accumulator.feed(raw)
    return accumulator


def aggregate_conversation_file(
    path: Path,
    project_id: str = "",
    *,
    tz: tzinfo | None = None,
) -> ConversationStats:
    return accumulate_file(path, project_id, tz=tz).finish()


def aggregate_project(
    project_id: str,
    files: Iterable[Path],
    *,
    tz: tzinfo | None = None,
) -> ProjectStats:
    """Aggregate every log of a project. Files that fail to read or parse are skipped."""
    project = ProjectAccumulator(project_id)
    for path in files:
        try:
            project.add(accumulate_file(path, project_id, tz=tz))
        except OSError as exc:
            logger.warning("Skipping unreadable log %s: %s", path, exc)
        except Exception:
            logger.exception("Skipping log %s that failed to parse", path)
    return project.finish()


def combine_project_stats(projects: Iterable[ProjectStats]) -> GlobalStats:
    """Sum per-project statistics into corpus-wide totals."""
    total = GlobalStats()
    tools: Counter[str] = Counter()
    usage = TokenUsage()
    for stats in projects:
        total.total_projects += 1
        total.total_conversations += stats.total_conversations
        total.total_messages += stats.total_messages
        total.total_user_messages += stats.total_user_messages
        total.total_assistant_messages += stats.total_assistant_messages
        total.total_tool_calls += stats.total_tool_calls
        total.total_thinking_blocks += stats.total_thinking_blocks
        total.error_count += stats.error_count
        total.total_tokens_estimate += stats.total_tokens_estimate
        tools.update(stats.tool_usage_breakdown)
        usage = usage + stats.reported_usage

    total.tool_usage_breakdown = dict(tools)
    total.reported_usage = usage
    if total.total_conversations:
        total.average_messages_per_conversation = _round_half_up(
            total.total_messages / total.total_conversations
        )
    return total
