"""Streaming parser for conversation JSONL logs."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Generator, Iterable
from datetime import UTC, datetime
from enum import Enum, auto
from pathlib import Path

from cclens.data.extractor import extract_text
from cclens.models.conversations import ConversationRecord, ConversationSummary
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

logger = logging.getLogger(__name__)

type Clock = Callable[[], datetime]

SUMMARY_TYPES = frozenset({"summary", "conversation.summary"})
SIDECHAIN_START_TYPES = frozenset({"sidechain.start", "sidechain-start"})
SIDECHAIN_END_TYPES = frozenset({"sidechain.end", "sidechain-end"})
MESSAGE_TYPES = frozenset({"user", "assistant", "system"})
SUMMARY_MAX_CHARS = 50


def utc_now() -> datetime:
    return datetime.now(UTC)


class SidechainTracker:
    """Nesting depth of sidechain markers.

    Start markers increment the depth and end markers decrement it. The depth
    is floored at zero, so an unbalanced end marker cannot leave the tracker
    in a state that mis-tags later messages.
    """

    def __init__(self) -> None:
        self.depth = 0

    @property
    def active(self) -> bool:
        return self.depth > 0

    def enter(self) -> None:
        self.depth += 1

    def exit(self) -> None:
        self.depth = max(0, self.depth - 1)

    def observe(self, record_type: str) -> bool:
        """Apply a marker record. Returns True if ``record_type`` was a marker."""
        if record_type in SIDECHAIN_START_TYPES:
            self.enter()
            return True
        if record_type in SIDECHAIN_END_TYPES:
            self.exit()
            return True
        return False


class SummaryState(Enum):
    LEADING = auto()
    BODY = auto()


class SummaryTracker:
    """Chooses the summary record of a log.

    While still in the leading run of summary records the last one wins.
    After the first non-summary record a later summary only fills the slot
    if no summary was seen yet.
    """

    def __init__(self) -> None:
        self.state = SummaryState.LEADING
        self.summary: ConversationSummary | None = None

    def observe_summary(self, summary: ConversationSummary) -> None:
        if self.state is SummaryState.LEADING or self.summary is None:
            self.summary = summary

    def observe_other(self) -> None:
        self.state = SummaryState.BODY


def iter_raw_records(
    lines: Iterable[str],
    source: str = "<memory>",
) -> Generator[dict[str, object]]:
    """Decode JSONL lines into record dicts, skipping blank and invalid lines."""
    for line_num, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON at %s:%d", source, line_num)
            continue
        if not isinstance(raw, dict):
            logger.warning("Skipping non-object record at %s:%d", source, line_num)
            continue
        yield raw


def read_raw_records(path: Path) -> Generator[dict[str, object]]:
    """Stream records from a log file. Raises ``OSError`` if it cannot be opened."""
    with open(path, encoding="utf-8", errors="replace") as file:
        yield from iter_raw_records(file, str(path))


class ConversationBuilder:
    """Accumulates records of one log into a ``ConversationRecord``."""

    def __init__(
        self,
        conversation_id: str,
        project_id: str = "",
        *,
        clock: Clock = utc_now,
    ) -> None:
        self.conversation_id = conversation_id
        self.project_id = project_id
        self._clock = clock
        self._messages: list[Message] = []
        self._sidechain = SidechainTracker()
        self._summary = SummaryTracker()

    def feed(self, raw: dict[str, object]) -> None:
        record_type = _as_str(raw.get("type"))
        if record_type in SUMMARY_TYPES:
            self._summary.observe_summary(_decode_summary(raw))
            return
        self._summary.observe_other()
        if self._sidechain.observe(record_type):
            return

        message = decode_message(
            raw,
            fallback_uuid=_fallback_uuid(self.conversation_id, len(self._messages)),
            in_sidechain=self._sidechain.active,
        )
        if message is not None:
            self._messages.append(message)

    def build(self) -> ConversationRecord:
        summary = self._summary.summary or self._synthesize_summary()
        return ConversationRecord(
            id=self.conversation_id,
            project_id=self.project_id,
            summary=summary,
            messages=list(self._messages),
            last_updated=self._resolve_last_updated(summary),
        )

    def _synthesize_summary(self) -> ConversationSummary:
        for message in self._messages:
            if message.role is not MessageRole.USER:
                continue
            text = extract_text(message).strip()
            if text:
                return ConversationSummary(
                    text=truncate_summary(text),
                    timestamp=message.timestamp or self._fallback_timestamp(),
                    synthesized=True,
                )
        return ConversationSummary(
            text=f"Conversation {self.conversation_id[:8]}",
            timestamp=self._fallback_timestamp(),
            synthesized=True,
        )

    def _fallback_timestamp(self) -> str:
        return self._final_timestamp() or self._clock().isoformat()

    def _final_timestamp(self) -> str:
        return self._messages[-1].timestamp if self._messages else ""

    def _resolve_last_updated(self, summary: ConversationSummary) -> datetime:
        resolved = parse_timestamp(summary.timestamp)
        if resolved is None:
            resolved = parse_timestamp(self._final_timestamp())
        if resolved is None:
            resolved = self._clock()
        return resolved


def parse_conversation_lines(
    lines: Iterable[str],
    conversation_id: str,
    project_id: str = "",
    *,
    source: str = "<memory>",
    clock: Clock = utc_now,
) -> ConversationRecord:
    """Parse raw log lines into a conversation record."""
    builder = ConversationBuilder(conversation_id, project_id, clock=clock)
    for raw in iter_raw_records(lines, source):
        builder.feed(raw)
    return builder.build()


def parse_conversation_file(
    path: Path,
    project_id: str = "",
    *,
    clock: Clock = utc_now,
) -> ConversationRecord:
    """Parse one log file. The conversation id is the file name stem."""
    builder = ConversationBuilder(path.stem, project_id, clock=clock)
    for raw in read_raw_records(path):
        builder.feed(raw)
    return builder.build()


def decode_message(
    raw: dict[str, object],
    *,
    fallback_uuid: str,
    in_sidechain: bool = False,
) -> Message | None:
    """Decode a user/assistant/system record. Other record types give None."""
    record_type = _as_str(raw.get("type"))
    model: str | None = None
    usage: TokenUsage | None = None

    match record_type:
        case "user" | "assistant":
            body = raw.get("message")
            body_dict = body if isinstance(body, dict) else {}
            content = decode_content(body_dict.get("content", ""))
            if record_type == "assistant":
                model = _as_optional_str(body_dict.get("model"))
                usage = _decode_usage(body_dict.get("usage"))
        case "system":
            content = _as_str(raw.get("content"))
        case _:
            return None

    return Message(
        uuid=_as_str(raw.get("uuid")) or fallback_uuid,
        parent_uuid=_as_optional_str(raw.get("parentUuid")),
        timestamp=_as_str(raw.get("timestamp")),
        role=MessageRole(record_type),
        is_sidechain=in_sidechain or raw.get("isSidechain") is True,
        content=content,
        model=model,
        usage=usage,
    )


def decode_content(value: object) -> str | list[ContentBlock]:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return [decode_content_block(item) for item in value]
    return ""


def decode_content_block(block: object) -> ContentBlock:
    if isinstance(block, str):
        return TextBlock(text=block)
    if not isinstance(block, dict):
        return UnknownBlock(source_type=type(block).__name__)

    block_type = _as_str(block.get("type"))
    match block_type:
        case "text":
            return TextBlock(text=_as_str(block.get("text")))
        case "thinking":
            return ThinkingBlock(
                thinking=_as_str(block.get("thinking")) or _as_str(block.get("content"))
            )
        case "tool_use":
            tool_input = block.get("input")
            return ToolUseBlock(
                id=_as_str(block.get("id")),
                name=_as_str(block.get("name")),
                input=tool_input if isinstance(tool_input, dict) else {},
            )
        case "tool_result":
            return ToolResultBlock(
                tool_use_id=_as_str(block.get("tool_use_id")),
                content=_flatten_tool_result(block.get("content")),
                is_error=block.get("is_error") is True,
            )
        case _:
            return UnknownBlock(source_type=block_type)


def truncate_summary(text: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime (naive means UTC).

    Values that cannot be expressed in UTC, such as the last hour of year
    9999 with a negative offset, are treated as unparseable.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        parsed.astimezone(UTC)
    except (ValueError, OverflowError):
        return None
    return parsed


def _decode_summary(raw: dict[str, object]) -> ConversationSummary:
    return ConversationSummary(
        text=_as_str(raw.get("summary")),
        timestamp=_as_str(raw.get("timestamp")),
        leaf_uuid=_as_str(raw.get("leafUuid")),
    )


def _decode_usage(value: object) -> TokenUsage | None:
    if not isinstance(value, dict):
        return None
    return TokenUsage(
        input_tokens=_int(value.get("input_tokens", 0)),
        output_tokens=_int(value.get("output_tokens", 0)),
        cache_read_tokens=_int(value.get("cache_read_input_tokens", 0)),
        cache_creation_tokens=_int(value.get("cache_creation_input_tokens", 0)),
    )


def _flatten_tool_result(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(_as_str(item.get("text")))
            elif isinstance(item, str):
                parts.append(item)
        return "\n".join(parts)
    return ""


def _fallback_uuid(conversation_id: str, seq: int) -> str:
    return f"{conversation_id}:msg:{seq}"


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _as_optional_str(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _int(val: object) -> int:
    if isinstance(val, bool):
        return int(val)
    if isinstance(val, int):
        return val
    if isinstance(val, str):
        try:
            val = float(val)
        except ValueError:
            return 0
    if isinstance(val, float):
        return int(val) if math.isfinite(val) else 0
    return 0
