"""Tests for the JSONL conversation parser."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest
from samples import (
    assistant,
    lines,
    sidechain_end,
    sidechain_start,
    summary,
    system,
    text,
    thinking,
    tool_result,
    tool_use,
    user,
    write_log,
)

from cclens.data.parser import (
    SidechainTracker,
    decode_content_block,
    parse_conversation_file,
    parse_conversation_lines,
    parse_timestamp,
    truncate_summary,
)
from cclens.models.messages import (
    MessageRole,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UnknownBlock,
)

FIXED_NOW = datetime(2030, 1, 1, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


def parse(records, conversation_id: str = "conv-1234567890"):  # type: ignore[no-untyped-def]
    return parse_conversation_lines(lines(records), conversation_id, "proj", clock=fixed_clock)


class TestMessages:
    def test_user_assistant_system_records(self) -> None:
        record = parse(
            [
                user("u1", "hello", "2024-01-01T10:00:00Z"),
                assistant(
                    "a1",
                    [text("hi there")],
                    "2024-01-01T10:00:01Z",
                    model="claude-sonnet",
                    usage={"input_tokens": 12, "output_tokens": 3, "cache_read_input_tokens": 7},
                    parentUuid="u1",
                ),
                system("s1", "context compacted", "2024-01-01T10:00:02Z"),
            ]
        )
        assert [m.role for m in record.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.SYSTEM,
        ]
        reply = record.messages[1]
        assert reply.parent_uuid == "u1"
        assert reply.model == "claude-sonnet"
        assert reply.usage is not None
        assert reply.usage.input_tokens == 12
        assert reply.usage.cache_read_tokens == 7
        assert record.messages[2].content == "context compacted"
        assert record.project_id == "proj"
        assert record.message_count == 3

    def test_other_record_types_are_ignored(self) -> None:
        record = parse(
            [
                {"type": "file-history-snapshot", "snapshot": {}},
                user("u1", "hello"),
                {"type": "progress", "uuid": "p1"},
            ]
        )
        assert [m.uuid for m in record.messages] == ["u1"]

    def test_missing_uuid_gets_positional_fallback(self) -> None:
        record = parse([{"type": "user", "message": {"content": "no id"}}, user("u2", "x")])
        assert record.messages[0].uuid == "conv-1234567890:msg:0"
        assert record.messages[1].uuid == "u2"

    def test_malformed_lines_are_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="cclens.data.parser"):
            record = parse(["{not json", "", "[1, 2]", user("u1", "still here")])
        assert [m.uuid for m in record.messages] == ["u1"]
        assert "Invalid JSON" in caplog.text

    def test_non_finite_usage_counts_as_zero(self) -> None:
        record = parse(
            [
                user("u1", "hi", "2024-01-01T00:00:00Z"),
                assistant(
                    "a1",
                    [text("ok")],
                    "2024-01-01T00:00:01Z",
                    usage={
                        "input_tokens": "1e999",
                        "output_tokens": float("inf"),
                        "cache_read_input_tokens": "12.7",
                    },
                ),
                '{"type": "assistant", "uuid": "a2", "message": {"usage": {"input_tokens": NaN}}}',
            ]
        )
        assert [m.uuid for m in record.messages] == ["u1", "a1", "a2"]
        usage = record.messages[1].usage
        assert usage is not None
        assert usage.input_tokens == 0
        assert usage.output_tokens == 0
        assert usage.cache_read_tokens == 12
        nan_usage = record.messages[2].usage
        assert nan_usage is not None
        assert nan_usage.input_tokens == 0

    def test_out_of_range_timestamp_falls_back_to_clock(self) -> None:
        record = parse([user("u1", "far future", "9999-12-31T23:30:00-01:00")])
        assert len(record.messages) == 1
        assert record.last_updated == FIXED_NOW

    def test_parsing_is_deterministic(self) -> None:
        records = [
            summary("Title", "2024-01-01T00:00:00Z"),
            user("u1", "question", "2024-01-01T00:00:01Z"),
            assistant("a1", [text("answer")], "2024-01-01T00:00:02Z"),
        ]
        assert parse(records) == parse(records)


class TestContentBlocks:
    def test_block_kinds(self) -> None:
        assert decode_content_block({"type": "text", "text": "hi"}) == TextBlock(text="hi")
        assert decode_content_block("bare") == TextBlock(text="bare")
        assert decode_content_block(thinking("hmm")) == ThinkingBlock(thinking="hmm")
        assert decode_content_block({"type": "thinking", "content": "old"}) == ThinkingBlock(
            thinking="old"
        )

        tool = decode_content_block(tool_use("t1", "Bash", command="ls"))
        assert isinstance(tool, ToolUseBlock)
        assert tool.name == "Bash"
        assert tool.input == {"command": "ls"}

        result = decode_content_block(tool_result("t1", [text("line 1"), text("line 2")], True))
        assert isinstance(result, ToolResultBlock)
        assert result.content == "line 1\nline 2"
        assert result.is_error is True

        unknown = decode_content_block({"type": "image", "source": {}})
        assert isinstance(unknown, UnknownBlock)
        assert unknown.source_type == "image"

    def test_blocks_property(self) -> None:
        record = parse([user("u1", "plain"), assistant("a1", [text("x"), thinking("y")])])
        assert record.messages[0].blocks == []
        assert len(record.messages[1].blocks) == 2


class TestSidechains:
    def test_nested_markers(self) -> None:
        record = parse(
            [
                sidechain_start(),
                sidechain_start(),
                user("a", "inner"),
                sidechain_end(),
                user("b", "still inside"),
                sidechain_end(),
                user("c", "main line"),
            ]
        )
        assert {m.uuid: m.is_sidechain for m in record.messages} == {
            "a": True,
            "b": True,
            "c": False,
        }

    def test_unbalanced_end_does_not_go_negative(self) -> None:
        record = parse(
            [
                sidechain_end(),
                sidechain_end(),
                {"type": "sidechain-start"},
                user("d", "inside"),
                {"type": "sidechain-end"},
                user("e", "outside"),
            ]
        )
        assert [m.is_sidechain for m in record.messages] == [True, False]

    def test_record_flag_marks_sidechain(self) -> None:
        record = parse([user("u1", "flagged", isSidechain=True), user("u2", "plain")])
        assert [m.is_sidechain for m in record.messages] == [True, False]

    def test_tracker_floor(self) -> None:
        tracker = SidechainTracker()
        tracker.exit()
        assert tracker.depth == 0
        assert tracker.observe("sidechain.start") is True
        assert tracker.active
        assert tracker.observe("user") is False


class TestSummary:
    def test_leading_summaries_last_wins(self) -> None:
        record = parse(
            [
                summary("First", "2024-01-01T00:00:00Z"),
                summary("Second", "2024-01-02T00:00:00Z"),
                user("u1", "hello", "2024-01-03T00:00:00Z"),
                summary("Late", "2024-01-04T00:00:00Z"),
            ]
        )
        assert record.summary.text == "Second"
        assert record.summary.synthesized is False
        assert record.last_updated == datetime(2024, 1, 2, tzinfo=UTC)

    def test_late_summary_used_when_none_leads(self) -> None:
        record = parse([user("u1", "hello"), summary("Late", "2024-01-04T00:00:00Z")])
        assert record.summary.text == "Late"

    def test_synthesized_from_first_user_text(self) -> None:
        long_prompt = "Please help me understand why the integration tests fail on CI only"
        record = parse(
            [
                user("u0", [tool_result("t0", "noise")], "2024-01-01T00:00:00Z"),
                user("u1", f"  {long_prompt}  ", "2024-01-01T00:00:05Z"),
                assistant("a1", [text("Sure")], "2024-01-01T00:01:00Z"),
            ]
        )
        assert record.summary.synthesized is True
        assert record.summary.text == long_prompt[:50] + "..."
        assert record.summary.timestamp == "2024-01-01T00:00:05Z"
        assert record.last_updated == datetime(2024, 1, 1, 0, 0, 5, tzinfo=UTC)

    def test_short_prompt_not_truncated(self) -> None:
        record = parse([user("u1", "Short question")])
        assert record.summary.text == "Short question"

    def test_fallback_title_uses_id_prefix(self) -> None:
        record = parse(
            [assistant("a1", [text("unprompted")], "2024-02-02T00:00:00Z")],
            conversation_id="abcdef1234567",
        )
        assert record.summary.text == "Conversation abcdef12"
        assert record.last_updated == datetime(2024, 2, 2, tzinfo=UTC)

    def test_empty_log_uses_clock(self) -> None:
        record = parse([])
        assert record.messages == []
        assert record.summary.timestamp == FIXED_NOW.isoformat()
        assert record.last_updated == FIXED_NOW

    def test_synthesized_timestamp_without_message_times(self) -> None:
        record = parse([user("u1", "undated prompt")])
        assert record.summary.text == "undated prompt"
        assert record.summary.timestamp == FIXED_NOW.isoformat()

    def test_truncate_summary(self) -> None:
        assert truncate_summary("x" * 50) == "x" * 50
        assert truncate_summary("x" * 51) == "x" * 50 + "..."


class TestParseFile:
    def test_id_from_file_stem(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "session-42.jsonl", [user("u1", "hi")])
        record = parse_conversation_file(path, "proj")
        assert record.id == "session-42"
        assert record.project_id == "proj"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            parse_conversation_file(tmp_path / "missing.jsonl")


class TestParseTimestamp:
    def test_zulu_and_offset(self) -> None:
        assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=UTC)
        parsed = parse_timestamp("2024-01-01T12:00:00+02:00")
        assert parsed is not None
        assert parsed.astimezone(UTC) == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp("2024-01-01T10:00:00") == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_invalid(self) -> None:
        assert parse_timestamp("") is None
        assert parse_timestamp("yesterday") is None

    def test_not_representable_in_utc(self) -> None:
        assert parse_timestamp("9999-12-31T23:30:00-01:00") is None
        assert parse_timestamp("0001-01-01T00:30:00+01:00") is None
        assert parse_timestamp("9999-12-31T23:30:00+01:00") is not None
