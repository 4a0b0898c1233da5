"""Shared fixtures for cclens tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from samples import (
    TOOLS_PROJECT,
    WEBAPP_PROJECT,
    assistant,
    set_mtime,
    summary,
    text,
    thinking,
    tool_result,
    tool_use,
    user,
    write_log,
)

from cclens.config import Config
from cclens.data.db import Database


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    """A Claude data directory with two projects and three conversations."""
    claude_dir = tmp_path / ".claude"
    webapp = claude_dir / "projects" / WEBAPP_PROJECT
    tools = claude_dir / "projects" / TOOLS_PROJECT

    write_log(
        webapp / "conv-alpha.jsonl",
        [
            summary("Fix login bug", "2024-05-01T10:00:00Z", leaf_uuid="a4"),
            user("a1", "The login page throws a category error", "2024-05-01T09:00:00Z"),
            assistant(
                "a2",
                [
                    thinking("look at the login handler"),
                    text("Let me look at the cat command output"),
                    tool_use("t1", "Read", file_path="login.py"),
                ],
                "2024-05-01T09:00:10Z",
                model="claude-sonnet",
                usage={"input_tokens": 100, "output_tokens": 20},
            ),
            user(
                "a3",
                [tool_result("t1", "permission denied", is_error=True)],
                "2024-05-01T09:00:20Z",
            ),
            assistant(
                "a4",
                [text("Fixed the login bug")],
                "2024-05-01T09:01:00Z",
                model="claude-sonnet",
                usage={"input_tokens": 50, "output_tokens": 10},
            ),
        ],
    )
    write_log(
        webapp / "conv-beta.jsonl",
        [
            user("b1", "Please refactor the cat utility", "2024-05-03T08:00:00Z"),
            assistant("b2", [text("Refactored cat")], "2024-05-03T08:00:05Z", model="claude-opus"),
        ],
    )
    (webapp / "project.json").write_text('{"name": "webapp"}', encoding="utf-8")
    write_log(
        tools / "conv-gamma.jsonl",
        [
            user("g1", "Is the cat tool installed?", "2024-04-01T12:00:00Z"),
            assistant("g2", [text("Yes, it is.")], "2024-04-01T12:00:03Z"),
        ],
    )

    for path in webapp.glob("*.jsonl"):
        set_mtime(path, "2024-05-03T09:00:00")
    set_mtime(tools / "conv-gamma.jsonl", "2024-04-01T13:00:00")
    set_mtime(webapp, "2024-05-10T00:00:00")
    set_mtime(tools, "2024-04-10T00:00:00")
    return claude_dir


@pytest.fixture
def test_config(claude_dir: Path, tmp_path: Path) -> Config:
    """Config pointing at temporary test data."""
    return Config(claude_dir=claude_dir, cache_dir=tmp_path / "cache")


@pytest.fixture
async def in_memory_db() -> AsyncGenerator[Database]:
    """SQLite in-memory database for fast unit/integration tests."""
    db = Database(Path(":memory:"))
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)
