"""Discover project directories and conversation logs on disk."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from cclens.config import Config

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"


@dataclass
class DiscoveredProject:
    """A project directory with its conversation log files."""

    project_id: str
    dir_path: Path
    name: str
    conversation_files: tuple[Path, ...] = ()
    mtime_ms: int = 0

    @property
    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self.mtime_ms / 1000, tz=UTC)


def is_safe_identifier(value: str) -> bool:
    """True when ``value`` names a single directory entry (no separators or dots)."""
    if not value or value in {".", ".."}:
        return False
    return "/" not in value and "\\" not in value and "\x00" not in value


def discover_projects(config: Config) -> list[DiscoveredProject]:
    """List project directories, most recently modified first."""
    projects_dir = config.projects_dir
    if not projects_dir.is_dir():
        logger.info("Projects directory not found: %s", projects_dir)
        return []

    projects: list[DiscoveredProject] = []
    for entry in sorted(projects_dir.iterdir()):
        if not entry.is_dir():
            continue
        try:
            projects.append(_describe_project(entry))
        except OSError as exc:
            logger.warning("Failed to read project %s: %s", entry, exc)

    projects.sort(key=lambda p: p.mtime_ms, reverse=True)
    return projects


def find_project(config: Config, project_id: str) -> DiscoveredProject | None:
    """Resolve a project id to its directory, or None when it does not exist."""
    if not is_safe_identifier(project_id):
        return None
    path = config.projects_dir / project_id
    if not path.is_dir():
        return None
    try:
        return _describe_project(path)
    except OSError as exc:
        logger.warning("Failed to read project %s: %s", path, exc)
        return None


def conversation_files(project_dir: Path) -> list[Path]:
    """Log files of a project, sorted by name."""
    return sorted(p for p in project_dir.glob(f"*{LOG_SUFFIX}") if p.is_file())


def find_conversation_file(
    config: Config,
    conversation_id: str,
    project_id: str | None = None,
) -> tuple[str, Path] | None:
    """Locate ``<conversation_id>.jsonl``, scanning every project if none is given."""
    if not is_safe_identifier(conversation_id):
        return None

    if project_id is not None:
        if not is_safe_identifier(project_id):
            return None
        candidate_dirs = [config.projects_dir / project_id]
    elif config.projects_dir.is_dir():
        candidate_dirs = sorted(p for p in config.projects_dir.iterdir() if p.is_dir())
    else:
        return None

    for directory in candidate_dirs:
        candidate = directory / f"{conversation_id}{LOG_SUFFIX}"
        if candidate.is_file():
            return directory.name, candidate
    return None


def watched_mtime_ms(project_dir: Path) -> int:
    """Latest modification time of a project directory or any of its logs.

    The directory's own mtime only moves when entries are added or removed,
    so appended logs are picked up through their file mtimes.
    """
    latest = project_dir.stat().st_mtime
    for path in conversation_files(project_dir):
        try:
            latest = max(latest, path.stat().st_mtime)
        except OSError:
            continue
    return int(latest * 1000)


def _describe_project(path: Path) -> DiscoveredProject:
    return DiscoveredProject(
        project_id=path.name,
        dir_path=path,
        name=_read_project_name(path) or path.name,
        conversation_files=tuple(conversation_files(path)),
        mtime_ms=int(path.stat().st_mtime * 1000),
    )


def _read_project_name(project_dir: Path) -> str:
    info_path = project_dir / "project.json"
    if not info_path.is_file():
        return ""
    try:
        with open(info_path, encoding="utf-8") as file:
            data = json.load(file)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to load project info %s: %s", info_path, exc)
        return ""
    if not isinstance(data, dict):
        return ""
    name = data.get("name")
    return name.strip() if isinstance(name, str) else ""
