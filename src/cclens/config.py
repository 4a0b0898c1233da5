"""Configuration for cclens."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    claude_dir: Path = field(default_factory=lambda: Path.home() / ".claude")
    cache_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / "cclens")
    index_ttl_seconds: float = 300.0
    search_result_limit: int = 50
    previews_per_hit: int = 3
    preview_before: int = 50
    preview_after: int = 150

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def db_path(self) -> Path:
        return self.cache_dir / "stats.db"
