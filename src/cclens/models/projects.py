"""Project-level models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ProjectSummary(BaseModel):
    """Summary of a project directory for list views."""

    project_id: str
    name: str = ""
    path: str = ""
    conversation_count: int = 0
    last_modified: datetime | None = None
