"""Shared helpers for service modules."""

from __future__ import annotations

from cclens.data.discovery import is_safe_identifier
from cclens.models.errors import ServiceError


def check_identifier(value: str, label: str) -> ServiceError | None:
    """Return an error when ``value`` cannot name a project or conversation file."""
    if is_safe_identifier(value):
        return None
    return ServiceError.invalid(f"Invalid {label} id: {value!r}")
