"""Error values returned by services."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    INTERNAL = "internal"


class ServiceError(BaseModel):
    """Failure outcome carried in ``Err`` by every service call."""

    kind: ErrorKind
    message: str

    @classmethod
    def not_found(cls, message: str) -> ServiceError:
        return cls(kind=ErrorKind.NOT_FOUND, message=message)

    @classmethod
    def invalid(cls, message: str) -> ServiceError:
        return cls(kind=ErrorKind.INVALID_ARGUMENT, message=message)

    @classmethod
    def internal(cls, message: str) -> ServiceError:
        return cls(kind=ErrorKind.INTERNAL, message=message)

    def __str__(self) -> str:
        return self.message
