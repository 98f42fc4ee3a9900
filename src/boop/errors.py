"""Domain error kinds raised by the staking engine and services."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    STILL_LOCKED = "STILL_LOCKED"
    TOO_EARLY = "TOO_EARLY"
    ALREADY_WITHDRAWN = "ALREADY_WITHDRAWN"
    INSUFFICIENT_STAKE = "INSUFFICIENT_STAKE"
    INTERNAL = "INTERNAL"


# HTTP status per kind, used by the global error handler
HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.STILL_LOCKED: 423,
    ErrorKind.TOO_EARLY: 429,
    ErrorKind.ALREADY_WITHDRAWN: 409,
    ErrorKind.INSUFFICIENT_STAKE: 400,
    ErrorKind.INTERNAL: 500,
}


class StakingError(Exception):
    """A rejected operation with a stable kind and optional actionable data."""

    def __init__(self, kind: ErrorKind, message: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.data = data or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "detail": self.message, **self.data}

    def __repr__(self) -> str:
        return f"StakingError({self.kind.value}, {self.message!r})"
