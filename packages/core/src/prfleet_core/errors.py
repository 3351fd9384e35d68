"""Errors raised by the coordination call handlers.

Only violated preconditions are exceptions. A worker reporting on a file it
no longer owns is an expected outcome (it lost a stale-reclaim race) and is
returned as a plain failure result instead.
"""

from __future__ import annotations


class CoordinationError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"status": "error", "kind": self.kind, "message": self.message}


class NotFoundError(CoordinationError):
    """No run to act on, or the named file is not part of the run."""

    kind = "not_found"


class PermissionDeniedError(CoordinationError):
    """Refused to replace a live run or to reset without confirmation."""

    kind = "permission"


class InvalidInputError(CoordinationError, ValueError):
    kind = "invalid_input"
