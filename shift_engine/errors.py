"""Domain-specific exception types."""

from __future__ import annotations


class ShiftEngineError(Exception):
    """Base error for the scheduling core."""


class ShiftValidationError(ShiftEngineError, ValueError):
    """Raised when shift input is rejected before any mutation."""


class ShiftNotFoundError(ShiftEngineError, KeyError):
    """Raised when a shift or employee cannot be found for the company."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"


class ShiftConflictError(ShiftEngineError):
    """Raised when a proposed shift overlaps an existing one."""

    def __init__(self, message: str, conflicting_ids: list[int] | None = None):
        super().__init__(message)
        self.conflicting_ids = list(conflicting_ids or [])


class AmbiguousShiftError(ShiftEngineError):
    """Raised when several shifts match an update/delete target."""

    def __init__(self, message: str, candidates: list[str]):
        super().__init__(message)
        self.candidates = candidates
