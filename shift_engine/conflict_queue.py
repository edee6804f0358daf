"""FIFO of pending conflict cases, resolved one at a time."""

from __future__ import annotations

from collections import deque
from typing import Iterable

from .models import ConflictCase


class ConflictQueue:
    """Holds the case being resolved plus the ones still waiting.

    ``advance()`` is used both after a resolution and for skip/cancel: the
    current case is dropped and the next one (if any) becomes current.
    """

    def __init__(self, cases: Iterable[ConflictCase] = ()):
        self._pending: deque[ConflictCase] = deque()
        self._current: ConflictCase | None = None
        self.resolved: list[ConflictCase] = []
        self.skipped: list[ConflictCase] = []
        self.extend(cases)

    def __len__(self) -> int:
        return len(self._pending) + (1 if self._current is not None else 0)

    def __bool__(self) -> bool:
        return len(self) > 0

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def current(self) -> ConflictCase | None:
        return self._current

    def enqueue(self, case: ConflictCase) -> None:
        if self._current is None:
            self._current = case
        else:
            self._pending.append(case)

    def extend(self, cases: Iterable[ConflictCase]) -> None:
        for case in cases:
            self.enqueue(case)

    def advance(self) -> ConflictCase | None:
        self._current = self._pending.popleft() if self._pending else None
        return self._current

    def resolve(self) -> ConflictCase | None:
        """Mark the current case as handled and move on."""
        if self._current is not None:
            self.resolved.append(self._current)
        return self.advance()

    def skip(self) -> ConflictCase | None:
        if self._current is not None:
            self.skipped.append(self._current)
        return self.advance()

    def clear(self) -> None:
        self._pending.clear()
        self._current = None
