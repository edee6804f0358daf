"""Optimistic creation as a two-phase ledger.

A planned shift is staged under a negative placeholder id and shows up in the
local view immediately. ``drain`` later sends each staged entry to the backend
and either confirms it (placeholder replaced by the persisted shift) or rolls
it back (placeholder dropped). Rollback only touches local state.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable

from .errors import ShiftNotFoundError
from .models import PlannedShift, Shift

logger = logging.getLogger(__name__)


@dataclass
class SettleOutcome:
    placeholder_id: int
    success: bool
    shift: Shift | None = None
    error: str | None = None


class OptimisticLedger:
    def __init__(self, confirmed: Iterable[Shift] = (), *, clock: Callable[[], float] = time.time):
        self._confirmed: OrderedDict[int, Shift] = OrderedDict((s.id, s) for s in confirmed)
        self._pending: OrderedDict[int, Shift] = OrderedDict()
        self._queue: deque[tuple[int, PlannedShift]] = deque()
        self._clock = clock
        self._last_placeholder = 0

    def _next_placeholder(self) -> int:
        candidate = -int(self._clock() * 1000)
        if candidate >= self._last_placeholder:
            candidate = self._last_placeholder - 1
        self._last_placeholder = candidate
        return candidate

    def reset(self, confirmed: Iterable[Shift]) -> None:
        """Replace the confirmed view (after a refetch); pending entries survive."""
        self._confirmed = OrderedDict((s.id, s) for s in confirmed)

    def stage(self, planned: PlannedShift) -> int:
        placeholder = self._next_placeholder()
        self._pending[placeholder] = planned.to_shift(placeholder)
        self._queue.append((placeholder, planned))
        logger.debug("Staged optimistic shift %s for employee %s", placeholder, planned.employee_id)
        return placeholder

    def pending(self) -> list[Shift]:
        return list(self._pending.values())

    def view(self) -> list[Shift]:
        return list(self._confirmed.values()) + list(self._pending.values())

    def confirm(self, placeholder_id: int, persisted: Shift) -> None:
        self._pending.pop(placeholder_id, None)
        self._confirmed[persisted.id] = persisted

    def rollback(self, placeholder_id: int, error: str | None = None) -> None:
        removed = self._pending.pop(placeholder_id, None)
        if removed is not None:
            logger.warning("Rolled back optimistic shift %s: %s", placeholder_id, error or "unknown error")

    def amend(self, placeholder_id: int, start_at: datetime, end_at: datetime) -> Shift:
        """Retime a staged entry before it is sent."""
        current = self._pending.get(placeholder_id)
        if current is None:
            raise ShiftNotFoundError(f"No staged shift {placeholder_id}")
        amended = current.with_times(start_at, end_at)
        self._pending[placeholder_id] = amended
        self._queue = deque(
            (pid, replace(planned, start_at=start_at, end_at=end_at) if pid == placeholder_id else planned)
            for pid, planned in self._queue
        )
        return amended

    def discard(self, placeholder_id: int) -> bool:
        """Drop a staged entry so it is never sent."""
        return self._pending.pop(placeholder_id, None) is not None

    def drain(self, create: Callable[[PlannedShift], Shift]) -> list[SettleOutcome]:
        """Persist staged entries FIFO; confirm or roll back each one."""
        outcomes: list[SettleOutcome] = []
        while self._queue:
            placeholder, planned = self._queue.popleft()
            if placeholder not in self._pending:
                continue
            try:
                persisted = create(planned)
            except Exception as exc:
                logger.exception("Optimistic create failed for placeholder %s", placeholder)
                self.rollback(placeholder, str(exc))
                outcomes.append(SettleOutcome(placeholder, False, error=str(exc)))
                continue
            self.confirm(placeholder, persisted)
            outcomes.append(SettleOutcome(placeholder, True, shift=persisted))
        return outcomes
