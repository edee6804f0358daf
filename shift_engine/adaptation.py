"""Adaptation planner: reconcile an employee's day around a winning shift.

The planner is pure. It classifies how each conflicting shift sits relative to
the winner and emits create/update/delete operations so that nothing overlaps
afterwards, keeping every salvaged fragment of at least
``MIN_SHIFT_DURATION_MINUTES``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from itertools import count
from typing import Iterable, Iterator

from .models import (
    MIN_SHIFT_DURATION_MINUTES,
    AdaptationPlan,
    PlannedShift,
    Shift,
    ShiftUpdate,
)
from .time_utils import DEFAULT_TZ, anchor_to_date, duration_minutes

logger = logging.getLogger(__name__)


def _winning_on_date(
    winning: Shift | PlannedShift,
    target_date: date | str,
    target_employee_id: int | None,
    tz: tzinfo,
) -> PlannedShift:
    start, end = anchor_to_date(winning.start_at, winning.end_at, target_date, tz)
    employee_id = target_employee_id if target_employee_id is not None else winning.employee_id
    return PlannedShift(
        employee_id=employee_id,
        start_at=start,
        end_at=end,
        title=winning.title,
        location=winning.location,
        notes=winning.notes,
        color=winning.color,
        is_new=True,
    )


def _keeps(start: datetime, end: datetime) -> bool:
    return duration_minutes(start, end) >= MIN_SHIFT_DURATION_MINUTES


def plan_adaptation(
    winning: Shift | PlannedShift,
    conflicting: Iterable[Shift],
    target_date: date | str,
    *,
    target_employee_id: int | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> AdaptationPlan:
    """Compute the minimal create/update/delete plan that makes room for ``winning``.

    Geometry is evaluated on raw instants:

    - winner covers the existing shift entirely: delete it;
    - existing starts before the winner: keep ``[exist_start, new_start)`` as
      an update (or delete when too short) and, if it also runs past the
      winner, salvage ``[new_end, exist_end)`` as a new fragment. This also
      covers a winner nested inside a longer shift;
    - existing starts inside the winner and ends after it: move its start to
      ``new_end`` (or delete when the rest is too short);
    - anything else does not overlap and is left alone.
    """
    new = _winning_on_date(winning, target_date, target_employee_id, tz)
    plan = AdaptationPlan(to_create=[new])
    new_start, new_end = new.start_at, new.end_at

    for existing in conflicting:
        exist_start, exist_end = existing.start_at, existing.end_at
        if not (exist_start < new_end and new_start < exist_end):
            continue

        if new_start <= exist_start and new_end >= exist_end:
            plan.to_delete.append(existing.id)
            continue

        if exist_start < new_start:
            if _keeps(exist_start, new_start):
                plan.to_update.append(ShiftUpdate(id=existing.id, start_at=exist_start, end_at=new_start))
            else:
                plan.to_delete.append(existing.id)
            if exist_end > new_end:
                if _keeps(new_end, exist_end):
                    plan.to_create.append(PlannedShift.from_shift(existing, new_end, exist_end))
                else:
                    logger.debug("Dropping %s-minute tail of shift %s", duration_minutes(new_end, exist_end), existing.id)
            continue

        # exist_start inside [new_start, new_end) and exist_end > new_end
        if _keeps(new_end, exist_end):
            plan.to_update.append(ShiftUpdate(id=existing.id, start_at=new_end, end_at=exist_end))
        else:
            plan.to_delete.append(existing.id)

    return plan


def plan_override(
    winning: Shift | PlannedShift,
    conflicting: Iterable[Shift],
    target_date: date | str,
    *,
    target_employee_id: int | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> AdaptationPlan:
    """Delete every conflicting shift outright and create the winner."""
    new = _winning_on_date(winning, target_date, target_employee_id, tz)
    return AdaptationPlan(to_create=[new], to_delete=[s.id for s in conflicting])


def apply_plan_locally(
    shifts: Iterable[Shift],
    plan: AdaptationPlan,
    *,
    id_factory: Iterator[int] | None = None,
    company_id: int | None = None,
) -> list[Shift]:
    """Return ``shifts`` with the plan applied in memory (deletes, updates, creates)."""
    ids = id_factory if id_factory is not None else count(-1, -1)
    by_id = {s.id: s for s in shifts}
    for kind, payload in plan.operations():
        if kind == "delete":
            by_id.pop(payload, None)
        elif kind == "update":
            current = by_id.get(payload.id)
            if current is not None:
                by_id[payload.id] = replace(current, start_at=payload.start_at, end_at=payload.end_at)
        else:
            shift = payload.to_shift(next(ids), company_id=company_id)
            by_id[shift.id] = shift
    return list(by_id.values())
