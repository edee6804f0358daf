"""Bulk scheduling: range and rotation generators, cross-employee transfers, week copies.

Every generator resolves wall-clock times through ``time_utils`` and checks
each day with the conflict detector before emitting a candidate. Nothing here
persists anything; callers create the returned candidates.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field, replace
from datetime import date, timedelta, tzinfo
from typing import Any, Iterable

from .conflicts import find_overlapping_shifts, shifts_on_day
from .errors import AmbiguousShiftError, ShiftNotFoundError, ShiftValidationError
from .models import (
    DEFAULT_SHIFT_COLOR,
    AdaptationPlan,
    ConflictCase,
    PlannedShift,
    Shift,
    employee_color,
    validate_color,
)
from .time_utils import (
    DEFAULT_TZ,
    anchor_to_date,
    ensure_date,
    iter_days,
    local_date_key,
    parse_hhmm_to_minutes,
    resolve_shift_window,
    week_start,
)

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


# ---- Parameters & results ---------------------------------------------------

@dataclass(frozen=True)
class RangeScheduleParams:
    employee_id: int
    title: str
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    skip_weekends: bool = False
    location: str | None = None
    notes: str | None = None
    color: str = DEFAULT_SHIFT_COLOR


@dataclass(frozen=True)
class RotationParams:
    employee_id: int
    title: str
    work_days: int
    rest_days: int
    start_time: str
    end_time: str
    start_date: date
    end_date: date
    location: str | None = None
    notes: str | None = None
    color: str = DEFAULT_SHIFT_COLOR


@dataclass
class GenerationResult:
    shifts: list[PlannedShift] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)

    @property
    def dates(self) -> list[str]:
        return [s.start_at.date().isoformat() for s in self.shifts]


@dataclass
class TransferPlan:
    moves: list[Shift] = field(default_factory=list)
    creates: list[PlannedShift] = field(default_factory=list)
    conflicts: list[ConflictCase] = field(default_factory=list)


def _validate_window(start_time: str, end_time: str, start_date: date, end_date: date) -> None:
    if parse_hhmm_to_minutes(start_time) is None:
        raise ShiftValidationError(f"Invalid start time {start_time!r}")
    if parse_hhmm_to_minutes(end_time) is None:
        raise ShiftValidationError(f"Invalid end time {end_time!r}")
    if start_date > end_date:
        raise ShiftValidationError("start date is after end date")


def _candidate_for_day(
    day: date,
    *,
    employee_id: int,
    title: str,
    start_time: str,
    end_time: str,
    location: str | None,
    notes: str | None,
    color: str,
    tz: tzinfo,
) -> PlannedShift:
    start, end = resolve_shift_window(day, start_time, end_time, tz)
    return PlannedShift(
        employee_id=employee_id,
        start_at=start,
        end_at=end,
        title=title,
        location=location,
        notes=notes,
        color=color,
        is_new=True,
    )


def _emit_unless_conflict(
    result: GenerationResult,
    candidate: PlannedShift,
    existing: list[Shift],
    tz: tzinfo,
) -> None:
    hits = find_overlapping_shifts(existing, candidate.employee_id, candidate.start_at, candidate.end_at, tz=tz)
    if hits:
        day = local_date_key(candidate.start_at, tz)
        logger.info("Skipping %s for employee %s: overlaps %d shift(s)", day, candidate.employee_id, len(hits))
        result.skipped.append(
            {
                "date": day,
                "reason": "conflict",
                "conflicting_ids": [s.id for s in hits],
                "conflicting_titles": [s.title for s in hits],
            }
        )
        return
    result.shifts.append(candidate)


# ---- Generators -------------------------------------------------------------

def generate_range_shifts(
    params: RangeScheduleParams,
    existing: Iterable[Shift] = (),
    tz: tzinfo = DEFAULT_TZ,
) -> GenerationResult:
    """One candidate per calendar day in ``[start_date, end_date]``."""
    start_date = ensure_date(params.start_date)
    end_date = ensure_date(params.end_date)
    _validate_window(params.start_time, params.end_time, start_date, end_date)
    color = validate_color(params.color)
    existing = list(existing)

    result = GenerationResult()
    for day in iter_days(start_date, end_date):
        if params.skip_weekends and day.weekday() in (SATURDAY, SUNDAY):
            continue
        candidate = _candidate_for_day(
            day,
            employee_id=params.employee_id,
            title=params.title,
            start_time=params.start_time,
            end_time=params.end_time,
            location=params.location,
            notes=params.notes,
            color=color,
            tz=tz,
        )
        _emit_unless_conflict(result, candidate, existing, tz)
    return result


def generate_rotating_shifts(
    params: RotationParams,
    existing: Iterable[Shift] = (),
    tz: tzinfo = DEFAULT_TZ,
) -> GenerationResult:
    """Work ``work_days`` days, rest ``rest_days`` days, repeat; ``start_date`` is a work day."""
    if params.work_days < 1:
        raise ShiftValidationError("work_days must be at least 1")
    if params.rest_days < 0:
        raise ShiftValidationError("rest_days cannot be negative")
    start_date = ensure_date(params.start_date)
    end_date = ensure_date(params.end_date)
    _validate_window(params.start_time, params.end_time, start_date, end_date)
    color = validate_color(params.color)
    existing = list(existing)

    cycle = params.work_days + params.rest_days
    day_in_cycle = 0
    result = GenerationResult()
    for day in iter_days(start_date, end_date):
        if day_in_cycle < params.work_days:
            candidate = _candidate_for_day(
                day,
                employee_id=params.employee_id,
                title=params.title,
                start_time=params.start_time,
                end_time=params.end_time,
                location=params.location,
                notes=params.notes,
                color=color,
                tz=tz,
            )
            _emit_unless_conflict(result, candidate, existing, tz)
        day_in_cycle = (day_in_cycle + 1) % cycle
    return result


# ---- Selection helpers ------------------------------------------------------

def expand_weekdays(base_date: date | str, weekdays: Iterable[int]) -> list[date]:
    """Map ISO weekday numbers (1=Mon .. 7=Sun) onto the week of ``base_date``."""
    base = ensure_date(base_date)
    selected = sorted(set(int(d) for d in weekdays))
    if not selected:
        raise ShiftValidationError("Select at least one day")
    bad = [d for d in selected if d < 1 or d > 7]
    if bad:
        raise ShiftValidationError(f"Invalid weekday number(s): {bad}")
    current = base.isoweekday()
    return [base + timedelta(days=d - current) for d in selected]


def shifts_in_range(
    shifts: Iterable[Shift],
    employee_id: int,
    start_date: date | str,
    end_date: date | str,
    tz: tzinfo = DEFAULT_TZ,
) -> list[Shift]:
    """Shifts of ``employee_id`` whose local start date falls in the inclusive range."""
    lo = ensure_date(start_date).isoformat()
    hi = ensure_date(end_date).isoformat()
    rows = [s for s in shifts if s.employee_id == employee_id and lo <= local_date_key(s.start_at, tz) <= hi]
    rows.sort(key=lambda s: s.start_at)
    return rows


def shifts_in_week(shifts: Iterable[Shift], employee_id: int, day: date | str, tz: tzinfo = DEFAULT_TZ) -> list[Shift]:
    monday = week_start(day)
    return shifts_in_range(shifts, employee_id, monday, monday + timedelta(days=6), tz)


def _title_key(value: str | None) -> str:
    s = unicodedata.normalize("NFKD", value or "")
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"\s+", " ", s.lower()).strip()
    return s


def find_target_shift(
    shifts: Iterable[Shift],
    employee_id: int,
    day: date | str,
    title: str | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> Shift:
    """Pick the single shift an update/delete refers to, or explain why not."""
    candidates = shifts_on_day(shifts, employee_id, day, tz)
    if title:
        wanted = _title_key(title)
        exact = [s for s in candidates if _title_key(s.title) == wanted]
        candidates = exact or [s for s in candidates if wanted in _title_key(s.title)]
    if not candidates:
        suffix = f" titled {title!r}" if title else ""
        raise ShiftNotFoundError(f"No shift{suffix} for employee {employee_id} on {ensure_date(day).isoformat()}")
    if len(candidates) > 1:
        titles = [s.title for s in candidates]
        raise AmbiguousShiftError(
            f"{len(candidates)} shifts match on {ensure_date(day).isoformat()}; specify the title",
            candidates=titles,
        )
    return candidates[0]


# ---- Cross-employee transfers -----------------------------------------------

def plan_swap(
    shifts: Iterable[Shift],
    from_employee_id: int,
    to_employee_id: int,
    start_date: date | str,
    end_date: date | str,
    tz: tzinfo = DEFAULT_TZ,
) -> TransferPlan:
    """Move ``from_employee_id``'s shifts in the range to ``to_employee_id``.

    Each moved shift is checked against the destination's existing shifts;
    conflicting ones are reported and not moved.
    """
    if from_employee_id == to_employee_id:
        raise ShiftValidationError("source and destination employee are the same")
    shifts = list(shifts)
    source = shifts_in_range(shifts, from_employee_id, start_date, end_date, tz)
    destination = [s for s in shifts if s.employee_id == to_employee_id]

    plan = TransferPlan()
    for shift in source:
        hits = find_overlapping_shifts(destination, to_employee_id, shift.start_at, shift.end_at, tz=tz)
        if hits:
            plan.conflicts.append(
                ConflictCase(
                    candidate=PlannedShift.from_shift(shift, shift.start_at, shift.end_at, employee_id=to_employee_id),
                    existing=hits,
                    target_employee_id=to_employee_id,
                    target_date=ensure_date(local_date_key(shift.start_at, tz)),
                )
            )
            continue
        plan.moves.append(replace(shift, employee_id=to_employee_id))
    return plan


def plan_copy(
    shifts: Iterable[Shift],
    from_employee_id: int,
    to_employee_id: int,
    start_date: date | str,
    end_date: date | str,
    *,
    check_conflicts: bool = False,
    tz: tzinfo = DEFAULT_TZ,
) -> TransferPlan:
    """Duplicate shifts onto another employee, recoloured with their palette colour.

    No conflict pre-check unless ``check_conflicts`` is set.
    """
    shifts = list(shifts)
    source = shifts_in_range(shifts, from_employee_id, start_date, end_date, tz)
    destination = [s for s in shifts if s.employee_id == to_employee_id]
    color = employee_color(to_employee_id)

    plan = TransferPlan()
    for shift in source:
        planned = PlannedShift.from_shift(
            shift, shift.start_at, shift.end_at, employee_id=to_employee_id, color=color, is_new=True,
        )
        if check_conflicts:
            hits = find_overlapping_shifts(destination, to_employee_id, shift.start_at, shift.end_at, tz=tz)
            if hits:
                plan.conflicts.append(
                    ConflictCase(
                        candidate=planned,
                        existing=hits,
                        target_employee_id=to_employee_id,
                        target_date=ensure_date(local_date_key(shift.start_at, tz)),
                    )
                )
                continue
        plan.creates.append(planned)
    return plan


def plan_duplicate_week(
    shifts: Iterable[Shift],
    employee_id: int,
    week_of: date | str,
    tz: tzinfo = DEFAULT_TZ,
) -> AdaptationPlan:
    """Copy a Monday-started week onto the next one, replacing what is already there."""
    shifts = list(shifts)
    monday = week_start(week_of)
    current = shifts_in_week(shifts, employee_id, monday, tz)
    if not current:
        raise ShiftValidationError(f"No shifts in the week of {monday.isoformat()} to duplicate")
    following = shifts_in_week(shifts, employee_id, monday + timedelta(days=7), tz)

    plan = AdaptationPlan(to_delete=[s.id for s in following])
    for shift in current:
        target_day = ensure_date(local_date_key(shift.start_at, tz)) + timedelta(days=7)
        start, end = anchor_to_date(shift.start_at, shift.end_at, target_day, tz)
        plan.to_create.append(PlannedShift.from_shift(shift, start, end, is_new=True))
    return plan
