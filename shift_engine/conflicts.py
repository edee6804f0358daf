"""Overlap detection between a candidate shift and an employee's existing shifts.

Scanning is anchored to the candidate's start-day bucket: only shifts whose
local start date equals the candidate's local start date are considered, and
both sides are compared as minutes since midnight (end + 1440 when the end
falls on a later calendar date). Intervals are half-open, so a shift ending at
T never conflicts with one starting at T.
"""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Iterable

from .models import Shift
from .time_utils import (
    DEFAULT_TZ,
    MINUTES_PER_DAY,
    ensure_date,
    is_overnight,
    local_date_key,
    minutes_since_midnight,
    resolve_shift_window,
)


def _minute_span(start_at: datetime, end_at: datetime, tz: tzinfo) -> tuple[int, int]:
    start = minutes_since_midnight(start_at, tz)
    end = minutes_since_midnight(end_at, tz)
    if is_overnight(start_at, end_at, tz):
        end += MINUTES_PER_DAY
    return start, end


def intervals_overlap(s1: int | datetime, e1: int | datetime, s2: int | datetime, e2: int | datetime) -> bool:
    return s1 < e2 and s2 < e1


def _same_day_candidates(
    existing: Iterable[Shift],
    employee_id: int,
    day_key: str,
    exclude_shift_id: int | None,
    tz: tzinfo,
) -> Iterable[Shift]:
    for shift in existing:
        if shift.employee_id != employee_id:
            continue
        if exclude_shift_id is not None and shift.id == exclude_shift_id:
            continue
        if local_date_key(shift.start_at, tz) != day_key:
            continue
        yield shift


def find_overlapping_shifts(
    existing: Iterable[Shift],
    employee_id: int,
    candidate_start: datetime,
    candidate_end: datetime,
    exclude_shift_id: int | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> list[Shift]:
    """Return every existing shift of ``employee_id`` that overlaps the candidate."""
    c_start, c_end = _minute_span(candidate_start, candidate_end, tz)
    day_key = local_date_key(candidate_start, tz)
    hits: list[Shift] = []
    for shift in _same_day_candidates(existing, employee_id, day_key, exclude_shift_id, tz):
        s_start, s_end = _minute_span(shift.start_at, shift.end_at, tz)
        if intervals_overlap(c_start, c_end, s_start, s_end):
            hits.append(shift)
    return hits


def has_overlap(
    existing: Iterable[Shift],
    employee_id: int,
    candidate_start: datetime,
    candidate_end: datetime,
    exclude_shift_id: int | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> bool:
    c_start, c_end = _minute_span(candidate_start, candidate_end, tz)
    day_key = local_date_key(candidate_start, tz)
    for shift in _same_day_candidates(existing, employee_id, day_key, exclude_shift_id, tz):
        s_start, s_end = _minute_span(shift.start_at, shift.end_at, tz)
        if intervals_overlap(c_start, c_end, s_start, s_end):
            return True
    return False


def check_conflict(
    existing: Iterable[Shift],
    employee_id: int,
    day: date | str,
    start_time: str,
    end_time: str,
    exclude_shift_id: int | None = None,
    tz: tzinfo = DEFAULT_TZ,
) -> bool:
    """Check an HH:MM window on ``day`` against the employee's shifts."""
    start, end = resolve_shift_window(day, start_time, end_time, tz)
    return has_overlap(existing, employee_id, start, end, exclude_shift_id=exclude_shift_id, tz=tz)


def shifts_on_day(existing: Iterable[Shift], employee_id: int, day: date | str, tz: tzinfo = DEFAULT_TZ) -> list[Shift]:
    key = ensure_date(day).isoformat()
    return [s for s in existing if s.employee_id == employee_id and local_date_key(s.start_at, tz) == key]
