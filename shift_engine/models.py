"""Core record types for shifts, templates, conflicts and adaptation plans."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Iterator

from .errors import ShiftValidationError
from .time_utils import duration_minutes

MIN_SHIFT_DURATION_MINUTES = 15

SHIFT_COLORS = (
    "#2563EB",
    "#DC2626",
    "#059669",
    "#7C3AED",
    "#CA8A04",
    "#0891B2",
    "#DB2777",
    "#4B5563",
)

DEFAULT_SHIFT_COLOR = SHIFT_COLORS[0]
ASSISTANT_DEFAULT_COLOR = "#3b82f6"

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_valid_color(value: str | None) -> bool:
    return bool(value) and HEX_COLOR_RE.match(str(value)) is not None


def validate_color(value: str | None) -> str:
    if not is_valid_color(value):
        raise ShiftValidationError(f"Invalid color {value!r}: expected #RRGGBB")
    return str(value)


def employee_color(employee_id: int) -> str:
    """Palette colour used when shifts are stamped onto an employee."""
    return SHIFT_COLORS[int(employee_id) % len(SHIFT_COLORS)]


@dataclass
class Shift:
    id: int
    employee_id: int
    start_at: datetime
    end_at: datetime
    title: str = ""
    location: str | None = None
    notes: str | None = None
    color: str = DEFAULT_SHIFT_COLOR
    company_id: int | None = None

    @property
    def is_optimistic(self) -> bool:
        return self.id < 0

    @property
    def duration_minutes(self) -> float:
        return duration_minutes(self.start_at, self.end_at)

    def with_times(self, start_at: datetime, end_at: datetime) -> Shift:
        return replace(self, start_at=start_at, end_at=end_at)


@dataclass
class PlannedShift:
    """A shift to be created; not yet persisted."""

    employee_id: int
    start_at: datetime
    end_at: datetime
    title: str = ""
    location: str | None = None
    notes: str | None = None
    color: str = DEFAULT_SHIFT_COLOR
    is_new: bool = False
    source_shift_id: int | None = None

    @property
    def duration_minutes(self) -> float:
        return duration_minutes(self.start_at, self.end_at)

    @classmethod
    def from_shift(cls, shift: Shift, start_at: datetime, end_at: datetime, **overrides: Any) -> PlannedShift:
        values: dict[str, Any] = {
            "employee_id": shift.employee_id,
            "start_at": start_at,
            "end_at": end_at,
            "title": shift.title,
            "location": shift.location,
            "notes": shift.notes,
            "color": shift.color,
            "source_shift_id": shift.id,
        }
        values.update(overrides)
        return cls(**values)

    def to_shift(self, shift_id: int, company_id: int | None = None) -> Shift:
        return Shift(
            id=shift_id,
            employee_id=self.employee_id,
            start_at=self.start_at,
            end_at=self.end_at,
            title=self.title,
            location=self.location,
            notes=self.notes,
            color=self.color,
            company_id=company_id,
        )


@dataclass(frozen=True)
class ShiftUpdate:
    id: int
    start_at: datetime
    end_at: datetime


@dataclass
class AdaptationPlan:
    to_create: list[PlannedShift] = field(default_factory=list)
    to_update: list[ShiftUpdate] = field(default_factory=list)
    to_delete: list[int] = field(default_factory=list)

    def operations(self) -> Iterator[tuple[str, Any]]:
        """Yield operations in application order: deletes, updates, creates."""
        for shift_id in self.to_delete:
            yield "delete", shift_id
        for update in self.to_update:
            yield "update", update
        for planned in self.to_create:
            yield "create", planned

    def to_dict(self) -> dict[str, Any]:
        return {
            "to_create": [
                {
                    "employee_id": p.employee_id,
                    "start_at": p.start_at.isoformat(),
                    "end_at": p.end_at.isoformat(),
                    "title": p.title,
                    "location": p.location,
                    "notes": p.notes,
                    "color": p.color,
                    "is_new": p.is_new,
                    "source_shift_id": p.source_shift_id,
                }
                for p in self.to_create
            ],
            "to_update": [
                {"id": u.id, "start_at": u.start_at.isoformat(), "end_at": u.end_at.isoformat()}
                for u in self.to_update
            ],
            "to_delete": list(self.to_delete),
        }


@dataclass
class ConflictCase:
    candidate: PlannedShift
    existing: list[Shift]
    target_employee_id: int
    target_date: date
    target_employee_name: str = ""

    @property
    def conflicting_ids(self) -> list[int]:
        return [s.id for s in self.existing]


@dataclass(frozen=True)
class LaneAssignment:
    shift: Shift
    lane: int
    total_lanes: int


@dataclass
class ShiftTemplate:
    id: str
    title: str
    start_time: str
    end_time: str
    color: str = DEFAULT_SHIFT_COLOR
    location: str | None = None
    notes: str | None = None
    source_shift_id: int | None = None
