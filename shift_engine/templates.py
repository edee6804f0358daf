"""Reusable shift templates and their instantiation onto a date."""

from __future__ import annotations

import json
from dataclasses import asdict, replace
from datetime import date, tzinfo
from pathlib import Path
from uuid import uuid4

from .errors import ShiftNotFoundError, ShiftValidationError
from .models import PlannedShift, Shift, ShiftTemplate, validate_color
from .time_utils import DEFAULT_TZ, hhmm_of, parse_hhmm_to_minutes, resolve_shift_window


def template_from_shift(shift: Shift, tz: tzinfo = DEFAULT_TZ) -> ShiftTemplate:
    return ShiftTemplate(
        id=f"template-{uuid4().hex[:12]}",
        title=shift.title,
        start_time=hhmm_of(shift.start_at, tz),
        end_time=hhmm_of(shift.end_at, tz),
        color=shift.color,
        location=shift.location,
        notes=shift.notes,
        source_shift_id=shift.id,
    )


def instantiate(template: ShiftTemplate, employee_id: int, day: date | str, tz: tzinfo = DEFAULT_TZ) -> PlannedShift:
    start, end = resolve_shift_window(day, template.start_time, template.end_time, tz)
    return PlannedShift(
        employee_id=employee_id,
        start_at=start,
        end_at=end,
        title=template.title,
        location=template.location,
        notes=template.notes,
        color=template.color,
        is_new=True,
    )


def _validate(template: ShiftTemplate) -> None:
    if parse_hhmm_to_minutes(template.start_time) is None or parse_hhmm_to_minutes(template.end_time) is None:
        raise ShiftValidationError(f"Template {template.title!r} has an invalid time")
    validate_color(template.color)


class TemplateStore:
    """Session-scoped template list, optionally mirrored to a JSON file."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else None
        self._items: dict[str, ShiftTemplate] = {}
        if self.path and self.path.exists():
            with self.path.open("r", encoding="utf-8") as fh:
                for row in json.load(fh):
                    tpl = ShiftTemplate(**row)
                    self._items[tpl.id] = tpl

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump([asdict(t) for t in self._items.values()], fh, indent=2, ensure_ascii=False)

    def list(self) -> list[ShiftTemplate]:
        return list(self._items.values())

    def get(self, template_id: str) -> ShiftTemplate:
        try:
            return self._items[template_id]
        except KeyError:
            raise ShiftNotFoundError(f"template not found: {template_id}") from None

    def add(self, template: ShiftTemplate) -> ShiftTemplate:
        _validate(template)
        self._items[template.id] = template
        self._save()
        return template

    def add_from_shift(self, source: Shift | ShiftTemplate, tz: tzinfo = DEFAULT_TZ) -> ShiftTemplate:
        if isinstance(source, ShiftTemplate):
            raise ShiftValidationError("A template cannot be created from another template; use a shift")
        return self.add(template_from_shift(source, tz))

    def update(self, template: ShiftTemplate) -> ShiftTemplate:
        self.get(template.id)
        _validate(template)
        self._items[template.id] = replace(template)
        self._save()
        return template

    def remove(self, template_id: str) -> None:
        self.get(template_id)
        del self._items[template_id]
        self._save()
