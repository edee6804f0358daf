"""Typed command registry used by the assistant and the MCP tools.

Each command declares an input dataclass; ``execute`` coerces the raw
parameters (snake_case or camelCase) into it through the type hints and calls
the handler against a ``ScheduleSession``. Validation, lookup, ambiguity,
conflict and backend HTTP errors come back as
``{"success": False, "error": ...}``.
"""

from __future__ import annotations

import logging
import re
import types
from dataclasses import MISSING, dataclass, fields
from datetime import date
from typing import Any, Callable, Union, get_args, get_origin, get_type_hints

import httpx

from shift_engine.bulk import RangeScheduleParams, RotationParams, shifts_in_range
from shift_engine.conflicts import find_overlapping_shifts
from shift_engine.errors import AmbiguousShiftError, ShiftConflictError, ShiftEngineError, ShiftValidationError
from shift_engine.io.schemas import parse_instant, shift_to_record, to_bool
from shift_engine.models import ASSISTANT_DEFAULT_COLOR, ConflictCase, PlannedShift, Shift, validate_color
from shift_engine.time_utils import ensure_date, local_date_key

from .api_client import error_message
from .service import POLICIES, ScheduleSession

logger = logging.getLogger(__name__)

ON_CONFLICT = ("error",) + POLICIES

_ALIASES = {"date": "day", "week_start": "week_of"}


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    params_type: type
    handler: Callable[[ScheduleSession, Any], dict[str, Any]]

    def parameters(self) -> list[dict[str, Any]]:
        hints = get_type_hints(self.params_type)
        rows = []
        for f in fields(self.params_type):
            rows.append(
                {
                    "name": f.name,
                    "type": _type_name(hints[f.name]),
                    "required": f.default is MISSING and f.default_factory is MISSING,
                }
            )
        return rows


REGISTRY: dict[str, Command] = {}


def command(name: str, description: str, params_type: type):
    def decorator(fn: Callable[[ScheduleSession, Any], dict[str, Any]]):
        if name in REGISTRY:
            raise ValueError(f"Command '{name}' registered twice")
        REGISTRY[name] = Command(name=name, description=description, params_type=params_type, handler=fn)
        return fn

    return decorator


def describe() -> list[dict[str, Any]]:
    return [
        {"name": c.name, "description": c.description, "parameters": c.parameters()}
        for c in REGISTRY.values()
    ]


# ---- coercion ---------------------------------------------------------------

def _snake(key: str) -> str:
    key = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
    return _ALIASES.get(key, key)


def _type_name(tp: Any) -> str:
    origin = get_origin(tp)
    if origin in (Union, types.UnionType):
        inner = [a for a in get_args(tp) if a is not type(None)]
        return f"{_type_name(inner[0])}?"
    if origin is list:
        return f"list[{_type_name(get_args(tp)[0])}]"
    return getattr(tp, "__name__", str(tp))


def _coerce_value(tp: Any, value: Any) -> Any:
    origin = get_origin(tp)
    if origin in (Union, types.UnionType):
        if value is None or value == "":
            return None
        inner = [a for a in get_args(tp) if a is not type(None)]
        return _coerce_value(inner[0], value)
    if origin is list:
        items = value if isinstance(value, (list, tuple)) else str(value).split(",")
        return [_coerce_value(get_args(tp)[0], v) for v in items]
    if tp is bool:
        return value if isinstance(value, bool) else to_bool(str(value))
    if tp is int:
        if isinstance(value, bool):
            raise TypeError("boolean is not an integer")
        return int(value)
    if tp is date:
        return ensure_date(value)
    if tp is str:
        return str(value)
    return value


def coerce_params(params_type: type, raw: dict[str, Any]) -> Any:
    hints = get_type_hints(params_type)
    values = {_snake(k): v for k, v in (raw or {}).items()}
    kwargs: dict[str, Any] = {}
    for f in fields(params_type):
        if f.name not in values:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ShiftValidationError(f"Missing required parameter: {f.name}")
            continue
        try:
            kwargs[f.name] = _coerce_value(hints[f.name], values[f.name])
        except (TypeError, ValueError) as exc:
            raise ShiftValidationError(f"Invalid value for {f.name}: {values[f.name]!r}") from exc
    return params_type(**kwargs)


def execute(name: str, params: dict[str, Any] | None, session: ScheduleSession) -> dict[str, Any]:
    cmd = REGISTRY.get(name)
    if cmd is None:
        return {"success": False, "error": f"Unknown command: {name}"}
    try:
        args = coerce_params(cmd.params_type, params or {})
        result = cmd.handler(session, args)
    except AmbiguousShiftError as exc:
        return {"success": False, "error": str(exc), "candidates": exc.candidates}
    except ShiftConflictError as exc:
        return {"success": False, "error": str(exc), "conflicting_ids": exc.conflicting_ids}
    except ShiftEngineError as exc:
        logger.info("Command %s rejected: %s", name, exc)
        return {"success": False, "error": str(exc)}
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        logger.warning("Command %s failed: backend returned %s", name, status)
        return {"success": False, "error": f"Backend returned {status}: {error_message(exc.response)}", "status": status}
    except httpx.RequestError as exc:
        logger.warning("Command %s failed: %s", name, exc)
        return {"success": False, "error": f"Backend unreachable: {exc}"}
    return {"success": True, **result}


def _out(shift: Shift) -> dict[str, Any]:
    return shift_to_record(shift)


def _color(value: str | None) -> str:
    return validate_color(value) if value else ASSISTANT_DEFAULT_COLOR


# ---- commands ---------------------------------------------------------------

@dataclass
class AssignScheduleInput:
    employee_id: int
    title: str
    start_date: str
    end_date: str
    location: str | None = None
    notes: str | None = None
    color: str | None = None
    on_conflict: str = "error"


@command("assign_schedule", "Assign one shift to an employee (ISO start/end)", AssignScheduleInput)
def assign_schedule(session: ScheduleSession, p: AssignScheduleInput) -> dict[str, Any]:
    session.require_employee(p.employee_id)
    if p.on_conflict not in ON_CONFLICT:
        raise ShiftValidationError(f"on_conflict must be one of {ON_CONFLICT}")
    start = parse_instant(p.start_date, session.tz)
    end = parse_instant(p.end_date, session.tz)
    if end <= start:
        raise ShiftValidationError("End must be after start")
    planned = PlannedShift(
        employee_id=p.employee_id,
        start_at=start,
        end_at=end,
        title=p.title,
        location=p.location,
        notes=p.notes,
        color=_color(p.color),
        is_new=True,
    )

    hits = find_overlapping_shifts(session.shifts, p.employee_id, start, end, tz=session.tz)
    if not hits:
        shift = session.backend.create_shift(planned)
        session.refresh()
        return {"shift": _out(shift)}
    if p.on_conflict == "error":
        raise ShiftConflictError(
            f"Shift overlaps {len(hits)} existing shift(s): {', '.join(s.title for s in hits)}",
            conflicting_ids=[s.id for s in hits],
        )

    case = ConflictCase(
        candidate=planned,
        existing=hits,
        target_employee_id=p.employee_id,
        target_date=ensure_date(local_date_key(start, session.tz)),
        target_employee_name=session.employee_name(p.employee_id),
    )
    plan = session.preview_adaptation(p.on_conflict, case)
    outcome = session.apply_plan(plan, policy=p.on_conflict, case=case)
    return {
        "plan": plan.to_dict(),
        "created": [_out(s) for s in outcome["created"]],
        "updated": [_out(s) for s in outcome["updated"]],
        "deleted": outcome["deleted"],
    }


@dataclass
class AssignRangeInput:
    employee_id: int
    title: str
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    skip_weekends: bool = False
    location: str | None = None
    notes: str | None = None
    color: str | None = None


@command("assign_schedule_in_range", "Assign the same shift on every day of a date range", AssignRangeInput)
def assign_schedule_in_range(session: ScheduleSession, p: AssignRangeInput) -> dict[str, Any]:
    params = RangeScheduleParams(
        employee_id=p.employee_id,
        title=p.title,
        start_date=p.start_date,
        end_date=p.end_date,
        start_time=p.start_time,
        end_time=p.end_time,
        skip_weekends=p.skip_weekends,
        location=p.location,
        notes=p.notes,
        color=_color(p.color),
    )
    return session.generate_range(params)


@dataclass
class AssignRotationInput:
    employee_id: int
    title: str
    work_days: int
    rest_days: int
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    location: str | None = None
    notes: str | None = None
    color: str | None = None


@command("assign_rotating_schedule", "Assign a work/rest rotation (e.g. 4 on, 2 off)", AssignRotationInput)
def assign_rotating_schedule(session: ScheduleSession, p: AssignRotationInput) -> dict[str, Any]:
    params = RotationParams(
        employee_id=p.employee_id,
        title=p.title,
        work_days=p.work_days,
        rest_days=p.rest_days,
        start_time=p.start_time,
        end_time=p.end_time,
        start_date=p.start_date,
        end_date=p.end_date,
        location=p.location,
        notes=p.notes,
        color=_color(p.color),
    )
    return session.generate_rotation(params)


@dataclass
class UpdateShiftInput:
    employee_id: int
    day: date
    title: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    new_title: str | None = None
    location: str | None = None
    notes: str | None = None
    color: str | None = None


@command("update_employee_shift", "Change the times or details of an employee's shift on a date", UpdateShiftInput)
def update_employee_shift(session: ScheduleSession, p: UpdateShiftInput) -> dict[str, Any]:
    shift = session.update_by_day(
        p.employee_id,
        p.day,
        title=p.title,
        start_time=p.start_time,
        end_time=p.end_time,
        new_title=p.new_title,
        location=p.location,
        notes=p.notes,
        color=p.color,
    )
    return {"shift": _out(shift)}


@dataclass
class DeleteShiftInput:
    employee_id: int
    day: date
    title: str | None = None


@command("delete_employee_shift", "Delete an employee's shift on a date", DeleteShiftInput)
def delete_employee_shift(session: ScheduleSession, p: DeleteShiftInput) -> dict[str, Any]:
    removed = session.delete_by_day(p.employee_id, p.day, p.title)
    return {"deleted": _out(removed)}


@dataclass
class RangeInput:
    employee_id: int
    start_date: date
    end_date: date


@command("delete_employee_shifts_in_range", "Delete every shift of an employee in a date range", RangeInput)
def delete_employee_shifts_in_range(session: ScheduleSession, p: RangeInput) -> dict[str, Any]:
    session.require_employee(p.employee_id)
    return session.delete_range(p.employee_id, p.start_date, p.end_date)


@dataclass
class TransferInput:
    from_employee_id: int
    to_employee_id: int
    start_date: date
    end_date: date
    check_conflicts: bool = False


@command("swap_employee_shifts", "Move one employee's shifts in a range to another employee", TransferInput)
def swap_employee_shifts(session: ScheduleSession, p: TransferInput) -> dict[str, Any]:
    return session.swap_shifts(p.from_employee_id, p.to_employee_id, p.start_date, p.end_date)


@command("copy_employee_shifts", "Copy one employee's shifts in a range onto another employee", TransferInput)
def copy_employee_shifts(session: ScheduleSession, p: TransferInput) -> dict[str, Any]:
    return session.copy_shifts(
        p.from_employee_id, p.to_employee_id, p.start_date, p.end_date, check_conflicts=p.check_conflicts
    )


@dataclass
class WeekInput:
    employee_id: int
    week_of: date


@command("duplicate_week", "Copy an employee's week onto the following week", WeekInput)
def duplicate_week(session: ScheduleSession, p: WeekInput) -> dict[str, Any]:
    session.require_employee(p.employee_id)
    outcome = session.duplicate_week(p.employee_id, p.week_of)
    return {
        "created": [_out(s) for s in outcome["created"]],
        "deleted": outcome["deleted"],
    }


@dataclass
class ListShiftsInput:
    employee_id: int
    start_date: date
    end_date: date


@command("list_employee_shifts", "List an employee's shifts in a date range", ListShiftsInput)
def list_employee_shifts(session: ScheduleSession, p: ListShiftsInput) -> dict[str, Any]:
    session.require_employee(p.employee_id)
    rows = shifts_in_range(session.shifts, p.employee_id, p.start_date, p.end_date, session.tz)
    return {"count": len(rows), "shifts": [_out(s) for s in rows]}
