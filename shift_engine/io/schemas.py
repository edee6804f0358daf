"""Column constants, wire-format conversion, and type coercion for shift I/O."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any

from shift_engine.errors import ShiftValidationError
from shift_engine.models import DEFAULT_SHIFT_COLOR, PlannedShift, Shift, ShiftTemplate
from shift_engine.time_utils import DEFAULT_TZ, localize

# ---------------------------------------------------------------------------
# CSV column names
# ---------------------------------------------------------------------------

SHIFTS_COLS = [
    "id",
    "employee_id",
    "start_at",
    "end_at",
    "title",
    "location",
    "notes",
    "color",
]

EMPLOYEES_COLS = [
    "employee_id",
    "name",
    "company_id",
]

TEMPLATES_COLS = [
    "id",
    "title",
    "start_time",
    "end_time",
    "color",
    "location",
    "notes",
]

PLAN_COLS = [
    "operation",
    "id",
    "employee_id",
    "start_at",
    "end_at",
    "title",
    "is_new",
]

# ---------------------------------------------------------------------------
# Wire format (ISO-8601 timestamps, camelCase accepted on input)
# ---------------------------------------------------------------------------


def parse_instant(value: Any, tz: tzinfo = DEFAULT_TZ) -> datetime:
    """Parse an ISO-8601 timestamp ("Z" accepted) into the company zone."""
    if isinstance(value, datetime):
        return localize(value, tz)
    text = str(value or "").strip()
    if not text:
        raise ShiftValidationError("missing timestamp")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return localize(datetime.fromisoformat(text), tz)
    except ValueError:
        raise ShiftValidationError(f"Invalid timestamp {value!r}") from None


def _pick(record: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _blank_to_none(value: Any) -> str | None:
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def shift_from_record(record: dict[str, Any], tz: tzinfo = DEFAULT_TZ) -> Shift:
    """Build a Shift from an API/CSV record (snake_case or camelCase keys)."""
    start = parse_instant(_pick(record, "start_at", "startAt"), tz)
    end = parse_instant(_pick(record, "end_at", "endAt"), tz)
    company = _pick(record, "company_id", "companyId")
    return Shift(
        id=to_int(_pick(record, "id")),
        employee_id=to_int(_pick(record, "employee_id", "employeeId")),
        start_at=start,
        end_at=end,
        title=str(_pick(record, "title", default="") or ""),
        location=_blank_to_none(_pick(record, "location")),
        notes=_blank_to_none(_pick(record, "notes")),
        color=str(_pick(record, "color", default=DEFAULT_SHIFT_COLOR) or DEFAULT_SHIFT_COLOR),
        company_id=to_int(company) if company not in (None, "") else None,
    )


def shift_to_record(shift: Shift | PlannedShift) -> dict[str, Any]:
    """Serialise to the camelCase wire shape used by the backend."""
    record: dict[str, Any] = {
        "employeeId": shift.employee_id,
        "startAt": shift.start_at.isoformat(),
        "endAt": shift.end_at.isoformat(),
        "title": shift.title,
        "location": shift.location,
        "notes": shift.notes,
        "color": shift.color,
    }
    if isinstance(shift, Shift):
        record["id"] = shift.id
    return record


def shift_to_row(shift: Shift) -> dict[str, str]:
    return {
        "id": str(shift.id),
        "employee_id": str(shift.employee_id),
        "start_at": shift.start_at.isoformat(),
        "end_at": shift.end_at.isoformat(),
        "title": shift.title,
        "location": shift.location or "",
        "notes": shift.notes or "",
        "color": shift.color,
    }


def template_from_row(row: dict[str, Any]) -> ShiftTemplate:
    return ShiftTemplate(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        start_time=str(row["start_time"]),
        end_time=str(row["end_time"]),
        color=str(row.get("color") or DEFAULT_SHIFT_COLOR),
        location=_blank_to_none(row.get("location")),
        notes=_blank_to_none(row.get("notes")),
    )


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV values
# ---------------------------------------------------------------------------


def to_int(value: Any, default: int = 0) -> int:
    """Coerce a CSV string to int. Empty/None -> default."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def to_bool(value: str | None) -> bool:
    """Coerce a CSV string to bool. TRUE/true/1/True -> True, else False."""
    if value is None:
        return False
    return str(value).strip().upper() in ("TRUE", "1", "YES")


def fmt_bool(value: bool) -> str:
    """Format a bool for CSV output."""
    return "TRUE" if value else "FALSE"
