"""Read a CSV roster directory into shifts, employees and templates."""

from __future__ import annotations

import csv
import json
from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from shift_engine.models import Shift, ShiftTemplate
from shift_engine.time_utils import DEFAULT_TZ

from .schemas import shift_from_record, template_from_row, to_int


def load_input(directory: Path, tz: tzinfo | None = None) -> dict[str, Any]:
    """Read a roster directory -> {meta, employees, shifts, templates}.

    ``meta.json``, ``employees.csv`` and ``shifts.csv`` are required;
    ``templates.csv`` is optional. When ``tz`` is omitted the zone named in
    ``meta.json`` (``timezone``) is used.

    Raises FileNotFoundError if required files are missing.
    """
    d = Path(directory)

    meta = _read_json(d / "meta.json")
    zone = tz or (ZoneInfo(meta["timezone"]) if meta.get("timezone") else DEFAULT_TZ)

    employees = [
        {
            "employee_id": to_int(row["employee_id"]),
            "name": row.get("name", ""),
            "company_id": to_int(row.get("company_id")) or None,
        }
        for row in _read_csv(d / "employees.csv")
    ]

    shifts: list[Shift] = [shift_from_record(row, zone) for row in _read_csv(d / "shifts.csv")]

    templates: list[ShiftTemplate] = []
    templates_path = d / "templates.csv"
    if templates_path.exists():
        templates = [template_from_row(row) for row in _read_csv(templates_path)]

    return {
        "meta": meta,
        "timezone": zone,
        "employees": employees,
        "shifts": shifts,
        "templates": templates,
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict:
    """Read and parse a JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_csv(path: Path) -> list[dict[str, str]]:
    """Read a CSV file into a list of dicts via csv.DictReader."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))
