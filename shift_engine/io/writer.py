"""Write rosters and adaptation plans back to disk.

``shifts.csv`` mirrors the reader's input format so a written roster can be
loaded again; ``plan.csv`` lists plan operations in application order and
``plan.json`` carries the full wire form.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable

from shift_engine.models import AdaptationPlan, Shift

from .schemas import PLAN_COLS, SHIFTS_COLS, fmt_bool, shift_to_row


def write_shifts(shifts: Iterable[Shift], directory: Path) -> Path:
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    path = out / "shifts.csv"
    rows = sorted(shifts, key=lambda s: (s.employee_id, s.start_at, s.id))
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SHIFTS_COLS)
        writer.writeheader()
        for shift in rows:
            writer.writerow(shift_to_row(shift))
    return path


def write_plan(plan: AdaptationPlan, directory: Path) -> dict[str, Path]:
    """Write plan.csv and plan.json into ``directory``. Returns {filename: path}."""
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)

    csv_path = out / "plan.csv"
    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=PLAN_COLS)
        writer.writeheader()
        for kind, payload in plan.operations():
            if kind == "delete":
                writer.writerow({"operation": kind, "id": payload})
            elif kind == "update":
                writer.writerow(
                    {
                        "operation": kind,
                        "id": payload.id,
                        "start_at": payload.start_at.isoformat(),
                        "end_at": payload.end_at.isoformat(),
                    }
                )
            else:
                writer.writerow(
                    {
                        "operation": kind,
                        "employee_id": payload.employee_id,
                        "start_at": payload.start_at.isoformat(),
                        "end_at": payload.end_at.isoformat(),
                        "title": payload.title,
                        "is_new": fmt_bool(payload.is_new),
                    }
                )

    json_path = out / "plan.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(plan.to_dict(), f, indent=2, ensure_ascii=False)

    return {"plan.csv": csv_path, "plan.json": json_path}
