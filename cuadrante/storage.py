from __future__ import annotations

import json
import logging
from datetime import date, tzinfo
from pathlib import Path
from typing import Any, Protocol

from shift_engine.errors import ShiftNotFoundError, ShiftValidationError
from shift_engine.io.schemas import parse_instant, shift_from_record, shift_to_record
from shift_engine.models import PlannedShift, Shift
from shift_engine.time_utils import DEFAULT_TZ, local_date_key

logger = logging.getLogger(__name__)


class ShiftBackend(Protocol):
    def list_shifts(
        self,
        employee_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Shift]: ...

    def create_shift(self, planned: PlannedShift) -> Shift: ...

    def update_shift(self, shift_id: int, fields: dict[str, Any]) -> Shift: ...

    def delete_shift(self, shift_id: int) -> None: ...


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


class JsonShiftStore:
    """File-backed ShiftBackend. Without a path it keeps everything in memory."""

    def __init__(self, path: str | Path | None = None, *, tz: tzinfo = DEFAULT_TZ, company_id: int | None = None):
        self.path = Path(path) if path else None
        self.tz = tz
        self.company_id = company_id
        self._shifts: dict[int, Shift] = {}
        self._next_id = 1
        if self.path and self.path.exists():
            self._load()

    def _load(self) -> None:
        payload = _json_load(self.path)
        for row in payload.get("shifts", []):
            shift = shift_from_record(row, self.tz)
            self._shifts[shift.id] = shift
        self._next_id = int(payload.get("next_id") or (max(self._shifts, default=0) + 1))
        logger.debug("Loaded %d shifts from %s", len(self._shifts), self.path)

    def _save(self) -> None:
        if self.path is None:
            return
        _json_dump(
            self.path,
            {
                "next_id": self._next_id,
                "shifts": [shift_to_record(s) for s in sorted(self._shifts.values(), key=lambda s: s.id)],
            },
        )

    def seed(self, shifts: list[Shift]) -> None:
        for shift in shifts:
            self._shifts[shift.id] = shift
            self._next_id = max(self._next_id, shift.id + 1)
        self._save()

    def list_shifts(
        self,
        employee_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Shift]:
        rows: list[Shift] = []
        for shift in self._shifts.values():
            if employee_id is not None and shift.employee_id != employee_id:
                continue
            day = local_date_key(shift.start_at, self.tz)
            if start_date is not None and day < start_date.isoformat():
                continue
            if end_date is not None and day > end_date.isoformat():
                continue
            rows.append(shift)
        rows.sort(key=lambda s: (s.start_at, s.id))
        return rows

    def get_shift(self, shift_id: int) -> Shift:
        try:
            return self._shifts[shift_id]
        except KeyError:
            raise ShiftNotFoundError(f"Shift {shift_id} not found") from None

    def create_shift(self, planned: PlannedShift) -> Shift:
        shift = planned.to_shift(self._next_id, self.company_id)
        self._shifts[shift.id] = shift
        self._next_id += 1
        self._save()
        return shift

    def update_shift(self, shift_id: int, fields: dict[str, Any]) -> Shift:
        current = self.get_shift(shift_id)
        values = dict(fields)
        for key in ("start_at", "end_at"):
            if key in values:
                values[key] = parse_instant(values[key], self.tz)
        unknown = set(values) - {"employee_id", "start_at", "end_at", "title", "location", "notes", "color"}
        if unknown:
            raise ShiftValidationError(f"Fields cannot be updated: {sorted(unknown)}")
        for key, value in values.items():
            setattr(current, key, value)
        self._save()
        return current

    def delete_shift(self, shift_id: int) -> None:
        if shift_id not in self._shifts:
            raise ShiftNotFoundError(f"Shift {shift_id} not found")
        del self._shifts[shift_id]
        self._save()


def plan_root(artifact_root: Path) -> Path:
    path = artifact_root / "plans"
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_plan(artifact_root: Path, plan: dict[str, Any]) -> Path:
    root = plan_root(artifact_root)
    pid = plan["plan_id"]
    target = root / pid
    target.mkdir(parents=True, exist_ok=True)
    _json_dump(target / "plan.json", plan)

    operations = plan.get("operations", {})
    manifest = {
        "plan_id": pid,
        "generated_at": plan.get("generated_at"),
        "policy": plan.get("policy"),
        "employee_id": plan.get("employee_id"),
        "target_date": plan.get("target_date"),
        "counts": {key: len(operations.get(key, [])) for key in ("to_delete", "to_update", "to_create")},
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_plans(artifact_root: Path, limit: int = 20) -> list[dict[str, Any]]:
    root = plan_root(artifact_root)
    manifests: list[dict[str, Any]] = []
    for child in root.iterdir():
        if not child.is_dir():
            continue
        manifest_file = child / "manifest.json"
        if not manifest_file.exists():
            continue
        try:
            manifests.append(_json_load(manifest_file))
        except (OSError, ValueError):
            logger.warning("Skipping unreadable plan manifest %s", manifest_file)
            continue
    manifests.sort(key=lambda row: row.get("generated_at", ""), reverse=True)
    return manifests[:limit]


def load_plan(artifact_root: Path, plan_id: str | None = None) -> dict[str, Any]:
    root = plan_root(artifact_root)
    if plan_id:
        manifest_path = root / plan_id / "manifest.json"
    else:
        manifest_path = root / "latest.json"
    if not manifest_path.exists():
        raise FileNotFoundError("plan manifest not found")
    manifest = _json_load(manifest_path)
    pid = manifest["plan_id"]
    path = root / pid / "plan.json"
    if not path.exists():
        raise FileNotFoundError(f"plan payload not found: {pid}")
    return _json_load(path)
