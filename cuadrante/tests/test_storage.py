"""Tests for the file-backed shift store and plan artifacts."""

from datetime import date

import pytest

from cuadrante.storage import JsonShiftStore, list_plans, load_plan, save_plan
from shift_engine.errors import ShiftNotFoundError, ShiftValidationError
from shift_engine.models import PlannedShift
from shift_engine.time_utils import hhmm_of, resolve_shift_window


def planned(day="2025-03-12", start="08:00", end="12:00", employee_id=1):
    start_at, end_at = resolve_shift_window(day, start, end)
    return PlannedShift(employee_id=employee_id, start_at=start_at, end_at=end_at, title="Apoyo")


class TestJsonShiftStore:
    def test_create_assigns_increasing_ids(self, store):
        first = store.create_shift(planned())
        second = store.create_shift(planned("2025-03-13"))
        assert (first.id, second.id) == (4, 5)
        assert first.company_id == 7

    def test_list_filters(self, store):
        assert [s.id for s in store.list_shifts(employee_id=1)] == [1, 2]
        assert [s.id for s in store.list_shifts(start_date=date(2025, 3, 11))] == [2]
        assert [s.id for s in store.list_shifts(end_date=date(2025, 3, 10))] == [1, 3]

    def test_update_accepts_iso_strings(self, store):
        updated = store.update_shift(1, {"start_at": "2025-03-10T10:00:00+01:00", "title": "Corto"})
        assert hhmm_of(updated.start_at) == "10:00"
        assert updated.title == "Corto"

    def test_update_rejects_unknown_fields(self, store):
        with pytest.raises(ShiftValidationError):
            store.update_shift(1, {"payroll": 3})

    def test_missing_shift(self, store):
        with pytest.raises(ShiftNotFoundError):
            store.update_shift(99, {"title": "x"})
        with pytest.raises(ShiftNotFoundError):
            store.delete_shift(99)

    def test_file_persistence(self, tmp_path):
        path = tmp_path / "shifts.json"
        store = JsonShiftStore(path)
        created = store.create_shift(planned())
        store.create_shift(planned("2025-03-13"))
        store.delete_shift(created.id)

        reloaded = JsonShiftStore(path)
        assert [s.id for s in reloaded.list_shifts()] == [2]
        assert reloaded.create_shift(planned("2025-03-14")).id == 3


class TestPlanArtifacts:
    def test_save_list_load(self, tmp_path):
        plan = {
            "plan_id": "plan-abc",
            "generated_at": "2025-03-10T10:00:00Z",
            "policy": "adapt",
            "employee_id": 1,
            "target_date": "2025-03-10",
            "operations": {"to_create": [{}], "to_update": [], "to_delete": [3, 4]},
        }
        target = save_plan(tmp_path, plan)
        assert (target / "plan.json").exists()

        manifests = list_plans(tmp_path)
        assert manifests[0]["plan_id"] == "plan-abc"
        assert manifests[0]["counts"] == {"to_delete": 2, "to_update": 0, "to_create": 1}
        assert load_plan(tmp_path) == plan
        assert load_plan(tmp_path, "plan-abc")["policy"] == "adapt"

    def test_missing_plan(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_plan(tmp_path, "nope")
