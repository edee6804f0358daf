"""Tests for the typed command registry."""

from __future__ import annotations

from datetime import date

import httpx
import pytest

from cuadrante.api_client import ShiftApiClient
from cuadrante.commands import REGISTRY, AssignRangeInput, coerce_params, describe, execute
from cuadrante.config import CompanyConfig
from cuadrante.service import ScheduleSession
from shift_engine.errors import ShiftValidationError
from shift_engine.models import ASSISTANT_DEFAULT_COLOR


class TestCoercion:
    def test_camel_case_and_types(self):
        params = coerce_params(
            AssignRangeInput,
            {
                "employeeId": "1",
                "title": "Mañana",
                "startDate": "2025-03-10",
                "endDate": "2025-03-14",
                "startTime": "09:00",
                "endTime": "13:00",
                "skipWeekends": "true",
            },
        )
        assert params.employee_id == 1
        assert params.start_date == date(2025, 3, 10)
        assert params.skip_weekends is True
        assert params.color is None

    def test_missing_required(self):
        with pytest.raises(ShiftValidationError, match="employee_id"):
            coerce_params(AssignRangeInput, {"title": "x"})

    def test_bad_value(self):
        with pytest.raises(ShiftValidationError, match="start_date"):
            coerce_params(
                AssignRangeInput,
                {
                    "employee_id": 1,
                    "title": "x",
                    "start_date": "next monday",
                    "end_date": "2025-03-14",
                    "start_time": "09:00",
                    "end_time": "13:00",
                },
            )

    def test_describe_lists_every_command(self):
        names = {c["name"] for c in describe()}
        assert names == set(REGISTRY)
        assign = next(c for c in describe() if c["name"] == "assign_schedule")
        required = {p["name"] for p in assign["parameters"] if p["required"]}
        assert required == {"employee_id", "title", "start_date", "end_date"}


class TestAssignSchedule:
    def test_creates_with_assistant_colour(self, session):
        result = execute(
            "assign_schedule",
            {"employeeId": 3, "title": "Guardia", "startDate": "2025-03-12T08:00:00", "endDate": "2025-03-12T14:00:00"},
            session,
        )
        assert result["success"] is True
        assert result["shift"]["color"] == ASSISTANT_DEFAULT_COLOR
        assert result["shift"]["employeeId"] == 3

    def test_end_before_start(self, session):
        result = execute(
            "assign_schedule",
            {"employee_id": 3, "title": "X", "start_date": "2025-03-12T14:00:00", "end_date": "2025-03-12T08:00:00"},
            session,
        )
        assert result == {"success": False, "error": "End must be after start"}

    def test_bad_colour(self, session):
        result = execute(
            "assign_schedule",
            {
                "employee_id": 3,
                "title": "X",
                "start_date": "2025-03-12T08:00:00",
                "end_date": "2025-03-12T10:00:00",
                "color": "azul",
            },
            session,
        )
        assert result["success"] is False
        assert "#RRGGBB" in result["error"]

    def test_unknown_employee(self, session):
        result = execute(
            "assign_schedule",
            {"employee_id": 42, "title": "X", "start_date": "2025-03-12T08:00:00", "end_date": "2025-03-12T10:00:00"},
            session,
        )
        assert result["success"] is False
        assert "not found" in result["error"]

    def test_conflict_reported_by_default(self, session):
        result = execute(
            "assign_schedule",
            {"employee_id": 1, "title": "X", "start_date": "2025-03-10T12:00:00", "end_date": "2025-03-10T14:00:00"},
            session,
        )
        assert result["success"] is False
        assert result["conflicting_ids"] == [1]

    def test_conflict_adapted_on_request(self, session):
        result = execute(
            "assign_schedule",
            {
                "employee_id": 1,
                "title": "Reunión",
                "start_date": "2025-03-10T12:00:00",
                "end_date": "2025-03-10T14:00:00",
                "on_conflict": "adapt",
            },
            session,
        )
        assert result["success"] is True
        assert len(result["created"]) == 2
        assert [u["id"] for u in result["updated"]] == [1]


class TestBulkCommands:
    def test_range_skips_conflicting_day(self, session):
        result = execute(
            "assign_schedule_in_range",
            {
                "employee_id": 1,
                "title": "Temprano",
                "start_date": "2025-03-10",
                "end_date": "2025-03-12",
                "start_time": "07:00",
                "end_time": "10:00",
            },
            session,
        )
        assert result["success"] is True
        assert (result["created"], result["skipped"]) == (2, 1)

    def test_rotation(self, session):
        result = execute(
            "assign_rotating_schedule",
            {
                "employee_id": 3,
                "title": "Rotación",
                "work_days": 3,
                "rest_days": 3,
                "start_date": "2025-01-01",
                "end_date": "2025-01-14",
                "start_time": "08:00",
                "end_time": "16:00",
            },
            session,
        )
        assert result["created"] == 8

    def test_list_and_delete_range(self, session):
        listed = execute("list_employee_shifts", {"employee_id": 1, "start_date": "2025-03-10", "end_date": "2025-03-16"}, session)
        assert listed["count"] == 2
        deleted = execute(
            "delete_employee_shifts_in_range",
            {"employee_id": 1, "start_date": "2025-03-10", "end_date": "2025-03-16"},
            session,
        )
        assert deleted["deleted"] == 2

    def test_swap_same_employee_rejected(self, session):
        result = execute(
            "swap_employee_shifts",
            {"from_employee_id": 1, "to_employee_id": 1, "start_date": "2025-03-10", "end_date": "2025-03-11"},
            session,
        )
        assert result["success"] is False

    def test_copy(self, session):
        result = execute(
            "copy_employee_shifts",
            {"from_employee_id": 1, "to_employee_id": 3, "start_date": "2025-03-10", "end_date": "2025-03-11"},
            session,
        )
        assert result["created"] == 2

    def test_duplicate_week(self, session):
        result = execute("duplicate_week", {"employee_id": 1, "weekStart": "2025-03-12"}, session)
        assert result["success"] is True
        assert len(result["created"]) == 2


class TestTargetedCommands:
    def test_update_by_date(self, session):
        result = execute(
            "update_employee_shift",
            {"employee_id": 2, "date": "2025-03-10", "start_time": "15:00", "new_title": "Tarde corta"},
            session,
        )
        assert result["success"] is True
        assert result["shift"]["title"] == "Tarde corta"
        assert result["shift"]["startAt"].startswith("2025-03-10T15:00")

    def test_ambiguous_update_lists_candidates(self, session):
        execute(
            "assign_schedule",
            {"employee_id": 2, "title": "Refuerzo", "start_date": "2025-03-10T08:00:00", "end_date": "2025-03-10T10:00:00"},
            session,
        )
        result = execute("update_employee_shift", {"employee_id": 2, "date": "2025-03-10", "start_time": "07:00"}, session)
        assert result["success"] is False
        assert sorted(result["candidates"]) == ["Refuerzo", "Tarde"]

    def test_delete_by_title(self, session):
        result = execute("delete_employee_shift", {"employee_id": 1, "date": "2025-03-11", "title": "noche"}, session)
        assert result["success"] is True
        assert result["deleted"]["id"] == 2

    def test_delete_nothing_there(self, session):
        result = execute("delete_employee_shift", {"employee_id": 1, "date": "2025-03-20"}, session)
        assert result["success"] is False

    def test_unknown_command(self, session):
        assert execute("fire_everyone", {}, session) == {"success": False, "error": "Unknown command: fire_everyone"}


def api_session(write_status: int, payload: dict) -> ScheduleSession:
    row = {
        "id": 11,
        "employeeId": 1,
        "startAt": "2025-03-10T08:00:00.000Z",
        "endAt": "2025-03-10T16:00:00.000Z",
        "title": "Mañana",
        "color": "#2563EB",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[row])
        return httpx.Response(write_status, json=payload)

    client = ShiftApiClient(
        base_url="https://cuadrante.test",
        company=CompanyConfig(company="demo", api_token="secret", company_id="7"),
        transport=httpx.MockTransport(handler),
    )
    return ScheduleSession(client, company_id=7)


class TestBackendErrors:
    PARAMS = {"employee_id": 1, "date": "2025-03-10", "start_time": "10:00"}

    def test_forbidden_is_structured(self):
        result = execute("update_employee_shift", self.PARAMS, api_session(403, {"error": "Forbidden"}))
        assert result == {"success": False, "error": "Backend returned 403: Forbidden", "status": 403}

    def test_unprocessable_is_validation_error(self):
        result = execute("update_employee_shift", self.PARAMS, api_session(422, {"error": "endAt is required"}))
        assert result == {"success": False, "error": "endAt is required"}

    def test_backend_conflict_is_structured(self):
        session = api_session(409, {"error": "Shift is locked"})
        result = execute("delete_employee_shift", {"employee_id": 1, "date": "2025-03-10"}, session)
        assert result == {"success": False, "error": "Shift is locked", "conflicting_ids": []}
