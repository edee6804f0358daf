from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, tzinfo
from time import sleep
from typing import Any

import httpx

from shift_engine.errors import ShiftConflictError, ShiftNotFoundError, ShiftValidationError
from shift_engine.io.schemas import shift_from_record, shift_to_record
from shift_engine.models import PlannedShift, Shift
from shift_engine.time_utils import DEFAULT_TZ

from .config import CompanyConfig
from .utils import to_iso_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShiftOperation:
    method: str
    path_template: str


SHIFT_OPERATIONS: dict[str, ShiftOperation] = {
    "list_company": ShiftOperation("GET", "/api/work-shifts/company"),
    "list_employee": ShiftOperation("GET", "/api/work-shifts/employee/{employee}"),
    "create": ShiftOperation("POST", "/api/work-shifts"),
    "update": ShiftOperation("PATCH", "/api/work-shifts/{shift}"),
    "delete": ShiftOperation("DELETE", "/api/work-shifts/{shift}"),
}

UPDATABLE_FIELDS = {
    "employee_id": "employeeId",
    "start_at": "startAt",
    "end_at": "endAt",
    "title": "title",
    "location": "location",
    "notes": "notes",
    "color": "color",
}


def _extract_rows(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("shifts", "data", "items"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def _extract_one(payload: Any) -> dict[str, Any]:
    if isinstance(payload, dict) and isinstance(payload.get("shift"), dict):
        return payload["shift"]
    if isinstance(payload, dict):
        return payload
    raise ValueError("unexpected shift payload from backend")


class ShiftApiClient:
    """REST persistence collaborator for work shifts.

    Only the operations in SHIFT_OPERATIONS are executable. Reads (GET) retry
    transport errors and 5xx responses with exponential backoff; writes are
    sent once. A 404 surfaces as ShiftNotFoundError, a 400 or 422 as
    ShiftValidationError and a 409 as ShiftConflictError.
    """

    def __init__(
        self,
        *,
        base_url: str,
        company: CompanyConfig,
        tz: tzinfo = DEFAULT_TZ,
        timeout_s: float = 30.0,
        retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.company = company
        self.tz = tz
        self.timeout_s = timeout_s
        self.retries = max(1, retries)
        self._http = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.company.api_token}",
            "Accept": "application/json",
        }

    def _request(
        self,
        *,
        operation: str,
        path_args: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        op = SHIFT_OPERATIONS.get(operation)
        if op is None:
            raise ValueError(f"Operation '{operation}' is not supported")

        path = op.path_template.format(**(path_args or {}))
        url = f"{self.base_url}{path}"

        attempts = self.retries if op.method == "GET" else 1
        last_exc: Exception | None = None
        for attempt in range(attempts):
            try:
                resp = self._http.request(
                    op.method,
                    url,
                    headers=self._headers(),
                    params=params,
                    json=json_body,
                )
                if resp.status_code >= 500 and attempt < attempts - 1:
                    sleep(2**attempt)
                    continue
                if resp.status_code == 404:
                    raise ShiftNotFoundError(f"{op.method} {path}: not found")
                if resp.status_code in (400, 422):
                    raise ShiftValidationError(error_message(resp))
                if resp.status_code == 409:
                    raise ShiftConflictError(error_message(resp))
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < attempts - 1:
                    logger.warning("%s %s failed (%s), retrying", op.method, path, exc)
                    sleep(2**attempt)
                    continue
                raise
        if last_exc:
            raise last_exc
        raise RuntimeError("request failed without an explicit exception")

    def list_shifts(
        self,
        employee_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Shift]:
        params: dict[str, Any] = {"companyId": self.company.company_id}
        if start_date is not None:
            params["start"] = to_iso_datetime(start_date, tz=self.tz)
        if end_date is not None:
            params["end"] = to_iso_datetime(end_date, end_of_day=True, tz=self.tz)
        if employee_id is None:
            resp = self._request(operation="list_company", params=params)
        else:
            resp = self._request(operation="list_employee", path_args={"employee": employee_id}, params=params)
        return [shift_from_record(row, self.tz) for row in _extract_rows(resp.json())]

    def create_shift(self, planned: PlannedShift) -> Shift:
        body = shift_to_record(planned)
        body["companyId"] = self.company.company_id
        resp = self._request(operation="create", json_body=body)
        return shift_from_record(_extract_one(resp.json()), self.tz)

    def update_shift(self, shift_id: int, fields: dict[str, Any]) -> Shift:
        body: dict[str, Any] = {}
        for key, value in fields.items():
            wire = UPDATABLE_FIELDS.get(key)
            if wire is None:
                raise ShiftValidationError(f"Field '{key}' cannot be updated")
            body[wire] = value.isoformat() if hasattr(value, "isoformat") else value
        resp = self._request(operation="update", path_args={"shift": shift_id}, json_body=body)
        return shift_from_record(_extract_one(resp.json()), self.tz)

    def delete_shift(self, shift_id: int) -> None:
        self._request(operation="delete", path_args={"shift": shift_id})


def error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text or "bad request"
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("message") or payload)
    return str(payload)
