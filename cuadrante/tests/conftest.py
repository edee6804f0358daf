from __future__ import annotations

import pytest

from cuadrante.service import ScheduleSession
from cuadrante.storage import JsonShiftStore
from shift_engine.models import Shift
from shift_engine.time_utils import resolve_shift_window

EMPLOYEES = {1: "Ana García", 2: "Luis Pérez", 3: "Marta Ruiz"}


def make_shift(shift_id, employee_id, day, start="09:00", end="17:00", title="Turno", color="#2563EB"):
    start_at, end_at = resolve_shift_window(day, start, end)
    return Shift(id=shift_id, employee_id=employee_id, start_at=start_at, end_at=end_at, title=title, color=color)


@pytest.fixture
def store():
    backend = JsonShiftStore(company_id=7)
    backend.seed(
        [
            make_shift(1, 1, "2025-03-10", "09:00", "17:00", "Mañana"),
            make_shift(2, 1, "2025-03-11", "22:00", "06:00", "Noche"),
            make_shift(3, 2, "2025-03-10", "14:00", "22:00", "Tarde"),
        ]
    )
    return backend


@pytest.fixture
def session(store, tmp_path):
    return ScheduleSession(store, company_id=7, employees=EMPLOYEES, artifact_root=tmp_path / "artifacts")


@pytest.fixture
def shift_factory():
    return make_shift
