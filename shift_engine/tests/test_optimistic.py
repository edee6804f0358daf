"""Tests for the optimistic create ledger."""

from itertools import count

import pytest

from shift_engine.errors import ShiftNotFoundError
from shift_engine.models import PlannedShift, Shift
from shift_engine.optimistic import OptimisticLedger
from shift_engine.time_utils import resolve_shift_window


def planned(day="2025-03-10", employee_id=1):
    start, end = resolve_shift_window(day, "09:00", "13:00")
    return PlannedShift(employee_id=employee_id, start_at=start, end_at=end, title="Mañana")


@pytest.fixture
def ledger():
    existing = planned().to_shift(1)
    return OptimisticLedger([existing], clock=lambda: 1000.0)


class TestStage:
    def test_placeholders_are_negative_and_unique(self, ledger):
        ids = [ledger.stage(planned(d)) for d in ("2025-03-11", "2025-03-12", "2025-03-13")]
        assert all(i < 0 for i in ids)
        assert ids == sorted(ids, reverse=True)
        assert len(set(ids)) == 3

    def test_view_merges_confirmed_and_pending(self, ledger):
        placeholder = ledger.stage(planned("2025-03-11"))
        assert [s.id for s in ledger.view()] == [1, placeholder]
        assert ledger.pending()[0].is_optimistic

    def test_reset_keeps_pending(self, ledger):
        placeholder = ledger.stage(planned("2025-03-11"))
        ledger.reset([])
        assert [s.id for s in ledger.view()] == [placeholder]


class TestDrain:
    def test_confirm_replaces_placeholder(self, ledger):
        ledger.stage(planned("2025-03-11"))
        ids = count(50)

        def create(p: PlannedShift) -> Shift:
            return p.to_shift(next(ids))

        outcomes = ledger.drain(create)
        assert [o.success for o in outcomes] == [True]
        assert sorted(s.id for s in ledger.view()) == [1, 50]
        assert ledger.pending() == []

    def test_failure_rolls_back_only_that_entry(self, ledger):
        ledger.stage(planned("2025-03-11"))
        ledger.stage(planned("2025-03-12"))
        calls = []

        def create(p: PlannedShift) -> Shift:
            calls.append(p.start_at.day)
            if p.start_at.day == 11:
                raise RuntimeError("backend down")
            return p.to_shift(60)

        outcomes = ledger.drain(create)
        assert calls == [11, 12]
        assert [o.success for o in outcomes] == [False, True]
        assert outcomes[0].error == "backend down"
        assert sorted(s.id for s in ledger.view()) == [1, 60]

    def test_rolled_back_entry_not_sent(self, ledger):
        placeholder = ledger.stage(planned("2025-03-11"))
        ledger.rollback(placeholder, "cancelled")
        assert ledger.drain(lambda p: pytest.fail("should not be called")) == []


class TestAmendAndDiscard:
    def test_amended_times_are_what_gets_sent(self, ledger):
        placeholder = ledger.stage(planned("2025-03-11"))
        start, end = resolve_shift_window("2025-03-11", "10:00", "13:00")
        amended = ledger.amend(placeholder, start, end)
        assert amended.id == placeholder
        assert [s.start_at for s in ledger.pending()] == [start]

        sent = []
        ledger.drain(lambda p: sent.append(p) or p.to_shift(70))
        assert [(p.start_at, p.end_at) for p in sent] == [(start, end)]

    def test_discarded_entry_never_sent(self, ledger):
        placeholder = ledger.stage(planned("2025-03-11"))
        assert ledger.discard(placeholder) is True
        assert ledger.discard(placeholder) is False
        assert ledger.drain(lambda p: pytest.fail("should not be called")) == []
        assert [s.id for s in ledger.view()] == [1]

    def test_amend_unknown_placeholder(self, ledger):
        start, end = resolve_shift_window("2025-03-11", "10:00", "13:00")
        with pytest.raises(ShiftNotFoundError):
            ledger.amend(-5, start, end)
