"""Tests for the adaptation planner and the override policy."""

from itertools import count

import pytest

from shift_engine.adaptation import apply_plan_locally, plan_adaptation, plan_override
from shift_engine.conflicts import find_overlapping_shifts
from shift_engine.models import MIN_SHIFT_DURATION_MINUTES, PlannedShift, Shift
from shift_engine.time_utils import DEFAULT_TZ, hhmm_of, resolve_shift_window

DAY = "2025-03-10"


def make_shift(shift_id, start, end, employee_id=1, title="Existente", day=DAY):
    start_at, end_at = resolve_shift_window(day, start, end)
    return Shift(
        id=shift_id,
        employee_id=employee_id,
        start_at=start_at,
        end_at=end_at,
        title=title,
        location="Tienda",
        notes="nota",
        color="#059669",
    )


def winner(start, end, employee_id=1, day=DAY):
    start_at, end_at = resolve_shift_window(day, start, end)
    return PlannedShift(employee_id=employee_id, start_at=start_at, end_at=end_at, title="Nuevo", color="#2563EB")


def hours(items):
    return sorted((hhmm_of(s.start_at), hhmm_of(s.end_at)) for s in items)


def no_overlap(shifts):
    ordered = sorted(shifts, key=lambda s: s.start_at)
    return all(a.end_at <= b.start_at for a, b in zip(ordered, ordered[1:]))


class TestClassification:
    def test_containment_deletes(self):
        existing = [make_shift(1, "10:00", "12:00")]
        plan = plan_adaptation(winner("09:00", "13:00"), existing, DAY)
        assert plan.to_delete == [1]
        assert plan.to_update == []
        assert len(plan.to_create) == 1
        assert plan.to_create[0].is_new

    def test_exact_match_deletes(self):
        plan = plan_adaptation(winner("09:00", "13:00"), [make_shift(1, "09:00", "13:00")], DAY)
        assert plan.to_delete == [1]

    def test_existing_before_is_truncated(self):
        plan = plan_adaptation(winner("12:00", "16:00"), [make_shift(1, "08:00", "14:00")], DAY)
        assert [(u.id, hhmm_of(u.start_at), hhmm_of(u.end_at)) for u in plan.to_update] == [(1, "08:00", "12:00")]
        assert len(plan.to_create) == 1

    def test_existing_after_start_moves_start(self):
        plan = plan_adaptation(winner("08:00", "12:00"), [make_shift(1, "10:00", "18:00")], DAY)
        assert [(u.id, hhmm_of(u.start_at), hhmm_of(u.end_at)) for u in plan.to_update] == [(1, "12:00", "18:00")]

    def test_middle_insertion_splits_into_three(self):
        existing = [make_shift(1, "09:00", "17:00")]
        plan = plan_adaptation(winner("12:00", "14:00"), existing, DAY)
        assert [(u.id, hhmm_of(u.start_at), hhmm_of(u.end_at)) for u in plan.to_update] == [(1, "09:00", "12:00")]
        assert hours(plan.to_create) == [("12:00", "14:00"), ("14:00", "17:00")]

        tail = next(p for p in plan.to_create if not p.is_new)
        assert tail.source_shift_id == 1
        assert (tail.title, tail.location, tail.notes, tail.color) == ("Existente", "Tienda", "nota", "#059669")

        result = apply_plan_locally(existing, plan)
        assert hours(result) == [("09:00", "12:00"), ("12:00", "14:00"), ("14:00", "17:00")]

    def test_non_overlapping_input_ignored(self):
        plan = plan_adaptation(winner("12:00", "14:00"), [make_shift(1, "14:00", "16:00")], DAY)
        assert plan.to_update == [] and plan.to_delete == []


class TestMinimumDuration:
    def test_short_leading_part_deleted(self):
        plan = plan_adaptation(winner("09:10", "12:00"), [make_shift(1, "09:00", "10:00")], DAY)
        assert plan.to_delete == [1]
        assert plan.to_update == []

    def test_short_tail_dropped(self):
        plan = plan_adaptation(winner("10:00", "16:50"), [make_shift(1, "09:00", "17:00")], DAY)
        assert [u.id for u in plan.to_update] == [1]
        assert len(plan.to_create) == 1

    def test_short_remainder_after_winner_deleted(self):
        plan = plan_adaptation(winner("08:00", "11:50"), [make_shift(1, "10:00", "12:00")], DAY)
        assert plan.to_delete == [1]

    def test_exactly_minimum_kept(self):
        plan = plan_adaptation(winner("09:15", "12:00"), [make_shift(1, "09:00", "10:00")], DAY)
        assert [u.id for u in plan.to_update] == [1]

    def test_floor_counts_elapsed_time_over_dst_change(self):
        # 01:50 to 03:00 on the spring-forward night is ten real minutes
        day = "2025-03-30"
        plan = plan_adaptation(winner("03:00", "06:00", day=day), [make_shift(1, "01:50", "05:00", day=day)], day)
        assert plan.to_delete == [1]
        assert plan.to_update == []

    @pytest.mark.parametrize(
        "start,end",
        [("08:00", "10:00"), ("09:05", "16:55"), ("11:00", "20:00"), ("06:00", "23:00"), ("12:00", "12:10")],
    )
    def test_no_fragment_below_floor(self, start, end):
        existing = [make_shift(1, "09:00", "17:00"), make_shift(2, "17:00", "21:00")]
        plan = plan_adaptation(winner(start, end), existing, DAY)
        for update in plan.to_update:
            assert (update.end_at - update.start_at).total_seconds() / 60 >= MIN_SHIFT_DURATION_MINUTES
        for fragment in plan.to_create:
            if not fragment.is_new:
                assert fragment.duration_minutes >= MIN_SHIFT_DURATION_MINUTES


class TestNoResidualOverlap:
    @pytest.mark.parametrize(
        "start,end",
        [("07:00", "09:30"), ("10:00", "11:00"), ("12:30", "15:30"), ("08:00", "20:00"), ("16:00", "02:00")],
    )
    def test_employee_day_is_clean_after_apply(self, start, end):
        existing = [
            make_shift(1, "08:00", "12:00"),
            make_shift(2, "13:00", "17:00"),
            make_shift(3, "18:00", "23:00"),
        ]
        new = winner(start, end)
        hits = find_overlapping_shifts(existing, 1, new.start_at, new.end_at)
        plan = plan_adaptation(new, hits, DAY)
        result = apply_plan_locally(existing, plan, id_factory=count(100))
        assert no_overlap(result)
        assert sum(1 for s in result if s.id >= 100 and hhmm_of(s.start_at) == start) == 1


class TestRetargeting:
    def test_winner_reanchored_on_target_date(self):
        source = make_shift(9, "22:00", "06:00", employee_id=2, day="2025-03-03")
        plan = plan_adaptation(source, [], "2025-03-10", target_employee_id=1)
        new = plan.to_create[0]
        assert new.employee_id == 1
        assert new.start_at.date().isoformat() == "2025-03-10"
        assert new.end_at.date().isoformat() == "2025-03-11"
        assert new.start_at.tzinfo is DEFAULT_TZ

    def test_24h_winner_is_not_zero_length(self):
        source = make_shift(9, "09:00", "09:00", day="2025-03-03")
        plan = plan_adaptation(source, [], DAY)
        assert plan.to_create[0].duration_minutes == 24 * 60


class TestOverride:
    def test_deletes_everything_conflicting(self):
        existing = [make_shift(1, "08:00", "12:00"), make_shift(2, "13:00", "17:00")]
        plan = plan_override(winner("11:00", "14:00"), existing, DAY)
        assert plan.to_delete == [1, 2]
        assert plan.to_update == []
        assert len(plan.to_create) == 1

    def test_operations_order(self):
        existing = [make_shift(1, "08:00", "12:00"), make_shift(2, "11:00", "15:00")]
        plan = plan_adaptation(winner("10:00", "13:00"), existing, DAY)
        kinds = [kind for kind, _ in plan.operations()]
        assert kinds == sorted(kinds, key=["delete", "update", "create"].index)
