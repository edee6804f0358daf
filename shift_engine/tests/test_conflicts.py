"""Tests for the start-day-bucket overlap detector."""

from shift_engine.conflicts import (
    check_conflict,
    find_overlapping_shifts,
    has_overlap,
    intervals_overlap,
    shifts_on_day,
)
from shift_engine.models import Shift
from shift_engine.time_utils import resolve_shift_window


def make_shift(shift_id, employee_id, day, start, end, title="Turno"):
    start_at, end_at = resolve_shift_window(day, start, end)
    return Shift(id=shift_id, employee_id=employee_id, start_at=start_at, end_at=end_at, title=title)


class TestIntervalPredicate:
    def test_half_open(self):
        assert not intervals_overlap(540, 720, 720, 900)
        assert intervals_overlap(540, 721, 720, 900)

    def test_containment(self):
        assert intervals_overlap(0, 1440, 600, 660)


class TestCheckConflict:
    def setup_method(self):
        self.shifts = [
            make_shift(1, 1, "2025-03-10", "09:00", "13:00", "Mañana"),
            make_shift(2, 1, "2025-03-10", "22:00", "06:00", "Noche"),
            make_shift(3, 2, "2025-03-10", "09:00", "17:00", "Tarde"),
        ]

    def test_overlap_detected(self):
        assert check_conflict(self.shifts, 1, "2025-03-10", "12:00", "15:00")

    def test_touching_boundary_is_not_conflict(self):
        assert not check_conflict(self.shifts, 1, "2025-03-10", "13:00", "15:00")
        assert not check_conflict(self.shifts, 1, "2025-03-10", "07:00", "09:00")

    def test_other_employee_ignored(self):
        assert not check_conflict(self.shifts, 3, "2025-03-10", "09:00", "17:00")

    def test_overnight_candidate_hits_late_shift(self):
        assert check_conflict(self.shifts, 1, "2025-03-10", "23:00", "02:00")

    def test_overnight_candidate_against_evening(self):
        assert check_conflict(self.shifts, 1, "2025-03-10", "20:00", "23:00")
        assert not check_conflict(self.shifts, 1, "2025-03-10", "18:00", "22:00")

    def test_exclude_self_when_editing(self):
        assert not check_conflict(self.shifts, 1, "2025-03-10", "10:00", "12:00", exclude_shift_id=1)

    def test_only_start_day_bucket_scanned(self):
        # next-morning shift is not compared with the previous night's tail
        assert not check_conflict(self.shifts, 1, "2025-03-11", "05:00", "08:00")


class TestFindOverlapping:
    def test_returns_every_hit(self):
        shifts = [
            make_shift(1, 1, "2025-03-10", "08:00", "10:00"),
            make_shift(2, 1, "2025-03-10", "11:00", "12:00"),
            make_shift(3, 1, "2025-03-10", "15:00", "16:00"),
        ]
        start, end = resolve_shift_window("2025-03-10", "09:00", "14:00")
        hits = find_overlapping_shifts(shifts, 1, start, end)
        assert [s.id for s in hits] == [1, 2]
        assert has_overlap(shifts, 1, start, end)

    def test_empty_roster(self):
        start, end = resolve_shift_window("2025-03-10", "09:00", "14:00")
        assert find_overlapping_shifts([], 1, start, end) == []
        assert not has_overlap([], 1, start, end)


class TestShiftsOnDay:
    def test_bucket_by_local_start_date(self):
        shifts = [
            make_shift(1, 1, "2025-03-10", "22:00", "06:00"),
            make_shift(2, 1, "2025-03-11", "09:00", "13:00"),
        ]
        assert [s.id for s in shifts_on_day(shifts, 1, "2025-03-10")] == [1]
        assert [s.id for s in shifts_on_day(shifts, 1, "2025-03-11")] == [2]
