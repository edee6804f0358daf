"""Shift conflict detection, adaptation, layout and bulk generation core."""

from .adaptation import apply_plan_locally, plan_adaptation, plan_override
from .bulk import (
    RangeScheduleParams,
    RotationParams,
    generate_range_shifts,
    generate_rotating_shifts,
    plan_copy,
    plan_duplicate_week,
    plan_swap,
)
from .conflict_queue import ConflictQueue
from .conflicts import check_conflict, find_overlapping_shifts, has_overlap
from .lanes import assign_lanes
from .models import (
    MIN_SHIFT_DURATION_MINUTES,
    AdaptationPlan,
    ConflictCase,
    LaneAssignment,
    PlannedShift,
    Shift,
    ShiftTemplate,
    ShiftUpdate,
)
from .optimistic import OptimisticLedger
from .time_utils import parse_hhmm_to_minutes, resolve_overnight_end, resolve_shift_window, to_instant

# io module (csv/json only)
from .io import load_input, shift_from_record, shift_to_record, write_plan

__all__ = [
    "MIN_SHIFT_DURATION_MINUTES",
    "AdaptationPlan",
    "ConflictCase",
    "ConflictQueue",
    "LaneAssignment",
    "OptimisticLedger",
    "PlannedShift",
    "RangeScheduleParams",
    "RotationParams",
    "Shift",
    "ShiftTemplate",
    "ShiftUpdate",
    "apply_plan_locally",
    "assign_lanes",
    "check_conflict",
    "find_overlapping_shifts",
    "generate_range_shifts",
    "generate_rotating_shifts",
    "has_overlap",
    "load_input",
    "parse_hhmm_to_minutes",
    "plan_adaptation",
    "plan_copy",
    "plan_duplicate_week",
    "plan_override",
    "plan_swap",
    "resolve_overnight_end",
    "resolve_shift_window",
    "shift_from_record",
    "shift_to_record",
    "to_instant",
    "write_plan",
]
