"""Input/output layer for rosters and plans.

Public API:
    load_input(directory)         -- read CSV roster dir -> {meta, employees, shifts, templates}
    write_shifts(shifts, dir)     -- write shifts.csv in the reader's format
    write_plan(plan, dir)         -- write plan.csv + plan.json
    shift_from_record(record)     -- API/CSV record -> Shift
    shift_to_record(shift)        -- Shift/PlannedShift -> camelCase wire record
"""

from .reader import load_input
from .schemas import parse_instant, shift_from_record, shift_to_record
from .writer import write_plan, write_shifts

__all__ = [
    "load_input",
    "parse_instant",
    "shift_from_record",
    "shift_to_record",
    "write_plan",
    "write_shifts",
]
