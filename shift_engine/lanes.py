"""Day layout: one dedicated lane per shift, ordered by start time."""

from __future__ import annotations

from typing import Sequence

from .models import LaneAssignment, Shift


def assign_lanes(day_shifts: Sequence[Shift]) -> list[LaneAssignment]:
    """Give every shift its own lane, in ascending start order.

    Non-overlapping shifts are not packed into shared lanes. Equal start
    times keep their input order (``sorted`` is stable).
    """
    if not day_shifts:
        return []
    ordered = sorted(day_shifts, key=lambda s: s.start_at)
    total = len(ordered)
    return [LaneAssignment(shift=shift, lane=index, total_lanes=total) for index, shift in enumerate(ordered)]
