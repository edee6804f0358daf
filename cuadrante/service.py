"""Session object driving the roster flows against a persistence backend.

A ``ScheduleSession`` caches the company's shifts (through an optimistic
ledger), queues conflicts raised by multi-day creates and drag duplication,
and applies adaptation/override plans in delete, update, create order. The
cache can go stale; ``refresh()`` refetches it from the backend.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from pathlib import Path
from typing import Any, Callable, Iterable
from uuid import uuid4

from shift_engine.adaptation import plan_adaptation, plan_override
from shift_engine.bulk import (
    GenerationResult,
    RangeScheduleParams,
    RotationParams,
    find_target_shift,
    generate_range_shifts,
    generate_rotating_shifts,
    plan_copy,
    plan_duplicate_week,
    plan_swap,
    shifts_in_range,
    shifts_in_week,
)
from shift_engine.conflict_queue import ConflictQueue
from shift_engine.conflicts import check_conflict, find_overlapping_shifts, shifts_on_day
from shift_engine.errors import ShiftConflictError, ShiftNotFoundError, ShiftValidationError
from shift_engine.lanes import assign_lanes
from shift_engine.models import (
    DEFAULT_SHIFT_COLOR,
    AdaptationPlan,
    ConflictCase,
    LaneAssignment,
    PlannedShift,
    Shift,
    ShiftTemplate,
    validate_color,
)
from shift_engine.optimistic import OptimisticLedger, SettleOutcome
from shift_engine.templates import TemplateStore, instantiate
from shift_engine.time_utils import DEFAULT_TZ, anchor_to_date, ensure_date, hhmm_of, local_date_key, resolve_shift_window

from .storage import ShiftBackend, save_plan
from .utils import now_utc_iso

logger = logging.getLogger(__name__)

POLICIES = ("adapt", "override")


def _settle(items: Iterable[Any], action: Callable[[Any], Any], describe: Callable[[Any], dict[str, Any]]) -> list[dict[str, Any]]:
    """Run ``action`` on every item; one failure never stops the rest."""
    results: list[dict[str, Any]] = []
    for item in items:
        row = describe(item)
        try:
            value = action(item)
        except Exception as exc:
            logger.exception("Bulk step failed for %s", row)
            row.update(success=False, error=str(exc))
        else:
            row["success"] = True
            if isinstance(value, Shift):
                row["id"] = value.id
        results.append(row)
    return results


def _summary(results: list[dict[str, Any]], *, key: str, skipped: int = 0) -> dict[str, Any]:
    ok = sum(1 for r in results if r.get("success"))
    return {key: ok, "failed": len(results) - ok, "skipped": skipped, "results": results}


class ScheduleSession:
    def __init__(
        self,
        backend: ShiftBackend,
        *,
        company_id: int | None = None,
        tz: tzinfo = DEFAULT_TZ,
        templates: TemplateStore | None = None,
        employees: dict[int, str] | None = None,
        artifact_root: Path | None = None,
    ):
        self.backend = backend
        self.company_id = company_id
        self.tz = tz
        self.templates = templates if templates is not None else TemplateStore()
        self.employees: dict[int, str] = dict(employees or {})
        self.artifact_root = artifact_root
        self.ledger = OptimisticLedger()
        self.conflicts = ConflictQueue()
        self.refresh()

    # ---- cache --------------------------------------------------------------

    @property
    def shifts(self) -> list[Shift]:
        return self.ledger.view()

    def refresh(self) -> list[Shift]:
        fetched = self.backend.list_shifts()
        self.ledger.reset(fetched)
        logger.debug("Session cache refreshed with %d shifts", len(fetched))
        return fetched

    def get_shift(self, shift_id: int) -> Shift:
        for shift in self.shifts:
            if shift.id == shift_id:
                return shift
        raise ShiftNotFoundError(f"Shift {shift_id} not found")

    def employee_name(self, employee_id: int) -> str:
        return self.employees.get(employee_id, "")

    def require_employee(self, employee_id: int) -> None:
        if self.employees and employee_id not in self.employees:
            raise ShiftNotFoundError(f"Employee {employee_id} not found in this company")

    def _case(self, candidate: PlannedShift, hits: list[Shift]) -> ConflictCase:
        return ConflictCase(
            candidate=candidate,
            existing=hits,
            target_employee_id=candidate.employee_id,
            target_date=ensure_date(local_date_key(candidate.start_at, self.tz)),
            target_employee_name=self.employee_name(candidate.employee_id),
        )

    # ---- queries ------------------------------------------------------------

    def check_conflict(
        self,
        employee_id: int,
        day: date | str,
        start_time: str,
        end_time: str,
        exclude_shift_id: int | None = None,
    ) -> bool:
        return check_conflict(self.shifts, employee_id, day, start_time, end_time, exclude_shift_id, self.tz)

    def day_lanes(self, employee_id: int, day: date | str) -> list[LaneAssignment]:
        return assign_lanes(shifts_on_day(self.shifts, employee_id, day, self.tz))

    # ---- manual form --------------------------------------------------------

    def create_on_days(
        self,
        employee_id: int,
        days: Iterable[date | str],
        start_time: str,
        end_time: str,
        *,
        title: str = "",
        location: str | None = None,
        notes: str | None = None,
        color: str = DEFAULT_SHIFT_COLOR,
    ) -> dict[str, Any]:
        """Create one shift per day; conflicting days are queued, not created."""
        self.require_employee(employee_id)
        color = validate_color(color)
        days = list(dict.fromkeys(ensure_date(d) for d in days))
        if not days:
            raise ShiftValidationError("Select at least one day")

        created: list[Shift] = []
        queued: list[ConflictCase] = []
        for day in days:
            start, end = resolve_shift_window(day, start_time, end_time, self.tz)
            candidate = PlannedShift(
                employee_id=employee_id,
                start_at=start,
                end_at=end,
                title=title,
                location=location,
                notes=notes,
                color=color,
                is_new=True,
            )
            hits = find_overlapping_shifts(self.shifts + created, employee_id, start, end, tz=self.tz)
            if hits:
                queued.append(self._case(candidate, hits))
                continue
            created.append(self.backend.create_shift(candidate))
        self.conflicts.extend(queued)
        if created:
            self.refresh()
        return {"created": created, "queued": len(queued)}

    def update_shift(
        self,
        shift_id: int,
        *,
        day: date | str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        extra_days: Iterable[date | str] = (),
        **fields: Any,
    ) -> dict[str, Any]:
        """Edit a shift; ``extra_days`` get copies of the edited shift.

        Every target day is checked before anything is written; any overlap
        raises ShiftConflictError.
        """
        current = self.get_shift(shift_id)
        primary = ensure_date(day) if day is not None else ensure_date(local_date_key(current.start_at, self.tz))
        start_time = start_time or hhmm_of(current.start_at, self.tz)
        end_time = end_time or hhmm_of(current.end_at, self.tz)
        if "color" in fields and fields["color"] is not None:
            validate_color(fields["color"])
        fields = {k: v for k, v in fields.items() if v is not None}

        targets = [primary] + [ensure_date(d) for d in extra_days if ensure_date(d) != primary]
        windows = [resolve_shift_window(d, start_time, end_time, self.tz) for d in targets]
        for target, (start, end) in zip(targets, windows):
            hits = find_overlapping_shifts(
                self.shifts, current.employee_id, start, end, exclude_shift_id=shift_id, tz=self.tz
            )
            if hits:
                raise ShiftConflictError(
                    f"Shift overlaps {len(hits)} existing shift(s) on {target.isoformat()}",
                    conflicting_ids=[s.id for s in hits],
                )

        start, end = windows[0]
        updated = self.backend.update_shift(shift_id, {"start_at": start, "end_at": end, **fields})
        copies: list[Shift] = []
        for start, end in windows[1:]:
            planned = PlannedShift.from_shift(updated, start, end, is_new=True)
            copies.append(self.backend.create_shift(planned))
        self.refresh()
        return {"updated": updated, "created": copies}

    # ---- drag and drop ------------------------------------------------------

    def duplicate_shift(self, shift_id: int, target_employee_id: int, target_date: date | str) -> dict[str, Any]:
        """Drop a copy of ``shift_id`` onto another cell.

        No conflict: staged optimistically (see ``flush``). Conflict: queued.
        """
        self.require_employee(target_employee_id)
        source = self.get_shift(shift_id)
        start, end = anchor_to_date(source.start_at, source.end_at, target_date, self.tz)
        candidate = PlannedShift.from_shift(source, start, end, employee_id=target_employee_id, is_new=True)
        return self._stage_or_queue(candidate)

    def stamp_template(self, template_id: str, employee_id: int, day: date | str) -> dict[str, Any]:
        self.require_employee(employee_id)
        candidate = instantiate(self.templates.get(template_id), employee_id, day, self.tz)
        return self._stage_or_queue(candidate)

    def _stage_or_queue(self, candidate: PlannedShift) -> dict[str, Any]:
        hits = find_overlapping_shifts(self.shifts, candidate.employee_id, candidate.start_at, candidate.end_at, tz=self.tz)
        if hits:
            self.conflicts.enqueue(self._case(candidate, hits))
            return {"queued": True, "conflicting_ids": [s.id for s in hits]}
        return {"queued": False, "placeholder_id": self.ledger.stage(candidate)}

    def flush(self) -> list[SettleOutcome]:
        """Persist every optimistically staged shift."""
        return self.ledger.drain(self.backend.create_shift)

    def save_template_from(self, shift_id: int) -> ShiftTemplate:
        return self.templates.add_from_shift(self.get_shift(shift_id), self.tz)

    # ---- conflict resolution ------------------------------------------------

    def preview_adaptation(self, policy: str = "adapt", case: ConflictCase | None = None) -> AdaptationPlan:
        """Plan ``case`` (default: the queue head) against the shifts as they are now.

        Earlier resolutions on the same day may have changed what the candidate
        overlaps, so the conflicts are looked up again rather than taken from
        the queued case.
        """
        case = case or self.conflicts.current
        if case is None:
            raise ShiftValidationError("No pending conflict")
        if policy not in POLICIES:
            raise ShiftValidationError(f"Unknown policy {policy!r}; expected one of {POLICIES}")
        candidate = case.candidate
        existing = find_overlapping_shifts(
            self.shifts, case.target_employee_id, candidate.start_at, candidate.end_at, tz=self.tz
        )
        planner = plan_adaptation if policy == "adapt" else plan_override
        return planner(
            candidate,
            existing,
            case.target_date,
            target_employee_id=case.target_employee_id,
            tz=self.tz,
        )

    def resolve_current(self, policy: str = "adapt") -> dict[str, Any]:
        case = self.conflicts.current
        plan = self.preview_adaptation(policy, case)
        outcome = self.apply_plan(plan, policy=policy, case=case)
        nxt = self.conflicts.resolve()
        outcome["remaining"] = len(self.conflicts)
        outcome["next_date"] = nxt.target_date.isoformat() if nxt else None
        return outcome

    def skip_current(self) -> ConflictCase | None:
        return self.conflicts.skip()

    def apply_plan(self, plan: AdaptationPlan, *, policy: str = "adapt", case: ConflictCase | None = None) -> dict[str, Any]:
        """Apply deletes, then updates, then creates. A missing shift on delete counts as gone.

        Staged optimistic shifts (negative ids) are changed in the ledger, not
        on the backend.
        """
        deleted: list[int] = []
        updated: list[Shift] = []
        created: list[Shift] = []
        for kind, payload in plan.operations():
            if kind == "delete" and payload < 0:
                self.ledger.discard(payload)
                deleted.append(payload)
            elif kind == "delete":
                try:
                    self.backend.delete_shift(payload)
                except ShiftNotFoundError:
                    logger.info("Shift %s already gone, continuing", payload)
                deleted.append(payload)
            elif kind == "update" and payload.id < 0:
                updated.append(self.ledger.amend(payload.id, payload.start_at, payload.end_at))
            elif kind == "update":
                updated.append(self.backend.update_shift(payload.id, {"start_at": payload.start_at, "end_at": payload.end_at}))
            else:
                created.append(self.backend.create_shift(payload))
        self.refresh()

        plan_id = None
        if self.artifact_root is not None:
            plan_id = f"plan-{uuid4().hex[:12]}"
            save_plan(
                self.artifact_root,
                {
                    "plan_id": plan_id,
                    "generated_at": now_utc_iso(),
                    "policy": policy,
                    "employee_id": case.target_employee_id if case else None,
                    "target_date": case.target_date.isoformat() if case else None,
                    "operations": plan.to_dict(),
                },
            )
        return {"deleted": deleted, "updated": updated, "created": created, "plan_id": plan_id}

    # ---- deletes ------------------------------------------------------------

    def delete_shift(self, shift_id: int) -> None:
        self.backend.delete_shift(shift_id)
        self.refresh()

    def delete_range(self, employee_id: int, start_date: date | str, end_date: date | str) -> dict[str, Any]:
        targets = shifts_in_range(self.shifts, employee_id, start_date, end_date, self.tz)
        return self._delete_all(targets)

    def delete_week(self, employee_id: int, day: date | str) -> dict[str, Any]:
        return self._delete_all(shifts_in_week(self.shifts, employee_id, day, self.tz))

    def _delete_all(self, targets: list[Shift]) -> dict[str, Any]:
        results = _settle(
            targets,
            lambda s: self.backend.delete_shift(s.id),
            lambda s: {"id": s.id, "date": local_date_key(s.start_at, self.tz), "title": s.title},
        )
        self.refresh()
        return _summary(results, key="deleted")

    # ---- bulk ---------------------------------------------------------------

    def duplicate_week(self, employee_id: int, week_of: date | str) -> dict[str, Any]:
        plan = plan_duplicate_week(self.shifts, employee_id, week_of, self.tz)
        return self.apply_plan(plan, policy="duplicate-week")

    def generate_range(self, params: RangeScheduleParams) -> dict[str, Any]:
        self.require_employee(params.employee_id)
        return self._persist_generated(generate_range_shifts(params, self.shifts, self.tz))

    def generate_rotation(self, params: RotationParams) -> dict[str, Any]:
        self.require_employee(params.employee_id)
        return self._persist_generated(generate_rotating_shifts(params, self.shifts, self.tz))

    def _persist_generated(self, result: GenerationResult) -> dict[str, Any]:
        results = _settle(
            result.shifts,
            self.backend.create_shift,
            lambda p: {"date": local_date_key(p.start_at, self.tz)},
        )
        for skipped in result.skipped:
            results.append({**skipped, "success": False, "skipped": True})
        self.refresh()
        created = [r for r in results if not r.get("skipped")]
        summary = _summary(created, key="created", skipped=len(result.skipped))
        summary["results"] = results
        return summary

    def swap_shifts(self, from_employee_id: int, to_employee_id: int, start_date: date | str, end_date: date | str) -> dict[str, Any]:
        self.require_employee(from_employee_id)
        self.require_employee(to_employee_id)
        plan = plan_swap(self.shifts, from_employee_id, to_employee_id, start_date, end_date, self.tz)
        results = _settle(
            plan.moves,
            lambda s: self.backend.update_shift(s.id, {"employee_id": to_employee_id}),
            lambda s: {"id": s.id, "date": local_date_key(s.start_at, self.tz), "title": s.title},
        )
        self.refresh()
        summary = _summary(results, key="moved", skipped=len(plan.conflicts))
        summary["conflicts"] = [
            {"date": c.target_date.isoformat(), "title": c.candidate.title, "conflicting_ids": c.conflicting_ids}
            for c in plan.conflicts
        ]
        return summary

    def copy_shifts(
        self,
        from_employee_id: int,
        to_employee_id: int,
        start_date: date | str,
        end_date: date | str,
        *,
        check_conflicts: bool = False,
    ) -> dict[str, Any]:
        self.require_employee(from_employee_id)
        self.require_employee(to_employee_id)
        plan = plan_copy(
            self.shifts, from_employee_id, to_employee_id, start_date, end_date,
            check_conflicts=check_conflicts, tz=self.tz,
        )
        results = _settle(
            plan.creates,
            self.backend.create_shift,
            lambda p: {"date": local_date_key(p.start_at, self.tz), "title": p.title},
        )
        self.refresh()
        summary = _summary(results, key="created", skipped=len(plan.conflicts))
        summary["conflicts"] = [
            {"date": c.target_date.isoformat(), "title": c.candidate.title, "conflicting_ids": c.conflicting_ids}
            for c in plan.conflicts
        ]
        return summary

    # ---- assistant helpers --------------------------------------------------

    def find_shift(self, employee_id: int, day: date | str, title: str | None = None) -> Shift:
        self.require_employee(employee_id)
        return find_target_shift(self.shifts, employee_id, day, title, self.tz)

    def update_by_day(
        self,
        employee_id: int,
        day: date | str,
        *,
        title: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        new_title: str | None = None,
        location: str | None = None,
        notes: str | None = None,
        color: str | None = None,
    ) -> Shift:
        target = self.find_shift(employee_id, day, title)
        result = self.update_shift(
            target.id,
            day=day,
            start_time=start_time,
            end_time=end_time,
            title=new_title,
            location=location,
            notes=notes,
            color=color,
        )
        return result["updated"]

    def delete_by_day(self, employee_id: int, day: date | str, title: str | None = None) -> Shift:
        target = self.find_shift(employee_id, day, title)
        self.delete_shift(target.id)
        return target
