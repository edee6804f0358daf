"""cuadrante MCP server.

Exposes the roster command registry (assign, update, delete, swap, copy,
duplicate week, list) plus conflict checks, adaptation previews and day lane
layout as MCP tools.
"""
from __future__ import annotations

import argparse
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from shift_engine.adaptation import plan_adaptation as _plan_adaptation
from shift_engine.adaptation import plan_override as _plan_override
from shift_engine.conflicts import find_overlapping_shifts
from shift_engine.io.schemas import to_int
from shift_engine.models import ASSISTANT_DEFAULT_COLOR, PlannedShift
from shift_engine.time_utils import resolve_shift_window

from .api_client import ShiftApiClient
from .commands import describe, execute
from .config import get_company_config, load_env, runtime_config
from .logging_config import configure_logging
from .service import ScheduleSession
from .storage import JsonShiftStore
from .storage import list_plans as _list_plans
from .storage import load_plan as _load_plan

mcp = FastMCP(
    "cuadrante",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Shift roster tools. Detects overlapping shifts per employee and day, "
        "adapts existing shifts around a new one (split, truncate or delete), "
        "and runs bulk range/rotation assignments. Dates are YYYY-MM-DD, "
        "times HH:MM in the company time zone."
    ),
)

_ENV_FILE: str | None = None
_SESSION: ScheduleSession | None = None


def _session() -> ScheduleSession:
    global _SESSION
    if _SESSION is None:
        load_env(_ENV_FILE or os.getenv("CUADRANTE_ENV_FILE"))
        cfg = runtime_config()
        configure_logging(cfg.log_level)
        company_id: int | None = None
        if cfg.store_file is not None:
            backend = JsonShiftStore(cfg.store_file, tz=cfg.timezone)
        else:
            if not cfg.default_company:
                raise ValueError("Set CUADRANTE_DEFAULT_COMPANY or CUADRANTE_STORE_FILE")
            company = get_company_config(cfg.default_company)
            company_id = to_int(company.company_id)
            backend = ShiftApiClient(base_url=cfg.base_url, company=company, tz=cfg.timezone)
        _SESSION = ScheduleSession(
            backend,
            company_id=company_id,
            tz=cfg.timezone,
            artifact_root=cfg.artifact_root,
        )
    return _SESSION


def _run(name: str, params: dict[str, Any]) -> dict[str, Any]:
    return execute(name, {k: v for k, v in params.items() if v is not None}, _session())


# -- Registry --

@mcp.tool()
def list_commands() -> list[dict[str, Any]]:
    """List the roster commands with their parameters."""
    return describe()


@mcp.tool()
def assign_schedule(
    employee_id: int,
    title: str,
    start_date: str,
    end_date: str,
    location: str | None = None,
    notes: str | None = None,
    color: str | None = None,
    on_conflict: str = "error",
) -> dict[str, Any]:
    """Assign one shift (ISO start/end). on_conflict: error, adapt or override."""
    return _run("assign_schedule", locals())


@mcp.tool()
def assign_schedule_in_range(
    employee_id: int,
    title: str,
    start_date: str,
    end_date: str,
    start_time: str,
    end_time: str,
    skip_weekends: bool = False,
    location: str | None = None,
    notes: str | None = None,
    color: str | None = None,
) -> dict[str, Any]:
    """Assign the same shift on every day of a range; conflicting days are skipped."""
    return _run("assign_schedule_in_range", locals())


@mcp.tool()
def assign_rotating_schedule(
    employee_id: int,
    title: str,
    work_days: int,
    rest_days: int,
    start_date: str,
    end_date: str,
    start_time: str,
    end_time: str,
    location: str | None = None,
    notes: str | None = None,
    color: str | None = None,
) -> dict[str, Any]:
    """Assign a work/rest rotation; start_date is the first work day."""
    return _run("assign_rotating_schedule", locals())


@mcp.tool()
def update_employee_shift(
    employee_id: int,
    date: str,
    title: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    new_title: str | None = None,
    location: str | None = None,
    notes: str | None = None,
    color: str | None = None,
) -> dict[str, Any]:
    """Update the employee's shift on a date (title disambiguates)."""
    return _run("update_employee_shift", locals())


@mcp.tool()
def delete_employee_shift(employee_id: int, date: str, title: str | None = None) -> dict[str, Any]:
    """Delete the employee's shift on a date (title disambiguates)."""
    return _run("delete_employee_shift", locals())


@mcp.tool()
def delete_employee_shifts_in_range(employee_id: int, start_date: str, end_date: str) -> dict[str, Any]:
    """Delete every shift of the employee in a date range."""
    return _run("delete_employee_shifts_in_range", locals())


@mcp.tool()
def swap_employee_shifts(from_employee_id: int, to_employee_id: int, start_date: str, end_date: str) -> dict[str, Any]:
    """Move shifts to another employee; shifts that would overlap are reported, not moved."""
    return _run("swap_employee_shifts", locals())


@mcp.tool()
def copy_employee_shifts(
    from_employee_id: int,
    to_employee_id: int,
    start_date: str,
    end_date: str,
    check_conflicts: bool = False,
) -> dict[str, Any]:
    """Copy shifts onto another employee, recoloured with their palette colour."""
    return _run("copy_employee_shifts", locals())


@mcp.tool()
def duplicate_week(employee_id: int, week_of: str) -> dict[str, Any]:
    """Copy the week containing week_of onto the following week."""
    return _run("duplicate_week", locals())


@mcp.tool()
def list_employee_shifts(employee_id: int, start_date: str, end_date: str) -> dict[str, Any]:
    """List the employee's shifts in a date range."""
    return _run("list_employee_shifts", locals())


# -- Engine --

@mcp.tool()
def check_conflict(
    employee_id: int,
    date: str,
    start_time: str,
    end_time: str,
    exclude_shift_id: int | None = None,
) -> dict[str, Any]:
    """Report the existing shifts a HH:MM window on a date would overlap."""
    session = _session()
    start, end = resolve_shift_window(date, start_time, end_time, session.tz)
    hits = find_overlapping_shifts(
        session.shifts, employee_id, start, end, exclude_shift_id=exclude_shift_id, tz=session.tz
    )
    return {
        "conflict": bool(hits),
        "conflicting": [{"id": s.id, "title": s.title, "start_at": s.start_at.isoformat(), "end_at": s.end_at.isoformat()} for s in hits],
    }


@mcp.tool()
def plan_adaptation(
    employee_id: int,
    date: str,
    start_time: str,
    end_time: str,
    title: str = "",
    policy: str = "adapt",
) -> dict[str, Any]:
    """Preview the create/update/delete plan for placing a shift. Nothing is written."""
    if policy not in ("adapt", "override"):
        raise ValueError("policy must be 'adapt' or 'override'")
    session = _session()
    start, end = resolve_shift_window(date, start_time, end_time, session.tz)
    winner = PlannedShift(
        employee_id=employee_id, start_at=start, end_at=end, title=title, color=ASSISTANT_DEFAULT_COLOR, is_new=True
    )
    hits = find_overlapping_shifts(session.shifts, employee_id, start, end, tz=session.tz)
    planner = _plan_adaptation if policy == "adapt" else _plan_override
    plan = planner(winner, hits, date, target_employee_id=employee_id, tz=session.tz)
    return {"conflicting_ids": [s.id for s in hits], "plan": plan.to_dict()}


@mcp.tool()
def assign_lanes(employee_id: int, date: str) -> list[dict[str, Any]]:
    """Side-by-side layout of the employee's shifts on a date."""
    return [
        {"id": a.shift.id, "title": a.shift.title, "lane": a.lane, "total_lanes": a.total_lanes}
        for a in _session().day_lanes(employee_id, date)
    ]


# -- Plan artifacts --

@mcp.tool()
def list_plans(limit: int = 20) -> list[dict[str, Any]]:
    """List applied plan manifests, newest first."""
    return _list_plans(runtime_config().artifact_root, limit=limit)


@mcp.tool()
def load_plan(plan_id: str | None = None) -> dict[str, Any]:
    """Load an applied plan by ID (or latest if omitted)."""
    return _load_plan(runtime_config().artifact_root, plan_id=plan_id)


# -- Server entrypoints --

async def _run_http() -> None:
    import uvicorn
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse, PlainTextResponse
    from starlette.routing import Route

    api_key = os.getenv("MCP_API_KEY")

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != api_key:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    starlette_app = mcp.streamable_http_app()

    if api_key:
        starlette_app.add_middleware(BearerAuth)

    starlette_app.routes.append(
        Route("/health", lambda r: PlainTextResponse("ok"))
    )

    config = uvicorn.Config(
        starlette_app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level="info",
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run the cuadrante MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    args = parser.parse_args()
    _ENV_FILE = args.env_file

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if os.getenv("PORT") else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
