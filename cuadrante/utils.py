from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo

from shift_engine.time_utils import DEFAULT_TZ

UTC = timezone.utc


def to_iso_datetime(d: date, *, end_of_day: bool = False, tz: tzinfo = DEFAULT_TZ) -> str:
    t = time(23, 59, 59) if end_of_day else time(0, 0, 0)
    dt = datetime.combine(d, t, tzinfo=tz)
    return dt.isoformat()


def now_utc_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
