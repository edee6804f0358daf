"""Shared time utilities: wall-clock HH:MM arithmetic and overnight resolution."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from .errors import ShiftValidationError

DEFAULT_TZ = ZoneInfo("Europe/Madrid")

MINUTES_PER_DAY = 24 * 60


def parse_hhmm_to_minutes(value: str | None) -> int | None:
    """Parse HH:MM into minutes after midnight."""
    if not value or ":" not in str(value):
        return None
    try:
        hh, mm = str(value).split(":", 1)
        h = int(hh)
        m = int(mm)
    except (TypeError, ValueError):
        return None
    if h < 0 or h > 23 or m < 0 or m > 59:
        return None
    return h * 60 + m


def _require_minutes(value: str) -> int:
    minutes = parse_hhmm_to_minutes(value)
    if minutes is None:
        raise ShiftValidationError(f"Invalid time of day: {value!r} (expected HH:MM)")
    return minutes


def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ensure_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def localize(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> datetime:
    """Express an instant in the company zone. Naive values are taken as local."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def to_instant(day: date | str, hhmm: str, tz: tzinfo = DEFAULT_TZ) -> datetime:
    """Absolute instant for a wall-clock time on a calendar day, in local civil time."""
    minutes = _require_minutes(hhmm)
    d = ensure_date(day)
    return datetime.combine(d, time(minutes // 60, minutes % 60), tzinfo=tz)


def resolve_overnight_end(start_instant: datetime, end_time: str, tz: tzinfo = DEFAULT_TZ) -> datetime:
    """Return the end instant for a shift starting at ``start_instant``.

    When the end time of day is at or before the start time of day the shift
    runs into the next calendar day. Identical times give a 24h shift.
    """
    start_local = localize(start_instant, tz)
    end_minutes = _require_minutes(end_time)
    start_minutes = start_local.hour * 60 + start_local.minute
    end_day = start_local.date()
    if end_minutes <= start_minutes:
        end_day += timedelta(days=1)
    return datetime.combine(end_day, time(end_minutes // 60, end_minutes % 60), tzinfo=tz)


def resolve_shift_window(
    day: date | str,
    start_time: str,
    end_time: str,
    tz: tzinfo = DEFAULT_TZ,
) -> tuple[datetime, datetime]:
    start = to_instant(day, start_time, tz)
    return start, resolve_overnight_end(start, end_time, tz)


def anchor_to_date(
    start_at: datetime,
    end_at: datetime,
    day: date | str,
    tz: tzinfo = DEFAULT_TZ,
) -> tuple[datetime, datetime]:
    """Move a shift's wall-clock start/end onto another calendar day."""
    return resolve_shift_window(day, hhmm_of(start_at, tz), hhmm_of(end_at, tz), tz)


def hhmm_of(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> str:
    return localize(instant, tz).strftime("%H:%M")


def local_date_key(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> str:
    return localize(instant, tz).strftime("%Y-%m-%d")


def minutes_since_midnight(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> int:
    local = localize(instant, tz)
    return local.hour * 60 + local.minute


def is_overnight(start_at: datetime, end_at: datetime, tz: tzinfo = DEFAULT_TZ) -> bool:
    """True when the local calendar dates of start and end differ."""
    return local_date_key(start_at, tz) != local_date_key(end_at, tz)


def duration_minutes(start_at: datetime, end_at: datetime) -> float:
    """Elapsed minutes; aware instants are compared in UTC so DST changes count."""
    if start_at.tzinfo is not None and end_at.tzinfo is not None:
        start_at = start_at.astimezone(timezone.utc)
        end_at = end_at.astimezone(timezone.utc)
    return (end_at - start_at).total_seconds() / 60.0


def calc_shift_hours(start: str | None, end: str | None) -> float:
    """Calculate duration for an HH:MM pair in decimal hours (equal times = 24h)."""
    s = parse_hhmm_to_minutes(start)
    e = parse_hhmm_to_minutes(end)
    if s is None or e is None:
        return 0.0
    diff = e - s
    if diff <= 0:
        diff += MINUTES_PER_DAY
    return diff / 60.0


def iter_days(start: date | str, end: date | str):
    """Yield every calendar day in the inclusive range."""
    current = ensure_date(start)
    last = ensure_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def week_start(day: date | str) -> date:
    """Monday of the week containing ``day``."""
    d = ensure_date(day)
    return d - timedelta(days=d.weekday())
