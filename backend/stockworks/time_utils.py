from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime string and normalize to UTC-naive.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight of that day
    - naive datetimes are interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def coerce_datetime(value, *, default_now: bool = True) -> Optional[datetime]:
    """
    Normalize a business timestamp supplied by a caller.

    Accepts None (now, unless default_now is False), datetime, date or an
    ISO-8601 string. Raises ValueError on anything else.
    """
    if value is None:
        return utcnow() if default_now else None

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, date):
        return datetime.combine(value, time.min)

    if isinstance(value, str):
        dt = parse_iso_datetime(value)
        if dt is None:
            if default_now:
                return utcnow()
            return None
        return dt

    raise ValueError(f"invalid datetime: {value!r}")


def end_of_day(dt: datetime) -> datetime:
    """Last representable instant of dt's calendar day."""
    return datetime.combine(dt.date(), time.max)


def is_date_only(value) -> bool:
    if isinstance(value, date) and not isinstance(value, datetime):
        return True
    return isinstance(value, str) and len(value.strip()) == 10


def month_key(dt: date) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta calendar months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def resolve_range(start, end) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Inclusive [start, end] bounds for a date filter.

    A date-only end ("2024-05-31" or a date) covers that whole day.
    """
    start_dt = coerce_datetime(start, default_now=False)
    end_dt = coerce_datetime(end, default_now=False)
    if end_dt is not None and is_date_only(end):
        end_dt = end_of_day(end_dt)
    return start_dt, end_dt
