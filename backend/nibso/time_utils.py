from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.utcnow()


def localnow() -> datetime:
    """Wall-clock 'now' on the terminal; business dates follow local time."""
    return datetime.now()


def today_iso(today: Optional[date] = None) -> str:
    """Local calendar date as YYYY-MM-DD."""
    return (today or date.today()).isoformat()


def epoch_ms() -> int:
    return int(time.time() * 1000)


def parse_iso_date(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string (or pass through a date).

    - None / "" -> None
    - datetime -> its date part
    - anything unparseable raises ValueError
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


def end_of_day(d: date) -> datetime:
    """Last representable instant of a calendar day."""
    return datetime(d.year, d.month, d.day, 23, 59, 59, 999999)


def start_of_day(d: date) -> datetime:
    return datetime(d.year, d.month, d.day)


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
