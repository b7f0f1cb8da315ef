from __future__ import annotations

import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


MS_PER_MINUTE = 60_000


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    """Wall-clock time as epoch milliseconds, the unit stored in hall documents."""
    return int(time.time() * 1000)


def ms_to_datetime(value: int, tz: str = "UTC") -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=ZoneInfo(tz))


def datetime_to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


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


def ms_to_utc_z(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return to_utc_z(datetime.fromtimestamp(value / 1000, tz=timezone.utc))


def parse_business_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD business date.

    - None / "" -> None
    - anything else must be an ISO calendar date
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def business_day_window(
    day: date,
    tz: str = "UTC",
    start_hour: int = 8,
) -> tuple[int, int]:
    """
    Epoch-ms window [start, end) of a hall business day.

    A business day runs from start_hour local time to start_hour the next
    day, so a game at 02:00 belongs to the previous calendar date.
    """
    zone = ZoneInfo(tz)
    nxt = day + timedelta(days=1)
    start = datetime(day.year, day.month, day.day, start_hour, tzinfo=zone)
    end = datetime(nxt.year, nxt.month, nxt.day, start_hour, tzinfo=zone)
    return datetime_to_ms(start), datetime_to_ms(end)


def business_date_for(value_ms: int, tz: str = "UTC", start_hour: int = 8) -> date:
    """Business date that an epoch-ms instant falls into."""
    local = ms_to_datetime(value_ms, tz)
    if local.hour < start_hour:
        return (local - timedelta(days=1)).date()
    return local.date()
