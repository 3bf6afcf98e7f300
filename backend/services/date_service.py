"""
date_service.py — Calendar-day helpers for streak tracking
All comparisons are by UTC calendar date ("YYYY-MM-DD"), never by elapsed
time: 23:59 and 00:01 the next day are consecutive days.
"""

import math
from datetime import datetime, timezone, timedelta, date

DAY_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Naive datetimes (e.g. read back from SQLite) are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_timestamp(value) -> datetime | None:
    """Accept a datetime, an ISO 8601 string (with or without 'Z') or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def isoformat(ts: datetime | None) -> str | None:
    """ISO 8601 with a 'Z' suffix, millisecond precision."""
    if ts is None:
        return None
    return ensure_utc(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def calendar_day(ts) -> str | None:
    """UTC calendar date of a timestamp, or None."""
    parsed = parse_timestamp(ts)
    if parsed is None:
        return None
    return parsed.strftime(DAY_FORMAT)


def today(now: datetime | None = None) -> str:
    return calendar_day(now or utc_now())


def yesterday(day: str) -> str:
    """The calendar day before a 'YYYY-MM-DD' string."""
    d = datetime.strptime(day, DAY_FORMAT).date()
    return (d - timedelta(days=1)).strftime(DAY_FORMAT)


def is_today(ts, now: datetime | None = None) -> bool:
    if not ts:
        return False
    return calendar_day(ts) == today(now)


def is_yesterday(ts, now: datetime | None = None) -> bool:
    if not ts:
        return False
    return calendar_day(ts) == yesterday(today(now))


def _as_datetime(value) -> datetime:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return parse_timestamp(value)


def days_between(a, b) -> int:
    """Absolute difference in days, rounded up to the next whole day."""
    delta = abs(_as_datetime(b) - _as_datetime(a))
    return math.ceil(delta.total_seconds() / 86400)


def has_new_day_started(last_check, now: datetime | None = None) -> bool:
    """True when the calendar day has changed since last_check (or never checked)."""
    if not last_check:
        return True
    last_day = last_check if isinstance(last_check, str) and len(last_check) == 10 else calendar_day(last_check)
    return today(now) > last_day
