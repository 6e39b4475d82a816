# Overview: UTC helpers shared by models, services and routes.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as a UTC-naive datetime; the only form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Union[str, date, None]) -> Optional[datetime]:
    """
    Normalize a client-supplied timestamp to UTC-naive.

    Accepts "2026-03-01", "2026-03-01T10:30", "...Z" and "...+01:00".
    Values without an offset are taken as UTC. Raises ValueError on
    anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = value.strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing Z, second precision; naive input is UTC."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
