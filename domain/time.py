"""
Domain time utilities (pure).

Centralized timestamp validation and serialization helpers.

All domain timestamps are timezone-aware UTC. Rows coming back from the document
store are normalized here before they reach an entity, and entities are
serialized back to ISO-8601 strings with the same helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

Clock = Callable[[], datetime]


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_optional_utc_timestamp(name: str, value: datetime | None) -> None:
    if value is not None:
        require_utc_timestamp(name, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_utc(dt: datetime, *, name: str = "timestamp") -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def to_optional_iso_utc(dt: datetime | None, *, name: str = "timestamp") -> str | None:
    return to_iso_utc(dt, name=name) if dt is not None else None


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    Naive values are interpreted as UTC.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_utc_datetime(value: Any) -> datetime | None:
    return parse_utc_datetime(value) if value else None


def from_epoch_seconds(value: int | float) -> datetime:
    """Convert a payment-platform epoch timestamp (seconds) to UTC."""

    return datetime.fromtimestamp(value, tz=timezone.utc)
