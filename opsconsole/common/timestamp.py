"""
Timestamp Utilities

Remote stores report modification times in several shapes: ISO strings
(PostgREST), native datetimes, epoch numbers, or SDK timestamp objects that
expose to_datetime(). Everything is coerced to an aware UTC datetime.
"""

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(ts: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def parse_timestamp(value: Any) -> datetime | None:
    """
    Coerce a remote timestamp into an aware datetime.

    Args:
        value: datetime, ISO string (e.g., "2024-01-15T10:30:17.234Z"),
            epoch seconds, or an object with to_datetime()

    Returns:
        Aware datetime, or None if the value is absent or unparseable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None

    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        converted = to_datetime()
        if isinstance(converted, datetime):
            return ensure_aware(converted)

    return None
