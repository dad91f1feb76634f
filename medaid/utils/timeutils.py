"""Timezone helpers shared by models and services."""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to aware UTC.

    Some backends (SQLite) hand back naive datetimes even for
    ``DateTime(timezone=True)`` columns; those are stored as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def epoch_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(utcnow().timestamp() * 1000)
