"""Datetime utilities for common operations."""

from datetime import datetime, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are read back from stores that drop the offset and are
    always written as UTC, so they are tagged rather than shifted.

    Args:
        dt: Datetime to normalize

    Returns:
        Aware UTC datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(dt: datetime) -> bool:
    """
    Check if datetime is at or before the current instant.

    Args:
        dt: Datetime to check

    Returns:
        True if reached
    """
    return ensure_utc(dt) <= now()


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ISO-8601 UTC, passing None through."""
    return ensure_utc(dt).isoformat() if dt else None

