"""Timestamp utilities for Roster Sync.

Snapshots carry their modification time as an ISO-8601 UTC string with
millisecond precision and a trailing "Z", the format browsers produce with
Date.toISOString().
"""

from datetime import datetime, timezone
from typing import Optional


def current_timestamp() -> str:
    """Get current time as an ISO-8601 UTC string.

    Returns:
        Timestamp like "2024-05-01T12:30:45.123Z"
    """
    return datetime_to_iso(datetime.now(timezone.utc))


def datetime_to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to the wire timestamp format.

    Naive datetimes are assumed to be UTC.

    Args:
        dt: datetime object or None

    Returns:
        ISO-8601 string ending in "Z", or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a wire timestamp back into an aware datetime.

    Returns None for None or unparseable input.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def format_timestamp(value: Optional[str]) -> str:
    """Format a wire timestamp in the local timezone for display.

    Args:
        value: ISO-8601 timestamp or None

    Returns:
        "YYYY-MM-DD HH:MM:SS" in local time, or "never" if unset
    """
    dt = parse_timestamp(value)
    if dt is None:
        return "never"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")
