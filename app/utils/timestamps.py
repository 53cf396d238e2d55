"""Timestamp utilities for UTC handling and store serialization.

The store keeps timestamps as fixed-width ISO-8601 UTC strings
(``YYYY-MM-DDTHH:MM:SS.ffffffZ``) so that string comparison in SQL matches
chronological order. Everything in memory is a timezone-aware datetime.
"""

from datetime import datetime, timezone
from typing import Optional

STORE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_store_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage.

    Args:
        dt: Datetime to serialize (naive values are treated as UTC)

    Returns:
        Fixed-width ISO-8601 UTC string, or None
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORE_FORMAT)


def from_store_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp string back to an aware UTC datetime.

    Only the fixed-width store format is accepted; any other shape would
    break the string ordering that due-notification queries rely on.

    Raises:
        ValueError: If ``value`` is not in the store format
    """
    if not value:
        return None

    return datetime.strptime(value, STORE_FORMAT).replace(tzinfo=timezone.utc)


def format_timestamp_for_log(dt: Optional[datetime]) -> str:
    """Format a datetime for structured logging (second precision, ``Z`` suffix)."""
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")
