"""
Datetime utility functions for statement timestamps

Timestamps are stored as ISO-8601 strings in UTC with millisecond precision
and a 'Z' suffix ('2025-01-31T09:15:02.123Z'). The fixed width means
lexicographic order equals chronological order, which is what
ORDER BY s.created_at relies on.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def to_iso(dt: datetime) -> str:
    """Format a datetime as a UTC ISO-8601 string with milliseconds"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    """Current wall time as an ISO-8601 string"""
    return to_iso(datetime.now(timezone.utc))


def parse_iso(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a datetime

    Handles:
    - None -> None
    - Already Python datetime -> return as-is
    - String ISO format (with or without 'Z') -> datetime
    - Unparseable string -> None, logged at debug (bad client input)
    - Anything else -> None with warning
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError as e:
            logger.debug(f"Failed to parse datetime string '{value}': {e}")
            return None

    logger.warning(f"Cannot convert {type(value)} to Python datetime: {value}")
    return None
