"""Date utilities for payload normalization."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def utc_today() -> date:
    """Get the current UTC date."""
    return datetime.now(timezone.utc).date()


def parse_datetime(value: Any) -> datetime | None:
    """Parse a backend timestamp into an aware UTC datetime.

    Accepts datetime/date objects, epoch milliseconds and ISO 8601 strings
    (a trailing "Z" is accepted). Naive values are taken as UTC.

    Returns:
        The parsed datetime, or None if the value is empty or unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(value: Any, default: date | None = None) -> str:
    """Format a backend timestamp as YYYY-MM-DD in UTC.

    Args:
        value: Timestamp in any form accepted by parse_datetime.
        default: Date used when value is missing or unparseable;
            today's UTC date if None.

    Returns:
        ISO calendar date string.
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return (default or utc_today()).isoformat()
    return parsed.date().isoformat()
