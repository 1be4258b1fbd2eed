"""
Time-related utilities for the application.

All timestamps are generated in UTC and serialized using
ISO-8601 format with timezone information to ensure
correct lexicographic ordering in DynamoDB.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return current UTC time in ISO-8601 format.

    Example:
        2024-01-15T10:42:31.123456+00:00

    This format is safe for:
    - DynamoDB range key comparisons
    - Sorting
    - JSON serialization
    """
    return utc_now().isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted and naive values are assumed to be UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def epoch_millis(moment: datetime | None = None) -> int:
    """Return milliseconds since the Unix epoch for `moment` (default: now)."""
    return int((moment or utc_now()).timestamp() * 1000)
