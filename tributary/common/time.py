"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_vendor_datetime(value: str) -> dt.datetime:
    """Parse a vendor ISO-8601 timestamp into an aware UTC datetime.

    Vendors emit either ``Z`` suffixes (GitHub) or explicit offsets such as
    ``+08:00`` (Gitee). Naive values are rejected because event ordering is
    compared across platforms.
    """
    text = value.strip().replace("Z", "+00:00")
    parsed = dt.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        msg = f"vendor datetime missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def maybe_vendor_datetime(value: object) -> dt.datetime | None:
    """Parse optional vendor timestamps, returning ``None`` for empty values."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        msg = f"vendor datetime must be a string, got {type(value).__name__}"
        raise TypeError(msg)
    return parse_vendor_datetime(value)


def isoformat_utc(value: dt.datetime) -> str:
    """Render an aware datetime as an ISO-8601 UTC string."""
    return value.astimezone(dt.UTC).isoformat()
