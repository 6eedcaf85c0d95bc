"""
utils/time_utils.py

Purpose: Time and freshness helpers

- ISO timestamps in the format Airtable stores
- Parsing Airtable date/datetime strings
- Age calculations for synthesis and plan freshness
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Returns the current time as an aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def iso_timestamp(dt: Optional[datetime] = None) -> str:
    """
    Formats a datetime as ISO-8601 with millisecond precision and a Z suffix.
    """
    dt = dt or utc_now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parses an Airtable date or datetime string into an aware UTC datetime.

    Returns None for empty or unparseable values.
    """
    if not value:
        return None

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    """
    Fractional days elapsed since the given moment, or None if unknown.
    """
    if value is None:
        return None
    now = now or utc_now()
    return (now - value).total_seconds() / 86400


def cutoff_iso(hours: float = 0, days: float = 0, now: Optional[datetime] = None) -> str:
    """
    ISO timestamp for a moment in the past, used in filter formulas.
    """
    now = now or utc_now()
    return iso_timestamp(now - timedelta(hours=hours, days=days))


def format_date(dt: Optional[datetime], format_str: str = "%m/%d/%Y") -> str:
    """
    Formats a datetime object to a short date string.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
