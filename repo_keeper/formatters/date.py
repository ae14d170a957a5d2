"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Any, Optional


def format_date(date: Any) -> str:
    """
    Format a date object to YYYY-MM-DD string.

    Args:
        date: Date object (datetime or string), or None

    Returns:
        Formatted date string, "-" when unknown
    """
    if date is None:
        return "-"
    if hasattr(date, "strftime"):
        return date.strftime("%Y-%m-%d")
    return str(date)


def age_in_days(date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Calendar days between ``date`` and ``now``."""
    if date is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now.date() - date.astimezone(now.tzinfo).date()).days


def format_age(age_days: Optional[int]) -> str:
    """
    Format age in days.

    Args:
        age_days: Number of days

    Returns:
        Formatted age string
    """
    if age_days is None:
        return "-"
    return f"{age_days}d"
