"""
DateTime utilities for feed timestamps.

This module provides timezone-aware datetime handling for post and comment
timestamps, including normalization of naive values returned by drivers that
do not keep timezone information (SQLite).
"""

from datetime import datetime, timezone
from typing import Optional


def get_current_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive values are assumed to already be in UTC, which is how the store
    writes them.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
