"""
Timestamp utilities for consistent time handling across the system.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def to_datetime(timestamp: Optional[float] = None) -> datetime:
    """Convert timestamp to a timezone-aware UTC datetime.

    Args:
        timestamp: Unix timestamp in seconds (optional, uses current time if None)

    Returns:
        datetime object
    """
    if timestamp is None:
        timestamp = time.time()
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def to_iso(timestamp: Optional[float] = None) -> str:
    """Render a timestamp the way documents store it (ISO-8601, UTC)."""
    return to_datetime(timestamp).isoformat()
