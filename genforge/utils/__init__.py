"""
GenForge Utilities Module.

Provides shared utilities across all components:
- Timezone-aware datetime helpers
- Duration measurement
- Logging configuration (see genforge.utils.log_setup)

Copyright (c) 2025 GenForge
"""

import time
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """
    Get current UTC time as ISO format string.

    Returns:
        ISO formatted UTC timestamp
    """
    return utc_now().isoformat()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def duration_ms(start: datetime) -> int:
    """
    Calculate duration in milliseconds from start time to now.

    Args:
        start: Start datetime

    Returns:
        Duration in milliseconds
    """
    start = ensure_aware(start)
    return int((utc_now() - start).total_seconds() * 1000)


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds, for measuring elapsed time."""
    return time.monotonic() * 1000


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(value, high))


__all__ = [
    'utc_now',
    'utc_timestamp',
    'ensure_aware',
    'duration_ms',
    'monotonic_ms',
    'clamp',
]
