"""
Small shared helpers.
"""

from __future__ import annotations
import time


def now_ts() -> int:
    return int(time.time())


def fmt(n: int | float) -> str:
    """Format number with thousand separators."""
    try:
        return f"{int(n):,}"
    except (TypeError, ValueError):
        return "0"


def format_time_left(seconds: int) -> str:
    """Format seconds into a short countdown (``1h 5m``, ``4m 10s``, ``30s``)."""
    if seconds <= 0:
        return "0s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"
