"""Utility functions for tile-deck."""

import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], int]


def now_ms() -> int:
    """Current UTC time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def minutes_to_ms(minutes: float) -> int:
    return int(minutes * 60 * 1000)


def generate_id(prefix: str = "", clock: Clock = now_ms) -> str:
    """Generate a unique id from the current time and a random suffix.

    Example:
        >>> generate_id("log")
        "log-1736937000000-k3j9x0a1q"
    """
    random_part = secrets.token_hex(5)[:9]
    base = f"{clock()}-{random_part}"
    return f"{prefix}-{base}" if prefix else base


def format_time_ago(timestamp_ms: Optional[int], now: Optional[int] = None) -> str:
    """Convert an epoch-millisecond timestamp to a relative time string.

    Args:
        timestamp_ms: Epoch milliseconds, or None
        now: Reference time in epoch milliseconds (default: current time)

    Returns:
        Human-readable relative time (e.g., "5m ago", "2h ago", "3d ago"),
        or "never" when no timestamp is given
    """
    if timestamp_ms is None:
        return "never"

    now = now_ms() if now is None else now
    seconds = (now - timestamp_ms) / 1000

    if seconds < 0:
        return "just now"

    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24

    if seconds < 60:
        return f"{int(seconds)}s ago"
    elif minutes < 60:
        return f"{int(minutes)}m ago"
    elif hours < 24:
        return f"{int(hours)}h ago"
    elif days < 30:
        return f"{int(days)}d ago"
    else:
        months = days / 30
        return f"{int(months)}mo ago"


def format_timestamp(timestamp_ms: Optional[int]) -> str:
    """Format epoch milliseconds as a local ISO timestamp without microseconds."""
    if timestamp_ms is None:
        return "-"
    return datetime.fromtimestamp(timestamp_ms / 1000).isoformat(timespec="seconds")
