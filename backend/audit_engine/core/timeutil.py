import time
from datetime import datetime, timezone
from typing import Optional

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    return int(time.time() * 1000)


def format_relative_time(timestamp: int, now: Optional[int] = None) -> str:
    """Short "how long ago" label for a history entry, e.g. ``3h ago``."""
    diff = (now_ms() if now is None else now) - timestamp
    minutes = diff // MINUTE_MS
    hours = diff // HOUR_MS
    days = diff // DAY_MS

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).date().isoformat()
