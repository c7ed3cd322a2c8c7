"""
Timestamp helpers

Database columns hold naive UTC datetimes; upstream login timestamps are
epoch milliseconds.
"""

import math
from datetime import datetime, timezone
from typing import Optional

MS_PER_DAY = 24 * 60 * 60 * 1000


def utc_now() -> datetime:
    """Current UTC time without tzinfo, matching the stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def timestamp_ms(dt: Optional[datetime] = None) -> int:
    """
    Unix timestamp in milliseconds

    Args:
        dt: Naive UTC datetime (defaults to now)

    Returns:
        Milliseconds since epoch
    """
    if dt is None:
        return int(datetime.now(timezone.utc).timestamp() * 1000)
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def days_since(epoch_ms: int, now_ms: Optional[int] = None) -> int:
    """Whole days elapsed since an epoch-millisecond timestamp."""
    if now_ms is None:
        now_ms = timestamp_ms()
    return math.floor((now_ms - epoch_ms) / MS_PER_DAY)
