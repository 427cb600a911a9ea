"""Time utilities."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def epoch_now() -> int:
    """Return current time as whole seconds since the epoch."""
    return int(time.time())


def to_epoch(value: int | float | datetime) -> int:
    """Convert an epoch number or a datetime to whole epoch seconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(value)
