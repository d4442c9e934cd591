from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1)


def current_time() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch_ms(value: datetime) -> int:
    """Naive UTC datetime to milliseconds since the epoch."""
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, never negative."""
    return max(int((end - start) / timedelta(seconds=1)), 0)
