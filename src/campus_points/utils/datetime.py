"""Date-time helpers for promotion and event windows."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current instant as a naive UTC timestamp, the storage convention."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalise an aware timestamp to naive UTC; naive values are assumed UTC already."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def window_contains(start: datetime, end: datetime, instant: datetime) -> bool:
    """True when ``instant`` falls inside the half-open window ``[start, end)``."""

    return as_naive_utc(start) <= as_naive_utc(instant) < as_naive_utc(end)
