"""Time utilities."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value: datetime | None) -> str | None:
    """Render a datetime as an ISO string in UTC."""
    value = ensure_aware(value)
    return value.isoformat() if value is not None else None


def seconds_between(start: datetime | None, end: datetime | None) -> int | None:
    """Whole seconds from start to end, or None if either is missing."""
    start = ensure_aware(start)
    end = ensure_aware(end)
    if start is None or end is None:
        return None
    return int((end - start).total_seconds())


def parse_iso_timestamp(value: object) -> datetime | None:
    """Parse ISO timestamp string to datetime."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(raw))
    except ValueError:
        return None
