"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime | None) -> str | None:
    """ISO-8601 string for an optional datetime; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def from_epoch_seconds(seconds: float) -> str:
    """Provider epoch timestamp -> ISO-8601 UTC string."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
