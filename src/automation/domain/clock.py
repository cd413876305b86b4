"""Time helpers. The engine works with timezone-aware UTC datetimes only."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (as returned by some database drivers) and convert aware ones."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
