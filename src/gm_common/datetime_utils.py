"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def days_from(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)


def iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
