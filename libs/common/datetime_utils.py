"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def minutes_from_now(minutes: int) -> datetime:
    """Return an aware UTC datetime `minutes` in the future."""
    return utc_now() + timedelta(minutes=minutes)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
