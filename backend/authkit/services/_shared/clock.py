"""Wall-clock source shared by the token services."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return a timezone-aware UTC "now"."""
    return datetime.now(UTC)


def as_utc(dt: datetime) -> datetime:
    """Label naive datetimes as UTC; convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
