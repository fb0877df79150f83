"""
Date/time helpers — framework-agnostic.

MongoDB hands back naive datetimes unless the client is ``tz_aware``; every
comparison in the access flow goes through ``ensure_utc`` so stored and
current times are always comparable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    Naive datetimes (no ``tzinfo``) are assumed to be UTC. ``None`` passes
    through unchanged.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to Unix epoch milliseconds."""
    return int(ensure_utc(value).timestamp() * 1000)
