"""
Pipeline clock and timestamp rules.

Every timestamp the pipeline stores (message times, last_contact, ARF
submission and funding dates, audit times) is timezone-aware UTC. Entities
check this on construction; inbound values are normalized with `as_utc`.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive values are read as UTC; aware values are converted to UTC."""

    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def require_utc_timestamp(name: str, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_optional_utc_timestamp(name: str, value: Optional[datetime]) -> None:
    if value is not None:
        require_utc_timestamp(name, value)


__all__ = ["utc_now", "as_utc", "require_utc_timestamp", "require_optional_utc_timestamp"]
