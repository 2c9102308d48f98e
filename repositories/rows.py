"""
Row conversion helpers shared by the repository modules.

Supabase returns timestamps as ISO-8601 strings (sometimes with a trailing 'Z')
and numeric columns as numbers or strings depending on the column type. These
helpers normalize both directions so domain objects always see UTC datetimes
and Decimals.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.time import as_utc, require_utc_timestamp


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def to_optional_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    return to_iso_utc(dt, name=name) if dt is not None else None


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    # A naive timestamp from the backend is interpreted as UTC.
    return as_utc(dt)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def decimal_to_column(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def execute(query: Any, action: str) -> Any:
    """
    Run a PostgREST query and normalize failures to RuntimeError.

    supabase-py raises APIError for most failures, but older responses carry an
    `error` attribute instead; both are handled.
    """

    try:
        response = query.execute()
    except APIError as e:
        raise RuntimeError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return response


def rows_of(response: Any) -> List[Mapping[str, Any]]:
    return getattr(response, "data", None) or []


__all__ = [
    "to_iso_utc",
    "to_optional_iso_utc",
    "parse_utc_datetime",
    "parse_optional_datetime",
    "to_decimal",
    "decimal_to_column",
    "optional_uuid",
    "execute",
    "rows_of",
]
