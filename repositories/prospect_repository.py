"""
Prospect repository (persistence).

This module provides *only* persistence operations for the Prospect domain
entity. Which status a prospect moves to is decided by `domain.pipeline`; this
module only stores the result.

Status writes are compare-and-swap: the update is filtered on the status the
caller last saw, so a concurrent transition is detected instead of silently
overwritten.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from supabase import Client  # type: ignore[import-not-found]

from domain.prospect import Prospect, ProspectStatus
from repositories.rows import (
    decimal_to_column,
    execute,
    parse_optional_datetime,
    rows_of,
    to_decimal,
    to_iso_utc,
    to_optional_iso_utc,
)

# Supabase table name for Prospect records.
# Keep this aligned with your database schema.
_PROSPECTS_TABLE: str = "prospects"


def _prospect_to_row(prospect: Prospect) -> dict[str, Any]:
    """Convert a domain Prospect to a Supabase row payload."""

    return {
        "id": str(prospect.id),
        "business_name": prospect.business_name,
        "industry": prospect.industry,
        "contact_name": prospect.contact_name,
        "email": prospect.email,
        "phone": prospect.phone,
        "estimated_revenue": decimal_to_column(prospect.estimated_revenue),
        "status": prospect.status.value,
        "created_at": to_optional_iso_utc(prospect.created_at, name="created_at"),
        "updated_at": to_optional_iso_utc(prospect.updated_at, name="updated_at"),
    }


def _row_to_prospect(row: Mapping[str, Any]) -> Prospect:
    """Convert a Supabase row into a domain Prospect."""

    return Prospect(
        id=UUID(str(row["id"])),
        business_name=str(row["business_name"]),
        industry=str(row["industry"]),
        status=ProspectStatus(str(row.get("status") or ProspectStatus.NEW.value)),
        contact_name=row.get("contact_name"),
        email=row.get("email"),
        phone=row.get("phone"),
        estimated_revenue=to_decimal(row.get("estimated_revenue")),
        created_at=parse_optional_datetime(row.get("created_at")),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def insert_prospect(db: Client, prospect: Prospect) -> Prospect:
    """
    Insert a Prospect into Supabase.

    Returns the stored row (which may carry database defaults).
    """

    response = execute(db.table(_PROSPECTS_TABLE).insert(_prospect_to_row(prospect)), "insert prospect")
    rows = rows_of(response)
    return _row_to_prospect(rows[0]) if rows else prospect


def insert_prospects_bulk(db: Client, prospects: Sequence[Prospect]) -> List[Prospect]:
    """
    Bulk insert multiple Prospects in a single request.

    The whole batch is one PostgREST insert: either every row is stored or the
    request fails and none are.

    Notes:
        - Empty list is a no-op
        - Callers cap batches at 1000 rows
    """

    if not prospects:
        return []

    payloads = [_prospect_to_row(p) for p in prospects]
    response = execute(
        db.table(_PROSPECTS_TABLE).insert(payloads),
        f"bulk insert {len(prospects)} prospects",
    )
    rows = rows_of(response)
    return [_row_to_prospect(row) for row in rows] if rows else list(prospects)


def get_prospect_by_id(db: Client, prospect_id: UUID) -> Optional[Prospect]:
    """
    Fetch a Prospect by ID.

    Returns:
    - Prospect if found
    - None if no record exists for the given ID
    """

    response = execute(
        db.table(_PROSPECTS_TABLE).select("*").eq("id", str(prospect_id)).limit(1),
        "fetch prospect",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_prospect(rows[0])


def list_prospects(
    db: Client,
    status: Optional[ProspectStatus] = None,
    created_since: Optional[datetime] = None,
) -> List[Prospect]:
    """
    List Prospects newest-first, optionally filtered by status and creation time.
    """

    query = db.table(_PROSPECTS_TABLE).select("*")
    if status is not None:
        query = query.eq("status", status.value)
    if created_since is not None:
        query = query.gte("created_at", to_iso_utc(created_since, name="created_since"))
    query = query.order("created_at", desc=True)

    response = execute(query, "list prospects")
    return [_row_to_prospect(row) for row in rows_of(response)]


def list_prospects_by_ids(db: Client, prospect_ids: Sequence[UUID]) -> List[Prospect]:
    if not prospect_ids:
        return []

    response = execute(
        db.table(_PROSPECTS_TABLE).select("*").in_("id", [str(i) for i in prospect_ids]),
        "fetch prospects",
    )
    return [_row_to_prospect(row) for row in rows_of(response)]


def count_prospects(db: Client, status: Optional[ProspectStatus] = None) -> int:
    query = db.table(_PROSPECTS_TABLE).select("id", count="exact")
    if status is not None:
        query = query.eq("status", status.value)

    response = execute(query, "count prospects")
    count = getattr(response, "count", None)
    return count if count is not None else len(rows_of(response))


def compare_and_set_status(
    db: Client,
    prospect_id: UUID,
    expected: ProspectStatus,
    new_status: ProspectStatus,
    updated_at: datetime,
) -> bool:
    """
    Move one prospect from `expected` to `new_status`.

    Returns:
        True if the row was updated, False if its status no longer matched
        `expected` (or the row is gone).
    """

    response = execute(
        db.table(_PROSPECTS_TABLE)
        .update({"status": new_status.value, "updated_at": to_iso_utc(updated_at, name="updated_at")})
        .eq("id", str(prospect_id))
        .eq("status", expected.value),
        "update prospect status",
    )
    return len(rows_of(response)) > 0


def set_status_for_ids(
    db: Client,
    prospect_ids: Sequence[UUID],
    expected: ProspectStatus,
    new_status: ProspectStatus,
    updated_at: datetime,
) -> List[UUID]:
    """
    Bulk compare-and-swap: move every listed prospect still in `expected`.

    Returns the ids that were actually updated.
    """

    if not prospect_ids:
        return []

    response = execute(
        db.table(_PROSPECTS_TABLE)
        .update({"status": new_status.value, "updated_at": to_iso_utc(updated_at, name="updated_at")})
        .in_("id", [str(i) for i in prospect_ids])
        .eq("status", expected.value),
        "update prospect statuses",
    )
    return [UUID(str(row["id"])) for row in rows_of(response)]


def delete_prospects(db: Client, prospect_ids: Sequence[UUID]) -> int:
    """
    Hard-delete prospects by id. Does not cascade to child tables.

    Returns the number of rows deleted.
    """

    if not prospect_ids:
        return 0

    response = execute(
        db.table(_PROSPECTS_TABLE).delete().in_("id", [str(i) for i in prospect_ids]),
        "delete prospects",
    )
    return len(rows_of(response))


__all__ = [
    "insert_prospect",
    "insert_prospects_bulk",
    "get_prospect_by_id",
    "list_prospects",
    "list_prospects_by_ids",
    "count_prospects",
    "compare_and_set_status",
    "set_status_for_ids",
    "delete_prospects",
]
