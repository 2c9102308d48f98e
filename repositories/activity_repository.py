"""
Activity log repository (persistence).

The activity_log table is append-only: this module inserts and reads records
but offers no update or delete.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import ActivityEntry, ActivityRecord, EntityType
from domain.time import utc_now
from repositories.rows import execute, parse_optional_datetime, rows_of

_ACTIVITY_TABLE: str = "activity_log"


def _row_to_record(row: Mapping[str, Any]) -> ActivityRecord:
    return ActivityRecord(
        id=UUID(str(row["id"])),
        entity_type=EntityType(str(row["entity_type"])),
        entity_id=UUID(str(row["entity_id"])),
        action=str(row["action"]),
        description=row.get("description"),
        metadata=dict(row.get("metadata") or {}),
        created_at=parse_optional_datetime(row.get("created_at")),
    )


def insert_activity(db: Client, entry: ActivityEntry) -> ActivityRecord:
    """
    Append one audit record.

    Raises:
    - RuntimeError if Supabase returns an error response.
    """

    record_id = uuid4()
    now = utc_now()
    payload = {
        "id": str(record_id),
        "entity_type": entry.entity_type.value,
        "entity_id": str(entry.entity_id),
        "action": entry.action,
        "description": entry.description,
        "metadata": dict(entry.metadata),
        "created_at": now.isoformat(),
    }
    execute(db.table(_ACTIVITY_TABLE).insert(payload), "insert activity")

    return ActivityRecord(
        id=record_id,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        action=entry.action,
        description=entry.description,
        metadata=dict(entry.metadata),
        created_at=now,
    )


def list_recent_activity(db: Client, action: Optional[str] = None, limit: int = 20) -> List[ActivityRecord]:
    """Newest-first audit records, optionally for a single action tag."""

    query = db.table(_ACTIVITY_TABLE).select("*")
    if action is not None:
        query = query.eq("action", action)
    query = query.order("created_at", desc=True).limit(limit)

    response = execute(query, "list activity")
    return [_row_to_record(row) for row in rows_of(response)]


__all__ = ["insert_activity", "list_recent_activity"]
