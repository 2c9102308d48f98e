"""
Domain: ActivityLog (audit trail) records.

Audit records are write-once. Batch operations (bulk import, bulk delete,
discovery, outreach campaigns) are not tied to a single row and use
BATCH_ENTITY_ID as their entity_id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from .time import require_optional_utc_timestamp

BATCH_ENTITY_ID = UUID("00000000-0000-0000-0000-000000000000")


class EntityType(str, Enum):
    PROSPECT = "prospect"
    CONVERSATION = "conversation"
    APPLICATION = "application"


class Action(str, Enum):
    PROSPECT_CREATED = "prospect_created"
    BULK_IMPORT = "bulk_import"
    BULK_DELETE = "bulk_delete"
    OUTREACH_CAMPAIGN_STARTED = "outreach_campaign_started"
    CONVERSATION_UPDATED = "conversation_updated"
    PROSPECT_QUALIFIED = "prospect_qualified"
    APPLICATION_COMPLETED = "application_completed"
    APPLICATION_UPDATED = "application_updated"
    ARF_SUBMISSION = "arf_submission"
    DISCOVERY_TRIGGERED = "discovery_triggered"
    WEBHOOK_FORWARD_FAILED = "webhook_forward_failed"

    @staticmethod
    def arf_status(status: str) -> str:
        """ARF status updates are tagged per status, e.g. `arf_funded`."""
        return f"arf_{status}"


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    """An audit record waiting to be written (no id/created_at yet)."""

    entity_type: EntityType
    entity_id: UUID
    action: str
    description: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """A stored audit record."""

    id: UUID
    entity_type: EntityType
    entity_id: UUID
    action: str
    description: Optional[str]
    metadata: Dict[str, Any]
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("created_at", self.created_at)


__all__ = [
    "BATCH_ENTITY_ID",
    "EntityType",
    "Action",
    "ActivityEntry",
    "ActivityRecord",
]
