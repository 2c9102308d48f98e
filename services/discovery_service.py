"""
Discovery service: trigger automated prospect discovery and read its history.

A discovery request names the industries and locations to search and how many
prospects to find per industry. The request is validated, recorded in the
activity log and forwarded to the automation target; forwarding failure never
fails the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import BATCH_ENTITY_ID, Action, ActivityEntry, ActivityRecord, EntityType
from domain.errors import FieldError, ValidationError
from domain.time import utc_now
from repositories.activity_repository import list_recent_activity
from services.activity_logger import ActivityLogger
from services.automation_webhook import AutomationWebhook, ForwardResult, forward_with_audit

logger = logging.getLogger(__name__)

DISCOVERY_EVENT = "discovery_triggered"
DISCOVERY_HISTORY_LIMIT = 20


@dataclass(frozen=True, slots=True)
class DiscoveryRequest:
    industries: Sequence[str]
    locations: Sequence[str]
    prospects_per_industry: int
    total_prospects: Optional[int] = None
    estimated_value: Optional[float] = None
    trigger_source: str = "api"
    timestamp: Optional[str] = None

    @property
    def expected_prospects(self) -> int:
        if self.total_prospects is not None:
            return self.total_prospects
        return self.prospects_per_industry * len(self.industries)


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    workflow_id: str
    request: DiscoveryRequest
    forward: ForwardResult


def validate_discovery_request(request: DiscoveryRequest) -> None:
    errors: List[FieldError] = []
    if not request.industries or any(not str(i).strip() for i in request.industries):
        errors.append(FieldError("industries", "Industries are required and must be a non-empty array"))
    if not request.locations or any(not str(loc).strip() for loc in request.locations):
        errors.append(FieldError("locations", "Locations are required and must be a non-empty array"))
    if request.prospects_per_industry < 1:
        errors.append(FieldError("prospects_per_industry", "Prospects per industry must be at least 1"))
    if errors:
        raise ValidationError(errors[0].message, errors)


def trigger_discovery(
    db: Client,
    activity: ActivityLogger,
    webhook: AutomationWebhook,
    request: DiscoveryRequest,
    payload: Mapping[str, Any],
) -> DiscoveryResult:
    """
    Record and forward a discovery request.

    `payload` is the caller's raw body; it is forwarded unchanged.
    """

    validate_discovery_request(request)

    now = utc_now()
    total = request.expected_prospects
    activity.record(
        ActivityEntry(
            entity_type=EntityType.PROSPECT,
            entity_id=BATCH_ENTITY_ID,
            action=Action.DISCOVERY_TRIGGERED.value,
            description=(
                f"Automated discovery started: {total} prospects across {len(request.industries)} industries"
            ),
            metadata={
                "industries": list(request.industries),
                "locations": list(request.locations),
                "prospects_per_industry": request.prospects_per_industry,
                "total_prospects": total,
                "estimated_value": request.estimated_value,
                "trigger_source": request.trigger_source,
                "timestamp": request.timestamp or now.isoformat(),
            },
        )
    )
    logger.info(
        "Discovery triggered for %d industries x %d locations",
        len(request.industries),
        len(request.locations),
    )

    forward = forward_with_audit(webhook, activity, DISCOVERY_EVENT, payload)
    return DiscoveryResult(
        workflow_id=f"discovery_{int(now.timestamp() * 1000)}",
        request=request,
        forward=forward,
    )


def discovery_history(db: Client, limit: int = DISCOVERY_HISTORY_LIMIT) -> List[ActivityRecord]:
    return list_recent_activity(db, action=Action.DISCOVERY_TRIGGERED.value, limit=limit)


__all__ = [
    "DISCOVERY_EVENT",
    "DISCOVERY_HISTORY_LIMIT",
    "DiscoveryRequest",
    "DiscoveryResult",
    "validate_discovery_request",
    "trigger_discovery",
    "discovery_history",
]
