"""
Discovery API Endpoints.

Trigger automated prospect discovery and list recent discovery requests.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_activity_logger, get_automation_webhook, get_db
from api.models import (
    DiscoveryHistoryItem,
    DiscoveryHistoryResponse,
    DiscoveryTriggerRequest,
    DiscoveryTriggerResponse,
)
from domain.errors import PipelineError
from repositories.client import Client
from services.activity_logger import ActivityLogger
from services.automation_webhook import AutomationWebhook
from services.discovery_service import DiscoveryRequest, discovery_history, trigger_discovery

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/discovery/trigger",
    response_model=DiscoveryTriggerResponse,
    summary="Trigger Discovery",
    description="Start automated discovery. Succeeds even when forwarding to the automation target fails."
)
def trigger(
    request: DiscoveryTriggerRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
    webhook: AutomationWebhook = Depends(get_automation_webhook),
):
    """
    Trigger discovery.

    **Required:** non-empty `industries` and `locations`, and
    `prospects_per_industry` of at least 1. `total_prospects` defaults to
    prospects_per_industry x number of industries.
    """
    try:
        discovery = DiscoveryRequest(
            industries=request.industries,
            locations=request.locations,
            prospects_per_industry=request.prospects_per_industry,
            total_prospects=request.total_prospects,
            estimated_value=request.estimated_value,
            trigger_source=request.trigger_source,
            timestamp=request.timestamp,
        )
        result = trigger_discovery(db, activity, webhook, discovery, request.model_dump())

        if result.forward.triggered:
            status = "forwarded"
        elif result.forward.skipped:
            status = "queued"
        else:
            status = "forward_failed"

        return DiscoveryTriggerResponse(
            message="Discovery workflow triggered successfully",
            workflow_id=result.workflow_id,
            status=status,
            parameters={
                "industries": list(discovery.industries),
                "locations": list(discovery.locations),
                "prospects_per_industry": discovery.prospects_per_industry,
                "total_prospects": discovery.expected_prospects,
                "estimated_value": discovery.estimated_value,
            },
            webhook_triggered=result.forward.triggered,
            webhook_error=result.forward.error,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Discovery trigger error")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to trigger discovery workflow: {str(e)}"
        )


@router.get(
    "/discovery/trigger",
    response_model=DiscoveryHistoryResponse,
    summary="Discovery History"
)
def history(db: Client = Depends(get_db)):
    """The 20 most recent discovery requests, newest first."""
    try:
        records = discovery_history(db)
        return DiscoveryHistoryResponse(
            data=[
                DiscoveryHistoryItem(
                    id=r.id,
                    timestamp=r.created_at,
                    description=r.description,
                    metadata=dict(r.metadata),
                )
                for r in records
            ]
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Discovery history error")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch discovery history: {str(e)}"
        )
