"""
Read-only listing endpoints for conversations, applications and the activity feed.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_db
from api.models import (
    ActivityListResponse,
    ActivityResponse,
    ApplicationListResponse,
    ApplicationResponse,
    ConversationListResponse,
    ConversationResponse,
)
from domain.application import ApplicationStatus
from domain.errors import PipelineError, ValidationError
from repositories.activity_repository import list_recent_activity
from repositories.application_repository import list_applications
from repositories.client import Client
from repositories.conversation_repository import list_conversations

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/conversations", response_model=ConversationListResponse, summary="List Conversations")
def get_conversations(
    qualified: Optional[bool] = Query(None, description="Only qualified (true) or active (false) conversations"),
    db: Client = Depends(get_db),
):
    try:
        conversations = list_conversations(db, qualified=qualified)
        return ConversationListResponse(
            conversations=[ConversationResponse.from_domain(c) for c in conversations],
            count=len(conversations),
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to list conversations")
        raise HTTPException(status_code=500, detail=f"Failed to fetch conversations: {str(e)}")


@router.get("/applications", response_model=ApplicationListResponse, summary="List Applications")
def get_applications(
    status: Optional[str] = Query(None, description="Application status, or 'all'"),
    submitted_to_arf: Optional[bool] = Query(None, description="true lists ARF submissions"),
    db: Client = Depends(get_db),
):
    try:
        status_filter = None
        if status is not None and status != "all":
            try:
                status_filter = ApplicationStatus(status)
            except ValueError:
                allowed = ", ".join(["all"] + [s.value for s in ApplicationStatus])
                raise ValidationError.for_field("status", f"status must be one of: {allowed}") from None

        applications = list_applications(db, status=status_filter, submitted_to_arf=submitted_to_arf)
        return ApplicationListResponse(
            applications=[ApplicationResponse.from_domain(a) for a in applications],
            count=len(applications),
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to list applications")
        raise HTTPException(status_code=500, detail=f"Failed to fetch applications: {str(e)}")


@router.get("/activity", response_model=ActivityListResponse, summary="Recent Activity")
def get_activity(
    limit: int = Query(20, ge=1, le=200, description="Number of records"),
    action: Optional[str] = Query(None, description="Only this action tag"),
    db: Client = Depends(get_db),
):
    try:
        records = list_recent_activity(db, action=action, limit=limit)
        return ActivityListResponse(
            activities=[ActivityResponse.from_domain(r) for r in records],
            count=len(records),
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to list activity")
        raise HTTPException(status_code=500, detail=f"Failed to fetch activity: {str(e)}")
