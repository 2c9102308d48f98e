"""
Webhook API Endpoints.

Inbound events from the outreach, intake and funding automations. Each body is
validated here, turned into a typed event and handed to the services, which
run it through the pipeline rules engine.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_activity_logger, get_automation_webhook, get_db
from api.models import (
    ApplicationCompletedRequest,
    ApplicationCompletedResponse,
    ArfStatusUpdateRequest,
    ArfStatusUpdateResponse,
    ArfSubmissionRequest,
    ArfSubmissionResponse,
    ConversationUpdateRequest,
    ConversationUpdateResponse,
    StartOutreachRequest,
    StartOutreachResponse,
)
from domain.conversation import Message, MessageDirection
from domain.errors import PipelineError
from domain.pipeline import ApplicationCompletion, ArfStatusUpdate, ArfSubmission, ConversationUpdate
from domain.time import utc_now
from repositories.client import Client
from services.activity_logger import ActivityLogger
from services.application_service import (
    record_application_completion,
    record_arf_status_update,
    record_arf_submission,
)
from services.automation_webhook import AutomationWebhook
from services.outreach_service import record_conversation_update, start_outreach_campaign

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhooks/application-completed",
    response_model=ApplicationCompletedResponse,
    summary="Application Completed",
    description="Create or update the prospect's open application and advance the prospect to 'application'."
)
def application_completed(
    request: ApplicationCompletedRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Record a completed loan application.

    commission_amount is always loan_amount * commission_rate (default rate
    0.02) and is recomputed on every update.
    """
    try:
        result = record_application_completion(
            db,
            activity,
            request.prospect_id,
            ApplicationCompletion(
                application_data=request.application_data,
                loan_amount=request.loan_amount,
                commission_rate=request.commission_rate,
                documents_uploaded=request.documents_uploaded,
                voice_data=request.voice_data,
            ),
        )
        application = result.application
        return ApplicationCompletedResponse(
            message=(
                "Application completed successfully" if result.created
                else "Application updated successfully"
            ),
            application_id=application.id,
            prospect_id=request.prospect_id,
            business_name=result.business_name,
            created=result.created,
            loan_amount=application.loan_amount,
            commission_rate=application.commission_rate,
            commission_amount=application.commission_amount,
            status=application.status.value,
            prospect_status=result.prospect_status.value if result.prospect_status else None,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Error in application-completed webhook")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process application completion: {str(e)}"
        )


@router.post(
    "/webhooks/arf-submission",
    response_model=ArfSubmissionResponse,
    summary="Submit Application to ARF"
)
def arf_submission(
    request: ArfSubmissionRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Mark an application as submitted to ARF.

    The application is found by `application_id`, or as the latest unsubmitted
    application of `prospect_id`. A second submission of the same application
    is rejected with 409.
    """
    try:
        result = record_arf_submission(
            db,
            activity,
            ArfSubmission(
                status=request.submission_status,
                arf_reference_number=request.arf_reference_number,
                submission_notes=request.submission_notes,
                expected_funding_date=request.expected_funding_date,
            ),
            application_id=request.application_id,
            prospect_id=request.prospect_id,
        )
        application = result.application
        return ArfSubmissionResponse(
            message="Application submitted to ARF successfully",
            application_id=application.id,
            arf_reference_number=request.arf_reference_number,
            submission_status=application.status.value,
            loan_amount=application.loan_amount,
            commission_amount=application.commission_amount,
            business_name=result.business_name,
            prospect_status=result.prospect_status.value if result.prospect_status else None,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Error in arf-submission webhook")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process ARF submission: {str(e)}"
        )


@router.put(
    "/webhooks/arf-submission",
    response_model=ArfStatusUpdateResponse,
    summary="ARF Status Update"
)
def arf_status_update(
    request: ArfStatusUpdateRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Apply a status reported by ARF (under_review, approved, funded, declined).

    funded and declined also move the owning prospect; both are final.
    """
    try:
        result = record_arf_status_update(
            db,
            activity,
            ArfStatusUpdate(
                status=request.status,
                funding_amount=request.funding_amount,
                funding_date=request.funding_date,
                decline_reason=request.decline_reason,
                arf_reference_number=request.arf_reference_number,
            ),
            application_id=request.application_id,
        )
        application = result.application
        return ArfStatusUpdateResponse(
            message=f"Application status updated to {application.status.value}",
            application_id=application.id,
            status=application.status.value,
            funding_date=application.funding_date,
            commission_amount=application.commission_amount,
            business_name=result.business_name,
            prospect_status=result.prospect_status.value if result.prospect_status else None,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Error in ARF status update webhook")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update ARF status: {str(e)}"
        )


@router.post(
    "/webhooks/conversation-update",
    response_model=ConversationUpdateResponse,
    summary="Conversation Update"
)
def conversation_update(
    request: ConversationUpdateRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Append a message, record a qualification score and qualify.

    Without `conversation_id` the prospect's conversation is found or created.
    Scores outside 0-100 are rejected; qualifying needs a score.
    """
    try:
        message = None
        if isinstance(request.message, str):
            message = Message(timestamp=utc_now(), direction=MessageDirection.INBOUND, content=request.message)
        elif request.message is not None:
            message = Message(timestamp=utc_now(), direction=request.message.type, content=request.message.content)

        result = record_conversation_update(
            db,
            activity,
            ConversationUpdate(
                message=message,
                qualification_score=request.qualification_score,
                qualified=request.qualified,
            ),
            conversation_id=request.conversation_id,
            prospect_id=request.prospect_id,
            channel=request.channel,
        )
        conversation = result.conversation
        return ConversationUpdateResponse(
            message="Conversation updated successfully",
            conversation_id=conversation.id,
            prospect_id=conversation.prospect_id,
            created=result.created,
            qualified=conversation.qualified,
            qualification_score=conversation.qualification_score,
            message_count=len(conversation.messages),
            prospect_status=result.prospect_status.value if result.prospect_status else None,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Error in conversation-update webhook")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update conversation: {str(e)}"
        )


@router.post(
    "/webhooks/start-outreach",
    response_model=StartOutreachResponse,
    summary="Start Outreach Campaign"
)
def start_outreach(
    request: StartOutreachRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
    webhook: AutomationWebhook = Depends(get_automation_webhook),
):
    """
    Move every 'new' prospect to 'contacted' and open one email conversation each.
    """
    try:
        result = start_outreach_campaign(
            db,
            activity,
            webhook,
            request.model_dump(),
            campaign_type=request.campaign_type,
            triggered_at=request.timestamp,
        )
        if result.contacted:
            message = "Outreach campaign started successfully"
        else:
            message = "No prospects available for outreach"
        return StartOutreachResponse(
            message=message,
            prospects_contacted=len(result.contacted),
            conversation_ids=[c.id for c in result.conversations],
            campaign_type=request.campaign_type,
            timestamp=request.timestamp,
            webhook_triggered=result.forward.triggered,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Error in start-outreach webhook")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start outreach campaign: {str(e)}"
        )
