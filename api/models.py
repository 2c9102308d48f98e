"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Money values are Decimal and serialize as strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt, field_validator

from domain.activity import ActivityRecord
from domain.application import Application, ApplicationStatus
from domain.conversation import Channel, Conversation, MessageDirection
from domain.prospect import Prospect
from domain.time import as_utc


# ============================================================================
# Prospect Models
# ============================================================================

class ProspectCreateRequest(BaseModel):
    """Manual prospect entry. Field rules are checked by the domain so every problem is reported at once."""
    business_name: Optional[str] = None
    industry: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    estimated_revenue: Optional[Any] = Field(None, description="Non-negative number")

    class Config:
        json_schema_extra = {
            "example": {
                "business_name": "Restaurant ABC",
                "industry": "Restaurants",
                "contact_name": "John Doe",
                "email": "john@restaurantabc.com",
                "phone": "555-123-4567",
                "estimated_revenue": 500000
            }
        }


class ProspectResponse(BaseModel):
    """Single prospect in API response."""
    id: UUID
    business_name: str
    industry: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    estimated_revenue: Optional[Decimal] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, prospect: Prospect) -> "ProspectResponse":
        return cls(
            id=prospect.id,
            business_name=prospect.business_name,
            industry=prospect.industry,
            contact_name=prospect.contact_name,
            email=prospect.email,
            phone=prospect.phone,
            estimated_revenue=prospect.estimated_revenue,
            status=prospect.status.value,
            created_at=prospect.created_at,
            updated_at=prospect.updated_at,
        )


class ProspectEnvelope(BaseModel):
    success: bool = True
    prospect: ProspectResponse


class ProspectListResponse(BaseModel):
    """Response for prospect listing."""
    success: bool = True
    prospects: List[ProspectResponse]
    count: int
    status_filter: str

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "prospects": [],
                "count": 0,
                "status_filter": "all"
            }
        }


class BulkImportRequest(BaseModel):
    """Bulk import payload (1-1000 records). Records stay loosely typed; each is validated with its index."""
    prospects: List[Any]

    class Config:
        json_schema_extra = {
            "example": {
                "prospects": [
                    {
                        "business_name": "Restaurant ABC",
                        "industry": "Restaurants",
                        "contact_name": "John Doe",
                        "email": "john@restaurantabc.com",
                        "phone": "555-123-4567",
                        "estimated_revenue": 500000
                    }
                ]
            }
        }


class ImportedProspect(BaseModel):
    id: UUID
    business_name: str
    industry: str
    status: str


class ImportSummaryResponse(BaseModel):
    industries: Dict[str, int]
    has_contact_info: int
    estimated_revenue_total: Decimal


class BulkImportResponse(BaseModel):
    success: bool = True
    message: str
    imported_count: int
    total_submitted: int
    validation_passed: int
    imported_prospects: List[ImportedProspect]
    summary: ImportSummaryResponse


class BulkImportInfoResponse(BaseModel):
    """Usage description for the bulk import endpoint."""
    success: bool = True
    endpoint: str
    method: str
    description: str
    max_prospects: int
    required_fields: List[str]
    optional_fields: List[str]
    payload_example: Dict[str, Any]


class BulkDeleteRequest(BaseModel):
    """Delete by id, or every prospect whose business name matches a test pattern."""
    prospect_ids: Optional[List[UUID]] = None
    delete_all_test_data: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "prospect_ids": ["123e4567-e89b-12d3-a456-426614174000"],
                "delete_all_test_data": False
            }
        }


class DeletedProspect(BaseModel):
    id: UUID
    business_name: str


class BulkDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted_count: int
    deleted_prospects: List[DeletedProspect]
    delete_type: str


class BulkDeletePreviewResponse(BaseModel):
    success: bool = True
    all_prospects: List[ProspectResponse]
    test_prospects: List[ProspectResponse]
    test_patterns: List[str]
    total_count: int
    test_count: int


# ============================================================================
# Conversation Models
# ============================================================================

class ConversationMessageIn(BaseModel):
    type: MessageDirection = MessageDirection.INBOUND
    content: str


class ConversationUpdateRequest(BaseModel):
    """
    Conversation update from the outreach agent.

    `message` is either plain text (an inbound message) or {type, content}.
    """
    conversation_id: Optional[UUID] = None
    prospect_id: Optional[UUID] = None
    message: Optional[Union[str, ConversationMessageIn]] = None
    qualification_score: Optional[StrictInt] = None
    qualified: Optional[bool] = None
    channel: Channel = Channel.EMAIL

    class Config:
        json_schema_extra = {
            "example": {
                "prospect_id": "123e4567-e89b-12d3-a456-426614174000",
                "message": {"type": "inbound", "content": "Yes, we need about $150k for equipment."},
                "qualification_score": 82,
                "qualified": True,
                "channel": "email"
            }
        }


class MessageResponse(BaseModel):
    timestamp: datetime
    type: str
    content: str


class ConversationResponse(BaseModel):
    id: UUID
    prospect_id: Optional[UUID] = None
    channel: str
    messages: List[MessageResponse]
    qualification_score: Optional[int] = None
    qualified: bool
    last_contact: datetime
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            id=conversation.id,
            prospect_id=conversation.prospect_id,
            channel=conversation.channel.value,
            messages=[
                MessageResponse(timestamp=m.timestamp, type=m.direction.value, content=m.content)
                for m in conversation.messages
            ],
            qualification_score=conversation.qualification_score,
            qualified=conversation.qualified,
            last_contact=conversation.last_contact,
            created_at=conversation.created_at,
        )


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: List[ConversationResponse]
    count: int


class ConversationUpdateResponse(BaseModel):
    success: bool = True
    message: str
    conversation_id: UUID
    prospect_id: Optional[UUID] = None
    created: bool
    qualified: bool
    qualification_score: Optional[int] = None
    message_count: int
    prospect_status: Optional[str] = None


class StartOutreachRequest(BaseModel):
    campaign_type: Optional[str] = None
    timestamp: Optional[str] = None

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "campaign_type": "email_sequence",
                "timestamp": "2025-01-01T12:00:00Z"
            }
        }


class StartOutreachResponse(BaseModel):
    success: bool = True
    message: str
    prospects_contacted: int
    conversation_ids: List[UUID]
    campaign_type: Optional[str] = None
    timestamp: Optional[str] = None
    webhook_triggered: bool


# ============================================================================
# Application Models
# ============================================================================

class ApplicationCompletedRequest(BaseModel):
    """Completed (or updated) loan application from the intake agent."""
    prospect_id: UUID
    application_data: Dict[str, Any] = Field(default_factory=dict)
    loan_amount: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = Field(None, description="Fraction, default 0.02")
    documents_uploaded: Optional[bool] = None
    voice_data: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "prospect_id": "123e4567-e89b-12d3-a456-426614174000",
                "application_data": {"use_of_funds": "equipment", "time_in_business_years": 6},
                "loan_amount": 100000,
                "commission_rate": 0.02,
                "documents_uploaded": True
            }
        }


class ApplicationResponse(BaseModel):
    id: UUID
    prospect_id: Optional[UUID] = None
    application_data: Dict[str, Any]
    status: str
    documents_uploaded: bool
    submitted_to_arf: bool
    loan_amount: Optional[Decimal] = None
    commission_rate: Decimal
    commission_amount: Optional[Decimal] = None
    arf_submission_date: Optional[datetime] = None
    funding_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, application: Application) -> "ApplicationResponse":
        return cls(
            id=application.id,
            prospect_id=application.prospect_id,
            application_data=dict(application.application_data),
            status=application.status.value,
            documents_uploaded=application.documents_uploaded,
            submitted_to_arf=application.submitted_to_arf,
            loan_amount=application.loan_amount,
            commission_rate=application.commission_rate,
            commission_amount=application.commission_amount,
            arf_submission_date=application.arf_submission_date,
            funding_date=application.funding_date,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )


class ApplicationListResponse(BaseModel):
    success: bool = True
    applications: List[ApplicationResponse]
    count: int


class ApplicationCompletedResponse(BaseModel):
    success: bool = True
    message: str
    application_id: UUID
    prospect_id: UUID
    business_name: Optional[str] = None
    created: bool
    loan_amount: Optional[Decimal] = None
    commission_rate: Decimal
    commission_amount: Optional[Decimal] = None
    status: str
    prospect_status: Optional[str] = None


class ArfSubmissionRequest(BaseModel):
    """Submission of an application to ARF, by application id or the prospect's open application."""
    application_id: Optional[UUID] = None
    prospect_id: Optional[UUID] = None
    submission_status: ApplicationStatus = ApplicationStatus.SUBMITTED
    arf_reference_number: Optional[str] = None
    submission_notes: Optional[str] = None
    expected_funding_date: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "prospect_id": "123e4567-e89b-12d3-a456-426614174000",
                "arf_reference_number": "ARF-2025-0042",
                "submission_notes": "Complete package, 6 months statements",
                "expected_funding_date": "2025-02-15"
            }
        }


class ArfSubmissionResponse(BaseModel):
    success: bool = True
    message: str
    application_id: UUID
    arf_reference_number: Optional[str] = None
    submission_status: str
    loan_amount: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    business_name: Optional[str] = None
    prospect_status: Optional[str] = None


class ArfStatusUpdateRequest(BaseModel):
    """Status reported back by ARF. Naive timestamps are read as UTC."""
    application_id: Optional[UUID] = None
    arf_reference_number: Optional[str] = None
    status: ApplicationStatus
    funding_amount: Optional[Decimal] = None
    funding_date: Optional[datetime] = None
    decline_reason: Optional[str] = None

    @field_validator("funding_date")
    @classmethod
    def _funding_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    class Config:
        json_schema_extra = {
            "example": {
                "application_id": "123e4567-e89b-12d3-a456-426614174000",
                "status": "funded",
                "funding_amount": 100000,
                "funding_date": "2025-02-14T16:00:00Z"
            }
        }


class ArfStatusUpdateResponse(BaseModel):
    success: bool = True
    message: str
    application_id: UUID
    status: str
    funding_date: Optional[datetime] = None
    commission_amount: Optional[Decimal] = None
    business_name: Optional[str] = None
    prospect_status: Optional[str] = None


# ============================================================================
# Discovery Models
# ============================================================================

class DiscoveryTriggerRequest(BaseModel):
    """Automated discovery request; unknown keys are kept and forwarded."""
    industries: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    prospects_per_industry: int = 0
    total_prospects: Optional[int] = None
    estimated_value: Optional[float] = None
    trigger_source: str = "api"
    timestamp: Optional[str] = None

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "industries": ["Restaurants", "Construction"],
                "locations": ["Dallas, TX"],
                "prospects_per_industry": 25,
                "total_prospects": 50,
                "estimated_value": 250000
            }
        }


class DiscoveryTriggerResponse(BaseModel):
    success: bool = True
    message: str
    workflow_id: str
    status: str
    parameters: Dict[str, Any]
    webhook_triggered: bool
    webhook_error: Optional[str] = None


class DiscoveryHistoryItem(BaseModel):
    id: UUID
    timestamp: Optional[datetime] = None
    description: Optional[str] = None
    metadata: Dict[str, Any]


class DiscoveryHistoryResponse(BaseModel):
    success: bool = True
    data: List[DiscoveryHistoryItem]


# ============================================================================
# Activity and Analytics Models
# ============================================================================

class ActivityResponse(BaseModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    action: str
    description: Optional[str] = None
    metadata: Dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, record: ActivityRecord) -> "ActivityResponse":
        return cls(
            id=record.id,
            entity_type=record.entity_type.value,
            entity_id=record.entity_id,
            action=record.action,
            description=record.description,
            metadata=dict(record.metadata),
            created_at=record.created_at,
        )


class ActivityListResponse(BaseModel):
    success: bool = True
    activities: List[ActivityResponse]
    count: int


class DashboardStatsResponse(BaseModel):
    success: bool = True
    prospects_ready: int
    active_conversations: int
    applications_in_progress: int
    deals_submitted: int


class PipelineSummaryResponse(BaseModel):
    success: bool = True
    total: int
    by_status: Dict[str, int]
    average_estimated_revenue: Optional[Decimal] = None


class MonthlyStatResponse(BaseModel):
    month: str
    applications: int
    submissions: int
    commissions: Decimal


class IndustryStatResponse(BaseModel):
    industry: str
    count: int
    commissions: Decimal


class CommissionAnalyticsResponse(BaseModel):
    success: bool = True
    time_range: str
    total_prospects: int
    total_applications: int
    total_submissions: int
    total_commissions: Decimal
    funded_commissions: Decimal
    pending_commissions: Decimal
    conversion_rate: float
    average_deal_size: Decimal
    average_commission: Decimal
    monthly: List[MonthlyStatResponse]
    industries: List[IndustryStatResponse]

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "time_range": "90d",
                "total_prospects": 120,
                "total_applications": 14,
                "total_submissions": 9,
                "total_commissions": "28000.00",
                "funded_commissions": "12000.00",
                "pending_commissions": "14000.00",
                "conversion_rate": 7.5,
                "average_deal_size": "100000.00",
                "average_commission": "2000.00",
                "monthly": [],
                "industries": []
            }
        }
