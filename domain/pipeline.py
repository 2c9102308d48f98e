"""
Domain: pipeline status rules engine.

Every status change in the system is decided here. The functions in this module
are pure: they take an event plus the current entity snapshot(s) and return the
complete set of changes that event legally produces, or raise a PipelineError.
Nothing here performs I/O; persisting an outcome is the caller's job and is
all-or-nothing per outcome.

Prospect status ordering (forward only):

    new < contacted < qualified < application < submitted < {funded, declined}

funded and declined are terminal. The TRANSITIONS table below lists every legal
(current status, event) -> next status move. A move that is not in the table is
either rejected (`transition`) or skipped as a no-op (`advance`).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from .application import (
    Application,
    ApplicationStatus,
    DEFAULT_COMMISSION_RATE,
    compute_commission,
)
from .conversation import (
    MAX_QUALIFICATION_SCORE,
    MIN_QUALIFICATION_SCORE,
    Channel,
    Conversation,
    Message,
    MessageDirection,
)
from .errors import FieldError, TransitionRejected, ValidationError
from .prospect import Prospect, ProspectStatus


class PipelineEvent(str, Enum):
    OUTREACH_STARTED = "outreach_started"
    QUALIFIED = "qualified"
    APPLICATION_COMPLETED = "application_completed"
    SUBMITTED_TO_ARF = "submitted_to_arf"
    FUNDED = "funded"
    DECLINED = "declined"


_S = ProspectStatus
_E = PipelineEvent

TRANSITIONS: Dict[Tuple[ProspectStatus, PipelineEvent], ProspectStatus] = {
    (_S.NEW, _E.OUTREACH_STARTED): _S.CONTACTED,

    (_S.NEW, _E.QUALIFIED): _S.QUALIFIED,
    (_S.CONTACTED, _E.QUALIFIED): _S.QUALIFIED,

    (_S.NEW, _E.APPLICATION_COMPLETED): _S.APPLICATION,
    (_S.CONTACTED, _E.APPLICATION_COMPLETED): _S.APPLICATION,
    (_S.QUALIFIED, _E.APPLICATION_COMPLETED): _S.APPLICATION,

    (_S.NEW, _E.SUBMITTED_TO_ARF): _S.SUBMITTED,
    (_S.CONTACTED, _E.SUBMITTED_TO_ARF): _S.SUBMITTED,
    (_S.QUALIFIED, _E.SUBMITTED_TO_ARF): _S.SUBMITTED,
    (_S.APPLICATION, _E.SUBMITTED_TO_ARF): _S.SUBMITTED,

    (_S.NEW, _E.FUNDED): _S.FUNDED,
    (_S.CONTACTED, _E.FUNDED): _S.FUNDED,
    (_S.QUALIFIED, _E.FUNDED): _S.FUNDED,
    (_S.APPLICATION, _E.FUNDED): _S.FUNDED,
    (_S.SUBMITTED, _E.FUNDED): _S.FUNDED,

    (_S.NEW, _E.DECLINED): _S.DECLINED,
    (_S.CONTACTED, _E.DECLINED): _S.DECLINED,
    (_S.QUALIFIED, _E.DECLINED): _S.DECLINED,
    (_S.APPLICATION, _E.DECLINED): _S.DECLINED,
    (_S.SUBMITTED, _E.DECLINED): _S.DECLINED,
}

# Statuses ARF may report through the status-update webhook.
ARF_UPDATE_STATUSES = frozenset(
    {
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.FUNDED,
        ApplicationStatus.DECLINED,
    }
)

# Statuses a caller may set when submitting to ARF.
ARF_SUBMISSION_STATUSES = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.APPROVED,
    }
)

# Business-name substrings that identify seeded demo/test prospects.
TEST_BUSINESS_PATTERNS: Tuple[str, ...] = (
    "TechStart Solutions",
    "Metro Restaurant Group",
    "BuildRight Construction",
    "QuickShip Logistics",
    "GreenEnergy Corp",
    "RetailMax Stores",
    "MedEquip Supply",
    "AutoParts Plus",
    "Test",
    "Sample",
    "Demo",
    "Example",
)


# ============================================================================
# Transition table access
# ============================================================================

def transition(current: ProspectStatus, event: PipelineEvent) -> ProspectStatus:
    """Strict lookup: the next status, or TransitionRejected."""

    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise TransitionRejected(
            f"Event '{event.value}' is not allowed for a prospect in status '{current.value}'",
            current=current.value,
            event=event.value,
        ) from None


def advance(current: ProspectStatus, event: PipelineEvent) -> Optional[ProspectStatus]:
    """Forward-only lookup: the next status, or None if the event would not move the prospect forward."""

    return TRANSITIONS.get((current, event))


@dataclass(frozen=True, slots=True)
class StatusChange:
    prospect_id: UUID
    from_status: ProspectStatus
    to_status: ProspectStatus
    event: PipelineEvent


def _propagate(prospect: Optional[Prospect], event: PipelineEvent) -> Optional[StatusChange]:
    # Children only hold a weak reference; a missing prospect is not an error.
    if prospect is None:
        return None
    next_status = advance(prospect.status, event)
    if next_status is None:
        return None
    return StatusChange(
        prospect_id=prospect.id,
        from_status=prospect.status,
        to_status=next_status,
        event=event,
    )


# ============================================================================
# Event inputs and outcomes
# ============================================================================

@dataclass(frozen=True, slots=True)
class ConversationUpdate:
    message: Optional[Message] = None
    qualification_score: Optional[int] = None
    qualified: Optional[bool] = None


@dataclass(frozen=True, slots=True)
class ApplicationCompletion:
    """
    Application-completed event.

    None means "not provided": on an existing application the stored value is
    kept; on a new one the default applies.
    """

    application_data: Mapping[str, Any] = field(default_factory=dict)
    loan_amount: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = None
    documents_uploaded: Optional[bool] = None
    voice_data: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True, slots=True)
class ArfSubmission:
    status: ApplicationStatus = ApplicationStatus.SUBMITTED
    arf_reference_number: Optional[str] = None
    submission_notes: Optional[str] = None
    expected_funding_date: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ArfStatusUpdate:
    status: ApplicationStatus
    funding_amount: Optional[Decimal] = None
    funding_date: Optional[datetime] = None
    decline_reason: Optional[str] = None
    arf_reference_number: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OutreachOutcome:
    conversation: Conversation
    status_change: StatusChange


@dataclass(frozen=True, slots=True)
class ConversationOutcome:
    conversation: Conversation
    became_qualified: bool
    status_change: Optional[StatusChange]


@dataclass(frozen=True, slots=True)
class ApplicationOutcome:
    application: Application
    created: bool
    status_change: Optional[StatusChange]


@dataclass(frozen=True, slots=True)
class BulkDeletePlan:
    prospects: Tuple[Prospect, ...]
    delete_type: str  # "selective_delete" or "test_data_cleanup"

    @property
    def prospect_ids(self) -> Tuple[UUID, ...]:
        return tuple(p.id for p in self.prospects)

    @property
    def count(self) -> int:
        return len(self.prospects)


# ============================================================================
# Validation helpers
# ============================================================================

def validate_qualification_score(score: Any) -> int:
    """Out-of-range scores are rejected, never clamped."""

    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError.for_field("qualification_score", "qualification_score must be an integer")
    if not MIN_QUALIFICATION_SCORE <= score <= MAX_QUALIFICATION_SCORE:
        raise ValidationError.for_field(
            "qualification_score",
            f"qualification_score must be between {MIN_QUALIFICATION_SCORE} and {MAX_QUALIFICATION_SCORE}",
        )
    return score


def _validate_money(errors: list, name: str, value: Optional[Decimal]) -> None:
    if value is not None and value < 0:
        errors.append(FieldError(field=name, message=f"{name} must be non-negative"))


def _json_number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


# ============================================================================
# Operations
# ============================================================================

def default_outreach_message(prospect: Prospect) -> str:
    return f"AI-generated outreach message for {prospect.business_name}"


def start_outreach(
    prospect: Prospect,
    conversation_id: UUID,
    now: datetime,
    content: Optional[str] = None,
) -> OutreachOutcome:
    """
    Open an email conversation for a `new` prospect and move it to `contacted`.

    The conversation starts with one outbound message and no score.
    """

    next_status = transition(prospect.status, PipelineEvent.OUTREACH_STARTED)
    message = Message(
        timestamp=now,
        direction=MessageDirection.OUTBOUND,
        content=content or default_outreach_message(prospect),
    )
    conversation = Conversation(
        id=conversation_id,
        prospect_id=prospect.id,
        channel=Channel.EMAIL,
        last_contact=now,
        messages=(message,),
        qualification_score=None,
        qualified=False,
        created_at=now,
    )
    return OutreachOutcome(
        conversation=conversation,
        status_change=StatusChange(
            prospect_id=prospect.id,
            from_status=prospect.status,
            to_status=next_status,
            event=PipelineEvent.OUTREACH_STARTED,
        ),
    )


def open_conversation(
    prospect_id: UUID,
    conversation_id: UUID,
    channel: Channel,
    now: datetime,
) -> Conversation:
    """Empty conversation used by find-or-create."""

    return Conversation(
        id=conversation_id,
        prospect_id=prospect_id,
        channel=channel,
        last_contact=now,
        messages=(),
        qualification_score=None,
        qualified=False,
        created_at=now,
    )


def update_conversation(
    conversation: Conversation,
    prospect: Optional[Prospect],
    update: ConversationUpdate,
    now: datetime,
) -> ConversationOutcome:
    """
    Append a message, record a score, and qualify.

    - The message (if any) goes to the end of the sequence.
    - qualified=True requires a score, already stored or supplied in this event.
    - Qualification advances the prospect to `qualified` only if that is a
      forward move; a further-along or terminal prospect is left alone.
    """

    updated = conversation
    if update.message is not None:
        updated = updated.append(update.message)

    if update.qualification_score is not None:
        score = validate_qualification_score(update.qualification_score)
        updated = replace(updated, qualification_score=score)

    became_qualified = False
    if update.qualified is not None:
        if update.qualified and not updated.is_scored:
            raise ValidationError.for_field(
                "qualified",
                "A conversation must have a qualification_score before it can be qualified",
            )
        became_qualified = update.qualified and not conversation.qualified
        updated = replace(updated, qualified=update.qualified)

    updated = replace(updated, last_contact=now)

    status_change = None
    if update.qualified:
        status_change = _propagate(prospect, PipelineEvent.QUALIFIED)

    return ConversationOutcome(
        conversation=updated,
        became_qualified=became_qualified,
        status_change=status_change,
    )


def complete_application(
    prospect: Prospect,
    existing: Optional[Application],
    completion: ApplicationCompletion,
    application_id: UUID,
    now: datetime,
) -> ApplicationOutcome:
    """
    Merge an application-completed event into the prospect's open application,
    or create a new draft if it has none.

    application_data accumulates: the event payload is merged over the stored
    document, never replacing it wholesale.
    """

    errors: list = []
    _validate_money(errors, "loan_amount", completion.loan_amount)
    if completion.commission_rate is not None and not (0 <= completion.commission_rate <= 1):
        errors.append(FieldError(field="commission_rate", message="commission_rate must be a fraction between 0 and 1"))
    if errors:
        raise ValidationError("Invalid application payload", errors)

    if existing is not None and not existing.is_open:
        raise TransitionRejected(
            f"Application {existing.id} was already submitted to ARF",
            current=existing.status.value,
            event=PipelineEvent.APPLICATION_COMPLETED.value,
        )

    data: Dict[str, Any] = dict(existing.application_data) if existing is not None else {}
    data.update(completion.application_data)
    if completion.voice_data is not None:
        data["voice_data"] = dict(completion.voice_data)

    if existing is None:
        loan_amount = completion.loan_amount
        commission_rate = completion.commission_rate
        if commission_rate is None:
            commission_rate = DEFAULT_COMMISSION_RATE
        application = Application(
            id=application_id,
            prospect_id=prospect.id,
            application_data=data,
            status=ApplicationStatus.DRAFT,
            documents_uploaded=bool(completion.documents_uploaded),
            submitted_to_arf=False,
            loan_amount=loan_amount,
            commission_rate=commission_rate,
            commission_amount=compute_commission(loan_amount, commission_rate),
            created_at=now,
            updated_at=now,
        )
    else:
        loan_amount = completion.loan_amount if completion.loan_amount is not None else existing.loan_amount
        commission_rate = (
            completion.commission_rate if completion.commission_rate is not None else existing.commission_rate
        )
        documents_uploaded = (
            completion.documents_uploaded
            if completion.documents_uploaded is not None
            else existing.documents_uploaded
        )
        application = replace(
            existing,
            application_data=data,
            documents_uploaded=documents_uploaded,
            loan_amount=loan_amount,
            commission_rate=commission_rate,
            commission_amount=compute_commission(loan_amount, commission_rate),
            updated_at=now,
        )

    return ApplicationOutcome(
        application=application,
        created=existing is None,
        status_change=_propagate(prospect, PipelineEvent.APPLICATION_COMPLETED),
    )


def submit_to_arf(
    application: Application,
    prospect: Optional[Prospect],
    submission: ArfSubmission,
    now: datetime,
) -> ApplicationOutcome:
    """
    Mark an open application as submitted to ARF.

    The submission metadata is stored as application_data["arf_submission"]
    (latest) and appended to application_data["arf_submissions"] (history), so
    repeated submissions stay distinguishable.
    """

    if application.submitted_to_arf:
        raise TransitionRejected(
            f"Application {application.id} was already submitted to ARF",
            current=application.status.value,
            event=PipelineEvent.SUBMITTED_TO_ARF.value,
        )
    if submission.status not in ARF_SUBMISSION_STATUSES:
        allowed = ", ".join(sorted(s.value for s in ARF_SUBMISSION_STATUSES))
        raise ValidationError.for_field("submission_status", f"submission_status must be one of: {allowed}")

    record = {
        "arf_reference_number": submission.arf_reference_number,
        "submission_notes": submission.submission_notes,
        "expected_funding_date": submission.expected_funding_date,
        "submission_status": submission.status.value,
        "submitted_at": now.isoformat(),
    }
    data: Dict[str, Any] = dict(application.application_data)
    history = list(data.get("arf_submissions") or [])
    history.append(record)
    data["arf_submission"] = record
    data["arf_submissions"] = history

    updated = replace(
        application,
        application_data=data,
        submitted_to_arf=True,
        arf_submission_date=now,
        status=submission.status,
        updated_at=now,
    )
    return ApplicationOutcome(
        application=updated,
        created=False,
        status_change=_propagate(prospect, PipelineEvent.SUBMITTED_TO_ARF),
    )


def update_arf_status(
    application: Application,
    prospect: Optional[Prospect],
    update: ArfStatusUpdate,
    now: datetime,
) -> ApplicationOutcome:
    """
    Apply a status reported by ARF.

    funded sets funding_date (default now) and moves the prospect to funded;
    declined moves the prospect to declined. under_review/approved touch the
    application only. A funded/declined application accepts no further updates.
    """

    if update.status not in ARF_UPDATE_STATUSES:
        allowed = ", ".join(sorted(s.value for s in ARF_UPDATE_STATUSES))
        raise ValidationError.for_field("status", f"status must be one of: {allowed}")
    if update.funding_amount is not None and update.funding_amount < 0:
        raise ValidationError.for_field("funding_amount", "funding_amount must be non-negative")
    if application.status.is_terminal:
        raise TransitionRejected(
            f"Application {application.id} is already {application.status.value}",
            current=application.status.value,
            event=update.status.value,
        )

    funding_date = application.funding_date
    status_change = None
    if update.status is ApplicationStatus.FUNDED:
        funding_date = update.funding_date or now
        status_change = _propagate(prospect, PipelineEvent.FUNDED)
    elif update.status is ApplicationStatus.DECLINED:
        status_change = _propagate(prospect, PipelineEvent.DECLINED)

    data: Dict[str, Any] = dict(application.application_data)
    history = list(data.get("arf_status_updates") or [])
    history.append(
        {
            "status": update.status.value,
            "funding_amount": _json_number(update.funding_amount),
            "funding_date": funding_date.isoformat() if update.status is ApplicationStatus.FUNDED else None,
            "decline_reason": update.decline_reason,
            "updated_at": now.isoformat(),
        }
    )
    data["arf_status_updates"] = history

    updated = replace(
        application,
        application_data=data,
        status=update.status,
        funding_date=funding_date,
        updated_at=now,
    )
    return ApplicationOutcome(application=updated, created=False, status_change=status_change)


def matches_test_pattern(business_name: str, patterns: Iterable[str] = TEST_BUSINESS_PATTERNS) -> bool:
    name = business_name.lower()
    return any(pattern.lower() in name for pattern in patterns)


def plan_bulk_delete(
    candidates: Sequence[Prospect],
    prospect_ids: Optional[Sequence[UUID]] = None,
    delete_all_test_data: bool = False,
) -> BulkDeletePlan:
    """
    Choose which prospects an administrative bulk delete removes.

    Either every candidate whose business name matches a test pattern, or the
    candidates whose id was listed. Deletes never cascade to conversations,
    applications or audit records.
    """

    if delete_all_test_data:
        selected = tuple(p for p in candidates if matches_test_pattern(p.business_name))
        return BulkDeletePlan(prospects=selected, delete_type="test_data_cleanup")

    if not prospect_ids:
        raise ValidationError.for_field(
            "prospect_ids",
            "Either prospect_ids array or delete_all_test_data flag is required",
        )
    wanted = set(prospect_ids)
    selected = tuple(p for p in candidates if p.id in wanted)
    return BulkDeletePlan(prospects=selected, delete_type="selective_delete")


__all__ = [
    "PipelineEvent",
    "TRANSITIONS",
    "ARF_UPDATE_STATUSES",
    "ARF_SUBMISSION_STATUSES",
    "TEST_BUSINESS_PATTERNS",
    "transition",
    "advance",
    "StatusChange",
    "ConversationUpdate",
    "ApplicationCompletion",
    "ArfSubmission",
    "ArfStatusUpdate",
    "OutreachOutcome",
    "ConversationOutcome",
    "ApplicationOutcome",
    "BulkDeletePlan",
    "validate_qualification_score",
    "default_outreach_message",
    "start_outreach",
    "open_conversation",
    "update_conversation",
    "complete_application",
    "submit_to_arf",
    "update_arf_status",
    "matches_test_pattern",
    "plan_bulk_delete",
]
