"""
Application service: completion, ARF submission and ARF status updates.

Each operation loads the current snapshots, asks the rules engine for the
outcome, writes the application, then applies the prospect status change with
compare-and-swap. The audit record is written last and best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import Action, ActivityEntry, EntityType
from domain.application import Application, ApplicationStatus
from domain.errors import NotFoundError, ValidationError
from domain.pipeline import (
    ApplicationCompletion,
    ApplicationOutcome,
    ArfStatusUpdate,
    ArfSubmission,
    complete_application,
    submit_to_arf,
    update_arf_status,
)
from domain.prospect import Prospect, ProspectStatus
from domain.time import utc_now
from repositories.application_repository import (
    find_application_by_arf_reference,
    find_open_application,
    get_application_by_id,
    insert_application,
    save_application,
)
from repositories.prospect_repository import get_prospect_by_id
from services.activity_logger import ActivityLogger
from services.status_service import persist_status_change

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApplicationResult:
    application: Application
    created: bool
    business_name: Optional[str]
    prospect_status: Optional[ProspectStatus]


def format_money(amount: Optional[Decimal]) -> str:
    """Dollar formatting used in audit descriptions, e.g. `$2,000.00`."""

    if amount is None:
        return "$0.00"
    return f"${amount:,.2f}"


def _persist(
    db: Client,
    outcome: ApplicationOutcome,
    prospect: Optional[Prospect],
) -> tuple[Application, Optional[ProspectStatus]]:
    if outcome.created:
        stored = insert_application(db, outcome.application)
    else:
        stored = save_application(db, outcome.application)

    prospect_status = prospect.status if prospect is not None else None
    if outcome.status_change is not None:
        now = outcome.application.updated_at or utc_now()
        prospect_status = persist_status_change(db, outcome.status_change, now) or prospect_status
    return stored, prospect_status


def _owning_prospect(db: Client, application: Application) -> Optional[Prospect]:
    if application.prospect_id is None:
        return None
    prospect = get_prospect_by_id(db, application.prospect_id)
    if prospect is None:
        logger.warning("Application %s references missing prospect %s", application.id, application.prospect_id)
    return prospect


def record_application_completion(
    db: Client,
    activity: ActivityLogger,
    prospect_id: UUID,
    completion: ApplicationCompletion,
) -> ApplicationResult:
    """
    Merge a completed application into the prospect's open application, or
    create a new draft, and advance the prospect to `application`.

    Raises:
        NotFoundError: the prospect does not exist.
    """

    prospect = get_prospect_by_id(db, prospect_id)
    if prospect is None:
        raise NotFoundError("Prospect", prospect_id)

    existing = find_open_application(db, prospect_id)
    outcome = complete_application(prospect, existing, completion, uuid4(), utc_now())
    application, prospect_status = _persist(db, outcome, prospect)

    logger.info(
        "Application %s %s for %s",
        application.id,
        "created" if outcome.created else "updated",
        prospect.business_name,
    )

    action = Action.APPLICATION_COMPLETED if outcome.created else Action.APPLICATION_UPDATED
    activity.record(
        ActivityEntry(
            entity_type=EntityType.APPLICATION,
            entity_id=application.id,
            action=action.value,
            description=(
                f"Application {'completed' if outcome.created else 'updated'} for {prospect.business_name} "
                f"- {format_money(application.loan_amount)} loan amount"
            ),
            metadata={
                "prospect_id": str(prospect.id),
                "loan_amount": float(application.loan_amount) if application.loan_amount is not None else None,
                "commission_amount": (
                    float(application.commission_amount) if application.commission_amount is not None else None
                ),
                "documents_uploaded": application.documents_uploaded,
                "voice_data_included": completion.voice_data is not None,
            },
        )
    )

    return ApplicationResult(
        application=application,
        created=outcome.created,
        business_name=prospect.business_name,
        prospect_status=prospect_status,
    )


def record_arf_submission(
    db: Client,
    activity: ActivityLogger,
    submission: ArfSubmission,
    application_id: Optional[UUID] = None,
    prospect_id: Optional[UUID] = None,
) -> ApplicationResult:
    """
    Submit an application to ARF.

    The application is looked up by id, or as the prospect's latest open
    application. Nothing found is a validation failure (400), matching the
    dashboard's "no application found for submission" response.

    Raises:
        ValidationError: neither identifier resolves to an application.
        TransitionRejected: the application was already submitted.
    """

    application: Optional[Application] = None
    if application_id is not None:
        application = get_application_by_id(db, application_id)
    elif prospect_id is not None:
        application = find_open_application(db, prospect_id)

    if application is None:
        raise ValidationError.for_field("application_id", "No application found for submission")

    prospect = _owning_prospect(db, application)
    outcome = submit_to_arf(application, prospect, submission, utc_now())
    stored, prospect_status = _persist(db, outcome, prospect)

    business_name = prospect.business_name if prospect is not None else None
    logger.info("Application %s submitted to ARF (ref=%s)", stored.id, submission.arf_reference_number)

    activity.record(
        ActivityEntry(
            entity_type=EntityType.APPLICATION,
            entity_id=stored.id,
            action=Action.ARF_SUBMISSION.value,
            description=(
                f"Application submitted to ARF for {business_name or 'unknown prospect'} "
                f"- {format_money(stored.loan_amount)}"
            ),
            metadata={
                "arf_reference_number": submission.arf_reference_number,
                "submission_status": submission.status.value,
                "loan_amount": float(stored.loan_amount) if stored.loan_amount is not None else None,
                "commission_amount": float(stored.commission_amount) if stored.commission_amount is not None else None,
                "expected_funding_date": submission.expected_funding_date,
            },
        )
    )

    return ApplicationResult(
        application=stored,
        created=False,
        business_name=business_name,
        prospect_status=prospect_status,
    )


def record_arf_status_update(
    db: Client,
    activity: ActivityLogger,
    update: ArfStatusUpdate,
    application_id: Optional[UUID] = None,
) -> ApplicationResult:
    """
    Apply a status reported back by ARF.

    Raises:
        ValidationError: neither application_id nor arf_reference_number given.
        NotFoundError: no application matches.
        TransitionRejected: the application is already funded or declined.
    """

    if application_id is not None:
        application = get_application_by_id(db, application_id)
        identifier: object = application_id
    elif update.arf_reference_number:
        application = find_application_by_arf_reference(db, update.arf_reference_number)
        identifier = update.arf_reference_number
    else:
        raise ValidationError.for_field("application_id", "Either application_id or arf_reference_number is required")

    if application is None:
        raise NotFoundError("Application", identifier)

    prospect = _owning_prospect(db, application)
    outcome = update_arf_status(application, prospect, update, utc_now())
    stored, prospect_status = _persist(db, outcome, prospect)

    business_name = prospect.business_name if prospect is not None else None
    logger.info("Application %s ARF status -> %s", stored.id, update.status.value)

    if update.status is ApplicationStatus.FUNDED:
        description = (
            f"Application funded for {business_name or 'unknown prospect'} "
            f"- {format_money(stored.commission_amount)} commission"
        )
    elif update.status is ApplicationStatus.DECLINED:
        description = f"Application declined for {business_name or 'unknown prospect'}"
    else:
        description = f"Application status updated to {update.status.value}"

    activity.record(
        ActivityEntry(
            entity_type=EntityType.APPLICATION,
            entity_id=stored.id,
            action=Action.arf_status(update.status.value),
            description=description,
            metadata={
                "status": update.status.value,
                "funding_amount": float(update.funding_amount) if update.funding_amount is not None else None,
                "funding_date": stored.funding_date.isoformat() if stored.funding_date else None,
                "decline_reason": update.decline_reason,
                "arf_reference_number": update.arf_reference_number or stored.arf_reference_number,
            },
        )
    )

    return ApplicationResult(
        application=stored,
        created=False,
        business_name=business_name,
        prospect_status=prospect_status,
    )


__all__ = [
    "ApplicationResult",
    "format_money",
    "record_application_completion",
    "record_arf_submission",
    "record_arf_status_update",
]
