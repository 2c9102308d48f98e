"""
Domain: loan Application entity and commission economics.

Rules implemented here:
- commission_amount == loan_amount * commission_rate whenever loan_amount is set
  (computed exactly, no rounding); unset otherwise.
- loan_amount and commission_rate are non-negative.
- application_data is an accumulating document: updates merge into it.
- Application status funded/declined is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_optional_utc_timestamp

DEFAULT_COMMISSION_RATE = Decimal("0.02")


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    FUNDED = "funded"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.FUNDED, ApplicationStatus.DECLINED)


def compute_commission(loan_amount: Optional[Decimal], commission_rate: Decimal) -> Optional[Decimal]:
    """Referral fee owed on a loan; None while the loan amount is unknown."""

    if loan_amount is None:
        return None
    return loan_amount * commission_rate


@dataclass(frozen=True, slots=True)
class Application:
    """
    Immutable snapshot of an application row.

    `is_open` marks the application that find-or-create merges into: one that
    has not yet been submitted to ARF.
    """

    id: UUID
    prospect_id: Optional[UUID]
    application_data: Mapping[str, Any]
    status: ApplicationStatus = ApplicationStatus.DRAFT
    documents_uploaded: bool = False
    submitted_to_arf: bool = False
    loan_amount: Optional[Decimal] = None
    commission_rate: Decimal = DEFAULT_COMMISSION_RATE
    commission_amount: Optional[Decimal] = None
    arf_submission_date: Optional[datetime] = None
    funding_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.loan_amount is not None and self.loan_amount < 0:
            raise ValueError("loan_amount must be non-negative")
        if self.commission_rate < 0:
            raise ValueError("commission_rate must be non-negative")
        require_optional_utc_timestamp("arf_submission_date", self.arf_submission_date)
        require_optional_utc_timestamp("funding_date", self.funding_date)
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_open(self) -> bool:
        return not self.submitted_to_arf

    @property
    def arf_reference_number(self) -> Optional[str]:
        submission = self.application_data.get("arf_submission") or {}
        return submission.get("arf_reference_number")


__all__ = [
    "DEFAULT_COMMISSION_RATE",
    "ApplicationStatus",
    "compute_commission",
    "Application",
]
