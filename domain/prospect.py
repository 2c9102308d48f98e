"""
Domain: Prospect entity.

A Prospect is a candidate business lead and the root of the pipeline aggregate.
Conversations, Applications and ActivityLog entries reference it by id only.

Rules implemented here:
- status is always one of the ProspectStatus values.
- estimated_revenue, when present, is non-negative.
- created_at/updated_at are UTC timestamps.

Status changes are decided by `domain.pipeline`, never by assigning a new
status directly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp


class ProspectStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    APPLICATION = "application"
    SUBMITTED = "submitted"
    FUNDED = "funded"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (ProspectStatus.FUNDED, ProspectStatus.DECLINED)


@dataclass(frozen=True, slots=True)
class Prospect:
    """
    Immutable snapshot of a prospect row.

    A status change produces a new instance via `with_status`; the original
    snapshot is left untouched so the rules engine can compare before/after.
    """

    id: UUID
    business_name: str
    industry: str
    status: ProspectStatus = ProspectStatus.NEW
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    estimated_revenue: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ProspectStatus):
            raise ValueError(f"Invalid prospect status: {self.status!r}")
        if self.estimated_revenue is not None and self.estimated_revenue < 0:
            raise ValueError("estimated_revenue must be non-negative")
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

    @property
    def has_contact_info(self) -> bool:
        return bool(self.email or self.phone)

    def with_status(self, status: ProspectStatus, updated_at: datetime) -> "Prospect":
        return replace(self, status=status, updated_at=updated_at)


__all__ = ["ProspectStatus", "Prospect"]
