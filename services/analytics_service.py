"""
Analytics service: pipeline counts, dashboard stat cards and commission reports.

The summary functions are pure and work on already-loaded domain objects; the
`load_*` functions fetch what they need from Supabase and delegate.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from supabase import Client  # type: ignore[import-not-found]

from domain.application import Application, ApplicationStatus
from domain.errors import ValidationError
from domain.prospect import Prospect, ProspectStatus
from domain.time import utc_now
from repositories.application_repository import count_applications, list_applications
from repositories.conversation_repository import count_conversations
from repositories.prospect_repository import count_prospects, list_prospects

logger = logging.getLogger(__name__)

# Look-back window per time_range value; None means no lower bound.
TIME_RANGES: Dict[str, Optional[timedelta]] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
    "all": None,
}
DEFAULT_TIME_RANGE = "90d"

MONTHS_SHOWN = 6
TOP_INDUSTRIES = 8
UNKNOWN_INDUSTRY = "Unknown"

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class DashboardStats:
    prospects_ready: int
    active_conversations: int
    applications_in_progress: int
    deals_submitted: int


@dataclass(frozen=True, slots=True)
class PipelineSummary:
    total: int
    by_status: Dict[str, int]
    average_estimated_revenue: Optional[Decimal]


@dataclass(frozen=True, slots=True)
class MonthlyStat:
    month: str  # YYYY-MM
    applications: int
    submissions: int
    commissions: Decimal


@dataclass(frozen=True, slots=True)
class IndustryStat:
    industry: str
    count: int
    commissions: Decimal


@dataclass(frozen=True, slots=True)
class CommissionAnalytics:
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
    monthly: List[MonthlyStat]
    industries: List[IndustryStat]


def range_start(time_range: str, now: datetime) -> Optional[datetime]:
    """Lower bound for a time_range value (None for `all`)."""

    if time_range not in TIME_RANGES:
        allowed = ", ".join(TIME_RANGES)
        raise ValidationError.for_field("time_range", f"time_range must be one of: {allowed}")
    window = TIME_RANGES[time_range]
    return now - window if window is not None else None


def _commission(application: Application) -> Decimal:
    return application.commission_amount if application.commission_amount is not None else _ZERO


def summarize_pipeline(prospects: Sequence[Prospect]) -> PipelineSummary:
    counts = Counter(p.status for p in prospects)
    revenues = [p.estimated_revenue for p in prospects if p.estimated_revenue is not None]
    average = sum(revenues, _ZERO) / len(revenues) if revenues else None
    return PipelineSummary(
        total=len(prospects),
        by_status={status.value: counts.get(status, 0) for status in ProspectStatus},
        average_estimated_revenue=average,
    )


def monthly_breakdown(applications: Sequence[Application], months: int = MONTHS_SHOWN) -> List[MonthlyStat]:
    """Per-month application figures, oldest first, limited to the last `months` months with data."""

    buckets: Dict[str, List[Application]] = defaultdict(list)
    for application in applications:
        if application.created_at is None:
            continue
        buckets[application.created_at.strftime("%Y-%m")].append(application)

    stats = [
        MonthlyStat(
            month=month,
            applications=len(items),
            submissions=sum(1 for a in items if a.submitted_to_arf),
            commissions=sum((_commission(a) for a in items), _ZERO),
        )
        for month, items in sorted(buckets.items())
    ]
    return stats[-months:]


def industry_breakdown(
    applications: Sequence[Application],
    industry_by_prospect: Mapping[object, str],
    top: int = TOP_INDUSTRIES,
) -> List[IndustryStat]:
    """Applications and commissions per prospect industry, highest commissions first."""

    counts: Counter = Counter()
    commissions: Dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for application in applications:
        industry = industry_by_prospect.get(application.prospect_id) or UNKNOWN_INDUSTRY
        counts[industry] += 1
        commissions[industry] += _commission(application)

    stats = [IndustryStat(industry=i, count=counts[i], commissions=commissions[i]) for i in counts]
    stats.sort(key=lambda s: s.commissions, reverse=True)
    return stats[:top]


def summarize_commissions(
    time_range: str,
    prospects: Sequence[Prospect],
    applications: Sequence[Application],
    submissions: Sequence[Application],
    industry_by_prospect: Mapping[object, str],
) -> CommissionAnalytics:
    """
    Commission report over already-filtered rows.

    - conversion rate: submissions / prospects * 100
    - funded: commissions of funded applications
    - pending: commissions of applications neither funded nor declined
    """

    total_commissions = sum((_commission(a) for a in applications), _ZERO)
    funded = sum((_commission(a) for a in applications if a.status is ApplicationStatus.FUNDED), _ZERO)
    pending = sum((_commission(a) for a in applications if not a.status.is_terminal), _ZERO)

    total_loans = sum((a.loan_amount for a in applications if a.loan_amount is not None), _ZERO)
    n_applications = len(applications)

    return CommissionAnalytics(
        time_range=time_range,
        total_prospects=len(prospects),
        total_applications=n_applications,
        total_submissions=len(submissions),
        total_commissions=total_commissions,
        funded_commissions=funded,
        pending_commissions=pending,
        conversion_rate=(len(submissions) / len(prospects) * 100) if prospects else 0.0,
        average_deal_size=total_loans / n_applications if n_applications else _ZERO,
        average_commission=total_commissions / n_applications if n_applications else _ZERO,
        monthly=monthly_breakdown(applications),
        industries=industry_breakdown(applications, industry_by_prospect),
    )


def load_dashboard_stats(db: Client) -> DashboardStats:
    return DashboardStats(
        prospects_ready=count_prospects(db, status=ProspectStatus.NEW),
        active_conversations=count_conversations(db, qualified=False),
        applications_in_progress=count_applications(db, submitted_to_arf=False),
        deals_submitted=count_applications(db, submitted_to_arf=True),
    )


def load_pipeline_summary(db: Client) -> PipelineSummary:
    return summarize_pipeline(list_prospects(db))


def load_commission_analytics(
    db: Client,
    time_range: str = DEFAULT_TIME_RANGE,
    now: Optional[datetime] = None,
) -> CommissionAnalytics:
    since = range_start(time_range, now or utc_now())

    prospects = list_prospects(db, created_since=since)
    applications = list_applications(db, created_since=since)
    submissions = list_applications(db, submitted_to_arf=True, submitted_since=since)

    # Industry lookup spans every prospect; an application may outlive the window of its prospect.
    industry_by_prospect = {p.id: p.industry for p in list_prospects(db)}
    logger.debug(
        "Commission analytics %s: %d prospects, %d applications, %d submissions",
        time_range,
        len(prospects),
        len(applications),
        len(submissions),
    )
    return summarize_commissions(time_range, prospects, applications, submissions, industry_by_prospect)


__all__ = [
    "TIME_RANGES",
    "DEFAULT_TIME_RANGE",
    "DashboardStats",
    "PipelineSummary",
    "MonthlyStat",
    "IndustryStat",
    "CommissionAnalytics",
    "range_start",
    "summarize_pipeline",
    "monthly_breakdown",
    "industry_breakdown",
    "summarize_commissions",
    "load_dashboard_stats",
    "load_pipeline_summary",
    "load_commission_analytics",
]
