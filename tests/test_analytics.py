"""
Tests for `services/analytics_service.py`.

Covers:
- pipeline counts per status and average estimated revenue
- commission report: totals, funded vs pending, conversion rate
- monthly (last 6 months) and industry (top 8, "Unknown" fallback) breakdowns
- time_range validation and the Supabase-backed loaders
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from domain.application import Application, ApplicationStatus
from domain.errors import ValidationError
from domain.prospect import Prospect, ProspectStatus
from services.analytics_service import (
    industry_breakdown,
    load_commission_analytics,
    load_dashboard_stats,
    monthly_breakdown,
    range_start,
    summarize_commissions,
    summarize_pipeline,
)
from tests.fakes import application_row, conversation_row, prospect_row

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _prospect(status=ProspectStatus.NEW, industry="Retail", revenue=None) -> Prospect:
    return Prospect(id=uuid4(), business_name="Acme", industry=industry, status=status, estimated_revenue=revenue)


def _application(
    prospect_id=None,
    status=ApplicationStatus.DRAFT,
    commission="0",
    loan="0",
    created_at=NOW,
    submitted=False,
) -> Application:
    return Application(
        id=uuid4(),
        prospect_id=prospect_id or uuid4(),
        application_data={},
        status=status,
        submitted_to_arf=submitted,
        loan_amount=Decimal(loan),
        commission_amount=Decimal(commission),
        created_at=created_at,
    )


def test_summarize_pipeline_counts_every_status() -> None:
    summary = summarize_pipeline(
        [
            _prospect(revenue=Decimal("100")),
            _prospect(revenue=Decimal("300")),
            _prospect(status=ProspectStatus.CONTACTED),
        ]
    )

    assert summary.total == 3
    assert summary.by_status["new"] == 2
    assert summary.by_status["contacted"] == 1
    assert summary.by_status["funded"] == 0
    assert set(summary.by_status) == {s.value for s in ProspectStatus}
    assert summary.average_estimated_revenue == Decimal("200")


def test_summarize_pipeline_without_revenue() -> None:
    assert summarize_pipeline([_prospect()]).average_estimated_revenue is None


def test_commission_report_splits_funded_and_pending() -> None:
    applications = [
        _application(status=ApplicationStatus.FUNDED, commission="2000", loan="100000", submitted=True),
        _application(status=ApplicationStatus.SUBMITTED, commission="500", loan="25000", submitted=True),
        _application(status=ApplicationStatus.DECLINED, commission="300", loan="15000", submitted=True),
        _application(status=ApplicationStatus.DRAFT, commission="100", loan="5000"),
    ]
    prospects = [_prospect() for _ in range(6)]
    submissions = [a for a in applications if a.submitted_to_arf]

    report = summarize_commissions("90d", prospects, applications, submissions, {})

    assert report.total_commissions == Decimal("2900")
    assert report.funded_commissions == Decimal("2000")
    assert report.pending_commissions == Decimal("600")
    assert report.conversion_rate == pytest.approx(50.0)
    assert report.average_deal_size == Decimal("36250")
    assert report.average_commission == Decimal("725")


def test_pending_commissions_leave_out_declined_applications() -> None:
    applications = [
        _application(status=ApplicationStatus.DECLINED, commission="300", loan="15000", submitted=True),
        _application(status=ApplicationStatus.APPROVED, commission="400", loan="20000", submitted=True),
    ]

    report = summarize_commissions("all", [_prospect()], applications, applications, {})

    assert report.total_commissions == Decimal("700")
    assert report.funded_commissions == Decimal("0")
    assert report.pending_commissions == Decimal("400")


def test_commission_report_with_no_data() -> None:
    report = summarize_commissions("all", [], [], [], {})

    assert report.conversion_rate == 0.0
    assert report.total_commissions == Decimal("0")
    assert report.average_deal_size == Decimal("0")
    assert report.monthly == []
    assert report.industries == []


def test_monthly_breakdown_keeps_last_six_months() -> None:
    applications = [
        _application(created_at=datetime(2024, month, 3, tzinfo=timezone.utc), commission="10")
        for month in range(1, 9)
    ]
    applications.append(
        _application(created_at=datetime(2024, 8, 20, tzinfo=timezone.utc), commission="5", submitted=True)
    )

    months = monthly_breakdown(applications)

    assert [m.month for m in months] == ["2024-03", "2024-04", "2024-05", "2024-06", "2024-07", "2024-08"]
    assert months[-1].applications == 2
    assert months[-1].submissions == 1
    assert months[-1].commissions == Decimal("15")


def test_industry_breakdown_ranks_by_commission_and_caps_at_eight() -> None:
    industry_by_prospect = {}
    applications = []
    for i in range(10):
        prospect_id = uuid4()
        industry_by_prospect[prospect_id] = f"Industry {i}"
        applications.append(_application(prospect_id=prospect_id, commission=str(i * 100)))

    stats = industry_breakdown(applications, industry_by_prospect)

    assert len(stats) == 8
    assert stats[0].industry == "Industry 9"
    assert stats[0].commissions == Decimal("900")
    assert "Industry 0" not in {s.industry for s in stats}


def test_industry_breakdown_falls_back_to_unknown() -> None:
    stats = industry_breakdown([_application(commission="50")], {})

    assert [(s.industry, s.count) for s in stats] == [("Unknown", 1)]


def test_range_start() -> None:
    assert range_start("7d", NOW) == NOW - timedelta(days=7)
    assert range_start("1y", NOW) == NOW - timedelta(days=365)
    assert range_start("all", NOW) is None


def test_unknown_time_range_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        range_start("2w", NOW)

    assert exc_info.value.errors[0].field == "time_range"


def test_load_dashboard_stats(db) -> None:
    new, contacted = db.seed("prospects", prospect_row(), prospect_row(status="contacted"))
    db.seed("conversations", conversation_row(contacted["id"]), conversation_row(new["id"], qualified=True))
    db.seed(
        "applications",
        application_row(contacted["id"]),
        application_row(contacted["id"], submitted_to_arf=True, status="submitted"),
    )

    stats = load_dashboard_stats(db)

    assert stats.prospects_ready == 1
    assert stats.active_conversations == 1
    assert stats.applications_in_progress == 1
    assert stats.deals_submitted == 1


def test_load_commission_analytics_applies_time_range(db) -> None:
    old = (NOW - timedelta(days=200)).isoformat()
    recent = (NOW - timedelta(days=3)).isoformat()
    prospect, _ = db.seed(
        "prospects",
        prospect_row(industry="Retail", created_at=recent),
        prospect_row(created_at=old),
    )
    db.seed(
        "applications",
        application_row(
            prospect["id"],
            loan_amount="100000",
            commission_amount="2000",
            status="submitted",
            submitted_to_arf=True,
            arf_submission_date=recent,
            created_at=recent,
        ),
        application_row(prospect["id"], loan_amount="5000", commission_amount="100", created_at=old),
    )

    report = load_commission_analytics(db, "30d", now=NOW)

    assert report.total_prospects == 1
    assert report.total_applications == 1
    assert report.total_submissions == 1
    assert report.total_commissions == Decimal("2000")
    assert report.conversion_rate == pytest.approx(100.0)
    assert report.industries[0].industry == "Retail"

    everything = load_commission_analytics(db, "all", now=NOW)
    assert everything.total_applications == 2
