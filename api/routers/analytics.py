"""
Analytics API Endpoints.

Dashboard stat cards, pipeline counts and commission reporting.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_db
from api.models import (
    CommissionAnalyticsResponse,
    DashboardStatsResponse,
    IndustryStatResponse,
    MonthlyStatResponse,
    PipelineSummaryResponse,
)
from domain.errors import PipelineError
from repositories.client import Client
from services.analytics_service import (
    DEFAULT_TIME_RANGE,
    load_commission_analytics,
    load_dashboard_stats,
    load_pipeline_summary,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/analytics/dashboard", response_model=DashboardStatsResponse, summary="Dashboard Stats")
def dashboard(db: Client = Depends(get_db)):
    """
    Stat cards:
    - prospects_ready: prospects in status 'new'
    - active_conversations: conversations not yet qualified
    - applications_in_progress: applications not submitted to ARF
    - deals_submitted: applications submitted to ARF
    """
    try:
        stats = load_dashboard_stats(db)
        return DashboardStatsResponse(
            prospects_ready=stats.prospects_ready,
            active_conversations=stats.active_conversations,
            applications_in_progress=stats.applications_in_progress,
            deals_submitted=stats.deals_submitted,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to load dashboard stats")
        raise HTTPException(status_code=500, detail=f"Failed to fetch stats: {str(e)}")


@router.get("/analytics/pipeline", response_model=PipelineSummaryResponse, summary="Pipeline Summary")
def pipeline(db: Client = Depends(get_db)):
    try:
        summary = load_pipeline_summary(db)
        return PipelineSummaryResponse(
            total=summary.total,
            by_status=summary.by_status,
            average_estimated_revenue=summary.average_estimated_revenue,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to load pipeline summary")
        raise HTTPException(status_code=500, detail=f"Failed to fetch pipeline: {str(e)}")


@router.get("/analytics/commissions", response_model=CommissionAnalyticsResponse, summary="Commission Analytics")
def commissions(
    time_range: str = Query(DEFAULT_TIME_RANGE, description="7d, 30d, 90d, 1y or all"),
    db: Client = Depends(get_db),
):
    """
    Commission report for the selected window.

    conversion_rate is ARF submissions / prospects * 100. Pending commissions
    belong to applications that are neither funded nor declined.
    """
    try:
        report = load_commission_analytics(db, time_range)
        return CommissionAnalyticsResponse(
            time_range=report.time_range,
            total_prospects=report.total_prospects,
            total_applications=report.total_applications,
            total_submissions=report.total_submissions,
            total_commissions=report.total_commissions,
            funded_commissions=report.funded_commissions,
            pending_commissions=report.pending_commissions,
            conversion_rate=report.conversion_rate,
            average_deal_size=report.average_deal_size,
            average_commission=report.average_commission,
            monthly=[
                MonthlyStatResponse(
                    month=m.month,
                    applications=m.applications,
                    submissions=m.submissions,
                    commissions=m.commissions,
                )
                for m in report.monthly
            ],
            industries=[
                IndustryStatResponse(industry=i.industry, count=i.count, commissions=i.commissions)
                for i in report.industries
            ],
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to load commission analytics")
        raise HTTPException(status_code=500, detail=f"Failed to fetch analytics: {str(e)}")
