"""
Prospects API Endpoints.

Manual entry, listing, bulk import and administrative bulk delete.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_activity_logger, get_db
from api.models import (
    BulkDeletePreviewResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkImportInfoResponse,
    BulkImportRequest,
    BulkImportResponse,
    DeletedProspect,
    ImportedProspect,
    ImportSummaryResponse,
    ProspectCreateRequest,
    ProspectEnvelope,
    ProspectListResponse,
    ProspectResponse,
)
from domain.errors import NotFoundError, PipelineError, ValidationError
from domain.prospect import ProspectStatus
from domain.prospect_intake import MAX_IMPORT_BATCH
from repositories.client import Client
from repositories.prospect_repository import get_prospect_by_id, list_prospects
from services.activity_logger import ActivityLogger
from services.prospect_service import bulk_delete, bulk_import, create_prospect, preview_bulk_delete

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_status_filter(status: Optional[str]) -> Optional[ProspectStatus]:
    if status is None or status == "all":
        return None
    try:
        return ProspectStatus(status)
    except ValueError:
        allowed = ", ".join(["all"] + [s.value for s in ProspectStatus])
        raise ValidationError.for_field("status", f"status must be one of: {allowed}") from None


@router.post(
    "/prospects",
    response_model=ProspectEnvelope,
    summary="Add Prospect",
    description="Add a single prospect. New prospects always start in status 'new'."
)
def add_prospect(
    request: ProspectCreateRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    try:
        prospect = create_prospect(db, activity, request.model_dump())
        return ProspectEnvelope(prospect=ProspectResponse.from_domain(prospect))

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to add prospect")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to add prospect: {str(e)}"
        )


@router.get(
    "/prospects",
    response_model=ProspectListResponse,
    summary="List Prospects",
    description="List prospects newest-first, optionally filtered by pipeline status."
)
def get_prospects(
    status: Optional[str] = Query(None, description="Pipeline status, or 'all'"),
    db: Client = Depends(get_db),
):
    """
    List prospects.

    **Status values:** all, new, contacted, qualified, application, submitted,
    funded, declined
    """
    try:
        status_filter = _parse_status_filter(status)
        prospects = list_prospects(db, status=status_filter)
        return ProspectListResponse(
            prospects=[ProspectResponse.from_domain(p) for p in prospects],
            count=len(prospects),
            status_filter=status_filter.value if status_filter else "all",
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to list prospects")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch prospects: {str(e)}"
        )


@router.post(
    "/prospects/bulk-import",
    response_model=BulkImportResponse,
    summary="Bulk Import Prospects",
    description=f"Import up to {MAX_IMPORT_BATCH} prospects in one all-or-nothing batch."
)
def import_prospects(
    request: BulkImportRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Bulk import prospects.

    Every record is validated before anything is written. If any record fails,
    the response is 400 and lists each failure as {index, field, message};
    nothing is imported.
    """
    try:
        result = bulk_import(db, activity, request.prospects)
        return BulkImportResponse(
            message=f"Successfully imported {len(result.imported)} prospects",
            imported_count=len(result.imported),
            total_submitted=result.total_submitted,
            validation_passed=len(result.imported),
            imported_prospects=[
                ImportedProspect(
                    id=p.id,
                    business_name=p.business_name,
                    industry=p.industry,
                    status=p.status.value,
                )
                for p in result.imported
            ],
            summary=ImportSummaryResponse(
                industries=result.summary.industries,
                has_contact_info=result.summary.has_contact_info,
                estimated_revenue_total=result.summary.estimated_revenue_total,
            ),
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Bulk import failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process bulk import request: {str(e)}"
        )


@router.get(
    "/prospects/bulk-import",
    response_model=BulkImportInfoResponse,
    summary="Bulk Import Usage"
)
def bulk_import_info():
    return BulkImportInfoResponse(
        endpoint="/prospects/bulk-import",
        method="POST",
        description="Bulk import prospects from automation tools or other sources",
        max_prospects=MAX_IMPORT_BATCH,
        required_fields=["business_name", "industry"],
        optional_fields=["contact_name", "email", "phone", "estimated_revenue"],
        payload_example=BulkImportRequest.model_json_schema().get("example", {}),
    )


@router.post(
    "/prospects/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Bulk Delete Prospects",
    description="Delete prospects by id, or every prospect matching a test-data pattern."
)
def delete_prospects_in_bulk(
    request: BulkDeleteRequest,
    db: Client = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Delete prospects.

    Conversations, applications and activity records of deleted prospects are
    not removed.
    """
    try:
        result = bulk_delete(
            db,
            activity,
            prospect_ids=request.prospect_ids,
            delete_all_test_data=request.delete_all_test_data,
        )
        if not result.deleted:
            message = "No prospects found to delete"
        else:
            message = f"Successfully deleted {len(result.deleted)} prospects"
        return BulkDeleteResponse(
            message=message,
            deleted_count=len(result.deleted),
            deleted_prospects=[DeletedProspect(id=p.id, business_name=p.business_name) for p in result.deleted],
            delete_type=result.delete_type,
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Bulk delete failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process bulk delete request: {str(e)}"
        )


@router.get(
    "/prospects/bulk-delete",
    response_model=BulkDeletePreviewResponse,
    summary="Preview Bulk Delete"
)
def preview_prospect_delete(db: Client = Depends(get_db)):
    """All prospects plus the subset a test-data cleanup would delete."""
    try:
        preview = preview_bulk_delete(db)
        return BulkDeletePreviewResponse(
            all_prospects=[ProspectResponse.from_domain(p) for p in preview.all_prospects],
            test_prospects=[ProspectResponse.from_domain(p) for p in preview.test_prospects],
            test_patterns=list(preview.test_patterns),
            total_count=len(preview.all_prospects),
            test_count=len(preview.test_prospects),
        )

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Bulk delete preview failed")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch prospects: {str(e)}"
        )


@router.get(
    "/prospects/{prospect_id}",
    response_model=ProspectEnvelope,
    summary="Get Prospect"
)
def get_prospect(prospect_id: UUID, db: Client = Depends(get_db)):
    try:
        prospect = get_prospect_by_id(db, prospect_id)
        if prospect is None:
            raise NotFoundError("Prospect", prospect_id)
        return ProspectEnvelope(prospect=ProspectResponse.from_domain(prospect))

    except (HTTPException, PipelineError):
        raise
    except Exception as e:
        logger.exception("Failed to fetch prospect %s", prospect_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch prospect: {str(e)}"
        )
