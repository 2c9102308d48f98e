"""
Prospect service: manual entry, bulk import and administrative bulk delete.

Handles:
- Field validation before anything is written
- All-or-nothing bulk import (max 1000 records) with one summary audit record
- Test-data cleanup by business-name pattern
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import BATCH_ENTITY_ID, Action, ActivityEntry, EntityType
from domain.pipeline import TEST_BUSINESS_PATTERNS, matches_test_pattern, plan_bulk_delete
from domain.prospect import Prospect
from domain.prospect_intake import ProspectDraft, validate_import_batch, validate_new_prospect
from domain.time import utc_now
from repositories.prospect_repository import (
    delete_prospects,
    insert_prospect,
    insert_prospects_bulk,
    list_prospects,
    list_prospects_by_ids,
)
from services.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Per-industry and contact-coverage figures for an imported batch."""

    industries: Dict[str, int]
    has_contact_info: int
    estimated_revenue_total: Decimal


@dataclass(frozen=True, slots=True)
class BulkImportResult:
    imported: List[Prospect]
    total_submitted: int
    summary: ImportSummary


@dataclass(frozen=True, slots=True)
class BulkDeleteResult:
    deleted: Tuple[Prospect, ...]
    delete_type: str


@dataclass(frozen=True, slots=True)
class BulkDeletePreview:
    all_prospects: List[Prospect]
    test_prospects: List[Prospect]
    test_patterns: Tuple[str, ...]


def summarize_import(drafts: Sequence[ProspectDraft]) -> ImportSummary:
    industries = Counter(d.industry for d in drafts)
    return ImportSummary(
        industries=dict(industries),
        has_contact_info=sum(1 for d in drafts if d.email or d.phone),
        estimated_revenue_total=sum((d.estimated_revenue or Decimal("0") for d in drafts), Decimal("0")),
    )


def create_prospect(db: Client, activity: ActivityLogger, record: Mapping[str, Any]) -> Prospect:
    """
    Add a single prospect with status `new`.

    Raises:
        ValidationError: business_name/industry missing, bad email or revenue.
    """

    draft = validate_new_prospect(record)
    prospect = insert_prospect(db, draft.to_prospect(uuid4(), utc_now()))
    logger.info("Prospect added: %s (%s)", prospect.business_name, prospect.id)

    activity.record(
        ActivityEntry(
            entity_type=EntityType.PROSPECT,
            entity_id=prospect.id,
            action=Action.PROSPECT_CREATED.value,
            description=f"Prospect {prospect.business_name} added",
            metadata={"industry": prospect.industry, "source": "manual"},
        )
    )
    return prospect


def bulk_import(
    db: Client,
    activity: ActivityLogger,
    records: Sequence[Any],
    source: str = "api",
) -> BulkImportResult:
    """
    Import a batch of prospects, all or nothing.

    Every record is validated first; if any fails, ValidationError lists each
    failing (index, field, message) and nothing is inserted. Otherwise the
    batch goes to Supabase as one insert and one `bulk_import` audit record
    summarizes it.
    """

    drafts = validate_import_batch(records)
    summary = summarize_import(drafts)

    now = utc_now()
    prospects = [draft.to_prospect(uuid4(), now) for draft in drafts]
    logger.info("Inserting %d valid prospects", len(prospects))
    imported = insert_prospects_bulk(db, prospects)

    activity.record(
        ActivityEntry(
            entity_type=EntityType.PROSPECT,
            entity_id=BATCH_ENTITY_ID,
            action=Action.BULK_IMPORT.value,
            description=f"Bulk imported {len(imported)} prospects via {source}",
            metadata={
                "imported_count": len(imported),
                "source": source,
                "timestamp": now.isoformat(),
                "industries": sorted(summary.industries),
                "has_contact_info": summary.has_contact_info,
                "estimated_revenue_total": float(summary.estimated_revenue_total),
            },
        )
    )

    return BulkImportResult(imported=imported, total_submitted=len(records), summary=summary)


def preview_bulk_delete(db: Client) -> BulkDeletePreview:
    prospects = list_prospects(db)
    return BulkDeletePreview(
        all_prospects=prospects,
        test_prospects=[p for p in prospects if matches_test_pattern(p.business_name)],
        test_patterns=TEST_BUSINESS_PATTERNS,
    )


def bulk_delete(
    db: Client,
    activity: ActivityLogger,
    prospect_ids: Optional[Sequence[UUID]] = None,
    delete_all_test_data: bool = False,
) -> BulkDeleteResult:
    """
    Delete prospects by id, or every prospect matching a test-data pattern.

    Conversations, applications and activity records of deleted prospects are
    left in place. One `bulk_delete` audit record covers the whole batch.
    """

    if delete_all_test_data:
        candidates = list_prospects(db)
    else:
        candidates = list_prospects_by_ids(db, prospect_ids or [])

    plan = plan_bulk_delete(candidates, prospect_ids, delete_all_test_data)
    if plan.count == 0:
        return BulkDeleteResult(deleted=(), delete_type=plan.delete_type)

    delete_prospects(db, plan.prospect_ids)
    logger.info("Bulk deleted %d prospects (%s)", plan.count, plan.delete_type)

    activity.record(
        ActivityEntry(
            entity_type=EntityType.PROSPECT,
            entity_id=BATCH_ENTITY_ID,
            action=Action.BULK_DELETE.value,
            description=f"Bulk deleted {plan.count} prospects",
            metadata={
                "deleted_count": plan.count,
                "deleted_prospects": [
                    {"id": str(p.id), "business_name": p.business_name} for p in plan.prospects
                ],
                "delete_type": plan.delete_type,
                "timestamp": utc_now().isoformat(),
            },
        )
    )
    return BulkDeleteResult(deleted=plan.prospects, delete_type=plan.delete_type)


__all__ = [
    "ImportSummary",
    "BulkImportResult",
    "BulkDeleteResult",
    "BulkDeletePreview",
    "summarize_import",
    "create_prospect",
    "bulk_import",
    "preview_bulk_delete",
    "bulk_delete",
]
