"""
Application repository (persistence).

This module provides *only* persistence operations for loan applications.
Commission amounts are computed by the domain and stored as given; they are
never recomputed on read.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from supabase import Client  # type: ignore[import-not-found]

from domain.application import Application, ApplicationStatus, DEFAULT_COMMISSION_RATE
from repositories.rows import (
    decimal_to_column,
    execute,
    optional_uuid,
    parse_optional_datetime,
    rows_of,
    to_decimal,
    to_iso_utc,
    to_optional_iso_utc,
)

_APPLICATIONS_TABLE: str = "applications"

# JSON path of the latest ARF reference number inside application_data.
_ARF_REFERENCE_PATH: str = "application_data->arf_submission->>arf_reference_number"


def _application_to_row(application: Application) -> dict[str, Any]:
    return {
        "id": str(application.id),
        "prospect_id": str(application.prospect_id) if application.prospect_id else None,
        "application_data": dict(application.application_data),
        "documents_uploaded": application.documents_uploaded,
        "submitted_to_arf": application.submitted_to_arf,
        "loan_amount": decimal_to_column(application.loan_amount),
        "commission_rate": decimal_to_column(application.commission_rate),
        "commission_amount": decimal_to_column(application.commission_amount),
        "arf_submission_date": to_optional_iso_utc(application.arf_submission_date, name="arf_submission_date"),
        "funding_date": to_optional_iso_utc(application.funding_date, name="funding_date"),
        "status": application.status.value,
        "created_at": to_optional_iso_utc(application.created_at, name="created_at"),
        "updated_at": to_optional_iso_utc(application.updated_at, name="updated_at"),
    }


def _row_to_application(row: Mapping[str, Any]) -> Application:
    commission_rate = to_decimal(row.get("commission_rate"))
    return Application(
        id=UUID(str(row["id"])),
        prospect_id=optional_uuid(row.get("prospect_id")),
        application_data=dict(row.get("application_data") or {}),
        status=ApplicationStatus(str(row.get("status") or ApplicationStatus.DRAFT.value)),
        documents_uploaded=bool(row.get("documents_uploaded") or False),
        submitted_to_arf=bool(row.get("submitted_to_arf") or False),
        loan_amount=to_decimal(row.get("loan_amount")),
        commission_rate=commission_rate if commission_rate is not None else DEFAULT_COMMISSION_RATE,
        commission_amount=to_decimal(row.get("commission_amount")),
        arf_submission_date=parse_optional_datetime(row.get("arf_submission_date")),
        funding_date=parse_optional_datetime(row.get("funding_date")),
        created_at=parse_optional_datetime(row.get("created_at")),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def insert_application(db: Client, application: Application) -> Application:
    response = execute(
        db.table(_APPLICATIONS_TABLE).insert(_application_to_row(application)),
        "insert application",
    )
    rows = rows_of(response)
    return _row_to_application(rows[0]) if rows else application


def save_application(db: Client, application: Application) -> Application:
    """Write every mutable column of an existing application."""

    payload = _application_to_row(application)
    for immutable in ("id", "prospect_id", "created_at"):
        payload.pop(immutable)

    response = execute(
        db.table(_APPLICATIONS_TABLE).update(payload).eq("id", str(application.id)),
        "update application",
    )
    rows = rows_of(response)
    return _row_to_application(rows[0]) if rows else application


def get_application_by_id(db: Client, application_id: UUID) -> Optional[Application]:
    response = execute(
        db.table(_APPLICATIONS_TABLE).select("*").eq("id", str(application_id)).limit(1),
        "fetch application",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_application(rows[0])


def find_open_application(db: Client, prospect_id: UUID) -> Optional[Application]:
    """
    Latest application for the prospect that has not been submitted to ARF.
    """

    response = execute(
        db.table(_APPLICATIONS_TABLE)
        .select("*")
        .eq("prospect_id", str(prospect_id))
        .eq("submitted_to_arf", False)
        .order("created_at", desc=True)
        .limit(1),
        "fetch open application",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_application(rows[0])


def _literal_pattern(value: str) -> str:
    # Case-insensitive exact match; LIKE wildcards in the reference are literal.
    return re.sub(r"([\\%_])", r"\\\1", value)


def find_application_by_arf_reference(db: Client, arf_reference_number: str) -> Optional[Application]:
    response = execute(
        db.table(_APPLICATIONS_TABLE)
        .select("*")
        .ilike(_ARF_REFERENCE_PATH, _literal_pattern(arf_reference_number))
        .order("created_at", desc=True)
        .limit(1),
        "fetch application by ARF reference",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_application(rows[0])


def list_applications(
    db: Client,
    status: Optional[ApplicationStatus] = None,
    submitted_to_arf: Optional[bool] = None,
    created_since: Optional[datetime] = None,
    submitted_since: Optional[datetime] = None,
) -> List[Application]:
    """List applications newest-first with optional filters."""

    query = db.table(_APPLICATIONS_TABLE).select("*")
    if status is not None:
        query = query.eq("status", status.value)
    if submitted_to_arf is not None:
        query = query.eq("submitted_to_arf", submitted_to_arf)
    if created_since is not None:
        query = query.gte("created_at", to_iso_utc(created_since, name="created_since"))
    if submitted_since is not None:
        query = query.gte("arf_submission_date", to_iso_utc(submitted_since, name="submitted_since"))
    query = query.order("created_at", desc=True)

    response = execute(query, "list applications")
    return [_row_to_application(row) for row in rows_of(response)]


def count_applications(db: Client, submitted_to_arf: Optional[bool] = None) -> int:
    query = db.table(_APPLICATIONS_TABLE).select("id", count="exact")
    if submitted_to_arf is not None:
        query = query.eq("submitted_to_arf", submitted_to_arf)

    response = execute(query, "count applications")
    count = getattr(response, "count", None)
    return count if count is not None else len(rows_of(response))


__all__ = [
    "insert_application",
    "save_application",
    "get_application_by_id",
    "find_open_application",
    "find_application_by_arf_reference",
    "list_applications",
    "count_applications",
]
