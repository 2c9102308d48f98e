"""
Domain: validation of raw prospect records (manual entry and bulk import).

Records arrive loosely typed from external callers (forms, automation tools).
Each record is checked field by field so a caller gets every problem at once,
with the record index, instead of failing on the first one.

Batch semantics are all-or-nothing: `validate_import_batch` returns cleaned
drafts only when every record passed.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from .errors import FieldError, ValidationError
from .prospect import Prospect, ProspectStatus

MAX_IMPORT_BATCH = 1000

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True, slots=True)
class ProspectDraft:
    """A validated, trimmed prospect record that has not been stored yet."""

    business_name: str
    industry: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    estimated_revenue: Optional[Decimal] = None

    def to_prospect(self, prospect_id: UUID, now: datetime) -> Prospect:
        return Prospect(
            id=prospect_id,
            business_name=self.business_name,
            industry=self.industry,
            status=ProspectStatus.NEW,
            contact_name=self.contact_name,
            email=self.email,
            phone=self.phone,
            estimated_revenue=self.estimated_revenue,
            created_at=now,
            updated_at=now,
        )


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or value.strip() == ""


def _is_revenue_figure(value: Any) -> bool:
    # bool is an int subclass; a checkbox value is not a revenue figure.
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    # JSON NaN/Infinity literals parse to floats that compare False against 0.
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return True


def _optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def validate_prospect_record(index: int, record: Mapping[str, Any]) -> List[FieldError]:
    """Return every field-level problem with one raw record (empty list if valid)."""

    errors: List[FieldError] = []

    if _is_blank(record.get("business_name")):
        errors.append(
            FieldError(
                field="business_name",
                message="Business name is required and must be a non-empty string",
                index=index,
            )
        )

    if _is_blank(record.get("industry")):
        errors.append(
            FieldError(
                field="industry",
                message="Industry is required and must be a non-empty string",
                index=index,
            )
        )

    email = record.get("email")
    if isinstance(email, str) and email.strip() and not EMAIL_PATTERN.match(email.strip()):
        errors.append(FieldError(field="email", message="Invalid email format", index=index))

    revenue = record.get("estimated_revenue")
    if revenue is not None:
        if not _is_revenue_figure(revenue) or revenue < 0:
            errors.append(
                FieldError(
                    field="estimated_revenue",
                    message="Estimated revenue must be a non-negative number",
                    index=index,
                )
            )

    return errors


def clean_prospect_record(record: Mapping[str, Any]) -> ProspectDraft:
    """Trim a record that already passed validation."""

    revenue = record.get("estimated_revenue")
    estimated_revenue: Optional[Decimal] = None
    if revenue is not None:
        try:
            estimated_revenue = Decimal(str(revenue))
        except InvalidOperation:
            raise ValidationError.for_field("estimated_revenue", "Estimated revenue must be a non-negative number")

    return ProspectDraft(
        business_name=str(record["business_name"]).strip(),
        industry=str(record["industry"]).strip(),
        contact_name=_optional_text(record.get("contact_name")),
        email=_optional_text(record.get("email")),
        phone=_optional_text(record.get("phone")),
        estimated_revenue=estimated_revenue,
    )


def validate_new_prospect(record: Mapping[str, Any]) -> ProspectDraft:
    """Single-record variant used by manual entry; raises ValidationError."""

    errors = [
        FieldError(field=e.field, message=e.message)
        for e in validate_prospect_record(0, record)
    ]
    if not errors:
        return clean_prospect_record(record)

    if any(e.field in ("business_name", "industry") for e in errors):
        raise ValidationError("Business name and industry are required", errors)
    raise ValidationError("Invalid prospect", errors)


def validate_import_batch(records: Sequence[Any]) -> Tuple[ProspectDraft, ...]:
    """
    Validate a whole import batch.

    Raises ValidationError listing every failing record (index, field, message)
    if the batch is empty, too large, or contains any invalid record. Nothing
    from a failing batch is returned.
    """

    if len(records) == 0:
        raise ValidationError.for_field("prospects", "Empty prospects array provided")
    if len(records) > MAX_IMPORT_BATCH:
        raise ValidationError.for_field(
            "prospects", f"Maximum {MAX_IMPORT_BATCH} prospects allowed per bulk import"
        )

    errors: List[FieldError] = []
    drafts: List[ProspectDraft] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            errors.append(FieldError(field="prospect", message="Each prospect must be an object", index=index))
            continue
        record_errors = validate_prospect_record(index, record)
        if record_errors:
            errors.extend(record_errors)
        else:
            drafts.append(clean_prospect_record(record))

    if errors:
        failed_indexes = {e.index for e in errors}
        raise ValidationError(
            "Validation failed for some prospects",
            errors,
            context={
                "total_prospects": len(records),
                "failed_prospects": len(failed_indexes),
                "valid_prospects": len(drafts),
            },
        )

    return tuple(drafts)


__all__ = [
    "MAX_IMPORT_BATCH",
    "EMAIL_PATTERN",
    "ProspectDraft",
    "validate_prospect_record",
    "clean_prospect_record",
    "validate_new_prospect",
    "validate_import_batch",
]
