"""
Tests for `domain/prospect_intake.py`.

Covers contract rules:
- business_name and industry are required non-empty strings.
- email must look like an address; estimated_revenue must be a non-negative number.
- A bulk batch is all-or-nothing and reports every failing (index, field).
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.errors import ValidationError
from domain.prospect_intake import (
    MAX_IMPORT_BATCH,
    validate_import_batch,
    validate_new_prospect,
    validate_prospect_record,
)


def _fields(errors):
    return [(e.index, e.field) for e in errors]


def test_valid_record_has_no_errors() -> None:
    record = {
        "business_name": "Acme",
        "industry": "Retail",
        "email": "owner@acme.com",
        "estimated_revenue": 250000,
    }

    assert validate_prospect_record(0, record) == []


@pytest.mark.parametrize(
    "record, field",
    [
        ({"business_name": "", "industry": "Retail"}, "business_name"),
        ({"business_name": "   ", "industry": "Retail"}, "business_name"),
        ({"business_name": 42, "industry": "Retail"}, "business_name"),
        ({"business_name": "Acme"}, "industry"),
        ({"business_name": "Acme", "industry": "Retail", "email": "not-an-email"}, "email"),
        ({"business_name": "Acme", "industry": "Retail", "email": "a b@c.com"}, "email"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": -1}, "estimated_revenue"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": "lots"}, "estimated_revenue"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": True}, "estimated_revenue"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": float("nan")}, "estimated_revenue"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": float("inf")}, "estimated_revenue"),
        ({"business_name": "Acme", "industry": "Retail", "estimated_revenue": Decimal("NaN")}, "estimated_revenue"),
    ],
)
def test_invalid_field_is_reported(record, field) -> None:
    assert _fields(validate_prospect_record(7, record)) == [(7, field)]


def test_new_prospect_is_trimmed() -> None:
    draft = validate_new_prospect(
        {"business_name": "  Acme  ", "industry": "Retail ", "email": "", "estimated_revenue": 10.5}
    )

    assert draft.business_name == "Acme"
    assert draft.industry == "Retail"
    assert draft.email is None
    assert draft.estimated_revenue == Decimal("10.5")


def test_new_prospect_missing_required_fields() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_new_prospect({"business_name": "Acme"})

    assert exc_info.value.message == "Business name and industry are required"


def test_batch_rejects_empty_and_oversized() -> None:
    with pytest.raises(ValidationError) as empty:
        validate_import_batch([])
    assert empty.value.message == "Empty prospects array provided"

    record = {"business_name": "Acme", "industry": "Retail"}
    with pytest.raises(ValidationError) as too_many:
        validate_import_batch([record] * (MAX_IMPORT_BATCH + 1))
    assert too_many.value.message == "Maximum 1000 prospects allowed per bulk import"

    assert len(validate_import_batch([record] * MAX_IMPORT_BATCH)) == MAX_IMPORT_BATCH


def test_batch_reports_every_failure_and_returns_nothing() -> None:
    records = [
        {"business_name": "Acme", "industry": "Retail"},
        {"business_name": "", "industry": ""},
        "not an object",
        {"business_name": "Beta", "industry": "Retail", "email": "bad"},
    ]

    with pytest.raises(ValidationError) as exc_info:
        validate_import_batch(records)

    error = exc_info.value
    assert _fields(error.errors) == [
        (1, "business_name"),
        (1, "industry"),
        (2, "prospect"),
        (3, "email"),
    ]
    assert error.context == {"total_prospects": 4, "failed_prospects": 3, "valid_prospects": 1}
