"""
Tests for the domain entities (`domain/prospect.py`, `domain/conversation.py`,
`domain/application.py`, `domain/activity.py`, `domain/errors.py`).

Covers contract rules:
- Entities are immutable snapshots.
- Every timestamp is timezone-aware UTC.
- Money and score fields stay within their allowed ranges.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.activity import BATCH_ENTITY_ID, Action
from domain.application import Application, ApplicationStatus, compute_commission
from domain.conversation import Channel, Conversation, Message, MessageDirection
from domain.errors import FieldError, NotFoundError, ValidationError
from domain.prospect import Prospect, ProspectStatus

NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
ID = UUID("00000000-0000-0000-0000-000000000001")


def test_prospect_is_immutable() -> None:
    prospect = Prospect(id=ID, business_name="Acme", industry="Retail")

    with pytest.raises(FrozenInstanceError):
        prospect.status = ProspectStatus.FUNDED  # type: ignore[misc]


def test_prospect_with_status_returns_new_snapshot() -> None:
    prospect = Prospect(id=ID, business_name="Acme", industry="Retail", created_at=NOW)

    moved = prospect.with_status(ProspectStatus.CONTACTED, NOW + timedelta(hours=1))

    assert prospect.status is ProspectStatus.NEW
    assert moved.status is ProspectStatus.CONTACTED
    assert moved.updated_at == NOW + timedelta(hours=1)


def test_prospect_rejects_unknown_status_and_negative_revenue() -> None:
    with pytest.raises(ValueError):
        Prospect(id=ID, business_name="Acme", industry="Retail", status="archived")  # type: ignore[arg-type]

    with pytest.raises(ValueError):
        Prospect(id=ID, business_name="Acme", industry="Retail", estimated_revenue=Decimal("-5"))


def test_prospect_timestamps_must_be_utc() -> None:
    with pytest.raises(ValueError):
        Prospect(id=ID, business_name="Acme", industry="Retail", created_at=datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        Prospect(
            id=ID,
            business_name="Acme",
            industry="Retail",
            created_at=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=-5))),
        )


def test_prospect_contact_info() -> None:
    assert Prospect(id=ID, business_name="Acme", industry="Retail", phone="555-0100").has_contact_info
    assert not Prospect(id=ID, business_name="Acme", industry="Retail").has_contact_info


def test_status_terminality() -> None:
    assert {s for s in ProspectStatus if s.is_terminal} == {ProspectStatus.FUNDED, ProspectStatus.DECLINED}
    assert {s for s in ApplicationStatus if s.is_terminal} == {ApplicationStatus.FUNDED, ApplicationStatus.DECLINED}


def test_conversation_score_bounds_and_append() -> None:
    with pytest.raises(ValueError):
        Conversation(id=ID, prospect_id=ID, channel=Channel.PHONE, last_contact=NOW, qualification_score=101)

    conversation = Conversation(id=ID, prospect_id=ID, channel=Channel.PHONE, last_contact=NOW)
    message = Message(timestamp=NOW, direction=MessageDirection.OUTBOUND, content="Hi")

    appended = conversation.append(message)

    assert conversation.messages == ()
    assert appended.messages == (message,)
    assert not appended.is_scored


def test_message_timestamp_must_be_utc() -> None:
    with pytest.raises(ValueError):
        Message(timestamp=datetime(2025, 1, 1), direction=MessageDirection.INBOUND, content="x")


def test_compute_commission_is_exact() -> None:
    assert compute_commission(Decimal("123456.78"), Decimal("0.025")) == Decimal("3086.41950")
    assert compute_commission(None, Decimal("0.02")) is None


def test_application_defaults_and_reference_number() -> None:
    application = Application(
        id=ID,
        prospect_id=ID,
        application_data={"arf_submission": {"arf_reference_number": "ARF-9"}},
    )

    assert application.status is ApplicationStatus.DRAFT
    assert application.commission_rate == Decimal("0.02")
    assert application.is_open
    assert application.arf_reference_number == "ARF-9"


def test_application_rejects_negative_loan() -> None:
    with pytest.raises(ValueError):
        Application(id=ID, prospect_id=ID, application_data={}, loan_amount=Decimal("-1"))


def test_arf_status_action_tags() -> None:
    assert Action.arf_status("funded") == "arf_funded"
    assert str(BATCH_ENTITY_ID) == "00000000-0000-0000-0000-000000000000"


def test_error_types() -> None:
    error = ValidationError.for_field("industry", "Industry is required")
    assert error.errors == [FieldError(field="industry", message="Industry is required")]
    assert FieldError("email", "Invalid email format", index=3).to_dict() == {
        "field": "email",
        "message": "Invalid email format",
        "index": 3,
    }
    assert str(NotFoundError("Prospect", "P1")) == "Prospect not found: P1"


def test_as_utc_normalizes_inbound_timestamps() -> None:
    from domain.time import as_utc

    naive = datetime(2025, 2, 14, 16, 0)
    eastern = datetime(2025, 2, 14, 11, 0, tzinfo=timezone(timedelta(hours=-5)))

    assert as_utc(naive) == datetime(2025, 2, 14, 16, 0, tzinfo=timezone.utc)
    assert as_utc(eastern).utcoffset() == timedelta(0)
    assert as_utc(eastern) == as_utc(naive)
    assert as_utc(None) is None
