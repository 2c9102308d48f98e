"""
API tests for discovery, the read-only listings, analytics and health.

Discovery must succeed whether or not the automation target accepts the
forwarded request.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tests.fakes import application_row, conversation_row, prospect_row

BATCH_ID = "00000000-0000-0000-0000-000000000000"

DISCOVERY = {
    "industries": ["Restaurants", "Construction"],
    "locations": ["Dallas, TX"],
    "prospects_per_industry": 25,
    "estimated_value": 250000,
    "campaign": "spring",
}


def _activity_row(action: str, created_at: datetime, **metadata):
    return {
        "entity_type": "prospect",
        "entity_id": BATCH_ID,
        "action": action,
        "description": f"{action} at {created_at.isoformat()}",
        "metadata": metadata,
        "created_at": created_at.isoformat(),
    }


def test_trigger_discovery_forwards_and_records(client, db, forwarded) -> None:
    response = client.post("/discovery/trigger", json=DISCOVERY)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "forwarded"
    assert body["webhook_triggered"] is True
    assert body["workflow_id"].startswith("discovery_")
    assert body["parameters"]["total_prospects"] == 50

    assert len(forwarded) == 1
    sent = json.loads(forwarded[0].content)
    assert sent["campaign"] == "spring"
    assert sent["industries"] == ["Restaurants", "Construction"]

    (record,) = db.rows("activity_log")
    assert record["action"] == "discovery_triggered"
    assert record["metadata"]["total_prospects"] == 50
    assert record["metadata"]["trigger_source"] == "api"


def test_trigger_discovery_uses_explicit_total(client) -> None:
    body = client.post("/discovery/trigger", json={**DISCOVERY, "total_prospects": 30}).json()

    assert body["parameters"]["total_prospects"] == 30


def test_trigger_discovery_succeeds_when_forwarding_fails(client, db, webhook_status) -> None:
    webhook_status["code"] = 502

    response = client.post("/discovery/trigger", json=DISCOVERY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "forward_failed"
    assert body["webhook_triggered"] is False
    assert body["webhook_error"]
    assert [r["action"] for r in db.rows("activity_log")] == ["discovery_triggered", "webhook_forward_failed"]


@pytest.mark.parametrize(
    "override,field",
    [
        ({"industries": []}, "industries"),
        ({"locations": []}, "locations"),
        ({"prospects_per_industry": 0}, "prospects_per_industry"),
    ],
)
def test_trigger_discovery_validation(client, db, forwarded, override, field) -> None:
    response = client.post("/discovery/trigger", json={**DISCOVERY, **override})

    assert response.status_code == 400
    assert response.json()["validation_errors"][0]["field"] == field
    assert db.rows("activity_log") == []
    assert forwarded == []


def test_discovery_history_returns_latest_twenty(client, db) -> None:
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    db.seed(
        "activity_log",
        *[_activity_row("discovery_triggered", start + timedelta(hours=i), run=i) for i in range(25)],
    )
    db.seed("activity_log", _activity_row("bulk_import", start + timedelta(days=5)))

    data = client.get("/discovery/trigger").json()["data"]

    assert len(data) == 20
    assert data[0]["metadata"]["run"] == 24
    assert data[-1]["metadata"]["run"] == 5


def test_list_conversations(client, db) -> None:
    (prospect,) = db.seed("prospects", prospect_row())
    db.seed(
        "conversations",
        conversation_row(prospect["id"]),
        conversation_row(prospect["id"], qualified=True, qualification_score=90),
    )

    everything = client.get("/conversations").json()
    qualified = client.get("/conversations", params={"qualified": "true"}).json()

    assert everything["count"] == 2
    assert qualified["count"] == 1
    assert qualified["conversations"][0]["qualification_score"] == 90


def test_list_applications(client, db) -> None:
    (prospect,) = db.seed("prospects", prospect_row())
    db.seed(
        "applications",
        application_row(prospect["id"], loan_amount="100000", commission_amount="2000"),
        application_row(prospect["id"], status="submitted", submitted_to_arf=True),
    )

    submitted = client.get("/applications", params={"submitted_to_arf": "true"}).json()
    drafts = client.get("/applications", params={"status": "draft"}).json()

    assert submitted["count"] == 1
    assert submitted["applications"][0]["status"] == "submitted"
    assert drafts["count"] == 1
    assert Decimal(drafts["applications"][0]["commission_amount"]) == Decimal("2000")


def test_list_applications_rejects_unknown_status(client) -> None:
    assert client.get("/applications", params={"status": "lost"}).status_code == 400


def test_activity_feed(client, db) -> None:
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    db.seed(
        "activity_log",
        _activity_row("bulk_import", start),
        _activity_row("prospect_created", start + timedelta(minutes=1)),
        _activity_row("bulk_import", start + timedelta(minutes=2)),
    )

    latest = client.get("/activity", params={"limit": 2}).json()
    imports = client.get("/activity", params={"action": "bulk_import"}).json()

    assert [a["action"] for a in latest["activities"]] == ["bulk_import", "prospect_created"]
    assert imports["count"] == 2


def test_dashboard_stats(client, db) -> None:
    db.seed("prospects", prospect_row(), prospect_row(), prospect_row(status="contacted"))

    body = client.get("/analytics/dashboard").json()

    assert body["prospects_ready"] == 2
    assert body["deals_submitted"] == 0


def test_pipeline_summary(client, db) -> None:
    db.seed("prospects", prospect_row(), prospect_row(status="funded"))

    body = client.get("/analytics/pipeline").json()

    assert body["total"] == 2
    assert body["by_status"]["new"] == 1
    assert body["by_status"]["funded"] == 1


def test_commission_analytics(client, db) -> None:
    (prospect,) = db.seed("prospects", prospect_row(industry="Retail"))
    db.seed(
        "applications",
        application_row(
            prospect["id"],
            loan_amount="100000",
            commission_amount="2000",
            status="funded",
            submitted_to_arf=True,
            arf_submission_date=datetime.now(timezone.utc).isoformat(),
        ),
    )

    body = client.get("/analytics/commissions", params={"time_range": "30d"}).json()

    assert body["time_range"] == "30d"
    assert Decimal(body["funded_commissions"]) == Decimal("2000")
    assert Decimal(body["pending_commissions"]) == Decimal("0")
    assert body["conversion_rate"] == pytest.approx(100.0)
    assert body["industries"][0]["industry"] == "Retail"


def test_commission_analytics_rejects_unknown_range(client) -> None:
    response = client.get("/analytics/commissions", params={"time_range": "2w"})

    assert response.status_code == 400


def test_health(client) -> None:
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["automation_webhook_configured"] is True


def test_unknown_route_uses_error_shape(client) -> None:
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}
