"""
Tests for `services/automation_webhook.py`.

Forwarding is fire-and-log: it reports failure through ForwardResult and never
raises.
"""

from __future__ import annotations

import json

import httpx

from domain.activity import Action
from services.activity_logger import ActivityLogger
from services.automation_webhook import AutomationWebhook, forward_with_audit

URL = "https://automation.example.com/webhook/discovery"


def _webhook(handler) -> AutomationWebhook:
    return AutomationWebhook(URL, timeout=2.0, transport=httpx.MockTransport(handler))


def test_unconfigured_webhook_is_a_no_op() -> None:
    result = AutomationWebhook(None).forward("discovery_triggered", {"a": 1})

    assert result.triggered is False
    assert result.skipped is True


def test_forward_posts_raw_payload_with_event_header() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    result = _webhook(handler).forward("discovery_triggered", {"industries": ["Retail"], "extra": True})

    assert result.triggered is True
    assert result.status_code == 202
    assert str(seen[0].url) == URL
    assert seen[0].headers["X-Pipeline-Event"] == "discovery_triggered"
    assert json.loads(seen[0].content) == {"industries": ["Retail"], "extra": True}


def test_non_success_status_is_reported() -> None:
    result = _webhook(lambda request: httpx.Response(500, text="boom")).forward("outreach_started", {})

    assert result.triggered is False
    assert result.skipped is False
    assert result.status_code == 500


def test_timeout_is_reported_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = _webhook(handler).forward("outreach_started", {})

    assert result.triggered is False
    assert "timed out" in result.error


def test_connection_error_is_reported_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    result = _webhook(handler).forward("outreach_started", {})

    assert result.triggered is False
    assert result.error


def test_failed_forward_is_audited(db) -> None:
    webhook = _webhook(lambda request: httpx.Response(503))

    forward_with_audit(webhook, ActivityLogger(db), "discovery_triggered", {})

    rows = db.rows("activity_log")
    assert [r["action"] for r in rows] == [Action.WEBHOOK_FORWARD_FAILED.value]
    assert rows[0]["metadata"]["status_code"] == 503


def test_skipped_forward_is_not_audited(db) -> None:
    forward_with_audit(AutomationWebhook(None), ActivityLogger(db), "discovery_triggered", {})

    assert db.rows("activity_log") == []
