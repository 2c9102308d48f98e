"""
Pytest configuration.

This file adds the project root to the Python path so that tests can import
the domain, repositories, services and api packages, and provides shared
fixtures:
- `db`: an in-memory Supabase double (see tests/fakes.py)
- `forwarded` / `webhook`: an automation webhook backed by httpx.MockTransport
- `client`: a FastAPI TestClient wired to both
"""

import sys
from pathlib import Path
from typing import Dict, List

import httpx
import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fakes import FakeSupabase  # noqa: E402

WEBHOOK_URL = "https://automation.example.com/webhook/pipeline"


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def forwarded() -> List[httpx.Request]:
    return []


@pytest.fixture
def webhook_status() -> Dict[str, int]:
    """Status code the mock automation target answers with; tests may change it."""
    return {"code": 200}


@pytest.fixture
def webhook(forwarded, webhook_status):
    from services.automation_webhook import AutomationWebhook

    def handler(request: httpx.Request) -> httpx.Response:
        forwarded.append(request)
        return httpx.Response(webhook_status["code"], json={"ok": webhook_status["code"] < 300})

    return AutomationWebhook(WEBHOOK_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def client(db, webhook):
    from fastapi.testclient import TestClient

    from api.main import create_app
    from api.settings import Settings

    app = create_app(db=db, webhook=webhook, settings=Settings())
    return TestClient(app)
