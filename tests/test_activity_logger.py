"""
Tests for `services/activity_logger.py`.

Covers contract rules:
- Audit writes are best-effort: failures are retried, then logged, never raised.
- With a scheduler the write is deferred instead of run inline.
"""

from __future__ import annotations

import logging
from uuid import UUID

from domain.activity import Action, ActivityEntry, EntityType
from repositories.activity_repository import list_recent_activity
from services.activity_logger import ActivityLogger

ENTRY = ActivityEntry(
    entity_type=EntityType.PROSPECT,
    entity_id=UUID("00000000-0000-0000-0000-000000000001"),
    action=Action.PROSPECT_CREATED.value,
    description="Prospect Acme added",
    metadata={"source": "manual"},
)


def test_write_inserts_one_record(db) -> None:
    assert ActivityLogger(db).write(ENTRY) is True

    records = list_recent_activity(db)
    assert len(records) == 1
    assert records[0].action == "prospect_created"
    assert records[0].metadata == {"source": "manual"}
    assert records[0].created_at is not None


def test_failed_write_is_retried_once(db) -> None:
    db.fail("activity_log", "insert", times=1)

    assert ActivityLogger(db, retries=1).write(ENTRY) is True
    assert len(db.rows("activity_log")) == 1
    assert db.calls.count(("activity_log", "insert")) == 2


def test_persistent_failure_is_logged_not_raised(db, caplog) -> None:
    db.fail("activity_log", "insert", times=5)

    with caplog.at_level(logging.WARNING, logger="services.activity_logger"):
        assert ActivityLogger(db, retries=1).write(ENTRY) is False

    assert db.rows("activity_log") == []
    assert any("Dropping activity record" in r.getMessage() for r in caplog.records)


def test_record_defers_to_scheduler(db) -> None:
    scheduled = []
    logger = ActivityLogger(db, schedule=lambda fn, *args: scheduled.append((fn, args)))

    logger.record(ENTRY)

    assert db.rows("activity_log") == []
    fn, args = scheduled[0]
    fn(*args)
    assert len(db.rows("activity_log")) == 1
