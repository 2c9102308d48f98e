"""
Activity logger: best-effort audit trail writes.

Every state-changing operation records one ActivityEntry. The write is kept
apart from the primary mutation:
- it is scheduled to run after the response when a scheduler is supplied
  (FastAPI `BackgroundTasks.add_task`), otherwise it runs inline;
- a failed write is retried, then logged and dropped. It never raises and never
  rolls back the primary write.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import ActivityEntry
from repositories.activity_repository import insert_activity

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


class ActivityLogger:
    """Writes audit records on an independent, failure-tolerant path."""

    def __init__(self, db: Client, schedule: Optional[Scheduler] = None, retries: int = 1) -> None:
        self._db = db
        self._schedule = schedule
        self._retries = max(0, retries)

    def record(self, entry: ActivityEntry) -> None:
        if self._schedule is not None:
            self._schedule(self.write, entry)
        else:
            self.write(entry)

    def write(self, entry: ActivityEntry) -> bool:
        """
        Insert one audit record.

        Returns:
            True if stored, False if every attempt failed.
        """

        attempts = 1 + self._retries
        for attempt in range(1, attempts + 1):
            try:
                insert_activity(self._db, entry)
                return True
            except Exception:
                logger.warning(
                    "Activity log write failed (attempt %d/%d): action=%s entity=%s:%s",
                    attempt,
                    attempts,
                    entry.action,
                    entry.entity_type.value,
                    entry.entity_id,
                    exc_info=True,
                )

        logger.error(
            "Dropping activity record after %d attempts: action=%s description=%r",
            attempts,
            entry.action,
            entry.description,
        )
        return False


__all__ = ["ActivityLogger"]
