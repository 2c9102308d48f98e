"""
Persisting prospect status changes with optimistic concurrency.

The rules engine decides a StatusChange from the snapshot it was given. By the
time it is written another request may already have moved the prospect, so the
write is a compare-and-swap on the old status. On a conflict the prospect is
re-read and the event re-evaluated once against the fresh status; if it is no
longer a forward move it is skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.pipeline import StatusChange, advance
from domain.prospect import ProspectStatus
from repositories.prospect_repository import compare_and_set_status, get_prospect_by_id

logger = logging.getLogger(__name__)


def persist_status_change(db: Client, change: StatusChange, now: datetime) -> Optional[ProspectStatus]:
    """
    Write a status change.

    Returns:
        The status the prospect now has because of this call, or None if the
        change was skipped (prospect gone, or already at/after the target).
    """

    if compare_and_set_status(db, change.prospect_id, change.from_status, change.to_status, now):
        return change.to_status

    current = get_prospect_by_id(db, change.prospect_id)
    if current is None:
        logger.warning(
            "Prospect %s disappeared before status %s could be written",
            change.prospect_id,
            change.to_status.value,
        )
        return None

    next_status = advance(current.status, change.event)
    if next_status is None:
        logger.info(
            "Skipping %s for prospect %s: status is already %s",
            change.event.value,
            change.prospect_id,
            current.status.value,
        )
        return None

    if compare_and_set_status(db, change.prospect_id, current.status, next_status, now):
        return next_status

    logger.warning(
        "Status of prospect %s changed concurrently twice; %s not applied",
        change.prospect_id,
        change.event.value,
    )
    return None


__all__ = ["persist_status_change"]
