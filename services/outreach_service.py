"""
Outreach service: campaign start and conversation updates.

Handles:
- Moving every `new` prospect to `contacted` with one opening conversation each
- Find-or-create of a prospect's conversation on conversation-update events
- Propagating qualification to the prospect (forward-only)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from supabase import Client  # type: ignore[import-not-found]

from domain.activity import BATCH_ENTITY_ID, Action, ActivityEntry, EntityType
from domain.conversation import Channel, Conversation
from domain.errors import NotFoundError, ValidationError
from domain.pipeline import ConversationUpdate, open_conversation, start_outreach, update_conversation
from domain.prospect import Prospect, ProspectStatus
from domain.time import utc_now
from repositories.conversation_repository import (
    find_conversation_for_prospect,
    get_conversation_by_id,
    insert_conversation,
    insert_conversations_bulk,
    save_conversation,
)
from repositories.prospect_repository import get_prospect_by_id, list_prospects, set_status_for_ids
from services.activity_logger import ActivityLogger
from services.automation_webhook import AutomationWebhook, ForwardResult, forward_with_audit
from services.status_service import persist_status_change

logger = logging.getLogger(__name__)

OUTREACH_EVENT = "outreach_started"


@dataclass(frozen=True, slots=True)
class OutreachCampaignResult:
    contacted: List[UUID]
    conversations: List[Conversation]
    campaign_type: Optional[str]
    forward: ForwardResult


@dataclass(frozen=True, slots=True)
class ConversationResult:
    conversation: Conversation
    created: bool
    became_qualified: bool
    prospect_status: Optional[ProspectStatus]


def start_outreach_campaign(
    db: Client,
    activity: ActivityLogger,
    webhook: AutomationWebhook,
    payload: Mapping[str, Any],
    campaign_type: Optional[str] = None,
    triggered_at: Optional[str] = None,
) -> OutreachCampaignResult:
    """
    Start AI outreach for every prospect in status `new`.

    Statuses are claimed first with a compare-and-swap from `new`, and only the
    prospects this call actually moved get a conversation, so two overlapping
    campaigns never open two conversations for the same prospect.
    """

    prospects = list_prospects(db, status=ProspectStatus.NEW)
    if not prospects:
        logger.info("No prospects available for outreach")
        return OutreachCampaignResult(
            contacted=[],
            conversations=[],
            campaign_type=campaign_type,
            forward=ForwardResult(triggered=False, skipped=True),
        )

    now = utc_now()
    outcomes = {p.id: start_outreach(p, uuid4(), now) for p in prospects}

    claimed = set_status_for_ids(
        db,
        list(outcomes),
        expected=ProspectStatus.NEW,
        new_status=ProspectStatus.CONTACTED,
        updated_at=now,
    )
    if len(claimed) < len(outcomes):
        logger.warning(
            "%d of %d prospects left status 'new' before outreach could claim them",
            len(outcomes) - len(claimed),
            len(outcomes),
        )

    conversations = insert_conversations_bulk(db, [outcomes[pid].conversation for pid in claimed])
    logger.info("Outreach campaign %s started for %d prospects", campaign_type, len(claimed))

    activity.record(
        ActivityEntry(
            entity_type=EntityType.PROSPECT,
            entity_id=BATCH_ENTITY_ID,
            action=Action.OUTREACH_CAMPAIGN_STARTED.value,
            description=f"AI outreach campaign started for {len(claimed)} prospects",
            metadata={
                "campaign_type": campaign_type,
                "prospect_count": len(claimed),
                "prospect_ids": [str(pid) for pid in claimed],
                "triggered_at": triggered_at or now.isoformat(),
            },
        )
    )

    forward = forward_with_audit(webhook, activity, OUTREACH_EVENT, payload)
    return OutreachCampaignResult(
        contacted=list(claimed),
        conversations=conversations,
        campaign_type=campaign_type,
        forward=forward,
    )


def _resolve_conversation(
    db: Client,
    conversation_id: Optional[UUID],
    prospect_id: Optional[UUID],
    channel: Channel,
) -> tuple[Conversation, Optional[Prospect], bool]:
    if conversation_id is not None:
        conversation = get_conversation_by_id(db, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        prospect = get_prospect_by_id(db, conversation.prospect_id) if conversation.prospect_id else None
        return conversation, prospect, False

    if prospect_id is None:
        raise ValidationError.for_field("conversation_id", "Either conversation_id or prospect_id is required")

    prospect = get_prospect_by_id(db, prospect_id)
    if prospect is None:
        raise NotFoundError("Prospect", prospect_id)

    conversation = find_conversation_for_prospect(db, prospect_id)
    if conversation is not None:
        return conversation, prospect, False

    return open_conversation(prospect_id, uuid4(), channel, utc_now()), prospect, True


def record_conversation_update(
    db: Client,
    activity: ActivityLogger,
    update: ConversationUpdate,
    conversation_id: Optional[UUID] = None,
    prospect_id: Optional[UUID] = None,
    channel: Channel = Channel.EMAIL,
) -> ConversationResult:
    """
    Apply a conversation-update event.

    The update is fully validated by the rules engine before anything is
    written, including the insert of a newly created conversation.
    """

    conversation, prospect, created = _resolve_conversation(db, conversation_id, prospect_id, channel)

    now = utc_now()
    outcome = update_conversation(conversation, prospect, update, now)

    if created:
        stored = insert_conversation(db, outcome.conversation)
    else:
        stored = save_conversation(db, outcome.conversation)

    prospect_status = prospect.status if prospect is not None else None
    if outcome.status_change is not None:
        prospect_status = persist_status_change(db, outcome.status_change, now) or prospect_status

    if outcome.became_qualified:
        entry = ActivityEntry(
            entity_type=EntityType.CONVERSATION,
            entity_id=stored.id,
            action=Action.PROSPECT_QUALIFIED.value,
            description="Prospect qualified through AI conversation",
            metadata={
                "qualification_score": stored.qualification_score,
                "channel": stored.channel.value,
                "qualified_at": now.isoformat(),
            },
        )
    else:
        entry = ActivityEntry(
            entity_type=EntityType.CONVERSATION,
            entity_id=stored.id,
            action=Action.CONVERSATION_UPDATED.value,
            description="Conversation started" if created else "Conversation updated",
            metadata={
                "message_added": update.message is not None,
                "message_count": len(stored.messages),
                "qualification_score": stored.qualification_score,
                "qualified": stored.qualified,
            },
        )
    activity.record(entry)

    return ConversationResult(
        conversation=stored,
        created=created,
        became_qualified=outcome.became_qualified,
        prospect_status=prospect_status,
    )


__all__ = [
    "OUTREACH_EVENT",
    "OutreachCampaignResult",
    "ConversationResult",
    "start_outreach_campaign",
    "record_conversation_update",
]
