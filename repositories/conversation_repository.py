"""
Conversation repository (persistence).

Stores outreach threads. Messages are kept in the `messages` JSON column as an
ordered array of {timestamp, type, content} objects; `type` carries the
message direction (inbound/outbound).
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from supabase import Client  # type: ignore[import-not-found]

from domain.conversation import Channel, Conversation, Message, MessageDirection
from repositories.rows import (
    execute,
    optional_uuid,
    parse_optional_datetime,
    parse_utc_datetime,
    rows_of,
    to_iso_utc,
    to_optional_iso_utc,
)

_CONVERSATIONS_TABLE: str = "conversations"


def _message_to_json(message: Message) -> dict[str, Any]:
    return {
        "timestamp": to_iso_utc(message.timestamp, name="timestamp"),
        "type": message.direction.value,
        "content": message.content,
    }


def _json_to_message(item: Mapping[str, Any]) -> Message:
    direction = item.get("type") or item.get("direction") or MessageDirection.INBOUND.value
    return Message(
        timestamp=parse_utc_datetime(item["timestamp"]),
        direction=MessageDirection(str(direction)),
        content=str(item.get("content", "")),
    )


def _conversation_to_row(conversation: Conversation) -> dict[str, Any]:
    return {
        "id": str(conversation.id),
        "prospect_id": str(conversation.prospect_id) if conversation.prospect_id else None,
        "channel": conversation.channel.value,
        "messages": [_message_to_json(m) for m in conversation.messages],
        "qualification_score": conversation.qualification_score,
        "qualified": conversation.qualified,
        "last_contact": to_iso_utc(conversation.last_contact, name="last_contact"),
        "created_at": to_optional_iso_utc(conversation.created_at, name="created_at"),
    }


def _row_to_conversation(row: Mapping[str, Any]) -> Conversation:
    score = row.get("qualification_score")
    return Conversation(
        id=UUID(str(row["id"])),
        prospect_id=optional_uuid(row.get("prospect_id")),
        channel=Channel(str(row.get("channel") or Channel.EMAIL.value)),
        last_contact=parse_utc_datetime(row.get("last_contact") or row["created_at"]),
        messages=tuple(_json_to_message(m) for m in (row.get("messages") or [])),
        qualification_score=int(score) if score is not None else None,
        qualified=bool(row.get("qualified") or False),
        created_at=parse_optional_datetime(row.get("created_at")),
    )


def insert_conversation(db: Client, conversation: Conversation) -> Conversation:
    response = execute(
        db.table(_CONVERSATIONS_TABLE).insert(_conversation_to_row(conversation)),
        "insert conversation",
    )
    rows = rows_of(response)
    return _row_to_conversation(rows[0]) if rows else conversation


def insert_conversations_bulk(db: Client, conversations: Sequence[Conversation]) -> List[Conversation]:
    """Insert several conversations in one request (all-or-nothing)."""

    if not conversations:
        return []

    response = execute(
        db.table(_CONVERSATIONS_TABLE).insert([_conversation_to_row(c) for c in conversations]),
        f"bulk insert {len(conversations)} conversations",
    )
    rows = rows_of(response)
    return [_row_to_conversation(row) for row in rows] if rows else list(conversations)


def get_conversation_by_id(db: Client, conversation_id: UUID) -> Optional[Conversation]:
    response = execute(
        db.table(_CONVERSATIONS_TABLE).select("*").eq("id", str(conversation_id)).limit(1),
        "fetch conversation",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_conversation(rows[0])


def find_conversation_for_prospect(db: Client, prospect_id: UUID) -> Optional[Conversation]:
    """
    Return the prospect's conversation (oldest first if duplicates slipped in).
    """

    response = execute(
        db.table(_CONVERSATIONS_TABLE)
        .select("*")
        .eq("prospect_id", str(prospect_id))
        .order("created_at", desc=False)
        .limit(1),
        "fetch conversation for prospect",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_conversation(rows[0])


def save_conversation(db: Client, conversation: Conversation) -> Conversation:
    """Write the mutable columns of an existing conversation."""

    row = _conversation_to_row(conversation)
    payload = {
        "messages": row["messages"],
        "qualification_score": row["qualification_score"],
        "qualified": row["qualified"],
        "last_contact": row["last_contact"],
    }
    response = execute(
        db.table(_CONVERSATIONS_TABLE).update(payload).eq("id", str(conversation.id)),
        "update conversation",
    )
    rows = rows_of(response)
    return _row_to_conversation(rows[0]) if rows else conversation


def list_conversations(db: Client, qualified: Optional[bool] = None) -> List[Conversation]:
    query = db.table(_CONVERSATIONS_TABLE).select("*")
    if qualified is not None:
        query = query.eq("qualified", qualified)
    query = query.order("last_contact", desc=True)

    response = execute(query, "list conversations")
    return [_row_to_conversation(row) for row in rows_of(response)]


def count_conversations(db: Client, qualified: Optional[bool] = None) -> int:
    query = db.table(_CONVERSATIONS_TABLE).select("id", count="exact")
    if qualified is not None:
        query = query.eq("qualified", qualified)

    response = execute(query, "count conversations")
    count = getattr(response, "count", None)
    return count if count is not None else len(rows_of(response))


__all__ = [
    "insert_conversation",
    "insert_conversations_bulk",
    "get_conversation_by_id",
    "find_conversation_for_prospect",
    "save_conversation",
    "list_conversations",
    "count_conversations",
]
