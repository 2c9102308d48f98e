"""
Domain: Conversation (outreach thread) entity.

One conversation per prospect, found-or-created by prospect_id. Messages are
append-only: never reordered, never deduplicated.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp

MIN_QUALIFICATION_SCORE = 0
MAX_QUALIFICATION_SCORE = 100


class Channel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    LINKEDIN = "linkedin"
    WEBSITE = "website"
    REFERRAL = "referral"


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True, slots=True)
class Message:
    timestamp: datetime
    direction: MessageDirection
    content: str

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)


@dataclass(frozen=True, slots=True)
class Conversation:
    """
    Immutable snapshot of a conversation row.

    messages is a tuple so an appended message always yields a new snapshot.
    """

    id: UUID
    prospect_id: Optional[UUID]
    channel: Channel
    last_contact: datetime
    messages: Tuple[Message, ...] = ()
    qualification_score: Optional[int] = None
    qualified: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("last_contact", self.last_contact)
        require_optional_utc_timestamp("created_at", self.created_at)
        if self.qualification_score is not None and not (
            MIN_QUALIFICATION_SCORE <= self.qualification_score <= MAX_QUALIFICATION_SCORE
        ):
            raise ValueError(
                f"qualification_score must be within [{MIN_QUALIFICATION_SCORE}, {MAX_QUALIFICATION_SCORE}]"
            )

    @property
    def is_scored(self) -> bool:
        return self.qualification_score is not None

    def append(self, message: Message) -> "Conversation":
        return replace(self, messages=self.messages + (message,))


__all__ = [
    "MIN_QUALIFICATION_SCORE",
    "MAX_QUALIFICATION_SCORE",
    "Channel",
    "MessageDirection",
    "Message",
    "Conversation",
]
