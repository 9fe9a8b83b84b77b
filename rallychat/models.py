"""
In-memory records for conversations and messages.

These play the part ORM rows would play in a persisted service: plain
mutable records owned by the ConversationStore. For the pydantic
request/response shapes, see schemas.py.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class MessageStatus(str, Enum):
    """
    Delivery stage of an outgoing message.

    Only ever advances none -> sent -> delivered -> read.
    """
    NONE = "none"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def is_after(self, other: "MessageStatus") -> bool:
        return self.rank > other.rank


_STATUS_ORDER = [
    MessageStatus.NONE,
    MessageStatus.SENT,
    MessageStatus.DELIVERED,
    MessageStatus.READ,
]


class ConversationKind(str, Enum):
    INDIVIDUAL = "individual"
    COMMUNITY = "community"


@dataclass(frozen=True)
class ReplySnapshot:
    """Copy of the quoted message taken at send time, not a live link."""
    id: int
    text: str
    sender: str


@dataclass
class Message:
    """
    A single chat message.

    status is meaningful only when is_sender is True; received messages
    stay at MessageStatus.NONE.
    """
    id: int
    text: str
    timestamp: str
    is_sender: bool
    sender: str
    status: MessageStatus = MessageStatus.NONE
    reactions: list[str] = field(default_factory=list)
    reply_to: Optional[ReplySnapshot] = None

    def snapshot(self) -> ReplySnapshot:
        return ReplySnapshot(id=self.id, text=self.text, sender=self.sender)

    def toggle_reaction(self, emoji: str) -> bool:
        """
        Add the emoji if absent, remove it if present.

        Returns:
            True if the emoji was added, False if it was removed
        """
        if emoji in self.reactions:
            self.reactions = [r for r in self.reactions if r != emoji]
            return False
        self.reactions = [*self.reactions, emoji]
        return True


@dataclass
class Conversation:
    """One chat thread, either one-to-one or a community group."""
    id: str
    name: str
    kind: ConversationKind = ConversationKind.INDIVIDUAL
    is_online: bool = False
    typing: bool = False
    member_count: Optional[int] = None
    unread: int = 0

    @property
    def is_community(self) -> bool:
        return self.kind == ConversationKind.COMMUNITY
