"""
Mock conversations shipped with the prototype.

Loaded into a fresh ConversationStore at startup when SEED_MOCK_DATA is set.
Each call builds new records, so stores never share message objects.
"""

import logging

from rallychat.models import (
    Conversation,
    ConversationKind,
    Message,
    MessageStatus,
    ReplySnapshot,
)
from rallychat.storage import ConversationStore

logger = logging.getLogger(__name__)


def _conversations() -> list[tuple[Conversation, list[Message]]]:
    return [
        (
            Conversation(
                id="community1",
                name="Taicang Badminton Club",
                kind=ConversationKind.COMMUNITY,
                member_count=128,
                unread=3,
            ),
            [
                Message(id=1, text="Anyone up for doubles tonight?", timestamp="10:45 AM",
                        is_sender=False, sender="Mike Liu"),
                Message(id=2, text="I'm in! 🏸", timestamp="10:47 AM",
                        is_sender=False, sender="Regina"),
                Message(id=3, text="Count me in too!", timestamp="10:50 AM",
                        is_sender=True, sender="You", status=MessageStatus.DELIVERED),
            ],
        ),
        (
            Conversation(id="chat1", name="Regina ❤️", is_online=True),
            [
                Message(id=1, text="Hey! Ready for our match tonight? 🏸", timestamp="11:28 AM",
                        is_sender=False, sender="Regina", reactions=["❤️", "👍"]),
                Message(
                    id=2,
                    text="Yes, definitely! I've been practicing those serve techniques you showed me",
                    timestamp="11:29 AM",
                    is_sender=True,
                    sender="You",
                    status=MessageStatus.READ,
                    reactions=["🔥"],
                    reply_to=ReplySnapshot(id=1, text="Hey! Ready for our match tonight? 🏸", sender="Regina"),
                ),
                Message(id=3, text="See you at the courts! 🏸", timestamp="11:30 AM",
                        is_sender=False, sender="Regina"),
            ],
        ),
        (
            Conversation(id="chat2", name="Mike Liu", is_online=True, unread=1),
            [
                Message(id=1, text="Great game yesterday!", timestamp="9:15 AM",
                        is_sender=False, sender="Mike Liu"),
            ],
        ),
        (
            Conversation(id="chat3", name="John Lemington", typing=True, unread=2),
            [
                Message(id=1, text="Thanks for the tips! When can we practice again?", timestamp="Yesterday",
                        is_sender=False, sender="John Lemington"),
            ],
        ),
        (
            Conversation(id="chat4", name="Anderson Goat"),
            [
                Message(id=1, text="Let's practice that serve", timestamp="2 days ago",
                        is_sender=True, sender="You", status=MessageStatus.READ),
            ],
        ),
    ]


def seed_store(store: ConversationStore) -> ConversationStore:
    """Register every mock conversation in the given store and return it."""
    for conversation, messages in _conversations():
        store.add_conversation(conversation, messages)
    logger.info(f"Seeded {len(store.list_conversations())} conversations with {store.count()} messages")
    return store
