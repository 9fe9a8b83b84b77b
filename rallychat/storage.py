import logging
import time
from typing import Optional

from rallychat.errors import ConversationNotFound, MessageNotFound
from rallychat.models import Conversation, Message, MessageStatus

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Conversation-keyed, process-local message store.

    Owned by whoever manages the active session and passed explicitly to
    the collaborators that need it. Nothing is persisted; a new store is
    empty (or freshly seeded) on every startup.
    """

    def __init__(self):
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._last_ids: dict[str, int] = {}

    # =========================================================================
    # Conversations
    # =========================================================================

    def add_conversation(self, conversation: Conversation, messages: Optional[list[Message]] = None) -> None:
        """
        Register a conversation, optionally with its existing history.

        Args:
            conversation: Conversation record
            messages: Messages in display order
        """
        self._conversations[conversation.id] = conversation
        self._messages[conversation.id] = list(messages or [])
        self._last_ids[conversation.id] = max((m.id for m in self._messages[conversation.id]), default=0)
        logger.debug(f"Conversation registered: {conversation.id} ({len(self._messages[conversation.id])} messages)")

    def get_conversation(self, conversation_id: str) -> Conversation:
        try:
            return self._conversations[conversation_id]
        except KeyError:
            raise ConversationNotFound(conversation_id) from None

    def has_conversation(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    def list_conversations(self, q: Optional[str] = None) -> list[Conversation]:
        """
        List conversations in registration order.

        Args:
            q: Case-insensitive search on the conversation name or the
               text of its last message

        Returns:
            Matching conversations
        """
        conversations = list(self._conversations.values())
        if not q:
            return conversations

        query = q.lower()
        matched = []
        for conversation in conversations:
            last = self.last_message(conversation.id)
            if query in conversation.name.lower() or (last is not None and query in last.text.lower()):
                matched.append(conversation)
        logger.debug(f"Conversation search '{q}' matched {len(matched)} of {len(conversations)}")
        return matched

    # =========================================================================
    # Messages
    # =========================================================================

    def messages(self, conversation_id: str) -> list[Message]:
        """Return the conversation's messages in display order (a shallow copy)."""
        self.get_conversation(conversation_id)
        return list(self._messages[conversation_id])

    def last_message(self, conversation_id: str) -> Optional[Message]:
        self.get_conversation(conversation_id)
        history = self._messages[conversation_id]
        return history[-1] if history else None

    def next_message_id(self, conversation_id: str) -> int:
        """
        Allocate a creation-time id in epoch milliseconds.

        Two sends landing in the same millisecond still get distinct,
        increasing ids.
        """
        self.get_conversation(conversation_id)
        candidate = int(time.time() * 1000)
        message_id = max(candidate, self._last_ids[conversation_id] + 1)
        self._last_ids[conversation_id] = message_id
        return message_id

    def append(self, conversation_id: str, message: Message) -> None:
        self.get_conversation(conversation_id)
        self._messages[conversation_id].append(message)
        self._last_ids[conversation_id] = max(self._last_ids[conversation_id], message.id)
        logger.debug(f"Message appended: conversation={conversation_id}, id={message.id}")

    def find(self, conversation_id: str, message_id: int) -> Optional[Message]:
        """
        Look up a message by id.

        Returns:
            The message, or None if it is not (or no longer) in the conversation
        """
        self.get_conversation(conversation_id)
        for message in self._messages[conversation_id]:
            if message.id == message_id:
                return message
        return None

    def get(self, conversation_id: str, message_id: int) -> Message:
        message = self.find(conversation_id, message_id)
        if message is None:
            raise MessageNotFound(conversation_id, message_id)
        return message

    def remove(self, conversation_id: str, message_id: int) -> Message:
        """
        Remove a message permanently.

        Returns:
            The removed message

        Raises:
            MessageNotFound: if the id is not in the conversation
        """
        message = self.get(conversation_id, message_id)
        self._messages[conversation_id] = [
            m for m in self._messages[conversation_id] if m.id != message_id
        ]
        logger.debug(f"Message removed: conversation={conversation_id}, id={message_id}")
        return message

    def count(self, conversation_id: Optional[str] = None) -> int:
        if conversation_id is not None:
            return len(self.messages(conversation_id))
        return sum(len(history) for history in self._messages.values())

    def all_messages(self) -> list[Message]:
        return [m for history in self._messages.values() for m in history]

    def stats(self) -> dict:
        """
        Message statistics for the /stats endpoint.

        Computes:
        - total_messages: count of all messages
        - conversations_count: number of conversations
        - messages_per_conversation: conversations by message count (desc)
        - status_counts: outgoing messages per status

        Returns:
            Dictionary with stats data
        """
        logger.info("Computing message statistics")

        per_conversation = sorted(
            (
                {"conversation_id": cid, "count": len(history)}
                for cid, history in self._messages.items()
            ),
            key=lambda row: row["count"],
            reverse=True,
        )

        status_counts = {status.value: 0 for status in MessageStatus if status != MessageStatus.NONE}
        for message in self.all_messages():
            if message.is_sender and message.status != MessageStatus.NONE:
                status_counts[message.status.value] += 1

        total_messages = self.count()
        logger.info(f"Stats computed: {total_messages} messages, {len(self._conversations)} conversations")

        return {
            "total_messages": total_messages,
            "conversations_count": len(self._conversations),
            "messages_per_conversation": per_conversation,
            "status_counts": status_counts,
        }
