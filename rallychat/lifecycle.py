"""
Message lifecycle for the local user's chat session.

MessageLifecycleManager owns every mutation of the conversation store:
sending, status advancement, reaction toggles, confirmed deletes and the
per-conversation reply context. Everything runs on one event loop thread;
status acknowledgements arrive through the DeliveryTracker.
"""

import logging
from typing import Callable, Optional, Union

from rallychat.clipboard import Clipboard, InMemoryClipboard
from rallychat.errors import DeleteNotRequested
from rallychat.metrics import (
    record_message_deleted,
    record_message_sent,
    record_reaction_toggle,
    record_status_transition,
)
from rallychat.models import Message, MessageStatus, ReplySnapshot
from rallychat.storage import ConversationStore
from rallychat.tracker import DeliveryTracker, NullDeliveryTracker
from rallychat.utils import format_display_time

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]
DeletePrompt = Callable[[Message], bool]


class MessageLifecycleManager:
    """
    Drives outgoing messages through sent -> delivered -> read.

    Args:
        store: Conversation store this manager mutates
        tracker: Source of delivered/read acknowledgements
        clipboard: Receiver for copied message text
        local_sender: Display name for messages authored locally
        clock: Returns the display timestamp for new messages
    """

    def __init__(
        self,
        store: ConversationStore,
        tracker: Optional[DeliveryTracker] = None,
        clipboard: Optional[Clipboard] = None,
        local_sender: str = "You",
        clock: Callable[[], str] = format_display_time,
    ):
        self.store = store
        self.tracker = tracker or NullDeliveryTracker()
        self.clipboard = clipboard or InMemoryClipboard()
        self.local_sender = local_sender
        self.clock = clock
        self._listeners: list[Listener] = []
        self._reply_contexts: dict[str, ReplySnapshot] = {}
        self._pending_deletes: dict[str, int] = {}

    # =========================================================================
    # Rendering
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with the conversation id after every change.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, conversation_id: str) -> None:
        for listener in list(self._listeners):
            listener(conversation_id)

    def messages(self, conversation_id: str) -> list[Message]:
        """Ordered view of the conversation, oldest first."""
        return self.store.messages(conversation_id)

    # =========================================================================
    # Sending
    # =========================================================================

    def send(
        self,
        conversation_id: str,
        text: str,
        reply_context: Union[Message, ReplySnapshot, None] = None,
    ) -> Optional[Message]:
        """
        Append an outgoing message and start tracking its delivery.

        Blank or whitespace-only text is ignored. The reply context is
        either passed in or taken from set_reply_context(); either way the
        conversation's active context is cleared afterwards.

        Returns:
            The new message, or None if the text was blank
        """
        self.store.get_conversation(conversation_id)

        body = (text or "").strip()
        if not body:
            logger.debug(f"Ignoring blank send in {conversation_id}")
            return None

        if reply_context is None:
            reply_to = self._reply_contexts.get(conversation_id)
        elif isinstance(reply_context, Message):
            reply_to = reply_context.snapshot()
        else:
            reply_to = reply_context

        message = self._append_outgoing(conversation_id, body, reply_to)
        self._reply_contexts.pop(conversation_id, None)
        self._notify(conversation_id)
        return message

    def _append_outgoing(self, conversation_id: str, body: str, reply_to: Optional[ReplySnapshot]) -> Message:
        message = Message(
            id=self.store.next_message_id(conversation_id),
            text=body,
            timestamp=self.clock(),
            is_sender=True,
            sender=self.local_sender,
            status=MessageStatus.SENT,
            reply_to=reply_to,
        )
        self.store.append(conversation_id, message)
        record_message_sent()
        logger.info(f"Message sent: conversation={conversation_id}, id={message.id}, reply_to={reply_to.id if reply_to else None}")

        self.tracker.track(conversation_id, message.id, self.advance_status)
        return message

    def advance_status(self, conversation_id: str, message_id: int, next_status: MessageStatus) -> bool:
        """
        Move a message forward to next_status.

        Missing conversations or messages (deleted before the
        acknowledgement arrived) are ignored, as is any status that is not
        strictly later than the current one. Only the status field changes.

        Returns:
            True if the status changed
        """
        if not self.store.has_conversation(conversation_id):
            logger.debug(f"Status {next_status.value} for unknown conversation {conversation_id}, ignoring")
            return False

        message = self.store.find(conversation_id, message_id)
        if message is None:
            logger.debug(f"Status {next_status.value} for missing message {message_id}, ignoring")
            return False

        if not next_status.is_after(message.status):
            logger.debug(
                f"Not regressing message {message_id} from {message.status.value} to {next_status.value}"
            )
            return False

        message.status = next_status
        record_status_transition(next_status.value)
        logger.debug(f"Message {message_id} in {conversation_id} is now {next_status.value}")
        self._notify(conversation_id)
        return True

    def forward(self, conversation_id: str, message_id: int, target_conversation_id: str) -> Message:
        """
        Send a copy of a message's text into another conversation.

        The forwarded copy is a new outgoing message with its own lifecycle.
        The target's reply context is left alone.
        """
        source = self.store.get(conversation_id, message_id)
        self.store.get_conversation(target_conversation_id)

        message = self._append_outgoing(target_conversation_id, source.text, None)
        logger.info(f"Message forwarded: {conversation_id}/{message_id} -> {target_conversation_id}/{message.id}")
        self._notify(target_conversation_id)
        return message

    # =========================================================================
    # Long-press actions
    # =========================================================================

    def react(self, conversation_id: str, message_id: int, emoji: str) -> bool:
        """
        Toggle an emoji on a message.

        Returns:
            True if the emoji was added, False if it was removed
        """
        message = self.store.get(conversation_id, message_id)
        added = message.toggle_reaction(emoji)
        record_reaction_toggle("added" if added else "removed")
        logger.debug(f"Reaction {emoji} {'added to' if added else 'removed from'} message {message_id}")
        self._notify(conversation_id)
        return added

    def copy(self, conversation_id: str, message_id: int) -> None:
        message = self.store.get(conversation_id, message_id)
        self.clipboard.set_text(message.text)

    def set_reply_context(self, conversation_id: str, message: Optional[Message]) -> Optional[ReplySnapshot]:
        """
        Select the message the next send() quotes, or clear it with None.

        Returns:
            The stored snapshot, or None when cleared
        """
        self.store.get_conversation(conversation_id)
        if message is None:
            self._reply_contexts.pop(conversation_id, None)
            return None

        snapshot = message.snapshot()
        self._reply_contexts[conversation_id] = snapshot
        return snapshot

    def cancel_reply(self, conversation_id: str) -> None:
        self.set_reply_context(conversation_id, None)

    def reply_context(self, conversation_id: str) -> Optional[ReplySnapshot]:
        return self._reply_contexts.get(conversation_id)

    # =========================================================================
    # Deleting
    # =========================================================================

    def request_delete(self, conversation_id: str, message_id: int) -> Message:
        """
        First step of a delete: remember which message awaits confirmation.

        A new request replaces any earlier pending one in the conversation.
        """
        message = self.store.get(conversation_id, message_id)
        self._pending_deletes[conversation_id] = message_id
        logger.debug(f"Delete requested: conversation={conversation_id}, id={message_id}")
        return message

    def pending_delete(self, conversation_id: str) -> Optional[int]:
        return self._pending_deletes.get(conversation_id)

    def confirm_delete(self, conversation_id: str, message_id: int, confirmed: bool = True) -> bool:
        """
        Second step of a delete.

        Declining clears the pending request and leaves the message in place.

        Returns:
            True if the message was removed

        Raises:
            DeleteNotRequested: if message_id is not the pending request
        """
        if self._pending_deletes.get(conversation_id) != message_id:
            raise DeleteNotRequested(conversation_id, message_id)
        del self._pending_deletes[conversation_id]

        if not confirmed:
            logger.info(f"Delete declined: conversation={conversation_id}, id={message_id}")
            return False

        self.store.remove(conversation_id, message_id)
        self.tracker.cancel(conversation_id, message_id)
        record_message_deleted()
        logger.info(f"Message deleted: conversation={conversation_id}, id={message_id}")
        self._notify(conversation_id)
        return True

    def delete(self, conversation_id: str, message_id: int, prompt: DeletePrompt) -> bool:
        """Run both delete steps, asking prompt for the confirmation."""
        message = self.request_delete(conversation_id, message_id)
        return self.confirm_delete(conversation_id, message_id, bool(prompt(message)))

    # =========================================================================
    # Teardown
    # =========================================================================

    def close_conversation(self, conversation_id: str) -> None:
        """
        Tear down the conversation's session state.

        Outstanding acknowledgements are cancelled, so sent messages keep
        whatever status they had reached. Messages stay in the store.
        """
        self.store.get_conversation(conversation_id)
        self.tracker.cancel_conversation(conversation_id)
        self._reply_contexts.pop(conversation_id, None)
        self._pending_deletes.pop(conversation_id, None)
        logger.info(f"Conversation closed: {conversation_id}")

    def shutdown(self) -> None:
        self.tracker.cancel_all()
        self._listeners.clear()
