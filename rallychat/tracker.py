"""
Delivery tracking for outgoing messages.

DeliveryTracker is the seam between the message model and whatever
produces delivered/read acknowledgements. The only producer today is
TimerDeliveryTracker, which simulates them on fixed delays.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from rallychat.models import MessageStatus

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str, int, MessageStatus], None]


class DeliveryTracker(ABC):
    """Schedules status acknowledgements for sent messages."""

    @abstractmethod
    def track(self, conversation_id: str, message_id: int, on_status: StatusCallback) -> None:
        """Start tracking a freshly sent message; must not block."""

    @abstractmethod
    def cancel(self, conversation_id: str, message_id: int) -> None:
        """Drop any outstanding acknowledgements for one message."""

    @abstractmethod
    def cancel_conversation(self, conversation_id: str) -> None:
        """Drop every outstanding acknowledgement for a conversation."""

    def cancel_all(self) -> None:
        pass

    def pending(self, conversation_id: Optional[str] = None) -> int:
        return 0


class NullDeliveryTracker(DeliveryTracker):
    """Never acknowledges anything; sent messages stay sent."""

    def track(self, conversation_id, message_id, on_status):
        logger.debug(f"Not tracking message {message_id} in {conversation_id}")

    def cancel(self, conversation_id, message_id):
        pass

    def cancel_conversation(self, conversation_id):
        pass


class TimerDeliveryTracker(DeliveryTracker):
    """
    Simulated acknowledgements on the running event loop.

    Delivery and read are two independent timers, both measured from send
    time; read is not chained after delivery. Handles are kept per message
    so a delete or conversation close can cancel them.
    """

    def __init__(self, delivery_delay: float = 1.0, read_delay: float = 2.0):
        self.delivery_delay = delivery_delay
        self.read_delay = read_delay
        self._handles: dict[tuple[str, int], dict[MessageStatus, asyncio.TimerHandle]] = {}

    def track(self, conversation_id: str, message_id: int, on_status: StatusCallback) -> None:
        loop = asyncio.get_running_loop()
        key = (conversation_id, message_id)
        handles = self._handles.setdefault(key, {})
        for delay, status in (
            (self.delivery_delay, MessageStatus.DELIVERED),
            (self.read_delay, MessageStatus.READ),
        ):
            handles[status] = loop.call_later(delay, self._fire, key, status, on_status)
        logger.debug(
            f"Tracking message {message_id} in {conversation_id}: "
            f"delivered in {self.delivery_delay}s, read in {self.read_delay}s"
        )

    def _fire(self, key: tuple[str, int], status: MessageStatus, on_status: StatusCallback) -> None:
        handles = self._handles.get(key)
        if handles is not None:
            handles.pop(status, None)
            if not handles:
                del self._handles[key]
        conversation_id, message_id = key
        on_status(conversation_id, message_id, status)

    def cancel(self, conversation_id: str, message_id: int) -> None:
        handles = self._handles.pop((conversation_id, message_id), {})
        for handle in handles.values():
            handle.cancel()
        if handles:
            logger.debug(f"Cancelled {len(handles)} timers for message {message_id} in {conversation_id}")

    def cancel_conversation(self, conversation_id: str) -> None:
        for key in [k for k in self._handles if k[0] == conversation_id]:
            self.cancel(*key)

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(*key)

    def pending(self, conversation_id: Optional[str] = None) -> int:
        return sum(
            len(handles)
            for (cid, _), handles in self._handles.items()
            if conversation_id is None or cid == conversation_id
        )
