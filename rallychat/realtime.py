"""
WebSocket fan-out for live conversation updates.

Every change the lifecycle manager reports is pushed to the sockets
watching that conversation as a full ordered snapshot, so clients simply
re-render what they receive.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable

from fastapi import WebSocket

from rallychat.lifecycle import MessageLifecycleManager
from rallychat.schemas import MessageResponse

logger = logging.getLogger(__name__)


def conversation_snapshot(manager: MessageLifecycleManager, conversation_id: str) -> dict[str, Any]:
    return {
        "type": "messages",
        "conversation_id": conversation_id,
        "data": [
            MessageResponse.model_validate(message).model_dump(mode="json")
            for message in manager.messages(conversation_id)
        ],
    }


class ConnectionManager:
    """Manage WebSocket connections per conversation."""

    def __init__(self):
        # conversation_id -> open sockets
        self.active_connections: dict[str, list[WebSocket]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket, conversation_id: str) -> None:
        await websocket.accept()
        self.active_connections[conversation_id].append(websocket)
        logger.info(f"WebSocket connected to conversation {conversation_id}")

    def disconnect(self, websocket: WebSocket, conversation_id: str) -> None:
        connections = self.active_connections.get(conversation_id)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[conversation_id]
        logger.info(f"WebSocket disconnected from conversation {conversation_id}")

    async def broadcast(self, conversation_id: str, payload: dict[str, Any]) -> None:
        """Send payload to every socket on the conversation, dropping dead ones."""
        disconnected = []
        for connection in list(self.active_connections.get(conversation_id, [])):
            try:
                await connection.send_json(payload)
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket on {conversation_id}: {e}")
                disconnected.append(connection)

        for connection in disconnected:
            self.disconnect(connection, conversation_id)

    def connection_count(self, conversation_id: str) -> int:
        return len(self.active_connections.get(conversation_id, []))

    def listener(self, manager: MessageLifecycleManager) -> Callable[[str], None]:
        """
        Build a lifecycle listener that schedules a broadcast per change.

        Must be called back on the event loop thread, which holds for both
        request handlers and tracker timers.
        """
        def on_change(conversation_id: str) -> None:
            if not self.connection_count(conversation_id):
                return
            payload = conversation_snapshot(manager, conversation_id)
            task = asyncio.get_running_loop().create_task(self.broadcast(conversation_id, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return on_change
