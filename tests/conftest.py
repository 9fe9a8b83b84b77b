"""
Pytest configuration and shared fixtures.

Status timers are shortened through the environment before the app is
imported, so lifecycle tests can wait for delivered/read in well under a
second.
"""

import os

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DELIVERY_DELAY_MS", "100")
os.environ.setdefault("READ_DELAY_MS", "200")
os.environ.setdefault("SEED_MOCK_DATA", "true")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from rallychat.config import get_settings
get_settings.cache_clear()

from rallychat.lifecycle import MessageLifecycleManager
from rallychat.main import app
from rallychat.models import Conversation, ConversationKind, Message
from rallychat.storage import ConversationStore
from rallychat.tracker import DeliveryTracker


class ManualDeliveryTracker(DeliveryTracker):
    """Records tracked messages so tests can fire acknowledgements by hand."""

    def __init__(self):
        self.tracked = {}
        self.cancelled = []

    def track(self, conversation_id, message_id, on_status):
        self.tracked[(conversation_id, message_id)] = on_status

    def fire(self, conversation_id, message_id, status):
        self.tracked[(conversation_id, message_id)](conversation_id, message_id, status)

    def cancel(self, conversation_id, message_id):
        self.tracked.pop((conversation_id, message_id), None)
        self.cancelled.append((conversation_id, message_id))

    def cancel_conversation(self, conversation_id):
        for key in [k for k in self.tracked if k[0] == conversation_id]:
            self.cancel(*key)

    def pending(self, conversation_id=None):
        return sum(1 for cid, _ in self.tracked if conversation_id is None or cid == conversation_id)


@pytest.fixture
def store():
    """Store with one empty conversation and one with a received message."""
    store = ConversationStore()
    store.add_conversation(Conversation(id="chat1", name="Regina"))
    store.add_conversation(
        Conversation(id="club", name="Badminton Club", kind=ConversationKind.COMMUNITY, member_count=12),
        [Message(id=1, text="Anyone up for doubles tonight?", timestamp="10:45 AM",
                 is_sender=False, sender="Mike Liu")],
    )
    return store


@pytest.fixture
def tracker():
    return ManualDeliveryTracker()


@pytest.fixture
def manager(store, tracker):
    return MessageLifecycleManager(store, tracker=tracker, clock=lambda: "10:00 AM")


@pytest.fixture(scope="function")
def client():
    """Test client with a freshly seeded store for each test."""
    with TestClient(app) as test_client:
        yield test_client
