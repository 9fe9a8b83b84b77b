"""
Tests for the timer-based delivery tracker.

Each test drives its own event loop with asyncio.run and uses delays of a
few hundredths of a second.
"""

import asyncio

from rallychat.models import MessageStatus
from rallychat.tracker import NullDeliveryTracker, TimerDeliveryTracker


def run(coro):
    return asyncio.run(coro)


class TestTimerDeliveryTracker:
    """Test scheduling and cancellation."""

    def test_fires_delivered_then_read(self):
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.01, read_delay=0.03)
            events = []
            tracker.track("chat1", 7, lambda cid, mid, status: events.append((cid, mid, status)))
            assert tracker.pending("chat1") == 2
            await asyncio.sleep(0.1)
            return tracker, events

        tracker, events = run(scenario())

        assert events == [
            ("chat1", 7, MessageStatus.DELIVERED),
            ("chat1", 7, MessageStatus.READ),
        ]
        assert tracker.pending() == 0

    def test_timers_are_independent(self):
        """Read is measured from send time, not from delivery."""
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.05, read_delay=0.01)
            events = []
            tracker.track("chat1", 1, lambda cid, mid, status: events.append(status))
            await asyncio.sleep(0.1)
            return events

        assert run(scenario()) == [MessageStatus.READ, MessageStatus.DELIVERED]

    def test_cancel_message(self):
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.02, read_delay=0.04)
            events = []
            tracker.track("chat1", 1, lambda cid, mid, status: events.append(mid))
            tracker.track("chat1", 2, lambda cid, mid, status: events.append(mid))
            tracker.cancel("chat1", 1)
            await asyncio.sleep(0.1)
            return events

        assert run(scenario()) == [2, 2]

    def test_cancel_after_delivery(self):
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.01, read_delay=0.08)
            events = []
            tracker.track("chat1", 1, lambda cid, mid, status: events.append(status))
            await asyncio.sleep(0.04)
            assert tracker.pending("chat1") == 1
            tracker.cancel("chat1", 1)
            await asyncio.sleep(0.08)
            return events

        assert run(scenario()) == [MessageStatus.DELIVERED]

    def test_cancel_conversation(self):
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.01, read_delay=0.02)
            events = []
            tracker.track("chat1", 1, lambda cid, mid, status: events.append(cid))
            tracker.track("club", 1, lambda cid, mid, status: events.append(cid))
            tracker.cancel_conversation("chat1")
            assert tracker.pending("chat1") == 0
            assert tracker.pending("club") == 2
            await asyncio.sleep(0.06)
            return events

        assert run(scenario()) == ["club", "club"]

    def test_cancel_all(self):
        async def scenario():
            tracker = TimerDeliveryTracker(delivery_delay=0.01, read_delay=0.02)
            events = []
            tracker.track("chat1", 1, lambda cid, mid, status: events.append(cid))
            tracker.track("club", 2, lambda cid, mid, status: events.append(cid))
            tracker.cancel_all()
            await asyncio.sleep(0.05)
            return tracker, events

        tracker, events = run(scenario())
        assert events == []
        assert tracker.pending() == 0


class TestNullDeliveryTracker:
    def test_never_acknowledges(self):
        tracker = NullDeliveryTracker()
        events = []
        tracker.track("chat1", 1, lambda cid, mid, status: events.append(status))
        assert events == []
        assert tracker.pending() == 0
