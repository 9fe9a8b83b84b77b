"""
Tests for the chat list, stats, health, metrics and realtime endpoints.
"""

import pytest
from starlette.websockets import WebSocketDisconnect


class TestHealth:
    def test_live(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_request_id_header(self, client):
        response = client.get("/conversations")
        assert "x-request-id" in response.headers


class TestConversationList:
    """Test GET /conversations."""

    def test_lists_seeded_conversations(self, client):
        response = client.get("/conversations")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 5
        assert [c["id"] for c in data["data"]] == ["community1", "chat1", "chat2", "chat3", "chat4"]

    def test_community_fields(self, client):
        community = client.get("/conversations/community1").json()

        assert community["kind"] == "community"
        assert community["member_count"] == 128
        assert community["unread"] == 3
        assert community["last_message"] == {
            "sender": "You",
            "content": "Count me in too!",
            "timestamp": "10:50 AM",
            "status": "delivered",
        }

    def test_received_last_message_has_no_status(self, client):
        chat = client.get("/conversations/chat3").json()
        assert chat["last_message"]["status"] is None
        assert chat["is_online"] is False

    def test_sent_last_message_preview(self, client):
        chat = client.get("/conversations/chat4").json()
        assert chat["last_message"] == {
            "sender": "You",
            "content": "Let's practice that serve",
            "timestamp": "2 days ago",
            "status": "read",
        }

    def test_typing_indicator(self, client):
        """Only John Lemington is composing in the mock data."""
        data = client.get("/conversations").json()["data"]
        assert [c["id"] for c in data if c["typing"]] == ["chat3"]

    def test_preview_follows_new_send(self, client):
        client.post("/conversations/chat4/messages", json={"text": "Let's practice that serve"})

        preview = client.get("/conversations/chat4").json()["last_message"]

        assert preview["content"] == "Let's practice that serve"
        assert preview["status"] in ("sent", "delivered", "read")

    @pytest.mark.parametrize(
        "q, expected",
        [
            ("mike", ["chat2"]),
            ("BADMINTON", ["community1"]),
            ("courts", ["chat1"]),
            ("squash", []),
        ],
    )
    def test_search(self, client, q, expected):
        response = client.get("/conversations", params={"q": q})
        assert [c["id"] for c in response.json()["data"]] == expected

    def test_unknown_conversation(self, client):
        assert client.get("/conversations/nope").status_code == 404
        assert client.get("/conversations/nope/messages").status_code == 404


class TestStats:
    def test_seeded_stats(self, client):
        data = client.get("/stats").json()

        assert data["total_messages"] == 9
        assert data["conversations_count"] == 5
        assert data["messages_per_conversation"][0]["count"] == 3
        assert data["status_counts"] == {"sent": 0, "delivered": 1, "read": 2}

    def test_stats_count_new_sends(self, client):
        client.post("/conversations/chat2/messages", json={"text": "Rematch?"})

        data = client.get("/stats").json()

        assert data["total_messages"] == 10
        assert sum(data["status_counts"].values()) == 4


class TestMetrics:
    def test_metrics_exposed(self, client):
        client.post("/conversations/chat2/messages", json={"text": "Rematch?"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "chat_messages_sent_total" in response.text
        assert "http_requests_total" in response.text


class TestRealtime:
    """Test the conversation WebSocket."""

    def test_snapshot_on_connect(self, client):
        with client.websocket_connect("/conversations/chat1/ws") as websocket:
            payload = websocket.receive_json()

        assert payload["type"] == "messages"
        assert payload["conversation_id"] == "chat1"
        assert [m["id"] for m in payload["data"]] == [1, 2, 3]

    def test_pushes_send_and_status_changes(self, client):
        with client.websocket_connect("/conversations/chat2/ws") as websocket:
            websocket.receive_json()

            sent = client.post("/conversations/chat2/messages", json={"text": "Rematch?"}).json()["message"]

            statuses = []
            while not statuses or statuses[-1] != "read":
                payload = websocket.receive_json()
                last = payload["data"][-1]
                assert last["id"] == sent["id"]
                statuses.append(last["status"])

        assert statuses[0] == "sent"
        assert "delivered" in statuses

    def test_unknown_conversation_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/conversations/nope/ws") as websocket:
                websocket.receive_json()
