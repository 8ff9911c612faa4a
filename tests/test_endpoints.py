"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from brief.config import AppConfig
from brief.main import create_app


@pytest.fixture
def chat_client(stub_client, responses):
    return stub_client([responses.text("Hello!")])


@pytest.fixture
def client(chat_client):
    app = create_app(AppConfig(anthropic_api_key="test-key", summary_target_tokens=50), client=chat_client)
    return TestClient(app)


def start_conversation(client, message="Hello"):
    response = client.post("/conversation", json={"message": message})
    assert response.status_code == 200
    return response.json()["conversation_id"]


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self, client):
        """Test that health check returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self, client):
        """Test that health check returns expected JSON structure."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data


class TestConversationEndpoint:
    """Tests for the conversation endpoint."""

    def test_conversation_response_structure(self, client):
        """Test that a new conversation returns a reply, id and context status."""
        response = client.post("/conversation", json={"message": "Hello"})
        data = response.json()

        assert response.status_code == 200
        assert data["response"] == "Hello!"
        assert len(data["conversation_id"]) > 0
        assert data["context"]["context_size"] == 200_000
        assert data["context"]["near_limit"] is False

    def test_conversation_continues(self, client, chat_client):
        """Test that a known conversation id continues the same history."""
        conversation_id = start_conversation(client)

        response = client.post("/conversation", json={"message": "Again", "conversation_id": conversation_id})

        assert response.json()["conversation_id"] == conversation_id
        sent = [m.content for m in chat_client.calls[1]["messages"]]
        assert sent == ["Hello", "Hello!", "Again"]

    def test_unknown_conversation_returns_404(self, client):
        """Test that an unknown conversation id is rejected."""
        response = client.post("/conversation", json={"message": "Hello", "conversation_id": "missing"})
        assert response.status_code == 404

    def test_empty_message_returns_400(self, client):
        """Test that blank messages are rejected."""
        response = client.post("/conversation", json={"message": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Message cannot be empty."

    def test_rejected_message_does_not_store_conversation(self, client):
        """Test that a 400 on a new conversation leaves nothing behind."""
        client.post("/conversation", json={"message": "   "})

        assert client.app.state.services.store.count() == 0

    def test_rejected_message_keeps_existing_conversation(self, client):
        """Test that a 400 on a known conversation does not discard it."""
        conversation_id = start_conversation(client)

        response = client.post("/conversation", json={"message": "", "conversation_id": conversation_id})

        assert response.status_code == 400
        assert client.get(f"/conversation/{conversation_id}").status_code == 200

    def test_missing_message_returns_422(self, client):
        """Test request validation."""
        response = client.post("/conversation", json={})
        assert response.status_code == 422

    def test_model_override(self, client, chat_client):
        """Test that the requested model is used and reported."""
        response = client.post("/conversation", json={"message": "Hello", "model": "gpt-4"})

        assert chat_client.calls[0]["model"] == "gpt-4"
        assert response.json()["context"]["context_size"] == 8192


class TestHistoryEndpoint:
    """Tests for reading and deleting conversations."""

    def test_history_hides_tool_messages(self, stub_client, responses):
        """Test that tool results are not listed by default."""
        chat_client = stub_client([responses.tools(("call_1", "missing", {})), responses.text("Done")])
        client = TestClient(create_app(AppConfig(anthropic_api_key="test-key"), client=chat_client))
        conversation_id = start_conversation(client)

        data = client.get(f"/conversation/{conversation_id}").json()

        assert [m["role"] for m in data["messages"]] == ["user", "assistant", "assistant"]
        assert data["messages"][1]["tool_calls"][0]["status"] == "error"
        assert data["messages"][-1]["content"] == "Done"

    def test_history_unknown_returns_404(self, client):
        assert client.get("/conversation/missing").status_code == 404

    def test_delete(self, client):
        """Test discarding a conversation."""
        conversation_id = start_conversation(client)

        assert client.delete(f"/conversation/{conversation_id}").status_code == 204
        assert client.delete(f"/conversation/{conversation_id}").status_code == 404
        assert client.get(f"/conversation/{conversation_id}").status_code == 404


class TestContextEndpoints:
    """Tests for context status and compaction."""

    def test_context_status(self, client):
        """Test context figures for the default and an explicit model."""
        conversation_id = start_conversation(client)

        default = client.get(f"/conversation/{conversation_id}/context").json()
        small = client.get(f"/conversation/{conversation_id}/context", params={"model": "gpt-4"}).json()

        assert default["used_tokens"] == 4
        assert default["remaining_tokens"] == 200_000 - 4
        assert small["context_size"] == 8192

    def test_compact_noop_within_budget(self, client):
        """Test that compaction does nothing when the reserve fits."""
        conversation_id = start_conversation(client)

        data = client.post(f"/conversation/{conversation_id}/compact", json={}).json()

        assert data["was_trimmed"] is False
        assert data["message_count"] == 2

    def test_compact_over_budget(self, client, chat_client):
        """Test explicit compaction against a small window."""
        conversation_id = start_conversation(client, "x" * 4000)
        for _ in range(4):
            client.post("/conversation", json={"message": "y" * 4000, "conversation_id": conversation_id})

        response = client.post(
            f"/conversation/{conversation_id}/compact", json={"model": "gpt-4", "reserve_tokens": 7000}
        )
        data = response.json()

        assert data["was_trimmed"] is True
        assert data["was_truncated"] is False
        assert data["message_count"] == 5
        assert chat_client.prompts


class TestPasteEndpoint:
    """Tests for paste processing."""

    def test_short_paste(self, client):
        """Test a paste shown inline."""
        data = client.post("/paste", json={"text": "hello"}).json()

        assert data["display_text"] == "hello"
        assert data["actual_text"] == "hello"
        assert data["line_count"] == 1

    def test_long_paste_summarized(self, client, chat_client):
        """Test that pastes above the target are summarized by the endpoint."""
        chat_client.summary_text = "condensed"

        data = client.post("/paste", json={"text": "line of text\n" * 40, "index": 2}).json()

        assert data["display_text"] == "[Pasted text 2 (summarized)]"
        assert data["actual_text"] == "condensed"
        assert data["was_summarized"] is True

    def test_invalid_index(self, client):
        assert client.post("/paste", json={"text": "x", "index": 0}).status_code == 422
