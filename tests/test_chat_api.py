"""Endpoint tests for /v1/chat."""

import json
from unittest.mock import patch

import pytest

from test_chunker import PARAGRAPHS


def sse_events(response):
    return [json.loads(line[len("data: "):]) for line in response.text.splitlines() if line.startswith("data: ")]


@pytest.fixture
def document_id(client):
    response = client.post(
        "/v1/documents/upload",
        files={"file": ("science.txt", "\n\n".join(PARAGRAPHS).encode(), "text/plain")},
    )
    return response.json()["data"]["documentId"]


class TestChatEndpoint:
    def test_streams_grounded_answer(self, client, document_id, fake_openai):
        openai_client = fake_openai(tokens=["Plants ", "use sunlight."])
        payload = {
            "documentId": document_id,
            "message": {
                "id": "msg_user_1",
                "role": "user",
                "parts": [{"type": "text", "text": "What does photosynthesis need?"}],
            },
        }

        with patch("genai_studio.services.chat.get_openai_client", return_value=openai_client):
            response = client.post("/v1/chat", json=payload)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_events(response)
        assert events[0]["type"] == "start"
        assert events[-1] == {"type": "done"}
        finish = next(e for e in events if e["type"] == "finish")
        assert finish["sources"][0]["documentId"] == document_id
        assert "Photosynthesis" in openai_client.calls["chat"][0]["messages"][0]["content"]

        history = client.get(f"/v1/chat/{document_id}").json()["data"]
        assert [m["role"] for m in history["messages"]] == ["user", "assistant"]
        assert history["messages"][1]["parts"][0]["text"] == "Plants use sunlight."
        assert history["documentId"] == document_id
        assert history["title"] == "What does photosynthesis need?"

    def test_requires_document(self, client):
        response = client.post("/v1/chat", json={"messages": [{"id": "m1", "role": "user", "parts": []}]})
        assert response.status_code == 400

    def test_requires_messages(self, client, document_id):
        response = client.post("/v1/chat", json={"documentId": document_id})
        assert response.status_code == 400

    def test_unknown_document(self, client):
        response = client.post(
            "/v1/chat",
            json={"documentId": "doc-missing", "message": {"id": "m1", "role": "user", "parts": []}},
        )
        assert response.status_code == 404


class TestConversationEndpoints:
    def test_unknown_conversation_is_empty(self, client):
        data = client.get("/v1/chat/conv-never-used").json()["data"]
        assert data["messages"] == []
        assert data["title"] is None

    def test_delete_conversation(self, client, document_id, fake_openai):
        with patch("genai_studio.services.chat.get_openai_client", return_value=fake_openai()):
            client.post(
                "/v1/chat",
                json={
                    "id": "conv-to-delete",
                    "documentId": document_id,
                    "messages": [{"id": "m-del", "role": "user", "parts": [{"type": "text", "text": "hi"}]}],
                },
            )

        assert client.delete("/v1/chat/conv-to-delete").status_code == 200
        assert client.get("/v1/chat/conv-to-delete").json()["data"]["messages"] == []
        assert client.delete("/v1/chat/conv-to-delete").status_code == 404
