"""
Tests for document chat.

Covers:
- Append-only persistence and conversation titles
- Message resolution (full list vs single new message)
- SSE streaming, sources and persistence after the reply, even after a disconnect
"""

import json
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from genai_studio.services import chat_persistence
from genai_studio.services.chat import (
    latest_user_text,
    new_message_id,
    resolve_messages,
    stream_chat,
    to_model_messages,
    wait_for_pending_turns,
)
from genai_studio.services.rag import RetrievedContext
from genai_studio.services.vector_store import DocumentSource


def ui(role, text, message_id=None):
    return {"id": message_id or f"msg_{uuid4().hex[:12]}", "role": role, "parts": [{"type": "text", "text": text}]}


def parse_events(chunks):
    events = []
    for chunk in chunks:
        assert chunk.startswith("data: ") and chunk.endswith("\n\n")
        events.append(json.loads(chunk[len("data: "):]))
    return events


async def collect(generator):
    return [chunk async for chunk in generator]


class TestChatPersistence:
    async def test_save_is_append_only(self, session):
        conversation_id = f"conv-{uuid4()}"
        first = ui("user", "What is the refund window?")

        assert await chat_persistence.save_chat(session, conversation_id, [first], document_id="doc-1") == 1
        reply = ui("assistant", "Thirty days.")
        inserted = await chat_persistence.save_chat(
            session, conversation_id, [first, reply], document_id="doc-1", context="[Source 1]: refunds"
        )

        assert inserted == 1
        stored = await chat_persistence.load_chat(session, conversation_id)
        assert [m["id"] for m in stored] == [first["id"], reply["id"]]
        assert stored[1]["parts"] == [{"type": "text", "text": "Thirty days."}]

    async def test_title_from_first_user_message(self, session):
        conversation_id = f"conv-{uuid4()}"
        question = "Summarise the onboarding checklist for new engineering hires please"

        await chat_persistence.save_chat(session, conversation_id, [ui("user", question)])

        conversation = await chat_persistence.get_conversation(session, conversation_id)
        assert conversation.title == question[:50] + "..."

    async def test_delete_document_conversations(self, session):
        document_id = f"doc-{uuid4()}"
        for _ in range(2):
            await chat_persistence.save_chat(session, f"conv-{uuid4()}", [ui("user", "hi")], document_id=document_id)

        assert len(await chat_persistence.list_conversations(session, document_id=document_id)) == 2
        assert await chat_persistence.delete_document_conversations(session, document_id) == 2
        assert await chat_persistence.list_conversations(session, document_id=document_id) == []

    async def test_delete_unknown_conversation(self, session):
        assert await chat_persistence.delete_conversation(session, "missing") is False


class TestMessageResolution:
    async def test_single_message_appended_to_history(self, session):
        conversation_id = f"conv-{uuid4()}"
        history = [ui("user", "first"), ui("assistant", "answer")]
        await chat_persistence.save_chat(session, conversation_id, history)

        new = ui("user", "second")
        messages = await resolve_messages(session, conversation_id, message=new)

        assert [m["id"] for m in messages] == [history[0]["id"], history[1]["id"], new["id"]]

    async def test_resent_message_not_duplicated(self, session):
        conversation_id = f"conv-{uuid4()}"
        history = [ui("user", "first")]
        await chat_persistence.save_chat(session, conversation_id, history)

        messages = await resolve_messages(session, conversation_id, message=history[0])

        assert len(messages) == 1

    async def test_full_list_used_as_is(self, session):
        messages = [ui("user", "only")]
        assert await resolve_messages(session, "conv-x", messages=messages) == messages

    async def test_nothing_to_answer(self, session):
        with pytest.raises(ValueError):
            await resolve_messages(session, "conv-x")

    def test_model_messages(self):
        messages = [ui("user", "q1"), ui("assistant", "a1"), {"id": "t", "role": "tool", "parts": []}, ui("user", "q2")]

        assert to_model_messages("SYSTEM", messages) == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "q1"},
            {"role": "assistant", "content": "a1"},
            {"role": "user", "content": "q2"},
        ]
        assert latest_user_text(messages) == "q2"

    def test_message_id_format(self):
        message_id = new_message_id()
        assert message_id.startswith("msg_") and len(message_id) == 20


class TestStreamChat:
    async def test_streams_answer_and_persists(self, session, fake_openai):
        conversation_id = f"conv-{uuid4()}"
        source = DocumentSource("doc-1", "Policy", "doc-1-chunk-0", "Refunds within 30 days.", 0.87)
        retrieved = RetrievedContext(context="[Source 1]: Refunds within 30 days.", sources=[source])
        client = fake_openai(tokens=["Thirty", " days."])
        question = ui("user", "What is the refund window?")

        with patch("genai_studio.services.chat.build_document_context", AsyncMock(return_value=retrieved)), \
                patch("genai_studio.services.chat.get_openai_client", return_value=client):
            events = parse_events(await collect(stream_chat(conversation_id, "doc-1", "Policy", [question])))

        assert [e["type"] for e in events] == ["start", "delta", "delta", "finish", "done"]
        assert "".join(e["text"] for e in events if e["type"] == "delta") == "Thirty days."
        assert events[3]["messageId"] == events[0]["messageId"]
        assert events[3]["sources"][0]["chunkId"] == "doc-1-chunk-0"

        system_prompt = client.calls["chat"][0]["messages"][0]["content"]
        assert "Refunds within 30 days." in system_prompt

        stored = await chat_persistence.load_chat(session, conversation_id)
        assert [m["role"] for m in stored] == ["user", "assistant"]
        assert stored[1]["id"] == events[0]["messageId"]
        assert stored[1]["parts"][0]["text"] == "Thirty days."

    async def test_completion_failure_yields_error_event(self, session, fake_openai):
        conversation_id = f"conv-{uuid4()}"
        client = fake_openai(chat_error=RuntimeError("model overloaded"))

        with patch("genai_studio.services.chat.build_document_context", AsyncMock(return_value=RetrievedContext())), \
                patch("genai_studio.services.chat.get_openai_client", return_value=client):
            events = parse_events(await collect(stream_chat(conversation_id, "doc-1", "Policy", [ui("user", "hi")])))

        assert [e["type"] for e in events] == ["start", "error"]
        assert await chat_persistence.load_chat(session, conversation_id) == []

    async def test_turn_saved_when_client_disconnects(self, session, fake_openai):
        conversation_id = f"conv-{uuid4()}"
        client = fake_openai(tokens=["Thirty", " days", "."])
        question = ui("user", "What is the refund window?")

        with patch("genai_studio.services.chat.build_document_context", AsyncMock(return_value=RetrievedContext())), \
                patch("genai_studio.services.chat.get_openai_client", return_value=client):
            generator = stream_chat(conversation_id, "doc-1", "Policy", [question])
            start = parse_events([await generator.__anext__()])[0]
            first_delta = parse_events([await generator.__anext__()])[0]
            await generator.aclose()
            await wait_for_pending_turns()

        assert first_delta == {"type": "delta", "text": "Thirty"}
        stored = await chat_persistence.load_chat(session, conversation_id)
        assert [m["id"] for m in stored] == [question["id"], start["messageId"]]
        assert stored[1]["parts"][0]["text"] == "Thirty days."
