"""
Document chat service.
Builds retrieval context for the selected document, streams the completion as
Server-Sent Events and persists the conversation once the reply is complete.
"""

from __future__ import annotations

import asyncio
import json
import secrets
import string
import time
from typing import Any, AsyncGenerator, Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.config.logger import app_logger, log_performance
from genai_studio.config.settings import settings
from genai_studio.db.db import db_session
from genai_studio.services import chat_persistence
from genai_studio.services.chat_persistence import message_text
from genai_studio.services.embeddings import get_openai_client
from genai_studio.services.rag import RetrievedContext, build_document_context, build_system_prompt

_ID_ALPHABET = string.ascii_letters + string.digits

_pending_turns: Set[asyncio.Task] = set()


def new_message_id() -> str:
    return "msg_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(16))


def sse_event(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def resolve_messages(
    session: AsyncSession,
    conversation_id: str,
    messages: Optional[List[Dict[str, Any]]] = None,
    message: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Full message list for a turn.

    A single ``message`` is appended to the stored history; otherwise the
    client-supplied ``messages`` list is used as-is.
    """
    if message:
        history = await chat_persistence.load_chat(session, conversation_id)
        if any(stored["id"] == message.get("id") for stored in history):
            return history
        return history + [message]
    if messages:
        return list(messages)
    raise ValueError("No messages provided")


def latest_user_text(messages: List[Dict[str, Any]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message_text(message)
    return ""


def to_model_messages(system_prompt: str, messages: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    model_messages = [{"role": "system", "content": system_prompt}]
    for message in messages:
        role = message.get("role")
        if role not in ("user", "assistant"):
            continue
        text = message_text(message)
        if text:
            model_messages.append({"role": role, "content": text})
    return model_messages


async def _run_turn(
    events: asyncio.Queue[Optional[Dict[str, Any]]],
    conversation_id: str,
    document_id: str,
    message_id: str,
    messages: List[Dict[str, Any]],
    retrieved: RetrievedContext,
    started: float,
) -> None:
    """Run the completion to the end and persist the turn.

    Events are pushed onto ``events`` for whoever is still listening. The
    reply is saved even when nobody reads the queue any more.
    """
    answer_parts: List[str] = []
    try:
        client = get_openai_client()
        stream = await client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=to_model_messages(build_system_prompt(retrieved.context), messages),
            temperature=settings.OPENAI_CHAT_TEMPERATURE,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                answer_parts.append(delta)
                events.put_nowait({"type": "delta", "text": delta})
    except Exception as exc:
        app_logger.error(f"Chat completion failed for conversation {conversation_id}: {exc}")
        events.put_nowait({"type": "error", "error": "Failed to generate a response"})
        return

    try:
        events.put_nowait(
            {
                "type": "finish",
                "messageId": message_id,
                "sources": [source.to_dict() for source in retrieved.sources],
            }
        )
        events.put_nowait({"type": "done"})

        assistant = {
            "id": message_id,
            "role": "assistant",
            "parts": [{"type": "text", "text": "".join(answer_parts)}],
        }
        async with db_session() as session:
            await chat_persistence.save_chat(
                session,
                conversation_id,
                messages + [assistant],
                document_id=document_id,
                context=retrieved.context,
            )
    except Exception as exc:
        app_logger.error(f"Failed to persist conversation {conversation_id}: {exc}")

    log_performance("chat_turn", time.perf_counter() - started, conversation_id=conversation_id)


async def _complete_turn(events: asyncio.Queue[Optional[Dict[str, Any]]], *args: Any) -> None:
    """Run a turn and always end the event queue with ``None``."""
    try:
        await _run_turn(events, *args)
    finally:
        events.put_nowait(None)


def _track(task: asyncio.Task) -> asyncio.Task:
    _pending_turns.add(task)
    task.add_done_callback(_pending_turns.discard)
    return task


async def wait_for_pending_turns() -> None:
    """Block until every in-flight chat turn has been saved."""
    if _pending_turns:
        await asyncio.gather(*list(_pending_turns), return_exceptions=True)


async def stream_chat(
    conversation_id: str,
    document_id: str,
    document_title: str,
    messages: List[Dict[str, Any]],
) -> AsyncGenerator[str, None]:
    """
    Stream an answer to the latest user message.

    The completion runs in its own task, so a client that disconnects
    mid-stream still gets its turn saved once the reply completes.

    Yields:
        SSE-formatted ``start``, ``delta``, ``finish`` and ``done`` events, or
        an ``error`` event when the completion fails.
    """
    started = time.perf_counter()
    query = latest_user_text(messages)

    retrieved = RetrievedContext()
    if query:
        retrieved = await build_document_context(query, document_id, document_title)

    message_id = new_message_id()
    events: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue()
    _track(
        asyncio.create_task(
            _complete_turn(events, conversation_id, document_id, message_id, messages, retrieved, started)
        )
    )

    yield sse_event({"type": "start", "messageId": message_id})
    while True:
        event = await events.get()
        if event is None:
            break
        yield sse_event(event)
