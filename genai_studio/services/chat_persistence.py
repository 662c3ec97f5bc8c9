"""Chat persistence service for storing and retrieving document conversations.

Messages use the UI message shape ``{"id", "role", "parts": [{"type", "text"}]}``
and are stored append-only: saving a conversation inserts only the messages
whose id is not stored yet.
"""

from datetime import datetime, timedelta, timezone
import json
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from genai_studio.config.logger import app_logger
from genai_studio.models.conversation import Conversation, Message

CONTEXT_PREVIEW_CHARS = 1000


def message_text(message: Dict[str, Any]) -> str:
    """Concatenate the text parts of a UI message."""
    parts = message.get("parts")
    if parts is None and isinstance(message.get("content"), str):
        return message["content"]
    return "".join(
        part.get("text", "")
        for part in parts or []
        if isinstance(part, dict) and part.get("type") == "text"
    )


def _to_ui_message(row: Message) -> Dict[str, Any]:
    try:
        parts = json.loads(row.parts) if row.parts else []
    except json.JSONDecodeError:
        parts = [{"type": "text", "text": row.parts}]
    return {"id": row.id, "role": row.role, "parts": parts}


async def get_conversation(session: AsyncSession, conversation_id: str) -> Optional[Conversation]:
    return await session.get(Conversation, conversation_id)


async def get_or_create_conversation(
    session: AsyncSession,
    conversation_id: str,
    document_id: Optional[str] = None,
    title: Optional[str] = None,
) -> Conversation:
    """Get existing conversation or create a new one.

    Args:
        session: Database session
        conversation_id: The conversation ID
        document_id: Document the conversation is about, if any
        title: Optional title for a new conversation

    Returns:
        The conversation record
    """
    conversation = await session.get(Conversation, conversation_id)
    if conversation is not None:
        return conversation

    conversation = Conversation(
        id=conversation_id,
        title=title or "New Conversation",
        document_id=document_id,
    )
    session.add(conversation)
    await session.commit()
    await session.refresh(conversation)
    app_logger.debug(f"Created conversation {conversation_id}")
    return conversation


async def load_chat(session: AsyncSession, conversation_id: str) -> List[Dict[str, Any]]:
    """Load stored messages for a conversation, oldest first."""
    result = await session.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at)
    )
    return [_to_ui_message(row) for row in result.scalars().all()]


async def save_chat(
    session: AsyncSession,
    conversation_id: str,
    messages: List[Dict[str, Any]],
    document_id: Optional[str] = None,
    context: Optional[str] = None,
) -> int:
    """Persist new messages of a conversation and return how many were inserted.

    Args:
        session: Database session
        conversation_id: The conversation ID
        messages: Full UI message list for the conversation
        document_id: Document the messages refer to
        context: Retrieval context used for the latest reply; a preview is
            stored on assistant messages

    Returns:
        Number of inserted messages
    """
    conversation = await get_or_create_conversation(session, conversation_id, document_id)

    result = await session.execute(
        select(Message.id).where(Message.conversation_id == conversation_id)
    )
    stored_ids = set(result.scalars().all())

    now = datetime.now(timezone.utc)
    inserted = 0
    for message in messages:
        message_id = message.get("id")
        if not message_id or message_id in stored_ids:
            continue
        role = message.get("role", "user")
        parts = message.get("parts")
        if parts is None:
            parts = [{"type": "text", "text": message_text(message)}]
        session.add(
            Message(
                id=message_id,
                conversation_id=conversation_id,
                role=role,
                parts=json.dumps(parts),
                document_id=document_id,
                context=context[:CONTEXT_PREVIEW_CHARS] if context and role == "assistant" else None,
                created_at=now + timedelta(microseconds=inserted),
            )
        )
        stored_ids.add(message_id)
        inserted += 1

    if conversation.title == "New Conversation":
        first_user = next((m for m in messages if m.get("role") == "user"), None)
        if first_user:
            text = message_text(first_user).strip()
            if text:
                conversation.title = text[:50] + ("..." if len(text) > 50 else "")

    conversation.updated_at = now
    session.add(conversation)
    await session.commit()

    app_logger.debug(f"Saved {inserted} new messages for conversation {conversation_id}")
    return inserted


async def list_conversations(
    session: AsyncSession,
    document_id: Optional[str] = None,
    limit: int = 50,
) -> List[Conversation]:
    """List conversations, most recently updated first."""
    query = select(Conversation)
    if document_id:
        query = query.where(Conversation.document_id == document_id)
    result = await session.execute(query.order_by(Conversation.updated_at.desc()).limit(limit))
    return list(result.scalars().all())


async def delete_conversation(session: AsyncSession, conversation_id: str) -> bool:
    """Delete a conversation and all its messages.

    Returns:
        True if deleted, False if not found
    """
    conversation = await session.get(Conversation, conversation_id)
    if conversation is None:
        return False

    await session.execute(delete(Message).where(Message.conversation_id == conversation_id))
    await session.delete(conversation)
    await session.commit()
    app_logger.info(f"Deleted conversation {conversation_id}")
    return True


async def delete_document_conversations(session: AsyncSession, document_id: str) -> int:
    """Delete every message and conversation tied to a document."""
    await session.execute(delete(Message).where(Message.document_id == document_id))
    result = await session.execute(
        delete(Conversation).where(Conversation.document_id == document_id)
    )
    await session.commit()
    return result.rowcount or 0
