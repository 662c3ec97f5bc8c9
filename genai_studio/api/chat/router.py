"""Document chat endpoints (SSE streaming) and conversation history."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.api.chat.schemas import (
    ChatRequest,
    ConversationResponse,
    DeleteConversationResponse,
)
from genai_studio.config.logger import app_logger
from genai_studio.db.db import get_session
from genai_studio.services import chat_persistence, document_store
from genai_studio.services.chat import resolve_messages, stream_chat
from genai_studio.utils.responses import SuccessResponse, success_response

router = APIRouter(prefix="/v1/chat", tags=["chat"])


@router.post("", summary="Chat with a document (Server-Sent Events)")
async def chat(
    request: ChatRequest,
    session: AsyncSession = Depends(get_session),
) -> StreamingResponse:
    """Stream an answer grounded in the selected document.

    Events are ``data: {json}`` lines with ``type`` one of ``start``,
    ``delta``, ``finish``, ``done`` or ``error``.
    """
    if not request.document_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Document ID is required")
    if not request.message and not request.messages:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No messages provided")

    document = await document_store.get_document(session, request.document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    messages = await resolve_messages(
        session,
        request.conversation_id,
        messages=[m.model_dump() for m in request.messages or []],
        message=request.message.model_dump() if request.message else None,
    )
    app_logger.info(
        f"Chat turn for conversation {request.conversation_id} "
        f"({len(messages)} messages, document {document.document_id})"
    )

    return StreamingResponse(
        stream_chat(request.conversation_id, document.document_id, document.title, messages),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get(
    "/{conversation_id}",
    response_model=SuccessResponse[ConversationResponse],
    summary="Load a conversation's stored messages",
)
async def get_conversation(
    conversation_id: str,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[ConversationResponse]:
    conversation = await chat_persistence.get_conversation(session, conversation_id)
    messages = await chat_persistence.load_chat(session, conversation_id)
    return success_response(
        data=ConversationResponse(
            conversation_id=conversation_id,
            title=conversation.title if conversation else None,
            document_id=conversation.document_id if conversation else None,
            messages=messages,
            updated_at=conversation.updated_at if conversation else None,
        ),
        message="Conversation retrieved successfully",
    )


@router.delete(
    "/{conversation_id}",
    response_model=SuccessResponse[DeleteConversationResponse],
    summary="Delete a conversation and its messages",
)
async def delete_conversation(
    conversation_id: str,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[DeleteConversationResponse]:
    if not await chat_persistence.delete_conversation(session, conversation_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return success_response(
        data=DeleteConversationResponse(conversation_id=conversation_id),
        message="Conversation deleted successfully",
    )
