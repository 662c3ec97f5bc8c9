"""Request and response schemas for document chat."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessagePart(BaseModel):
    type: str = "text"
    text: str = ""

    model_config = ConfigDict(extra="allow")


class UIMessage(BaseModel):
    """A chat message as exchanged with clients."""

    id: str = Field(..., min_length=1)
    role: str = Field(..., pattern="^(user|assistant|system)$")
    parts: List[MessagePart] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """Request schema for POST /v1/chat.

    Send either the full ``messages`` list or a single new ``message``; with a
    single message the stored history of the conversation is prepended.
    """

    id: Optional[str] = Field(default=None, description="Conversation id; defaults to the document id")
    document_id: Optional[str] = Field(
        default=None,
        validation_alias="documentId",
        description="Document to answer from",
    )
    messages: Optional[List[UIMessage]] = None
    message: Optional[UIMessage] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "documentId": "doc-1718000000000-ab12cd",
                "message": {
                    "id": "msg_user_1",
                    "role": "user",
                    "parts": [{"type": "text", "text": "What was the total revenue?"}],
                },
            }
        },
    )

    @property
    def conversation_id(self) -> Optional[str]:
        return self.id or self.document_id


class ConversationResponse(BaseModel):
    conversation_id: str
    title: Optional[str] = None
    document_id: Optional[str] = None
    messages: List[Dict[str, Any]]
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeleteConversationResponse(BaseModel):
    conversation_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
