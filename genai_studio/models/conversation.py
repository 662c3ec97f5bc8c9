"""Conversation and Message models for persisted document chats."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class Conversation(SQLModel, table=True):
    """A chat thread, usually one per selected document."""

    __tablename__ = "conversations"

    id: str = Field(primary_key=True, max_length=64)
    title: str = Field(default="New Conversation", max_length=255)
    document_id: Optional[str] = Field(default=None, index=True, max_length=64)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True)),
    )


class Message(SQLModel, table=True):
    """A single chat message. Rows are only ever inserted."""

    __tablename__ = "messages"

    id: str = Field(primary_key=True, max_length=64)
    conversation_id: str = Field(index=True, max_length=64)
    role: str = Field(max_length=20, description="Message role: 'user' or 'assistant'")
    parts: str = Field(
        sa_column=Column(Text),
        description="JSON serialized list of message parts",
    )
    document_id: Optional[str] = Field(default=None, index=True, max_length=64)
    context: Optional[str] = Field(
        default=None,
        sa_column=Column(Text),
        description="Leading slice of the retrieval context used for an assistant reply",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True)),
    )
