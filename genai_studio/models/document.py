"""Model representing an uploaded document and its processing state."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel

DOCUMENT_STATUSES = ("uploading", "processing", "completed", "error")


class Document(SQLModel, table=True):
    """Tracks a document between upload, chunking and the vector store."""

    __tablename__ = "documents"

    document_id: str = Field(primary_key=True, max_length=64)
    title: str = Field(max_length=512)
    filename: str = Field(max_length=1024)
    file_type: str = Field(max_length=32, description="pdf, docx, txt, md or youtube")
    file_size: int = Field(default=0, ge=0)
    status: str = Field(default="uploading", max_length=20, index=True)
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    chunk_count: Optional[int] = Field(default=None, ge=0)
    vector_count: Optional[int] = Field(default=None, ge=0)
    content_length: Optional[int] = Field(default=None, ge=0)
    youtube_url: Optional[str] = Field(default=None, max_length=1024)
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    processed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
    )
