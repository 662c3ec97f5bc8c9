"""Request and response schemas for document upload and management."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises field names as camelCase; accepts either form on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UploadStats(CamelModel):
    original_size: int = Field(..., description="Uploaded file size in bytes")
    chunk_count: int
    vector_count: int
    content_length: int = Field(..., description="Characters of extracted text")


class UploadResponse(CamelModel):
    """Response schema for POST /v1/documents/upload."""

    document_id: str
    filename: str
    message: str
    stats: UploadStats


class YouTubeRequest(CamelModel):
    """Request schema for POST /v1/documents/youtube."""

    url: str = Field(..., min_length=1, description="YouTube video URL")
    manual_transcript: Optional[str] = Field(
        default=None,
        description="Transcript to index when captions cannot be fetched",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {"url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"}
        },
    )


class YouTubeResponse(CamelModel):
    document_id: str
    title: str
    message: str
    stats: UploadStats


class DocumentInfo(CamelModel):
    """Stored document and its processing state."""

    document_id: str
    title: str
    filename: str
    file_type: str
    file_size: int
    status: str
    error_message: Optional[str] = None
    chunk_count: Optional[int] = None
    vector_count: Optional[int] = None
    content_length: Optional[int] = None
    youtube_url: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class DocumentListResponse(CamelModel):
    documents: List[DocumentInfo]
    total: int


class DeleteDocumentResponse(CamelModel):
    document_id: str
    deleted_conversations: int = 0
