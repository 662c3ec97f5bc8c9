"""Document ingestion: extract, chunk, embed, index, record."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.config.logger import app_logger, log_performance
from genai_studio.config.settings import settings
from genai_studio.models.document import Document
from genai_studio.services import document_store
from genai_studio.services.chunker import Chunk, RecursiveChunker, document_name
from genai_studio.services.document_processor import (
    DocumentProcessingError,
    file_extension,
    is_file_type_supported,
    process_document,
)
from genai_studio.services.embeddings import generate_embeddings
from genai_studio.services.vector_store import store_vectors
from genai_studio.services.youtube import fetch_youtube_transcript

NO_CONTENT_MESSAGE = "No content could be extracted from the file."

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class IngestionResult:
    document_id: str
    title: str
    filename: str
    chunk_count: int
    vector_count: int
    content_length: int
    original_size: int

    @property
    def message(self) -> str:
        return (
            f"Successfully processed {self.chunk_count} chunks "
            f"and stored {self.vector_count} vectors."
        )


def new_document_id(prefix: str = "doc") -> str:
    """``<prefix>-<epoch ms>-<random>`` document id."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def validate_upload(filename: str, size: int, content_type: Optional[str] = None) -> None:
    if not filename:
        raise DocumentProcessingError("No file provided")
    if not is_file_type_supported(filename, content_type):
        raise DocumentProcessingError(
            "Unsupported file type. Please upload PDF, DOCX, TXT, or MD files."
        )
    if size > settings.MAX_UPLOAD_SIZE_BYTES:
        limit_mb = settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise DocumentProcessingError(f"File too large. Maximum size is {limit_mb}MB.")


async def _index_chunks(
    session: AsyncSession,
    document: Document,
    chunks: List[Chunk],
    content_length: int,
    metadata: dict,
) -> int:
    """Embed and store chunks, then mark the document completed."""
    if not chunks:
        raise DocumentProcessingError(NO_CONTENT_MESSAGE)

    embedded = await generate_embeddings([chunk.content for chunk in chunks])
    vector_count = store_vectors(document.document_id, embedded, metadata)

    await document_store.update_document(
        session,
        document.document_id,
        status="completed",
        processed_at=datetime.now(timezone.utc),
        chunk_count=len(chunks),
        vector_count=vector_count,
        content_length=content_length,
        error_message=None,
    )
    return vector_count


async def _mark_failed(session: AsyncSession, document_id: str, exc: Exception) -> None:
    app_logger.error(f"Processing failed for document {document_id}: {exc}")
    await session.rollback()
    await document_store.update_document(
        session, document_id, status="error", error_message=str(exc) or type(exc).__name__
    )


async def ingest_file(
    session: AsyncSession,
    filename: str,
    data: bytes,
    content_type: Optional[str] = None,
    chunker: Optional[RecursiveChunker] = None,
) -> IngestionResult:
    """Ingest an uploaded file and return processing stats.

    Validation failures raise ``DocumentProcessingError`` before anything is
    recorded. Once the document row exists, any failure marks it ``error``
    and is re-raised.
    """
    validate_upload(filename, len(data), content_type)

    started = time.perf_counter()
    file_type = file_extension(filename) or "unknown"
    title = document_name(filename)
    document = await document_store.create_document(
        session,
        Document(
            document_id=new_document_id(),
            title=title,
            filename=filename,
            file_type=file_type,
            file_size=len(data),
            status="processing",
        ),
    )
    document_id = document.document_id

    try:
        processed = process_document(filename, data, document_id=document_id, chunker=chunker)
        vector_count = await _index_chunks(
            session,
            document,
            processed.chunks,
            len(processed.content),
            {"title": title, "filename": filename, "fileType": file_type},
        )
    except Exception as exc:
        await _mark_failed(session, document_id, exc)
        raise

    log_performance("ingest_file", time.perf_counter() - started, document_id=document_id)
    return IngestionResult(
        document_id=document_id,
        title=title,
        filename=filename,
        chunk_count=len(processed.chunks),
        vector_count=vector_count,
        content_length=len(processed.content),
        original_size=len(data),
    )


async def ingest_youtube(
    session: AsyncSession,
    url: str,
    manual_transcript: Optional[str] = None,
    chunker: Optional[RecursiveChunker] = None,
) -> IngestionResult:
    """Ingest a YouTube video's transcript as a document."""
    if not url:
        raise DocumentProcessingError("YouTube URL is required")

    started = time.perf_counter()
    document = await document_store.create_document(
        session,
        Document(
            document_id=new_document_id("doc-yt"),
            title="Processing YouTube Video...",
            filename=url,
            file_type="youtube",
            file_size=0,
            status="processing",
            youtube_url=url,
        ),
    )
    document_id = document.document_id

    try:
        video = await fetch_youtube_transcript(url, manual_transcript)
        await document_store.update_document(session, document_id, title=video.title)

        chunker = chunker or RecursiveChunker()
        chunks = chunker.create_chunks(video.transcript, video.title, document_id)
        vector_count = await _index_chunks(
            session,
            document,
            chunks,
            len(video.transcript),
            {
                "title": video.title,
                "filename": url,
                "fileType": "youtube",
                "youtubeUrl": url,
            },
        )
    except Exception as exc:
        await _mark_failed(session, document_id, exc)
        raise

    log_performance("ingest_youtube", time.perf_counter() - started, document_id=document_id)
    return IngestionResult(
        document_id=document_id,
        title=video.title,
        filename=url,
        chunk_count=len(chunks),
        vector_count=vector_count,
        content_length=len(video.transcript),
        original_size=len(video.transcript.encode("utf-8")),
    )
