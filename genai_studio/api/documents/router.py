"""Document upload, YouTube ingestion and document management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.api.documents.schemas import (
    DeleteDocumentResponse,
    DocumentInfo,
    DocumentListResponse,
    UploadResponse,
    UploadStats,
    YouTubeRequest,
    YouTubeResponse,
)
from genai_studio.config.logger import app_logger
from genai_studio.db.db import get_session
from genai_studio.services import chat_persistence, document_store
from genai_studio.services.document_processor import DocumentProcessingError
from genai_studio.services.ingestion import IngestionResult, ingest_file, ingest_youtube
from genai_studio.services.vector_store import VectorStoreError, delete_document_vectors
from genai_studio.services.youtube import TranscriptError
from genai_studio.utils.responses import SuccessResponse, success_response

router = APIRouter(prefix="/v1/documents", tags=["documents"])


def _stats(result: IngestionResult) -> UploadStats:
    return UploadStats(
        original_size=result.original_size,
        chunk_count=result.chunk_count,
        vector_count=result.vector_count,
        content_length=result.content_length,
    )


@router.post(
    "/upload",
    response_model=SuccessResponse[UploadResponse],
    summary="Upload a document and index it for chat",
)
async def upload_document(
    file: Optional[UploadFile] = File(default=None, description="PDF, DOCX, TXT or MD file"),
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[UploadResponse]:
    """Extract, chunk, embed and index an uploaded file.

    Returns 400 for a missing, unsupported, oversized or empty file.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    data = await file.read()
    try:
        result = await ingest_file(session, file.filename, data, file.content_type)
    except DocumentProcessingError as exc:
        app_logger.warning(f"Rejected upload {file.filename}: {exc}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except Exception as exc:
        app_logger.error(f"Upload processing error for {file.filename}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process document",
        )

    return success_response(
        data=UploadResponse(
            document_id=result.document_id,
            filename=result.filename,
            message=result.message,
            stats=_stats(result),
        ),
        message=result.message,
    )


@router.post(
    "/youtube",
    response_model=SuccessResponse[YouTubeResponse],
    summary="Index a YouTube video's transcript",
)
async def upload_youtube(
    request: YouTubeRequest,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[YouTubeResponse]:
    try:
        result = await ingest_youtube(session, request.url, request.manual_transcript)
    except TranscriptError as exc:
        app_logger.warning(f"Transcript unavailable for {request.url}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to fetch transcript. Ensure the video has captions.",
        )
    except DocumentProcessingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except Exception as exc:
        app_logger.error(f"YouTube processing error for {request.url}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process YouTube video",
        )

    return success_response(
        data=YouTubeResponse(
            document_id=result.document_id,
            title=result.title,
            message="Successfully processed video.",
            stats=_stats(result),
        ),
        message="Successfully processed video.",
    )


@router.get(
    "",
    response_model=SuccessResponse[DocumentListResponse],
    summary="List documents, newest first",
)
async def list_documents(
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[DocumentListResponse]:
    documents = await document_store.list_documents(session)
    return success_response(
        data=DocumentListResponse(
            documents=[DocumentInfo.model_validate(doc) for doc in documents],
            total=len(documents),
        ),
        message="Documents retrieved successfully",
    )


@router.get(
    "/{document_id}",
    response_model=SuccessResponse[DocumentInfo],
    summary="Get one document",
)
async def get_document(
    document_id: str,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[DocumentInfo]:
    document = await document_store.get_document(session, document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return success_response(data=DocumentInfo.model_validate(document), message="Document retrieved successfully")


async def _delete_document(session: AsyncSession, document_id: Optional[str]) -> SuccessResponse[DeleteDocumentResponse]:
    if not document_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Document ID is required")

    document = await document_store.get_document(session, document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    try:
        delete_document_vectors(document_id)
    except VectorStoreError as exc:
        app_logger.error(f"Error deleting document {document_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete document",
        )

    removed = await chat_persistence.delete_document_conversations(session, document_id)
    await document_store.delete_document(session, document_id)

    return success_response(
        data=DeleteDocumentResponse(document_id=document_id, deleted_conversations=removed),
        message="Document deleted successfully",
    )


@router.delete(
    "",
    response_model=SuccessResponse[DeleteDocumentResponse],
    summary="Delete a document by query parameter",
)
async def delete_document_by_query(
    document_id: Optional[str] = Query(default=None, alias="documentId"),
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[DeleteDocumentResponse]:
    return await _delete_document(session, document_id)


@router.delete(
    "/{document_id}",
    response_model=SuccessResponse[DeleteDocumentResponse],
    summary="Delete a document, its vectors and its conversations",
)
async def delete_document(
    document_id: str,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[DeleteDocumentResponse]:
    return await _delete_document(session, document_id)
