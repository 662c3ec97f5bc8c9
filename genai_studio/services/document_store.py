"""CRUD helpers for Document rows."""

from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from genai_studio.config.logger import app_logger
from genai_studio.models.document import DOCUMENT_STATUSES, Document


async def create_document(session: AsyncSession, document: Document) -> Document:
    session.add(document)
    await session.commit()
    await session.refresh(document)
    app_logger.info(f"Created document {document.document_id} ({document.filename})")
    return document


async def get_document(session: AsyncSession, document_id: str) -> Optional[Document]:
    return await session.get(Document, document_id)


async def list_documents(session: AsyncSession) -> List[Document]:
    """All documents, most recently uploaded first."""
    result = await session.execute(select(Document).order_by(Document.uploaded_at.desc()))
    return list(result.scalars().all())


async def update_document(session: AsyncSession, document_id: str, **updates: Any) -> Optional[Document]:
    """Apply ``updates`` to a document. Returns None when it does not exist."""
    document = await session.get(Document, document_id)
    if document is None:
        app_logger.warning(f"Cannot update missing document {document_id}")
        return None

    status = updates.get("status")
    if status is not None and status not in DOCUMENT_STATUSES:
        raise ValueError(f"Invalid document status: {status}")

    for key, value in updates.items():
        setattr(document, key, value)
    session.add(document)
    await session.commit()
    await session.refresh(document)
    return document


async def delete_document(session: AsyncSession, document_id: str) -> bool:
    result = await session.execute(delete(Document).where(Document.document_id == document_id))
    await session.commit()
    deleted = (result.rowcount or 0) > 0
    if deleted:
        app_logger.info(f"Deleted document {document_id}")
    return deleted

