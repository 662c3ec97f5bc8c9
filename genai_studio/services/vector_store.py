"""Pinecone vector store for document chunks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pinecone import Pinecone, ServerlessSpec

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import EmbeddedChunk

UPSERT_BATCH_SIZE = 100

_pinecone_client: Pinecone | None = None
_pinecone_index = None


class VectorStoreError(RuntimeError):
    """Raised when Pinecone rejects a store, search or delete call."""


@dataclass
class DocumentSource:
    """A retrieved chunk and how relevant it scored against the query."""

    document_id: str
    document_title: str
    chunk_id: str
    content: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "documentTitle": self.document_title,
            "chunkId": self.chunk_id,
            "content": self.content,
            "similarity": self.similarity,
        }


def vector_id(document_id: str, chunk_index: int) -> str:
    return f"{document_id}-chunk-{chunk_index}"


def get_pinecone_client() -> Pinecone:
    """Return a singleton Pinecone client."""
    global _pinecone_client
    if _pinecone_client is None:
        if not settings.PINECONE_API_KEY:
            raise ValueError("PINECONE_API_KEY must be configured")
        _pinecone_client = Pinecone(api_key=settings.PINECONE_API_KEY)
        app_logger.info("Pinecone client initialized")
    return _pinecone_client


def ensure_index() -> bool:
    """Create the document index if it does not exist yet.

    Returns True when the index exists (or was created), False on failure.
    """
    try:
        pc = get_pinecone_client()
        index_name = settings.PINECONE_INDEX_NAME
        existing = [idx["name"] for idx in pc.list_indexes()]
        if index_name not in existing:
            app_logger.info(f"Creating Pinecone index '{index_name}'")
            pc.create_index(
                name=index_name,
                dimension=settings.OPENAI_EMBEDDING_DIMENSION,
                metric="cosine",
                spec=ServerlessSpec(
                    cloud=settings.PINECONE_CLOUD,
                    region=settings.PINECONE_REGION or "us-east-1",
                ),
            )
        return True
    except Exception as exc:
        app_logger.error(f"Error initializing Pinecone index: {exc}")
        return False


def get_pinecone_index():
    """Return the Pinecone index handle, resolving it once per process."""
    global _pinecone_index
    if _pinecone_index is not None:
        return _pinecone_index

    pc = get_pinecone_client()
    _pinecone_index = pc.Index(settings.PINECONE_INDEX_NAME)
    app_logger.info(f"Using Pinecone index '{settings.PINECONE_INDEX_NAME}'")
    return _pinecone_index


def store_vectors(
    document_id: str,
    chunks: Sequence[EmbeddedChunk],
    metadata: Dict[str, Any],
) -> int:
    """Upsert embedded chunks for a document and return how many were stored.

    ``metadata`` carries title, filename, fileType and optionally youtubeUrl.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    vectors = []
    for i, chunk in enumerate(chunks):
        vector_metadata = {
            "documentId": document_id,
            "chunkIndex": i,
            "content": chunk.content,
            "timestamp": timestamp,
        }
        vector_metadata.update({k: v for k, v in metadata.items() if v is not None})
        vectors.append(
            {
                "id": vector_id(document_id, i),
                "values": chunk.embedding,
                "metadata": vector_metadata,
            }
        )

    try:
        index = get_pinecone_index()
        for i in range(0, len(vectors), UPSERT_BATCH_SIZE):
            index.upsert(vectors=vectors[i : i + UPSERT_BATCH_SIZE])
    except Exception as exc:
        app_logger.error(f"Error storing vectors for {document_id}: {exc}")
        raise VectorStoreError("Failed to store vectors in Pinecone") from exc

    app_logger.info(f"Stored {len(vectors)} vectors for document {document_id}")
    return len(vectors)


def search_similar_vectors(
    query_embedding: List[float],
    top_k: int = 4,
    filter: Optional[Dict[str, Any]] = None,
) -> List[DocumentSource]:
    """Return the ``top_k`` most similar chunks, best first."""
    try:
        index = get_pinecone_index()
        result = index.query(
            vector=query_embedding,
            top_k=top_k,
            include_metadata=True,
            filter=filter,
        )
    except Exception as exc:
        app_logger.error(f"Error searching vectors: {exc}")
        raise VectorStoreError("Failed to search vectors in Pinecone") from exc

    sources: List[DocumentSource] = []
    for match in result.get("matches") or []:
        meta = match.get("metadata")
        score = match.get("score")
        if not meta or not score:
            continue
        sources.append(
            DocumentSource(
                document_id=meta.get("documentId", ""),
                document_title=meta.get("title", ""),
                chunk_id=match.get("id", ""),
                content=meta.get("content", ""),
                similarity=float(score),
            )
        )
    return sources


def delete_document_vectors(document_id: str) -> None:
    """Delete every vector belonging to ``document_id``."""
    try:
        index = get_pinecone_index()
        index.delete(filter={"documentId": {"$eq": document_id}})
    except Exception as exc:
        app_logger.error(f"Error deleting vectors for {document_id}: {exc}")
        raise VectorStoreError("Failed to delete vectors from Pinecone") from exc
    app_logger.info(f"Deleted vectors for document {document_id}")


def describe_index_stats():
    """Return the index stats (vector counts, dimension), or None when Pinecone is unreachable."""
    try:
        index = get_pinecone_index()
        return index.describe_index_stats()
    except Exception as exc:
        app_logger.error(f"Error getting index stats: {exc}")
        return None
