"""Retrieval context for document chat: embed, search, rerank, assemble."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List

from genai_studio.config.logger import app_logger, log_performance
from genai_studio.config.settings import settings
from genai_studio.services.embeddings import embed_query
from genai_studio.services.reranker import rerank
from genai_studio.services.vector_store import DocumentSource, search_similar_vectors

NO_CONTEXT_TEXT = "No document context available."

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant that answers questions based on document context.

{context}

IMPORTANT INSTRUCTIONS:
- Extract specific facts, numbers, and details from the context above
- If the context contains the answer, provide the exact information
- Quote specific amounts, percentages, and figures when available
- If the context doesn't contain the requested information, clearly state this
- Always base your answers on the provided context, not general knowledge"""


@dataclass
class RetrievedContext:
    context: str = ""
    sources: List[DocumentSource] = field(default_factory=list)


def format_context(title: str, sources: List[DocumentSource]) -> str:
    """Render sources as numbered blocks under a document title header."""
    if not sources:
        return ""
    blocks = "\n\n".join(
        f"[Source {i}]: {source.content or 'No content available'}"
        for i, source in enumerate(sources, start=1)
    )
    return f"You have access to content from: {title}\n\nContext:\n{blocks}"


async def build_document_context(
    query: str,
    document_id: str,
    title: str,
    initial_results: int = settings.RERANK_INITIAL_RESULTS,
    final_results: int = settings.RERANK_FINAL_RESULTS,
) -> RetrievedContext:
    """Assemble prompt context for ``query`` from one document's chunks.

    Retrieval failures are logged and yield an empty context so the model can
    answer that it lacks the information.
    """
    if not query or not document_id:
        return RetrievedContext()

    started = time.perf_counter()
    try:
        query_embedding = await embed_query(query)
        candidates = search_similar_vectors(
            query_embedding,
            top_k=initial_results,
            filter={"documentId": {"$eq": document_id}},
        )
    except Exception as exc:
        app_logger.warning(f"RAG retrieval failed for document {document_id}: {exc}")
        return RetrievedContext()

    if not candidates:
        app_logger.info(f"No indexed chunks matched for document {document_id}")
        return RetrievedContext()

    app_logger.debug(f"Similarity search returned {len(candidates)} candidates for: {query[:100]}")

    ranked = await rerank(query, candidates)
    selected = ranked[:final_results]

    log_performance("rag_context", time.perf_counter() - started, candidates=len(candidates))
    return RetrievedContext(context=format_context(title, selected), sources=selected)


def build_system_prompt(context: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(context=context or NO_CONTEXT_TEXT)
