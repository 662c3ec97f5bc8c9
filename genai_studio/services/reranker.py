"""Cohere reranking over retrieved chunks.

Reranking is an optimisation, never a requirement: whenever Cohere is
disabled, unconfigured or failing, the candidates come back exactly as they
went in.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

import httpx

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings
from genai_studio.services.vector_store import DocumentSource


def is_reranking_enabled() -> bool:
    """Check if reranking is switched on and has credentials."""
    return settings.RERANK_ENABLED and bool(settings.COHERE_API_KEY)


async def rerank(
    query: str,
    sources: Sequence[DocumentSource],
    client: Optional[httpx.AsyncClient] = None,
) -> List[DocumentSource]:
    """Reorder ``sources`` by Cohere relevance to ``query``.

    On success each returned source has ``similarity`` replaced by Cohere's
    ``relevance_score``. On any failure the input order is returned.
    """
    original = list(sources)

    if not is_reranking_enabled():
        if settings.RERANK_ENABLED:
            app_logger.warning("COHERE_API_KEY not found, using original results")
        return original

    if not original:
        return original

    payload = {
        "model": settings.RERANK_MODEL,
        "query": query,
        "documents": [source.content or "" for source in original],
        "max_tokens_per_doc": settings.RERANK_MAX_TOKENS_PER_DOC,
    }
    headers = {
        "Authorization": f"Bearer {settings.COHERE_API_KEY}",
        "Content-Type": "application/json",
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.RERANK_TIMEOUT_SECONDS) as owned:
                response = await owned.post(settings.RERANK_URL, json=payload, headers=headers)
        else:
            response = await client.post(settings.RERANK_URL, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        app_logger.error(f"Reranking error: {exc}")
        return original

    if not response.is_success:
        app_logger.error(f"Cohere API error: {response.status_code}")
        return original

    try:
        results = response.json()["results"]
        reranked = [
            replace(original[item["index"]], similarity=float(item["relevance_score"]))
            for item in results
            if 0 <= item["index"] < len(original)
        ]
    except (ValueError, KeyError, TypeError) as exc:
        app_logger.error(f"Unexpected Cohere rerank response: {exc}")
        return original

    if not reranked:
        return original

    app_logger.info(f"Cohere reranking: {len(original)} -> {len(reranked)} documents")
    return reranked
