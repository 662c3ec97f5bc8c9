"""OpenAI client and embedding helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from openai import AsyncOpenAI

from genai_studio.config.logger import app_logger
from genai_studio.config.settings import settings

_openai_client: AsyncOpenAI | None = None


@dataclass(frozen=True)
class EmbeddedChunk:
    content: str
    embedding: List[float]


def get_openai_client() -> AsyncOpenAI:
    """Return a singleton async OpenAI client."""
    global _openai_client
    if _openai_client is None:
        if not settings.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY must be configured")
        _openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        app_logger.info("OpenAI client initialized")
    return _openai_client


async def embed_texts(texts: Sequence[str]) -> List[List[float]]:
    """Create embeddings for a list of texts, preserving input order."""
    if not texts:
        return []
    client = get_openai_client()
    response = await client.embeddings.create(
        model=settings.OPENAI_EMBEDDING_MODEL,
        input=list(texts),
    )
    data = sorted(response.data, key=lambda item: item.index)
    return [item.embedding for item in data]


async def embed_query(text: str) -> List[float]:
    """Create a single embedding for a search query."""
    return (await embed_texts([text]))[0]


async def generate_embeddings(chunks: Sequence[str]) -> List[EmbeddedChunk]:
    """Embed chunk texts and pair each text with its vector."""
    embeddings = await embed_texts(chunks)
    return [
        EmbeddedChunk(content=chunk, embedding=embedding)
        for chunk, embedding in zip(chunks, embeddings, strict=True)
    ]
