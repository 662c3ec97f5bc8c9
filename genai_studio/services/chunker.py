"""Recursive character chunking for document text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional, Sequence

from genai_studio.config.settings import settings

DEFAULT_SEPARATORS: tuple[str, ...] = (
    "\n\n\n",  # paragraph breaks
    "\n\n",
    "\n",
    ". ",
    " ",
    "",  # character level, last resort
)

_MULTI_SPACE = re.compile(r" {2,}")


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a document, ready to be embedded."""

    document_id: str
    index: int
    text: str
    context_prefix: str

    @property
    def content(self) -> str:
        """Text as embedded and stored: the document prefix plus the slice."""
        return f"{self.context_prefix}{self.text}"


def document_name(filename: str) -> str:
    """Strip the extension from a filename ("notes.v2.pdf" -> "notes.v2")."""
    name = PurePath(filename.replace("\\", "/")).name or filename
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def context_prefix_for(filename: str) -> str:
    return f"Document: {document_name(filename)}\n\n"


class RecursiveChunker:
    """Split text on the first separator present, recursing into oversized pieces.

    Pieces are greedily merged back together up to ``chunk_size`` characters,
    carrying up to ``chunk_overlap`` characters from the end of one chunk into
    the start of the next. Separators stay attached to the start of the piece
    that follows them, so joining pieces never invents or drops characters.
    """

    def __init__(
        self,
        chunk_size: int = settings.CHUNK_SIZE,
        chunk_overlap: int = settings.CHUNK_OVERLAP,
        separators: Optional[Sequence[str]] = None,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and less than chunk_size")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators) if separators is not None else list(DEFAULT_SEPARATORS)

    def split_text(self, text: str) -> List[str]:
        if not text:
            return []
        return self._split(text, self.separators)

    def _split(self, text: str, separators: List[str]) -> List[str]:
        separator = separators[-1] if separators else ""
        remaining: List[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1:]
                break

        final_chunks: List[str] = []
        pending: List[str] = []
        for piece in _split_keeping_separator(text, separator):
            if len(piece) < self.chunk_size:
                pending.append(piece)
                continue
            if pending:
                final_chunks.extend(self._merge(pending))
                pending = []
            if remaining:
                final_chunks.extend(self._split(piece, remaining))
            else:
                final_chunks.append(piece)
        if pending:
            final_chunks.extend(self._merge(pending))
        return final_chunks

    def _merge(self, pieces: List[str]) -> List[str]:
        chunks: List[str] = []
        window: List[str] = []
        total = 0
        for piece in pieces:
            length = len(piece)
            if total + length > self.chunk_size and window:
                merged = "".join(window).strip()
                if merged:
                    chunks.append(merged)
                # Drop from the front until only the overlap remains and the
                # next piece fits.
                while window and (
                    total > self.chunk_overlap or total + length > self.chunk_size
                ):
                    total -= len(window[0])
                    window.pop(0)
            window.append(piece)
            total += length

        merged = "".join(window).strip()
        if merged:
            chunks.append(merged)
        return chunks

    def create_chunks(self, content: str, filename: str, document_id: str = "") -> List[Chunk]:
        """Normalise ``content`` and split it into prefixed chunks."""
        clean = _MULTI_SPACE.sub(" ", content.strip())
        prefix = context_prefix_for(filename)
        return [
            Chunk(document_id=document_id, index=i, text=piece, context_prefix=prefix)
            for i, piece in enumerate(self.split_text(clean))
        ]


def _split_keeping_separator(text: str, separator: str) -> List[str]:
    if separator == "":
        return list(text)
    parts = text.split(separator)
    pieces = [parts[0]] + [separator + part for part in parts[1:]]
    return [p for p in pieces if p]


def create_chunks(content: str, filename: str, document_id: str = "") -> List[Chunk]:
    """Chunk ``content`` with the configured default size and overlap."""
    return RecursiveChunker().create_chunks(content, filename, document_id)
