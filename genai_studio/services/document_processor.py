"""Text extraction for uploaded documents."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import List, Optional

from docx import Document as DocxDocument
from pypdf import PdfReader
from pypdf.errors import FileNotDecryptedError, PdfReadError

from genai_studio.config.logger import app_logger
from genai_studio.services.chunker import Chunk, RecursiveChunker

SUPPORTED_FILE_TYPES = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
    "text/markdown": "md",
}


class DocumentProcessingError(Exception):
    """Raised when a file cannot be turned into text chunks."""


@dataclass
class ProcessedDocument:
    content: str
    chunks: List[Chunk] = field(default_factory=list)


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def is_file_type_supported(filename: str, content_type: Optional[str] = None) -> bool:
    return content_type in SUPPORTED_FILE_TYPES or file_extension(filename) in SUPPORTED_FILE_TYPES.values()


def read_text_from_pdf(filename: str, data: bytes) -> str:
    try:
        pdf = PdfReader(io.BytesIO(data))
        parts = []
        for i, page in enumerate(pdf.pages, start=1):
            text = (page.extract_text() or "").strip()
            if text:
                parts.append(f"Page {i}:\n{text}")
    except FileNotDecryptedError as exc:
        raise DocumentProcessingError(
            "The PDF is password protected. Please upload an unprotected PDF."
        ) from exc
    except PdfReadError as exc:
        raise DocumentProcessingError("The uploaded file is not a valid PDF or is corrupted.") from exc

    if not parts:
        return (
            f"No text content could be extracted from {filename}. "
            "The PDF might be image-based or encrypted."
        )
    return "\n\n".join(parts)


def read_text_from_docx(data: bytes) -> str:
    """
    Extract text from DOCX bytes including both paragraphs and tables.
    Table rows are rendered with " | " between cells.
    """
    try:
        doc = DocxDocument(io.BytesIO(data))
    except Exception as exc:
        raise DocumentProcessingError(f"DOCX processing failed: {exc}") from exc

    parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

    for table in doc.tables:
        table_text = extract_table_text(table)
        if table_text:
            parts.append(table_text)

    text = "\n\n".join(parts)
    if not text.strip():
        raise DocumentProcessingError("No text content could be extracted from the DOCX file.")
    return text


def extract_table_text(table) -> str:
    lines = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if not any(cells):
            continue
        lines.append(" | ".join(cells))
    return "\n".join(lines)


def read_text_from_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def extract_text(filename: str, data: bytes) -> str:
    """Extract plain text from a supported file's raw bytes."""
    file_type = file_extension(filename)
    app_logger.info(f"Processing {file_type or 'unknown'} file: {filename} ({len(data)} bytes)")

    if file_type == "pdf":
        return read_text_from_pdf(filename, data)
    if file_type == "docx":
        return read_text_from_docx(data)
    if file_type in ("txt", "md"):
        return read_text_from_txt(data)
    raise DocumentProcessingError(f"Unsupported file type: {file_type or filename}")


def process_document(
    filename: str,
    data: bytes,
    document_id: str = "",
    chunker: Optional[RecursiveChunker] = None,
) -> ProcessedDocument:
    """Extract text from ``data`` and split it into prefixed chunks."""
    content = extract_text(filename, data)
    chunker = chunker or RecursiveChunker()
    chunks = chunker.create_chunks(content, filename, document_id)
    app_logger.info(f"Extracted {len(content)} characters into {len(chunks)} chunks from {filename}")
    return ProcessedDocument(content=content, chunks=chunks)
