# pdfqa/memory/loader.py

"""
PDF ingestion.

Architecture contract:
loader → chunker → embedder → vector_store

The loader turns PDF bytes into (text, page_count, metadata) and then into
chunked Documents ready for indexing.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pypdf import PdfReader

from pdfqa.config import CHUNK_OVERLAP, CHUNK_SIZE
from pdfqa.errors import InvalidInputError
from pdfqa.memory.chunker import chunk_with_metadata
from pdfqa.memory.document import Document

logger = logging.getLogger(__name__)


_EXCESS_NEWLINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class PdfExtraction:
    text: str
    page_count: int
    metadata: Dict[str, Any] = field(default_factory=dict)


# ============================================================
# EXTRACTION
# ============================================================

def _info_value(info, key: str) -> Optional[str]:

    if info is None:
        return None

    value = info.get(key)

    return str(value) if value else None


def extract_pdf(data: bytes) -> PdfExtraction:

    if not data:
        raise InvalidInputError("PDF content is empty")

    try:

        reader = PdfReader(io.BytesIO(data))

        parts = []

        for page in reader.pages:

            text = page.extract_text()

            if text:
                parts.append(text)

        info = reader.metadata

    except Exception as e:

        logger.error(
            "PDF extraction failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )

        raise InvalidInputError("Failed to extract text from PDF") from e

    metadata = {
        "creator": _info_value(info, "/Creator") or "Unknown",
        "producer": _info_value(info, "/Producer") or "Unknown",
        "creationDate": _info_value(info, "/CreationDate"),
        "title": _info_value(info, "/Title") or "Untitled",
    }

    return PdfExtraction(
        text="\n".join(parts),
        page_count=len(reader.pages),
        metadata=metadata,
    )


def clean_text(text: str) -> str:
    return _EXCESS_NEWLINES.sub("\n\n", text).strip()


# ============================================================
# PDF → DOCUMENTS
# ============================================================

def _to_documents(
    extraction: PdfExtraction,
    filename: str,
    extra_metadata: Optional[Dict[str, Any]],
    chunk_size: int,
    overlap: int,
) -> List[Document]:

    text = clean_text(extraction.text)

    if not text:
        raise InvalidInputError(f"No text extracted from {filename}")

    base_metadata = {
        "source": filename,
        **(extra_metadata or {}),
        "pages": extraction.page_count,
        **extraction.metadata,
    }

    chunks = chunk_with_metadata(text, base_metadata, chunk_size, overlap)

    documents = [
        Document(
            id=f"{filename}-chunk-{index}",
            content=chunk.text,
            metadata=chunk.metadata,
        )
        for index, chunk in enumerate(chunks)
    ]

    logger.info(
        "PDF converted to documents",
        extra={
            "source": filename,
            "pages": extraction.page_count,
            "documents": len(documents),
        },
    )

    return documents


def pdf_to_documents(
    data: bytes,
    filename: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[Document]:

    return _to_documents(extract_pdf(data), filename, None, chunk_size, overlap)


def load_pdf_file(
    file_path: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[Document]:

    path = Path(file_path)

    return _to_documents(
        extract_pdf(path.read_bytes()),
        path.name,
        {"filePath": str(path)},
        chunk_size,
        overlap,
    )
