# pdfqa/memory/chunker.py

import logging
import re
from typing import Any, List, Mapping, Optional

from pdfqa.config import CHUNK_OVERLAP, CHUNK_SIZE
from pdfqa.errors import ConfigurationError
from pdfqa.memory.document import TextChunk, freeze_metadata

logger = logging.getLogger(__name__)


_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_BOUNDARY = re.compile(r"\n{2,}")

PARAGRAPH_SEPARATOR = "\n\n"


def _validate(chunk_size: int, overlap: int):

    if chunk_size <= 0:
        raise ConfigurationError(f"Invalid chunk size: {chunk_size}")

    if overlap < 0:
        raise ConfigurationError(f"Invalid chunk overlap: {overlap}")

    if overlap >= chunk_size:
        raise ConfigurationError(
            f"Overlap must be smaller than chunk size "
            f"(overlap={overlap}, size={chunk_size})"
        )


def split_fixed(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Sliding character window.

    Window i starts at i * (chunk_size - overlap) and is at most
    chunk_size long. The last window ends at len(text).
    """

    _validate(chunk_size, overlap)

    if not text:
        return []

    if len(text) <= chunk_size:
        return [text]

    step = chunk_size - overlap

    chunks = [
        text[start:start + chunk_size]
        for start in range(0, len(text), step)
    ]

    logger.debug(
        "Fixed chunking completed",
        extra={
            "characters": len(text),
            "chunk_size": chunk_size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks


def _accumulate(units: List[str], chunk_size: int, separator: str) -> List[str]:
    # Greedy, non-overlapping packing of whole units into chunks.

    chunks = []
    current = ""

    for unit in units:

        candidate = f"{current}{separator}{unit}" if current else unit

        if len(candidate) <= chunk_size:
            current = candidate
            continue

        if current.strip():
            chunks.append(current.strip())

        current = unit

    if current.strip():
        chunks.append(current.strip())

    return chunks


def split_by_sentences(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Pack whole sentences into chunks of at most chunk_size characters.

    ``overlap`` is validated but not applied: sentences are never repeated
    across chunks. A sentence longer than chunk_size becomes its own chunk.
    """

    _validate(chunk_size, overlap)

    if not text or not text.strip():
        return []

    sentences = [s for s in _SENTENCE_BOUNDARY.split(text.strip()) if s]

    return _accumulate(sentences, chunk_size, " ")


def split_by_paragraphs(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Pack whole paragraphs (separated by blank lines) into chunks.

    Paragraphs sharing a chunk are joined by a blank line. ``overlap`` is
    validated but not applied.
    """

    _validate(chunk_size, overlap)

    if not text:
        return []

    paragraphs = [p for p in _PARAGRAPH_BOUNDARY.split(text) if p.strip()]

    return _accumulate(paragraphs, chunk_size, PARAGRAPH_SEPARATOR)


def chunk_with_metadata(
    text: str,
    base_metadata: Optional[Mapping[str, Any]] = None,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[TextChunk]:
    """
    Paragraph chunking with per-chunk metadata.

    Every chunk carries base_metadata plus ``chunkIndex`` (0-based) and
    ``totalChunks``.
    """

    texts = split_by_paragraphs(text, chunk_size, overlap)

    base = dict(base_metadata or {})

    chunks = [
        TextChunk(
            text=chunk,
            metadata=freeze_metadata({
                **base,
                "chunkIndex": index,
                "totalChunks": len(texts),
            }),
        )
        for index, chunk in enumerate(texts)
    ]

    logger.info(
        "Chunking completed",
        extra={
            "characters": len(text or ""),
            "chunk_size": chunk_size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks
