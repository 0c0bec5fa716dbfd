# pdfqa/memory/document.py
"""
Data structures shared by the retrieval pipeline.

chunker → embedder → vector_store → reranker → workflow all exchange
these types instead of loose dicts.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pdfqa.errors import InvalidInputError


MetadataValue = Union[str, int, float, bool, None, Mapping[str, "MetadataValue"]]

_SCALAR_TYPES = (str, int, float, bool, type(None))


def freeze_metadata(metadata: Optional[Mapping[str, Any]], path: str = "metadata") -> Mapping[str, MetadataValue]:
    """Validate a metadata mapping and return a read-only copy."""

    if metadata is None:
        return MappingProxyType({})

    if not isinstance(metadata, Mapping):
        raise InvalidInputError(f"{path} must be a mapping, got {type(metadata).__name__}")

    frozen: Dict[str, MetadataValue] = {}

    for key, value in metadata.items():

        if not isinstance(key, str):
            raise InvalidInputError(f"{path} keys must be strings, got {key!r}")

        if isinstance(value, _SCALAR_TYPES):
            frozen[key] = value

        elif isinstance(value, Mapping):
            frozen[key] = freeze_metadata(value, f"{path}.{key}")

        else:
            raise InvalidInputError(
                f"Unsupported metadata value for {path}.{key}: {type(value).__name__}"
            )

    return MappingProxyType(frozen)


def thaw_metadata(metadata: Mapping[str, MetadataValue]) -> Dict[str, Any]:
    """Plain, JSON-serializable copy of a frozen metadata mapping."""

    return {
        key: thaw_metadata(value) if isinstance(value, Mapping) else value
        for key, value in metadata.items()
    }


@dataclass(frozen=True)
class Document:
    """An indexed unit of retrievable text.

    Ids follow ``{source}-chunk-{ordinal}``. Instances are immutable; the
    metadata mapping is a read-only view.
    """

    id: str
    content: str
    metadata: Mapping[str, MetadataValue] = field(default_factory=dict, hash=False)

    def __post_init__(self):

        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidInputError("Document id cannot be empty")

        if not isinstance(self.content, str) or not self.content.strip():
            raise InvalidInputError(f"Document content cannot be empty (id={self.id})")

        object.__setattr__(self, "metadata", freeze_metadata(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": thaw_metadata(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":

        if not isinstance(data, Mapping):
            raise InvalidInputError(f"Document record must be a mapping, got {type(data).__name__}")

        try:
            return cls(
                id=data["id"],
                content=data["content"],
                metadata=data.get("metadata") or {},
            )
        except KeyError as e:
            raise InvalidInputError(f"Document record missing field: {e}") from e


@dataclass(frozen=True)
class ScoredDocument:
    """A retrieval candidate.

    ``score`` is an L2 distance (lower is better) when produced by the
    vector store and a cosine similarity (higher is better) when produced
    by the reranker.
    """

    document: Document
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"document": self.document.to_dict(), "score": self.score}


@dataclass(frozen=True)
class TextChunk:
    """A chunk of text with its stamped metadata, before it becomes a Document."""

    text: str
    metadata: Mapping[str, MetadataValue]


@dataclass(frozen=True)
class RAGResponse:
    """Result of one query. Never persisted."""

    question: str
    answer: str
    sources: Tuple[Document, ...]
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "sources": [doc.to_dict() for doc in self.sources],
            "timestamp": self.timestamp,
        }
