# pdfqa/models.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from pdfqa.memory.document import Document, RAGResponse


class DocumentModel(BaseModel):
    """An indexed chunk as returned to clients."""
    id: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Document) -> "DocumentModel":
        return cls(**document.to_dict())


class QueryRequest(BaseModel):
    """Request to ask a question about the indexed PDFs."""
    query: str = Field(..., min_length=1, max_length=2000)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Ensure query is not just whitespace."""
        if not v.strip():
            raise ValueError("Query is required and must be a non-empty string")
        return v.strip()


class RAGResponseModel(BaseModel):
    question: str
    answer: str
    sources: List[DocumentModel]
    timestamp: str

    @classmethod
    def from_response(cls, response: RAGResponse) -> "RAGResponseModel":
        return cls(
            question=response.question,
            answer=response.answer,
            sources=[DocumentModel.from_document(doc) for doc in response.sources],
            timestamp=response.timestamp,
        )


class QueryResponse(BaseModel):
    success: bool = True
    data: RAGResponseModel


class UploadResponse(BaseModel):
    """Response after uploading and indexing a PDF."""
    filename: str
    pages: int
    documents_created: int
    success: bool = True


class DocumentsResponse(BaseModel):
    success: bool = True
    document_count: int
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LoadResponse(MessageResponse):
    document_count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    document_count: int
    embedder: Dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_type: str
    stage: Optional[str] = None
    request_id: Optional[str] = None
