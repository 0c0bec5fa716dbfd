import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from pdfqa.config import (
    ALLOWED_FILE_EXTENSIONS,
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    INDEX_PATH,
    MAX_FILE_SIZE_MB,
)
from pdfqa.memory.loader import pdf_to_documents
from pdfqa.models import (
    DocumentsResponse,
    HealthResponse,
    LoadResponse,
    MessageResponse,
    QueryRequest,
    QueryResponse,
    RAGResponseModel,
    UploadResponse,
)
from pdfqa.observability.metrics import metrics_tracker
from pdfqa.workflow.document_qa import RAGSystem


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ============================================================
# DEPENDENCIES
# ============================================================

def get_rag_system(request: Request) -> RAGSystem:

    rag_system = getattr(request.app.state, "rag_system", None)

    if rag_system is None:
        raise HTTPException(status_code=503, detail="RAG system is not initialized")

    return rag_system


def get_index_path(request: Request) -> str:
    return getattr(request.app.state, "index_path", None) or INDEX_PATH


# ============================================================
# HELPERS
# ============================================================

def validate_pdf_upload(file: UploadFile, content: bytes):

    extension = Path(file.filename or "").suffix.lower()

    if extension not in ALLOWED_FILE_EXTENSIONS and file.content_type != "application/pdf":
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    if not content:
        raise HTTPException(status_code=400, detail="No PDF file provided")

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {size_mb:.2f}MB (limit {MAX_FILE_SIZE_MB}MB)",
        )


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(rag_system: RAGSystem = Depends(get_rag_system)):

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        document_count=rag_system.document_count(),
        embedder=rag_system.embedder.health_check(),
    )


# ============================================================
# UPLOAD PDF
# ============================================================

@router.post("/upload-pdf", response_model=UploadResponse)
async def upload_pdf(
    pdf: UploadFile = File(...),
    rag_system: RAGSystem = Depends(get_rag_system),
):

    content = await pdf.read()

    validate_pdf_upload(pdf, content)

    filename = pdf.filename or "upload.pdf"

    logger.info(
        "Uploading PDF",
        extra={"filename": filename, "bytes": len(content)},
    )

    documents = await run_in_threadpool(
        pdf_to_documents, content, filename, CHUNK_SIZE, CHUNK_OVERLAP
    )

    await run_in_threadpool(rag_system.index, documents)

    metrics_tracker.record_indexed(len(documents))

    pages = documents[0].metadata.get("pages", 0) if documents else 0

    logger.info(
        "Document ingestion complete",
        extra={"filename": filename, "documents": len(documents)},
    )

    return UploadResponse(
        filename=filename,
        pages=pages,
        documents_created=len(documents),
    )


# ============================================================
# QUERY
# ============================================================

@router.post("/query", response_model=QueryResponse)
def query(payload: QueryRequest, rag_system: RAGSystem = Depends(get_rag_system)):

    response = rag_system.query(payload.query)

    metrics_tracker.record_query()

    return QueryResponse(data=RAGResponseModel.from_response(response))


# ============================================================
# DOCUMENT LIFECYCLE
# ============================================================

@router.get("/documents", response_model=DocumentsResponse)
def list_documents(rag_system: RAGSystem = Depends(get_rag_system)):

    count = rag_system.document_count()

    return DocumentsResponse(
        document_count=count,
        message=f"{count} document(s) currently indexed",
    )


@router.post("/clear", response_model=MessageResponse)
def clear_documents(rag_system: RAGSystem = Depends(get_rag_system)):

    rag_system.clear()

    return MessageResponse(message="All documents cleared")


@router.post("/save", response_model=MessageResponse)
def save_index(
    rag_system: RAGSystem = Depends(get_rag_system),
    index_path: str = Depends(get_index_path),
):

    rag_system.save_index(index_path)

    return MessageResponse(message=f"Vector store saved to {index_path}")


@router.post("/load", response_model=LoadResponse)
def load_index(
    rag_system: RAGSystem = Depends(get_rag_system),
    index_path: str = Depends(get_index_path),
):

    rag_system.load_index(index_path)

    return LoadResponse(
        message=f"Vector store loaded from {index_path}",
        document_count=rag_system.document_count(),
    )


# ============================================================
# METRICS
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
