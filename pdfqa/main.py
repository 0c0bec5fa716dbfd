# pdfqa/main.py
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdfqa.api.routes import router
from pdfqa.config import HOST, LOG_FILE, LOG_LEVEL, PORT
from pdfqa.errors import (
    DimensionMismatchError,
    EmptyStoreError,
    InvalidInputError,
    NoResultsError,
    PersistenceError,
    RAGError,
    UpstreamError,
)
from pdfqa.models import ErrorResponse
from pdfqa.observability.logger import setup_logging
from pdfqa.observability.metrics import metrics_tracker
from pdfqa.workflow.document_qa import RAGSystem, build_rag_system

logger = logging.getLogger(__name__)


# Error kind → HTTP status. First match wins, so subclasses come first.
ERROR_STATUS_CODES = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (DimensionMismatchError, status.HTTP_400_BAD_REQUEST),
    (EmptyStoreError, status.HTTP_400_BAD_REQUEST),
    (NoResultsError, status.HTTP_400_BAD_REQUEST),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(exc: RAGError) -> int:

    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return code

    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(rag_system: Optional[RAGSystem] = None, index_path: Optional[str] = None) -> FastAPI:
    """
    Build the FastAPI app.

    The RAGSystem lives on ``app.state``. When none is passed in, one is
    built from pdfqa.config at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

        if app.state.rag_system is None:
            app.state.rag_system = build_rag_system()

        logger.info(
            "application_startup",
            extra={"documents": app.state.rag_system.document_count()},
        )

        yield

        logger.info("application_shutdown")

    app = FastAPI(
        title="PDF Question Answering API",
        description="Retrieval-augmented question answering over uploaded PDFs",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.rag_system = rag_system
    app.state.index_path = index_path

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Request id, latency logging and request metrics."""

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "request_started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            },
        )

        start_time = time.time()

        try:

            response = await call_next(request)

        except Exception as e:

            metrics_tracker.record_failure()

            logger.error(
                "request_failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "latency_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )

            raise

        latency = time.time() - start_time

        if response.status_code < 400:
            metrics_tracker.record_success(latency)
        else:
            metrics_tracker.record_failure()

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(latency, 3),
            },
        )

        return response

    @app.exception_handler(RAGError)
    async def rag_error_handler(request: Request, exc: RAGError):

        request_id = getattr(request.state, "request_id", "unknown")
        code = status_code_for(exc)

        logger.warning(
            "pipeline_error",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "status_code": code,
                "error": str(exc),
                "error_type": type(exc).__name__,
                "error_stage": exc.stage,
            },
        )

        # Upstream and storage details stay in the logs
        message = str(exc) if code < 500 else "Failed to process request"

        if isinstance(exc, UpstreamError):
            message = "Upstream model service failed"

        return JSONResponse(
            status_code=code,
            content=ErrorResponse(
                error=message,
                error_type=type(exc).__name__,
                stage=exc.stage,
                request_id=request_id,
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="An internal error occurred. Please try again.",
                error_type=type(exc).__name__,
                request_id=request_id,
            ).model_dump(),
        )

    app.include_router(router)

    @app.get("/")
    async def root():

        return {
            "message": "PDF Question Answering API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health",
            "metrics": "/api/metrics",
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("pdfqa.main:app", host=HOST, port=PORT)
