# pdfqa/workflow/document_qa.py
"""
Retrieval orchestrator.

Every query walks the same fixed sequence of stages:

    RECEIVED → RETRIEVED → RERANKED → PROMPT_BUILT → GENERATED → RESPONDED

Errors raised by a stage propagate to the caller with their original type,
tagged with the stage name in ``error.stage``.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from pdfqa.config import (
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    LLM_MODEL,
    LLM_PROVIDER,
    RERANK_TOP_K,
    TOP_K,
)
from pdfqa.errors import (
    ConfigurationError,
    EmptyIndexError,
    InvalidInputError,
    NoResultsError,
    RAGError,
)
from pdfqa.llm.client import BaseLLMClient, build_llm_client
from pdfqa.memory.document import Document, RAGResponse
from pdfqa.memory.embedder import BaseEmbedder, build_embedder
from pdfqa.memory.reranker import Reranker
from pdfqa.memory.store import BaseVectorStore, FaissVectorStore
from pdfqa.prompts.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


class QueryStage(str, Enum):
    RECEIVED = "received"
    RETRIEVED = "retrieved"
    RERANKED = "reranked"
    PROMPT_BUILT = "prompt_built"
    GENERATED = "generated"
    RESPONDED = "responded"


@dataclass(frozen=True)
class RAGConfig:
    top_k: int = TOP_K
    rerank_top_k: int = RERANK_TOP_K
    embedding_model: str = EMBEDDING_MODEL
    generation_model: str = LLM_MODEL

    def __post_init__(self):

        if self.top_k <= 0:
            raise ConfigurationError(f"top_k must be positive, got {self.top_k}")

        if self.rerank_top_k <= 0:
            raise ConfigurationError(f"rerank_top_k must be positive, got {self.rerank_top_k}")

        if self.rerank_top_k > self.top_k:
            raise ConfigurationError(
                f"rerank_top_k ({self.rerank_top_k}) cannot exceed top_k ({self.top_k})"
            )


class RAGSystem:
    """
    Sole entry point for the HTTP layer.

    Owns document lifecycle (index, clear, save, load) and answers
    questions through retrieve → rerank → prompt → generate.
    """

    def __init__(
        self,
        config: RAGConfig,
        embedder: BaseEmbedder,
        llm_client: BaseLLMClient,
        store: Optional[BaseVectorStore] = None,
        reranker: Optional[Reranker] = None,
    ):
        self.config = config
        self.embedder = embedder
        self.llm_client = llm_client
        self.store = store or FaissVectorStore(embedder)
        self.reranker = reranker or Reranker(embedder)

    # ============================================================
    # DOCUMENT LIFECYCLE
    # ============================================================

    def index(self, documents: Sequence[Document]) -> None:

        if not documents:
            raise InvalidInputError("No documents provided")

        self.store.add(documents)

    def document_count(self) -> int:
        return self.store.count()

    def all_documents(self) -> List[Document]:
        return self.store.all()

    def clear(self) -> None:
        self.store.clear()

    def save_index(self, path: str) -> None:
        self.store.save(path)

    def load_index(self, path: str) -> None:
        self.store.load(path)

    # ============================================================
    # QUERY
    # ============================================================

    def query(self, question: str) -> RAGResponse:

        stage = QueryStage.RECEIVED
        start = time.time()

        logger.info(
            "Query received",
            extra={"stage": stage.value, "question_length": len(question or "")},
        )

        try:

            if not isinstance(question, str) or not question.strip():
                raise InvalidInputError("Question cannot be empty")

            if self.store.count() == 0:
                raise EmptyIndexError("No documents indexed. Please upload a PDF first.")

            stage = QueryStage.RETRIEVED
            candidates = self.store.search(question, self.config.top_k)

            if not candidates:
                raise NoResultsError("No documents found in vector store")

            logger.info(
                "Documents retrieved",
                extra={"stage": stage.value, "candidates": len(candidates)},
            )

            stage = QueryStage.RERANKED
            sources = self.reranker.rerank(question, candidates, self.config.rerank_top_k)

            logger.info(
                "Documents reranked",
                extra={"stage": stage.value, "sources": len(sources)},
            )

            stage = QueryStage.PROMPT_BUILT
            prompt = build_prompt(question, sources)

            stage = QueryStage.GENERATED
            answer = self.llm_client.generate(prompt)

        except RAGError as e:

            e.stage = stage.value

            logger.error(
                "Query failed",
                extra={
                    "stage": stage.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

            raise

        response = RAGResponse(
            question=question,
            answer=answer,
            sources=tuple(sources),
        )

        logger.info(
            "Query answered",
            extra={
                "stage": QueryStage.RESPONDED.value,
                "sources": len(sources),
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return response


def build_rag_system(config: Optional[RAGConfig] = None) -> RAGSystem:
    """Wire a RAGSystem from the provider settings in pdfqa.config."""

    config = config or RAGConfig()

    embedder = build_embedder(EMBEDDING_PROVIDER, config.embedding_model)
    llm_client = build_llm_client(LLM_PROVIDER, config.generation_model)

    logger.info(
        "RAG system initialized",
        extra={
            "top_k": config.top_k,
            "rerank_top_k": config.rerank_top_k,
            "embedding_model": config.embedding_model,
            "generation_model": config.generation_model,
        },
    )

    return RAGSystem(config, embedder, llm_client)
