# pdfqa/memory/reranker.py

"""
Similarity reranking of retrieved candidates.

The vector store ranks by L2 distance; the reranker re-scores the
candidates with cosine similarity against the query and keeps the best.
"""

import logging
from typing import List, Sequence

from pdfqa.errors import InvalidInputError
from pdfqa.memory.document import Document, ScoredDocument
from pdfqa.memory.embedder import BaseEmbedder, cosine_similarity

logger = logging.getLogger(__name__)


class Reranker:

    def __init__(self, embedder: BaseEmbedder):
        self._embedder = embedder

    def _score_all(self, query: str, candidates: Sequence[Document]) -> List[ScoredDocument]:

        query_vector = self._embedder.embed(query)

        vectors = self._embedder.embed_batch([doc.content for doc in candidates])

        scored = [
            ScoredDocument(document=doc, score=cosine_similarity(query_vector, vector))
            for doc, vector in zip(candidates, vectors)
        ]

        # sorted() is stable: equal scores keep candidate order
        return sorted(scored, key=lambda item: item.score, reverse=True)

    def top_documents(
        self,
        query: str,
        candidates: Sequence[Document],
        top_k: int,
    ) -> List[ScoredDocument]:
        """Best ``top_k`` candidates with their cosine similarity, highest first."""

        if not candidates:
            return []

        if top_k <= 0:
            raise InvalidInputError(f"top_k must be positive, got {top_k}")

        return self._score_all(query, candidates)[:top_k]

    def rerank(
        self,
        query: str,
        candidates: Sequence[Document],
        top_k: int,
    ) -> List[Document]:
        """
        Reorder candidates by similarity to the query and keep ``top_k``.

        When top_k already covers every candidate the input order is
        returned untouched and no embedding calls are made.
        """

        if not candidates:
            return []

        if top_k <= 0:
            raise InvalidInputError(f"top_k must be positive, got {top_k}")

        if top_k >= len(candidates):
            return list(candidates)

        logger.info(
            "Reranking documents",
            extra={"candidates": len(candidates), "top_k": top_k},
        )

        reranked = [item.document for item in self._score_all(query, candidates)[:top_k]]

        logger.info(
            "Reranking completed",
            extra={"kept": len(reranked)},
        )

        return reranked

    def score(self, query: str, document: Document) -> float:

        query_vector = self._embedder.embed(query)
        document_vector = self._embedder.embed(document.content)

        return cosine_similarity(query_vector, document_vector)
