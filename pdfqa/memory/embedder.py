# pdfqa/memory/embedder.py

"""
Embedding providers and vector-space distance primitives.

Architecture contract:
chunker → embedder → vector_store / reranker

Guarantees:
• One vector per input text, numpy float32
• Batch output order always matches input order
• Remote failures surface as UpstreamError, never as zero vectors
• Every remote call carries a timeout; nothing is retried silently
"""

import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

import google.generativeai as genai
import numpy as np
from openai import OpenAI

from pdfqa.config import (
    EMBEDDING_MAX_WORKERS,
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    EMBEDDING_TIMEOUT_SECONDS,
)
from pdfqa.errors import (
    ConfigurationError,
    DimensionMismatchError,
    InvalidInputError,
    RAGError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


# ============================================================
# VECTOR MATH
# ============================================================

def _as_vector(vector) -> np.ndarray:
    return np.asarray(vector, dtype="float64").reshape(-1)


def cosine_similarity(a, b) -> float:
    """
    Dot product over the product of magnitudes, in [-1, 1].

    Returns 0.0 when either vector has zero magnitude.
    """

    a = _as_vector(a)
    b = _as_vector(b)

    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(
            f"Embeddings must have the same dimension ({a.shape[0]} != {b.shape[0]})"
        )

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a, b) / (norm_a * norm_b))

    return max(-1.0, min(1.0, similarity))


def euclidean_distance(a, b) -> float:

    a = _as_vector(a)
    b = _as_vector(b)

    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(
            f"Embeddings must have the same dimension ({a.shape[0]} != {b.shape[0]})"
        )

    return float(np.linalg.norm(a - b))


# ============================================================
# BASE EMBEDDER
# ============================================================

class BaseEmbedder(ABC):
    """
    Maps text to fixed-dimension vectors through a remote model.

    Subclasses implement ``_embed_remote`` for a single text; batching,
    validation and error normalisation live here.
    """

    provider = "base"

    def __init__(
        self,
        model: str,
        dimension: int,
        max_workers: int = EMBEDDING_MAX_WORKERS,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
    ):

        if dimension <= 0:
            raise ConfigurationError("Embedding dimension must be positive")

        if max_workers <= 0:
            raise ConfigurationError("Embedding worker count must be positive")

        self._model = model
        self._dimension = dimension
        self._max_workers = max_workers
        self._timeout = timeout

    @abstractmethod
    def _embed_remote(self, text: str) -> Sequence[float]:
        """Call the remote model for one non-empty text."""

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model

    def validate(self, vector) -> bool:
        return vector is not None and len(vector) == self._dimension

    # ============================================================
    # PUBLIC API
    # ============================================================

    def embed(self, text: str) -> np.ndarray:

        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("Text cannot be empty")

        try:

            values = self._embed_remote(text.strip())

        except RAGError:
            raise

        except Exception as e:

            logger.error(
                "Embedding call failed",
                extra={
                    "provider": self.provider,
                    "model": self._model,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

            raise UpstreamError(f"Embedding generation failed: {e}") from e

        if values is None:
            raise UpstreamError("Invalid embedding response format: missing values")

        try:
            vector = np.asarray(values, dtype="float32")
        except (TypeError, ValueError) as e:
            raise UpstreamError(f"Invalid embedding response format: {e}") from e

        if vector.ndim != 1 or vector.size == 0:
            raise UpstreamError("Invalid embedding response format: expected a flat list of numbers")

        return vector

    def embed_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        """
        Embed many texts concurrently.

        Results land in indexed slots so the output order matches the
        input order whatever the completion order. The first failure
        cancels calls that have not started yet and is re-raised.
        """

        if not texts:
            raise InvalidInputError("Texts array cannot be empty")

        for i, text in enumerate(texts):
            if not isinstance(text, str) or not text.strip():
                raise InvalidInputError(f"Text at index {i} cannot be empty")

        slots: List[Optional[np.ndarray]] = [None] * len(texts)

        logger.info(
            "Embedding started",
            extra={
                "provider": self.provider,
                "texts": len(texts),
                "max_workers": self._max_workers,
            },
        )

        workers = min(self._max_workers, len(texts))

        with ThreadPoolExecutor(max_workers=workers) as executor:

            futures = {
                executor.submit(self.embed, text): index
                for index, text in enumerate(texts)
            }

            try:

                for future in as_completed(futures):
                    slots[futures[future]] = future.result()

            except Exception:

                for future in futures:
                    future.cancel()

                raise

        logger.info(
            "Embedding completed",
            extra={
                "provider": self.provider,
                "texts": len(texts),
                "dimension": self._dimension,
            },
        )

        return slots

    # ============================================================
    # HEALTH CHECK
    # ============================================================

    def health_check(self) -> dict:

        return {
            "model": self._model,
            "dimension": self._dimension,
            "provider": self.provider,
            "status": "healthy",
        }


# ============================================================
# PROVIDERS
# ============================================================

class GeminiEmbedder(BaseEmbedder):
    """Google text-embedding models through google-generativeai."""

    provider = "gemini"

    MODEL_DIMENSIONS = {
        "text-embedding-004": 768,
        "embedding-001": 768,
    }

    def __init__(
        self,
        model: str = "text-embedding-004",
        api_key: Optional[str] = None,
        max_workers: int = EMBEDDING_MAX_WORKERS,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
    ):

        short_name = model.split("/")[-1]

        if short_name not in self.MODEL_DIMENSIONS:
            raise ConfigurationError(f"Unsupported embedding model: {model}")

        key = api_key or os.getenv("GEMINI_API_KEY")

        if not key:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        genai.configure(api_key=key)

        super().__init__(
            model=f"models/{short_name}",
            dimension=self.MODEL_DIMENSIONS[short_name],
            max_workers=max_workers,
            timeout=timeout,
        )

        logger.info(
            "Embedding model initialized",
            extra={"model": self._model, "dimension": self._dimension},
        )

    def _embed_remote(self, text: str) -> Sequence[float]:

        result = genai.embed_content(
            model=self._model,
            content=text,
            request_options={"timeout": self._timeout},
        )

        embedding = result.get("embedding") if result else None

        if not embedding:
            raise UpstreamError("Invalid embedding response format")

        return embedding


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI text-embedding-3 models."""

    provider = "openai"

    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        max_workers: int = EMBEDDING_MAX_WORKERS,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
    ):

        if model not in self.MODEL_DIMENSIONS:
            raise ConfigurationError(f"Unsupported embedding model: {model}")

        key = api_key or os.getenv("OPENAI_API_KEY")

        if not key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        # No SDK-level retries
        self._client = OpenAI(api_key=key, timeout=timeout, max_retries=0)

        super().__init__(
            model=model,
            dimension=self.MODEL_DIMENSIONS[model],
            max_workers=max_workers,
            timeout=timeout,
        )

        logger.info(
            "Embedding model initialized",
            extra={"model": model, "dimension": self._dimension},
        )

    def _embed_remote(self, text: str) -> Sequence[float]:

        response = self._client.embeddings.create(model=self._model, input=text)

        if not response.data:
            raise UpstreamError("Invalid embedding response format")

        return response.data[0].embedding


def build_embedder(
    provider: str = EMBEDDING_PROVIDER,
    model: str = EMBEDDING_MODEL,
) -> BaseEmbedder:

    if provider == "gemini":
        return GeminiEmbedder(model=model)

    if provider == "openai":
        return OpenAIEmbedder(model=model)

    raise ConfigurationError(f"Unknown embedding provider: {provider}")
