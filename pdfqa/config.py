# pdfqa/config.py
"""
Configuration for the PDF question answering service.

This file centralizes all tunable parameters for the RAG pipeline.
Every value can be overridden through an environment variable of the
same name.
"""

import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


# ========== DOCUMENT PROCESSING ==========

# Chunk configuration (characters, paragraph-aware)
CHUNK_SIZE = _env_int("CHUNK_SIZE", 1000)
CHUNK_OVERLAP = _env_int("CHUNK_OVERLAP", 200)

# File upload limits
MAX_FILE_SIZE_MB = _env_int("MAX_FILE_SIZE_MB", 10)
ALLOWED_FILE_EXTENSIONS = [".pdf"]


# ========== EMBEDDING CONFIGURATION ==========

# "gemini" (768 dimensions) or "openai" (1536 / 3072 dimensions)
EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "gemini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-004")

# Per-call timeout; a timed out call fails the request, no retries
EMBEDDING_TIMEOUT_SECONDS = _env_float("EMBEDDING_TIMEOUT_SECONDS", 30.0)

# Concurrent embedding calls inside one batch / rerank
EMBEDDING_MAX_WORKERS = _env_int("EMBEDDING_MAX_WORKERS", 8)


# ========== RETRIEVAL CONFIGURATION ==========

# Candidates fetched from the vector index
TOP_K = _env_int("TOP_K", 10)

# Candidates kept after reranking and sent to the LLM
RERANK_TOP_K = _env_int("RERANK_TOP_K", 3)

# Snapshot location used by /api/save and /api/load
INDEX_PATH = os.getenv("INDEX_PATH", "storage/faiss_index")


# ========== LLM CONFIGURATION ==========

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "gemini")
LLM_MODEL = os.getenv("LLM_MODEL", "gemini-2.0-flash")

# Generation parameters
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.2)  # Low temperature for factual answers
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 1024)
LLM_TIMEOUT_SECONDS = _env_float("LLM_TIMEOUT_SECONDS", 60.0)


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")


# ========== SERVER ==========

HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3000)
