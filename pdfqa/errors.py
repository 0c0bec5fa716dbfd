# pdfqa/errors.py
"""Exception hierarchy for the retrieval pipeline."""

from typing import Optional


class RAGError(Exception):
    """Base exception for all pipeline errors.

    ``stage`` names the pipeline stage that failed when the error passed
    through the orchestrator.
    """

    def __init__(self, message: str = "", stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class InvalidInputError(RAGError, ValueError):
    """Empty or malformed caller-supplied data."""


class ConfigurationError(InvalidInputError):
    """Invalid tunables (chunk sizes, top-k values, missing API keys)."""


class DimensionMismatchError(RAGError, ValueError):
    """Vector length disagreement."""


class EmptyStoreError(RAGError):
    """Operation requires at least one stored document."""


class EmptyIndexError(EmptyStoreError):
    """Query issued against an orchestrator with nothing indexed."""


class NoResultsError(RAGError):
    """Retrieval succeeded structurally but returned nothing."""


class UpstreamError(RAGError):
    """Remote embedding or generation call failed or returned a bad shape."""


class PersistenceError(RAGError, OSError):
    """Index snapshot could not be written or read."""


class CorruptDataError(PersistenceError):
    """Index snapshot exists but is unparseable or inconsistent."""
