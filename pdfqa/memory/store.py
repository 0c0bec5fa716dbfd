import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Union

import faiss
import numpy as np

from pdfqa.errors import (
    CorruptDataError,
    DimensionMismatchError,
    EmptyStoreError,
    InvalidInputError,
    PersistenceError,
)
from pdfqa.memory.document import Document, ScoredDocument
from pdfqa.memory.embedder import BaseEmbedder


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class BaseVectorStore(ABC):
    """
    Nearest-neighbour document store.

    Any exact or approximate backend works as long as search results come
    back nearest first, k is clamped to the stored count, and the failure
    modes below are honoured.
    """

    @abstractmethod
    def add(self, documents: Sequence[Document]) -> None: ...

    @abstractmethod
    def search(self, query: str, k: int) -> List[Document]: ...

    @abstractmethod
    def save(self, path: PathLike) -> None: ...

    @abstractmethod
    def load(self, path: PathLike) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def all(self) -> List[Document]: ...


class FaissVectorStore(BaseVectorStore):
    """
    Brute-force L2 search over a FAISS IndexFlatL2.

    Row i of the index always pairs with self._documents[i]. Both are
    only touched while holding self._lock; remote embedding calls happen
    before the lock is taken.
    """

    DOCS_SUFFIX = ".docs.json"

    def __init__(self, embedder: BaseEmbedder):

        self._embedder = embedder
        self._dim = embedder.dimension

        self._index = faiss.IndexFlatL2(self._dim)
        self._documents: List[Document] = []
        self._ids: Set[str] = set()
        self._lock = threading.Lock()

        logger.info(
            "New FAISS index created",
            extra={"dimension": self._dim},
        )

    @staticmethod
    def _first_duplicate(ids: Iterable[str], existing: Set[str]):

        seen = set()

        for doc_id in ids:

            if doc_id in seen or doc_id in existing:
                return doc_id

            seen.add(doc_id)

        return None

    @property
    def dimension(self) -> int:
        return self._dim

    # ============================================================
    # WRITE PATH
    # ============================================================

    def add(self, documents: Sequence[Document]) -> None:
        """
        Embed and append documents, preserving input order.

        Ids must be new to the store and distinct within the batch; that is
        checked before any embedding call. All-or-nothing: if any embedding
        fails or has the wrong dimension, nothing is appended.
        """

        if not documents:
            raise InvalidInputError("Documents array cannot be empty")

        documents = list(documents)
        ids = [doc.id for doc in documents]

        with self._lock:
            duplicate = self._first_duplicate(ids, self._ids)

        if duplicate is not None:
            raise InvalidInputError(f"Document id already indexed or repeated: {duplicate}")

        logger.info(
            "Adding documents to vector store",
            extra={"documents": len(documents)},
        )

        embeddings = self._embedder.embed_batch([doc.content for doc in documents])

        for i, vector in enumerate(embeddings):

            if not self._embedder.validate(vector) or len(vector) != self._dim:
                raise DimensionMismatchError(
                    f"Invalid embedding dimension at index {i}: "
                    f"expected {self._dim}, got {len(vector)}"
                )

        matrix = np.ascontiguousarray(np.vstack(embeddings), dtype="float32")

        with self._lock:

            # another add may have stored the same ids while we were embedding
            duplicate = self._first_duplicate(ids, self._ids)

            if duplicate is not None:
                raise InvalidInputError(f"Document id already indexed or repeated: {duplicate}")

            self._index.add(matrix)
            self._documents.extend(documents)
            self._ids.update(ids)

            total = len(self._documents)

        logger.info(
            "Documents added",
            extra={"documents": len(documents), "total_documents": total},
        )

    def clear(self) -> None:

        with self._lock:

            self._index = faiss.IndexFlatL2(self._dim)
            self._documents = []
            self._ids = set()

        logger.info("Vector store cleared")

    # ============================================================
    # READ PATH
    # ============================================================

    def search_with_scores(self, query: str, k: int) -> List[ScoredDocument]:
        """Nearest documents with their L2 distance, nearest first."""

        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Query cannot be empty")

        if k <= 0:
            raise InvalidInputError(f"k must be positive, got {k}")

        if self.count() == 0:
            raise EmptyStoreError("Vector store is empty")

        query_vector = self._embedder.embed(query)

        if len(query_vector) != self._dim:
            raise DimensionMismatchError(
                f"Query embedding has dimension {len(query_vector)}, expected {self._dim}"
            )

        query_matrix = np.ascontiguousarray(
            query_vector.reshape(1, -1), dtype="float32"
        )

        with self._lock:

            # cleared while the query was being embedded
            if not self._documents:
                raise EmptyStoreError("Vector store is empty")

            k = min(k, len(self._documents))

            distances, labels = self._index.search(query_matrix, k)

            results = [
                ScoredDocument(
                    document=self._documents[label],
                    score=float(np.sqrt(max(distance, 0.0))),
                )
                for distance, label in zip(distances[0], labels[0])
                if label >= 0
            ]

        logger.info(
            "Vector search completed",
            extra={"k": k, "results": len(results)},
        )

        return results

    def search(self, query: str, k: int) -> List[Document]:
        return [result.document for result in self.search_with_scores(query, k)]

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def all(self) -> List[Document]:
        with self._lock:
            return list(self._documents)

    def get_stats(self) -> dict:

        with self._lock:

            return {
                "total_documents": len(self._documents),
                "total_vectors": self._index.ntotal,
                "dimension": self._dim,
            }

    # ============================================================
    # PERSISTENCE
    # ============================================================

    @classmethod
    def docs_path(cls, path: PathLike) -> Path:
        return Path(f"{os.fspath(path)}{cls.DOCS_SUFFIX}")

    def save(self, path: PathLike) -> None:
        """
        Write the FAISS index to ``path`` and the documents to
        ``path + ".docs.json"``.
        """

        index_path = Path(path)
        docs_path = self.docs_path(path)

        index_tmp = index_path.with_name(index_path.name + ".tmp")
        docs_tmp = docs_path.with_name(docs_path.name + ".tmp")

        with self._lock:

            records = [doc.to_dict() for doc in self._documents]

            try:

                index_path.parent.mkdir(parents=True, exist_ok=True)

                faiss.write_index(self._index, str(index_tmp))

                with docs_tmp.open("w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2)

                os.replace(index_tmp, index_path)
                os.replace(docs_tmp, docs_path)

            except (OSError, RuntimeError) as e:

                logger.error(
                    "Index save failed",
                    extra={"path": str(index_path), "error": str(e)},
                    exc_info=True,
                )

                index_tmp.unlink(missing_ok=True)
                docs_tmp.unlink(missing_ok=True)

                raise PersistenceError(f"Failed to save index to {index_path}: {e}") from e

        logger.info(
            "Index saved",
            extra={"path": str(index_path), "documents": len(records)},
        )

    def load(self, path: PathLike) -> None:
        """
        Replace the current state with a saved snapshot.

        Both artifacts are read and checked before anything is swapped in;
        on failure the store keeps its previous contents.
        """

        index_path = Path(path)
        docs_path = self.docs_path(path)

        for artifact in (index_path, docs_path):
            if not artifact.is_file():
                raise PersistenceError(f"Index artifact not found: {artifact}")

        try:
            index = faiss.read_index(str(index_path))
        except RuntimeError as e:
            raise CorruptDataError(f"Unreadable FAISS index at {index_path}: {e}") from e

        try:

            with docs_path.open("r", encoding="utf-8") as f:
                records = json.load(f)

        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"Unparseable document list at {docs_path}: {e}") from e

        except OSError as e:
            raise PersistenceError(f"Failed to read {docs_path}: {e}") from e

        if not isinstance(records, list):
            raise CorruptDataError(f"Document list at {docs_path} is not a JSON array")

        try:
            documents = [Document.from_dict(record) for record in records]
        except InvalidInputError as e:
            raise CorruptDataError(f"Invalid document record in {docs_path}: {e}") from e

        ids = [doc.id for doc in documents]
        duplicate = self._first_duplicate(ids, set())

        if duplicate is not None:
            raise CorruptDataError(f"Document id {duplicate} appears more than once in {docs_path}")

        if index.ntotal != len(documents):
            raise CorruptDataError(
                f"Index holds {index.ntotal} vectors but {len(documents)} documents were saved"
            )

        if index.d != self._dim:
            raise CorruptDataError(
                f"Saved index has dimension {index.d}, expected {self._dim}"
            )

        with self._lock:

            self._index = index
            self._documents = documents
            self._ids = set(ids)

        logger.info(
            "Index loaded",
            extra={"path": str(index_path), "documents": len(documents)},
        )
