# tests/conftest.py
import os
import re
import sys
import threading
import time

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pdfqa.llm.client import BaseLLMClient
from pdfqa.main import create_app
from pdfqa.memory.document import Document
from pdfqa.memory.embedder import BaseEmbedder
from pdfqa.memory.store import FaissVectorStore
from pdfqa.observability.metrics import metrics_tracker
from pdfqa.workflow.document_qa import RAGConfig, RAGSystem


VOCABULARY = ["sky", "blue", "grass", "green", "color", "cat", "python", "language"]

_WORD = re.compile(r"\w+")


class FakeEmbedder(BaseEmbedder):
    """
    Deterministic keyword embedder.

    One dimension per vocabulary word (occurrence count) plus a constant
    bias dimension so no text maps to the zero vector.
    """

    provider = "fake"

    def __init__(self, max_workers: int = 4, bad_texts=(), failing_texts=(), delay=0.0):
        super().__init__(model="fake-embedding", dimension=len(VOCABULARY) + 1, max_workers=max_workers)
        self.bad_texts = set(bad_texts)
        self.failing_texts = set(failing_texts)
        self.delay = delay
        self.calls = 0
        self.texts = []
        self._calls_lock = threading.Lock()

    def _embed_remote(self, text):

        with self._calls_lock:
            self.calls += 1
            self.texts.append(text)

        if text in self.failing_texts:
            raise ConnectionError(f"embedding service unavailable for {text!r}")

        if self.delay:
            time.sleep(self.delay)

        words = [w.lower() for w in _WORD.findall(text)]
        vector = [float(words.count(term)) for term in VOCABULARY] + [1.0]

        if text in self.bad_texts:
            vector.append(0.0)

        return vector


class FakeLLMClient(BaseLLMClient):

    provider = "fake"

    def __init__(self, answer="fake answer", fail=False):
        super().__init__(model="fake-llm")
        self.answer = answer
        self.fail = fail
        self.prompts = []

    def _generate(self, prompt):

        self.prompts.append(prompt)

        if self.fail:
            raise TimeoutError("generation timed out")

        return self.answer


def make_pdf(lines, title="Test Document"):
    """
    Build a small single-page PDF with one text line per entry.

    Offsets in the xref table are computed, so strict parsers accept it.
    """

    def escape(value):
        return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    operations = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
    operations += [f"({escape(line)}) Tj T*" for line in lines]
    operations.append("ET")
    content = "\n".join(operations).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(content)).encode() + b" >>\nstream\n" + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        f"<< /Title ({escape(title)}) /Producer (pdfqa tests) "
        f"/CreationDate (D:20240101000000Z) >>".encode("latin-1"),
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []

    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_position = len(out)

    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()

    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R /Info 6 0 R >>\n"
        f"startxref\n{xref_position}\n%%EOF\n"
    ).encode()

    return bytes(out)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm_client():
    return FakeLLMClient()


@pytest.fixture
def store(embedder):
    return FaissVectorStore(embedder)


@pytest.fixture
def sky_documents():
    return [
        Document(id="colors.pdf-chunk-0", content="The sky is blue.", metadata={"source": "colors.pdf"}),
        Document(id="colors.pdf-chunk-1", content="Grass is green.", metadata={"source": "colors.pdf"}),
    ]


@pytest.fixture
def rag_config():
    return RAGConfig(top_k=2, rerank_top_k=1)


@pytest.fixture
def rag_system(rag_config, embedder, llm_client):
    return RAGSystem(rag_config, embedder, llm_client)


@pytest.fixture
def sample_pdf_content():
    return make_pdf(["The sky is blue."], title="Sky Facts")


@pytest.fixture
def non_pdf_content():
    return b"This is a plain text file, not a PDF."


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_tracker.reset()
    yield
    metrics_tracker.reset()


@pytest.fixture
def client(rag_system, tmp_path):
    """
    FastAPI test client backed by fake embedding and generation services.

    The lifespan hook is not entered, so no real providers are built.
    """
    app = create_app(rag_system=rag_system, index_path=str(tmp_path / "faiss_index"))
    return TestClient(app)
