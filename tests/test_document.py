# tests/test_document.py
import dataclasses

import pytest

from pdfqa.errors import InvalidInputError
from pdfqa.memory.document import Document, ScoredDocument


class TestDocument:

    @pytest.mark.parametrize("content", ["", "   ", "\n"])
    def test_empty_content_rejected(self, content):
        with pytest.raises(InvalidInputError):
            Document(id="a.pdf-chunk-0", content=content)

    def test_empty_id_rejected(self):
        with pytest.raises(InvalidInputError):
            Document(id="", content="text")

    @pytest.mark.parametrize("value", [[1, 2], {1, 2}, object()])
    def test_unsupported_metadata_value_rejected(self, value):
        with pytest.raises(InvalidInputError):
            Document(id="a.pdf-chunk-0", content="text", metadata={"bad": value})

    def test_nested_metadata_allowed(self):
        doc = Document(
            id="a.pdf-chunk-0",
            content="text",
            metadata={"source": "a.pdf", "extra": {"author": "x", "year": 2024, "draft": False}},
        )

        assert doc.metadata["extra"]["year"] == 2024

    def test_is_immutable(self):
        doc = Document(id="a.pdf-chunk-0", content="text", metadata={"source": "a.pdf"})

        with pytest.raises(dataclasses.FrozenInstanceError):
            doc.content = "changed"

        with pytest.raises(TypeError):
            doc.metadata["source"] = "b.pdf"

    def test_caller_dict_not_shared(self):
        metadata = {"source": "a.pdf"}
        doc = Document(id="a.pdf-chunk-0", content="text", metadata=metadata)

        metadata["source"] = "b.pdf"

        assert doc.metadata["source"] == "a.pdf"

    def test_dict_round_trip(self):
        doc = Document(
            id="a.pdf-chunk-0",
            content="text",
            metadata={"source": "a.pdf", "pages": 2, "extra": {"k": None}},
        )

        data = doc.to_dict()

        assert data == {
            "id": "a.pdf-chunk-0",
            "content": "text",
            "metadata": {"source": "a.pdf", "pages": 2, "extra": {"k": None}},
        }
        assert Document.from_dict(data) == doc

    def test_from_dict_missing_field(self):
        with pytest.raises(InvalidInputError):
            Document.from_dict({"id": "a.pdf-chunk-0"})


def test_scored_document_to_dict():
    doc = Document(id="a.pdf-chunk-0", content="text")

    assert ScoredDocument(document=doc, score=0.5).to_dict() == {
        "document": {"id": "a.pdf-chunk-0", "content": "text", "metadata": {}},
        "score": 0.5,
    }
