# tests/test_embedder.py
import time

import numpy as np
import pytest

from pdfqa.errors import (
    ConfigurationError,
    DimensionMismatchError,
    InvalidInputError,
    UpstreamError,
)
from pdfqa.memory import embedder as embedder_module
from pdfqa.memory.embedder import (
    BaseEmbedder,
    GeminiEmbedder,
    build_embedder,
    cosine_similarity,
    euclidean_distance,
)

from conftest import FakeEmbedder


VECTORS = [
    [1.0, 0.0, 0.0],
    [0.5, -2.0, 3.0],
    [-1.5, 4.0, 0.25],
    [10.0, 10.0, 10.0],
]


class TestCosineSimilarity:

    @pytest.mark.parametrize("a", VECTORS)
    @pytest.mark.parametrize("b", VECTORS)
    def test_symmetric_and_bounded(self, a, b):
        forward = cosine_similarity(a, b)

        assert forward == pytest.approx(cosine_similarity(b, a))
        assert -1.0 <= forward <= 1.0

    @pytest.mark.parametrize("a", VECTORS)
    def test_self_similarity_is_one(self, a):
        assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_zero_magnitude_returns_zero(self):
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


class TestEuclideanDistance:

    @pytest.mark.parametrize("a", VECTORS)
    @pytest.mark.parametrize("b", VECTORS)
    def test_non_negative_and_zero_only_for_equal(self, a, b):
        distance = euclidean_distance(a, b)

        assert distance >= 0
        assert (distance == 0) == (a == b)

    def test_known_value(self):
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            euclidean_distance([1.0], [1.0, 2.0])


class SlowEmbedder(BaseEmbedder):
    """Shorter texts take longer, so completion order is reversed."""

    provider = "slow"

    def __init__(self):
        super().__init__(model="slow", dimension=2, max_workers=8)

    def _embed_remote(self, text):
        time.sleep(0.05 / len(text))
        return [float(len(text)), 1.0]


class TestEmbedder:

    def test_embed_returns_float32_vector(self, embedder):
        vector = embedder.embed("The sky is blue.")

        assert isinstance(vector, np.ndarray)
        assert vector.dtype == np.float32
        assert embedder.validate(vector)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_embed_rejects_empty_text(self, embedder, text):
        with pytest.raises(InvalidInputError):
            embedder.embed(text)

        assert embedder.calls == 0

    def test_embed_strips_text(self, embedder):
        embedder.embed("  sky  ")

        assert embedder.texts == ["sky"]

    def test_batch_rejects_empty_sequence(self, embedder):
        with pytest.raises(InvalidInputError):
            embedder.embed_batch([])

        assert embedder.calls == 0

    def test_batch_rejects_blank_member_before_any_call(self, embedder):
        with pytest.raises(InvalidInputError):
            embedder.embed_batch(["sky", " "])

        assert embedder.calls == 0

    def test_batch_preserves_input_order(self):
        texts = ["a" * n for n in range(1, 11)]

        vectors = SlowEmbedder().embed_batch(texts)

        assert [v[0] for v in vectors] == [float(len(t)) for t in texts]

    def test_remote_failure_becomes_upstream_error(self):
        embedder = FakeEmbedder(failing_texts={"sky"})

        with pytest.raises(UpstreamError):
            embedder.embed("sky")

    def test_batch_failure_stops_pending_calls(self):
        texts = ["sky"] + [f"grass {i}" for i in range(50)]
        embedder = FakeEmbedder(max_workers=1, failing_texts={"sky"}, delay=0.01)

        with pytest.raises(UpstreamError):
            embedder.embed_batch(texts)

        assert embedder.calls < len(texts)

    def test_missing_values_is_upstream_error(self):

        class EmptyEmbedder(BaseEmbedder):
            def _embed_remote(self, text):
                return []

        with pytest.raises(UpstreamError):
            EmptyEmbedder(model="empty", dimension=3).embed("text")

    @pytest.mark.parametrize("reply", [["a", "b"], [[0.1, 0.2], [0.3, 0.4]], 3.5])
    def test_malformed_values_are_upstream_error(self, reply):

        class MalformedEmbedder(BaseEmbedder):
            def _embed_remote(self, text):
                return reply

        with pytest.raises(UpstreamError):
            MalformedEmbedder(model="malformed", dimension=2).embed("text")

    def test_validate(self, embedder):
        assert embedder.validate([0.0] * embedder.dimension)
        assert not embedder.validate([0.0] * (embedder.dimension + 1))
        assert not embedder.validate(None)

    def test_invalid_dimension_rejected(self):

        class NoDimensionEmbedder(BaseEmbedder):
            def _embed_remote(self, text):
                return []

        with pytest.raises(ConfigurationError):
            NoDimensionEmbedder(model="broken", dimension=0)


class TestGeminiEmbedder:

    @pytest.fixture
    def fake_genai(self, monkeypatch):
        calls = []

        def embed_content(**kwargs):
            calls.append(kwargs)
            return {"embedding": [0.1] * 768}

        monkeypatch.setattr(embedder_module.genai, "configure", lambda **kwargs: None)
        monkeypatch.setattr(embedder_module.genai, "embed_content", embed_content)

        return calls

    def test_embed_calls_model_with_timeout(self, fake_genai):
        embedder = GeminiEmbedder(api_key="test-key", timeout=5.0)

        vector = embedder.embed("  What color is the sky?  ")

        assert embedder.dimension == 768
        assert len(vector) == 768
        assert fake_genai[0]["model"] == "models/text-embedding-004"
        assert fake_genai[0]["content"] == "What color is the sky?"
        assert fake_genai[0]["request_options"] == {"timeout": 5.0}

    def test_malformed_response(self, fake_genai, monkeypatch):
        monkeypatch.setattr(embedder_module.genai, "embed_content", lambda **kwargs: {})

        with pytest.raises(UpstreamError):
            GeminiEmbedder(api_key="test-key").embed("sky")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError):
            GeminiEmbedder()

    def test_unsupported_model(self):
        with pytest.raises(ConfigurationError):
            GeminiEmbedder(model="not-a-model", api_key="test-key")


def test_build_embedder_unknown_provider():
    with pytest.raises(ConfigurationError):
        build_embedder(provider="nope", model="x")
