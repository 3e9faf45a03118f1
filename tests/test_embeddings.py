import numpy as np
import pytest

pytest.importorskip("sentence_transformers")

from careagent.models import embeddings
from careagent.models.embeddings import EmbeddingModel


class FakeSentenceTransformer:
    max_seq_length = 128

    def __init__(self, model_name, device=None):
        self.model_name = model_name
        self.device = device
        self.encoded = []

    def get_sentence_embedding_dimension(self):
        return 8

    def encode(self, texts, **kwargs):
        self.encoded.append(texts)
        if isinstance(texts, str):
            return np.ones(8, dtype=np.float32)
        return np.ones((len(texts), 8), dtype=np.float32)


@pytest.fixture
def encoder(monkeypatch):
    monkeypatch.setattr(embeddings, "SentenceTransformer", FakeSentenceTransformer)
    return EmbeddingModel(device="cpu")


def test_describe(encoder):
    assert encoder.describe() == {
        "model_name": embeddings.DEFAULT_MODEL,
        "device": "cpu",
        "dimension": 8,
        "max_seq_length": 128,
    }


def test_query_vectors_are_cached(encoder):
    first = encoder.embed("apixaban dosing")
    second = encoder.embed("apixaban dosing")
    assert first is second
    assert encoder.model.encoded == ["apixaban dosing"]


def test_embed_batch_shape(encoder):
    assert encoder.embed_batch(["a", "b", "c"]).shape == (3, 8)
