from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from shelfscan.embeddings.config import EmbeddingConfig
from shelfscan.embeddings.encoder import SentenceTransformerEmbedder, encode_text, hashed_vector
from shelfscan.recommendations.data_store import InMemoryBookStore
from shelfscan.recommendations.models import Book

FAKE_CONFIG = EmbeddingConfig(fake_embeddings=True, fake_dimension=16)


def test_hashed_vector_is_deterministic():
    a = hashed_vector("Dune by Frank Herbert", 16)
    b = hashed_vector("Dune by Frank Herbert", 16)
    c = hashed_vector("Emma by Jane Austen", 16)
    assert a.shape == (16,)
    assert np.array_equal(a, b)
    assert not np.array_equal(a, c)


def test_encode_text_fake_mode_skips_model():
    with patch("shelfscan.embeddings.encoder.SentenceTransformer") as mock_model_cls:
        vec = encode_text("Dune", FAKE_CONFIG)
    mock_model_cls.assert_not_called()
    assert vec.shape == (16,)


def test_encode_text_uses_sentence_transformer():
    config = EmbeddingConfig(model_name="test-model", fake_embeddings=False)
    with patch("shelfscan.embeddings.encoder.SentenceTransformer") as mock_model_cls:
        mock_model_cls.return_value.encode.return_value = np.array([0.1, 0.2, 0.3])
        vec = encode_text("Dune", config)
        encode_text("Emma", config)

    # Loaded once per model name.
    mock_model_cls.assert_called_once_with("test-model")
    assert vec.tolist() == [0.1, 0.2, 0.3]


async def test_embedder_returns_float_list():
    vector = await SentenceTransformerEmbedder(FAKE_CONFIG).embed("Dune")
    assert len(vector) == 16
    assert all(isinstance(v, float) for v in vector)


async def test_store_embeds_with_hashed_vectors():
    store = InMemoryBookStore(SentenceTransformerEmbedder(FAKE_CONFIG))
    book = await store.upsert_by_identity(Book(title="Dune", authors=["Frank Herbert"]))
    assert len(book.embedding) == 16


async def test_embedder_propagates_model_errors():
    embedder = SentenceTransformerEmbedder(EmbeddingConfig(model_name="broken", fake_embeddings=False))
    broken = MagicMock()
    broken.encode.side_effect = RuntimeError("model failed")
    with patch("shelfscan.embeddings.encoder._get_model", return_value=broken):
        with pytest.raises(RuntimeError, match="model failed"):
            await embedder.embed("Dune")
