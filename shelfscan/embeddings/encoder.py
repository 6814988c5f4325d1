from __future__ import annotations

import asyncio
import hashlib
import logging

import numpy as np
from sentence_transformers import SentenceTransformer

from ..ports import Embedder
from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig

logger = logging.getLogger(__name__)

_models: dict[str, SentenceTransformer] = {}


def _get_model(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> SentenceTransformer:
    model = _models.get(config.model_name)
    if model is None:
        logger.info("Loading sentence-transformer model %s", config.model_name)
        model = SentenceTransformer(config.model_name)
        _models[config.model_name] = model
    return model


def hashed_vector(text: str, dim: int = 128) -> np.ndarray:
    """Deterministic pseudo-embedding seeded from a hash of *text*."""
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
    return np.random.default_rng(seed).random(dim)


def encode_text(text: str, config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> np.ndarray:
    """Encode a single string into a 1-D embedding vector."""
    if config.fake_embeddings:
        return hashed_vector(text or "", config.fake_dimension)
    return _get_model(config).encode(text or "", show_progress_bar=False)


class SentenceTransformerEmbedder(Embedder):
    """Async wrapper that keeps model inference off the event loop."""

    def __init__(self, config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> None:
        self._config = config

    async def embed(self, text: str) -> list[float]:
        vector = await asyncio.to_thread(encode_text, text, self._config)
        return [float(v) for v in vector]
