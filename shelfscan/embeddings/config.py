from __future__ import annotations

import os
from dataclasses import dataclass

from ..config import env_flag


@dataclass(frozen=True)
class EmbeddingConfig:
    model_name: str = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
    dimension: int = 384
    fake_embeddings: bool = env_flag("DEMO_FAKE_EMBEDDINGS", False)
    fake_dimension: int = 128


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
