from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from .models import Book


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity over the shorter of the two vectors; 0.0 for empty or zero-norm input."""
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    va = np.asarray(a[:n], dtype=float)
    vb = np.asarray(b[:n], dtype=float)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def cosine_many(query: Sequence[float], vectors: list[Sequence[float]]) -> list[float]:
    """Score *query* against each vector, batching through sklearn when dimensions agree."""
    if not vectors:
        return []
    if not len(query):
        return [0.0] * len(vectors)
    if all(len(v) == len(query) for v in vectors):
        matrix = np.asarray(vectors, dtype=float)
        scores = cosine_similarity(np.asarray(query, dtype=float).reshape(1, -1), matrix)
        return [float(s) for s in scores.flatten()]
    return [cosine(query, v) for v in vectors]


def mean_embedding(books: list[Book]) -> list[float]:
    """Average the embeddings of *books* that have one; empty when none do."""
    vectors = [b.embedding for b in books if b.embedding]
    if not vectors:
        return []
    dim = len(vectors[0])
    stacked = np.asarray([v for v in vectors if len(v) == dim], dtype=float)
    return [float(x) for x in stacked.mean(axis=0)]
