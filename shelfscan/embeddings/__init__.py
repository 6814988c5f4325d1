"""
Embeddings layer for vector search.

Responsibilities:
- Load a lightweight sentence-transformer model.
- Encode book metadata text into fixed-length vectors for the store.
- Offer a deterministic hashed demo mode that needs no model download.
"""
