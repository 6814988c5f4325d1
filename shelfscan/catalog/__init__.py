"""
Book catalog lookups.

Responsibilities:
- Search Google Books first (richer metadata), Open Library as fallback.
- Map both wire formats onto the canonical ``Book`` shape.
- Stay best-effort: a failed lookup yields an empty list, never an exception.
"""
