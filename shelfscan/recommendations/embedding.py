from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .config import BACKFILL_CONFIDENCE
from .context import RecommenderContext
from .models import Book, Recommendation, ScoreBreakdown
from .outcomes import Skipped, attempt
from .similarity import cosine_many, mean_embedding

logger = logging.getLogger(__name__)


async def recommend_by_query_embedding(
    ctx: RecommenderContext,
    query: Sequence[float],
    *,
    limit: int = 12,
    exclude_ids: Iterable[str] = (),
    include_scores: bool = False,
) -> list[Recommendation]:
    """Rank stored books by cosine similarity to *query*.

    Books scoring <= 0 are dropped. Order among equal scores is not guaranteed.
    Raises ``StoreError`` if the store cannot be read.
    """
    if not len(query) or limit <= 0:
        return []

    books = await ctx.store.find_all(exclude_ids=exclude_ids)
    scores = cosine_many(query, [b.embedding for b in books])
    ranked = sorted(
        ((book, score) for book, score in zip(books, scores) if score > 0),
        key=lambda pair: pair[1],
        reverse=True,
    )

    results: list[Recommendation] = []
    seen_ids: set[str] = set()
    for book, score in ranked:
        if ctx.is_restricted(book):
            continue
        if not book.id or book.id in seen_ids:
            continue
        seen_ids.add(book.id)
        results.append(Recommendation(
            book=book,
            confidence=min(score, 1.0),
            breakdown=ScoreBreakdown(other=score) if include_scores else None,
        ))
        if len(results) >= limit:
            break
    return results


async def recommend_from_seed_books(
    ctx: RecommenderContext,
    books: list[Book],
    *,
    limit: int = 12,
) -> list[Recommendation]:
    """Nearest stored books to the seed mean embedding, backfilled from similar-books lookups."""
    seed_vector = mean_embedding(books)
    if not seed_vector:
        return []

    seed_ids = [b.id for b in books if b.id]
    seen_titles = {b.normalized_title for b in books if b.normalized_title}

    primary: list[Recommendation] = []
    for rec in await recommend_by_query_embedding(ctx, seed_vector, limit=limit * 2, exclude_ids=seed_ids):
        key = rec.book.normalized_title
        if not key or key in seen_titles:
            continue
        seen_titles.add(key)
        primary.append(rec)
    if len(primary) >= limit:
        return primary[:limit]

    needed = limit - len(primary)
    backfill: list[Recommendation] = []
    for seed in books:
        if len(backfill) >= needed:
            break
        similar = await attempt(
            f"similar books for {seed.title!r}",
            ctx.catalog.find_similar(seed, limit=needed * 2, seen_titles=seen_titles),
        )
        if isinstance(similar, Skipped):
            continue
        for meta in similar:
            key = meta.normalized_title
            if not key or key in seen_titles or ctx.is_restricted(meta):
                continue
            seen_titles.add(key)
            backfill.append(Recommendation(book=meta, confidence=BACKFILL_CONFIDENCE))
            if len(backfill) >= needed:
                break

    if backfill:
        logger.info("Backfilled %d similar-book recommendations", len(backfill))
    return (primary + backfill)[:limit]
