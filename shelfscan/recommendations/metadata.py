from __future__ import annotations

import logging
import re

from .config import (
    CATEGORY_MATCH_WEIGHT,
    GENRE_MATCH_WEIGHT,
    MAX_SUBJECT_QUERIES,
    METADATA_SCORE_CAP,
    NEW_SERIES_WEIGHT,
    PUBLISHER_MATCH_WEIGHT,
    SUBJECT_SEARCH_LIMIT,
    YEAR_FAR_WEIGHT,
    YEAR_NEAR_WEIGHT,
)
from .context import RecommenderContext
from .embedding import recommend_by_query_embedding, recommend_from_seed_books
from .models import Book, Recommendation
from .outcomes import Skipped, attempt
from .patterns import TasteProfile, extract_patterns, normalize_tag
from .similarity import mean_embedding

logger = logging.getLogger(__name__)

_SUBJECT_STRIP_RE = re.compile(r"[^\w\s-]")


def build_subject_queries(profile: TasteProfile) -> list[str]:
    subjects = list(dict.fromkeys(sorted(profile.genres) + sorted(profile.categories)))
    subjects = [s for s in subjects if len(s) > 2]

    queries: list[str] = []
    for subject in subjects[:MAX_SUBJECT_QUERIES]:
        cleaned = _SUBJECT_STRIP_RE.sub("", subject).strip()
        if len(cleaned) > 2:
            queries.append(f"subject:{cleaned}")
    return queries


def score_by_metadata(book: Book, profile: TasteProfile) -> float:
    """Raw (unnormalised) metadata affinity; 0 for seed titles and seed authors."""
    if profile.excludes(book):
        return 0.0

    score = 0.0
    score += GENRE_MATCH_WEIGHT * sum(1 for g in book.genre if normalize_tag(g) in profile.genres)
    score += CATEGORY_MATCH_WEIGHT * sum(1 for c in book.categories if normalize_tag(c) in profile.categories)

    if book.publisher and normalize_tag(book.publisher) in profile.publishers:
        score += PUBLISHER_MATCH_WEIGHT

    if book.publication_year and profile.avg_year:
        diff = abs(book.publication_year - profile.avg_year)
        if diff <= 5:
            score += YEAR_NEAR_WEIGHT
        elif diff <= 10:
            score += YEAR_FAR_WEIGHT

    # Being in a series the seeds do not already cover signals "new but comparable".
    if book.series and book.series.name and profile.series:
        if normalize_tag(book.series.name) not in profile.series:
            score += NEW_SERIES_WEIGHT

    return score


async def _search_subjects(ctx: RecommenderContext, queries: list[str]) -> list[Book]:
    candidates: list[Book] = []
    seen: set[str] = set()
    for query in queries[:MAX_SUBJECT_QUERIES]:
        results = await attempt(f"catalog query {query!r}", ctx.catalog.search(query, limit=SUBJECT_SEARCH_LIMIT))
        if isinstance(results, Skipped):
            continue
        for meta in results:
            key = meta.identity_key()
            if key in seen:
                continue
            seen.add(key)
            candidates.append(meta)
    return candidates


async def _supplement(
    ctx: RecommenderContext,
    books: list[Book],
    chosen: list[Recommendation],
    profile: TasteProfile,
    needed: int,
) -> list[Recommendation]:
    seed_vector = mean_embedding(books)
    if not seed_vector or needed <= 0:
        return []

    exclude_ids = [b.id for b in books if b.id] + [r.book.id for r in chosen if r.book.id]
    chosen_titles = {r.book.normalized_title for r in chosen}
    extra: list[Recommendation] = []
    for rec in await recommend_by_query_embedding(ctx, seed_vector, limit=needed * 2, exclude_ids=exclude_ids):
        if profile.excludes(rec.book) or rec.book.normalized_title in chosen_titles:
            continue
        chosen_titles.add(rec.book.normalized_title)
        extra.append(rec)
        if len(extra) >= needed:
            break
    return extra


async def recommend_by_metadata(
    ctx: RecommenderContext,
    books: list[Book],
    *,
    limit: int = 12,
) -> list[Recommendation]:
    """Recommend catalog books sharing genres, categories, publishers and era with the seeds."""
    if not books:
        return []

    profile = extract_patterns(books)
    queries = build_subject_queries(profile) if profile.has_subjects else []
    if not queries:
        logger.info("No usable genre/category signal; using embedding recommendations")
        return await recommend_from_seed_books(ctx, books, limit=limit)

    scored = [
        (meta, score)
        for meta in await _search_subjects(ctx, queries)
        if (score := score_by_metadata(meta, profile)) > 0
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)

    chosen: list[Recommendation] = []
    for meta, score in scored[: limit * 2]:
        if len(chosen) >= limit:
            break
        if ctx.is_restricted(meta):
            continue
        stored = await attempt(f"upsert of {meta.title!r}", ctx.store.upsert_by_identity(meta))
        if isinstance(stored, Skipped):
            continue
        # The upsert may have merged into an existing record; check the result again.
        if profile.excludes(stored):
            continue
        chosen.append(Recommendation(book=stored, confidence=min(score / METADATA_SCORE_CAP, 1.0)))

    if len(chosen) < limit:
        chosen.extend(await _supplement(ctx, books, chosen, profile, limit - len(chosen)))

    chosen.sort(key=lambda r: r.confidence, reverse=True)
    return chosen[:limit]
