from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from ..errors import LLMError
from .cache import make_key
from .config import MIN_CONFIDENCE
from .context import RecommenderContext
from .metadata import recommend_by_metadata
from .models import (
    AuthorPreference,
    Book,
    Recommendation,
    RecommendationFilters,
    Suggestion,
    normalize_title,
)
from .outcomes import Skipped, attempt
from .preferences import PreferenceProfile, analyze_preferences
from .scoring import passes_language_filter, score_candidate

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Recommended based on the books on your shelf"

SYSTEM_PROMPT = (
    "You are a knowledgeable librarian. Given the books on a reader's shelf, "
    "suggest other real, published books they are likely to enjoy and give a "
    "short, friendly one-sentence reason for each.\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    '{{"recommendations": [{{"title": "<book title>", "author": "<author name>", "reason": "<one sentence>"}}]}}\n'
    "Recommend exactly {count} books, best match first. "
    "Do not recommend books with explicit or adult-only content."
)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def format_seed_list(books: list[Book]) -> str:
    entries = []
    for book in books:
        if book.authors:
            entries.append(f'"{book.title}" by {", ".join(book.authors)}')
        else:
            entries.append(f'"{book.title}"')
    return ", ".join(entries)


def _author_constraint(books: list[Book], preference: AuthorPreference) -> str:
    authors = sorted({a for b in books for a in b.authors})
    titles = [b.title for b in books]
    if preference == AuthorPreference.positive:
        return (
            "Only recommend other books written by these authors: "
            f"{', '.join(authors)}. Do not recommend books by any other author."
        )
    if preference == AuthorPreference.negative:
        return (
            f"Do NOT recommend any book written by these authors: {', '.join(authors)}. "
            f"Do NOT recommend any of these titles: {', '.join(titles)}."
        )
    return f"Do NOT recommend any of these titles: {', '.join(titles)}."


def build_system_prompt(books: list[Book], filters: RecommendationFilters, count: int) -> str:
    return SYSTEM_PROMPT.format(count=count) + "\n" + _author_constraint(books, filters.author_preference)


def build_user_prompt(
    books: list[Book],
    filters: RecommendationFilters,
    exclude_titles: Iterable[str] = (),
) -> str:
    lines = [f"Books on my shelf: {format_seed_list(books)}"]
    if filters.languages:
        lines.append(f"Only recommend books available in these languages: {', '.join(filters.languages)}")
    if filters.genres:
        lines.append(f"Focus on these genres: {', '.join(filters.genres)}")
    excluded = [t for t in exclude_titles if t]
    if excluded:
        lines.append(f"I have already been recommended: {', '.join(excluded)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _array_from_value(value: Any) -> list | None:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in ("recommendations", "books"):
            if isinstance(value.get(key), list):
                return value[key]
        for item in value.values():
            if isinstance(item, list):
                return item
    return None


def _decode_json(text: str) -> list | None:
    try:
        return _array_from_value(json.loads(text))
    except (json.JSONDecodeError, RecursionError):
        return None


def _decode_embedded_array(text: str) -> list | None:
    # Outermost brackets: first "[" through last "]".
    start, end = text.find("["), text.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except (json.JSONDecodeError, RecursionError):
        return None
    return parsed if isinstance(parsed, list) else None


_DECODERS: tuple[Callable[[str], list | None], ...] = (_decode_json, _decode_embedded_array)


def _to_suggestion(item: Any) -> Suggestion | None:
    if isinstance(item, str):
        return Suggestion(title=item.strip()) if item.strip() else None
    if not isinstance(item, dict):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    author = item.get("author")
    if not author and isinstance(item.get("authors"), list) and item["authors"]:
        author = item["authors"][0]
    reason = item.get("reason")
    return Suggestion(
        title=title.strip(),
        author=str(author).strip() if author else None,
        reason=str(reason).strip() if reason else None,
    )


def parse_suggestions(raw: str | None) -> list[Suggestion]:
    """Decode a loosely structured model reply; never raises, returns [] when nothing fits."""
    text = (raw or "").strip()
    if not text:
        return []
    fence = _FENCE_RE.search(text)
    if fence:
        text = fence.group(1).strip()

    for decode in _DECODERS:
        items = decode(text)
        if items is not None:
            suggestions = [s for s in (_to_suggestion(i) for i in items) if s is not None]
            logger.debug("Decoded %d suggestions with %s", len(suggestions), decode.__name__)
            return suggestions

    logger.warning("Could not parse LLM suggestions: %r", text[:200])
    return []


async def fetch_suggestions(
    ctx: RecommenderContext,
    books: list[Book],
    filters: RecommendationFilters,
    count: int,
    exclude_titles: Iterable[str] = (),
) -> list[Suggestion]:
    """Ask the model for *count* suggestions. ``LLMError`` propagates."""
    content = await ctx.llm.complete(
        build_system_prompt(books, filters, count),
        build_user_prompt(books, filters, exclude_titles),
    )
    return parse_suggestions(content)


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


async def _resolve(ctx: RecommenderContext, suggestion: Suggestion) -> Book | Skipped:
    existing = await ctx.store.find_by_title(suggestion.title)
    if existing is not None:
        return existing
    query = " ".join(p for p in (suggestion.title, suggestion.author) if p)
    hits = await ctx.catalog.search(query, limit=1)
    if not hits:
        return Skipped(suggestion.title, "no catalog match")
    return await ctx.store.upsert_by_identity(hits[0])


async def _enrich_one(
    ctx: RecommenderContext,
    suggestion: Suggestion,
    *,
    seeds: list[Book],
    filters: RecommendationFilters,
    profile: PreferenceProfile,
    excluded_titles: set[str],
) -> Recommendation | Skipped:
    if normalize_title(suggestion.title) in excluded_titles:
        return Skipped(suggestion.title, "excluded title")

    book = await _resolve(ctx, suggestion)
    if isinstance(book, Skipped):
        return book
    if book.normalized_title in excluded_titles:
        return Skipped(suggestion.title, f"resolved to excluded title {book.title!r}")

    seed_authors = {a for s in seeds for a in s.normalized_authors}
    shares_author = any(a in seed_authors for a in book.normalized_authors)
    if filters.author_preference == AuthorPreference.negative and shares_author:
        return Skipped(suggestion.title, "seed author")
    if filters.author_preference == AuthorPreference.positive and not shares_author:
        return Skipped(suggestion.title, "not by a seed author")

    if not passes_language_filter(book, filters.languages):
        return Skipped(suggestion.title, f"language {book.language!r}")

    result = score_candidate(book, profile, seeds, filters)
    if result.rejected or result.score < MIN_CONFIDENCE:
        return Skipped(suggestion.title, f"low confidence {result.score:.2f}")

    return Recommendation(
        book=book,
        confidence=result.score,
        reason=suggestion.reason or DEFAULT_REASON,
        breakdown=result.breakdown,
    )


async def enrich_suggestions(
    ctx: RecommenderContext,
    suggestions: list[Suggestion],
    seeds: list[Book],
    filters: RecommendationFilters,
    *,
    limit: int,
    exclude_titles: Iterable[str] = (),
) -> list[Recommendation]:
    """Resolve suggestions to catalog books, apply the exclusion rules and score them."""
    profile = analyze_preferences(seeds)
    excluded = {b.normalized_title for b in seeds} | {normalize_title(t) for t in exclude_titles}
    excluded.discard("")

    accepted: list[Recommendation] = []
    for suggestion in suggestions[: ctx.config.max_enrichment_attempts]:
        if len(accepted) >= limit:
            break
        outcome = await attempt(
            f"enrichment of {suggestion.title!r}",
            _enrich_one(
                ctx,
                suggestion,
                seeds=seeds,
                filters=filters,
                profile=profile,
                excluded_titles=excluded,
            ),
        )
        if isinstance(outcome, Skipped):
            logger.info("Dropped suggestion %s: %s", outcome.label, outcome.reason)
            continue
        excluded.add(outcome.book.normalized_title)
        accepted.append(outcome)

    accepted.sort(key=lambda r: r.confidence, reverse=True)
    return accepted


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def match_reason(confidence: float) -> str:
    return f"Similar to books in your collection ({round(confidence * 100)}% match)"


async def metadata_fallback(ctx: RecommenderContext, books: list[Book], *, limit: int) -> list[Recommendation]:
    recs = await recommend_by_metadata(ctx, books, limit=limit)
    for rec in recs:
        rec.reason = match_reason(rec.confidence)
    return recs


async def suggest_and_enrich(
    ctx: RecommenderContext,
    books: list[Book],
    *,
    limit: int = 5,
) -> list[Recommendation]:
    """Unfiltered LLM flow without a fallback; ``LLMError`` propagates."""
    if not books:
        return []
    filters = RecommendationFilters()
    suggestions = await fetch_suggestions(ctx, books, filters, limit)
    return await enrich_suggestions(ctx, suggestions, books, filters, limit=limit)


async def recommend_with_llm(
    ctx: RecommenderContext,
    books: list[Book],
    *,
    limit: int = 5,
) -> list[Recommendation]:
    """LLM suggestions with default filters; falls back to metadata search if the model call fails."""
    if not books:
        return []
    try:
        return await suggest_and_enrich(ctx, books, limit=limit)
    except LLMError:
        logger.warning("LLM recommendation failed, falling back to metadata", exc_info=True)
        return await metadata_fallback(ctx, books, limit=limit)


def seed_cache_ids(books: list[Book]) -> list[str]:
    return [b.id or b.normalized_title for b in books]


async def recommend_with_llm_and_filters(
    ctx: RecommenderContext,
    books: list[Book],
    filters: RecommendationFilters,
    *,
    limit: int = 5,
    exclude_titles: Iterable[str] = (),
) -> list[Recommendation]:
    """Filter-aware LLM flow. Raw suggestions are cached; ``LLMError`` propagates."""
    if not books:
        return []
    exclude_titles = list(exclude_titles)

    key = make_key(seed_cache_ids(books), filters)
    suggestions = ctx.cache.get(key)
    if suggestions is None:
        # Ask for twice as many so enough survive the filters.
        suggestions = await fetch_suggestions(ctx, books, filters, limit * 2, exclude_titles)
        if suggestions:
            ctx.cache.set(key, suggestions)
    else:
        logger.info("Using %d cached LLM suggestions", len(suggestions))

    return await enrich_suggestions(
        ctx, suggestions, books, filters, limit=limit, exclude_titles=exclude_titles,
    )
