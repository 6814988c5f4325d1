from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from typing import Any

from ..analytics.store import EventLog
from ..errors import LLMError
from ..ports import BookRepository, CatalogLookup, ChatModel, Embedder
from . import embedding, llm, metadata
from .cache import RecommendationCache
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .content_filter import DEFAULT_CONTENT_FILTER_SETTINGS, ContentFilterSettings
from .context import RecommenderContext
from .models import (
    Book,
    FilterOptions,
    Recommendation,
    RecommendationFilters,
    ScanCandidate,
    ScanStats,
    normalize_title,
)
from .outcomes import Skipped, attempt, survivors

logger = logging.getLogger(__name__)

MAX_SCANNED_TITLE_LOOKUPS = 5
SCANNED_TITLES_REASON = "Based on your scanned titles"


class RecommendationEngine:
    """Entry point for every recommendation flow.

    Holds the collaborators for one process and the ids of the latest seed
    set. Every method returns ``[]`` for an empty seed set without touching
    any collaborator.
    """

    def __init__(
        self,
        store: BookRepository,
        catalog: CatalogLookup,
        embedder: Embedder,
        llm_client: ChatModel,
        cache: RecommendationCache,
        settings: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
        content_filter: ContentFilterSettings = DEFAULT_CONTENT_FILTER_SETTINGS,
        events: EventLog | None = None,
    ) -> None:
        self.embedder = embedder
        self.events = events if events is not None else EventLog()
        self.ctx = RecommenderContext(
            store=store,
            catalog=catalog,
            llm=llm_client,
            cache=cache,
            config=settings,
            content_filter=content_filter,
        )
        self._seed_ids: list[str] = []

    @property
    def store(self) -> BookRepository:
        return self.ctx.store

    @property
    def cache(self) -> RecommendationCache:
        return self.ctx.cache

    @property
    def settings(self) -> RecommendationConfig:
        return self.ctx.config

    def _record(self, method: str, started: float, results: list[Recommendation], **extra: Any) -> None:
        self.events.record("recommendation", {
            "method": method,
            "results_returned": len(results),
            "response_time_ms": round((time.time() - started) * 1000, 1),
            **extra,
        })

    # ── Strategies ──────────────────────────────────────────────────────

    async def recommend_by_query_embedding(
        self,
        query: Sequence[float],
        limit: int = 12,
        exclude_ids: Iterable[str] = (),
        include_scores: bool = False,
    ) -> list[Recommendation]:
        started = time.time()
        recs = await embedding.recommend_by_query_embedding(
            self.ctx, query, limit=limit, exclude_ids=exclude_ids, include_scores=include_scores,
        )
        self._record("embedding", started, recs)
        return recs

    async def recommend_from_seed_books(self, books: list[Book], limit: int = 12) -> list[Recommendation]:
        if not books:
            return []
        started = time.time()
        recs = await embedding.recommend_from_seed_books(self.ctx, books, limit=limit)
        self._record("seed_embedding", started, recs, seed_count=len(books))
        return recs

    async def recommend_by_metadata(self, books: list[Book], limit: int = 12) -> list[Recommendation]:
        if not books:
            return []
        started = time.time()
        recs = await metadata.recommend_by_metadata(self.ctx, books, limit=limit)
        self._record("metadata", started, recs, seed_count=len(books))
        return recs

    async def recommend_with_llm(self, books: list[Book], limit: int = 5) -> list[Recommendation]:
        if not books:
            return []
        started = time.time()
        recs = await llm.recommend_with_llm(self.ctx, books, limit=limit)
        self._record("llm", started, recs, seed_count=len(books))
        return recs

    async def recommend_with_llm_and_filters(
        self,
        books: list[Book],
        filters: RecommendationFilters | dict | None = None,
        limit: int = 5,
        exclude_titles: Iterable[str] = (),
    ) -> list[Recommendation]:
        """Filtered LLM flow. Raises ``ValidationError`` for bad filters and ``LLMError`` when the model fails."""
        if filters is None:
            filters = RecommendationFilters()
        elif not isinstance(filters, RecommendationFilters):
            filters = RecommendationFilters.model_validate(filters)
        if not books:
            return []

        started = time.time()
        hits_before = self.cache.stats()["hits"]
        recs = await llm.recommend_with_llm_and_filters(
            self.ctx, books, filters, limit=limit, exclude_titles=exclude_titles,
        )
        self._record(
            "llm_filtered",
            started,
            recs,
            seed_count=len(books),
            cache_hit=self.cache.stats()["hits"] > hits_before,
            author_preference=filters.author_preference.value,
            languages=list(filters.languages),
            genres=list(filters.genres),
        )
        return recs

    # ── Filters & cache ─────────────────────────────────────────────────

    def get_available_filter_options(self, books: list[Book]) -> FilterOptions:
        languages = {b.language for b in books if b.language}
        genres = {g for b in books for g in b.subjects}
        authors = {a for b in books for a in b.authors}
        return FilterOptions(
            languages=sorted(languages),
            genres=sorted(genres),
            authors=sorted(authors),
        )

    def clear_cache(self, seed_ids: Iterable[str] | None = None) -> int:
        """Drop entries for one seed set, or everything when *seed_ids* is None."""
        if seed_ids is None:
            size = len(self.cache)
            self.cache.clear()
            logger.info("Cleared recommendation cache (%d entries)", size)
            return size
        removed = self.cache.invalidate_seeds(seed_ids)
        logger.info("Invalidated %d cache entries for previous seed set", removed)
        return removed

    # ── Scan pipeline ───────────────────────────────────────────────────

    async def _resolve_candidate(self, candidate: ScanCandidate) -> Book | Skipped:
        query = " ".join(p for p in (candidate.title, candidate.author) if p)
        hits = await self.ctx.catalog.search(query, limit=1)
        if not hits:
            return Skipped(candidate.title, "no catalog match")
        return await self.store.upsert_by_identity(hits[0])

    async def replace_seed_set(self, candidates: list[ScanCandidate]) -> list[Book]:
        """Swap the stored seed set for the books resolved from a new scan."""
        removed = await self.store.delete_all()
        logger.info("Cleared %d stored books before new scan", len(removed))
        if self._seed_ids:
            self.clear_cache(self._seed_ids)
        self._seed_ids = []

        unique: dict[str, ScanCandidate] = {}
        for candidate in candidates:
            key = normalize_title(candidate.title)
            if key and key not in unique:
                unique[key] = candidate

        outcomes = []
        for candidate in list(unique.values())[: self.settings.max_scan_candidates]:
            outcomes.append(await attempt(
                f"lookup of {candidate.title!r}", self._resolve_candidate(candidate),
            ))

        seeds: list[Book] = []
        seen_ids: set[str] = set()
        for book in survivors(outcomes):
            if book.id and book.id not in seen_ids:
                seen_ids.add(book.id)
                seeds.append(book)

        self._seed_ids = [b.id for b in seeds]
        self.events.record("scan", {
            "candidates": len(candidates),
            "resolved": len(seeds),
        })
        logger.info("Resolved %d of %d scanned candidates", len(seeds), len(unique))
        return seeds

    async def current_seeds(self) -> list[Book]:
        if not self._seed_ids:
            return []
        return await self.store.get_many(self._seed_ids)

    async def _from_scanned_titles(self, titles: list[str], limit: int) -> list[Recommendation]:
        titles = [t for t in titles if normalize_title(t)]
        if not titles:
            return []

        found: list[Book] = []
        missing: list[str] = []
        for title in titles:
            book = await self.store.find_by_title(title)
            if book is None:
                missing.append(title)
            elif all(b.id != book.id for b in found):
                found.append(book)

        for title in missing[:MAX_SCANNED_TITLE_LOOKUPS]:
            book = await attempt(
                f"lookup of scanned title {title!r}",
                self._resolve_candidate(ScanCandidate(title=title)),
            )
            if not isinstance(book, Skipped):
                found.append(book)

        if found:
            return await metadata.recommend_by_metadata(self.ctx, found, limit=limit)

        query = await self.embedder.embed(f"Books similar to: {', '.join(titles)}")
        return await embedding.recommend_by_query_embedding(self.ctx, query, limit=limit)

    async def recommend_from_scanned_titles(self, titles: list[str], limit: int = 12) -> list[Recommendation]:
        """Recommend from raw scanned titles, resolving what it can through the store and catalog."""
        started = time.time()
        recs = await self._from_scanned_titles(titles, limit)
        self._record("scanned_titles", started, recs, title_count=len(titles))
        return recs

    async def recommend_for_scan(
        self,
        books: list[Book],
        limit: int = 5,
        scanned_titles: list[str] | None = None,
    ) -> tuple[list[Recommendation], ScanStats]:
        """Recommendations for a fresh scan, with which method produced them."""
        started = time.time()
        recs: list[Recommendation] = []
        method = "llm" if self.settings.use_llm_recommendations else "metadata"

        if books and self.settings.use_llm_recommendations:
            try:
                recs = await llm.suggest_and_enrich(self.ctx, books, limit=limit)
            except LLMError:
                logger.warning("LLM recommendation failed, falling back to metadata", exc_info=True)
                method = "metadata_fallback"
                recs = await llm.metadata_fallback(self.ctx, books, limit=limit)
        elif books:
            recs = await llm.metadata_fallback(self.ctx, books, limit=limit)
        elif scanned_titles:
            method = "scanned_titles"
            recs = await self._from_scanned_titles(scanned_titles, limit)
            for rec in recs:
                rec.reason = SCANNED_TITLES_REASON

        if method != "llm":
            recs = [r for r in recs if not self.ctx.is_restricted(r.book)]
        recs = recs[:limit]

        self._record(
            f"scan_{method}",
            started,
            recs,
            seed_count=len(books),
            fallback=method == "metadata_fallback",
        )
        return recs, ScanStats(method=method, total_requested=limit, total_found=len(recs))
