from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException

from .analytics.aggregator import compute_analytics
from .catalog.client import BookCatalogClient
from .embeddings.encoder import SentenceTransformerEmbedder
from .errors import LLMError
from .llm.groq_client import GroqChatModel
from .recommendations.cache import RecommendationCache
from .recommendations.config import DEFAULT_RECOMMENDATION_CONFIG
from .recommendations.data_store import InMemoryBookStore
from .recommendations.engine import RecommendationEngine
from .recommendations.models import (
    Book,
    FilteredRecommendationRequest,
    FilterOptions,
    MetadataRecommendationRequest,
    RecommendationFilters,
    RecommendationResponse,
    ScanRequest,
    ScanResponse,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Shelfscan Book Recommendation API", version="1.0.0")

# Vectors are internal; keep them out of every response body.
_NO_EMBEDDING = {"embedding"}
_RECS_NO_EMBEDDING = {"recommendations": {"__all__": {"book": _NO_EMBEDDING}}}
_SCAN_NO_EMBEDDING = {
    "seeds": {"__all__": _NO_EMBEDDING},
    "recommendations": {"__all__": {"book": _NO_EMBEDDING}},
}

_engine: RecommendationEngine | None = None


def build_engine() -> RecommendationEngine:
    config = DEFAULT_RECOMMENDATION_CONFIG
    embedder = SentenceTransformerEmbedder()
    return RecommendationEngine(
        store=InMemoryBookStore(embedder, force_reembed=config.force_reembed),
        catalog=BookCatalogClient(),
        embedder=embedder,
        llm_client=GroqChatModel(),
        cache=RecommendationCache(ttl_seconds=config.cache_ttl_seconds, enabled=config.cache_enabled),
        settings=config,
    )


def get_engine() -> RecommendationEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
        logger.info("Recommendation engine ready")
    return _engine


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/scan/titles", response_model=ScanResponse, response_model_exclude=_SCAN_NO_EMBEDDING)
async def scan_titles(
    body: ScanRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> ScanResponse:
    seeds = await engine.replace_seed_set(body.candidates)
    recs, stats = await engine.recommend_for_scan(
        seeds,
        limit=body.limit,
        scanned_titles=[c.title for c in body.candidates],
    )
    return ScanResponse(seeds=seeds, recommendations=recs, stats=stats)


@app.get("/books/seeds", response_model=list[Book], response_model_exclude={"__all__": _NO_EMBEDDING})
async def seeds(engine: RecommendationEngine = Depends(get_engine)) -> list[Book]:
    return await engine.current_seeds()


@app.get("/books/filter-options", response_model=FilterOptions)
async def filter_options(engine: RecommendationEngine = Depends(get_engine)) -> FilterOptions:
    return engine.get_available_filter_options(await engine.current_seeds())


@app.post(
    "/recommendations/metadata",
    response_model=RecommendationResponse,
    response_model_exclude=_RECS_NO_EMBEDDING,
)
async def metadata_recommendations(
    body: MetadataRecommendationRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationResponse:
    recs = await engine.recommend_by_metadata(await engine.current_seeds(), limit=body.limit)
    return RecommendationResponse(recommendations=recs)


@app.post(
    "/recommendations/filtered",
    response_model=RecommendationResponse,
    response_model_exclude=_RECS_NO_EMBEDDING,
)
async def filtered_recommendations(
    body: FilteredRecommendationRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationResponse:
    filters = RecommendationFilters(
        author_preference=body.author_preference,
        languages=body.languages,
        genres=body.genres,
    )
    try:
        recs = await engine.recommend_with_llm_and_filters(
            await engine.current_seeds(),
            filters,
            limit=body.limit,
            exclude_titles=body.exclude_titles,
        )
    except LLMError as exc:
        logger.warning("Filtered recommendations failed", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Recommendation model unavailable: {exc}") from exc
    return RecommendationResponse(recommendations=recs, filters=filters)


# ── Operational endpoints ────────────────────────────────────────────────


@app.get("/cache/stats")
def cache_stats(engine: RecommendationEngine = Depends(get_engine)) -> dict:
    return engine.cache.stats()


@app.delete("/cache")
def clear_cache(engine: RecommendationEngine = Depends(get_engine)) -> dict:
    removed = engine.clear_cache()
    return {"status": "cleared", "removed": removed}


@app.get("/analytics")
def analytics(engine: RecommendationEngine = Depends(get_engine)) -> dict:
    return compute_analytics(engine.events.events())
