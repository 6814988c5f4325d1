from __future__ import annotations

from dataclasses import dataclass

from ..config import env_flag, env_int

# Metadata match weights. Hand-tuned; treat as a tuning surface.
GENRE_MATCH_WEIGHT = 3.0
CATEGORY_MATCH_WEIGHT = 2.0
PUBLISHER_MATCH_WEIGHT = 1.0
YEAR_NEAR_WEIGHT = 1.0
YEAR_FAR_WEIGHT = 0.5
NEW_SERIES_WEIGHT = 1.0
METADATA_SCORE_CAP = 20.0

MAX_SUBJECT_QUERIES = 3
SUBJECT_SEARCH_LIMIT = 20
BACKFILL_CONFIDENCE = 0.4
MIN_CONFIDENCE = 0.2


@dataclass(frozen=True)
class RecommendationConfig:
    cache_ttl_seconds: int = env_int("RECOMMENDATION_CACHE_TTL", 3600)
    cache_enabled: bool = env_flag("RECOMMENDATION_CACHE_ENABLED", True)
    max_enrichment_attempts: int = env_int("LLM_MAX_ENRICHMENT_ATTEMPTS", 15)
    use_llm_recommendations: bool = env_flag("USE_LLM_RECOMMENDATIONS", True)
    max_scan_candidates: int = env_int("MAX_SCAN_CANDIDATES", 10)
    force_reembed: bool = env_flag("FORCE_REEMBED", False)


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
