from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    requests = [e for e in events if e["type"] == "recommendation"]
    scans = [e for e in events if e["type"] == "scan"]
    total = len(requests)

    # Average response time
    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Average result count
    returned = [r.get("results_returned", 0) for r in requests]
    avg_results = round(sum(returned) / total, 2) if total else 0.0
    empty = sum(1 for n in returned if n == 0)

    # Strategy usage
    method_usage = dict(Counter(r.get("method", "unknown") for r in requests))

    # Requested genres and languages
    genre_counter: Counter[str] = Counter()
    language_counter: Counter[str] = Counter()
    for r in requests:
        for g in r.get("genres", []) or []:
            genre_counter[g.lower()] += 1
        for lang in r.get("languages", []) or []:
            language_counter[lang.lower()] += 1
    top_genres = [{"name": n, "count": c} for n, c in genre_counter.most_common(10)]
    top_languages = [{"name": n, "count": c} for n, c in language_counter.most_common(10)]

    author_preferences = dict(Counter(
        r["author_preference"] for r in requests if r.get("author_preference")
    ))

    # Cache stats (filtered flow only)
    cached = [r for r in requests if "cache_hit" in r]
    cache_hits = sum(1 for r in cached if r["cache_hit"])
    cache_misses = len(cached) - cache_hits

    fallbacks = sum(1 for r in requests if r.get("fallback"))

    return {
        "total_requests": total,
        "total_scans": len(scans),
        "avg_response_time_ms": avg_time,
        "avg_results_returned": avg_results,
        "empty_result_rate": _rate(empty, total),
        "method_usage": method_usage,
        "top_genres": top_genres,
        "top_languages": top_languages,
        "author_preference_usage": author_preferences,
        "fallback_rate": _rate(fallbacks, total),
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": _rate(cache_hits, len(cached)),
        },
    }
