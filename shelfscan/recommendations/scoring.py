from __future__ import annotations

from dataclasses import dataclass, field

from .models import AuthorPreference, Book, RecommendationFilters, ScoreBreakdown
from .preferences import PreferenceProfile

BASE_SCORE = 0.5
LANGUAGE_MATCH_BOOST = 0.3
DOMINANT_LANGUAGE_THRESHOLD = 0.7
LANGUAGE_SHARE_WEIGHT = 0.15
GENRE_MATCH_BOOST = 0.2
GENRE_BOOST_CAP = 0.4
GENRE_MISS_PENALTY = -0.1
AUTHOR_POSITIVE_BOOST = 0.2
AUTHOR_NEGATIVE_PENALTY = -0.3
RECENCY_NEAR_BOOST = 0.1
RECENCY_FAR_BOOST = 0.05


@dataclass
class ScoreResult:
    score: float
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    rejected: bool = False


def _candidate_language(book: Book) -> str | None:
    return book.language.strip().lower() if book.language and book.language.strip() else None


def passes_language_filter(book: Book, languages: list[str]) -> bool:
    """Hard language constraint; books without a language never pass a non-empty filter."""
    if not languages:
        return True
    return _candidate_language(book) in {lang.lower() for lang in languages}


def _language_layer(book: Book, profile: PreferenceProfile, filters: RecommendationFilters) -> float:
    language = _candidate_language(book)
    if filters.languages:
        return LANGUAGE_MATCH_BOOST
    if (
        profile.language_confidence > DOMINANT_LANGUAGE_THRESHOLD
        and language is not None
        and language == profile.dominant_language
    ):
        return LANGUAGE_MATCH_BOOST
    if language is not None:
        return LANGUAGE_SHARE_WEIGHT * profile.language_distribution.get(language, 0.0)
    return 0.0


def _genre_layer(book: Book, profile: PreferenceProfile, filters: RecommendationFilters) -> float:
    candidate_genres = {g.strip().lower() for g in book.genre + book.categories if g.strip()}
    if filters.genres:
        wanted = {g.lower() for g in filters.genres}
        matches = len(candidate_genres & wanted)
        if not matches:
            return GENRE_MISS_PENALTY
        return min(GENRE_MATCH_BOOST * matches, GENRE_BOOST_CAP)
    weighted = sum(
        profile.genre_weights[g] * GENRE_MATCH_BOOST
        for g in candidate_genres
        if g in profile.genre_weights
    )
    return min(weighted, GENRE_BOOST_CAP)


def _author_layer(book: Book, seed_books: list[Book], filters: RecommendationFilters) -> float:
    seed_authors = {a for b in seed_books for a in b.normalized_authors}
    shares_author = any(a in seed_authors for a in book.normalized_authors)
    if filters.author_preference == AuthorPreference.positive and shares_author:
        return AUTHOR_POSITIVE_BOOST
    if filters.author_preference == AuthorPreference.negative and shares_author:
        return AUTHOR_NEGATIVE_PENALTY
    return 0.0


def _recency_layer(book: Book, profile: PreferenceProfile) -> float:
    if not book.publication_year or profile.avg_year is None:
        return 0.0
    diff = abs(book.publication_year - profile.avg_year)
    if diff <= 5:
        return RECENCY_NEAR_BOOST
    if diff <= 10:
        return RECENCY_FAR_BOOST
    return 0.0


def score_candidate(
    book: Book,
    profile: PreferenceProfile,
    seed_books: list[Book],
    filters: RecommendationFilters,
) -> ScoreResult:
    """Layered confidence in [0, 1]. A language-filter miss rejects outright."""
    if not passes_language_filter(book, filters.languages):
        return ScoreResult(score=0.0, rejected=True)

    breakdown = ScoreBreakdown(
        language=_language_layer(book, profile, filters),
        genre=_genre_layer(book, profile, filters),
        author=_author_layer(book, seed_books, filters),
        other=_recency_layer(book, profile),
    )
    total = BASE_SCORE + breakdown.language + breakdown.genre + breakdown.author + breakdown.other
    return ScoreResult(score=max(0.0, min(1.0, total)), breakdown=breakdown)
