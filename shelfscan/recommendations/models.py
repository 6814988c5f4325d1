from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_LANGUAGE_FILTERS = 4


def normalize_title(title: str | None) -> str:
    return str(title or "").strip().lower()


class SeriesInfo(BaseModel):
    name: str | None = None
    number: int | None = None


class Book(BaseModel):
    """Canonical book shape shared by seeds, catalog hits, LLM suggestions and stored records."""

    model_config = ConfigDict(validate_assignment=True)

    id: str | None = None
    title: str = Field(..., min_length=1)
    authors: list[str] = Field(default_factory=list)
    genre: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    series: SeriesInfo | None = None
    publication_year: int | None = None
    publisher: str | None = None
    page_count: int | None = None
    isbn10: str | None = None
    isbn13: str | None = None
    language: str | None = None
    description: str = ""
    subtitle: str | None = None
    thumbnail: str | None = None
    maturity_rating: str | None = None
    main_category: str | None = None
    embedding: list[float] = Field(default_factory=list)
    source: str = "openlibrary"

    @field_validator("authors", "genre", "categories", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(v) for v in value if v is not None and str(v).strip()]

    @field_validator("embedding", mode="before")
    @classmethod
    def _coerce_embedding(cls, value):
        if value is None:
            return []
        return [float(v) for v in value]

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value):
        return value or ""

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    @property
    def normalized_authors(self) -> list[str]:
        return [a.strip().lower() for a in self.authors if a.strip()]

    @property
    def subjects(self) -> list[str]:
        """Genres when present, otherwise catalog categories."""
        return self.genre or self.categories

    def identity_key(self) -> str:
        return self.isbn13 or self.isbn10 or self.title

    def embedding_text(self) -> str:
        parts = [
            self.title,
            ", ".join(self.authors),
            " ".join(self.genre),
            " ".join(self.categories),
            self.description,
            self.series.name if self.series and self.series.name else "",
            self.publisher or "",
            str(self.publication_year) if self.publication_year else "",
        ]
        return " ".join(p for p in parts if p)


class AuthorPreference(str, Enum):
    positive = "positive"
    negative = "negative"
    neutral = "neutral"


class RecommendationFilters(BaseModel):
    author_preference: AuthorPreference = AuthorPreference.negative
    languages: list[str] = Field(default_factory=list, max_length=MAX_LANGUAGE_FILTERS)
    genres: list[str] = Field(default_factory=list)

    @field_validator("languages", "genres", mode="before")
    @classmethod
    def _drop_blank(cls, value):
        if value is None:
            return []
        return [str(v).strip() for v in value if v is not None and str(v).strip()]

    def canonical(self) -> dict:
        return {
            "authorPreference": self.author_preference.value,
            "languages": sorted(lang.lower() for lang in self.languages),
            "genres": sorted(g.lower() for g in self.genres),
        }


class ScoreBreakdown(BaseModel):
    language: float = 0.0
    genre: float = 0.0
    author: float = 0.0
    other: float = 0.0


class Recommendation(BaseModel):
    book: Book
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str | None = None
    breakdown: ScoreBreakdown | None = None


class Suggestion(BaseModel):
    """A bare title/author pair proposed by the language model, before enrichment."""

    title: str
    author: str | None = None
    reason: str | None = None


# ── API bodies ──────────────────────────────────────────────────────────


class ScanCandidate(BaseModel):
    title: str = Field(..., min_length=1)
    author: str | None = None


class ScanRequest(BaseModel):
    candidates: list[ScanCandidate] = Field(default_factory=list)
    limit: int = Field(default=5, ge=1, le=50)


class ScanStats(BaseModel):
    method: str
    total_requested: int
    total_found: int


class ScanResponse(BaseModel):
    seeds: list[Book]
    recommendations: list[Recommendation]
    stats: ScanStats


class MetadataRecommendationRequest(BaseModel):
    limit: int = Field(default=12, ge=1, le=50)


class FilteredRecommendationRequest(RecommendationFilters):
    limit: int = Field(default=5, ge=1, le=25)
    exclude_titles: list[str] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    recommendations: list[Recommendation]
    filters: RecommendationFilters | None = None


class FilterOptions(BaseModel):
    languages: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
