from __future__ import annotations

import os
from dataclasses import dataclass

from ..config import env_flag


@dataclass(frozen=True)
class CatalogConfig:
    google_books_url: str = "https://www.googleapis.com/books/v1/volumes"
    open_library_url: str = "https://openlibrary.org/search.json"
    open_library_covers_url: str = "https://covers.openlibrary.org/b/id"
    google_books_api_key: str = os.getenv("GOOGLE_BOOKS_API_KEY", "")
    use_open_library_fallback: bool = env_flag("USE_OPEN_LIBRARY_FALLBACK", True)
    timeout: float = 10.0


DEFAULT_CATALOG_CONFIG = CatalogConfig()
