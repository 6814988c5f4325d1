from __future__ import annotations


class ShelfscanError(Exception):
    """Base class for errors raised by the recommendation service."""


class StoreError(ShelfscanError):
    """The book store could not be read or written."""


class CatalogError(ShelfscanError):
    """A catalog lookup failed at the HTTP or decoding level."""


class LLMError(ShelfscanError):
    """The language model call itself failed or the client is not configured."""
