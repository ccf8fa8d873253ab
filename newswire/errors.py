"""Exception types raised inside the ingestion pipeline."""

from __future__ import annotations


class NewswireError(Exception):
    """Base class for pipeline errors."""


class BatchSetupError(NewswireError):
    """Raised when a run cannot start (no authors, missing keys, fetch failure).

    This is the only error that aborts a whole batch.
    """


class SourceError(BatchSetupError):
    """Raised by a source adapter when the upstream API call fails."""


class DuplicateArticleError(NewswireError):
    """Raised when the store already holds an article with the same externalId."""

    def __init__(self, external_id: str):
        super().__init__(f"Article {external_id} already imported")
        self.external_id = external_id


class PersistenceError(NewswireError):
    """Raised when an article cannot be written to the store."""


class ZoneNotFoundError(NewswireError):
    """Raised when a managed zone is missing from its page."""

    def __init__(self, zone_slug: str, page_slug: str):
        super().__init__(f"Zone not found: {zone_slug} on {page_slug}")
        self.zone_slug = zone_slug
        self.page_slug = page_slug


class InvalidCategoryError(NewswireError, ValueError):
    """Raised when a category job is asked for an unsupported category."""

    def __init__(self, category: str | None, valid: list[str]):
        super().__init__(f"Invalid category. Valid categories: {', '.join(valid)}")
        self.category = category
        self.valid = valid


class EmptyStoreError(NewswireError):
    """Raised when the homepage refresh finds no articles at all."""
