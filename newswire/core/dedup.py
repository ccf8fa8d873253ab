"""
Article deduplication against the content store.

An article is identified by its externalId, built from the source name and
the source's native article id. The gate runs before any enrichment so that
duplicates never reach the AI rewriter.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..storage.models import Article


def build_external_id(source: str, native_id: str | int) -> str:
    """Return the idempotency key for a source article.

    Examples:
        >>> build_external_id("fiscalwire", 42)
        'fiscalwire-42'
    """
    return f"{source.strip().lower()}-{str(native_id).strip()}"


class DedupGate:
    """Existence check for already-ingested articles."""

    def __init__(self, session: Session):
        self._session = session

    def exists(self, external_id: str) -> bool:
        """Check whether an article with this externalId is already stored.

        Args:
            external_id: Key built by `build_external_id`

        Returns:
            True if the store already holds the article
        """
        found = self._session.scalar(
            select(Article.id).where(Article.external_id == external_id).limit(1)
        )
        return found is not None
