"""
URL slug generation and unique slug allocation.

Slugs are derived from titles; collisions are resolved by appending
`-1`, `-2`, ... to the base slug. The lookup here is only a fast path:
the unique constraint on `articles.slug` is what guarantees uniqueness,
and the persister retries with `exclude` when an insert still collides.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..storage.models import Article

_STRIP_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SPACE_RE = re.compile(r"\s+")
_HYPHEN_RE = re.compile(r"-+")


def slugify(text: str, max_length: int = 100) -> str:
    """Convert text to URL-safe slug.

    Args:
        text: The text to slugify
        max_length: Maximum length of the result

    Returns:
        A lowercase, hyphenated slug, or "untitled" when nothing survives

    Examples:
        >>> slugify("Fed Holds Rates: What's Next?")
        'fed-holds-rates-whats-next'
    """
    slug = text.lower().strip()
    slug = _STRIP_RE.sub("", slug)
    slug = _SPACE_RE.sub("-", slug)
    slug = _HYPHEN_RE.sub("-", slug)
    slug = slug.strip("-")[:max_length].strip("-")
    return slug or "untitled"


def slug_candidates(base: str) -> Iterator[str]:
    """Yield `base`, `base-1`, `base-2`, ... without end."""
    yield base
    counter = 1
    while True:
        yield f"{base}-{counter}"
        counter += 1


class SlugAllocator:
    """Finds the first free slug for a title."""

    def __init__(self, session: Session, max_length: int = 100):
        self._session = session
        self._max_length = max_length

    def allocate(self, title: str, exclude: set[str] | None = None) -> str:
        """Return the first candidate slug not present in storage.

        Args:
            title: Title to derive the base slug from
            exclude: Slugs known to be taken even if not visible yet
                     (e.g. a concurrent insert that just collided)
        """
        exclude = exclude or set()
        base = slugify(title, self._max_length)
        for candidate in slug_candidates(base):
            if candidate in exclude:
                continue
            if not self._is_taken(candidate):
                return candidate
        raise AssertionError("unreachable")

    def _is_taken(self, slug: str) -> bool:
        return self._session.scalar(select(Article.id).where(Article.slug == slug).limit(1)) is not None
