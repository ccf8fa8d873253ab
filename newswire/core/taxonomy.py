"""
Category and tag resolution.

Both are get-or-create by slug. When two runs race to create the same
row, the loser's commit fails on the unique slug constraint; it rolls back
and reads the winner's row instead. New rows are committed as soon as they
are created, independently of the article that references them.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..storage.models import Category, Tag

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "bg-blue-600"

# slug -> (display name, color)
CATEGORY_TABLE: dict[str, tuple[str, str]] = {
    "markets": ("Markets", "bg-blue-600"),
    "tech": ("Tech", "bg-purple-600"),
    "crypto": ("Crypto", "bg-orange-500"),
    "economy": ("Economy", "bg-green-600"),
    "opinion": ("Opinion", "bg-gray-600"),
    "us-markets": ("US Markets", "bg-blue-700"),
    "forex": ("Forex", "bg-teal-600"),
    "bonds": ("Bonds", "bg-indigo-600"),
    "etf": ("ETF", "bg-cyan-600"),
    "finance": ("Finance", "bg-emerald-600"),
    "health-science": ("Health & Science", "bg-rose-600"),
}

_TAG_SPACE_RE = re.compile(r"\s+")
_TAG_STRIP_RE = re.compile(r"[^\w-]")


def category_display(slug: str) -> tuple[str, str]:
    """Return (name, color) for a category slug.

    Unknown slugs get a title-cased name with hyphens turned into spaces
    and the default color.
    """
    if slug in CATEGORY_TABLE:
        return CATEGORY_TABLE[slug]
    name = slug.replace("-", " ")
    return name[:1].upper() + name[1:], DEFAULT_COLOR


def tag_slug(keyword: str) -> str:
    """Derive a tag slug from a keyword.

    Examples:
        >>> tag_slug("Wall Street")
        'wall-street'
        >>> tag_slug("S&P 500")
        'sp-500'
    """
    slug = _TAG_SPACE_RE.sub("-", keyword.lower())
    return _TAG_STRIP_RE.sub("", slug)


class TaxonomyResolver:
    """Get-or-create access to categories and tags."""

    def __init__(self, session: Session, max_tags: int = 5):
        self._session = session
        self._max_tags = max_tags

    def resolve_category(self, slug: str) -> int:
        """Return the id of the category with this slug, creating it if needed."""
        existing = self._session.scalar(select(Category.id).where(Category.slug == slug))
        if existing is not None:
            return existing

        name, color = category_display(slug)
        category = Category(slug=slug, name=name, color=color)
        if not self._insert(category):
            return self._session.scalar(select(Category.id).where(Category.slug == slug))
        logger.info("Created category %s", slug)
        return category.id

    def resolve_tags(self, keywords: list[str] | None) -> list[int]:
        """Return tag ids for the first `max_tags` keywords.

        Keywords that normalize to an empty slug are skipped. Repeated slugs
        resolve to a single id.
        """
        if not keywords:
            return []

        tag_ids: list[int] = []
        for keyword in keywords[: self._max_tags]:
            slug = tag_slug(keyword)
            if not slug:
                continue
            tag_id = self._session.scalar(select(Tag.id).where(Tag.slug == slug))
            if tag_id is None:
                tag = Tag(slug=slug, name=keyword)
                if self._insert(tag):
                    tag_id = tag.id
                else:
                    tag_id = self._session.scalar(select(Tag.id).where(Tag.slug == slug))
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
        return tag_ids

    def _insert(self, row: Category | Tag) -> bool:
        self._session.add(row)
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            logger.info("Concurrent create of %r, reusing existing row", row)
            return False
        return True
