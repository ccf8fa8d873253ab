"""Breaking news singleton rotation."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.types import PersistedArticle
from ..storage.models import Article, BreakingNews

logger = logging.getLogger(__name__)


def article_link(slug: str) -> str:
    return f"/article/{slug}"


def pick_candidate(session: Session, imported: list[PersistedArticle]) -> PersistedArticle | None:
    """First article imported by this run, else the most recently published one."""
    if imported:
        return imported[0]
    row = session.execute(
        select(Article.id, Article.slug, Article.title)
        .order_by(Article.published_at.desc(), Article.id.desc())
        .limit(1)
    ).first()
    if row is None:
        return None
    return PersistedArticle(id=row.id, slug=row.slug, title=row.title)


class BreakingNewsRotator:
    """Keeps exactly one active breaking-news row."""

    def __init__(self, session: Session):
        self._session = session

    def rotate(self, candidate: PersistedArticle | None) -> BreakingNews | None:
        """Deactivate every active row and insert one for `candidate`.

        Both steps are committed together; on failure nothing changes.
        Does nothing when there is no candidate.
        """
        if candidate is None:
            logger.info("No breaking news candidate, keeping current item")
            return None
        try:
            self._session.execute(
                update(BreakingNews).where(BreakingNews.is_active.is_(True)).values(is_active=False)
            )
            item = BreakingNews(headline=candidate.title, url=article_link(candidate.slug), is_active=True)
            self._session.add(item)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("Breaking news updated: %s", candidate.title)
        return item
