"""
Content placement for managed page zones.

Two placement strategies live here:

- `ZonePlacementRefresher` rebuilds the homepage zones after a run. The
  whole placement set for every zone is swapped in one transaction, so a
  concurrent reader sees either the old or the new zones, never an empty one.
- `add_article_to_category_zones` is the incremental hook used after each
  persisted article: it inserts the article at the top of every enabled
  zone on the active category pages the article belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..config import HomepageConfig
from ..errors import ZoneNotFoundError
from ..logging_utils import log_event
from ..storage.models import Article, ContentPlacement, Page, PageZone

logger = logging.getLogger(__name__)


@dataclass
class ZoneRefreshResult:
    """Articles placed into one zone.

    Attributes:
        zone_slug: Zone identifier
        article_ids: Placed article ids in position order
        found: False when the zone does not exist on the page
    """
    zone_slug: str
    article_ids: list[int]
    found: bool = True


class ZonePlacementRefresher:
    """Rebuilds the homepage zones from fresh imports and recent articles."""

    def __init__(self, session: Session, homepage: HomepageConfig):
        self._session = session
        self._homepage = homepage

    def select_candidates(self, imported_ids: list[int]) -> list[int]:
        """Return up to `total_capacity` article ids for the zones.

        Imported ids come first in import order. The remainder is backfilled
        with the most recently published articles, skipping ids already
        chosen so that no article is counted twice.
        """
        limit = self._homepage.total_capacity
        candidates: list[int] = []
        for article_id in imported_ids:
            if article_id not in candidates:
                candidates.append(article_id)
        candidates = candidates[:limit]

        needed = limit - len(candidates)
        if needed > 0:
            stmt = select(Article.id).order_by(Article.published_at.desc(), Article.id.desc())
            if candidates:
                stmt = stmt.where(Article.id.not_in(candidates))
            candidates.extend(self._session.scalars(stmt.limit(needed)).all())
        return candidates

    def refresh(self, imported_ids: list[int]) -> list[ZoneRefreshResult]:
        """Replace the placements of every managed zone.

        Zones are filled in declared order from one shared cursor over the
        candidate list, so an article appears in at most one zone. A zone
        missing from the page is logged and skipped.
        """
        candidates = self.select_candidates(imported_ids)
        page_id = self._session.scalar(select(Page.id).where(Page.slug == self._homepage.page_slug))

        results: list[ZoneRefreshResult] = []
        cursor = 0
        try:
            for spec in self._homepage.zones:
                try:
                    zone = self._find_zone(page_id, spec.slug)
                except ZoneNotFoundError as exc:
                    logger.warning("%s, skipping", exc)
                    results.append(ZoneRefreshResult(zone_slug=spec.slug, article_ids=[], found=False))
                    continue

                chosen = candidates[cursor:cursor + spec.capacity]
                cursor += len(chosen)
                self._session.execute(delete(ContentPlacement).where(ContentPlacement.zone_id == zone.id))
                self._session.add_all(
                    ContentPlacement(
                        zone_id=zone.id,
                        article_id=article_id,
                        content_type="ARTICLE",
                        position=position,
                        is_pinned=False,
                    )
                    for position, article_id in enumerate(chosen)
                )
                results.append(ZoneRefreshResult(zone_slug=spec.slug, article_ids=list(chosen)))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        log_event(
            logger,
            "Homepage zones refreshed",
            page=self._homepage.page_slug,
            zones={r.zone_slug: len(r.article_ids) for r in results if r.found},
        )
        return results

    def _find_zone(self, page_id: int | None, zone_slug: str) -> PageZone:
        zone = None
        if page_id is not None:
            zone = self._session.scalar(
                select(PageZone).where(PageZone.page_id == page_id, PageZone.zone_slug == zone_slug)
            )
        if zone is None:
            raise ZoneNotFoundError(zone_slug, self._homepage.page_slug)
        return zone


def add_article_to_category_zones(session: Session, article_id: int, category_ids: list[int]) -> int:
    """Place a new article at position 0 of its category pages' zones.

    Existing placements in each zone shift down by one. Zones that already
    hold the article are left alone.

    Returns:
        Number of zones the article was added to
    """
    if not category_ids:
        return 0

    zones = session.scalars(
        select(PageZone)
        .join(Page, PageZone.page_id == Page.id)
        .where(
            Page.page_type == "CATEGORY",
            Page.is_active.is_(True),
            Page.category_id.in_(category_ids),
            PageZone.is_enabled.is_(True),
        )
    ).all()

    added = 0
    for zone in zones:
        already = session.scalar(
            select(ContentPlacement.id).where(
                ContentPlacement.zone_id == zone.id,
                ContentPlacement.article_id == article_id,
            )
        )
        if already is not None:
            continue
        session.execute(
            update(ContentPlacement)
            .where(ContentPlacement.zone_id == zone.id)
            .values(position=ContentPlacement.position + 1)
        )
        session.add(
            ContentPlacement(zone_id=zone.id, article_id=article_id, content_type="ARTICLE", position=0)
        )
        added += 1

    if added:
        session.commit()
        logger.info("Added article %s to %d category zones", article_id, added)
    return added
