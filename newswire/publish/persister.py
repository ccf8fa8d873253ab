"""
Article persistence.

An article is written in a single commit together with its category and
tag links and, when the source or the analyzer supplied a signal, its
analysis record.
The dedup and slug lookups done beforehand are fast paths only; the unique
constraints on `articles.external_id` and `articles.slug` decide. When an
insert collides, the persister rolls back and checks which constraint
fired: an existing externalId means another run imported the article first,
anything else is treated as a slug collision and retried with the next
free suffix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import PipelineConfig
from ..core.dedup import DedupGate
from ..core.enrichment import estimate_read_time, extract_tickers
from ..core.slugs import SlugAllocator
from ..core.taxonomy import TaxonomyResolver
from ..core.types import EnrichedContent, NormalizedArticle, PersistedArticle
from ..errors import DuplicateArticleError, PersistenceError
from ..storage.models import Article, ArticleAnalysis, Category, Tag
from .placement import add_article_to_category_zones

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "markets"


@dataclass
class CategoryLinks:
    """Resolved category ids for one article."""
    primary_id: int | None = None
    markets_id: int | None = None
    business_id: int | None = None
    all_ids: list[int] = field(default_factory=list)


class ArticlePersister:
    """Writes enriched articles to the content store."""

    def __init__(self, session: Session, cfg: PipelineConfig | None = None):
        self._session = session
        self.cfg = cfg or PipelineConfig()
        self._taxonomy = TaxonomyResolver(session, max_tags=self.cfg.max_tags)
        self._slugs = SlugAllocator(session, max_length=self.cfg.slug_max_length)
        self._dedup = DedupGate(session)

    def persist(
        self,
        article: NormalizedArticle,
        enriched: EnrichedContent,
        author_id: int | None,
    ) -> PersistedArticle:
        """Create the article row and its links.

        Raises:
            DuplicateArticleError: A concurrent run stored the same externalId
            PersistenceError: No free slug after `slug_retry_limit` attempts
        """
        links = self.resolve_categories(article)
        tag_ids = self._taxonomy.resolve_tags(enriched.keywords)

        taken: set[str] = set()
        last_error: IntegrityError | None = None
        for attempt in range(1, self.cfg.slug_retry_limit + 1):
            slug = self._slugs.allocate(enriched.title, exclude=taken)
            row = self._build_row(article, enriched, author_id, slug, links, tag_ids)
            self._session.add(row)
            try:
                self._session.commit()
            except IntegrityError as exc:
                self._session.rollback()
                if self._dedup.exists(article.external_id):
                    raise DuplicateArticleError(article.external_id) from exc
                logger.warning("Slug %s collided on attempt %d, retrying", slug, attempt)
                taken.add(slug)
                last_error = exc
                continue

            persisted = PersistedArticle(id=row.id, slug=row.slug, title=row.title)
            self._place_in_category_pages(persisted.id, links.all_ids)
            return persisted

        raise PersistenceError(
            f"Could not store article after {self.cfg.slug_retry_limit} attempts"
        ) from last_error

    def resolve_categories(self, article: NormalizedArticle) -> CategoryLinks:
        if article.suggested_categories:
            all_ids: list[int] = []
            for slug in article.suggested_categories:
                category_id = self._taxonomy.resolve_category(slug)
                if category_id not in all_ids:
                    all_ids.append(category_id)
            return CategoryLinks(primary_id=all_ids[0], all_ids=all_ids)
        if article.is_dual_category:
            markets_id = self._taxonomy.resolve_category(article.markets_category)
            business_id = self._taxonomy.resolve_category(article.business_category)
            all_ids = [markets_id] if markets_id == business_id else [markets_id, business_id]
            return CategoryLinks(markets_id=markets_id, business_id=business_id, all_ids=all_ids)
        primary_id = self._taxonomy.resolve_category(article.primary_category or DEFAULT_CATEGORY)
        return CategoryLinks(primary_id=primary_id, all_ids=[primary_id])

    def _build_row(
        self,
        article: NormalizedArticle,
        enriched: EnrichedContent,
        author_id: int | None,
        slug: str,
        links: CategoryLinks,
        tag_ids: list[int],
    ) -> Article:
        signal = article.signal
        tickers = list(signal.tickers) if signal and signal.tickers else (
            article.tickers or extract_tickers(article.body, article.title)
        )
        row = Article(
            slug=slug,
            external_id=article.external_id,
            title=enriched.title,
            excerpt=enriched.excerpt,
            content=enriched.blocks,
            image_url=article.image_url or self.cfg.placeholder_image,
            published_at=article.published_at or datetime.now(timezone.utc),
            read_time=estimate_read_time(article.body),
            source_url=article.source_url,
            relevant_tickers=tickers,
            meta_description=enriched.meta_description or article.meta_description,
            seo_keywords=list(enriched.seo_keywords or article.seo_keywords),
            is_ai_enhanced=enriched.ai_enhanced,
            author_id=author_id,
            category_id=links.primary_id,
            markets_category_id=links.markets_id,
            business_category_id=links.business_id,
        )
        row.categories = [self._session.get(Category, cid) for cid in links.all_ids]
        row.tags = [self._session.get(Tag, tid) for tid in tag_ids]
        if signal is not None:
            row.analysis = ArticleAnalysis(
                markets=list(signal.markets),
                primary_sector=signal.primary_sector,
                primary_stock=signal.primary_stock or (tickers[0] if tickers else None),
                mentioned_stocks=list(tickers),
                business_type=signal.business_type,
                sentiment=signal.sentiment,
                impact_level=signal.impact_level,
                confidence=signal.confidence,
                ai_model=signal.model,
                raw_response=signal.raw or None,
            )
        return row

    def _place_in_category_pages(self, article_id: int, category_ids: list[int]) -> None:
        try:
            add_article_to_category_zones(self._session, article_id, category_ids)
        except Exception:  # noqa: BLE001
            self._session.rollback()
            logger.exception("Category page placement failed for article %s", article_id)
