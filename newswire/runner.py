"""
Batch orchestration for the ingestion jobs.

A run goes through these stages:
1. Setup: load authors, fetch the batch from the job's source
2. Per article: dedup gate, pacing, AI analysis (analysis jobs only),
   enrichment ladder, persist
3. Homepage zone refresh (homepage jobs only)
4. Breaking news rotation
5. Activity log entries

Only setup failures abort a run. Each article is isolated: any error while
importing it is recorded as `error: <message>` and the loop moves on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import random
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import AppConfig
from .core.dedup import DedupGate
from .core.enrichment import EnrichmentLadder
from .core.types import BatchResult, ImportOutcome, NormalizedArticle
from .errors import BatchSetupError, DuplicateArticleError, EmptyStoreError, InvalidCategoryError
from .llm.providers.base import Analyzer, Rewriter
from .llm.providers.factory import create_analyzer, create_rewriter
from .llm.tracing import set_span_output, start_span
from .logging_utils import log_event
from .pacing import RateLimiter
from .publish.activity import ActivityLogger
from .publish.breaking import BreakingNewsRotator, pick_candidate
from .publish.persister import ArticlePersister
from .publish.placement import ZonePlacementRefresher, ZoneRefreshResult
from .sources.base import FetchScope, SourceAdapter
from .sources.factory import create_source
from .sources.newsdata import CATEGORY_QUERIES
from .storage.db import HOUSE_AUTHOR
from .storage.models import Author

logger = logging.getLogger(__name__)

STATUS_IMPORTED = "imported"
STATUS_IMPORTED_AI = "imported (AI-enhanced)"
STATUS_DUPLICATE = "skipped (duplicate)"

NO_ARTICLES_MESSAGE = "No new articles to import"


@dataclass(frozen=True)
class JobSpec:
    """Static description of an ingestion job.

    Attributes:
        name: Job name, also the HTTP route suffix
        source: Source adapter name
        use_ai: Whether articles go through the AI rewriter
        refresh_homepage: Whether the homepage zones are rebuilt afterwards
        author_strategy: "match_creator", "random" or "house"
        analyze: Whether articles go through the AI analyzer for categories,
            tickers and the analysis record
        categories: Accepted categories for category-scoped jobs
    """
    name: str
    source: str
    use_ai: bool
    refresh_homepage: bool
    author_strategy: str
    analyze: bool = False
    categories: tuple[str, ...] = ()

    @property
    def category_scoped(self) -> bool:
        return bool(self.categories)


JOBS: dict[str, JobSpec] = {
    "import-news": JobSpec(
        name="import-news",
        source="newsdata",
        use_ai=True,
        refresh_homepage=True,
        author_strategy="match_creator",
        analyze=True,
    ),
    "import-fiscalwire": JobSpec(
        name="import-fiscalwire",
        source="fiscalwire",
        use_ai=False,
        refresh_homepage=True,
        author_strategy="random",
    ),
    "import-category": JobSpec(
        name="import-category",
        source="newsdata",
        use_ai=False,
        refresh_homepage=False,
        author_strategy="house",
        categories=tuple(CATEGORY_QUERIES),
    ),
}


def get_job(name: str) -> JobSpec:
    job = JOBS.get(name)
    if job is None:
        raise ValueError(f"Unknown job: {name}. Available: {', '.join(sorted(JOBS))}")
    return job


def validate_category(job: JobSpec, category: str | None) -> str | None:
    """Return the category a job should run with.

    Raises:
        InvalidCategoryError: The job is category scoped and `category` is
            missing or not one of its categories
    """
    if not job.category_scoped:
        return None
    if category not in job.categories:
        raise InvalidCategoryError(category, list(job.categories))
    return category


@dataclass
class HomepageRefresh:
    """Result of a manual homepage refresh."""
    zones: list[ZoneRefreshResult] = field(default_factory=list)
    breaking_headline: str | None = None

    def to_response(self) -> dict[str, Any]:
        zones = [
            f"{z.zone_slug}: {len(z.article_ids)} articles" if z.found else f"{z.zone_slug}: not found"
            for z in self.zones
        ]
        body: dict[str, Any] = {"success": True, "message": "Homepage refreshed", "zones": zones}
        if self.breaking_headline:
            body["breakingNews"] = self.breaking_headline[:50] + "..."
        return body


class AuthorPicker:
    """Chooses the author for each imported article."""

    def __init__(self, authors: list[Author], strategy: str, rng: random.Random):
        self._authors = authors
        self._strategy = strategy
        self._rng = rng

    def pick(self, article: NormalizedArticle) -> int:
        if self._strategy == "match_creator" and article.creators:
            wanted = article.creators[0].lower()
            for author in self._authors:
                if author.name.lower() == wanted:
                    return author.id
        if self._strategy == "house":
            return self._authors[0].id
        return self._rng.choice(self._authors).id


class BatchRunner:
    """Runs ingestion jobs against the content store.

    Args:
        cfg: Application configuration
        session_factory: Callable returning a new SQLAlchemy session
        source_factory: Builds a source adapter from its name
        rewriter_factory: Builds the AI rewriter for AI jobs (None disables AI)
        analyzer_factory: Builds the AI analyzer for analysis jobs (None disables it)
        limiter: Pacing limiter acquired before each AI call
        activity: Activity logger; defaults to one on `session_factory`
        rng: Random source for author assignment
        llm_logger: Logger receiving raw AI provider responses
    """

    def __init__(
        self,
        cfg: AppConfig,
        session_factory: Callable[[], Session],
        source_factory: Callable[[str], SourceAdapter] | None = None,
        rewriter_factory: Callable[[], Rewriter | None] | None = None,
        analyzer_factory: Callable[[], Analyzer | None] | None = None,
        limiter: RateLimiter | None = None,
        activity: ActivityLogger | None = None,
        rng: random.Random | None = None,
        llm_logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self._session_factory = session_factory
        self._source_factory = source_factory or (lambda name: create_source(name, cfg.sources))
        self._rewriter_factory = rewriter_factory or (
            lambda: create_rewriter(cfg.provider, cfg.logging, llm_logger)
        )
        self._analyzer_factory = analyzer_factory or (
            lambda: create_analyzer(cfg.provider, cfg.logging, llm_logger)
        )
        self._limiter = limiter or RateLimiter.from_config(cfg.provider)
        self.activity = activity or ActivityLogger(session_factory)
        self._rng = rng or random.Random()

    def run(self, job_name: str, category: str | None = None) -> BatchResult:
        """Run one ingestion job and return its aggregated result.

        Raises:
            InvalidCategoryError: Bad category for a category-scoped job
            BatchSetupError: No authors, missing API key or failed fetch
        """
        job = get_job(job_name)
        category = validate_category(job, category)
        with start_span(
            "newswire.run",
            kind="chain",
            input_value={"job": job.name, "category": category},
        ) as run_span:
            with self._session_factory() as session:
                result = self._run(session, job, category)
            set_span_output(run_span, result.to_response())
        return result

    def refresh_homepage(self) -> HomepageRefresh:
        """Rebuild the homepage zones and breaking news from recent articles.

        Raises:
            EmptyStoreError: There are no articles to place
        """
        with self._session_factory() as session:
            refresher = ZonePlacementRefresher(session, self.cfg.homepage)
            if not refresher.select_candidates([]):
                raise EmptyStoreError("No articles found")
            zones = refresher.refresh([])
            item = BreakingNewsRotator(session).rotate(pick_candidate(session, []))
        refresh = HomepageRefresh(zones=zones, breaking_headline=item.headline if item else None)
        self.activity.log_system_event(
            "Homepage refreshed",
            details={"zones": refresh.to_response()["zones"]},
        )
        return refresh

    def _run(self, session: Session, job: JobSpec, category: str | None) -> BatchResult:
        result = BatchResult(category=category)
        picker = AuthorPicker(self._load_authors(session, job), job.author_strategy, self._rng)

        source = self._source_factory(job.source)
        articles = source.fetch(FetchScope(category=category))
        if source.last_usage is not None:
            self.activity.log_api_usage(source.name, source.label, source.last_usage)
        log_event(
            logger,
            "Batch fetched",
            job=job.name,
            source=source.name,
            category=category,
            count=len(articles),
        )

        if not articles:
            result.message = NO_ARTICLES_MESSAGE
            return result

        rewriter = self._rewriter_factory() if job.use_ai else None
        analyzer = self._analyzer_factory() if job.analyze else None
        ladder = EnrichmentLadder(rewriter, self.cfg.pipeline.paywall_marker)
        gate = DedupGate(session)
        persister = ArticlePersister(session, self.cfg.pipeline)

        ai_calls = 0
        for article in articles:
            if gate.exists(article.external_id):
                outcome = ImportOutcome(title=article.title, status=STATUS_DUPLICATE)
            else:
                if analyzer is not None:
                    self._limiter.acquire()
                    article = self._analyze(analyzer, article, result)
                if ladder.uses_ai:
                    self._limiter.acquire()
                    ai_calls += 1
                outcome = self._import_one(session, ladder, persister, article, picker.pick(article))
            result.record(outcome)
            log_event(
                logger,
                "Article processed",
                job=job.name,
                external_id=article.external_id,
                status=outcome.status,
            )

        if job.refresh_homepage:
            ZonePlacementRefresher(session, self.cfg.homepage).refresh(
                [a.id for a in result.imported_articles]
            )
        BreakingNewsRotator(session).rotate(pick_candidate(session, result.imported_articles))

        result.message = f"{category} import completed" if category else "Import completed"
        label = f"{source.label} ({category})" if category else source.label
        self.activity.log_import(label, result)
        if ai_calls:
            self.activity.log_rewrite_batch(ai_calls, result.ai_enhanced)

        logger.info(
            "%s complete: %d imported (%d AI-enhanced), %d skipped, %d errors",
            job.name,
            result.imported,
            result.ai_enhanced,
            result.skipped,
            result.errors,
        )
        return result

    def _analyze(self, analyzer: Analyzer, article: NormalizedArticle, result: BatchResult) -> NormalizedArticle:
        """Attach AI analysis to an article; the mapped category is kept when it fails."""
        try:
            analysis = analyzer.analyze(article.title, article.body or article.description)
        except Exception:  # noqa: BLE001
            logger.exception("Analyzer raised for %s", article.external_id)
            analysis = None
        if analysis is None:
            result.analysis_failed += 1
            return article
        result.analyzed += 1
        return replace(article, signal=analysis.signal, suggested_categories=list(analysis.categories))

    def _import_one(
        self,
        session: Session,
        ladder: EnrichmentLadder,
        persister: ArticlePersister,
        article: NormalizedArticle,
        author_id: int,
    ) -> ImportOutcome:
        try:
            enriched = ladder.enrich(article)
            persisted = persister.persist(article, enriched, author_id)
        except DuplicateArticleError:
            return ImportOutcome(title=article.title, status=STATUS_DUPLICATE)
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            logger.exception("Failed to import %s", article.external_id)
            return ImportOutcome(title=article.title, status=f"error: {exc}")
        return ImportOutcome(
            title=article.title,
            status=STATUS_IMPORTED_AI if enriched.ai_enhanced else STATUS_IMPORTED,
            article=persisted,
            ai_enhanced=enriched.ai_enhanced,
        )

    def _load_authors(self, session: Session, job: JobSpec) -> list[Author]:
        if job.author_strategy == "house":
            author = session.scalar(select(Author).where(Author.name == HOUSE_AUTHOR))
            if author is None:
                author = Author(name=HOUSE_AUTHOR, bio="Automated news import from NewsData.io")
                session.add(author)
                session.commit()
            return [author]

        authors = list(
            session.scalars(select(Author).where(Author.name != HOUSE_AUTHOR).order_by(Author.id))
        )
        if not authors:
            raise BatchSetupError("No authors found in database")
        return authors
