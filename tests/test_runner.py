"""Tests for batch orchestration."""

from __future__ import annotations

import logging
import random

import pytest
from sqlalchemy import delete, func, select

from newswire.core.types import AnalysisResult, NormalizedArticle, RewriteResult, SourceSignal
from newswire.errors import BatchSetupError, InvalidCategoryError, SourceError
from newswire.llm.providers.base import Analyzer, Rewriter
from newswire.pacing import NoopLimiter
from newswire.publish.persister import ArticlePersister
from newswire.runner import BatchRunner
from newswire.sources.base import ApiUsage, SourceAdapter
from newswire.storage.models import ActivityLog, Article, Author, BreakingNews, ContentPlacement


class _ListSource(SourceAdapter):
    name = "newsdata"
    label = "NewsData.io"

    def __init__(self, articles, error=None):
        super().__init__()
        self.articles = articles
        self.error = error
        self.scopes = []

    def fetch(self, scope):  # noqa: ANN001
        self.scopes.append(scope)
        if self.error:
            raise self.error
        self.last_usage = ApiUsage("latest", "q", len(self.articles), len(self.articles))
        return list(self.articles)


class _ScriptedRewriter(Rewriter):
    """Returns a rewrite for titles in `succeed`, None otherwise."""

    def __init__(self, succeed):
        self.succeed = set(succeed)
        self.calls = []

    def rewrite(self, title, content):  # noqa: ANN001
        self.calls.append(title)
        if title not in self.succeed:
            return None
        return RewriteResult(title=f"{title} (rewritten)", content="New body.", excerpt="New excerpt")


class _StubAnalyzer(Analyzer):
    def __init__(self, result):
        self.result = result
        self.calls = []

    def analyze(self, title, content):  # noqa: ANN001
        self.calls.append((title, content))
        return self.result


class _CountingLimiter(NoopLimiter):
    def __init__(self):
        super().__init__()
        self.count = 0

    def acquire(self) -> float:
        self.count += 1
        return 0.0


def _article(native_id: str, title: str | None = None, **overrides) -> NormalizedArticle:
    fields = dict(
        source="newsdata",
        native_id=native_id,
        title=title or f"Headline {native_id}",
        body="Para one.\n\nPara two.",
        description="Description",
        keywords=["markets"],
        primary_category="markets",
    )
    fields.update(overrides)
    return NormalizedArticle(**fields)


def _runner(cfg, session_factory, source, rewriter=None, limiter=None, analyzer=None) -> BatchRunner:
    return BatchRunner(
        cfg,
        session_factory,
        source_factory=lambda name: source,
        rewriter_factory=lambda: rewriter,
        analyzer_factory=lambda: analyzer,
        limiter=limiter or NoopLimiter(),
        rng=random.Random(7),
    )


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


def test_end_to_end_duplicate_rewrite_and_fallback(cfg, session_factory, session):
    articles = [_article("1"), _article("2"), _article("3")]
    _runner(cfg, session_factory, _ListSource(articles[:1])).run("import-news")

    rewriter = _ScriptedRewriter(succeed={"Headline 2"})
    limiter = _CountingLimiter()
    result = _runner(cfg, session_factory, _ListSource(articles), rewriter, limiter).run("import-news")

    assert (result.imported, result.skipped, result.errors, result.ai_enhanced) == (2, 1, 0, 1)
    assert result.details == [
        {"title": "Headline 1", "status": "skipped (duplicate)"},
        {"title": "Headline 2", "status": "imported (AI-enhanced)"},
        {"title": "Headline 3", "status": "imported"},
    ]
    # duplicates never reach the rewriter, and every AI call is paced
    assert rewriter.calls == ["Headline 2", "Headline 3"]
    assert limiter.count == 2
    slugs = session.scalars(select(Article.slug).order_by(Article.id)).all()
    assert slugs == ["headline-1", "headline-2-rewritten", "headline-3"]


def test_same_batch_twice_is_idempotent(cfg, session_factory, session):
    source = _ListSource([_article("1"), _article("2")])
    first = _runner(cfg, session_factory, source).run("import-news")
    second = _runner(cfg, session_factory, source).run("import-news")

    assert first.imported == 2
    assert (second.imported, second.skipped) == (0, 2)
    assert _count(session, Article) == 2


def test_identical_titles_in_one_batch(cfg, session_factory, session):
    source = _ListSource([_article("1", title="Foo"), _article("2", title="Foo")])
    _runner(cfg, session_factory, source).run("import-news")
    assert session.scalars(select(Article.slug).order_by(Article.id)).all() == ["foo", "foo-1"]


def test_partial_failure_is_isolated(cfg, session_factory, session, monkeypatch):
    original = ArticlePersister.persist

    def flaky(self, article, enriched, author_id):  # noqa: ANN001
        if article.native_id == "2":
            raise RuntimeError("disk full")
        return original(self, article, enriched, author_id)

    monkeypatch.setattr(ArticlePersister, "persist", flaky)
    source = _ListSource([_article(str(i)) for i in range(1, 6)])

    result = _runner(cfg, session_factory, source).run("import-news")

    assert (result.imported, result.errors, result.skipped) == (4, 1, 0)
    assert len(result.details) == 5
    assert result.details[1] == {"title": "Headline 2", "status": "error: disk full"}


def test_homepage_and_breaking_news_follow_the_batch(cfg, session_factory, session):
    source = _ListSource([_article("1"), _article("2")])
    result = _runner(cfg, session_factory, source).run("import-news")

    active = session.scalars(select(BreakingNews).where(BreakingNews.is_active.is_(True))).all()
    assert len(active) == 1
    assert active[0].headline == "Headline 1"
    assert active[0].url == "/article/headline-1"
    placed = session.scalars(select(ContentPlacement.article_id).order_by(ContentPlacement.id)).all()
    assert placed[:2] == [a.id for a in result.imported_articles]


def test_category_job_uses_house_author_and_skips_homepage(cfg, session_factory, session):
    source = _ListSource([_article("1", primary_category="crypto")])
    result = _runner(cfg, session_factory, source).run("import-category", category="crypto")

    assert result.category == "crypto"
    assert result.to_response()["category"] == "crypto"
    assert source.scopes[0].category == "crypto"
    article = session.scalar(select(Article))
    assert article.author.name == "NewsData"
    assert _count(session, ContentPlacement) == 0
    assert _count(session, BreakingNews) == 1


def test_category_job_rejects_unknown_category(cfg, session_factory):
    runner = _runner(cfg, session_factory, _ListSource([]))
    with pytest.raises(InvalidCategoryError, match="crypto, economy, opinion"):
        runner.run("import-category", category="sports")
    with pytest.raises(InvalidCategoryError):
        runner.run("import-category")


def test_creator_is_matched_to_author(cfg, session_factory, session):
    source = _ListSource([_article("1", creators=["JANE DOE"])])
    _runner(cfg, session_factory, source).run("import-news")
    assert session.scalar(select(Article)).author.name == "Jane Doe"


def test_missing_authors_abort_the_run(cfg, session_factory, session):
    session.execute(delete(Author).where(Author.name != "NewsData"))
    session.commit()

    with pytest.raises(BatchSetupError, match="No authors found in database"):
        _runner(cfg, session_factory, _ListSource([_article("1")])).run("import-news")


def test_fetch_failure_aborts_the_run(cfg, session_factory):
    source = _ListSource([], error=SourceError("NewsData API error: 500"))
    with pytest.raises(SourceError):
        _runner(cfg, session_factory, source).run("import-news")


def test_empty_fetch(cfg, session_factory):
    result = _runner(cfg, session_factory, _ListSource([])).run("import-news")
    assert result.to_response() == {
        "success": True,
        "message": "No new articles to import",
        "imported": 0,
        "skipped": 0,
        "errors": 0,
        "aiEnhanced": 0,
        "details": [],
    }


def test_activity_log_entries(cfg, session_factory, session):
    source = _ListSource([_article("1"), _article("2")])
    _runner(cfg, session_factory, source, _ScriptedRewriter(succeed={"Headline 1"})).run("import-news")

    rows = {row.type: row for row in session.scalars(select(ActivityLog))}
    assert set(rows) == {"NEWS_API", "IMPORT", "PERPLEXITY_API"}
    assert rows["IMPORT"].status == "SUCCESS"
    assert rows["IMPORT"].count == 2
    assert rows["PERPLEXITY_API"].status == "WARNING"
    assert rows["PERPLEXITY_API"].details["successfulCalls"] == 1


def test_refresh_homepage_job(cfg, session_factory, session):
    _runner(cfg, session_factory, _ListSource([_article("1"), _article("2")])).run("import-fiscalwire")

    refresh = _runner(cfg, session_factory, _ListSource([])).refresh_homepage()

    body = refresh.to_response()
    assert body["zones"] == ["hero-featured: 2 articles", "article-grid: 0 articles", "trending-sidebar: 0 articles"]
    assert body["breakingNews"] == "Headline 2..."


def test_analysis_drives_categories_tickers_and_record(cfg, session_factory, session):
    analysis = AnalysisResult(
        signal=SourceSignal(
            sentiment="bullish",
            confidence=0.85,
            tickers=["NVDA", "AMD"],
            business_type="earnings",
            markets=["US"],
            primary_sector="technology",
            primary_stock="NVDA",
            impact_level="high",
            model="sonar",
        ),
        categories=["us-markets", "tech"],
    )
    analyzer = _StubAnalyzer(analysis)
    limiter = _CountingLimiter()
    source = _ListSource([_article("1", body="Shares of $TSLA rose.", primary_category="economy")])

    result = _runner(cfg, session_factory, source, limiter=limiter, analyzer=analyzer).run("import-news")

    assert result.imported == 1
    assert analyzer.calls == [("Headline 1", "Shares of $TSLA rose.")]
    assert limiter.count == 1
    article = session.scalar(select(Article))
    assert article.category.slug == "us-markets"
    assert sorted(c.slug for c in article.categories) == ["tech", "us-markets"]
    assert article.relevant_tickers == ["NVDA", "AMD"]
    assert article.analysis.primary_stock == "NVDA"
    assert article.analysis.impact_level == "high"
    assert article.analysis.ai_model == "sonar"
    log = session.scalar(select(ActivityLog).where(ActivityLog.type == "IMPORT"))
    assert log.details["analyzed"] == 1


def test_failed_analysis_keeps_mapped_category(cfg, session_factory, session):
    source = _ListSource([_article("1", primary_category="economy")])

    result = _runner(cfg, session_factory, source, analyzer=_StubAnalyzer(None)).run("import-news")

    assert result.imported == 1
    assert result.details == [{"title": "Headline 1", "status": "imported"}]
    article = session.scalar(select(Article))
    assert [c.slug for c in article.categories] == ["economy"]
    assert article.analysis is None
    log = session.scalar(select(ActivityLog).where(ActivityLog.type == "IMPORT"))
    assert log.details["analysisFailed"] == 1


def test_only_analysis_jobs_call_the_analyzer(cfg, session_factory):
    analyzer = _StubAnalyzer(None)
    _runner(cfg, session_factory, _ListSource([_article("1")]), analyzer=analyzer).run("import-fiscalwire")
    assert analyzer.calls == []


def test_upstream_ai_summary_counts_as_ai_enhanced(cfg, session_factory, session):
    source = _ListSource([_article("1", ai_summary="Summary written upstream")])

    result = _runner(cfg, session_factory, source).run("import-fiscalwire")

    assert result.ai_enhanced == 1
    assert result.details[0]["status"] == "imported (AI-enhanced)"
    assert session.scalar(select(Article)).is_ai_enhanced is True


def test_default_factories_receive_the_llm_logger(cfg, session_factory, monkeypatch):
    seen = []
    monkeypatch.setattr("newswire.runner.create_rewriter", lambda *args: seen.append(("rewriter", args[2])))
    monkeypatch.setattr("newswire.runner.create_analyzer", lambda *args: seen.append(("analyzer", args[2])))
    llm_logger = logging.getLogger("newswire.llm.test")

    BatchRunner(
        cfg,
        session_factory,
        source_factory=lambda name: _ListSource([_article("1")]),
        limiter=NoopLimiter(),
        llm_logger=llm_logger,
    ).run("import-news")

    assert seen == [("rewriter", llm_logger), ("analyzer", llm_logger)]
