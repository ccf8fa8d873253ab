"""Tests for article persistence and its conflict handling."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from newswire.config import PipelineConfig
from newswire.core.enrichment import EnrichmentLadder
from newswire.core.types import NormalizedArticle, SourceSignal
from newswire.errors import DuplicateArticleError, PersistenceError
from newswire.publish.persister import ArticlePersister
from newswire.storage.models import Article, Category, ContentPlacement, Page, PageZone


def _article(native_id: str, title: str = "Foo", **overrides) -> NormalizedArticle:
    fields = dict(
        source="newsdata",
        native_id=native_id,
        title=title,
        body="Body paragraph.\n\nMore body about $NVDA.",
        description="Description",
        keywords=["Chips"],
        primary_category="tech",
    )
    fields.update(overrides)
    return NormalizedArticle(**fields)


def _persist(session, article, cfg=None):
    enriched = EnrichmentLadder(None).enrich(article)
    return ArticlePersister(session, cfg).persist(article, enriched, author_id=None)


def test_persist_writes_article_with_links(session):
    persisted = _persist(session, _article("1"))

    row = session.get(Article, persisted.id)
    assert row.slug == "foo"
    assert row.external_id == "newsdata-1"
    assert row.category.slug == "tech"
    assert [c.slug for c in row.categories] == ["tech"]
    assert [t.slug for t in row.tags] == ["chips"]
    assert row.relevant_tickers == ["NVDA"]
    assert row.image_url == "/images/placeholder-news.jpg"
    assert row.meta_description is None
    assert row.seo_keywords == []
    assert row.content == [
        {"type": "paragraph", "content": "Body paragraph."},
        {"type": "paragraph", "content": "More body about $NVDA."},
    ]
    assert row.analysis is None


def test_identical_titles_get_suffixed_slugs(session):
    first = _persist(session, _article("1", title="Foo"))
    second = _persist(session, _article("2", title="Foo"))
    assert (first.slug, second.slug) == ("foo", "foo-1")


def test_same_external_id_is_rejected_by_the_store(session):
    _persist(session, _article("1"))
    with pytest.raises(DuplicateArticleError):
        _persist(session, _article("1", title="Different title"))
    assert session.scalar(select(func.count()).select_from(Article)) == 1


def test_slug_collision_retries_with_next_suffix(session, monkeypatch):
    _persist(session, _article("1", title="Foo"))
    # simulate a concurrent writer the fast-path lookup did not see
    monkeypatch.setattr("newswire.core.slugs.SlugAllocator._is_taken", lambda self, slug: False)

    persisted = _persist(session, _article("2", title="Foo"))

    assert persisted.slug == "foo-1"


def test_slug_collision_gives_up_after_retry_limit(session, monkeypatch):
    for native_id in ("1", "2"):
        _persist(session, _article(native_id, title="Foo"))
    monkeypatch.setattr("newswire.core.slugs.SlugAllocator._is_taken", lambda self, slug: False)

    with pytest.raises(PersistenceError):
        _persist(session, _article("3", title="Foo"), PipelineConfig(slug_retry_limit=2))


def test_dual_category_article_gets_analysis(session):
    signal = SourceSignal(
        sentiment="bullish",
        confidence=0.8,
        tickers=["AAPL", "MSFT"],
        business_type="earnings",
        markets=["US"],
        primary_sector="financial",
        model="fiscalwire",
        raw={"source": "fiscalwire"},
    )
    article = _article(
        "9",
        source="fiscalwire",
        primary_category=None,
        markets_category="us-markets",
        business_category="finance",
        signal=signal,
    )

    row = session.get(Article, _persist(session, article).id)

    assert row.external_id == "fiscalwire-9"
    assert row.category_id is None
    assert row.markets_category.slug == "us-markets"
    assert row.business_category.slug == "finance"
    assert sorted(c.slug for c in row.categories) == ["finance", "us-markets"]
    assert row.relevant_tickers == ["AAPL", "MSFT"]
    assert row.analysis.sentiment == "bullish"
    assert row.analysis.primary_stock == "AAPL"
    assert row.analysis.ai_model == "fiscalwire"


def test_new_article_goes_to_top_of_category_page_zones(session):
    tech_id = session.scalar(select(Category.id).where(Category.slug == "tech"))
    page = Page(slug="tech", name="Tech", page_type="CATEGORY", category_id=tech_id)
    session.add(page)
    session.flush()
    zone = PageZone(page_id=page.id, zone_slug="category-grid", capacity=6)
    session.add(zone)
    session.commit()

    first = _persist(session, _article("1", title="First"))
    second = _persist(session, _article("2", title="Second"))

    placements = session.scalars(
        select(ContentPlacement).where(ContentPlacement.zone_id == zone.id).order_by(ContentPlacement.position)
    ).all()
    assert [(p.article_id, p.position) for p in placements] == [(second.id, 0), (first.id, 1)]


def test_source_supplied_seo_fields_are_kept(session):
    article = _article("5", meta_description="Upstream summary", seo_keywords=["NVDA"])

    row = session.get(Article, _persist(session, article).id)

    assert row.meta_description == "Upstream summary"
    assert row.seo_keywords == ["NVDA"]


def test_suggested_categories_take_precedence(session):
    article = _article("6", primary_category="economy", suggested_categories=["crypto", "tech", "crypto"])

    row = session.get(Article, _persist(session, article).id)

    assert row.category.slug == "crypto"
    assert sorted(c.slug for c in row.categories) == ["crypto", "tech"]
