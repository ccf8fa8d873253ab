"""Tests for the NewsData and FiscalWire source adapters."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from newswire.config import SourceConfig
from newswire.errors import SourceError
from newswire.sources.base import FetchScope, parse_timestamp
from newswire.sources.factory import create_source
from newswire.sources.fiscalwire import (
    FiscalWireSource,
    determine_markets_category,
    map_business_category,
    map_sentiment,
)
from newswire.sources.newsdata import CATEGORY_QUERIES, NewsDataSource, map_category


def _newsdata_item(article_id: str, **overrides) -> dict:
    item = {
        "article_id": article_id,
        "title": f"Title {article_id}",
        "description": "Description",
        "content": "Body",
        "keywords": ["stocks", None],
        "creator": ["Jane Doe"],
        "category": ["politics"],
        "pubDate": "2026-01-02 03:04:05",
        "link": f"https://example.com/{article_id}",
        "image_url": None,
        "duplicate": False,
    }
    item.update(overrides)
    return item


def test_newsdata_filters_and_normalizes(monkeypatch):
    monkeypatch.setenv("NEWSDATA_API_KEY", "nd-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "status": "success",
                "results": [
                    _newsdata_item("a1"),
                    _newsdata_item("a2", duplicate=True),
                    _newsdata_item("a3", description=None),
                ],
            },
        )

    source = NewsDataSource(SourceConfig(), transport=httpx.MockTransport(handler))
    articles = source.fetch(FetchScope())

    assert [a.external_id for a in articles] == ["newsdata-a1"]
    article = articles[0]
    assert article.primary_category == "economy"
    assert article.keywords == ["stocks"]
    assert article.creators == ["Jane Doe"]
    assert article.published_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert seen["params"]["apikey"] == "nd-key"
    assert seen["params"]["country"] == "us"
    assert source.last_usage.results_count == 3
    assert source.last_usage.filtered_count == 1


def test_newsdata_category_scope_sets_query_and_category(monkeypatch):
    monkeypatch.setenv("NEWSDATA_API_KEY", "nd-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"status": "success", "results": [_newsdata_item("c1")]})

    source = NewsDataSource(SourceConfig(), transport=httpx.MockTransport(handler))
    articles = source.fetch(FetchScope(category="crypto"))

    assert seen["params"]["q"] == CATEGORY_QUERIES["crypto"]
    assert articles[0].primary_category == "crypto"


def test_newsdata_errors_raise_source_error(monkeypatch):
    monkeypatch.setenv("NEWSDATA_API_KEY", "nd-key")
    failing = NewsDataSource(
        SourceConfig(),
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )
    with pytest.raises(SourceError, match="500"):
        failing.fetch(FetchScope())

    bad_status = NewsDataSource(
        SourceConfig(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "error"})),
    )
    with pytest.raises(SourceError, match="status"):
        bad_status.fetch(FetchScope())


def test_newsdata_requires_api_key(monkeypatch):
    monkeypatch.delenv("NEWSDATA_API_KEY", raising=False)
    with pytest.raises(SourceError, match="NEWSDATA_API_KEY"):
        NewsDataSource(SourceConfig()).fetch(FetchScope())


def test_map_category():
    assert map_category(["Technology"]) == "tech"
    assert map_category(["sports", "world"]) == "economy"
    assert map_category(None) == "markets"


def test_fiscalwire_normalizes_dual_categories_and_signal(monkeypatch):
    monkeypatch.setenv("FISCALWIRE_API_KEY", "fw-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["X-API-Key"]
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "id": 77,
                        "title": "FDA approves new drug",
                        "content": "The agency approved the drug.",
                        "summary": "Approval",
                        "ai_summary": "AI approval summary",
                        "tickers": ["PFE"],
                        "category": "FDA",
                        "sentiment_label": "Positive",
                        "sentiment_score": 0.9,
                        "published_at": "2026-01-02T10:00:00Z",
                        "source_url": "https://example.com/fda",
                    },
                    {"id": 78, "title": ""},
                ],
                "pages": 1,
            },
        )

    source = FiscalWireSource(SourceConfig(), transport=httpx.MockTransport(handler))
    articles = source.fetch(FetchScope())

    assert seen["key"] == "fw-key"
    assert len(articles) == 1
    article = articles[0]
    assert article.external_id == "fiscalwire-77"
    assert article.is_dual_category
    assert (article.markets_category, article.business_category) == ("us-markets", "health-science")
    assert article.description == "AI approval summary"
    assert article.signal.sentiment == "bullish"
    assert article.signal.confidence == pytest.approx(0.9)
    assert article.signal.business_type == "regulation"
    assert article.signal.primary_sector == "healthcare"
    assert article.ai_summary == "AI approval summary"
    assert article.meta_description == "AI approval summary"
    assert article.seo_keywords == ["PFE"]


def test_fiscalwire_mappings():
    assert map_business_category("earnings") == "finance"
    assert map_business_category(None) == "finance"
    assert determine_markets_category(["BTC"], None) == "crypto"
    assert determine_markets_category([], "Treasury yields climbed") == "bonds"
    assert determine_markets_category([], "Plain news") == "us-markets"
    assert map_sentiment("Bearish", -1.4) == ("bearish", 1.0)
    assert map_sentiment("mixed", None) == ("neutral", 0.5)


def test_parse_timestamp_variants():
    assert parse_timestamp("2026-01-02T10:00:00Z") == datetime(2026, 1, 2, 10, tzinfo=timezone.utc)
    assert parse_timestamp(None) is None
    assert parse_timestamp("not a date") is None


def test_create_source_registry():
    assert isinstance(create_source("newsdata", SourceConfig()), NewsDataSource)
    with pytest.raises(ValueError, match="Unsupported source"):
        create_source("rss", SourceConfig())


def test_whitespace_titles_are_filtered(monkeypatch):
    monkeypatch.setenv("FISCALWIRE_API_KEY", "fw-key")
    monkeypatch.setenv("NEWSDATA_API_KEY", "nd-key")

    fiscalwire = FiscalWireSource(
        SourceConfig(),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"items": [{"id": 1, "title": "   "}], "pages": 1})
        ),
    )
    assert fiscalwire.fetch(FetchScope()) == []

    newsdata = NewsDataSource(
        SourceConfig(),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                json={
                    "status": "success",
                    "results": [_newsdata_item("w1", title="  "), _newsdata_item("w2", description=" \n ")],
                },
            )
        ),
    )
    assert newsdata.fetch(FetchScope()) == []
