"""
Core data types for the ingestion pipeline.

This module defines the data structures passed between pipeline stages:
- NormalizedArticle: Raw article as produced by a source adapter
- SourceSignal: Structured analysis supplied by the source or the analyzer
- RewriteResult: Output of the AI rewriter
- AnalysisResult: Output of the AI analyzer
- EnrichedContent: Output of the content enrichment ladder
- ImportOutcome: Result of importing one article
- BatchResult: Aggregated result of one run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .dedup import build_external_id


ContentBlock = dict[str, Any]


def paragraph(text: str) -> ContentBlock:
    """Build a paragraph content block."""
    return {"type": "paragraph", "content": text}


@dataclass
class SourceSignal:
    """Structured analysis of an article, shipped by the source or produced by the analyzer.

    Attributes:
        sentiment: "bullish", "bearish" or "neutral"
        confidence: Confidence in the sentiment, 0-1
        tickers: Ticker symbols mentioned in the article
        business_type: Business classification (earnings, merger, ...)
        markets: Market labels (e.g. "US", "Crypto")
        primary_sector: Sector classification
        primary_stock: Main ticker the article is about
        impact_level: "high", "medium" or "low"
        model: Provenance of the signal
        raw: Raw upstream fields kept for auditing
    """
    sentiment: str = "neutral"
    confidence: float = 0.5
    tickers: list[str] = field(default_factory=list)
    business_type: str = "news"
    markets: list[str] = field(default_factory=list)
    primary_sector: str | None = None
    primary_stock: str | None = None
    impact_level: str = "medium"
    model: str = "source"
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedArticle:
    """An article fetched from a source adapter.

    Exactly one of `primary_category` or the pair
    (`markets_category`, `business_category`) is expected to be set.

    Attributes:
        source: Short source name used in the externalId (e.g. "newsdata")
        native_id: The source's own article id
        title: Headline as published by the source
        body: Full article text, if the source supplies it
        description: Short description or summary
        keywords: Source keywords used for tag resolution
        image_url: Lead image URL
        published_at: Publication timestamp
        source_url: Link to the original article
        creators: Author names reported by the source
        tickers: Ticker symbols reported by the source
        primary_category: Category slug for single-category sources
        markets_category: Markets category slug for dual-category sources
        business_category: Business category slug for dual-category sources
        signal: Structured analysis shipped with the article or produced by
            the analyzer, if any
        suggested_categories: Category slugs from the analyzer; the first is primary
        meta_description: SEO description supplied by the source
        seo_keywords: SEO keywords supplied by the source
        ai_summary: Summary written upstream by an AI model
    """
    source: str
    native_id: str
    title: str
    body: str | None = None
    description: str | None = None
    keywords: list[str] = field(default_factory=list)
    image_url: str | None = None
    published_at: datetime | None = None
    source_url: str | None = None
    creators: list[str] = field(default_factory=list)
    tickers: list[str] = field(default_factory=list)
    primary_category: str | None = None
    markets_category: str | None = None
    business_category: str | None = None
    signal: SourceSignal | None = None
    suggested_categories: list[str] = field(default_factory=list)
    meta_description: str | None = None
    seo_keywords: list[str] = field(default_factory=list)
    ai_summary: str | None = None

    @property
    def external_id(self) -> str:
        return build_external_id(self.source, self.native_id)

    @property
    def is_dual_category(self) -> bool:
        return bool(self.markets_category and self.business_category)


@dataclass
class RewriteResult:
    """Structured rewrite returned by the AI rewriter."""
    title: str
    content: str
    excerpt: str
    meta_description: str = ""
    seo_keywords: list[str] = field(default_factory=list)
    suggested_tags: list[str] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Structured analysis returned by the AI analyzer.

    Attributes:
        signal: Sentiment, tickers, sector and market classification
        categories: Suggested category slugs, most relevant first
    """
    signal: SourceSignal
    categories: list[str] = field(default_factory=list)


@dataclass
class EnrichedContent:
    """Title, excerpt and body blocks ready to persist.

    Attributes:
        title: Final headline (rewritten or original)
        excerpt: Never empty
        blocks: Never empty list of content blocks
        keywords: Keyword set used for tag resolution
        meta_description: SEO description, if the rewriter produced one
        seo_keywords: SEO keywords from the rewriter
        ai_enhanced: True when the rewriter succeeded
    """
    title: str
    excerpt: str
    blocks: list[ContentBlock]
    keywords: list[str] = field(default_factory=list)
    meta_description: str | None = None
    seo_keywords: list[str] = field(default_factory=list)
    ai_enhanced: bool = False


@dataclass
class PersistedArticle:
    """Identity of a freshly written article."""
    id: int
    slug: str
    title: str


@dataclass
class ImportOutcome:
    """Result of importing a single article.

    Attributes:
        title: Title used in the per-article detail list
        status: "imported", "imported (AI-enhanced)", "skipped (duplicate)"
                or "error: <message>"
        article: The persisted article when imported
        ai_enhanced: Whether the rewriter produced the content
    """
    title: str
    status: str
    article: PersistedArticle | None = None
    ai_enhanced: bool = False

    @property
    def imported(self) -> bool:
        return self.article is not None

    @property
    def skipped(self) -> bool:
        return self.status == "skipped (duplicate)"


@dataclass
class BatchResult:
    """Aggregated counts and per-article details of one run."""
    message: str = "Import completed"
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    ai_enhanced: int = 0
    analyzed: int = 0
    analysis_failed: int = 0
    details: list[dict[str, str]] = field(default_factory=list)
    imported_articles: list[PersistedArticle] = field(default_factory=list)
    category: str | None = None

    def record(self, outcome: ImportOutcome) -> None:
        if outcome.imported:
            self.imported += 1
            self.imported_articles.append(outcome.article)
            if outcome.ai_enhanced:
                self.ai_enhanced += 1
        elif outcome.skipped:
            self.skipped += 1
        else:
            self.errors += 1
        self.details.append({"title": outcome.title, "status": outcome.status})

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": True,
            "message": self.message,
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.errors,
            "aiEnhanced": self.ai_enhanced,
            "details": list(self.details),
        }
        if self.category is not None:
            body["category"] = self.category
        return body
