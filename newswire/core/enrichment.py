"""
Content enrichment ladder.

Each article first goes to the AI rewriter. When the rewriter is disabled
or yields nothing (timeout, provider error, unparsable response), the raw
body is split into paragraph blocks instead. The ladder itself never fails:
it always returns a non-empty excerpt and at least one content block.
"""

from __future__ import annotations

import logging
import math
import re

from ..llm.providers.base import Rewriter
from .types import ContentBlock, EnrichedContent, NormalizedArticle, RewriteResult, paragraph

logger = logging.getLogger(__name__)

PAYWALL_MARKER = "ONLY AVAILABLE IN PAID PLANS"
UNTITLED = "Untitled"

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")
_TICKER_RE = re.compile(r"\$([A-Z]{1,5})\b|\((?:NYSE|NASDAQ|AMEX|OTC)\s*:\s*([A-Z]{1,5})\)")
_COMMON_WORDS = {
    "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER", "WAS", "ONE",
    "OUR", "OUT", "HAS", "HIS", "HOW", "ITS", "MAY", "NEW", "NOW", "OLD", "SEE", "WAY",
    "WHO", "BOY", "DID", "GET", "HIM", "LET", "PUT", "SAY", "SHE", "TOO", "USE",
}


def split_paragraphs(text: str, paywall_marker: str = PAYWALL_MARKER) -> list[ContentBlock]:
    """Split text on blank lines into paragraph blocks.

    Empty paragraphs and paragraphs containing the paywall marker
    (case-insensitive) are dropped.

    Examples:
        >>> split_paragraphs("A\\n\\nONLY AVAILABLE IN PAID PLANS\\n\\nB")
        [{'type': 'paragraph', 'content': 'A'}, {'type': 'paragraph', 'content': 'B'}]
    """
    marker = paywall_marker.upper()
    blocks: list[ContentBlock] = []
    for chunk in _PARAGRAPH_SPLIT_RE.split(text):
        chunk = chunk.strip()
        if not chunk:
            continue
        if marker and marker in chunk.upper():
            continue
        blocks.append(paragraph(chunk))
    return blocks


def merge_keywords(original: list[str], suggested: list[str]) -> list[str]:
    """Union of two keyword lists, deduplicated, first occurrence wins."""
    merged: list[str] = []
    for keyword in [*original, *suggested]:
        if keyword and keyword not in merged:
            merged.append(keyword)
    return merged


def estimate_read_time(body: str | None, words_per_minute: int = 200) -> int:
    """Estimate reading time in minutes; 3 when there is no body."""
    if not body:
        return 3
    words = len(body.split())
    return max(1, math.ceil(words / words_per_minute))


def extract_tickers(body: str | None, title: str, limit: int = 10) -> list[str]:
    """Pull ticker symbols written as `$TSLA` or `(NASDAQ: AAPL)`."""
    text = f"{title} {body or ''}"
    tickers: list[str] = []
    for match in _TICKER_RE.finditer(text):
        symbol = match.group(1) or match.group(2)
        if len(symbol) < 2 or symbol in _COMMON_WORDS or symbol in tickers:
            continue
        tickers.append(symbol)
    return tickers[:limit]


class EnrichmentLadder:
    """Produces persistable content for an article, preferring an AI rewrite.

    Args:
        rewriter: AI rewriter, or None to go straight to the fallback step
        paywall_marker: Paragraph marker dropped by the fallback step
    """

    def __init__(self, rewriter: Rewriter | None, paywall_marker: str = PAYWALL_MARKER):
        self.rewriter = rewriter
        self.paywall_marker = paywall_marker

    @property
    def uses_ai(self) -> bool:
        return self.rewriter is not None

    def enrich(self, article: NormalizedArticle) -> EnrichedContent:
        rewrite = self._try_rewrite(article)
        if rewrite is not None:
            blocks = split_paragraphs(rewrite.content, paywall_marker="")
            if blocks:
                return EnrichedContent(
                    title=rewrite.title,
                    excerpt=rewrite.excerpt or rewrite.content[:200],
                    blocks=blocks,
                    keywords=merge_keywords(article.keywords, rewrite.suggested_tags),
                    meta_description=rewrite.meta_description or None,
                    seo_keywords=list(rewrite.seo_keywords),
                    ai_enhanced=True,
                )
            logger.warning("Rewrite for %r had no paragraphs, using original content", article.title)
        return self.fallback(article)

    def fallback(self, article: NormalizedArticle) -> EnrichedContent:
        """Build content from the raw article without any external call.

        Blank descriptions and titles count as missing. An article with an
        upstream AI summary is reported as AI-enhanced.
        """
        title = article.title.strip() or UNTITLED
        excerpt = (article.description or "").strip() or title
        blocks: list[ContentBlock] = []
        if article.body:
            blocks = split_paragraphs(article.body, self.paywall_marker)
        if not blocks:
            blocks = [paragraph(excerpt)]
        return EnrichedContent(
            title=title,
            excerpt=excerpt,
            blocks=blocks,
            keywords=merge_keywords(article.keywords, []),
            ai_enhanced=bool(article.ai_summary),
        )

    def _try_rewrite(self, article: NormalizedArticle) -> RewriteResult | None:
        if self.rewriter is None:
            return None
        try:
            return self.rewriter.rewrite(article.title, article.body)
        except Exception:  # noqa: BLE001
            logger.exception("Rewriter raised for %r, using original content", article.title)
            return None
