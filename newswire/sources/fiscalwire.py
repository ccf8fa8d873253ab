"""FiscalWire source adapter.

FiscalWire articles already carry sentiment, tickers and a category
classification, so they are imported with dual (markets + business)
categories and an analysis record, without going through the AI rewriter.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import os
from typing import Any

import httpx

from ..config import SourceConfig
from ..core.types import NormalizedArticle, SourceSignal
from ..errors import SourceError
from .base import ApiUsage, FetchScope, SourceAdapter, parse_timestamp

logger = logging.getLogger(__name__)

_BUSINESS_CATEGORY_MAP = {
    "earnings": "finance",
    "fda": "health-science",
    "ma": "finance",
    "dividend": "finance",
    "sec_filing": "finance",
}

_BUSINESS_TYPE_MAP = {
    "earnings": "earnings",
    "fda": "regulation",
    "ma": "merger",
    "dividend": "dividend",
    "sec_filing": "filing",
}

_CRYPTO_TICKERS = {"BTC", "ETH", "DOGE", "SOL", "XRP", "ADA"}


def map_business_category(category: str | None) -> str:
    if not category:
        return "finance"
    return _BUSINESS_CATEGORY_MAP.get(category.lower(), "finance")


def determine_business_type(category: str | None) -> str:
    if not category:
        return "news"
    return _BUSINESS_TYPE_MAP.get(category.lower(), "news")


def determine_markets_category(tickers: list[str], content: str | None) -> str:
    """Pick a markets category from tickers and keywords in the body."""
    text = (content or "").lower()
    if any(t in _CRYPTO_TICKERS for t in tickers) or "crypto" in text or "bitcoin" in text:
        return "crypto"
    if "forex" in text or "currency" in text or "exchange rate" in text:
        return "forex"
    if "bond" in text or "treasury" in text or "yield" in text:
        return "bonds"
    if "etf" in text or "fund" in text:
        return "etf"
    return "us-markets"


def map_sentiment(label: str | None, score: float | None) -> tuple[str, float]:
    """Map an upstream sentiment label/score to (sentiment, confidence).

    Examples:
        >>> map_sentiment("Positive", -0.8)
        ('bullish', 0.8)
        >>> map_sentiment(None, None)
        ('neutral', 0.5)
    """
    if not label:
        return "neutral", 0.5
    lowered = label.lower()
    sentiment = "neutral"
    if "positive" in lowered or "bullish" in lowered:
        sentiment = "bullish"
    elif "negative" in lowered or "bearish" in lowered:
        sentiment = "bearish"
    confidence = abs(score) if score is not None else 0.5
    return sentiment, min(confidence, 1.0)


class FiscalWireSource(SourceAdapter):
    name = "fiscalwire"
    label = "FiscalWire"

    def __init__(self, cfg: SourceConfig, transport: httpx.BaseTransport | None = None):
        super().__init__()
        self.cfg = cfg
        self._transport = transport

    def fetch(self, scope: FetchScope) -> list[NormalizedArticle]:
        api_key = os.getenv(self.cfg.fiscalwire_api_key_env)
        if not api_key:
            raise SourceError(f"{self.cfg.fiscalwire_api_key_env} is not configured")

        after = scope.after or datetime.now(timezone.utc) - timedelta(
            hours=self.cfg.fiscalwire_lookback_hours
        )
        params: dict[str, Any] = {"after": after.isoformat(), "per_page": self.cfg.fiscalwire_per_page}
        items: list[dict[str, Any]] = []
        page, pages = 1, 1
        while page <= pages and page <= self.cfg.fiscalwire_max_pages:
            data = self._get({**params, "page": page}, api_key)
            items.extend(data.get("items") or [])
            pages = int(data.get("pages") or 1)
            page += 1

        articles = [
            self._normalize(item)
            for item in items
            if str(item.get("title") or "").strip() and item.get("id") is not None
        ]
        logger.info(
            "Fetched %d FiscalWire articles, %d valid after filtering",
            len(items),
            len(articles),
        )
        self.last_usage = ApiUsage(
            endpoint="/api/v1/news",
            query=f"after={params['after']}",
            results_count=len(items),
            filtered_count=len(articles),
        )
        return articles

    def _get(self, params: dict[str, Any], api_key: str) -> dict[str, Any]:
        try:
            with httpx.Client(
                timeout=self.cfg.timeout_seconds,
                trust_env=self.cfg.trust_env,
                transport=self._transport,
            ) as client:
                resp = client.get(
                    self.cfg.fiscalwire_base_url,
                    params=params,
                    headers={"X-API-Key": api_key},
                )
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise SourceError(
                f"FiscalWire API error: {exc.response.status_code} - {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceError(f"FiscalWire request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise SourceError("FiscalWire API returned invalid JSON") from exc

    def _normalize(self, item: dict[str, Any]) -> NormalizedArticle:
        tickers = [t for t in (item.get("tickers") or []) if t]
        ai_summary = (item.get("ai_summary") or "").strip() or None
        content = item.get("content") or None
        category = item.get("category")
        markets_slug = determine_markets_category(tickers, content)
        business_slug = map_business_category(category)
        sentiment, confidence = map_sentiment(item.get("sentiment_label"), item.get("sentiment_score"))
        signal = SourceSignal(
            sentiment=sentiment,
            confidence=confidence,
            tickers=tickers,
            business_type=determine_business_type(category),
            markets=["Crypto" if markets_slug == "crypto" else "US"],
            primary_sector="healthcare" if business_slug == "health-science" else "financial",
            model="fiscalwire",
            raw={
                "source": "fiscalwire",
                "sentimentScore": item.get("sentiment_score"),
                "sentimentLabel": item.get("sentiment_label"),
                "category": category,
            },
        )
        return NormalizedArticle(
            source=self.name,
            native_id=str(item["id"]),
            title=str(item["title"]).strip(),
            body=content,
            description=ai_summary or (item.get("summary") or "").strip() or None,
            keywords=[],
            image_url=item.get("image_url"),
            published_at=parse_timestamp(item.get("published_at")),
            source_url=item.get("source_url"),
            tickers=tickers,
            markets_category=markets_slug,
            business_category=business_slug,
            signal=signal,
            meta_description=ai_summary[:160] if ai_summary else None,
            seo_keywords=list(tickers),
            ai_summary=ai_summary,
        )
