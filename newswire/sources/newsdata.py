"""NewsData.io source adapter.

Fetches US financial and political news from the "latest" endpoint,
either as a general feed or as a category-specific query.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from ..config import SourceConfig
from ..core.types import NormalizedArticle
from ..errors import SourceError
from .base import ApiUsage, FetchScope, SourceAdapter, parse_timestamp

logger = logging.getLogger(__name__)

SEARCH_QUERY = 'stocks OR investing OR "wall street" OR trading OR market'

CATEGORY_QUERIES: dict[str, str] = {
    "crypto": "bitcoin OR ethereum OR cryptocurrency OR crypto OR blockchain",
    "economy": "economy OR inflation OR federal reserve OR GDP OR unemployment OR fiscal policy",
    "opinion": (
        "market analysis OR stock forecast OR investment outlook OR expert opinion "
        "OR financial commentary"
    ),
}

# our category -> NewsData categories
_UPSTREAM_CATEGORIES: dict[str, str] = {
    "crypto": "business",
    "economy": "politics,business",
    "opinion": "politics,business",
}

_CATEGORY_MAP: dict[str, str] = {
    "business": "markets",
    "politics": "economy",
    "technology": "tech",
    "world": "economy",
    "top": "markets",
}


def map_category(categories: list[str] | None) -> str:
    """Map NewsData categories to a local category slug, first match wins."""
    for category in categories or []:
        mapped = _CATEGORY_MAP.get(category.lower())
        if mapped:
            return mapped
    return "markets"


class NewsDataSource(SourceAdapter):
    name = "newsdata"
    label = "NewsData.io"

    def __init__(self, cfg: SourceConfig, transport: httpx.BaseTransport | None = None):
        super().__init__()
        self.cfg = cfg
        self._transport = transport

    def fetch(self, scope: FetchScope) -> list[NormalizedArticle]:
        api_key = os.getenv(self.cfg.newsdata_api_key_env)
        if not api_key:
            raise SourceError(f"{self.cfg.newsdata_api_key_env} is not configured")

        params = {"apikey": api_key, "language": "en"}
        if scope.category:
            if scope.category not in CATEGORY_QUERIES:
                raise SourceError(f"Unsupported NewsData category: {scope.category}")
            params["q"] = CATEGORY_QUERIES[scope.category]
            params["category"] = _UPSTREAM_CATEGORIES[scope.category]
        else:
            params["q"] = SEARCH_QUERY
            params["country"] = "us"
            params["category"] = "business,politics,technology"

        data = self._get(params)
        if data.get("status") != "success":
            raise SourceError(f"NewsData API returned status: {data.get('status')}")

        results = data.get("results") or []
        articles = [
            self._normalize(item, scope.category)
            for item in results
            if _is_valid(item)
        ]
        logger.info(
            "Fetched %d NewsData articles, %d valid after filtering",
            len(results),
            len(articles),
        )
        self.last_usage = ApiUsage(
            endpoint="latest",
            query=params["q"],
            results_count=len(results),
            filtered_count=len(articles),
        )
        return articles

    def _get(self, params: dict[str, str]) -> dict[str, Any]:
        try:
            with httpx.Client(
                timeout=self.cfg.timeout_seconds,
                trust_env=self.cfg.trust_env,
                transport=self._transport,
            ) as client:
                resp = client.get(self.cfg.newsdata_base_url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise SourceError(
                f"NewsData API error: {exc.response.status_code} - {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceError(f"NewsData request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise SourceError("NewsData API returned invalid JSON") from exc

    def _normalize(self, item: dict[str, Any], target_category: str | None) -> NormalizedArticle:
        return NormalizedArticle(
            source=self.name,
            native_id=str(item["article_id"]),
            title=str(item["title"]).strip(),
            body=item.get("content") or None,
            description=_text(item.get("description")) or None,
            keywords=[k for k in (item.get("keywords") or []) if k],
            image_url=item.get("image_url"),
            published_at=parse_timestamp(item.get("pubDate")),
            source_url=item.get("link"),
            creators=[c for c in (item.get("creator") or []) if c],
            primary_category=target_category or map_category(item.get("category")),
        )


def _is_valid(item: dict[str, Any]) -> bool:
    if item.get("duplicate"):
        logger.debug("Skipping upstream duplicate %s", item.get("article_id"))
        return False
    if not item.get("article_id") or not _text(item.get("title")) or not _text(item.get("description")):
        logger.debug("Skipping article without title/description %s", item.get("article_id"))
        return False
    return True


def _text(value: Any) -> str:
    return str(value or "").strip()
