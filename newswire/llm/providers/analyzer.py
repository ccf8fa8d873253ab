"""
Perplexity article analyzer.

Classifies an article into sectors, markets, sentiment and site categories
and picks out the stocks it mentions. Values outside the allowed sets are
dropped, so callers only ever see known ids.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.types import AnalysisResult, SourceSignal
from ..prompts import build_analysis_prompt, build_analysis_system_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import Analyzer
from .perplexity import extract_text, log_llm_response, parse_json_response, post_completion, total_tokens

logger = logging.getLogger(__name__)

VALID_SECTORS = [
    "technology",
    "healthcare",
    "financial",
    "consumer-discretionary",
    "consumer-staples",
    "industrial",
    "energy",
    "utilities",
    "real-estate",
    "materials",
    "communication-services",
]
VALID_MARKETS = ["US", "Europe", "Asia", "Global", "Crypto", "Forex", "Commodities"]
VALID_BUSINESS_TYPES = [
    "earnings",
    "merger",
    "acquisition",
    "ipo",
    "regulation",
    "product_launch",
    "lawsuit",
    "bankruptcy",
    "leadership_change",
    "market_analysis",
    "economic_data",
    "policy",
    "other",
]
VALID_SENTIMENTS = ["bullish", "bearish", "neutral"]
VALID_IMPACT_LEVELS = ["high", "medium", "low"]
VALID_CATEGORIES = [
    "us-markets",
    "europe-markets",
    "asia-markets",
    "forex",
    "crypto",
    "bonds",
    "etf",
    "economy",
    "finance",
    "health-science",
    "real-estate",
    "media",
    "transportation",
    "industrial",
    "sports",
    "tech",
    "politics",
    "consumption",
    "opinion",
]

_TICKER_RE = re.compile(r"^[A-Z]{1,5}$")


class PerplexityAnalyzer(Analyzer):
    """Analyzes articles with Perplexity's chat model."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Perplexity API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport

    def analyze(self, title: str, content: str | None) -> AnalysisResult | None:
        prompt = build_analysis_prompt(title, content)
        payload = {
            "model": self.cfg.analysis_model,
            "messages": [
                {
                    "role": "system",
                    "content": build_analysis_system_prompt(
                        VALID_SECTORS, VALID_MARKETS, VALID_BUSINESS_TYPES, VALID_CATEGORIES
                    ),
                },
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.cfg.analysis_max_tokens,
            "temperature": self.cfg.analysis_temperature,
        }
        text = ""
        with start_span(
            "perplexity.analyze",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.analysis_model, "llm.provider": "perplexity", "article.title": title},
        ) as span:
            try:
                data = post_completion(self.cfg, self.api_key, payload, self._transport)
                text = extract_text(data)
                set_span_output(span, text)
                result = parse_analysis(text, model=self.cfg.analysis_model)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_response(title, "provider_error", str(exc), prompt)
                return None
            except (json.JSONDecodeError, ValueError) as exc:
                record_span_error(span, exc)
                self._log_response(title, "parse_error", text, prompt)
                return None

        self._log_response(title, "ok", text, prompt, tokens=total_tokens(data))
        return result

    def _log_response(
        self,
        title: str,
        status: str,
        content: str,
        prompt: str,
        tokens: int | None = None,
    ) -> None:
        if status == "ok":
            logger.info("Analyzed %r", title[:50])
        else:
            logger.warning("Analysis failed for %r (%s)", title[:50], status)
        log_llm_response(
            self.llm_logger,
            self.log_cfg,
            "llm_analysis_response",
            {"status": status, "model": self.cfg.analysis_model, "article_title": title, "total_tokens": tokens},
            content,
            prompt,
        )


def parse_analysis(content: str, model: str = "sonar") -> AnalysisResult:
    """Parse and validate an analysis response.

    Raises:
        json.JSONDecodeError: If no JSON object can be found
        ValueError: If the response is not a JSON object
    """
    obj = parse_json_response(content)
    stocks = _tickers(obj.get("mentionedStocks"))
    signal = SourceSignal(
        sentiment=_option(obj.get("sentiment"), VALID_SENTIMENTS) or "neutral",
        confidence=_confidence(obj.get("confidence")),
        tickers=stocks,
        business_type=_option(obj.get("businessType"), VALID_BUSINESS_TYPES) or "other",
        markets=_allowed(obj.get("markets"), VALID_MARKETS),
        primary_sector=_option(obj.get("primarySector"), VALID_SECTORS),
        primary_stock=_ticker(obj.get("primaryStock")),
        impact_level=_option(obj.get("impactLevel"), VALID_IMPACT_LEVELS) or "medium",
        model=model,
        raw=obj,
    )
    return AnalysisResult(signal=signal, categories=_allowed(obj.get("suggestedCategories"), VALID_CATEGORIES))


def _allowed(values: Any, valid: list[str]) -> list[str]:
    if not isinstance(values, list):
        return []
    result: list[str] = []
    for value in values:
        if isinstance(value, str) and value in valid and value not in result:
            result.append(value)
    return result


def _option(value: Any, valid: list[str]) -> str | None:
    if isinstance(value, str) and value in valid:
        return value
    return None


def _ticker(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip().upper()
    return cleaned if _TICKER_RE.match(cleaned) else None


def _tickers(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    result: list[str] = []
    for value in values:
        ticker = _ticker(value)
        if ticker and ticker not in result:
            result.append(ticker)
    return result


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.5
    return max(0.0, min(1.0, float(value)))
