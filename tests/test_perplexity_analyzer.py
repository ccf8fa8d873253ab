"""Tests for the Perplexity article analyzer."""

from __future__ import annotations

import json

import httpx
import pytest

from newswire.config import LoggingConfig, ProviderConfig
from newswire.llm.providers.analyzer import PerplexityAnalyzer, parse_analysis
from newswire.llm.providers.factory import create_analyzer

ANALYSIS_JSON = {
    "markets": ["US", "Mars"],
    "primarySector": "technology",
    "primaryStock": "nvda",
    "mentionedStocks": ["NVDA", "amd", "NOT-A-TICKER", "NVDA"],
    "businessType": "earnings",
    "sentiment": "bullish",
    "impactLevel": "high",
    "suggestedCategories": ["us-markets", "tech", "gossip"],
    "confidence": 1.7,
}


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"content": content}}], "usage": {"total_tokens": 90}}


def _analyzer(handler) -> PerplexityAnalyzer:
    return PerplexityAnalyzer(
        ProviderConfig(api_key="pplx-test"),
        "pplx-test",
        LoggingConfig(),
        transport=httpx.MockTransport(handler),
    )


def test_parse_analysis_keeps_only_known_values():
    result = parse_analysis("```json\n" + json.dumps(ANALYSIS_JSON) + "\n```")

    signal = result.signal
    assert result.categories == ["us-markets", "tech"]
    assert signal.markets == ["US"]
    assert signal.tickers == ["NVDA", "AMD"]
    assert signal.primary_stock == "NVDA"
    assert signal.primary_sector == "technology"
    assert signal.impact_level == "high"
    assert signal.confidence == 1.0
    assert signal.model == "sonar"


def test_parse_analysis_defaults_for_invalid_fields():
    result = parse_analysis(json.dumps({"sentiment": "euphoric", "primarySector": "space", "confidence": "high"}))

    assert result.categories == []
    assert result.signal.sentiment == "neutral"
    assert result.signal.business_type == "other"
    assert result.signal.impact_level == "medium"
    assert result.signal.primary_sector is None
    assert result.signal.confidence == 0.5


def test_analyze_sends_analysis_settings():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion(json.dumps(ANALYSIS_JSON)))

    result = _analyzer(handler).analyze("Nvidia beats estimates", "Body")

    assert result.categories == ["us-markets", "tech"]
    assert seen["body"]["model"] == "sonar"
    assert seen["body"]["temperature"] == pytest.approx(0.3)
    assert seen["body"]["max_tokens"] == 2000
    assert "Nvidia beats estimates" in seen["body"]["messages"][1]["content"]
    assert "health-science" in seen["body"]["messages"][0]["content"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="down"),
        httpx.Response(200, json=_completion("I cannot help with that.")),
        httpx.Response(200, json=_completion("[1, 2]")),
    ],
)
def test_analyze_returns_none_on_failure(response):
    assert _analyzer(lambda request: response).analyze("Title", None) is None


def test_create_analyzer_follows_provider_config(monkeypatch):
    monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
    assert create_analyzer(ProviderConfig(name="none"), LoggingConfig()) is None
    assert create_analyzer(ProviderConfig(), LoggingConfig()) is None
    assert isinstance(create_analyzer(ProviderConfig(api_key="k"), LoggingConfig()), PerplexityAnalyzer)
