"""Provider factory and registry for AI rewriting and analysis backends."""

from __future__ import annotations

import logging

from ...config import LoggingConfig, ProviderConfig, get_api_key
from .analyzer import PerplexityAnalyzer
from .base import Analyzer, Rewriter
from .perplexity import PerplexityRewriter


ProviderBuilder = type[Rewriter]
AnalyzerBuilder = type[Analyzer]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "perplexity": PerplexityRewriter,
}

_ANALYZER_REGISTRY: dict[str, AnalyzerBuilder] = {
    "perplexity": PerplexityAnalyzer,
}

_DISABLED = {"none", "off", "disabled", ""}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_rewriter(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
) -> Rewriter | None:
    """Build a rewriter from runtime config.

    Returns None when rewriting is disabled by name or no API key is
    available; the enrichment ladder then uses the original content.
    """
    builder = _lookup(_PROVIDER_REGISTRY, provider_cfg)
    api_key = _api_key(builder, provider_cfg, "rewriting")
    if api_key is None:
        return None
    return builder(provider_cfg, api_key, log_cfg, llm_logger)


def create_analyzer(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
) -> Analyzer | None:
    """Build an article analyzer; None under the same conditions as `create_rewriter`."""
    builder = _lookup(_ANALYZER_REGISTRY, provider_cfg)
    api_key = _api_key(builder, provider_cfg, "analysis")
    if api_key is None:
        return None
    return builder(provider_cfg, api_key, log_cfg, llm_logger)


def _lookup(registry: dict[str, type], provider_cfg: ProviderConfig) -> type | None:
    name = provider_cfg.name.lower().strip()
    if name in _DISABLED:
        return None
    builder = registry.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    return builder


def _api_key(builder: type | None, provider_cfg: ProviderConfig, feature: str) -> str | None:
    if builder is None:
        return None
    api_key = get_api_key(provider_cfg)
    if not api_key:
        logging.getLogger(__name__).error(
            "%s API key not configured (%s), %s disabled",
            provider_cfg.name,
            provider_cfg.api_key_env,
            feature,
        )
        return None
    return api_key
