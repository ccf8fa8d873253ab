"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- DatabaseConfig: SQLAlchemy connection settings
- ProviderConfig: AI rewriting provider and its call quota
- SourceConfig: upstream news API settings
- PipelineConfig: enrichment, taxonomy and slug settings
- HomepageConfig: managed homepage zones and their capacities
- ServerConfig: HTTP trigger settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class DatabaseConfig:
    """Configuration for the content store.

    Attributes:
        url: SQLAlchemy database URL
        echo: Whether to log emitted SQL
    """

    url: str = "sqlite:///newswire.db"
    echo: bool = False


@dataclass
class ProviderConfig:
    """Configuration for the AI rewriting provider.

    Attributes:
        name: Provider name ("perplexity" or "none")
        model: Model identifier
        base_url: Chat completions endpoint
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: HTTP request timeout
        max_tokens: Completion token budget per rewrite
        temperature: Sampling temperature for rewrites
        analysis_model: Model used for article analysis
        analysis_max_tokens: Completion token budget per analysis
        analysis_temperature: Sampling temperature for analysis
        rate_per_minute: Provider quota used by the pacing limiter
        burst: Number of calls allowed back to back before pacing applies
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "perplexity"
    model: str = "sonar"
    base_url: str = "https://api.perplexity.ai/chat/completions"
    api_key_env: str = "PERPLEXITY_API_KEY"
    api_key: str | None = None
    timeout_seconds: float = 60.0
    max_tokens: int = 4000
    temperature: float = 0.7
    analysis_model: str = "sonar"
    analysis_max_tokens: int = 2000
    analysis_temperature: float = 0.3
    rate_per_minute: float = 30.0
    burst: int = 1
    trust_env: bool = True


@dataclass
class SourceConfig:
    """Configuration for upstream news APIs.

    Attributes:
        newsdata_base_url: NewsData.io "latest" endpoint
        newsdata_api_key_env: Environment variable holding the NewsData key
        fiscalwire_base_url: FiscalWire news endpoint
        fiscalwire_api_key_env: Environment variable holding the FiscalWire key
        fiscalwire_per_page: Page size requested from FiscalWire
        fiscalwire_lookback_hours: Time window for the FiscalWire job
        fiscalwire_max_pages: Maximum result pages fetched per run
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
    """

    newsdata_base_url: str = "https://newsdata.io/api/1/latest"
    newsdata_api_key_env: str = "NEWSDATA_API_KEY"
    fiscalwire_base_url: str = "https://api.thefiscalwire.com/api/v1/news"
    fiscalwire_api_key_env: str = "FISCALWIRE_API_KEY"
    fiscalwire_per_page: int = 50
    fiscalwire_lookback_hours: int = 24
    fiscalwire_max_pages: int = 1
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass
class PipelineConfig:
    """Configuration for per-article processing.

    Attributes:
        paywall_marker: Paragraphs containing this text are dropped
        max_tags: Maximum keywords turned into tags per article
        slug_max_length: Maximum length of a base slug
        slug_retry_limit: Insert attempts on slug conflicts before giving up
        placeholder_image: Image URL used when the source has none
    """

    paywall_marker: str = "ONLY AVAILABLE IN PAID PLANS"
    max_tags: int = 5
    slug_max_length: int = 100
    slug_retry_limit: int = 5
    placeholder_image: str = "/images/placeholder-news.jpg"


@dataclass
class ZoneSpec:
    """A managed homepage zone and its capacity."""

    slug: str
    capacity: int


def _default_zones() -> list[ZoneSpec]:
    return [
        ZoneSpec("hero-featured", 4),
        ZoneSpec("article-grid", 6),
        ZoneSpec("trending-sidebar", 8),
    ]


@dataclass
class HomepageConfig:
    """Configuration for the homepage zone refresh.

    Attributes:
        page_slug: Slug of the homepage page row
        zones: Zones in fill order with their capacities
    """

    page_slug: str = "homepage"
    zones: list[ZoneSpec] = field(default_factory=_default_zones)

    @property
    def total_capacity(self) -> int:
        return sum(zone.capacity for zone in self.zones)


@dataclass
class ServerConfig:
    """Configuration for the HTTP trigger.

    Attributes:
        host: Bind address for `newswire serve`
        port: Bind port for `newswire serve`
        cron_secret_env: Environment variable holding the shared bearer secret
        allow_unauthenticated: Accept requests when no secret is configured
    """

    host: str = "127.0.0.1"
    port: int = 8000
    cron_secret_env: str = "CRON_SECRET"
    allow_unauthenticated: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        path: Log file path
        llm_log_enabled: Whether to log AI provider responses to a separate file
        llm_log_detail: "response_only" or "prompt_response"
        llm_log_file: Path of the AI provider response log (JSONL)
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    path: str = "logs/newswire.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_file: str = "logs/llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    homepage: HomepageConfig = field(default_factory=HomepageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    homepage = dict(data["homepage"])
    homepage["zones"] = [
        zone if isinstance(zone, ZoneSpec) else ZoneSpec(**zone) for zone in homepage["zones"]
    ]
    return AppConfig(
        database=DatabaseConfig(**data["database"]),
        provider=ProviderConfig(**data["provider"]),
        sources=SourceConfig(**data["sources"]),
        pipeline=PipelineConfig(**data["pipeline"]),
        homepage=HomepageConfig(**homepage),
        server=ServerConfig(**data["server"]),
        logging=LoggingConfig(**data["logging"]),
        langfuse=LangfuseConfig(**data.get("langfuse", {})),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def get_cron_secret(cfg: ServerConfig) -> str | None:
    return os.getenv(cfg.cron_secret_env) or None
