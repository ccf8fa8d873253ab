"""Source adapter registry."""

from __future__ import annotations

from ..config import SourceConfig
from .base import SourceAdapter
from .fiscalwire import FiscalWireSource
from .newsdata import NewsDataSource

_SOURCE_REGISTRY: dict[str, type[SourceAdapter]] = {
    "newsdata": NewsDataSource,
    "fiscalwire": FiscalWireSource,
}


def available_sources() -> list[str]:
    return sorted(_SOURCE_REGISTRY.keys())


def create_source(name: str, cfg: SourceConfig) -> SourceAdapter:
    builder = _SOURCE_REGISTRY.get(name.lower().strip())
    if builder is None:
        supported = ", ".join(available_sources())
        raise ValueError(f"Unsupported source: {name}. Supported: {supported}")
    return builder(cfg)
