"""Upstream news source adapters."""

from .base import ApiUsage, FetchScope, SourceAdapter, parse_timestamp
from .factory import available_sources, create_source
from .fiscalwire import FiscalWireSource
from .newsdata import CATEGORY_QUERIES, NewsDataSource

__all__ = [
    "ApiUsage",
    "FetchScope",
    "SourceAdapter",
    "parse_timestamp",
    "available_sources",
    "create_source",
    "FiscalWireSource",
    "NewsDataSource",
    "CATEGORY_QUERIES",
]
