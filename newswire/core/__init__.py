"""
Core domain models and business logic.

This package contains data types and the per-article processing steps
(deduplication, enrichment, taxonomy, slugs) that are independent of
any specific source or publishing target.
"""

from .types import (
    AnalysisResult,
    BatchResult,
    EnrichedContent,
    ImportOutcome,
    NormalizedArticle,
    RewriteResult,
    SourceSignal,
)
from .dedup import DedupGate, build_external_id
from .slugs import SlugAllocator, slugify

__all__ = [
    "AnalysisResult",
    "BatchResult",
    "EnrichedContent",
    "ImportOutcome",
    "NormalizedArticle",
    "RewriteResult",
    "SourceSignal",
    "DedupGate",
    "build_external_id",
    "SlugAllocator",
    "slugify",
]
