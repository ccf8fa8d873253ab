"""AI rewriting and analysis providers."""

from .base import Analyzer, Rewriter
from .analyzer import PerplexityAnalyzer
from .factory import available_providers, create_analyzer, create_rewriter
from .perplexity import PerplexityRewriter

__all__ = [
    "Analyzer",
    "Rewriter",
    "PerplexityAnalyzer",
    "PerplexityRewriter",
    "available_providers",
    "create_analyzer",
    "create_rewriter",
]
