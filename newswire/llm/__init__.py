"""AI rewriting, analysis and observability."""

from .providers.analyzer import PerplexityAnalyzer
from .providers.base import Analyzer, Rewriter
from .providers.factory import available_providers, create_analyzer, create_rewriter
from .providers.perplexity import PerplexityRewriter
from .tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span

__all__ = [
    "Analyzer",
    "Rewriter",
    "PerplexityAnalyzer",
    "PerplexityRewriter",
    "create_analyzer",
    "create_rewriter",
    "available_providers",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
