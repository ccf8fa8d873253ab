"""Abstract interfaces for AI article rewriting and analysis."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...core.types import AnalysisResult, RewriteResult


class Rewriter(ABC):
    """Provider interface for rewriting a raw article."""

    @abstractmethod
    def rewrite(self, title: str, content: str | None) -> RewriteResult | None:
        """Return a structured rewrite, or None when the provider is unavailable.

        Implementations must not raise: timeouts, HTTP errors and unparsable
        responses all collapse to None.
        """
        raise NotImplementedError


class Analyzer(ABC):
    """Provider interface for classifying a raw article."""

    @abstractmethod
    def analyze(self, title: str, content: str | None) -> AnalysisResult | None:
        """Return sector, market, sentiment and category analysis, or None on failure."""
        raise NotImplementedError
