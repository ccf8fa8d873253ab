"""Abstract interface for upstream news sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from ..core.types import NormalizedArticle

logger = logging.getLogger(__name__)


@dataclass
class FetchScope:
    """What a single run should fetch.

    Attributes:
        category: Target category slug for category-scoped runs
        after: Only fetch articles published after this instant
    """
    category: str | None = None
    after: datetime | None = None


@dataclass
class ApiUsage:
    """Upstream call summary reported to the activity log."""
    endpoint: str
    query: str
    results_count: int
    filtered_count: int


class SourceAdapter(ABC):
    """Fetches and normalizes a batch of articles from one provider.

    `fetch` raises `SourceError` when the upstream call fails; that error
    aborts the run.
    """

    name: str = "source"
    label: str = "Source"

    def __init__(self):
        self.last_usage: ApiUsage | None = None

    @abstractmethod
    def fetch(self, scope: FetchScope) -> list[NormalizedArticle]:
        raise NotImplementedError


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an upstream timestamp into an aware UTC datetime.

    Accepts ISO 8601 (with or without a trailing "Z") and the
    "YYYY-MM-DD HH:MM:SS" form; naive values are taken as UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Unparsable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
