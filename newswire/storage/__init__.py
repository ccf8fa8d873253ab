"""Content store: SQLAlchemy models and session helpers."""

from .db import HOUSE_AUTHOR, build_engine, build_session_factory, init_db, seed_defaults
from .models import (
    ActivityLog,
    Article,
    ArticleAnalysis,
    Author,
    Base,
    BreakingNews,
    Category,
    ContentPlacement,
    Page,
    PageZone,
    Tag,
)

__all__ = [
    "HOUSE_AUTHOR",
    "build_engine",
    "build_session_factory",
    "init_db",
    "seed_defaults",
    "ActivityLog",
    "Article",
    "ArticleAnalysis",
    "Author",
    "Base",
    "BreakingNews",
    "Category",
    "ContentPlacement",
    "Page",
    "PageZone",
    "Tag",
]
