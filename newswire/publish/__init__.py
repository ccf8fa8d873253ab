"""Writing articles and republishing zones and breaking news."""

from .activity import ActivityLogger
from .breaking import BreakingNewsRotator, article_link, pick_candidate
from .persister import ArticlePersister, CategoryLinks
from .placement import ZonePlacementRefresher, ZoneRefreshResult, add_article_to_category_zones

__all__ = [
    "ActivityLogger",
    "BreakingNewsRotator",
    "article_link",
    "pick_candidate",
    "ArticlePersister",
    "CategoryLinks",
    "ZonePlacementRefresher",
    "ZoneRefreshResult",
    "add_article_to_category_zones",
]
