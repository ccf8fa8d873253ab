"""
SQLAlchemy models for the content store.

Uniqueness that the pipeline relies on for idempotency is declared here
and enforced by the database: Article.slug, Article.external_id,
Category.slug, Tag.slug and (PageZone.page_id, PageZone.zone_slug).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


article_tags = Table(
    "article_tags",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

article_categories = Table(
    "article_categories",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Author(Base):
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    bio = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Author(name='{self.name}')>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    slug = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    color = Column(String(50), nullable=False, default="bg-blue-600")

    def __repr__(self):
        return f"<Category(slug='{self.slug}')>"


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    slug = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<Tag(slug='{self.slug}')>"


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True)
    slug = Column(String(255), nullable=False, unique=True)
    external_id = Column(String(255), nullable=True, unique=True)
    title = Column(String(500), nullable=False)
    excerpt = Column(Text, nullable=False)
    content = Column(JSON, nullable=False)
    image_url = Column(String(1000), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    read_time = Column(Integer, nullable=False, default=3)
    source_url = Column(String(1000), nullable=True)
    relevant_tickers = Column(JSON, nullable=False, default=list)
    meta_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=False, default=list)
    is_ai_enhanced = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    author_id = Column(Integer, ForeignKey("authors.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    markets_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    business_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    author = relationship("Author")
    category = relationship("Category", foreign_keys=[category_id])
    markets_category = relationship("Category", foreign_keys=[markets_category_id])
    business_category = relationship("Category", foreign_keys=[business_category_id])
    categories = relationship("Category", secondary=article_categories)
    tags = relationship("Tag", secondary=article_tags)
    analysis = relationship(
        "ArticleAnalysis",
        back_populates="article",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Article(slug='{self.slug}')>"


class ArticleAnalysis(Base):
    __tablename__ = "article_analyses"

    id = Column(Integer, primary_key=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, unique=True)
    markets = Column(JSON, nullable=False, default=list)
    primary_sector = Column(String(100), nullable=True)
    primary_stock = Column(String(20), nullable=True)
    mentioned_stocks = Column(JSON, nullable=False, default=list)
    business_type = Column(String(50), nullable=False, default="news")
    sentiment = Column(String(20), nullable=False, default="neutral")
    impact_level = Column(String(20), nullable=False, default="medium")
    confidence = Column(Float, nullable=False, default=0.5)
    ai_model = Column(String(100), nullable=False)
    raw_response = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    article = relationship("Article", back_populates="analysis")


class Page(Base):
    __tablename__ = "pages"

    id = Column(Integer, primary_key=True)
    slug = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    page_type = Column(String(20), nullable=False, default="CATEGORY")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    zones = relationship("PageZone", back_populates="page", cascade="all, delete-orphan")


class PageZone(Base):
    __tablename__ = "page_zones"
    __table_args__ = (UniqueConstraint("page_id", "zone_slug", name="uq_page_zone"),)

    id = Column(Integer, primary_key=True)
    page_id = Column(Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False)
    zone_slug = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    is_enabled = Column(Boolean, nullable=False, default=True)

    page = relationship("Page", back_populates="zones")
    placements = relationship(
        "ContentPlacement",
        back_populates="zone",
        order_by="ContentPlacement.position",
        cascade="all, delete-orphan",
    )


class ContentPlacement(Base):
    __tablename__ = "content_placements"
    __table_args__ = (Index("idx_content_placements_zone_position", "zone_id", "position"),)

    id = Column(Integer, primary_key=True)
    zone_id = Column(Integer, ForeignKey("page_zones.id", ondelete="CASCADE"), nullable=False)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False)
    content_type = Column(String(20), nullable=False, default="ARTICLE")
    position = Column(Integer, nullable=False)
    is_pinned = Column(Boolean, nullable=False, default=False)

    zone = relationship("PageZone", back_populates="placements")


class BreakingNews(Base):
    __tablename__ = "breaking_news"

    id = Column(Integer, primary_key=True)
    headline = Column(String(500), nullable=False)
    url = Column(String(1000), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    type = Column(String(50), nullable=False, index=True)
    action = Column(String(500), nullable=False)
    details = Column(JSON, nullable=True)
    count = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
