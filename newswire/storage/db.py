"""Engine and session helpers for the content store."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig, HomepageConfig
from .models import Author, Base, Category, Page, PageZone

logger = logging.getLogger(__name__)

HOUSE_AUTHOR = "NewsData"


def build_engine(cfg: DatabaseConfig) -> Engine:
    """Create an engine for the configured URL.

    SQLite connections may be used from the HTTP worker threads. In-memory
    SQLite shares a single connection so that every session sees the same
    database.
    """
    if cfg.url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            cfg.url,
            echo=cfg.echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if cfg.url.startswith("sqlite"):
        return create_engine(cfg.url, echo=cfg.echo, connect_args={"check_same_thread": False})
    return create_engine(cfg.url, echo=cfg.echo, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def seed_defaults(session: Session, homepage: HomepageConfig) -> None:
    """Create the homepage, its managed zones and the house author if missing."""
    from ..core.taxonomy import CATEGORY_TABLE

    page = session.scalar(select(Page).where(Page.slug == homepage.page_slug))
    if page is None:
        page = Page(slug=homepage.page_slug, name="Homepage", page_type="HOMEPAGE")
        session.add(page)
        session.flush()

    existing = {zone.zone_slug for zone in page.zones}
    for spec in homepage.zones:
        if spec.slug not in existing:
            session.add(PageZone(page_id=page.id, zone_slug=spec.slug, capacity=spec.capacity))

    for slug, (name, color) in CATEGORY_TABLE.items():
        if session.scalar(select(Category.id).where(Category.slug == slug)) is None:
            session.add(Category(slug=slug, name=name, color=color))

    if session.scalar(select(Author.id).where(Author.name == HOUSE_AUTHOR)) is None:
        session.add(Author(name=HOUSE_AUTHOR, bio="Automated news import from NewsData.io"))

    session.commit()
    logger.info("Seeded homepage %s with %d zones", homepage.page_slug, len(homepage.zones))
