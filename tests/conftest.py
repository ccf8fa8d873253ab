"""Shared fixtures: an in-memory content store seeded with the homepage."""

from __future__ import annotations

import pytest

from newswire.config import AppConfig, DatabaseConfig
from newswire.storage.db import build_engine, build_session_factory, init_db, seed_defaults
from newswire.storage.models import Author


@pytest.fixture()
def cfg() -> AppConfig:
    return AppConfig(database=DatabaseConfig(url="sqlite://"))


@pytest.fixture()
def session_factory(cfg):
    engine = build_engine(cfg.database)
    init_db(engine)
    factory = build_session_factory(engine)
    with factory() as session:
        seed_defaults(session, cfg.homepage)
        session.add_all([Author(name="Jane Doe"), Author(name="John Roe")])
        session.commit()
    yield factory
    engine.dispose()


@pytest.fixture()
def session(session_factory):
    with session_factory() as session:
        yield session
