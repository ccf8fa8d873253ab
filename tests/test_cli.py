"""Tests for the typer command-line interface."""

from __future__ import annotations

from sqlalchemy import select
from typer.testing import CliRunner

from newswire.cli import app
from newswire.config import DatabaseConfig
from newswire.storage.db import build_engine, build_session_factory
from newswire.storage.models import ActivityLog


def _write_config(tmp_path) -> tuple[str, str]:
    db_url = f"sqlite:///{tmp_path / 'newswire.db'}"
    path = tmp_path / "config.yaml"
    path.write_text(
        f"database:\n  url: {db_url}\n"
        "logging:\n  console: false\n  llm_log_enabled: false\n"
        "langfuse:\n  enabled: false\n",
        encoding="utf-8",
    )
    return str(path), db_url


def test_run_setup_failure_is_logged_as_activity(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path, db_url = _write_config(tmp_path)

    result = CliRunner().invoke(app, ["run", "import-news", "--config", config_path])

    assert result.exit_code == 1
    assert "No authors found in database" in result.output
    engine = build_engine(DatabaseConfig(url=db_url))
    with build_session_factory(engine)() as session:
        log = session.scalar(select(ActivityLog).where(ActivityLog.type == "ERROR"))
        assert log.error_message == "No authors found in database"
        assert log.details == {"source": "import-news", "operation": "cron job execution"}
    engine.dispose()


def test_run_rejects_unknown_job(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path, _ = _write_config(tmp_path)

    result = CliRunner().invoke(app, ["run", "import-weather", "--config", config_path])

    assert result.exit_code != 0
