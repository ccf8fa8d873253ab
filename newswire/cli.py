"""
Command-line interface for newswire.

Uses Typer to run the HTTP trigger, individual jobs and database setup.
Loads `.env` files so API keys and the cron secret can live outside the
config file.
"""

from __future__ import annotations

import json
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
import uvicorn

from .api import create_app
from .config import AppConfig, load_config
from .errors import BatchSetupError, EmptyStoreError, InvalidCategoryError
from .llm.tracing import flush, setup_langfuse
from .logging_utils import setup_llm_logger, setup_logging
from .runner import JOBS, BatchRunner
from .storage.db import build_engine, build_session_factory, init_db, seed_defaults

app = typer.Typer(add_completion=False)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to a YAML config file.")


def _bootstrap(config: Path | None, log_level: str | None = None) -> AppConfig:
    load_dotenv()
    if config is not None and not config.exists():
        raise typer.BadParameter(f"Config file not found: {config}", param_hint="--config")
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    setup_langfuse(cfg.langfuse)
    return cfg


def _runner(cfg: AppConfig) -> BatchRunner:
    engine = build_engine(cfg.database)
    init_db(engine)
    return BatchRunner(cfg, build_session_factory(engine), llm_logger=setup_llm_logger(cfg.logging))


@app.command()
def serve(
    config: Path | None = ConfigOption,
    host: str | None = typer.Option(None, "--host", help="Bind address."),
    port: int | None = typer.Option(None, "--port", help="Bind port."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Serve the scheduler endpoints over HTTP."""
    cfg = _bootstrap(config, log_level)
    try:
        uvicorn.run(
            create_app(cfg, llm_logger=setup_llm_logger(cfg.logging)),
            host=host or cfg.server.host,
            port=port or cfg.server.port,
            log_config=None,
        )
    finally:
        flush()


@app.command()
def run(
    job: str = typer.Argument(..., help=f"Job to run: {', '.join(sorted(JOBS))}."),
    category: str | None = typer.Option(None, "--category", help="Category for import-category."),
    config: Path | None = ConfigOption,
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Run one ingestion job and print its result as JSON."""
    cfg = _bootstrap(config, log_level)
    if job not in JOBS:
        raise typer.BadParameter(f"Unknown job {job}. Available: {', '.join(sorted(JOBS))}")
    runner = _runner(cfg)
    try:
        result = runner.run(job, category)
    except InvalidCategoryError as exc:
        raise typer.BadParameter(str(exc), param_hint="--category") from exc
    except BatchSetupError as exc:
        runner.activity.log_error(job, "cron job execution", str(exc))
        console.print(f"[red]{job} failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        flush()
    console.print_json(json.dumps(result.to_response()))


@app.command("refresh-homepage")
def refresh_homepage(
    config: Path | None = ConfigOption,
):
    """Rebuild homepage zones and breaking news from the most recent articles."""
    cfg = _bootstrap(config)
    try:
        refresh = _runner(cfg).refresh_homepage()
    except EmptyStoreError as exc:
        console.print("[yellow]No articles found[/yellow]")
        raise typer.Exit(code=1) from exc
    console.print_json(json.dumps(refresh.to_response()))


@app.command("init-db")
def init_db_command(
    config: Path | None = ConfigOption,
    seed: bool = typer.Option(False, "--seed/--no-seed", help="Create homepage zones, categories and house author."),
):
    """Create the database schema."""
    cfg = _bootstrap(config)
    engine = build_engine(cfg.database)
    init_db(engine)
    if seed:
        with build_session_factory(engine)() as session:
            seed_defaults(session, cfg.homepage)
    console.print(f"Database ready: {cfg.database.url}")


if __name__ == "__main__":
    app()
