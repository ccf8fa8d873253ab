"""
FastAPI application exposing the ingestion jobs as scheduler endpoints.

Every `/api/cron/*` route requires either `Authorization: Bearer <secret>`
or the `x-vercel-cron: 1` header set by the scheduler. The secret is read
from the environment variable named by `server.cron_secret_env` and is never
accepted as a query parameter.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Callable
import uuid

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import __version__
from .config import AppConfig, get_cron_secret
from .errors import EmptyStoreError, InvalidCategoryError
from .runner import BatchRunner
from .storage.db import build_engine, build_session_factory, init_db

logger = logging.getLogger(__name__)


class CronAuthError(Exception):
    """Raised by the auth dependency when a request is not authorized."""


def build_cron_auth(cfg: AppConfig) -> Callable[..., None]:
    """Return a FastAPI dependency enforcing the scheduler auth rules."""

    def require_cron_auth(
        authorization: str | None = Header(default=None),
        x_vercel_cron: str | None = Header(default=None),
    ) -> None:
        if x_vercel_cron == "1":
            return
        secret = get_cron_secret(cfg.server)
        if not secret:
            if cfg.server.allow_unauthenticated:
                return
            logger.warning("Rejected cron request: no secret configured")
            raise CronAuthError()
        if authorization and secrets.compare_digest(authorization, f"Bearer {secret}"):
            return
        logger.warning("Rejected cron request: bad or missing bearer token")
        raise CronAuthError()

    return require_cron_auth


def create_app(
    cfg: AppConfig,
    session_factory: Callable[[], Session] | None = None,
    runner: BatchRunner | None = None,
    llm_logger: logging.Logger | None = None,
) -> FastAPI:
    """Build the HTTP app.

    Args:
        cfg: Application configuration
        session_factory: Session factory; built from `cfg.database` if omitted
        runner: Batch runner; built from `cfg` and `session_factory` if omitted
        llm_logger: Logger for raw AI provider responses, passed to the runner
    """
    if session_factory is None:
        engine = build_engine(cfg.database)
        init_db(engine)
        session_factory = build_session_factory(engine)
    runner = runner or BatchRunner(cfg, session_factory, llm_logger=llm_logger)

    app = FastAPI(title="newswire", version=__version__)
    app.state.runner = runner
    require_cron_auth = build_cron_auth(cfg)

    @app.exception_handler(CronAuthError)
    async def _unauthorized(request: Request, exc: CronAuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    def run_job(job: str, category: str | None = None) -> Any:
        try:
            result = runner.run(job, category)
        except InvalidCategoryError as exc:
            return JSONResponse(status_code=400, content={"error": str(exc)})
        except Exception as exc:  # noqa: BLE001
            return _failure(runner, job, "cron job execution", "Import failed", exc)
        return result.to_response()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/cron/import-news", dependencies=[Depends(require_cron_auth)])
    def import_news() -> Any:
        return run_job("import-news")

    @app.get("/api/cron/import-fiscalwire", dependencies=[Depends(require_cron_auth)])
    def import_fiscalwire() -> Any:
        return run_job("import-fiscalwire")

    @app.get("/api/cron/import-category", dependencies=[Depends(require_cron_auth)])
    def import_category(category: str | None = Query(default=None)) -> Any:
        return run_job("import-category", category)

    @app.get("/api/cron/refresh-homepage", dependencies=[Depends(require_cron_auth)])
    def refresh_homepage() -> Any:
        try:
            refresh = runner.refresh_homepage()
        except EmptyStoreError:
            return JSONResponse(status_code=404, content={"success": False, "error": "No articles found"})
        except Exception as exc:  # noqa: BLE001
            return _failure(runner, "refresh-homepage", "homepage refresh", "Refresh failed", exc)
        return refresh.to_response()

    return app


def _failure(runner: BatchRunner, source: str, operation: str, message: str, exc: Exception) -> JSONResponse:
    correlation_id = uuid.uuid4().hex
    logger.exception("%s failed (correlation id %s)", source, correlation_id)
    runner.activity.log_error(source, operation, str(exc), correlation_id=correlation_id)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": message, "correlationId": correlation_id},
    )
