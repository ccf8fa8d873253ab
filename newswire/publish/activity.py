"""
Activity log emission.

Entries are written to the `activity_logs` table in their own session so
that they never share a transaction with pipeline writes. Failures are
logged and swallowed: logging must not change a run's outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from ..core.types import BatchResult
from ..sources.base import ApiUsage
from ..storage.models import ActivityLog

logger = logging.getLogger(__name__)

_API_LOG_TYPES = {
    "newsdata": "NEWS_API",
    "fiscalwire": "FISCALWIRE_API",
}


class ActivityLogger:
    """Fire-and-forget writer for activity log rows."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def log_activity(
        self,
        type: str,
        action: str,
        status: str,
        details: dict[str, Any] | None = None,
        count: int | None = None,
        error_message: str | None = None,
    ) -> None:
        try:
            with self._session_factory() as session:
                session.add(
                    ActivityLog(
                        type=type,
                        action=action[:500],
                        status=status,
                        details=details,
                        count=count,
                        error_message=error_message,
                    )
                )
                session.commit()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to log activity %s: %s", type, action)

    def log_import(self, source: str, result: BatchResult) -> None:
        status = "WARNING" if result.errors > 0 else "SUCCESS"
        details: dict[str, Any] = {
            "source": source,
            "imported": result.imported,
            "skipped": result.skipped,
            "errors": result.errors,
            "aiEnhanced": result.ai_enhanced,
            "articles": list(result.details),
        }
        if result.analyzed or result.analysis_failed:
            details["analyzed"] = result.analyzed
            details["analysisFailed"] = result.analysis_failed
        if result.category:
            details["category"] = result.category
        self.log_activity(
            type="IMPORT",
            action=f"Imported {result.imported} articles from {source}",
            status=status,
            details=details,
            count=result.imported,
            error_message=f"{result.errors} articles failed to import" if result.errors else None,
        )

    def log_api_usage(self, source_name: str, source_label: str, usage: ApiUsage) -> None:
        self.log_activity(
            type=_API_LOG_TYPES.get(source_name, "NEWS_API"),
            action=(
                f"Fetched {usage.results_count} articles from {source_label} "
                f"({usage.filtered_count} relevant)"
            ),
            status="SUCCESS",
            details={
                "endpoint": usage.endpoint,
                "query": usage.query,
                "resultsCount": usage.results_count,
                "filteredCount": usage.filtered_count,
            },
            count=usage.results_count,
        )

    def log_rewrite_batch(self, total_calls: int, successful_calls: int) -> None:
        failed = total_calls - successful_calls
        self.log_activity(
            type="PERPLEXITY_API",
            action=f"AI rewrite batch: {successful_calls}/{total_calls} successful rewrites",
            status="WARNING" if failed > 0 else "SUCCESS",
            details={"totalCalls": total_calls, "successfulCalls": successful_calls, "failedCalls": failed},
            count=total_calls,
            error_message=f"{failed} API calls failed" if failed > 0 else None,
        )

    def log_error(self, source: str, operation: str, error_message: str, correlation_id: str | None = None) -> None:
        details: dict[str, Any] = {"source": source, "operation": operation}
        if correlation_id:
            details["correlationId"] = correlation_id
        self.log_activity(
            type="ERROR",
            action=f"Error in {source}: {operation}",
            status="ERROR",
            details=details,
            error_message=error_message,
        )

    def log_system_event(self, action: str, details: dict[str, Any] | None = None) -> None:
        self.log_activity(type="SYSTEM", action=action, status="INFO", details=details)
