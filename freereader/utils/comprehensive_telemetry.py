"""
Per-attempt extraction telemetry.

Each strategy attempt (and each cache hit) produces exactly one row in
``extraction_logs``. Rows are never updated after insertion; the read
helpers exist for monitoring only.
"""

import logging
import time
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from freereader.crawler import LoggingFailure
from freereader.models import ExtractionLog, utcnow
from freereader.models.database import DatabaseManager, _commit_with_retry

from .extraction_outcomes import AttemptStatus

logger = logging.getLogger(__name__)


class ExtractionAttemptMetrics:
    """Tracks metrics for a single strategy attempt."""

    def __init__(self, url: str, method: str, attempt_number: int):
        self.url = url
        self.method = method
        self.attempt_number = attempt_number

        self._started = time.monotonic()
        self.response_time_ms: float = 0.0

        self.status: AttemptStatus = AttemptStatus.FAILED
        self.error_message: str | None = None
        self.content_length = 0
        self.completeness_score: int | None = None
        self.completeness_indicators: dict[str, Any] | None = None

    def stop(self) -> float:
        """Freeze the response time; later calls keep the first value."""
        if not self.response_time_ms:
            self.response_time_ms = (time.monotonic() - self._started) * 1000
        return self.response_time_ms

    def record_result(
        self,
        status: AttemptStatus,
        content_length: int,
        score: int,
        indicators: dict[str, Any] | None = None,
    ):
        self.stop()
        self.status = status
        self.content_length = content_length
        self.completeness_score = score
        self.completeness_indicators = indicators

    def record_error(self, error: Exception):
        self.stop()
        self.status = AttemptStatus.FAILED
        self.error_message = str(error) or error.__class__.__name__


class ExtractionLogger:
    """Append-only writer and read helpers for ``extraction_logs``."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def record(self, metrics: ExtractionAttemptMetrics) -> None:
        """Insert one attempt row.

        Raises:
            LoggingFailure: the database rejected the insert
        """
        entry = ExtractionLog(
            url=metrics.url,
            attempt_number=metrics.attempt_number,
            method=metrics.method,
            status=metrics.status.value,
            error_message=metrics.error_message,
            response_time_ms=round(metrics.response_time_ms, 2),
            content_length=metrics.content_length,
            completeness_score=metrics.completeness_score,
            completeness_indicators=metrics.completeness_indicators,
            created_at=utcnow(),
        )
        try:
            with self.db.get_session() as session:
                session.add(entry)
                _commit_with_retry(session)
        except SQLAlchemyError as e:
            raise LoggingFailure(f"Failed to log attempt for {metrics.url}: {e}") from e

    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        """Latest ``limit`` log rows, newest first."""
        with self.db.get_session() as session:
            rows = (
                session.execute(
                    select(ExtractionLog)
                    .order_by(ExtractionLog.created_at.desc(), ExtractionLog.id.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [
                {
                    "id": row.id,
                    "url": row.url,
                    "attempt_number": row.attempt_number,
                    "method": row.method,
                    "status": row.status,
                    "error_message": row.error_message,
                    "response_time_ms": row.response_time_ms,
                    "content_length": row.content_length,
                    "completeness_score": row.completeness_score,
                    "created_at": row.created_at,
                }
                for row in rows
            ]

    def summary(self, hours: int = 24) -> list[dict[str, Any]]:
        """Per-method attempt counts and averages for the last ``hours``."""
        cutoff = utcnow() - timedelta(hours=hours)
        with self.db.get_session() as session:
            rows = session.execute(
                select(
                    ExtractionLog.method,
                    ExtractionLog.status,
                    func.count(ExtractionLog.id),
                    func.avg(ExtractionLog.response_time_ms),
                    func.avg(ExtractionLog.completeness_score),
                )
                .where(ExtractionLog.created_at >= cutoff)
                .group_by(ExtractionLog.method, ExtractionLog.status)
            ).all()

        by_method: dict[str, dict[str, Any]] = {}
        for method, status, count, avg_time, avg_score in rows:
            stats = by_method.setdefault(
                method,
                {
                    "method": method,
                    "attempts": 0,
                    "success": 0,
                    "partial": 0,
                    "failed": 0,
                    "_time_total": 0.0,
                    "_score_total": 0.0,
                    "_scored": 0,
                },
            )
            stats["attempts"] += count
            stats[status] = stats.get(status, 0) + count
            stats["_time_total"] += (avg_time or 0.0) * count
            if avg_score is not None:
                stats["_score_total"] += avg_score * count
                stats["_scored"] += count

        results = []
        for stats in by_method.values():
            attempts = stats["attempts"]
            scored = stats.pop("_scored")
            stats["avg_response_time_ms"] = round(stats.pop("_time_total") / attempts, 2)
            score_total = stats.pop("_score_total")
            stats["avg_completeness_score"] = (
                round(score_total / scored, 2) if scored else None
            )
            stats["success_rate"] = round(stats["success"] / attempts * 100, 2)
            results.append(stats)

        results.sort(key=lambda item: item["attempts"], reverse=True)
        return results
