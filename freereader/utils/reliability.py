"""Per-domain reliability statistics.

Every attempt updates the domain's row with one ``INSERT ... ON CONFLICT DO
UPDATE`` statement whose SET clause reads the current row, so concurrent
requests against the same domain never lose an increment.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError

from freereader.crawler import ReliabilityUpdateFailure
from freereader.models import UrlReliability, utcnow
from freereader.models.database import DatabaseManager, _commit_with_retry, upsert

logger = logging.getLogger(__name__)


class ReliabilityTracker:
    """Maintain the ``url_reliability`` table."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def record_attempt(
        self,
        url_pattern: str,
        method: str,
        success: bool,
        response_time_ms: float,
    ) -> None:
        """Fold one attempt into the domain's statistics.

        ``best_method`` and ``last_success_at`` change only on success and
        always take the latest successful method.

        Raises:
            ReliabilityUpdateFailure: the database rejected the update
        """
        table = UrlReliability.__table__
        now = utcnow()
        response_time_ms = float(response_time_ms or 0.0)

        values = {
            "url_pattern": url_pattern,
            "total_attempts": 1,
            "successful_attempts": 1 if success else 0,
            "best_method": method if success else None,
            "average_response_time_ms": response_time_ms,
            "last_success_at": now if success else None,
            "updated_at": now,
        }

        def set_clause(stmt) -> dict[str, Any]:
            total = table.c.total_attempts
            return {
                "total_attempts": total + 1,
                "successful_attempts": table.c.successful_attempts
                + stmt.excluded.successful_attempts,
                "average_response_time_ms": (
                    table.c.average_response_time_ms * total
                    + stmt.excluded.average_response_time_ms
                )
                / (total + 1),
                "best_method": func.coalesce(
                    stmt.excluded.best_method, table.c.best_method
                ),
                "last_success_at": func.coalesce(
                    stmt.excluded.last_success_at, table.c.last_success_at
                ),
                "updated_at": stmt.excluded.updated_at,
            }

        try:
            with self.db.get_session() as session:
                upsert(
                    session,
                    table,
                    values,
                    index_elements=["url_pattern"],
                    set_=set_clause,
                )
                _commit_with_retry(session)
        except SQLAlchemyError as e:
            raise ReliabilityUpdateFailure(
                f"Failed to update reliability for {url_pattern}: {e}"
            ) from e

    def get(self, url_pattern: str) -> Optional[dict[str, Any]]:
        with self.db.get_session() as session:
            row = session.execute(
                select(UrlReliability).where(UrlReliability.url_pattern == url_pattern)
            ).scalar_one_or_none()
            return self._to_dict(row) if row is not None else None

    def top(self, limit: int = 10) -> list[dict[str, Any]]:
        """Domains ordered by success rate, then by volume."""
        success_rate = case(
            (UrlReliability.total_attempts > 0,
             UrlReliability.successful_attempts * 1.0 / UrlReliability.total_attempts),
            else_=0.0,
        )
        with self.db.get_session() as session:
            rows = (
                session.execute(
                    select(UrlReliability)
                    .order_by(success_rate.desc(), UrlReliability.total_attempts.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [self._to_dict(row) for row in rows]

    @staticmethod
    def _to_dict(row: UrlReliability) -> dict[str, Any]:
        return {
            "url_pattern": row.url_pattern,
            "total_attempts": row.total_attempts,
            "successful_attempts": row.successful_attempts,
            "success_rate": round(row.success_rate, 2),
            "best_method": row.best_method,
            "average_response_time_ms": round(row.average_response_time_ms or 0.0, 2),
            "last_success_at": row.last_success_at,
            "updated_at": row.updated_at,
        }
